from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from clinica_dental.core.security import InvalidTokenError, subject_from_token
from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.models.user import Role, User
from clinica_dental.services.access import permissions_for
from clinica_dental.services.notifications import NotificationStore
from clinica_dental.services.users import get_user_by_external_id


def get_current_user(
    db: Session = Depends(get_db), authorization: str | None = Header(default=None)
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        sub = subject_from_token(
            token,
            secret=settings.jwt_secret,
            alg=settings.jwt_alg,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = get_user_by_external_id(db, sub)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    return user


def require_roles(*roles: str):
    def _inner(user: User = Depends(get_current_user)) -> User:
        if user.role != Role.admin and user.role.value not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return _inner


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user


def get_notification_store(request: Request) -> NotificationStore:
    store = getattr(request.app.state, "notification_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Notifications unavailable"
        )
    return store


def require_permission(permission: str):
    def _inner(user: User = Depends(get_current_user)) -> User:
        if not permissions_for(user.role).get(permission, False):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return _inner
