from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica_dental.db.session import get_db
from clinica_dental.deps import require_admin
from clinica_dental.models.user import Role, User
from clinica_dental.schemas.user import UserCreate, UserOut, UserUpdate
from clinica_dental.services.audit import log_event
from clinica_dental.services.users import (
    create_user,
    get_user_by_email,
    get_user_by_external_id,
    get_user_by_id,
    update_user,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return list(db.scalars(select(User).order_by(User.id)))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    request_id: str | None = Header(default=None),
):
    if get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")
    if get_user_by_external_id(db, payload.external_id.strip()):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Identity already linked")
    user = create_user(
        db,
        external_id=payload.external_id,
        email=payload.email,
        full_name=payload.full_name,
        role=Role(payload.role),
        is_active=True,
    )
    log_event(
        db,
        actor=admin,
        action="user.created",
        entity_type="user",
        entity_id=str(user.id),
        after_data={"email": user.email, "role": user.role.value},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    return user


@router.get("/roles", response_model=list[str])
def list_roles(_=Depends(require_admin)):
    return [role.value for role in Role]


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserOut)
def patch_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    request_id: str | None = Header(default=None),
):
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.id == admin.id and payload.is_active is False:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot deactivate yourself")
    previous_role = user.role
    updated = update_user(
        db,
        user=user,
        full_name=payload.full_name,
        role=Role(payload.role) if payload.role else None,
        is_active=payload.is_active,
    )
    if payload.role and updated.role != previous_role:
        log_event(
            db,
            actor=admin,
            action="user.role_changed",
            entity_type="user",
            entity_id=str(updated.id),
            before_data={"role": previous_role.value},
            after_data={"role": updated.role.value},
            request_id=request_id,
            ip_address=request.client.host if request.client else None,
        )
        db.commit()
    return updated
