from fastapi import APIRouter, Depends, Query

from clinica_dental.core.settings import settings
from clinica_dental.deps import get_current_user
from clinica_dental.models.user import User
from clinica_dental.schemas.user import AccessCheckOut, MeOut, UserOut
from clinica_dental.services.access import check_route_access, normalize_path, permissions_for

router = APIRouter(tags=["access"])


@router.get("/me", response_model=MeOut)
def get_me(user: User = Depends(get_current_user)):
    return MeOut(
        **UserOut.model_validate(user).model_dump(),
        permissions=permissions_for(user.role),
    )


@router.get("/access/check", response_model=AccessCheckOut)
def check_access(
    path: str = Query(min_length=1),
    user: User = Depends(get_current_user),
):
    decision = check_route_access(
        user.role,
        path,
        authenticated=True,
        sign_in_route=settings.sign_in_route,
        fallback_route=settings.access_fallback_route,
    )
    return AccessCheckOut(
        path=normalize_path(path),
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
        matched_route=decision.matched_route,
    )
