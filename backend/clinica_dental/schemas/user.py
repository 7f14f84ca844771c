from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from clinica_dental.models.user import Role


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    email: EmailStr
    full_name: str
    role: Role
    is_active: bool
    created_at: datetime


class UserCreate(BaseModel):
    external_id: str
    email: EmailStr
    full_name: str = ""
    role: Role = Role.staff


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class MeOut(UserOut):
    permissions: dict[str, bool]


class AccessCheckOut(BaseModel):
    path: str
    allowed: bool
    redirect_to: Optional[str] = None
    matched_route: Optional[str] = None
