from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from clinica_dental.schemas.common import PatchModel
from clinica_dental.services.doctors import DOCTOR_SPECIALTIES


def _known_specialty(value: str) -> str:
    value = value.strip()
    if value not in DOCTOR_SPECIALTIES:
        raise ValueError(f"Unknown specialty: {value}")
    return value


Specialty = Annotated[str, Field(min_length=1, max_length=120), AfterValidator(_known_specialty)]


class DoctorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    specialty: Specialty
    user_id: Optional[int] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    license_number: Optional[str] = Field(default=None, max_length=60)
    consultation_fee_cents: Optional[int] = Field(default=None, ge=0)
    bio: Optional[str] = None
    profile_image_url: Optional[str] = Field(default=None, max_length=500)


class DoctorUpdate(PatchModel):
    required_fields = frozenset({"name", "specialty", "is_active"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    specialty: Optional[Specialty] = None
    user_id: Optional[int] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    license_number: Optional[str] = Field(default=None, max_length=60)
    consultation_fee_cents: Optional[int] = Field(default=None, ge=0)
    bio: Optional[str] = None
    profile_image_url: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class DoctorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    specialty: str
    label: str
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee_cents: Optional[int] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
