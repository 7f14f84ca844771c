from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from clinica_dental.models.patient import Sex
from clinica_dental.schemas.common import PatchModel


class PatientBase(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    national_id: Optional[str] = Field(default=None, max_length=32)
    birth_date: Optional[date] = None
    sex: Optional[Sex] = None
    phone: Optional[str] = None
    country_code: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    doctor: Optional[str] = None
    intake_date: Optional[date] = None
    diseases: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    pregnant: bool = False
    pregnancy_weeks: Optional[int] = Field(default=None, ge=0, le=40)
    notes: Optional[str] = None


class PatientCreate(PatientBase):
    pass


class PatientUpdate(PatchModel):
    required_fields = frozenset({"full_name", "pregnant"})

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    national_id: Optional[str] = Field(default=None, max_length=32)
    birth_date: Optional[date] = None
    sex: Optional[Sex] = None
    phone: Optional[str] = None
    country_code: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    doctor: Optional[str] = None
    intake_date: Optional[date] = None
    diseases: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    pregnant: Optional[bool] = None
    pregnancy_weeks: Optional[int] = Field(default=None, ge=0, le=40)
    notes: Optional[str] = None


class PatientOut(PatientBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class NationalIdCheckOut(BaseModel):
    national_id: str
    available: bool


class SeverityOut(BaseModel):
    level: Literal["none", "low", "medium", "high", "critical", "pregnancy"]
    score: int
    conditions: list[str]
    color: str


class PregnancyOut(BaseModel):
    active: bool
    weeks_at_intake: int
    current_weeks: int
    weeks_remaining: int
    expected_end: date


class PatientProfileOut(BaseModel):
    patient_id: int
    age: Optional[int] = None
    patient_type: Literal["menor", "adulto", "3ra_edad", "4ta_edad"]
    record_category: Literal["active", "historical", "archived"]
    last_treatment_date: Optional[date] = None
    pregnancy: Optional[PregnancyOut] = None
    whatsapp_url: Optional[str] = None
    severity: SeverityOut
