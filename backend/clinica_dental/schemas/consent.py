from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from clinica_dental.models.consent_form import ConsentStatus


class ConsentTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    name: str
    consent_type: str
    description: str


class ConsentCreate(BaseModel):
    template_key: str
    doctor_name: str = Field(min_length=1, max_length=200)


class ConsentSign(BaseModel):
    patient_signature_url: Optional[str] = Field(default=None, max_length=500)
    doctor_signature_url: Optional[str] = Field(default=None, max_length=500)


class ConsentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    template_key: str
    consent_type: str
    title: str
    doctor_name: str
    content: str
    status: ConsentStatus
    patient_signature_url: Optional[str] = None
    doctor_signature_url: Optional[str] = None
    signed_at: Optional[datetime] = None
    created_at: datetime


class ConsentCreateOut(ConsentOut):
    unknown_placeholders: list[str] = []
