from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OdontogramCreate(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None


class OdontogramOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    version: int
    data: dict[str, Any]
    notes: Optional[str] = None
    is_active: bool
    created_by_user_id: int
    created_at: datetime
    updated_at: datetime


class OdontogramSummaryOut(BaseModel):
    odontogram_id: int
    version: int
    summary: str
