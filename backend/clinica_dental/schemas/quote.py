from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from clinica_dental.models.quote import QuoteStatus
from clinica_dental.schemas.common import PatchModel


class QuoteItemCreate(BaseModel):
    treatment_id: Optional[int] = None
    promotion_id: Optional[int] = None
    description: Optional[str] = Field(default=None, max_length=255)
    quantity: int = Field(default=1, ge=1)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    sort_order: Optional[int] = Field(default=None, ge=1)


class QuoteItemUpdate(PatchModel):
    required_fields = frozenset({"description", "quantity", "unit_price_cents", "sort_order"})

    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(default=None, ge=1)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    sort_order: Optional[int] = Field(default=None, ge=1)


class QuoteItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    quantity: int
    unit_price_cents: int
    total_price_cents: int
    sort_order: int


class QuoteCreate(BaseModel):
    doctor_name: str = Field(min_length=1, max_length=200)
    quote_date: Optional[date] = None
    treatment_description: Optional[str] = None
    notes: Optional[str] = None
    include_odontogram: bool = False
    items: list[QuoteItemCreate] = Field(min_length=1)


class QuoteUpdate(PatchModel):
    required_fields = frozenset({"doctor_name", "status"})

    doctor_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    treatment_description: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[QuoteStatus] = None


class QuoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_name: str
    treatment_description: Optional[str] = None
    notes: Optional[str] = None
    quote_date: date
    expires_on: date
    status: QuoteStatus
    accepted_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None
    created_by_user_id: int
    created_at: datetime
    updated_at: datetime
    items: list[QuoteItemOut]


class QuoteTotalsOut(BaseModel):
    quote_id: int
    home_currency: str
    by_currency: dict[str, int]
    has_foreign_currency: bool
    assumed_item_ids: list[Any]
    display: str
