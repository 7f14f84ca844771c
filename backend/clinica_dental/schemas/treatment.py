from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from clinica_dental.schemas.common import PatchModel


def _upper(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


CurrencyCode = Annotated[str, BeforeValidator(_upper), Field(min_length=3, max_length=3)]


class TreatmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    specialty: str = Field(min_length=1, max_length=120)
    price_cents: int = Field(default=0, ge=0)
    currency: Optional[CurrencyCode] = None
    notes: Optional[str] = None
    is_active: bool = True


class TreatmentUpdate(PatchModel):
    required_fields = frozenset({"name", "price_cents", "currency", "is_active"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price_cents: Optional[int] = Field(default=None, ge=0)
    currency: Optional[CurrencyCode] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class TreatmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    specialty: str
    price_cents: int
    currency: str
    notes: Optional[str] = None
    times_performed: int
    is_active: bool
    label: str
    created_at: datetime
    updated_at: datetime


class IncrementRequest(BaseModel):
    by: int = Field(default=1, ge=1)


class SpecialtyOut(BaseModel):
    name: str
    prefix: str


class PromotionCreate(BaseModel):
    code: Optional[str] = Field(default=None, max_length=20)
    name: str = Field(min_length=1, max_length=200)
    original_price_cents: int = Field(ge=0)
    promo_price_cents: int = Field(ge=0)
    currency: Optional[CurrencyCode] = None
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    is_active: bool = True


class PromotionUpdate(PatchModel):
    required_fields = frozenset(
        {"name", "original_price_cents", "promo_price_cents", "currency", "is_active"}
    )

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    original_price_cents: Optional[int] = Field(default=None, ge=0)
    promo_price_cents: Optional[int] = Field(default=None, ge=0)
    currency: Optional[CurrencyCode] = None
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    is_active: Optional[bool] = None


class PromotionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    original_price_cents: int
    promo_price_cents: int
    discount_percent: int
    currency: str
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    times_used: int
    is_active: bool
    label: str
    created_at: datetime
    updated_at: datetime
