from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clinica_dental.models.completed_treatment import (
    CompletedTreatmentStatus,
    DiscountType,
    PaymentMethod,
    PaymentStatus,
)
from clinica_dental.schemas.common import PatchModel
from clinica_dental.schemas.treatment import CurrencyCode

MAX_PERCENT_DISCOUNT = 100


def check_discount(discount_type: DiscountType | None, discount_value: int | None) -> None:
    if discount_type == DiscountType.porcentaje and (discount_value or 0) > MAX_PERCENT_DISCOUNT:
        raise ValueError(f"A percentage discount cannot exceed {MAX_PERCENT_DISCOUNT}%")


class CompletedTreatmentItemCreate(BaseModel):
    treatment_id: Optional[int] = None
    promotion_id: Optional[int] = None
    treatment_name: Optional[str] = Field(default=None, max_length=200)
    treatment_code: Optional[str] = Field(default=None, max_length=20)
    quantity: int = Field(default=1, ge=1)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    currency: Optional[CurrencyCode] = None
    disable_elderly_discount: bool = False
    notes: Optional[str] = None
    doctor_name: Optional[str] = None


class CompletedTreatmentItemUpdate(PatchModel):
    required_fields = frozenset({"quantity", "unit_price_cents", "disable_elderly_discount"})

    quantity: Optional[int] = Field(default=None, ge=1)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    disable_elderly_discount: Optional[bool] = None
    notes: Optional[str] = None
    doctor_name: Optional[str] = None


class CompletedTreatmentItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    treatment_id: Optional[int] = None
    promotion_id: Optional[int] = None
    treatment_name: str
    treatment_code: Optional[str] = None
    quantity: int
    unit_price_cents: int
    final_price_cents: int
    currency: str
    disable_elderly_discount: bool
    discount_reason: Optional[str] = None
    notes: Optional[str] = None
    doctor_name: Optional[str] = None


class CompletedTreatmentCreate(BaseModel):
    patient_id: int
    appointment_date: Optional[date] = None
    specialty: Optional[str] = None
    discount_type: DiscountType = DiscountType.ninguno
    discount_value: int = Field(default=0, ge=0)
    bypass_historical: bool = False
    doctor_notes: Optional[str] = None
    signature_url: Optional[str] = None
    items: list[CompletedTreatmentItemCreate] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_discount(self):
        check_discount(self.discount_type, self.discount_value)
        return self


class CompletedTreatmentUpdate(PatchModel):
    required_fields = frozenset({"appointment_date", "discount_type", "discount_value", "status"})

    appointment_date: Optional[date] = None
    specialty: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = Field(default=None, ge=0)
    doctor_notes: Optional[str] = None
    signature_url: Optional[str] = None
    status: Optional[CompletedTreatmentStatus] = None

    @model_validator(mode="after")
    def _check_discount(self):
        check_discount(self.discount_type, self.discount_value)
        return self


class CompletedTreatmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    appointment_date: date
    specialty: Optional[str] = None
    currency: str
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    discount_type: DiscountType
    discount_value: int
    discount_reason: Optional[str] = None
    bypass_historical: bool
    doctor_notes: Optional[str] = None
    signature_url: Optional[str] = None
    status: CompletedTreatmentStatus
    paid_cents: int
    balance_cents: int
    created_by_user_id: int
    created_at: datetime
    updated_at: datetime
    items: list[CompletedTreatmentItemOut]


class PaymentCreate(BaseModel):
    amount_cents: int = Field(gt=0)
    currency: Optional[CurrencyCode] = None
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    method: PaymentMethod
    paid_on: Optional[date] = None
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    completed_treatment_id: int
    amount_cents: int
    currency: str
    method: PaymentMethod
    paid_on: date
    notes: Optional[str] = None
    received_by_user_id: int


class PaymentSummaryOut(BaseModel):
    completed_treatment_id: int
    currency: str
    total_cents: int
    paid_cents: int
    balance_cents: int
    status: PaymentStatus


class CompletedTreatmentStatisticsOut(BaseModel):
    total_treatments: int
    by_status: dict[str, int]
    revenue_by_currency: dict[str, int]
    discount_by_currency: dict[str, int]
    average_by_currency: dict[str, int]
