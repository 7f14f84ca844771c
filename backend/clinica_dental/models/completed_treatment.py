from __future__ import annotations

import enum
from datetime import date

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinica_dental.models.base import AuditMixin, Base


class CompletedTreatmentStatus(str, enum.Enum):
    pendiente_firma = "pendiente_firma"
    firmado = "firmado"
    pagado = "pagado"


class DiscountType(str, enum.Enum):
    ninguno = "ninguno"
    monto = "monto"
    porcentaje = "porcentaje"


class PaymentMethod(str, enum.Enum):
    efectivo = "efectivo"
    tarjeta_credito = "tarjeta_credito"
    tarjeta_debito = "tarjeta_debito"
    transferencia = "transferencia"
    cheque = "cheque"
    deposito_bancario = "deposito_bancario"
    paypal = "paypal"
    otro = "otro"


class PaymentStatus(str, enum.Enum):
    pendiente = "pendiente"
    parcialmente_pagado = "parcialmente_pagado"
    pagado = "pagado"


class CompletedTreatment(Base, AuditMixin):
    __tablename__ = "completed_treatments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    specialty: Mapped[str | None] = mapped_column(String(120), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="HNL")
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType, name="discount_type"), nullable=False, default=DiscountType.ninguno
    )
    # percent for porcentaje, cents for monto
    discount_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    bypass_historical: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    doctor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[CompletedTreatmentStatus] = mapped_column(
        Enum(CompletedTreatmentStatus, name="completed_treatment_status"),
        nullable=False,
        default=CompletedTreatmentStatus.pendiente_firma,
        index=True,
    )

    patient = relationship("Patient", back_populates="completed_treatments", lazy="joined")
    items = relationship(
        "CompletedTreatmentItem",
        back_populates="completed_treatment",
        cascade="all, delete-orphan",
        order_by="CompletedTreatmentItem.id",
        lazy="selectin",
    )
    payments = relationship(
        "Payment",
        back_populates="completed_treatment",
        cascade="all, delete-orphan",
        order_by="Payment.paid_on",
        lazy="selectin",
    )

    @property
    def paid_cents(self) -> int:
        return sum(payment.amount_cents for payment in self.payments or [])

    @property
    def balance_cents(self) -> int:
        return max(self.total_cents - self.paid_cents, 0)


class CompletedTreatmentItem(Base):
    __tablename__ = "completed_treatment_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    completed_treatment_id: Mapped[int] = mapped_column(
        ForeignKey("completed_treatments.id"), nullable=False, index=True
    )
    treatment_id: Mapped[int | None] = mapped_column(ForeignKey("treatments.id"), nullable=True)
    promotion_id: Mapped[int | None] = mapped_column(ForeignKey("promotions.id"), nullable=True)
    treatment_name: Mapped[str] = mapped_column(String(200), nullable=False)
    treatment_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    final_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="HNL")
    disable_elderly_discount: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discount_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    doctor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    completed_treatment = relationship("CompletedTreatment", back_populates="items")


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    completed_treatment_id: Mapped[int] = mapped_column(
        ForeignKey("completed_treatments.id"), nullable=False, index=True
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method"), nullable=False
    )
    paid_on: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    received_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    completed_treatment = relationship("CompletedTreatment", back_populates="payments")
