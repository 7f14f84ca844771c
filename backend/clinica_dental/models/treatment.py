from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinica_dental.models.base import AuditMixin, Base


class Treatment(Base, AuditMixin):
    __tablename__ = "treatments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    specialty: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="HNL")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    times_performed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def label(self) -> str:
        return f"{self.code} - {self.name}"


class Promotion(Base, AuditMixin):
    __tablename__ = "promotions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    original_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    promo_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="HNL")
    starts_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    ends_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def discount_percent(self) -> int:
        if self.original_price_cents <= 0:
            return 0
        saved = self.original_price_cents - self.promo_price_cents
        return max(round(saved * 100 / self.original_price_cents), 0)

    @property
    def label(self) -> str:
        return f"{self.code} - {self.name} (PROMOCIÓN {self.discount_percent}% OFF)"

    def is_valid_on(self, day: date) -> bool:
        if not self.is_active:
            return False
        if self.starts_on and day < self.starts_on:
            return False
        if self.ends_on and day > self.ends_on:
            return False
        return True
