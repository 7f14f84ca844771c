from __future__ import annotations

import enum
from datetime import date

from sqlalchemy import Boolean, Date, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinica_dental.models.base import AuditMixin, Base


class Sex(str, enum.Enum):
    masculino = "masculino"
    femenino = "femenino"


class Patient(Base, AuditMixin):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    national_id: Mapped[str | None] = mapped_column(String(32), unique=True, index=True, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    sex: Mapped[Sex | None] = mapped_column(Enum(Sex, name="sex_enum"), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(120), nullable=True)
    doctor: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)
    intake_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    diseases: Mapped[str | None] = mapped_column(Text, nullable=True)
    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    medications: Mapped[str | None] = mapped_column(Text, nullable=True)
    pregnant: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pregnancy_weeks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    odontograms = relationship(
        "Odontogram", back_populates="patient", order_by="Odontogram.version", lazy="selectin"
    )
    quotes = relationship("Quote", back_populates="patient", lazy="selectin")
    completed_treatments = relationship(
        "CompletedTreatment", back_populates="patient", lazy="selectin"
    )
