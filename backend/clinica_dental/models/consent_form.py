from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinica_dental.models.base import AuditMixin, Base


class ConsentStatus(str, enum.Enum):
    activo = "activo"
    firmado = "firmado"
    cancelado = "cancelado"


class ConsentForm(Base, AuditMixin):
    __tablename__ = "consent_forms"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    template_key: Mapped[str] = mapped_column(String(50), nullable=False)
    consent_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    doctor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ConsentStatus] = mapped_column(
        Enum(ConsentStatus, name="consent_status"), nullable=False, default=ConsentStatus.activo
    )
    patient_signature_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    doctor_signature_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    patient = relationship("Patient", lazy="joined")
