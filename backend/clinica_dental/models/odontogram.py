from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, JSON, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinica_dental.models.base import AuditMixin, Base


class Odontogram(Base, AuditMixin):
    __tablename__ = "odontograms"
    __table_args__ = (UniqueConstraint("patient_id", "version", name="uq_odontograms_patient_version"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    patient = relationship("Patient", back_populates="odontograms")
