from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinica_dental.models.base import AuditMixin, Base


class Doctor(Base, AuditMixin):
    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    specialty: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(60), nullable=True)
    consultation_fee_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user = relationship("User", foreign_keys=[user_id], lazy="joined")

    @property
    def user_email(self) -> str | None:
        return self.user.email if self.user else None

    @property
    def label(self) -> str:
        return f"{self.name} - {self.specialty}"
