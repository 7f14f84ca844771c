from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from clinica_dental.models.doctor import Doctor

DOCTOR_SPECIALTIES: tuple[str, ...] = (
    "Odontología General",
    "Ortodoncia",
    "Endodoncia",
    "Periodoncia",
    "Cirugía Oral y Maxilofacial",
    "Odontopediatría",
    "Rehabilitación Oral",
    "Implantología",
    "Operatoria",
    "Estetica",
    "Patología Bucal",
    "Radiología Dental",
    "Sal Pública Dental",
)

DEFAULT_DOCTORS: tuple[tuple[str, str], ...] = (
    ("Dra. Sully Calix", "Ortodoncia"),
    ("Dra. Amelia Yanes", "Endodoncia"),
    ("Dra. Jimena Molina", "Odontología General"),
    ("Dra. Melissa Escalante", "Ortodoncia"),
    ("Dr. Gustavo Urtecho", "Odontología General"),
    ("Dr. Jain Reyes", "Odontología General"),
)


def list_doctors(
    db: Session,
    *,
    specialty: str | None = None,
    user_id: int | None = None,
    include_inactive: bool = False,
) -> list[Doctor]:
    stmt = select(Doctor)
    if not include_inactive:
        stmt = stmt.where(Doctor.is_active.is_(True))
    if specialty:
        stmt = stmt.where(Doctor.specialty == specialty)
    if user_id is not None:
        stmt = stmt.where(Doctor.user_id == user_id)
    return list(db.scalars(stmt.order_by(Doctor.name, Doctor.id)))


def get_doctor_by_user_id(db: Session, user_id: int) -> Doctor | None:
    return db.scalar(select(Doctor).where(Doctor.user_id == user_id))


def seed_default_doctors(db: Session) -> int:
    """Load the clinic's starting roster into an empty doctors table."""
    if db.scalar(select(func.count(Doctor.id))):
        return 0
    db.add_all(Doctor(name=name, specialty=specialty, is_active=True) for name, specialty in DEFAULT_DOCTORS)
    db.commit()
    return len(DEFAULT_DOCTORS)
