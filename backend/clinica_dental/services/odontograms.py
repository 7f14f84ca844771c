from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from clinica_dental.models.odontogram import Odontogram
from clinica_dental.models.user import User


def get_active_odontogram(db: Session, patient_id: int) -> Odontogram | None:
    return db.scalar(
        select(Odontogram)
        .where(Odontogram.patient_id == patient_id, Odontogram.is_active.is_(True))
        .order_by(Odontogram.version.desc())
        .limit(1)
    )


def save_odontogram_version(
    db: Session, *, patient_id: int, data: dict, notes: str | None, actor: User
) -> Odontogram:
    """Store ``data`` as the patient's new active odontogram.

    Earlier versions are kept but deactivated in the same transaction, so a
    patient never has more than one active chart. Caller commits.
    """
    current_version = db.scalar(
        select(func.coalesce(func.max(Odontogram.version), 0)).where(Odontogram.patient_id == patient_id)
    ) or 0
    db.execute(
        update(Odontogram)
        .where(Odontogram.patient_id == patient_id, Odontogram.is_active.is_(True))
        .values(is_active=False, updated_by_user_id=actor.id)
        .execution_options(synchronize_session="fetch")
    )
    odontogram = Odontogram(
        patient_id=patient_id,
        version=current_version + 1,
        data=data,
        notes=notes,
        is_active=True,
        created_by_user_id=actor.id,
        updated_by_user_id=actor.id,
    )
    db.add(odontogram)
    db.flush()
    return odontogram


def restore_odontogram_version(db: Session, source: Odontogram, *, actor: User) -> Odontogram:
    return save_odontogram_version(
        db, patient_id=source.patient_id, data=dict(source.data or {}), notes=source.notes, actor=actor
    )
