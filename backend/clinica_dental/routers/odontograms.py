from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica_dental.db.session import get_db
from clinica_dental.deps import require_roles
from clinica_dental.models.odontogram import Odontogram
from clinica_dental.models.user import User
from clinica_dental.routers.patients import get_patient_or_404
from clinica_dental.schemas.odontogram import OdontogramCreate, OdontogramOut, OdontogramSummaryOut
from clinica_dental.services.audit import log_event
from clinica_dental.services.odontogram_summary import format_odontogram_notes
from clinica_dental.services.odontograms import (
    get_active_odontogram,
    restore_odontogram_version,
    save_odontogram_version,
)

patient_router = APIRouter(prefix="/patients/{patient_id}/odontograms", tags=["odontograms"])


def get_active_or_404(db: Session, patient_id: int) -> Odontogram:
    odontogram = get_active_odontogram(db, patient_id)
    if not odontogram:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active odontogram")
    return odontogram


def get_version_or_404(db: Session, patient_id: int, version: int) -> Odontogram:
    odontogram = db.scalar(
        select(Odontogram).where(Odontogram.patient_id == patient_id, Odontogram.version == version)
    )
    if not odontogram:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Odontogram version not found")
    return odontogram


def _audit_version(
    db: Session, *, actor: User, odontogram: Odontogram, action: str, request: Request, request_id: str | None
) -> None:
    log_event(
        db,
        actor=actor,
        action=action,
        entity_type="odontogram",
        entity_id=str(odontogram.id),
        patient_id=odontogram.patient_id,
        after_data={"patient_id": odontogram.patient_id, "version": odontogram.version},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )


@patient_router.get("", response_model=list[OdontogramOut])
def list_odontogram_versions(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    get_patient_or_404(db, patient_id)
    stmt = (
        select(Odontogram)
        .where(Odontogram.patient_id == patient_id)
        .order_by(Odontogram.version.desc())
    )
    return list(db.scalars(stmt))


@patient_router.post("", response_model=OdontogramOut, status_code=status.HTTP_201_CREATED)
def save_odontogram(
    patient_id: int,
    payload: OdontogramCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    get_patient_or_404(db, patient_id)
    odontogram = save_odontogram_version(
        db, patient_id=patient_id, data=payload.data, notes=payload.notes, actor=user
    )
    _audit_version(
        db,
        actor=user,
        odontogram=odontogram,
        action="odontogram.saved",
        request=request,
        request_id=request_id,
    )
    db.commit()
    db.refresh(odontogram)
    return odontogram


@patient_router.get("/active", response_model=OdontogramOut)
def get_active(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    get_patient_or_404(db, patient_id)
    return get_active_or_404(db, patient_id)


@patient_router.get("/active/summary", response_model=OdontogramSummaryOut)
def get_active_summary(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    get_patient_or_404(db, patient_id)
    odontogram = get_active_or_404(db, patient_id)
    return OdontogramSummaryOut(
        odontogram_id=odontogram.id,
        version=odontogram.version,
        summary=format_odontogram_notes(odontogram.data, odontogram.notes),
    )


@patient_router.get("/{version}", response_model=OdontogramOut)
def get_odontogram_version(
    patient_id: int,
    version: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    return get_version_or_404(db, patient_id, version)


@patient_router.post("/{version}/restore", response_model=OdontogramOut, status_code=status.HTTP_201_CREATED)
def restore_odontogram(
    patient_id: int,
    version: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    source = get_version_or_404(db, patient_id, version)
    odontogram = restore_odontogram_version(db, source, actor=user)
    _audit_version(
        db,
        actor=user,
        odontogram=odontogram,
        action="odontogram.restored",
        request=request,
        request_id=request_id,
    )
    db.commit()
    db.refresh(odontogram)
    return odontogram
