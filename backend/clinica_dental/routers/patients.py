from datetime import date

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.deps import get_current_user, get_notification_store, require_roles
from clinica_dental.models.audit_log import AuditLog
from clinica_dental.models.patient import Patient
from clinica_dental.models.user import User
from clinica_dental.schemas.audit_log import AuditLogOut
from clinica_dental.schemas.patient import (
    NationalIdCheckOut,
    PatientCreate,
    PatientOut,
    PatientProfileOut,
    PatientUpdate,
    PregnancyOut,
    SeverityOut,
)
from clinica_dental.services.audit import log_event, snapshot_model
from clinica_dental.services.notifications import (
    NotificationStore,
    notify_patient_created,
    notify_patient_updated,
)
from clinica_dental.services.patients import (
    calculate_age,
    classify_patient_type,
    classify_record_category,
    last_treatment_date,
    national_id_taken,
    pregnancy_status,
    whatsapp_url,
)
from clinica_dental.services.severity import classify_severity

router = APIRouter(prefix="/patients", tags=["patients"])

MIN_SEARCH_LENGTH = 2


def get_patient_or_404(db: Session, patient_id: int) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


def _severity_out(patient: Patient) -> SeverityOut:
    result = classify_severity(patient)
    return SeverityOut(
        level=result.level, score=result.score, conditions=result.conditions, color=result.color
    )


def _ensure_national_id_free(db: Session, national_id: str | None, patient_id: int | None = None) -> None:
    if national_id and national_id_taken(db, national_id, exclude_patient_id=patient_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="National ID already registered"
        )


@router.get("", response_model=list[PatientOut])
def list_patients(
    q: str | None = Query(default=None),
    doctor: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(Patient)
    if q is not None:
        term = q.strip()
        if len(term) < MIN_SEARCH_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Search term must have at least {MIN_SEARCH_LENGTH} characters",
            )
        like = f"%{term}%"
        stmt = stmt.where(
            or_(
                Patient.full_name.ilike(like),
                Patient.national_id.ilike(like),
                Patient.phone.ilike(like),
                Patient.doctor.ilike(like),
            )
        )
    if doctor:
        stmt = stmt.where(Patient.doctor == doctor)
    stmt = stmt.order_by(Patient.full_name.asc(), Patient.id.asc()).limit(limit).offset(offset)
    return list(db.scalars(stmt))


@router.get("/validate-id", response_model=NationalIdCheckOut)
def validate_national_id(
    national_id: str = Query(min_length=1),
    patient_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    taken = national_id_taken(db, national_id, exclude_patient_id=patient_id)
    return NationalIdCheckOut(national_id=national_id.strip(), available=not taken)


@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    notifications: NotificationStore = Depends(get_notification_store),
    request_id: str | None = Header(default=None),
):
    _ensure_national_id_free(db, payload.national_id)
    data = payload.model_dump()
    if data.get("intake_date") is None:
        data["intake_date"] = date.today()
    patient = Patient(**data, created_by_user_id=user.id, updated_by_user_id=user.id)
    db.add(patient)
    db.flush()
    log_event(
        db,
        actor=user,
        action="patient.created",
        entity_type="patient",
        entity_id=str(patient.id),
        patient_id=patient.id,
        after_obj=patient,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(patient)
    notify_patient_created(
        notifications, patient_name=patient.full_name, patient_id=patient.id, user_id=user.id
    )
    return patient


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_patient_or_404(db, patient_id)


@router.patch("/{patient_id}", response_model=PatientOut)
def update_patient(
    patient_id: int,
    payload: PatientUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifications: NotificationStore = Depends(get_notification_store),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, patient_id)
    changes = payload.model_dump(exclude_unset=True)
    if "national_id" in changes:
        _ensure_national_id_free(db, changes["national_id"], patient_id)
    before_data = snapshot_model(patient)
    for field, value in changes.items():
        setattr(patient, field, value)
    patient.touch(user)
    db.add(patient)
    db.flush()
    log_event(
        db,
        actor=user,
        action="patient.updated",
        entity_type="patient",
        entity_id=str(patient.id),
        patient_id=patient.id,
        before_data=before_data,
        after_obj=patient,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(patient)
    notify_patient_updated(
        notifications, patient_name=patient.full_name, patient_id=patient.id, user_id=user.id
    )
    return patient


@router.get("/{patient_id}/severity", response_model=SeverityOut)
def get_patient_severity(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return _severity_out(get_patient_or_404(db, patient_id))


@router.get("/{patient_id}/profile", response_model=PatientProfileOut)
def get_patient_profile(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    patient = get_patient_or_404(db, patient_id)
    age = calculate_age(patient.birth_date)
    last_visit = last_treatment_date(db, patient.id)
    record_category = classify_record_category(
        patient.intake_date,
        last_visit,
        launch_date=settings.app_launch_date,
        historical_enabled=settings.historical_records_enabled,
        archive_after_years=settings.archive_after_years,
    )
    pregnancy = None
    if patient.pregnant:
        pregnancy_info = pregnancy_status(patient.pregnancy_weeks, patient.intake_date)
        if pregnancy_info is not None:
            pregnancy = PregnancyOut(**pregnancy_info.__dict__)
    return PatientProfileOut(
        patient_id=patient.id,
        age=age,
        patient_type=classify_patient_type(age),
        record_category=record_category,
        last_treatment_date=last_visit,
        pregnancy=pregnancy,
        whatsapp_url=whatsapp_url(patient.phone, patient.country_code),
        severity=_severity_out(patient),
    )


@router.get("/{patient_id}/audit", response_model=list[AuditLogOut])
def patient_audit(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
    entity_type: str | None = Query(default=None),
):
    get_patient_or_404(db, patient_id)
    stmt = (
        select(AuditLog)
        .where(AuditLog.patient_id == patient_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    )
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    return list(db.scalars(stmt))
