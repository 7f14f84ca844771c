from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.deps import require_roles
from clinica_dental.models.consent_form import ConsentForm, ConsentStatus
from clinica_dental.models.user import User
from clinica_dental.routers.patients import get_patient_or_404
from clinica_dental.schemas.consent import (
    ConsentCreate,
    ConsentCreateOut,
    ConsentOut,
    ConsentSign,
    ConsentTemplateOut,
)
from clinica_dental.services.audit import log_event
from clinica_dental.services.consent_templates import (
    CONSENT_TEMPLATES,
    get_consent_template,
    render_consent_with_warnings,
    templates_by_type,
)

router = APIRouter(prefix="/consents", tags=["consents"])
patient_router = APIRouter(prefix="/patients/{patient_id}/consents", tags=["consents"])


def get_consent_or_404(db: Session, consent_id: int) -> ConsentForm:
    consent = db.get(ConsentForm, consent_id)
    if not consent:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consent form not found")
    return consent


def ensure_active(consent: ConsentForm) -> None:
    if consent.status != ConsentStatus.activo:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Consent form is already {consent.status.value}",
        )


@router.get("/templates", response_model=list[ConsentTemplateOut])
def list_consent_templates(
    consent_type: str | None = Query(default=None),
    _user: User = Depends(require_roles("doctor")),
):
    if consent_type:
        return templates_by_type(consent_type)
    return list(CONSENT_TEMPLATES)


@patient_router.get("", response_model=list[ConsentOut])
def list_patient_consents(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    get_patient_or_404(db, patient_id)
    stmt = (
        select(ConsentForm)
        .where(ConsentForm.patient_id == patient_id)
        .order_by(ConsentForm.created_at.desc(), ConsentForm.id.desc())
    )
    return list(db.scalars(stmt))


@patient_router.post("", response_model=ConsentCreateOut, status_code=status.HTTP_201_CREATED)
def create_consent(
    patient_id: int,
    payload: ConsentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, patient_id)
    template = get_consent_template(payload.template_key)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consent template not found")
    content, unknown = render_consent_with_warnings(
        template.content,
        patient,
        doctor_name=payload.doctor_name.strip(),
        clinic_name=settings.clinic_name,
    )
    consent = ConsentForm(
        patient_id=patient.id,
        template_key=template.key,
        consent_type=template.consent_type,
        title=template.name,
        doctor_name=payload.doctor_name.strip(),
        content=content,
        status=ConsentStatus.activo,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(consent)
    db.flush()
    log_event(
        db,
        actor=user,
        action="consent.created",
        entity_type="consent_form",
        entity_id=str(consent.id),
        patient_id=consent.patient_id,
        after_data={"patient_id": patient.id, "template_key": template.key},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(consent)
    response = ConsentCreateOut.model_validate(consent)
    response.unknown_placeholders = unknown
    return response


@router.get("/{consent_id}", response_model=ConsentOut)
def get_consent(
    consent_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    return get_consent_or_404(db, consent_id)


@router.post("/{consent_id}/sign", response_model=ConsentOut)
def sign_consent(
    consent_id: int,
    payload: ConsentSign,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    consent = get_consent_or_404(db, consent_id)
    ensure_active(consent)
    if not payload.patient_signature_url:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="patient_signature_url is required"
        )
    consent.patient_signature_url = payload.patient_signature_url
    consent.doctor_signature_url = payload.doctor_signature_url
    consent.status = ConsentStatus.firmado
    consent.signed_at = datetime.now(timezone.utc)
    consent.touch(user)
    db.add(consent)
    log_event(
        db,
        actor=user,
        action="consent.signed",
        entity_type="consent_form",
        entity_id=str(consent.id),
        patient_id=consent.patient_id,
        after_data={"status": consent.status.value},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(consent)
    return consent


@router.post("/{consent_id}/cancel", response_model=ConsentOut)
def cancel_consent(
    consent_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    consent = get_consent_or_404(db, consent_id)
    ensure_active(consent)
    consent.status = ConsentStatus.cancelado
    consent.touch(user)
    db.add(consent)
    log_event(
        db,
        actor=user,
        action="consent.cancelled",
        entity_type="consent_form",
        entity_id=str(consent.id),
        patient_id=consent.patient_id,
        after_data={"status": consent.status.value},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(consent)
    return consent
