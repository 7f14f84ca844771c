from datetime import date

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.deps import get_current_user, require_roles
from clinica_dental.models.completed_treatment import (
    CompletedTreatment,
    CompletedTreatmentItem,
    CompletedTreatmentStatus,
)
from clinica_dental.models.patient import Patient
from clinica_dental.models.treatment import Promotion, Treatment
from clinica_dental.models.user import Role, User
from clinica_dental.routers.patients import get_patient_or_404
from clinica_dental.routers.promotions import increment_promotion_usage
from clinica_dental.routers.treatments import increment_treatment_usage
from clinica_dental.schemas.completed_treatment import (
    CompletedTreatmentCreate,
    CompletedTreatmentItemCreate,
    CompletedTreatmentItemOut,
    CompletedTreatmentItemUpdate,
    CompletedTreatmentOut,
    CompletedTreatmentStatisticsOut,
    CompletedTreatmentUpdate,
    check_discount,
)
from clinica_dental.services.audit import log_event, snapshot_model
from clinica_dental.services.billing import (
    calculate_billing_totals,
    completed_treatment_statistics,
    summarize_payments,
)
from clinica_dental.services.patients import (
    calculate_age,
    classify_patient_type,
    classify_record_category,
)

router = APIRouter(prefix="/completed-treatments", tags=["completed-treatments"])

PRICING_FIELDS = frozenset({"discount_type", "discount_value", "appointment_date"})
STAFF_EDITABLE_FIELDS = frozenset({"signature_url", "status"})


def get_completed_treatment_or_404(db: Session, completed_treatment_id: int) -> CompletedTreatment:
    record = db.get(CompletedTreatment, completed_treatment_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Completed treatment not found")
    return record


def is_historical_patient(patient: Patient) -> bool:
    category = classify_record_category(
        patient.intake_date,
        None,
        launch_date=settings.app_launch_date,
        historical_enabled=settings.historical_records_enabled,
        archive_after_years=settings.archive_after_years,
    )
    return category == "historical"


def recalculate_totals(db: Session, record: CompletedTreatment) -> None:
    patient = record.patient or db.get(Patient, record.patient_id)
    age = calculate_age(patient.birth_date, today=record.appointment_date)
    totals = calculate_billing_totals(
        record.items,
        patient_type=classify_patient_type(age),
        currency=record.currency,
        discount_type=record.discount_type,
        discount_value=record.discount_value,
        historical=is_historical_patient(patient),
        bypass_historical=record.bypass_historical,
    )
    for item, charge in zip(record.items, totals.items):
        item.final_price_cents = charge.final_cents
        item.discount_reason = charge.reason
    record.subtotal_cents = totals.subtotal_cents
    record.discount_cents = totals.discount_cents
    record.total_cents = totals.total_cents
    record.discount_reason = totals.discount_reason or None


def update_status_from_payments(record: CompletedTreatment) -> None:
    summary = summarize_payments(record.total_cents, [payment.amount_cents for payment in record.payments])
    if summary.balance_cents == 0 and record.payments:
        record.status = CompletedTreatmentStatus.pagado
    elif record.status == CompletedTreatmentStatus.pagado:
        record.status = (
            CompletedTreatmentStatus.firmado
            if record.signature_url
            else CompletedTreatmentStatus.pendiente_firma
        )


def reprice(db: Session, record: CompletedTreatment) -> None:
    recalculate_totals(db, record)
    if record.paid_cents > record.total_cents:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The new total is below the amount already paid; delete payments first",
        )
    update_status_from_payments(record)


def build_item(db: Session, payload: CompletedTreatmentItemCreate) -> CompletedTreatmentItem:
    name = payload.treatment_name
    code = payload.treatment_code
    unit_price = payload.unit_price_cents
    currency = payload.currency
    notes = payload.notes
    if payload.treatment_id is not None:
        treatment = db.get(Treatment, payload.treatment_id)
        if not treatment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treatment not found")
        name = name or treatment.name
        code = code or treatment.code
        unit_price = treatment.price_cents if unit_price is None else unit_price
        currency = currency or treatment.currency
    elif payload.promotion_id is not None:
        promotion = db.get(Promotion, payload.promotion_id)
        if not promotion:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion not found")
        if not promotion.is_valid_on(date.today()):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Promotion is not active")
        name = name or promotion.name
        code = code or promotion.code
        unit_price = promotion.promo_price_cents if unit_price is None else unit_price
        currency = currency or promotion.currency
        notes = notes or f"Promoción: {promotion.discount_percent}% OFF"
    if not name or unit_price is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="treatment_name and unit_price_cents are required for items outside the catalog",
        )
    return CompletedTreatmentItem(
        treatment_id=payload.treatment_id,
        promotion_id=payload.promotion_id,
        treatment_name=name,
        treatment_code=code,
        quantity=payload.quantity,
        unit_price_cents=unit_price,
        final_price_cents=unit_price * payload.quantity,
        currency=currency or settings.home_currency,
        disable_elderly_discount=payload.disable_elderly_discount,
        notes=notes,
        doctor_name=payload.doctor_name,
    )


def ensure_single_currency(items: list[CompletedTreatmentItem], currency: str | None = None) -> str:
    currencies = {item.currency for item in items}
    if currency:
        currencies.add(currency)
    if len(currencies) > 1:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="All items of a completed treatment must share one currency",
        )
    return currencies.pop() if currencies else settings.home_currency


def bump_usage_counters(db: Session, items: list[CompletedTreatmentItem]) -> None:
    for item in items:
        if item.treatment_id is not None:
            increment_treatment_usage(db, item.treatment_id, item.quantity)
        if item.promotion_id is not None:
            increment_promotion_usage(db, item.promotion_id, item.quantity)


def _filtered_query(
    patient_id: int | None,
    start_date: date | None,
    end_date: date | None,
    status_filter: CompletedTreatmentStatus | None,
):
    stmt = select(CompletedTreatment)
    if patient_id is not None:
        stmt = stmt.where(CompletedTreatment.patient_id == patient_id)
    if start_date is not None:
        stmt = stmt.where(CompletedTreatment.appointment_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(CompletedTreatment.appointment_date <= end_date)
    if status_filter is not None:
        stmt = stmt.where(CompletedTreatment.status == status_filter)
    return stmt


@router.get("", response_model=list[CompletedTreatmentOut])
def list_completed_treatments(
    patient_id: int | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    status_filter: CompletedTreatmentStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = (
        _filtered_query(patient_id, start_date, end_date, status_filter)
        .order_by(CompletedTreatment.appointment_date.desc(), CompletedTreatment.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.scalars(stmt).unique())


@router.get("/statistics", response_model=CompletedTreatmentStatisticsOut)
def get_statistics(
    patient_id: int | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    records = list(db.scalars(_filtered_query(patient_id, start_date, end_date, None)).unique())
    return completed_treatment_statistics(records)


@router.post("", response_model=CompletedTreatmentOut, status_code=status.HTTP_201_CREATED)
def create_completed_treatment(
    payload: CompletedTreatmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, payload.patient_id)
    items = [build_item(db, item_payload) for item_payload in payload.items]
    currency = ensure_single_currency(items)

    record = CompletedTreatment(
        patient_id=patient.id,
        appointment_date=payload.appointment_date or date.today(),
        specialty=payload.specialty,
        currency=currency,
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
        bypass_historical=payload.bypass_historical,
        doctor_notes=payload.doctor_notes,
        signature_url=payload.signature_url,
        status=(
            CompletedTreatmentStatus.firmado
            if payload.signature_url
            else CompletedTreatmentStatus.pendiente_firma
        ),
        items=items,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    record.patient = patient
    recalculate_totals(db, record)
    db.add(record)
    db.flush()
    bump_usage_counters(db, items)
    log_event(
        db,
        actor=user,
        action="completed_treatment.created",
        entity_type="completed_treatment",
        entity_id=str(record.id),
        patient_id=record.patient_id,
        after_obj=record,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(record)
    return record


@router.get("/{completed_treatment_id}", response_model=CompletedTreatmentOut)
def get_completed_treatment(
    completed_treatment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_completed_treatment_or_404(db, completed_treatment_id)


@router.patch("/{completed_treatment_id}", response_model=CompletedTreatmentOut)
def update_completed_treatment(
    completed_treatment_id: int,
    payload: CompletedTreatmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    changes = payload.model_dump(exclude_unset=True)
    if user.role == Role.staff and changes.keys() - STAFF_EDITABLE_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Staff may only update the signature and status"
        )
    before_data = snapshot_model(record)
    target = changes.pop("status", None)
    for field, value in changes.items():
        setattr(record, field, value)
    try:
        check_discount(record.discount_type, record.discount_value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if PRICING_FIELDS & changes.keys():
        reprice(db, record)

    if target is None and "signature_url" in changes and record.signature_url:
        if record.status == CompletedTreatmentStatus.pendiente_firma:
            target = CompletedTreatmentStatus.firmado
    if target is not None:
        if target == CompletedTreatmentStatus.firmado and not record.signature_url:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="A patient signature is required"
            )
        if target == CompletedTreatmentStatus.pagado and record.balance_cents > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Outstanding balance must be paid first"
            )
        record.status = target

    record.touch(user)
    db.add(record)
    db.flush()
    log_event(
        db,
        actor=user,
        action="completed_treatment.updated",
        entity_type="completed_treatment",
        entity_id=str(record.id),
        patient_id=record.patient_id,
        before_data=before_data,
        after_obj=record,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(record)
    return record


@router.delete("/{completed_treatment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_completed_treatment(
    completed_treatment_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    if record.payments:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Completed treatments with payments cannot be deleted"
        )
    log_event(
        db,
        actor=user,
        action="completed_treatment.deleted",
        entity_type="completed_treatment",
        entity_id=str(record.id),
        patient_id=record.patient_id,
        before_obj=record,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.delete(record)
    db.commit()


@router.post(
    "/{completed_treatment_id}/items",
    response_model=CompletedTreatmentItemOut,
    status_code=status.HTTP_201_CREATED,
)
def add_completed_treatment_item(
    completed_treatment_id: int,
    payload: CompletedTreatmentItemCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    item = build_item(db, payload)
    ensure_single_currency([item], record.currency)
    record.items.append(item)
    reprice(db, record)
    record.touch(user)
    db.add(record)
    db.flush()
    bump_usage_counters(db, [item])
    db.commit()
    db.refresh(item)
    return item


@router.patch("/{completed_treatment_id}/items/{item_id}", response_model=CompletedTreatmentItemOut)
def update_completed_treatment_item(
    completed_treatment_id: int,
    item_id: int,
    payload: CompletedTreatmentItemUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    item = next((entry for entry in record.items if entry.id == item_id), None)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    reprice(db, record)
    record.touch(user)
    db.add(record)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{completed_treatment_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_completed_treatment_item(
    completed_treatment_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    item = next((entry for entry in record.items if entry.id == item_id), None)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    if len(record.items) <= 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="A completed treatment needs at least one item"
        )
    record.items.remove(item)
    reprice(db, record)
    record.touch(user)
    db.add(record)
    db.commit()
