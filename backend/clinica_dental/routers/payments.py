from datetime import date

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from clinica_dental.db.session import get_db
from clinica_dental.deps import get_current_user, require_admin, require_roles
from clinica_dental.models.completed_treatment import Payment
from clinica_dental.models.user import User
from clinica_dental.routers.completed_treatments import (
    get_completed_treatment_or_404,
    update_status_from_payments,
)
from clinica_dental.schemas.completed_treatment import PaymentCreate, PaymentOut, PaymentSummaryOut
from clinica_dental.services.audit import log_event
from clinica_dental.services.billing import convert_payment, summarize_payments

router = APIRouter(prefix="/completed-treatments/{completed_treatment_id}/payments", tags=["payments"])


@router.get("", response_model=list[PaymentOut])
def list_payments(
    completed_treatment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_completed_treatment_or_404(db, completed_treatment_id).payments


@router.get("/summary", response_model=PaymentSummaryOut)
def get_payment_summary(
    completed_treatment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    summary = summarize_payments(record.total_cents, [payment.amount_cents for payment in record.payments])
    return PaymentSummaryOut(
        completed_treatment_id=record.id,
        currency=record.currency,
        total_cents=summary.total_cents,
        paid_cents=summary.paid_cents,
        balance_cents=summary.balance_cents,
        status=summary.status,
    )


@router.post("", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def add_payment(
    completed_treatment_id: int,
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("staff")),
    request_id: str | None = Header(default=None),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    try:
        amount_cents, conversion_note = convert_payment(
            payload.amount_cents,
            payload.currency or record.currency,
            record.currency,
            payload.exchange_rate,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if amount_cents > record.balance_cents:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Payment exceeds the outstanding balance"
        )

    notes = "\n".join(part for part in (payload.notes, conversion_note) if part) or None
    payment = Payment(
        amount_cents=amount_cents,
        currency=record.currency,
        method=payload.method,
        paid_on=payload.paid_on or date.today(),
        notes=notes,
        received_by_user_id=user.id,
    )
    record.payments.append(payment)
    update_status_from_payments(record)
    record.touch(user)
    db.add(record)
    db.flush()
    log_event(
        db,
        actor=user,
        action="payment.recorded",
        entity_type="payment",
        entity_id=str(payment.id),
        patient_id=record.patient_id,
        after_obj=payment,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(payment)
    return payment


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(
    completed_treatment_id: int,
    payment_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    request_id: str | None = Header(default=None),
):
    record = get_completed_treatment_or_404(db, completed_treatment_id)
    payment = next((entry for entry in record.payments if entry.id == payment_id), None)
    if payment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    log_event(
        db,
        actor=user,
        action="payment.deleted",
        entity_type="payment",
        entity_id=str(payment.id),
        patient_id=record.patient_id,
        before_obj=payment,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    record.payments.remove(payment)
    update_status_from_payments(record)
    record.touch(user)
    db.add(record)
    db.commit()
