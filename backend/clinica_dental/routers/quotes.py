from datetime import date

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.deps import get_notification_store, require_roles
from clinica_dental.models.quote import Quote, QuoteItem, QuoteStatus
from clinica_dental.models.treatment import Promotion, Treatment
from clinica_dental.models.user import User
from clinica_dental.routers.patients import get_patient_or_404
from clinica_dental.schemas.quote import (
    QuoteCreate,
    QuoteItemCreate,
    QuoteItemOut,
    QuoteItemUpdate,
    QuoteOut,
    QuoteTotalsOut,
    QuoteUpdate,
)
from clinica_dental.services.audit import log_event
from clinica_dental.services.notifications import NotificationStore, notify_quote_status
from clinica_dental.services.odontogram_summary import format_odontogram_notes
from clinica_dental.services.odontograms import get_active_odontogram
from clinica_dental.services.quote_pdf import build_quote_pdf
from clinica_dental.services.quote_totals import calculate_quote_totals, recompute_item_total
from clinica_dental.services.quotes import (
    InvalidQuoteTransition,
    apply_transition,
    compute_expiry,
    is_expired,
    list_patient_quotes,
)

router = APIRouter(prefix="/quotes", tags=["quotes"])
patient_router = APIRouter(prefix="/patients/{patient_id}/quotes", tags=["quotes"])


def get_quote_or_404(db: Session, quote_id: int) -> Quote:
    quote = db.scalar(select(Quote).where(Quote.id == quote_id).options(selectinload(Quote.items)))
    if not quote:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote not found")
    if is_expired(quote):
        apply_transition(quote, QuoteStatus.expired)
        db.add(quote)
        db.commit()
        db.refresh(quote)
    return quote


def ensure_pending(quote: Quote) -> None:
    if quote.status != QuoteStatus.pending:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Only pending quotes can be edited"
        )


def load_catalog(db: Session) -> list:
    return [*db.scalars(select(Treatment)), *db.scalars(select(Promotion))]


def resolve_item(db: Session, payload: QuoteItemCreate) -> tuple[str, int]:
    description = (payload.description or "").strip()
    unit_price = payload.unit_price_cents
    if payload.treatment_id is not None:
        treatment = db.get(Treatment, payload.treatment_id)
        if not treatment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treatment not found")
        description = description or treatment.label
        unit_price = treatment.price_cents if unit_price is None else unit_price
    elif payload.promotion_id is not None:
        promotion = db.get(Promotion, payload.promotion_id)
        if not promotion:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion not found")
        description = description or promotion.label
        unit_price = promotion.promo_price_cents if unit_price is None else unit_price
    return description, unit_price or 0


def _next_sort_order(db: Session, quote_id: int) -> int:
    return (
        db.scalar(
            select(func.coalesce(func.max(QuoteItem.sort_order), 0)).where(QuoteItem.quote_id == quote_id)
        )
        or 0
    ) + 1


@patient_router.get("", response_model=list[QuoteOut])
def list_quotes(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    get_patient_or_404(db, patient_id)
    return list_patient_quotes(db, patient_id)


@patient_router.post("", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
def create_quote(
    patient_id: int,
    payload: QuoteCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    request_id: str | None = Header(default=None),
):
    get_patient_or_404(db, patient_id)
    items: list[QuoteItem] = []
    for item_payload in payload.items:
        description, unit_price = resolve_item(db, item_payload)
        if not description or unit_price <= 0:
            continue
        items.append(
            QuoteItem(
                description=description,
                quantity=item_payload.quantity,
                unit_price_cents=unit_price,
                total_price_cents=recompute_item_total(item_payload.quantity, unit_price),
                sort_order=len(items) + 1,
            )
        )
    if not items:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="At least one item with a description and a price is required",
        )

    notes = payload.notes
    if payload.include_odontogram:
        odontogram = get_active_odontogram(db, patient_id)
        summary = format_odontogram_notes(odontogram.data, odontogram.notes) if odontogram else ""
        if summary:
            notes = f"{notes.rstrip()}\n\n{summary}" if notes and notes.strip() else summary

    quote_date = payload.quote_date or date.today()
    quote = Quote(
        patient_id=patient_id,
        doctor_name=payload.doctor_name.strip(),
        treatment_description=payload.treatment_description,
        notes=notes,
        quote_date=quote_date,
        expires_on=compute_expiry(quote_date, settings.quote_validity_days),
        status=QuoteStatus.pending,
        items=items,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(quote)
    db.flush()
    log_event(
        db,
        actor=user,
        action="quote.created",
        entity_type="quote",
        entity_id=str(quote.id),
        patient_id=quote.patient_id,
        after_obj=quote,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(quote)
    return quote


@router.get("/{quote_id}", response_model=QuoteOut)
def get_quote(
    quote_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    return get_quote_or_404(db, quote_id)


@router.patch("/{quote_id}", response_model=QuoteOut)
def update_quote(
    quote_id: int,
    payload: QuoteUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
    notifications: NotificationStore = Depends(get_notification_store),
    request_id: str | None = Header(default=None),
):
    quote = get_quote_or_404(db, quote_id)
    changes = payload.model_dump(exclude_unset=True)
    target = changes.pop("status", None)
    if changes:
        ensure_pending(quote)
        for field, value in changes.items():
            setattr(quote, field, value)

    previous = quote.status
    if target is not None and target != previous:
        try:
            apply_transition(quote, target)
        except InvalidQuoteTransition as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        log_event(
            db,
            actor=user,
            action="quote.status_changed",
            entity_type="quote",
            entity_id=str(quote.id),
            patient_id=quote.patient_id,
            before_data={"status": previous.value},
            after_data={"status": quote.status.value},
            request_id=request_id,
            ip_address=request.client.host if request.client else None,
        )

    quote.touch(user)
    db.add(quote)
    db.commit()
    db.refresh(quote)
    if quote.status != previous:
        notify_quote_status(
            notifications,
            quote_id=quote.id,
            patient_id=quote.patient_id,
            status=quote.status.value,
            user_id=user.id,
        )
    return quote


@router.get("/{quote_id}/totals", response_model=QuoteTotalsOut)
def get_quote_totals(
    quote_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    quote = get_quote_or_404(db, quote_id)
    totals = calculate_quote_totals(quote.items, load_catalog(db), settings.home_currency)
    return QuoteTotalsOut(
        quote_id=quote.id,
        home_currency=totals.home_currency,
        by_currency=totals.by_currency,
        has_foreign_currency=totals.has_foreign_currency,
        assumed_item_ids=totals.assumed_item_ids,
        display=totals.display(),
    )


@router.get("/{quote_id}/pdf")
def get_quote_pdf(
    quote_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    quote = get_quote_or_404(db, quote_id)
    pdf_bytes = build_quote_pdf(quote, load_catalog(db))
    filename = f"presupuesto-{quote.id:06d}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{quote_id}/items", response_model=QuoteItemOut, status_code=status.HTTP_201_CREATED)
def add_quote_item(
    quote_id: int,
    payload: QuoteItemCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    quote = get_quote_or_404(db, quote_id)
    ensure_pending(quote)
    description, unit_price = resolve_item(db, payload)
    if not description:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="description is required"
        )
    item = QuoteItem(
        quote_id=quote.id,
        description=description,
        quantity=payload.quantity,
        unit_price_cents=unit_price,
        total_price_cents=recompute_item_total(payload.quantity, unit_price),
        sort_order=payload.sort_order or _next_sort_order(db, quote.id),
    )
    quote.touch(user)
    db.add(item)
    db.add(quote)
    db.commit()
    db.refresh(item)
    return item


@router.patch("/{quote_id}/items/{item_id}", response_model=QuoteItemOut)
def update_quote_item(
    quote_id: int,
    item_id: int,
    payload: QuoteItemUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    quote = get_quote_or_404(db, quote_id)
    ensure_pending(quote)
    item = db.get(QuoteItem, item_id)
    if not item or item.quote_id != quote.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote item not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    item.total_price_cents = recompute_item_total(item.quantity, item.unit_price_cents)
    quote.touch(user)
    db.add(item)
    db.add(quote)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{quote_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quote_item(
    quote_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    quote = get_quote_or_404(db, quote_id)
    ensure_pending(quote)
    item = db.get(QuoteItem, item_id)
    if not item or item.quote_id != quote.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote item not found")
    if len(quote.items) <= 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="A quote needs at least one item"
        )
    quote.touch(user)
    db.delete(item)
    db.add(quote)
    db.commit()
