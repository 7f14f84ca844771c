"""Quote lifecycle rules.

Quotes move from ``pending`` to exactly one of ``accepted``, ``rejected`` or
``expired`` and never move again. Expiry is not driven by a scheduler: it is
applied when a patient's quotes are listed (``expire_stale_quotes``), so a
quote past its ``expires_on`` date can still read as ``pending`` until the
next list call. Treat the status as eventually consistent.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from clinica_dental.models.quote import Quote, QuoteStatus

logger = logging.getLogger("clinica_dental.quotes")

ALLOWED_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.pending: frozenset({QuoteStatus.accepted, QuoteStatus.rejected, QuoteStatus.expired}),
    QuoteStatus.accepted: frozenset(),
    QuoteStatus.rejected: frozenset(),
    QuoteStatus.expired: frozenset(),
}


class InvalidQuoteTransition(ValueError):
    def __init__(self, current: QuoteStatus, target: QuoteStatus):
        super().__init__(f"Quote cannot move from {current.value} to {target.value}")
        self.current = current
        self.target = target


def compute_expiry(quote_date: date, validity_days: int) -> date:
    return quote_date + timedelta(days=validity_days)


def is_expired(quote: Quote, today: date | None = None) -> bool:
    today = today or date.today()
    return quote.status == QuoteStatus.pending and quote.expires_on < today


def apply_transition(quote: Quote, target: QuoteStatus, *, now: datetime | None = None) -> Quote:
    current = quote.status
    if target == current:
        return quote
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidQuoteTransition(current, target)
    now = now or datetime.now(timezone.utc)
    quote.status = target
    quote.status_changed_at = now
    if target == QuoteStatus.accepted:
        quote.accepted_at = now
    return quote


def expire_stale_quotes(db: Session, *, patient_id: int | None = None, today: date | None = None) -> int:
    today = today or date.today()
    stmt = (
        update(Quote)
        .where(Quote.status == QuoteStatus.pending, Quote.expires_on < today)
        .values(status=QuoteStatus.expired, status_changed_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session="fetch")
    )
    if patient_id is not None:
        stmt = stmt.where(Quote.patient_id == patient_id)
    result = db.execute(stmt)
    expired = result.rowcount or 0
    if expired:
        logger.info("Expired %s pending quote(s) past their validity date.", expired)
    return expired


def list_patient_quotes(db: Session, patient_id: int, *, today: date | None = None) -> list[Quote]:
    expire_stale_quotes(db, patient_id=patient_id, today=today)
    db.commit()
    stmt = (
        select(Quote)
        .where(Quote.patient_id == patient_id)
        .order_by(Quote.quote_date.desc(), Quote.id.desc())
    )
    return list(db.scalars(stmt))
