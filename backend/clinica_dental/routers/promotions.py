from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.deps import get_current_user, require_roles
from clinica_dental.models.treatment import Promotion
from clinica_dental.models.user import User
from clinica_dental.schemas.treatment import (
    IncrementRequest,
    PromotionCreate,
    PromotionOut,
    PromotionUpdate,
)
from clinica_dental.services.treatment_codes import generate_promotion_code

router = APIRouter(prefix="/promotions", tags=["promotions"])


def get_promotion_or_404(db: Session, promotion_id: int) -> Promotion:
    promotion = db.get(Promotion, promotion_id)
    if not promotion:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion not found")
    return promotion


def validate_promotion(
    original_price_cents: int, promo_price_cents: int, starts_on: date | None, ends_on: date | None
) -> None:
    if promo_price_cents > original_price_cents:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="promo_price_cents cannot exceed original_price_cents",
        )
    if starts_on and ends_on and ends_on < starts_on:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="ends_on cannot be before starts_on",
        )


def increment_promotion_usage(db: Session, promotion_id: int, by: int = 1) -> None:
    if by < 1:
        raise ValueError("usage counters only move forward")
    db.execute(
        update(Promotion)
        .where(Promotion.id == promotion_id)
        .values(times_used=Promotion.times_used + by)
        .execution_options(synchronize_session="fetch")
    )


@router.get("", response_model=list[PromotionOut])
def list_promotions(
    q: str | None = Query(default=None),
    current_only: bool = Query(default=False),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(Promotion)
    if not include_inactive:
        stmt = stmt.where(Promotion.is_active.is_(True))
    if q and q.strip():
        like = f"%{q.strip()}%"
        stmt = stmt.where(or_(Promotion.name.ilike(like), Promotion.code.ilike(like)))
    promotions = list(db.scalars(stmt.order_by(Promotion.code)))
    if current_only:
        today = date.today()
        promotions = [promotion for promotion in promotions if promotion.is_valid_on(today)]
    return promotions


@router.post("", response_model=PromotionOut, status_code=status.HTTP_201_CREATED)
def create_promotion(
    payload: PromotionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    validate_promotion(
        payload.original_price_cents, payload.promo_price_cents, payload.starts_on, payload.ends_on
    )
    promotion = Promotion(
        code=(payload.code or "").strip().upper() or generate_promotion_code(db),
        name=payload.name.strip(),
        original_price_cents=payload.original_price_cents,
        promo_price_cents=payload.promo_price_cents,
        currency=payload.currency or settings.home_currency,
        starts_on=payload.starts_on,
        ends_on=payload.ends_on,
        is_active=payload.is_active,
        times_used=0,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(promotion)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Promotion code already exists") from exc
    db.refresh(promotion)
    return promotion


@router.get("/{promotion_id}", response_model=PromotionOut)
def get_promotion(
    promotion_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_promotion_or_404(db, promotion_id)


@router.patch("/{promotion_id}", response_model=PromotionOut)
def update_promotion(
    promotion_id: int,
    payload: PromotionUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    promotion = get_promotion_or_404(db, promotion_id)
    changes = payload.model_dump(exclude_unset=True)
    validate_promotion(
        changes.get("original_price_cents", promotion.original_price_cents),
        changes.get("promo_price_cents", promotion.promo_price_cents),
        changes.get("starts_on", promotion.starts_on),
        changes.get("ends_on", promotion.ends_on),
    )
    for field, value in changes.items():
        setattr(promotion, field, value)
    promotion.touch(user)
    db.add(promotion)
    db.commit()
    db.refresh(promotion)
    return promotion


@router.delete("/{promotion_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_promotion(
    promotion_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    promotion = get_promotion_or_404(db, promotion_id)
    db.delete(promotion)
    db.commit()


@router.post("/{promotion_id}/increment", response_model=PromotionOut)
def increment_promotion(
    promotion_id: int,
    payload: IncrementRequest | None = None,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    get_promotion_or_404(db, promotion_id)
    increment_promotion_usage(db, promotion_id, payload.by if payload else 1)
    db.commit()
    promotion = get_promotion_or_404(db, promotion_id)
    db.refresh(promotion)
    return promotion
