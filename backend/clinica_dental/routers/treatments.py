from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.deps import get_current_user, require_roles
from clinica_dental.models.treatment import Treatment
from clinica_dental.models.user import User
from clinica_dental.schemas.treatment import (
    IncrementRequest,
    SpecialtyOut,
    TreatmentCreate,
    TreatmentOut,
    TreatmentUpdate,
)
from clinica_dental.services.treatment_codes import (
    SPECIALTY_PREFIXES,
    UnknownSpecialtyError,
    generate_treatment_code,
)

router = APIRouter(prefix="/treatments", tags=["treatments"])


def get_treatment_or_404(db: Session, treatment_id: int) -> Treatment:
    treatment = db.get(Treatment, treatment_id)
    if not treatment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treatment not found")
    return treatment


def increment_treatment_usage(db: Session, treatment_id: int, by: int = 1) -> None:
    if by < 1:
        raise ValueError("usage counters only move forward")
    db.execute(
        update(Treatment)
        .where(Treatment.id == treatment_id)
        .values(times_performed=Treatment.times_performed + by)
        .execution_options(synchronize_session="fetch")
    )


@router.get("", response_model=list[TreatmentOut])
def list_treatments(
    q: str | None = Query(default=None),
    specialty: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(Treatment)
    if not include_inactive:
        stmt = stmt.where(Treatment.is_active.is_(True))
    if specialty:
        stmt = stmt.where(Treatment.specialty == specialty)
    if q and q.strip():
        like = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                Treatment.name.ilike(like),
                Treatment.code.ilike(like),
                Treatment.specialty.ilike(like),
                Treatment.notes.ilike(like),
            )
        )
    return list(db.scalars(stmt.order_by(Treatment.specialty, Treatment.code)))


@router.get("/specialties", response_model=list[SpecialtyOut])
def list_specialties(_user: User = Depends(get_current_user)):
    return [SpecialtyOut(name=name, prefix=prefix) for name, prefix in SPECIALTY_PREFIXES.items()]


@router.post("", response_model=TreatmentOut, status_code=status.HTTP_201_CREATED)
def create_treatment(
    payload: TreatmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    try:
        code = generate_treatment_code(db, payload.specialty)
    except UnknownSpecialtyError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    treatment = Treatment(
        code=code,
        name=payload.name.strip(),
        specialty=payload.specialty.strip(),
        price_cents=payload.price_cents,
        currency=payload.currency or settings.home_currency,
        notes=payload.notes,
        is_active=payload.is_active,
        times_performed=0,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(treatment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Treatment code already exists") from exc
    db.refresh(treatment)
    return treatment


@router.get("/{treatment_id}", response_model=TreatmentOut)
def get_treatment(
    treatment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_treatment_or_404(db, treatment_id)


@router.patch("/{treatment_id}", response_model=TreatmentOut)
def update_treatment(
    treatment_id: int,
    payload: TreatmentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("doctor")),
):
    treatment = get_treatment_or_404(db, treatment_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(treatment, field, value)
    treatment.touch(user)
    db.add(treatment)
    db.commit()
    db.refresh(treatment)
    return treatment


@router.delete("/{treatment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_treatment(
    treatment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_roles("doctor")),
):
    treatment = get_treatment_or_404(db, treatment_id)
    db.delete(treatment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Treatment is referenced by completed treatments; deactivate it instead",
        ) from exc


@router.post("/{treatment_id}/increment", response_model=TreatmentOut)
def increment_treatment(
    treatment_id: int,
    payload: IncrementRequest | None = None,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    get_treatment_or_404(db, treatment_id)
    increment_treatment_usage(db, treatment_id, payload.by if payload else 1)
    db.commit()
    treatment = get_treatment_or_404(db, treatment_id)
    db.refresh(treatment)
    return treatment
