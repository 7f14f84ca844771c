from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from clinica_dental.db.session import get_db
from clinica_dental.deps import get_current_user, require_permission
from clinica_dental.models.doctor import Doctor
from clinica_dental.models.user import User
from clinica_dental.schemas.doctor import DoctorCreate, DoctorOut, DoctorUpdate
from clinica_dental.services.audit import log_event, snapshot_model
from clinica_dental.services.doctors import DOCTOR_SPECIALTIES, get_doctor_by_user_id, list_doctors
from clinica_dental.services.users import get_user_by_id

router = APIRouter(prefix="/doctors", tags=["doctors"])

can_manage_doctors = require_permission("can_manage_doctors")


def get_doctor_or_404(db: Session, doctor_id: int) -> Doctor:
    doctor = db.get(Doctor, doctor_id)
    if not doctor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return doctor


def check_linked_user(db: Session, user_id: int | None, doctor: Doctor | None = None) -> None:
    if user_id is None:
        return
    if not get_user_by_id(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    linked = get_doctor_by_user_id(db, user_id)
    if linked and linked is not doctor:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already linked to a doctor")


@router.get("", response_model=list[DoctorOut])
def get_doctors(
    specialty: str | None = Query(default=None),
    user_id: int | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return list_doctors(db, specialty=specialty, user_id=user_id, include_inactive=include_inactive)


@router.get("/specialties", response_model=list[str])
def list_doctor_specialties(_user: User = Depends(get_current_user)):
    return list(DOCTOR_SPECIALTIES)


@router.get("/me", response_model=DoctorOut)
def get_my_doctor_profile(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    doctor = get_doctor_by_user_id(db, user.id)
    if not doctor or not doctor.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return doctor


@router.post("", response_model=DoctorOut, status_code=status.HTTP_201_CREATED)
def create_doctor(
    payload: DoctorCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(can_manage_doctors),
    request_id: str | None = Header(default=None),
):
    check_linked_user(db, payload.user_id)
    data = payload.model_dump()
    data["name"] = data["name"].strip()
    doctor = Doctor(**data, is_active=True, created_by_user_id=user.id, updated_by_user_id=user.id)
    db.add(doctor)
    db.flush()
    log_event(
        db,
        actor=user,
        action="doctor.created",
        entity_type="doctor",
        entity_id=str(doctor.id),
        after_obj=doctor,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(doctor)
    return doctor


@router.get("/{doctor_id}", response_model=DoctorOut)
def get_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_doctor_or_404(db, doctor_id)


@router.patch("/{doctor_id}", response_model=DoctorOut)
def update_doctor(
    doctor_id: int,
    payload: DoctorUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(can_manage_doctors),
    request_id: str | None = Header(default=None),
):
    doctor = get_doctor_or_404(db, doctor_id)
    changes = payload.model_dump(exclude_unset=True)
    if "user_id" in changes:
        check_linked_user(db, changes["user_id"], doctor)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    before_data = snapshot_model(doctor)
    for field, value in changes.items():
        setattr(doctor, field, value)
    doctor.touch(user)
    db.add(doctor)
    db.flush()
    log_event(
        db,
        actor=user,
        action="doctor.updated",
        entity_type="doctor",
        entity_id=str(doctor.id),
        before_data=before_data,
        after_obj=doctor,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(doctor)
    return doctor


@router.delete("/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_doctor(
    doctor_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(can_manage_doctors),
    request_id: str | None = Header(default=None),
):
    # Soft delete: quotes and completed treatments refer to doctors by name.
    doctor = get_doctor_or_404(db, doctor_id)
    if not doctor.is_active:
        return
    doctor.is_active = False
    doctor.touch(user)
    db.add(doctor)
    db.flush()
    log_event(
        db,
        actor=user,
        action="doctor.deactivated",
        entity_type="doctor",
        entity_id=str(doctor.id),
        before_data={"is_active": True},
        after_data={"is_active": False},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
