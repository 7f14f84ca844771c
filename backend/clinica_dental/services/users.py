from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from clinica_dental.models.user import Role, User


def get_user_by_external_id(db: Session, external_id: str) -> User | None:
    return db.scalar(select(User).where(User.external_id == external_id))


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower().strip()))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.scalar(select(User).where(User.id == user_id))


def create_user(
    db: Session,
    *,
    external_id: str,
    email: str,
    full_name: str = "",
    role: Role = Role.staff,
    is_active: bool = True,
) -> User:
    user = User(
        external_id=external_id.strip(),
        email=email.lower().strip(),
        full_name=full_name,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def user_count(db: Session) -> int:
    return int(db.scalar(select(func.count(User.id))) or 0)


def seed_initial_admin(db: Session, *, external_id: str, email: str) -> bool:
    if user_count(db) > 0:
        return False
    create_user(db, external_id=external_id, email=email, full_name="Admin", role=Role.admin)
    return True


def update_user(
    db: Session,
    *,
    user: User,
    full_name: str | None = None,
    role: Role | None = None,
    is_active: bool | None = None,
) -> User:
    if full_name is not None:
        user.full_name = full_name
    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = is_active
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
