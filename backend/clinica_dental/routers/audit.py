from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica_dental.db.session import get_db
from clinica_dental.deps import require_admin
from clinica_dental.models.audit_log import AuditLog
from clinica_dental.models.user import User
from clinica_dental.schemas.audit_log import AuditLogOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditLogOut])
def list_audit(
    db: Session = Depends(get_db),
    _user: User = Depends(require_admin),
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    patient_id: int | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    if patient_id is not None:
        stmt = stmt.where(AuditLog.patient_id == patient_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.limit(limit).offset(offset)
    return list(db.scalars(stmt))
