from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from clinica_dental.models.audit_log import AuditLog
from clinica_dental.models.user import User

logger = logging.getLogger("clinica_dental.audit")

# Bookkeeping columns that change on every write.
IGNORED_FIELDS = frozenset({"updated_at", "updated_by_user_id"})


def _json_value(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot_model(obj: Any | None) -> dict | None:
    """Column values of an ORM row, coerced to JSON-safe primitives."""
    if obj is None:
        return None
    state = inspect(obj)
    return {column.key: _json_value(getattr(obj, column.key)) for column in state.mapper.columns}


def changed_fields(before: dict | None, after: dict | None) -> list[str] | None:
    """Sorted keys whose values differ, or None unless both sides exist."""
    if before is None or after is None:
        return None
    keys = (set(before) | set(after)) - IGNORED_FIELDS
    return sorted(key for key in keys if before.get(key) != after.get(key))


def log_event(
    db: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str,
    entity_id: str,
    patient_id: int | None = None,
    before_obj: Any | None = None,
    after_obj: Any | None = None,
    before_data: dict | None = None,
    after_data: dict | None = None,
    request_id: str | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    before = before_data if before_data is not None else snapshot_model(before_obj)
    after = after_data if after_data is not None else snapshot_model(after_obj)
    entry = AuditLog(
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        patient_id=patient_id,
        changes=changed_fields(before, after),
        request_id=request_id,
        ip_address=ip_address,
        before_json=before,
        after_json=after,
    )
    db.add(entry)
    logger.debug("audit %s %s:%s by %s", action, entity_type, entity_id, entry.actor_email or "system")
    return entry
