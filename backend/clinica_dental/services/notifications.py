"""In-app notification feed.

Routers depend on the ``NotificationStore`` interface; the application
creates one store at startup and keeps it on ``app.state``. Notifications are
not durable: the in-memory store forgets everything on restart.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import threading
from typing import Literal, Protocol
from uuid import uuid4

NotificationKind = Literal["info", "success", "warning", "error"]


@dataclass
class Notification:
    title: str
    message: str
    kind: NotificationKind = "info"
    user_id: int | None = None
    link: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False


class NotificationStore(Protocol):
    def add(self, notification: Notification) -> Notification: ...

    def list(self, *, unread_only: bool = False) -> list[Notification]: ...

    def mark_read(self, notification_id: str) -> bool: ...

    def mark_all_read(self) -> int: ...

    def remove(self, notification_id: str) -> bool: ...

    def clear(self) -> None: ...

    def close(self) -> None: ...


class InMemoryNotificationStore:
    def __init__(self, max_items: int = 100):
        if max_items <= 0:
            raise ValueError("max_items must be positive")
        self._max_items = max_items
        self._items: list[Notification] = []
        self._lock = threading.Lock()
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Notification store is closed")

    def add(self, notification: Notification) -> Notification:
        with self._lock:
            self._ensure_open()
            self._items.insert(0, notification)
            del self._items[self._max_items :]
        return notification

    def list(self, *, unread_only: bool = False) -> list[Notification]:
        with self._lock:
            self._ensure_open()
            return [item for item in self._items if not (unread_only and item.read)]

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._items if not item.read)

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            self._ensure_open()
            for item in self._items:
                if item.id == notification_id:
                    item.read = True
                    return True
        return False

    def mark_all_read(self) -> int:
        with self._lock:
            self._ensure_open()
            changed = 0
            for item in self._items:
                if not item.read:
                    item.read = True
                    changed += 1
        return changed

    def remove(self, notification_id: str) -> bool:
        with self._lock:
            self._ensure_open()
            before = len(self._items)
            self._items = [item for item in self._items if item.id != notification_id]
            return len(self._items) != before

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def close(self) -> None:
        with self._lock:
            self._items.clear()
            self._closed = True


def notify_patient_created(
    store: NotificationStore, *, patient_name: str, patient_id: int, user_id: int | None = None
) -> Notification:
    return store.add(
        Notification(
            kind="success",
            title="Nuevo paciente registrado",
            message=f"Se ha creado una nueva historia para {patient_name}",
            user_id=user_id,
            link=f"/patient-preview/{patient_id}",
        )
    )


def notify_patient_updated(
    store: NotificationStore, *, patient_name: str, patient_id: int, user_id: int | None = None
) -> Notification:
    return store.add(
        Notification(
            kind="info",
            title="Paciente actualizado",
            message=f"Se ha actualizado la historia de {patient_name}",
            user_id=user_id,
            link=f"/patient-preview/{patient_id}",
        )
    )


def notify_quote_status(
    store: NotificationStore, *, quote_id: int, patient_id: int, status: str, user_id: int | None = None
) -> Notification:
    return store.add(
        Notification(
            kind="warning" if status in {"rejected", "expired"} else "success",
            title="Presupuesto actualizado",
            message=f"El presupuesto #{quote_id} cambió a {status}",
            user_id=user_id,
            link=f"/patient-preview/{patient_id}",
        )
    )
