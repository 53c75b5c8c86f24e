"""
In-Memory Storage Implementation

Backs the test suite and the offline demo mode (when no backend is
configured). Keeps models in dicts keyed by id; copies on the way in and
out so callers can't mutate stored state by accident.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from secure_retire.models.account import (
    CreditBalance,
    Notification,
    Subscription,
    UserSettings,
)
from secure_retire.models.audit import AuditEvent
from secure_retire.models.documents import StoredDocument
from secure_retire.models.financial import RecordBase, UserProfile
from secure_retire.services.storage.interface import (
    R,
    AccountStorageInterface,
    AuditStorageInterface,
    DocumentStorageInterface,
    DuplicateError,
    FinancialStorageInterface,
    NotFoundError,
    TranslationStorageInterface,
    table_for,
)


class InMemoryFinancialStorage(FinancialStorageInterface):
    """Profiles and records held in process memory."""

    def __init__(self):
        self._profiles: dict[UUID, UserProfile] = {}
        self._tables: dict[str, dict[UUID, RecordBase]] = {}

    def _table(self, record_type: type) -> dict[UUID, RecordBase]:
        return self._tables.setdefault(table_for(record_type), {})

    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def save_profile(self, profile: UserProfile) -> bool:
        if profile.id is None:
            raise ValueError("Profile must have an id before it can be saved")
        self._profiles[profile.id] = profile.model_copy(deep=True)
        return True

    async def save_record(self, record: RecordBase) -> bool:
        table = self._table(type(record))
        if record.id in table:
            raise DuplicateError(f"{table_for(type(record))} row already exists: {record.id}")
        table[record.id] = record.model_copy(deep=True)
        return True

    async def get_record(self, record_type: type[R], record_id: UUID) -> Optional[R]:
        record = self._table(record_type).get(record_id)
        return record.model_copy(deep=True) if record else None

    async def update_record(self, record: RecordBase) -> bool:
        table = self._table(type(record))
        if record.id not in table:
            raise NotFoundError(f"{table_for(type(record))} row not found: {record.id}")
        updated = record.model_copy(deep=True)
        updated.updated_at = datetime.utcnow()
        table[record.id] = updated
        return True

    async def delete_record(self, record_type: type[RecordBase], record_id: UUID) -> bool:
        return self._table(record_type).pop(record_id, None) is not None

    async def list_records(
        self,
        record_type: type[R],
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> list[R]:
        rows = [
            r.model_copy(deep=True)
            for r in self._table(record_type).values()
            if r.user_id == user_id
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[offset:offset + limit]

    async def delete_user_data(self, user_id: UUID) -> int:
        removed = 0
        for table in self._tables.values():
            doomed = [k for k, r in table.items() if r.user_id == user_id]
            for key in doomed:
                del table[key]
            removed += len(doomed)
        if self._profiles.pop(user_id, None) is not None:
            removed += 1
        return removed


class InMemoryAccountStorage(AccountStorageInterface):
    """Subscription, credits, settings and notifications in memory."""

    def __init__(self):
        self._subscriptions: dict[UUID, Subscription] = {}
        self._credits: dict[UUID, CreditBalance] = {}
        self._settings: dict[UUID, UserSettings] = {}
        self._notifications: dict[UUID, Notification] = {}

    async def get_subscription(self, user_id: UUID) -> Optional[Subscription]:
        sub = self._subscriptions.get(user_id)
        return sub.model_copy() if sub else None

    async def save_subscription(self, subscription: Subscription) -> bool:
        self._subscriptions[subscription.user_id] = subscription.model_copy()
        return True

    async def get_credits(self, user_id: UUID) -> Optional[CreditBalance]:
        credits = self._credits.get(user_id)
        return credits.model_copy() if credits else None

    async def save_credits(self, credits: CreditBalance) -> bool:
        self._credits[credits.user_id] = credits.model_copy()
        return True

    async def get_user_settings(self, user_id: UUID) -> Optional[UserSettings]:
        settings = self._settings.get(user_id)
        return settings.model_copy(deep=True) if settings else None

    async def save_user_settings(self, settings: UserSettings) -> bool:
        self._settings[settings.user_id] = settings.model_copy(deep=True)
        return True

    async def list_notifications(
        self,
        user_id: UUID,
        limit: int = 50,
    ) -> list[Notification]:
        rows = [
            n.model_copy()
            for n in self._notifications.values()
            if n.user_id == user_id
        ]
        rows.sort(key=lambda n: n.created_at, reverse=True)
        return rows[:limit]

    async def save_notification(self, notification: Notification) -> bool:
        self._notifications[notification.id] = notification.model_copy()
        return True

    async def mark_notification_read(self, notification_id: UUID) -> bool:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return False
        notification.read = True
        return True

    async def mark_all_notifications_read(self, user_id: UUID) -> int:
        count = 0
        for notification in self._notifications.values():
            if notification.user_id == user_id and not notification.read:
                notification.read = True
                count += 1
        return count

    async def clear_notifications(self, user_id: UUID) -> int:
        doomed = [k for k, n in self._notifications.items() if n.user_id == user_id]
        for key in doomed:
            del self._notifications[key]
        return len(doomed)

    async def delete_account_rows(self, user_id: UUID) -> int:
        removed = await self.clear_notifications(user_id)
        for rows in (self._subscriptions, self._credits, self._settings):
            if rows.pop(user_id, None) is not None:
                removed += 1
        return removed


class InMemoryDocumentStorage(DocumentStorageInterface):
    """Bucket objects and document rows in memory."""

    def __init__(self, base_url: str = "memory://documents"):
        self._base_url = base_url.rstrip("/")
        self.files: dict[str, bytes] = {}
        self._documents: dict[UUID, StoredDocument] = {}

    async def upload_file(self, path: str, data: bytes, content_type: str) -> str:
        if path in self.files:
            raise DuplicateError(f"Object already exists: {path}")
        self.files[path] = data
        return f"{self._base_url}/{path}"

    async def remove_file(self, path: str) -> bool:
        return self.files.pop(path, None) is not None

    async def save_document(self, document: StoredDocument) -> bool:
        self._documents[document.id] = document.model_copy(deep=True)
        return True

    async def get_document(self, document_id: UUID) -> Optional[StoredDocument]:
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def list_documents(self, user_id: UUID) -> list[StoredDocument]:
        rows = [
            d.model_copy(deep=True)
            for d in self._documents.values()
            if d.user_id == user_id
        ]
        rows.sort(key=lambda d: d.created_at, reverse=True)
        return rows

    async def delete_document(self, document_id: UUID) -> bool:
        return self._documents.pop(document_id, None) is not None


class InMemoryTranslationStorage(TranslationStorageInterface):

    def __init__(self):
        self._values: dict[tuple[str, str], str] = {}

    async def get_translation(self, key: str, language: str) -> Optional[str]:
        return self._values.get((key, language))

    async def save_translation(self, key: str, language: str, value: str) -> bool:
        self._values[(key, language)] = value
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        user_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if user_id is None or e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
