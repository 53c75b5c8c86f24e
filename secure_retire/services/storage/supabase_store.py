"""
Supabase Storage Implementation

DESIGN DECISION: The hosted Postgres behind Supabase is the only backend
because:
1. Row-level security keeps each user's rows private without a server of ours
2. Auth, file storage and edge functions come from the same project
3. The web client and this package see exactly the same tables

TRADEOFFS:
- Every call is a network round trip (we keep pages small)
- No multi-table transactions from the client (we order writes carefully)
- The client library is synchronous; the async methods just wrap it

The implementation follows the abstract interface, so tests and the
offline demo can swap in the in-memory backend without touching
business logic.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog
from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from secure_retire.config import get_settings
from secure_retire.models.account import (
    CreditBalance,
    Notification,
    Subscription,
    UserSettings,
)
from secure_retire.models.audit import AuditEvent
from secure_retire.models.documents import StoredDocument
from secure_retire.models.financial import Address, Consultation, RecordBase, UserProfile
from secure_retire.services.storage.interface import (
    R,
    RECORD_TABLES,
    AccountStorageInterface,
    AuditStorageInterface,
    ConnectionError,
    DocumentStorageInterface,
    DuplicateError,
    FinancialStorageInterface,
    NotFoundError,
    StorageError,
    TranslationStorageInterface,
    table_for,
)


logger = structlog.get_logger(__name__)


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the client lazily and provides retry logic for connecting.
    Auth, edge functions and storage all hang off the same instance,
    so every service shares one wrapper.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client: Optional[Client] = client
        self._settings = get_settings().supabase

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Client:
        """Create the client from SUPABASE_URL and SUPABASE_ANON_KEY."""
        if self._client is None:
            try:
                self._client = create_client(
                    self._settings.url,
                    self._settings.anon_key,
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}")
        return self._client

    def table(self, name: str):
        return self.connect().table(name)

    def delete_where(self, table: str, column: str, value: Any) -> int:
        """Delete matching rows; returns how many the backend reported."""
        rows = self.table(table).delete().eq(column, str(value)).execute().data
        return len(rows or [])

    def bucket(self, name: Optional[str] = None):
        return self.connect().storage.from_(name or self._settings.documents_bucket)

    @property
    def functions(self):
        return self.connect().functions

    @property
    def auth(self):
        return self.connect().auth


def _is_duplicate(error: Exception) -> bool:
    # Postgres unique_violation
    return "23505" in str(error) or "duplicate key" in str(error).lower()


def _present(row: dict) -> dict:
    # NULL columns fall back to the model defaults
    return {k: v for k, v in row.items() if v is not None}


def _record_to_row(record: RecordBase, exclude: Optional[set] = None) -> dict:
    row = record.model_dump(mode="json", exclude=exclude)
    if isinstance(record, Consultation):
        row["date"] = row.pop("scheduled_at")
    return row


def _row_to_record(record_type: type[R], row: dict) -> R:
    data = _present(row)
    if record_type is Consultation and "date" in data:
        data["scheduled_at"] = data.pop("date")
    return record_type.model_validate(data)


def _document_to_row(document: StoredDocument) -> dict:
    """The documents table keeps the display name and object key in metadata."""
    row = document.model_dump(mode="json", exclude={"name", "storage_path"})
    row["metadata"] = {
        **document.metadata,
        "original_name": document.name,
        "storage_path": document.storage_path,
    }
    return row


def _row_to_document(row: dict) -> StoredDocument:
    """
    Rows uploaded by the web client carry only original_name in metadata;
    their object key is the last two segments of the public URL.
    """
    metadata = row.get("metadata") or {}
    file_url = row.get("file_url") or ""
    data = _present(row)
    data.update(
        name=metadata.get("original_name") or "Untitled Document",
        storage_path=metadata.get("storage_path") or "/".join(file_url.split("/")[-2:]),
        file_url=file_url,
        mime_type=row.get("mime_type") or "application/octet-stream",
        metadata=metadata,
    )
    return StoredDocument.model_validate(data)


class SupabaseFinancialStorage(FinancialStorageInterface):
    """
    Supabase implementation of profile and financial record storage.

    Records are stored one per row through _record_to_row; the profile's
    address is a JSON column and national_id lives in `ssn`.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _profile_to_row(self, profile: UserProfile) -> dict:
        return {
            "id": str(profile.id),
            "email": profile.email,
            "full_name": profile.full_name,
            "date_of_birth": profile.date_of_birth.isoformat() if profile.date_of_birth else None,
            "ssn": profile.national_id or None,
            "phone": profile.phone or None,
            "address": profile.address.model_dump(),
            "country": profile.country,
            "currency": profile.currency,
        }

    def _row_to_profile(self, row: dict) -> UserProfile:
        return UserProfile(
            id=UUID(row["id"]),
            email=row.get("email") or "",
            full_name=row.get("full_name") or "",
            date_of_birth=row.get("date_of_birth"),
            national_id=row.get("ssn") or "",
            phone=row.get("phone") or "",
            address=Address(**(row.get("address") or {})),
            country=row.get("country") or get_settings().app.default_country,
            currency=row.get("currency") or get_settings().app.default_currency,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        try:
            rows = (
                self._client.table("users")
                .select("*")
                .eq("id", str(user_id))
                .limit(1)
                .execute()
                .data
            )
            return self._row_to_profile(rows[0]) if rows else None
        except Exception as e:
            raise StorageError(f"Failed to get profile: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_profile(self, profile: UserProfile) -> bool:
        if profile.id is None:
            raise StorageError("Profile must have an id before it can be saved")
        try:
            self._client.table("users").upsert(self._profile_to_row(profile)).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save profile: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_record(self, record: RecordBase) -> bool:
        table = table_for(type(record))
        try:
            self._client.table(table).insert(_record_to_row(record)).execute()
            return True
        except Exception as e:
            if _is_duplicate(e):
                raise DuplicateError(f"{table} row already exists: {record.id}")
            raise StorageError(f"Failed to save {table} row: {e}")

    async def get_record(self, record_type: type[R], record_id: UUID) -> Optional[R]:
        table = table_for(record_type)
        try:
            rows = (
                self._client.table(table)
                .select("*")
                .eq("id", str(record_id))
                .limit(1)
                .execute()
                .data
            )
            return _row_to_record(record_type, rows[0]) if rows else None
        except Exception as e:
            raise StorageError(f"Failed to get {table} row: {e}")

    async def update_record(self, record: RecordBase) -> bool:
        table = table_for(type(record))
        try:
            record.updated_at = datetime.utcnow()
            row = _record_to_row(record, exclude={"id", "created_at"})
            rows = (
                self._client.table(table)
                .update(row)
                .eq("id", str(record.id))
                .execute()
                .data
            )
            if not rows:
                raise NotFoundError(f"{table} row not found: {record.id}")
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table} row: {e}")

    async def delete_record(self, record_type: type[RecordBase], record_id: UUID) -> bool:
        table = table_for(record_type)
        try:
            rows = (
                self._client.table(table)
                .delete()
                .eq("id", str(record_id))
                .execute()
                .data
            )
            return bool(rows)
        except Exception as e:
            raise StorageError(f"Failed to delete {table} row: {e}")

    async def list_records(
        self,
        record_type: type[R],
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> list[R]:
        table = table_for(record_type)
        try:
            rows = (
                self._client.table(table)
                .select("*")
                .eq("user_id", str(user_id))
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
                .data
            )
        except Exception as e:
            raise StorageError(f"Failed to list {table}: {e}")

        records = []
        for row in rows:
            try:
                records.append(_row_to_record(record_type, row))
            except ValueError as e:
                logger.warning("skipping_malformed_row", table=table, row_id=row.get("id"), error=str(e))
        return records

    async def delete_user_data(self, user_id: UUID) -> int:
        removed = 0
        try:
            for table in RECORD_TABLES.values():
                removed += self._client.delete_where(table, "user_id", user_id)
            removed += self._client.delete_where("users", "id", user_id)
        except Exception as e:
            raise StorageError(f"Failed to delete user data: {e}")
        logger.info("user_data_deleted", user_id=str(user_id), rows=removed)
        return removed


class SupabaseAccountStorage(AccountStorageInterface):
    """Subscriptions, credits, settings and notifications tables."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _first(self, table: str, column: str, value: Any) -> Optional[dict]:
        rows = (
            self._client.table(table)
            .select("*")
            .eq(column, str(value))
            .limit(1)
            .execute()
            .data
        )
        return rows[0] if rows else None

    async def get_subscription(self, user_id: UUID) -> Optional[Subscription]:
        try:
            row = self._first("subscriptions", "user_id", user_id)
            return Subscription.model_validate(row) if row else None
        except Exception as e:
            raise StorageError(f"Failed to get subscription: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_subscription(self, subscription: Subscription) -> bool:
        try:
            self._client.table("subscriptions").upsert(
                subscription.model_dump(mode="json"),
                on_conflict="user_id",
            ).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save subscription: {e}")

    async def get_credits(self, user_id: UUID) -> Optional[CreditBalance]:
        try:
            row = self._first("credits", "user_id", user_id)
            return CreditBalance.model_validate(row) if row else None
        except Exception as e:
            raise StorageError(f"Failed to get credits: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_credits(self, credits: CreditBalance) -> bool:
        try:
            self._client.table("credits").upsert(
                credits.model_dump(mode="json"),
                on_conflict="user_id",
            ).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save credits: {e}")

    async def get_user_settings(self, user_id: UUID) -> Optional[UserSettings]:
        try:
            row = self._first("settings", "user_id", user_id)
            return UserSettings.model_validate(row) if row else None
        except Exception as e:
            raise StorageError(f"Failed to get settings: {e}")

    async def save_user_settings(self, settings: UserSettings) -> bool:
        try:
            self._client.table("settings").upsert(
                settings.model_dump(mode="json"),
                on_conflict="user_id",
            ).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save settings: {e}")

    async def list_notifications(
        self,
        user_id: UUID,
        limit: int = 50,
    ) -> list[Notification]:
        try:
            rows = (
                self._client.table("notifications")
                .select("*")
                .eq("user_id", str(user_id))
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
                .data
            )
            return [Notification.model_validate(row) for row in rows]
        except Exception as e:
            raise StorageError(f"Failed to list notifications: {e}")

    async def save_notification(self, notification: Notification) -> bool:
        try:
            self._client.table("notifications").insert(
                notification.model_dump(mode="json")
            ).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save notification: {e}")

    async def mark_notification_read(self, notification_id: UUID) -> bool:
        try:
            rows = (
                self._client.table("notifications")
                .update({"read": True})
                .eq("id", str(notification_id))
                .execute()
                .data
            )
            return bool(rows)
        except Exception as e:
            raise StorageError(f"Failed to mark notification read: {e}")

    async def mark_all_notifications_read(self, user_id: UUID) -> int:
        try:
            rows = (
                self._client.table("notifications")
                .update({"read": True})
                .eq("user_id", str(user_id))
                .eq("read", False)
                .execute()
                .data
            )
            return len(rows)
        except Exception as e:
            raise StorageError(f"Failed to mark notifications read: {e}")

    async def clear_notifications(self, user_id: UUID) -> int:
        try:
            rows = (
                self._client.table("notifications")
                .delete()
                .eq("user_id", str(user_id))
                .execute()
                .data
            )
            return len(rows)
        except Exception as e:
            raise StorageError(f"Failed to clear notifications: {e}")

    async def delete_account_rows(self, user_id: UUID) -> int:
        try:
            return sum(
                self._client.delete_where(table, "user_id", user_id)
                for table in ("notifications", "settings", "credits", "subscriptions")
            )
        except Exception as e:
            raise StorageError(f"Failed to delete account rows: {e}")


class SupabaseDocumentStorage(DocumentStorageInterface):
    """
    Files go to the documents bucket, metadata to the documents table.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def upload_file(self, path: str, data: bytes, content_type: str) -> str:
        try:
            bucket = self._client.bucket()
            bucket.upload(
                path=path,
                file=data,
                file_options={"content-type": content_type},
            )
            return bucket.get_public_url(path)
        except Exception as e:
            if _is_duplicate(e) or "already exists" in str(e).lower():
                raise DuplicateError(f"Object already exists: {path}")
            raise StorageError(f"Failed to upload file: {e}")

    async def remove_file(self, path: str) -> bool:
        try:
            removed = self._client.bucket().remove([path])
            return bool(removed)
        except Exception as e:
            raise StorageError(f"Failed to remove file: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_document(self, document: StoredDocument) -> bool:
        try:
            self._client.table("documents").upsert(_document_to_row(document)).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save document: {e}")

    async def get_document(self, document_id: UUID) -> Optional[StoredDocument]:
        try:
            rows = (
                self._client.table("documents")
                .select("*")
                .eq("id", str(document_id))
                .limit(1)
                .execute()
                .data
            )
            return _row_to_document(rows[0]) if rows else None
        except Exception as e:
            raise StorageError(f"Failed to get document: {e}")

    async def list_documents(self, user_id: UUID) -> list[StoredDocument]:
        try:
            rows = (
                self._client.table("documents")
                .select("*")
                .eq("user_id", str(user_id))
                .order("created_at", desc=True)
                .execute()
                .data
            )
        except Exception as e:
            raise StorageError(f"Failed to list documents: {e}")

        documents = []
        for row in rows:
            try:
                documents.append(_row_to_document(row))
            except ValueError as e:
                logger.warning("skipping_malformed_row", table="documents", row_id=row.get("id"), error=str(e))
        return documents

    async def delete_document(self, document_id: UUID) -> bool:
        try:
            rows = (
                self._client.table("documents")
                .delete()
                .eq("id", str(document_id))
                .execute()
                .data
            )
            return bool(rows)
        except Exception as e:
            raise StorageError(f"Failed to delete document: {e}")


class SupabaseTranslationStorage(TranslationStorageInterface):
    """The shared translations table (key, language, value)."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def get_translation(self, key: str, language: str) -> Optional[str]:
        try:
            rows = (
                self._client.table("translations")
                .select("value")
                .eq("key", key)
                .eq("language", language)
                .limit(1)
                .execute()
                .data
            )
            return rows[0]["value"] if rows else None
        except Exception as e:
            raise StorageError(f"Failed to get translation: {e}")

    async def save_translation(self, key: str, language: str, value: str) -> bool:
        try:
            self._client.table("translations").upsert(
                {"key": key, "language": language, "value": value},
                on_conflict="key,language",
            ).execute()
            return True
        except Exception as e:
            raise StorageError(f"Failed to save translation: {e}")


class SupabaseAuditStorage(AuditStorageInterface):
    """
    Supabase implementation of audit log storage.

    Audit events are append-only rows of audit_logs.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _rows_to_events(self, rows: list[dict]) -> list[AuditEvent]:
        events = []
        for row in rows:
            try:
                events.append(AuditEvent.from_row(row))
            except (KeyError, ValueError, TypeError):
                continue  # rows written by other clients
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._client.table("audit_logs").insert(event.to_row()).execute()
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_event_write_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            rows = (
                self._client.table("audit_logs")
                .select("*")
                .eq("new_data->>correlation_id", str(correlation_id))
                .execute()
                .data
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = self._rows_to_events(rows)
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        user_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            query = self._client.table("audit_logs").select("*")
            if user_id is not None:
                query = query.eq("user_id", str(user_id))
            rows = query.order("created_at", desc=True).limit(limit).execute().data
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = self._rows_to_events(rows)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events
