"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against the hosted backend in production
2. Use in-memory storage for tests and offline demos
3. Keep business logic decoupled from the backend client

The interface is intentionally simple - we're not building an ORM.
Row-level security on the backend decides what a user may touch;
these methods just move rows.
"""

from abc import ABC, abstractmethod
from typing import Optional, TypeVar
from uuid import UUID

from secure_retire.models.account import (
    CreditBalance,
    Notification,
    Subscription,
    UserSettings,
)
from secure_retire.models.audit import AuditEvent
from secure_retire.models.documents import StoredDocument
from secure_retire.models.financial import (
    Asset,
    Beneficiary,
    Consultation,
    Debt,
    FinancialSnapshot,
    IncomeSource,
    PortfolioAllocation,
    RecordBase,
    RetirementAccount,
    UserProfile,
)


R = TypeVar("R", bound=RecordBase)

# Backend table for each record model
RECORD_TABLES: dict[type, str] = {
    Asset: "assets",
    Debt: "debts",
    IncomeSource: "income_sources",
    RetirementAccount: "retirement_savings",
    Beneficiary: "beneficiaries",
    Consultation: "consultations",
    PortfolioAllocation: "portfolio_allocations",
}


def table_for(record_type: type) -> str:
    """Table name for a record model; raises StorageError for unknown types."""
    try:
        return RECORD_TABLES[record_type]
    except KeyError:
        raise StorageError(f"No table registered for {record_type.__name__}")


class FinancialStorageInterface(ABC):
    """
    Abstract interface for profile and financial record storage.

    Any backend must implement these methods.
    """

    @abstractmethod
    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        """
        Retrieve the users row.

        Returns:
            The profile if found, None otherwise
        """
        pass

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> bool:
        """
        Insert or update the users row (keyed on profile.id).

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def save_record(self, record: RecordBase) -> bool:
        """
        Insert a new financial record.

        Raises:
            StorageError: If save fails
            DuplicateError: If a row with this id exists
        """
        pass

    @abstractmethod
    async def get_record(self, record_type: type[R], record_id: UUID) -> Optional[R]:
        """Retrieve one record by id, None if missing."""
        pass

    @abstractmethod
    async def update_record(self, record: RecordBase) -> bool:
        """
        Update an existing record.

        Raises:
            StorageError: If update fails
            NotFoundError: If the record doesn't exist
        """
        pass

    @abstractmethod
    async def delete_record(self, record_type: type[RecordBase], record_id: UUID) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def list_records(
        self,
        record_type: type[R],
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> list[R]:
        """
        List a user's records of one type, newest first.
        """
        pass

    @abstractmethod
    async def delete_user_data(self, user_id: UUID) -> int:
        """
        Delete every record of the user and then the users row.

        Returns:
            How many rows were removed
        """
        pass

    async def load_snapshot(self, user_id: UUID) -> FinancialSnapshot:
        """Everything the dashboard needs for one user."""
        return FinancialSnapshot(
            profile=await self.get_profile(user_id),
            assets=await self.list_records(Asset, user_id, limit=1000),
            debts=await self.list_records(Debt, user_id, limit=1000),
            income_sources=await self.list_records(IncomeSource, user_id, limit=1000),
            retirement_accounts=await self.list_records(RetirementAccount, user_id, limit=1000),
            beneficiaries=await self.list_records(Beneficiary, user_id, limit=1000),
        )


class AccountStorageInterface(ABC):
    """
    Subscription, credits, preferences and notifications.
    """

    @abstractmethod
    async def get_subscription(self, user_id: UUID) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def save_subscription(self, subscription: Subscription) -> bool:
        """Upsert keyed on user_id."""
        pass

    @abstractmethod
    async def get_credits(self, user_id: UUID) -> Optional[CreditBalance]:
        pass

    @abstractmethod
    async def save_credits(self, credits: CreditBalance) -> bool:
        """Upsert keyed on user_id."""
        pass

    @abstractmethod
    async def get_user_settings(self, user_id: UUID) -> Optional[UserSettings]:
        pass

    @abstractmethod
    async def save_user_settings(self, settings: UserSettings) -> bool:
        """Upsert keyed on user_id."""
        pass

    @abstractmethod
    async def list_notifications(
        self,
        user_id: UUID,
        limit: int = 50,
    ) -> list[Notification]:
        """Newest first."""
        pass

    @abstractmethod
    async def save_notification(self, notification: Notification) -> bool:
        pass

    @abstractmethod
    async def mark_notification_read(self, notification_id: UUID) -> bool:
        pass

    @abstractmethod
    async def mark_all_notifications_read(self, user_id: UUID) -> int:
        """Returns how many were marked."""
        pass

    @abstractmethod
    async def clear_notifications(self, user_id: UUID) -> int:
        """Delete all of a user's notifications. Returns how many were removed."""
        pass

    @abstractmethod
    async def delete_account_rows(self, user_id: UUID) -> int:
        """Delete the subscription, credits, settings and notifications rows."""
        pass


class DocumentStorageInterface(ABC):
    """
    File objects in the bucket plus their metadata rows.
    """

    @abstractmethod
    async def upload_file(self, path: str, data: bytes, content_type: str) -> str:
        """
        Store file bytes at path.

        Returns:
            Public URL of the stored object
        """
        pass

    @abstractmethod
    async def remove_file(self, path: str) -> bool:
        pass

    @abstractmethod
    async def save_document(self, document: StoredDocument) -> bool:
        pass

    @abstractmethod
    async def get_document(self, document_id: UUID) -> Optional[StoredDocument]:
        pass

    @abstractmethod
    async def list_documents(self, user_id: UUID) -> list[StoredDocument]:
        """Newest first."""
        pass

    @abstractmethod
    async def delete_document(self, document_id: UUID) -> bool:
        pass


class TranslationStorageInterface(ABC):
    """Cache of machine translations shared by all users."""

    @abstractmethod
    async def get_translation(self, key: str, language: str) -> Optional[str]:
        pass

    @abstractmethod
    async def save_translation(self, key: str, language: str, value: str) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one registration).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        user_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, optionally for one user.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
