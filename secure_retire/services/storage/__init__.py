"""Storage backends: hosted Supabase tables or in-process memory."""

from secure_retire.services.storage.interface import (
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
from secure_retire.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    InMemoryFinancialStorage,
    InMemoryTranslationStorage,
)
from secure_retire.services.storage.supabase_store import (
    SupabaseAccountStorage,
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseDocumentStorage,
    SupabaseFinancialStorage,
    SupabaseTranslationStorage,
)

__all__ = [
    "RECORD_TABLES",
    "AccountStorageInterface",
    "AuditStorageInterface",
    "ConnectionError",
    "DocumentStorageInterface",
    "DuplicateError",
    "FinancialStorageInterface",
    "NotFoundError",
    "StorageError",
    "TranslationStorageInterface",
    "table_for",
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "InMemoryFinancialStorage",
    "InMemoryTranslationStorage",
    "SupabaseAccountStorage",
    "SupabaseAuditStorage",
    "SupabaseClient",
    "SupabaseDocumentStorage",
    "SupabaseFinancialStorage",
    "SupabaseTranslationStorage",
]
