"""Services package."""

from secure_retire.services.auth import (
    AuthError,
    AuthUser,
    SupabaseAuthService,
)
from secure_retire.services.functions import (
    EdgeFunctionClient,
    EdgeFunctionError,
    EdgeFunctionUnavailable,
)
from secure_retire.services.ocr import (
    CorruptImageError,
    ExtractionFailedError,
    MindeeOCRService,
    OCRError,
    verify_image,
)
from secure_retire.services.storage import (
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    SupabaseClient,
)

__all__ = [
    # Auth
    "AuthError",
    "AuthUser",
    "SupabaseAuthService",
    # Edge functions
    "EdgeFunctionClient",
    "EdgeFunctionError",
    "EdgeFunctionUnavailable",
    # OCR services
    "CorruptImageError",
    "ExtractionFailedError",
    "MindeeOCRService",
    "OCRError",
    "verify_image",
    # Storage services
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "SupabaseClient",
]
