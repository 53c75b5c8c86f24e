"""OCR services package."""

from secure_retire.services.ocr.mindee_service import (
    CorruptImageError,
    ExtractionFailedError,
    MindeeOCRService,
    OCRError,
    verify_image,
)

__all__ = [
    "CorruptImageError",
    "ExtractionFailedError",
    "MindeeOCRService",
    "OCRError",
    "verify_image",
]
