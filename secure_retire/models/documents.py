"""
Document Models

Uploaded files (wills, policies, statements) and the text pulled out of
them by OCR. The file itself lives in the storage bucket; only metadata
and OCR text are stored in the documents table.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentType(str, Enum):
    """Document categories the user can file under."""
    WILL = "will"
    TRUST = "trust"
    INSURANCE_POLICY = "insurance_policy"
    TAX_RETURN = "tax_return"
    BANK_STATEMENT = "bank_statement"
    INVESTMENT_STATEMENT = "investment_statement"
    OTHER = "other"


# MIME types we accept, mapped to the extension used in the storage path
ALLOWED_MIME_TYPES: dict[str, str] = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
}

# Only these go through OCR
OCR_MIME_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
}


class DocumentUpload(BaseModel):
    """Represents a file before it is stored."""

    upload_id: UUID = Field(default_factory=uuid4)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    original_filename: str = Field(..., min_length=1, max_length=255)
    file_size_bytes: int = Field(ge=0)
    mime_type: str
    document_type: DocumentType = DocumentType.OTHER
    renewal_date: Optional[date] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow document and image types."""
        if v.lower() not in ALLOWED_MIME_TYPES:
            raise ValueError(
                f"Unsupported file type: {v}. "
                f"Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}"
            )
        return v.lower()

    @property
    def extension(self) -> str:
        return ALLOWED_MIME_TYPES[self.mime_type]

    @property
    def needs_ocr(self) -> bool:
        return self.mime_type in OCR_MIME_TYPES


class OCRResult(BaseModel):
    """Plain text extracted from a document."""

    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    page_count: int = Field(default=0, ge=0)
    detected_dates: list[date] = Field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


class StoredDocument(BaseModel):
    """
    One row of the documents table.

    storage_path is the object key inside the bucket; file_url is the
    public URL handed back by the storage API.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    type: DocumentType = DocumentType.OTHER
    name: str = Field(..., min_length=1, max_length=255)
    file_url: str
    storage_path: str
    size_bytes: int = Field(default=0, ge=0)
    mime_type: str
    ocr_text: str = ""
    renewal_date: Optional[date] = None
    is_template: bool = False
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def days_until_renewal(self, today: date) -> Optional[int]:
        if self.renewal_date is None:
            return None
        return (self.renewal_date - today).days


# Jurisdiction code -> display name
JURISDICTIONS: dict[str, str] = {
    "US-CA": "California, USA",
    "US-NY": "New York, USA",
    "US-TX": "Texas, USA",
    "US-FL": "Florida, USA",
    "CA-ON": "Ontario, Canada",
    "CA-BC": "British Columbia, Canada",
    "UK-EN": "England & Wales",
    "UK-SC": "Scotland",
    "AU-NSW": "New South Wales, Australia",
    "AU-VIC": "Victoria, Australia",
}

WITNESS_REQUIREMENTS: dict[str, str] = {
    "US-CA": "Requires 2 witnesses or notarization",
    "US-NY": "Requires 2 witnesses and notarization",
    "US-TX": "Requires 2 witnesses or can be holographic",
    "US-FL": "Requires 2 witnesses and notarization",
    "CA-ON": "Requires 2 witnesses",
    "CA-BC": "Requires 2 witnesses",
    "UK-EN": "Requires 2 witnesses",
    "UK-SC": "Requires 2 witnesses",
    "AU-NSW": "Requires 2 witnesses",
    "AU-VIC": "Requires 2 witnesses",
}


def witness_requirements_for(jurisdiction: str) -> str:
    return WITNESS_REQUIREMENTS.get(jurisdiction, "Check local requirements")


class WillData(BaseModel):
    """
    What the will generator asks for.

    Beneficiaries are not part of this model; they come from the
    beneficiaries table at generation time.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    jurisdiction: str = ""
    testator_name: str = ""
    testator_address: str = ""
    executor_name: str = ""
    executor_email: str = ""
    specific_bequests: str = ""
    residuary_clause: str = ""
    guardianship_clause: str = ""
    witness_requirements: str = ""
