"""
OCR Service using Mindee

DESIGN DECISION: We use Mindee because:
1. It reads scanned PDFs and phone photos without any local OCR install
2. It returns per-word confidence scores
3. The financial-document product picks out dates we can offer as
   renewal dates

This service handles:
1. Sending document bytes to Mindee
2. Flattening the response into plain text
3. Converting the response to our OCRResult model

OCR is a convenience, not a gate: callers treat an OCR failure as "no
text" and still store the document. Only corrupt images are rejected,
and that happens before anything is uploaded.
"""

import io
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import structlog
from mindee import Client, product
from PIL import Image, UnidentifiedImageError
from tenacity import retry, stop_after_attempt, wait_exponential

from secure_retire.config import get_settings
from secure_retire.models.documents import OCRResult


logger = structlog.get_logger(__name__)


class OCRError(Exception):
    """Base exception for OCR errors."""
    pass


class CorruptImageError(OCRError):
    """Image bytes could not be decoded."""
    pass


class ExtractionFailedError(OCRError):
    """Failed to extract text from document."""
    pass


def verify_image(data: bytes) -> tuple[int, int]:
    """
    Open image bytes with Pillow and return (width, height).

    Raises:
        CorruptImageError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise CorruptImageError(f"Image could not be read: {e}")


class MindeeOCRService:
    """
    OCR service using Mindee for text extraction.

    IMPORTANT BOUNDARIES:
    1. This service ONLY extracts text - it does NOT classify documents
    2. Confidence scores are preserved for the caller to judge
    """

    def __init__(self, client: Optional[Client] = None):
        self._client: Optional[Client] = client
        self._app_settings = get_settings().app

    def _get_client(self) -> Client:
        """Get or create Mindee client."""
        if self._client is None:
            self._client = Client(api_key=get_settings().mindee.api_key)
        return self._client

    def _safe_date(self, value) -> Optional[date]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            for fmt in ["%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%m/%d/%Y"]:
                try:
                    return datetime.strptime(value, fmt).date()
                except ValueError:
                    continue
        return None

    def _page_text_and_confidence(self, document) -> tuple[str, float]:
        """
        Full text and mean word confidence from the raw OCR layer.

        The OCR layer is only present when words were requested; without it
        we fall back to the prediction's string form.
        """
        ocr = getattr(document, "ocr", None)
        pages = getattr(getattr(ocr, "mvision_v1", None), "pages", None) or []
        confidences = []
        for page in pages:
            for word in getattr(page, "all_words", None) or []:
                confidences.append(float(getattr(word, "confidence", 0.0)))
        if ocr is not None and pages:
            text = str(ocr)
        else:
            text = str(document.inference.prediction)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return text.strip(), confidence

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def extract_text(
        self,
        data: bytes,
        filename: str,
        upload_id: UUID,
    ) -> OCRResult:
        """
        Extract text from a PDF or image using Mindee.

        Args:
            data: Raw file bytes
            filename: Original filename (Mindee infers the type from it)
            upload_id: ID of the upload (for log correlation)

        Returns:
            OCRResult with the text, confidence and any dates found

        Raises:
            ExtractionFailedError: If extraction completely fails
        """
        client = self._get_client()

        try:
            input_doc = client.source_from_bytes(data, filename)
            result = client.parse(
                product.FinancialDocumentV1,
                input_doc,
                include_words=True,
            )
            document = result.document
            text, confidence = self._page_text_and_confidence(document)
            prediction = document.inference.prediction

            detected_dates = []
            for field_name in ("date", "due_date"):
                field = getattr(prediction, field_name, None)
                found = self._safe_date(getattr(field, "value", None))
                if found and found not in detected_dates:
                    detected_dates.append(found)

            ocr_result = OCRResult(
                text=text,
                confidence=min(max(confidence, 0.0), 1.0),
                page_count=getattr(document, "n_pages", 0) or 0,
                detected_dates=detected_dates,
            )
        except Exception as e:
            raise ExtractionFailedError(f"Failed to extract text: {e}")

        logger.info(
            "ocr_extracted",
            upload_id=str(upload_id),
            characters=len(ocr_result.text),
            confidence=ocr_result.confidence,
        )
        return ocr_result

    def review_message(self, result: OCRResult) -> tuple[bool, str]:
        """
        Decide whether extracted text is worth showing without a warning.

        Returns: (looks_good, message_for_user)
        """
        if not result.has_text:
            return False, (
                "⚠️ No text could be read from this document. "
                "It has been stored without searchable text."
            )

        if result.confidence < self._app_settings.min_ocr_confidence:
            return False, (
                f"⚠️ Text recognition confidence ({result.confidence:.0%}) is low. "
                "Please check the extracted text before relying on it."
            )

        return True, "✅ Document text extracted successfully."
