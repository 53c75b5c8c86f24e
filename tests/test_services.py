"""
Tests for the hosted-service wrappers: auth, edge functions and OCR.

Every external client is mocked.
"""

import io
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import httpx
import pytest
from PIL import Image
from tenacity import wait_none

from secure_retire.models.documents import OCRResult
from secure_retire.services import (
    AuthError,
    CorruptImageError,
    EdgeFunctionClient,
    EdgeFunctionError,
    EdgeFunctionUnavailable,
    MindeeOCRService,
    SupabaseAuthService,
    verify_image,
)


class FakeOCRLayer:
    def __init__(self, text: str, confidences: list[float]):
        words = [SimpleNamespace(confidence=c) for c in confidences]
        self.mvision_v1 = SimpleNamespace(pages=[SimpleNamespace(all_words=words)])
        self._text = text

    def __str__(self):
        return self._text


def make_mindee_client(document) -> MagicMock:
    client = MagicMock()
    client.parse.return_value = SimpleNamespace(document=document)
    return client


class TestAuthService:
    """Supabase Auth wrapper."""

    def make_user(self, user_id=None):
        return SimpleNamespace(
            id=user_id or uuid4(),
            email="kamal@example.com",
            user_metadata={"full_name": "Kamal Silva"},
        )

    @pytest.mark.asyncio
    async def test_sign_in(self):
        """Test the backend user becomes an AuthUser."""
        client = MagicMock()
        user_id = uuid4()
        client.auth.sign_in_with_password.return_value = SimpleNamespace(user=self.make_user(user_id))

        user = await SupabaseAuthService(client).sign_in("kamal@example.com", "secret")

        assert user.id == user_id
        assert user.full_name == "Kamal Silva"
        client.auth.sign_in_with_password.assert_called_once_with(
            {"email": "kamal@example.com", "password": "secret"}
        )

    @pytest.mark.asyncio
    async def test_sign_in_errors(self):
        """Test backend exceptions and empty responses become AuthError."""
        client = MagicMock()
        client.auth.sign_in_with_password.side_effect = RuntimeError("Invalid login credentials")
        with pytest.raises(AuthError, match="Invalid login credentials"):
            await SupabaseAuthService(client).sign_in("a@b.co", "x")

        client.auth.sign_in_with_password.side_effect = None
        client.auth.sign_in_with_password.return_value = SimpleNamespace(user=None)
        with pytest.raises(AuthError):
            await SupabaseAuthService(client).sign_in("a@b.co", "x")

    @pytest.mark.asyncio
    async def test_sign_up_sends_full_name(self):
        """Test the display name travels as user metadata."""
        client = MagicMock()
        client.auth.sign_up.return_value = SimpleNamespace(user=self.make_user())
        await SupabaseAuthService(client).sign_up("kamal@example.com", "secret", "Kamal Silva")
        payload = client.auth.sign_up.call_args.args[0]
        assert payload["options"] == {"data": {"full_name": "Kamal Silva"}}

    @pytest.mark.asyncio
    async def test_current_user_without_session(self):
        """Test a missing session is None, not an error."""
        client = MagicMock()
        client.auth.get_user.side_effect = RuntimeError("Auth session missing!")
        assert await SupabaseAuthService(client).current_user() is None

    def test_user_without_metadata(self):
        """Test users created without metadata."""
        user = SupabaseAuthService(MagicMock())._to_user(SimpleNamespace(id=str(uuid4()), email=None))
        assert user.email == ""
        assert user.full_name == ""


class TestEdgeFunctionClient:
    """Edge function calls and reply decoding."""

    def test_decode_variants(self):
        """Test dict, bytes and string replies."""
        functions = EdgeFunctionClient(MagicMock())
        assert functions._decode("f", {"ok": True}) == {"ok": True}
        assert functions._decode("f", b'{"ok": 1}') == {"ok": 1}
        assert functions._decode("f", '{"ok": 2}') == {"ok": 2}
        assert functions._decode("f", b"") == {}

    def test_decode_errors(self):
        """Test error payloads and non-JSON replies raise."""
        functions = EdgeFunctionClient(MagicMock())
        with pytest.raises(EdgeFunctionError, match="deduct-credits: Insufficient credits"):
            functions._decode("deduct-credits", {"error": "Insufficient credits"})
        with pytest.raises(EdgeFunctionError, match="not JSON"):
            functions._decode("f", "<html>")
        with pytest.raises(EdgeFunctionError, match="not a JSON object"):
            functions._decode("f", "[1, 2]")

    @pytest.mark.asyncio
    async def test_translate_text(self):
        """Test the translate-text body and reply."""
        client = MagicMock()
        client.functions.invoke.return_value = b'{"translatedText": "Hola"}'

        assert await EdgeFunctionClient(client).translate_text("Hello", "es") == "Hola"
        client.functions.invoke.assert_called_once_with(
            "translate-text",
            invoke_options={"body": {"text": "Hello", "targetLanguage": "es", "sourceLanguage": "en"}},
        )

    @pytest.mark.asyncio
    async def test_payment_link(self):
        """Test the checkout URL is returned and required."""
        client = MagicMock()
        client.functions.invoke.return_value = {"success": True, "url": "https://pay.example.com/x"}
        functions = EdgeFunctionClient(client)
        url = await functions.create_payment_link("pro", 320.0, "LKR", "https://app/")
        assert url == "https://pay.example.com/x"

        client.functions.invoke.return_value = {"success": True}
        with pytest.raises(EdgeFunctionError, match="No checkout URL"):
            await functions.create_payment_link("pro", 1.0, "USD", "https://app/")

    @pytest.mark.asyncio
    async def test_deduct_credits(self):
        """Test the deduct-credits body."""
        client = MagicMock()
        client.functions.invoke.return_value = {"remaining": 95}
        reply = await EdgeFunctionClient(client).deduct_credits(5, "Will Generation", "Generate legal will documents")
        assert reply == {"remaining": 95}
        body = client.functions.invoke.call_args.kwargs["invoke_options"]["body"]
        assert body["feature_name"] == "Will Generation"

    @pytest.mark.asyncio
    async def test_deduct_credits_is_never_retried(self):
        """Test a timed-out deduction is reported after one attempt."""
        client = MagicMock()
        client.functions.invoke.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(EdgeFunctionUnavailable):
            await EdgeFunctionClient(client).deduct_credits(5, "Will Generation", "Generate legal will documents")
        assert client.functions.invoke.call_count == 1

    @pytest.mark.asyncio
    async def test_error_reply_is_not_retried(self):
        """Test an HTTP error from the function fails on the first attempt."""
        client = MagicMock()
        client.functions.invoke.side_effect = RuntimeError("Edge Function returned a non-2xx status code")
        with pytest.raises(EdgeFunctionError) as excinfo:
            await EdgeFunctionClient(client).translate_text("Hello", "es")
        assert not isinstance(excinfo.value, EdgeFunctionUnavailable)
        assert client.functions.invoke.call_count == 1

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, monkeypatch):
        """Test a dropped connection is retried until the call succeeds."""
        monkeypatch.setattr(EdgeFunctionClient.invoke.retry, "wait", wait_none())
        client = MagicMock()
        client.functions.invoke.side_effect = [
            httpx.ConnectError("connection refused"),
            {"translatedText": "Hola"},
        ]
        assert await EdgeFunctionClient(client).translate_text("Hello", "es") == "Hola"
        assert client.functions.invoke.call_count == 2

    @pytest.mark.asyncio
    async def test_confirm_payment(self):
        """Test the success handler is called and its reply checked."""
        client = MagicMock()
        client.functions.invoke.return_value = {"success": True, "message": "Subscription activated successfully"}
        functions = EdgeFunctionClient(client)
        assert (await functions.confirm_payment())["success"] is True
        client.functions.invoke.assert_called_once_with("stripe-success-handler", invoke_options={"body": {}})

        client.functions.invoke.return_value = {"success": False}
        with pytest.raises(EdgeFunctionError, match="not activated"):
            await functions.confirm_payment()


class TestOCRService:
    """Mindee wrapper and Pillow checks."""

    def test_verify_image(self):
        """Test readable images report their size and junk is rejected."""
        buffer = io.BytesIO()
        Image.new("RGB", (32, 16)).save(buffer, format="JPEG")
        assert verify_image(buffer.getvalue()) == (32, 16)
        with pytest.raises(CorruptImageError):
            verify_image(b"\x89PNG but not really")

    @pytest.mark.asyncio
    async def test_extract_text(self):
        """Test text, mean confidence and detected dates."""
        prediction = SimpleNamespace(
            date=SimpleNamespace(value="2026-11-01"),
            due_date=SimpleNamespace(value="01/11/2026"),
        )
        document = SimpleNamespace(
            ocr=FakeOCRLayer("  Policy renews 2026-11-01  ", [0.9, 0.7]),
            inference=SimpleNamespace(prediction=prediction),
            n_pages=1,
        )
        client = make_mindee_client(document)

        result = await MindeeOCRService(client).extract_text(b"%PDF", "policy.pdf", uuid4())

        client.source_from_bytes.assert_called_once_with(b"%PDF", "policy.pdf")
        assert result.text == "Policy renews 2026-11-01"
        assert result.confidence == pytest.approx(0.8)
        assert result.page_count == 1
        assert result.detected_dates == [date(2026, 11, 1)]

    def test_review_message(self):
        """Test the three review outcomes."""
        service = MindeeOCRService(MagicMock())
        assert service.review_message(OCRResult(text=" ")) == (
            False,
            "⚠️ No text could be read from this document. It has been stored without searchable text.",
        )
        looks_good, message = service.review_message(OCRResult(text="abc", confidence=0.3))
        assert looks_good is False
        assert "(30%) is low" in message
        assert service.review_message(OCRResult(text="abc", confidence=0.9)) == (
            True, "✅ Document text extracted successfully.",
        )

    def test_safe_date(self):
        """Test the date formats Mindee may return."""
        service = MindeeOCRService(MagicMock())
        assert service._safe_date("17/05/2026") == date(2026, 5, 17)
        assert service._safe_date("not a date") is None
        assert service._safe_date(None) is None
