"""
Edge Function Client

Server-side functions hold the logic the client must not be trusted
with:
- deduct-credits: the authoritative credit counter
- create-payment-link: hosted checkout session for the Pro plan
- stripe-success-handler: activates Pro once checkout has completed
- translate-text: machine translation for dynamic content

Each call is a JSON POST through the Supabase functions API. Only
transport failures are retried, and deduct-credits never is: a request
that timed out may still have been applied on the server.
"""

import json
from typing import Any, Optional

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from secure_retire.services.storage.supabase_store import SupabaseClient


logger = structlog.get_logger(__name__)


DEDUCT_CREDITS = "deduct-credits"
CREATE_PAYMENT_LINK = "create-payment-link"
CONFIRM_PAYMENT = "stripe-success-handler"
TRANSLATE_TEXT = "translate-text"


class EdgeFunctionError(Exception):
    """An edge function failed or answered with an error payload."""

    def __init__(self, function_name: str, message: str):
        self.function_name = function_name
        super().__init__(f"{function_name}: {message}")


class EdgeFunctionUnavailable(EdgeFunctionError):
    """The request never got a reply (connection failure or timeout)."""


class EdgeFunctionClient:
    """Invokes backend edge functions and decodes their JSON replies."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _decode(self, name: str, raw: Any) -> dict:
        if isinstance(raw, dict):
            payload = raw
        else:
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode("utf-8")
            try:
                payload = json.loads(raw) if raw else {}
            except (TypeError, ValueError):
                raise EdgeFunctionError(name, f"Response is not JSON: {str(raw)[:200]}")

        if not isinstance(payload, dict):
            raise EdgeFunctionError(name, "Response is not a JSON object")
        if payload.get("error"):
            raise EdgeFunctionError(name, str(payload["error"]))
        return payload

    async def _call(self, name: str, body: dict) -> dict:
        try:
            raw = self._client.functions.invoke(name, invoke_options={"body": body})
        except httpx.TransportError as e:
            logger.warning("edge_function_unreachable", function=name, error=str(e))
            raise EdgeFunctionUnavailable(name, str(e))
        except Exception as e:
            logger.warning("edge_function_failed", function=name, error=str(e))
            raise EdgeFunctionError(name, str(e))
        return self._decode(name, raw)

    @retry(
        retry=retry_if_exception_type(EdgeFunctionUnavailable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def invoke(self, name: str, body: dict) -> dict:
        """
        Call an idempotent edge function with a JSON body.

        Connection failures and timeouts are retried; an error reply is not.

        Raises:
            EdgeFunctionError: On failure or an `error` in the reply
        """
        return await self._call(name, body)

    async def deduct_credits(
        self,
        amount: int,
        feature_name: str,
        description: str,
    ) -> dict:
        # single attempt
        return await self._call(
            DEDUCT_CREDITS,
            {
                "amount": amount,
                "feature_name": feature_name,
                "description": description,
            },
        )

    async def create_payment_link(
        self,
        plan_type: str,
        amount: float,
        currency: str,
        redirect_url: str,
    ) -> str:
        """Returns the hosted checkout URL."""
        payload = await self.invoke(
            CREATE_PAYMENT_LINK,
            {
                "plan_type": plan_type,
                "amount": amount,
                "currency": currency,
                "redirect_url": redirect_url,
            },
        )
        url = payload.get("url")
        if not payload.get("success", True) or not url:
            raise EdgeFunctionError(CREATE_PAYMENT_LINK, "No checkout URL returned")
        return url

    async def confirm_payment(self) -> dict:
        """
        Activate the caller's Pro subscription after a successful checkout.

        The function identifies the user from the session token and sets
        the plan to active with unlimited credits. Calling it twice is
        harmless.
        """
        payload = await self.invoke(CONFIRM_PAYMENT, {})
        if not payload.get("success"):
            raise EdgeFunctionError(CONFIRM_PAYMENT, "Subscription was not activated")
        return payload

    async def translate_text(
        self,
        text: str,
        target_language: str,
        source_language: str = "en",
    ) -> str:
        payload = await self.invoke(
            TRANSLATE_TEXT,
            {
                "text": text,
                "targetLanguage": target_language,
                "sourceLanguage": source_language,
            },
        )
        translated = payload.get("translatedText")
        if not translated:
            raise EdgeFunctionError(TRANSLATE_TEXT, "No translatedText in response")
        return translated
