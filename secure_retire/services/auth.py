"""
Authentication through Supabase Auth.

Sessions, password hashing and email delivery all belong to the backend;
this wrapper only turns its responses into our own small types and its
exceptions into AuthError.
"""

from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from secure_retire.services.storage.supabase_store import SupabaseClient


logger = structlog.get_logger(__name__)


class AuthError(Exception):
    """Sign-up, sign-in or session failure, carrying the backend message."""
    pass


class AuthUser(BaseModel):
    id: UUID
    email: str = ""
    full_name: str = ""


class SupabaseAuthService:
    """Email/password auth."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _to_user(self, user) -> Optional[AuthUser]:
        if user is None:
            return None
        metadata = getattr(user, "user_metadata", None) or {}
        return AuthUser(
            id=UUID(str(user.id)),
            email=getattr(user, "email", None) or "",
            full_name=metadata.get("full_name", ""),
        )

    async def sign_up(self, email: str, password: str, full_name: str = "") -> AuthUser:
        try:
            response = self._client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": full_name}},
            })
        except Exception as e:
            raise AuthError(str(e))

        user = self._to_user(getattr(response, "user", None))
        if user is None:
            raise AuthError("Sign-up did not return a user")
        logger.info("user_signed_up", user_id=str(user.id))
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        try:
            response = self._client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            raise AuthError(str(e))

        user = self._to_user(getattr(response, "user", None))
        if user is None:
            raise AuthError("Invalid login credentials")
        return user

    async def sign_out(self) -> None:
        try:
            self._client.auth.sign_out()
        except Exception as e:
            raise AuthError(str(e))

    async def current_user(self) -> Optional[AuthUser]:
        """The signed-in user, or None when there is no session."""
        try:
            response = self._client.auth.get_user()
        except Exception as e:
            logger.info("no_active_session", error=str(e))
            return None
        return self._to_user(getattr(response, "user", None)) if response else None

    async def send_password_reset(self, email: str) -> None:
        try:
            self._client.auth.reset_password_for_email(email)
        except Exception as e:
            raise AuthError(str(e))
