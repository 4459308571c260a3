"""
User Registration Service - creates staff/franchise logins via the Supabase Auth admin API.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class UserRegistrationError(Exception):
    """Supabase refused to create the user."""


class UserRegistrationService:
    """Service for creating auto-confirmed users with the service-role key."""

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_role_key = service_role_key
        self._transport = transport

    @property
    def admin_users_url(self) -> str:
        return f"{self.supabase_url}/auth/v1/admin/users"

    async def create_user(
        self,
        email: str,
        password: str,
        metadata: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Create a confirmed user.

        Args:
            email: Login e-mail
            password: Initial password
            metadata: Stored as user_metadata (role, franchise_id, name...)

        Returns the created user object.
        """
        if not self.supabase_url or not self.service_role_key:
            raise UserRegistrationError("Missing Supabase internal environment variables.")

        payload = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": metadata,
        }

        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(
                    self.admin_users_url,
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.error("Supabase admin request timeout")
            raise UserRegistrationError("Supabase request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase admin request error: {e}", exc_info=True)
            raise UserRegistrationError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            logger.error(f"Supabase admin HTTP error: {response.status_code} {response.text}")
            message = (
                data.get("msg")
                or data.get("message")
                or data.get("error_description")
                or data.get("error")
                or f"User creation failed ({response.status_code})"
            )
            raise UserRegistrationError(message)

        # GoTrue returns the user itself; some versions wrap it
        user = data.get("user", data)
        logger.info(f"Created user {user.get('id')} ({email})")
        return user
