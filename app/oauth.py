"""
Google OAuth 2.0 client for the federated login handshake.

The flow is redirect-driven:

1. ``/auth/login/google`` redirects the browser to ``get_authorize_url()``.
2. Google redirects back to ``settings.GOOGLE_CALLBACK_URL`` with a code.
3. ``authenticate(code)`` exchanges the code for an access token and
   fetches the profile, returning a ``FederatedIdentity``.
"""
import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from app.config import settings
from app.schemas import FederatedIdentity

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """The provider rejected the handshake or is not configured."""


class GoogleOAuth:
    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    def __init__(
        self,
        client_id: str = settings.GOOGLE_CLIENT_ID,
        client_secret: str = settings.GOOGLE_SECRET,
        redirect_uri: str = settings.GOOGLE_CALLBACK_URL,
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_authorize_url(self, state: str | None = None) -> str:
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid profile email",
        }
        if state:
            params["state"] = state
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> dict[str, Any]:
        response = await client.post(
            self.TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        if response.status_code != 200:
            logger.error("Google token exchange failed: %s", response.text)
            raise OAuthError(f"Token exchange failed: {response.status_code}")
        return response.json()

    async def get_identity(self, client: httpx.AsyncClient, access_token: str) -> FederatedIdentity:
        response = await client.get(
            self.USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code != 200:
            logger.error("Google userinfo failed: %s", response.text)
            raise OAuthError(f"Failed to get user info: {response.status_code}")

        data = response.json()
        email = data.get("email") or ""
        try:
            return FederatedIdentity(
                subject=data["sub"],
                email=email,
                name=data.get("name") or email.split("@")[0],
            )
        except ValidationError as exc:
            logger.warning("Google profile for %s is unusable: %s", data.get("sub"), exc)
            raise OAuthError("Google account has no usable email address")

    async def authenticate(self, code: str) -> FederatedIdentity:
        """Complete the handshake for the callback's authorization *code*."""
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            tokens = await self.exchange_code(client, code)
            return await self.get_identity(client, tokens["access_token"])


google_oauth = GoogleOAuth()


def get_google_oauth() -> GoogleOAuth:
    """FastAPI dependency; overridden in tests."""
    return google_oauth
