"""
GoogleMeetConnector — OAuth2 web flow for Google Calendar / Meet.

Talks to Google's token endpoints over ``httpx``.  All configuration is
injected through ``GoogleOAuthConfig``; nothing is read from module globals.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from config.settings import GoogleOAuthConfig
from connectors.base import BaseConnector, TokenGrant
from connectors.exceptions import RefreshFailure, TokenExchangeError

logger = logging.getLogger(__name__)

# Google OAuth2 endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"

GOOGLE_MEET_PROVIDER = "google_meet"


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return f"HTTP {resp.status_code}: {body.get('error', 'unknown_error')}"
    return f"HTTP {resp.status_code}"


class GoogleMeetConnector(BaseConnector):
    """OAuth2 connector for Google Meet (Calendar API)."""

    def __init__(
        self,
        oauth_config: GoogleOAuthConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._config = oauth_config
        self._transport = transport
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return GOOGLE_MEET_PROVIDER

    @property
    def display_name(self) -> str:
        return "Google Meet"

    @property
    def scopes(self) -> List[str]:
        return [
            "https://www.googleapis.com/auth/calendar",
            "https://www.googleapis.com/auth/calendar.events",
        ]

    def _client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {"transport": self._transport}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    def get_auth_url(self, state: str) -> str:
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",       # gets refresh_token
            "prompt": "consent",            # force consent to always get refresh_token
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def _post_token(self, data: Dict[str, str]) -> TokenGrant:
        async with self._client() as client:
            resp = await client.post(GOOGLE_TOKEN_URL, data=data)
        if resp.status_code != 200:
            raise httpx.HTTPStatusError(_error_detail(resp), request=resp.request, response=resp)
        return TokenGrant.model_validate(resp.json())

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange auth code for tokens."""
        try:
            return await self._post_token(
                {
                    "code": code,
                    "client_id": self._config.client_id,
                    "client_secret": self._config.client_secret,
                    "redirect_uri": self._config.redirect_uri,
                    "grant_type": "authorization_code",
                }
            )
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            raise TokenExchangeError(f"Token exchange failed: {exc}") from exc

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Use refresh token to get a new access token."""
        try:
            grant = await self._post_token(
                {
                    "client_id": self._config.client_id,
                    "client_secret": self._config.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                }
            )
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            raise RefreshFailure(f"Token refresh failed: {exc}") from exc
        if not grant.access_token:
            raise RefreshFailure("Token refresh response carried no access_token")
        return grant

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke the token at Google.

        Returns False when Google rejects the token; transport errors propagate.
        """
        async with self._client() as client:
            resp = await client.post(
                GOOGLE_REVOKE_URL,
                data={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        if resp.status_code != 200:
            logger.warning("Google revoke rejected: %s", _error_detail(resp))
            return False
        return True
