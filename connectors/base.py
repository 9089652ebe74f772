"""
BaseConnector — abstract interface for OAuth2 providers.

A provider subclasses this and implements URL building, code exchange,
refresh and revocation.  Connectors are stateless HTTP adapters: they never
touch the credential store and never see ciphertext.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

DEFAULT_EXPIRES_IN = 3600


class TokenGrant(BaseModel):
    """Token endpoint response, normalised across exchange and refresh."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expiry_date: Optional[int] = None   # absolute expiry, epoch milliseconds
    scope: str = ""
    token_type: Optional[str] = None

    def expires_at(self, now: datetime) -> datetime:
        """Absolute expiry: ``expiry_date`` when given, else ``now + expires_in`` (default 1h)."""
        if self.expiry_date is not None:
            return datetime.fromtimestamp(self.expiry_date / 1000, tz=timezone.utc)
        seconds = self.expires_in if self.expires_in is not None else DEFAULT_EXPIRES_IN
        return now + timedelta(seconds=seconds)

    def raw_expiry(self) -> Dict[str, Any]:
        """Provider expiry fields as received, kept in the record's metadata."""
        return {"expires_in": self.expires_in, "expiry_date": self.expiry_date}


class BaseConnector(ABC):
    """Abstract base for all OAuth2 connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug stored in the ``provider`` column, e.g. 'google_meet'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'Google Meet'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes required by this connector."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Opaque state string (encodes user_id + issue time).

        Returns
        -------
        The full URL to redirect the user to.
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> TokenGrant:
        """
        Exchange the authorization code for tokens.

        Raises ``TokenExchangeError`` if the provider rejects the code or
        cannot be reached.  A 200 response missing a token is returned as-is;
        the caller decides whether a partial grant is acceptable.
        """
        ...

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """
        Mint a new access token.

        Raises ``RefreshFailure`` on any error, including a revoked grant.
        """
        ...

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke the token at the provider (optional).
        Returns True on success, False if the provider refused or doesn't support revocation.
        """
        return False
