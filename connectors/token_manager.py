"""
Token manager — get / refresh / revoke per-user OAuth tokens.

This is the single interface features use to get an active token for a
user.  Tokens are refreshed ahead of expiry, so a caller never receives one
that is about to lapse mid-request.

Concurrent refreshes for the same user are last-write-wins: both callers get
a valid token and the later write is kept.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import httpx

from connectors.base import BaseConnector
from connectors.encryption import TokenCipher
from connectors.exceptions import DecryptionError, RefreshFailure, StoreError
from connectors.metrics import OAuthMetrics
from connectors.oauth_flow import utcnow
from connectors.results import ConnectionStatus, Err, FailureKind, Ok, Result
from connectors.store import CredentialStore

logger = logging.getLogger(__name__)

REFRESH_MARGIN = timedelta(minutes=5)


class TokenManager:
    """Access-token lifecycle for one provider."""

    def __init__(
        self,
        connector: BaseConnector,
        store: CredentialStore,
        cipher: TokenCipher,
        *,
        metrics: Optional[OAuthMetrics] = None,
        clock: Callable[[], datetime] = utcnow,
        refresh_margin: timedelta = REFRESH_MARGIN,
    ) -> None:
        self._connector = connector
        self._store = store
        self._cipher = cipher
        self._metrics = metrics or OAuthMetrics(connector.provider_name)
        self._clock = clock
        self._refresh_margin = refresh_margin

    @property
    def provider(self) -> str:
        return self._connector.provider_name

    # ── Access tokens ───────────────────────────────────────────────────

    async def fetch_access_token(self, user_id: str) -> Result:
        """
        Get a valid access token for the user.

        1. Look up the credential record.
        2. If it expires within the refresh margin, refresh it first.
        3. Return ``Ok(value=token)`` or an ``Err`` naming why there is none.

        ``StoreError`` from the lookup propagates.
        """
        record = await self._store.get(user_id, self.provider)
        if record is None:
            logger.info("No %s credentials for user %s", self.provider, user_id)
            return Err(kind=FailureKind.NOT_CONNECTED, message="Not connected")

        if record.expires_at - self._clock() < self._refresh_margin:
            try:
                refresh_token = self._cipher.decrypt(record.refresh_token)
            except DecryptionError as exc:
                return self._unreadable(user_id, "refresh", exc)
            return await self.refresh_result(user_id, refresh_token)

        try:
            return Ok(value=self._cipher.decrypt(record.access_token))
        except DecryptionError as exc:
            return self._unreadable(user_id, "get_token", exc)

    async def get_valid_access_token(self, user_id: str) -> Optional[str]:
        """Decrypted access token, or None when not connected or reauthorization is needed."""
        result = await self.fetch_access_token(user_id)
        return result.value if result.ok else None

    async def refresh_result(self, user_id: str, refresh_token: str) -> Result:
        """
        Refresh the access token and persist it.

        On any failure the stored record is left untouched.  The stored
        refresh token is replaced only if the provider rotated it.
        """
        try:
            grant = await self._connector.refresh_access_token(refresh_token)
        except RefreshFailure as exc:
            self._metrics.record_refresh("error")
            logger.warning("Token refresh failed for %s/%s: %s", self.provider, user_id, exc)
            return Err(kind=FailureKind.REFRESH_FAILED, message=str(exc))

        now = self._clock()
        try:
            updated = await self._store.update_tokens(
                user_id,
                self.provider,
                access_token=self._cipher.encrypt(grant.access_token),
                expires_at=grant.expires_at(now),
                refresh_token=self._cipher.encrypt(grant.refresh_token) if grant.refresh_token else None,
            )
        except StoreError as exc:
            self._metrics.record_refresh("error")
            return Err(kind=FailureKind.STORE, message=str(exc))

        if not updated:
            # Disconnected while the refresh was in flight.
            self._metrics.record_refresh("error")
            logger.info("%s credentials for user %s vanished during refresh", self.provider, user_id)
            return Err(kind=FailureKind.NOT_CONNECTED, message="Not connected")

        self._metrics.record_refresh("success")
        logger.info("Refreshed %s token for user %s", self.provider, user_id)
        return Ok(value=grant.access_token)

    async def refresh(self, user_id: str, refresh_token: str) -> Optional[str]:
        """New access token, or None meaning "reauthorization required"."""
        result = await self.refresh_result(user_id, refresh_token)
        return result.value if result.ok else None

    async def authenticated_client(self, user_id: str, **client_kwargs: Any) -> Optional[httpx.AsyncClient]:
        """
        ``httpx.AsyncClient`` carrying a valid Bearer token, or None.

        The caller owns the client and must close it.
        """
        token = await self.get_valid_access_token(user_id)
        if token is None:
            return None
        headers = dict(client_kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        return httpx.AsyncClient(headers=headers, **client_kwargs)

    # ── Disconnect ──────────────────────────────────────────────────────

    async def revoke(self, user_id: str) -> bool:
        """
        Revoke upstream (best effort) and delete the local record.

        The local delete always runs; returns False only if it fails.
        """
        upstream = "skipped"
        try:
            record = await self._store.get(user_id, self.provider)
        except StoreError:
            record = None

        if record is not None:
            try:
                access_token = self._cipher.decrypt(record.access_token)
            except DecryptionError as exc:
                logger.warning("Skipping upstream revoke for %s/%s: %s", self.provider, user_id, exc)
                access_token = None

            if access_token:
                try:
                    upstream = "revoked" if await self._connector.revoke_token(access_token) else "rejected"
                except Exception as exc:
                    upstream = "error"
                    logger.warning("Upstream revoke failed for %s/%s: %s", self.provider, user_id, exc)

        try:
            deleted = await self._store.delete(user_id, self.provider)
        except StoreError:
            self._metrics.record_revocation(upstream, "error")
            self._metrics.record_error("StoreError", "revoke")
            return False

        self._metrics.record_revocation(upstream, "deleted" if deleted else "absent")
        logger.info("Disconnected %s for user %s (upstream=%s)", self.provider, user_id, upstream)
        return True

    # ── Status ──────────────────────────────────────────────────────────

    async def is_connected(self, user_id: str) -> bool:
        """True iff a credential record exists; does not check refreshability."""
        return await self._store.exists(user_id, self.provider)

    async def get_connection_status(self, user_id: str) -> ConnectionStatus:
        """Existence plus a non-mutating expiry comparison."""
        record = await self._store.get(user_id, self.provider)
        if record is None:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            token_valid=record.expires_at > self._clock(),
            expires_at=record.expires_at,
        )

    def _unreadable(self, user_id: str, operation: str, exc: DecryptionError) -> Err:
        self._metrics.record_error("DecryptionError", operation)
        logger.error(
            "Stored %s credentials for user %s are unreadable, reconnection required: %s",
            self.provider,
            user_id,
            exc,
        )
        return Err(kind=FailureKind.DECRYPTION_FAILED, message=str(exc))
