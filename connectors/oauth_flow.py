"""
OAuth authorization flow — consent URL + callback handling.

``build_authorization_url`` starts the flow; ``handle_callback`` finishes it
by exchanging the code and upserting the encrypted token pair.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from connectors.base import BaseConnector
from connectors.encryption import TokenCipher
from connectors.exceptions import StateExpiredError, StateInvalidError, StoreError, TokenExchangeError
from connectors.metrics import OAuthMetrics
from connectors.results import CallbackResult, Err, FailureKind, Ok, Result
from connectors.state import create_state, verify_state
from connectors.store import CredentialRecord, CredentialStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OAuthFlow:
    """Authorization-code flow for a single provider."""

    def __init__(
        self,
        connector: BaseConnector,
        store: CredentialStore,
        cipher: TokenCipher,
        *,
        metrics: Optional[OAuthMetrics] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._connector = connector
        self._store = store
        self._cipher = cipher
        self._metrics = metrics or OAuthMetrics(connector.provider_name)
        self._clock = clock

    @property
    def provider(self) -> str:
        return self._connector.provider_name

    def build_authorization_url(self, user_id: str) -> str:
        """Consent-screen URL carrying a fresh state for ``user_id``."""
        if not user_id:
            raise ValueError("user_id is required to start authorization")
        state = create_state(user_id, self._clock())
        logger.info("Starting %s authorization for user %s", self.provider, user_id)
        return self._connector.get_auth_url(state)

    async def complete_authorization(self, code: str, state: str) -> Result:
        """
        Verify state, exchange the code and persist the token pair.

        Returns ``Ok(value=user_id)`` or an ``Err`` tagged with the failure kind.
        Nothing is written unless both tokens were granted.
        """
        try:
            user_id = verify_state(state, self._clock())
        except StateExpiredError as exc:
            return self._fail(FailureKind.STATE_EXPIRED, str(exc))
        except StateInvalidError as exc:
            return self._fail(FailureKind.STATE_INVALID, str(exc))

        if not code:
            return self._fail(FailureKind.TOKEN_EXCHANGE, "Authorization code is missing")

        try:
            grant = await self._connector.exchange_code(code)
        except TokenExchangeError as exc:
            logger.error("%s code exchange failed for user %s: %s", self.provider, user_id, exc)
            return self._fail(FailureKind.TOKEN_EXCHANGE, str(exc))

        if not grant.access_token or not grant.refresh_token:
            logger.error(
                "%s granted a partial token pair for user %s (access=%s, refresh=%s)",
                self.provider,
                user_id,
                bool(grant.access_token),
                bool(grant.refresh_token),
            )
            return self._fail(FailureKind.TOKEN_EXCHANGE, "Failed to obtain tokens")

        now = self._clock()
        record = CredentialRecord(
            user_id=user_id,
            provider=self.provider,
            access_token=self._cipher.encrypt(grant.access_token),
            refresh_token=self._cipher.encrypt(grant.refresh_token),
            expires_at=grant.expires_at(now),
            token_type=grant.token_type or "Bearer",
            scope=grant.scope,
            metadata=grant.raw_expiry(),
        )
        try:
            await self._store.upsert(record)
        except StoreError:
            return self._fail(FailureKind.STORE, "Failed to store tokens")

        self._metrics.record_authorization("success")
        logger.info("%s connected for user %s", self.provider, user_id)
        return Ok(value=user_id)

    async def handle_callback(self, code: str, state: str) -> CallbackResult:
        """Callback outcome as ``{success, user_id?, error?}``."""
        result = await self.complete_authorization(code, state)
        if result.ok:
            return CallbackResult(success=True, user_id=result.value)
        return CallbackResult(success=False, error=result.message, error_kind=result.kind)

    def _fail(self, kind: FailureKind, message: str) -> Err:
        self._metrics.record_authorization(kind.value)
        logger.warning("%s authorization failed (%s): %s", self.provider, kind.value, message)
        return Err(kind=kind, message=message)
