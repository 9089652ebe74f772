"""
Wiring for the Google Meet integration.

Built once when the application starts and handed to whoever needs it;
there is no process-wide OAuth client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import GoogleOAuthConfig
from connectors.encryption import TokenCipher
from connectors.google_meet import GoogleMeetConnector
from connectors.metrics import OAuthMetrics
from connectors.oauth_flow import OAuthFlow, utcnow
from connectors.store import CredentialStore
from connectors.token_manager import TokenManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoogleMeetIntegration:
    connector: GoogleMeetConnector
    store: CredentialStore
    flow: OAuthFlow
    tokens: TokenManager


def create_google_meet_integration(
    oauth_config: GoogleOAuthConfig,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], datetime] = utcnow,
) -> GoogleMeetIntegration:
    """Build connector, store, flow and token manager sharing one cipher."""
    cipher = TokenCipher(oauth_config.encryption_key)
    connector = GoogleMeetConnector(oauth_config, transport=transport)
    store = CredentialStore(session_factory)
    metrics = OAuthMetrics(connector.provider_name)

    integration = GoogleMeetIntegration(
        connector=connector,
        store=store,
        flow=OAuthFlow(connector, store, cipher, metrics=metrics, clock=clock),
        tokens=TokenManager(connector, store, cipher, metrics=metrics, clock=clock),
    )
    logger.info("Connector registered: %s (%s)", connector.display_name, connector.provider_name)
    return integration
