"""
Shared fixtures: fake Google endpoints, a controllable clock and a real
SQLite-backed credential store.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple
from urllib.parse import parse_qs, parse_qsl, urlparse

import httpx
import pytest
import pytest_asyncio

from config.settings import GoogleOAuthConfig
from connectors.factory import create_google_meet_integration
from database.session import create_engine_and_factory, init_models

TEST_KEY = bytes(range(32))
T0 = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGoogle:
    """``httpx.MockTransport`` handler standing in for Google's token endpoints."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.exchange_response: Tuple[int, Dict[str, Any]] = (
            200,
            {
                "access_token": "access-1",
                "refresh_token": "refresh-1",
                "expires_in": 3600,
                "token_type": "Bearer",
                "scope": "https://www.googleapis.com/auth/calendar https://www.googleapis.com/auth/calendar.events",
            },
        )
        self.refresh_response: Tuple[int, Dict[str, Any]] = (
            200,
            {"access_token": "access-2", "expires_in": 3600, "token_type": "Bearer"},
        )
        self.revoke_status = 200
        self.revoke_raises = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/token":
            form = dict(parse_qsl(request.content.decode()))
            if form.get("grant_type") == "authorization_code":
                status, body = self.exchange_response
            else:
                status, body = self.refresh_response
            return httpx.Response(status, json=body)
        if request.url.path == "/revoke":
            if self.revoke_raises:
                raise httpx.ConnectError("revoke endpoint unreachable", request=request)
            return httpx.Response(self.revoke_status)
        return httpx.Response(404)

    def forms(self, grant_type: str) -> List[Dict[str, str]]:
        out = []
        for request in self.requests:
            if request.url.path != "/token":
                continue
            form = dict(parse_qsl(request.content.decode()))
            if form.get("grant_type") == grant_type:
                out.append(form)
        return out

    @property
    def revoke_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/revoke"]


def state_from(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


@pytest.fixture
def oauth_config() -> GoogleOAuthConfig:
    return GoogleOAuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:3000/api/google-meet/callback",
        encryption_key=TEST_KEY,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine, factory = create_engine_and_factory(f"sqlite+aiosqlite:///{tmp_path / 'tokens.db'}")
    await init_models(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def integration(oauth_config, session_factory, google, clock):
    return create_google_meet_integration(
        oauth_config,
        session_factory,
        transport=httpx.MockTransport(google),
        clock=clock,
    )


@pytest_asyncio.fixture
async def connected(integration, clock):
    """Authorize user ``alice`` at T0; returns the integration."""
    url = integration.flow.build_authorization_url("alice")
    result = await integration.flow.handle_callback("code-alice", state_from(url))
    assert result.success
    return integration
