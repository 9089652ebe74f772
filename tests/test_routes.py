"""
Tests for the Google Meet HTTP routes.
"""

import logging

import httpx
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from config.settings import Settings
from connectors.exceptions import ConfigurationError
from main import create_app
from tests.conftest import FakeGoogle, state_from


def _settings(tmp_path, **overrides) -> Settings:
    values = dict(
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        google_redirect_uri="http://testserver/api/v1/google-meet/callback",
        token_encryption_key="00" * 32,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'routes.db'}",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def client(tmp_path, fake_google):
    app = create_app(_settings(tmp_path), transport=httpx.MockTransport(fake_google))

    @app.middleware("http")
    async def header_auth(request: Request, call_next):
        # Stands in for the host application's authentication layer.
        user_id = request.headers.get("X-User-Id")
        if user_id:
            request.state.user_id = user_id
        return await call_next(request)

    with TestClient(app) as test_client:
        yield test_client


def _connect(client, user_id="alice"):
    auth_url = client.get("/api/v1/google-meet/auth-url", headers={"X-User-Id": user_id}).json()["auth_url"]
    return client.get(
        "/api/v1/google-meet/callback",
        params={"code": "code-1", "state": state_from(auth_url)},
    )


class TestRoutes:
    def test_create_app_fails_fast_without_key(self, tmp_path):
        with pytest.raises(ConfigurationError):
            create_app(_settings(tmp_path, token_encryption_key=""))

    def test_create_app_configures_logging(self, tmp_path):
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        create_app(_settings(tmp_path))
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_auth_url_requires_authentication(self, client):
        assert client.get("/api/v1/google-meet/auth-url").status_code == 401

    def test_auth_url(self, client):
        resp = client.get("/api/v1/google-meet/auth-url", headers={"X-User-Id": "alice"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["provider"] == "google_meet"
        assert body["auth_url"].startswith("https://accounts.google.com/o/oauth2/v2/auth?")

    def test_callback_connects_user(self, client):
        resp = _connect(client)
        assert resp.status_code == 200
        assert "Connected!" in resp.text

        status_resp = client.get("/api/v1/google-meet/token", headers={"X-User-Id": "alice"})
        assert status_resp.json()["connected"] is True
        assert status_resp.json()["tokenValid"] is True
        assert "access-1" not in status_resp.text

    def test_callback_with_bad_state_shows_retry(self, client):
        resp = client.get("/api/v1/google-meet/callback", params={"code": "c", "state": "garbage"})
        assert resp.status_code == 200
        assert "Failed" in resp.text
        assert "retry connecting" in resp.text

    def test_callback_requires_code_and_state(self, client):
        assert client.get("/api/v1/google-meet/callback").status_code == 400

    def test_callback_with_provider_error(self, client, fake_google):
        resp = client.get("/api/v1/google-meet/callback", params={"error": "access_denied"})
        assert resp.status_code == 200
        assert "Failed" in resp.text
        assert fake_google.requests == []

    def test_status_for_never_connected_user(self, client):
        resp = client.get("/api/v1/google-meet/token", headers={"X-User-Id": "nobody"})
        assert resp.json() == {"connected": False, "tokenValid": False, "expiresAt": None}

    def test_disconnect(self, client, fake_google):
        _connect(client)

        resp = client.post("/api/v1/google-meet/disconnect", headers={"X-User-Id": "alice"})
        assert resp.json() == {"success": True}
        assert len(fake_google.revoke_calls) == 1

        status_resp = client.get("/api/v1/google-meet/token", headers={"X-User-Id": "alice"})
        assert status_resp.json()["connected"] is False

    def test_disconnect_when_not_connected(self, client):
        resp = client.post("/api/v1/google-meet/disconnect", headers={"X-User-Id": "alice"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    def test_callback_posts_to_own_origin_by_default(self, client):
        resp = _connect(client)
        assert "}, window.location.origin);" in resp.text

    def test_callback_posts_to_configured_frontend_origin(self, tmp_path, fake_google):
        app = create_app(
            _settings(tmp_path, frontend_origin="https://app.example"),
            transport=httpx.MockTransport(fake_google),
        )
        with TestClient(app) as test_client:
            resp = test_client.get("/api/v1/google-meet/callback", params={"error": "access_denied"})
        assert '}, "https://app.example");' in resp.text
        assert "window.location.origin" not in resp.text
