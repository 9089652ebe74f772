"""
Application settings loaded from environment variables.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel
from pydantic_settings import BaseSettings

from connectors.exceptions import ConfigurationError


class GoogleOAuthConfig(BaseModel):
    """Everything the Google Meet integration needs, validated once at wiring time."""

    client_id: str
    client_secret: str
    redirect_uri: str
    encryption_key: bytes

    model_config = {"frozen": True}


def parse_encryption_key(raw: str) -> bytes:
    """
    Turn the configured key into exactly 32 bytes.

    Accepts 64 hex characters or a 32-character string.
    """
    raw = raw.strip()
    if len(raw) == 64:
        try:
            return bytes.fromhex(raw)
        except ValueError:
            pass
    key = raw.encode("utf-8")
    if len(key) != 32:
        raise ConfigurationError(
            "TOKEN_ENCRYPTION_KEY must be 64 hex characters or a 32-byte string"
        )
    return key


class Settings(BaseSettings):
    # ── Google OAuth ────────────────────────────────────────────────────
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""       # e.g. https://school.example/api/v1/google-meet/callback

    # ── Security Secrets ──────────────────────────────────────────────────
    token_encryption_key: str = ""       # AES-256 key for OAuth tokens at rest

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./oauth_tokens.db"

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 8000
    host: str = "0.0.0.0"
    debug: bool = False

    # ── Frontend ─────────────────────────────────────────────────────────
    frontend_origin: str = ""           # opener origin for the OAuth popup, e.g. https://app.example

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    def google_oauth_config(self) -> GoogleOAuthConfig:
        """
        Build the Google Meet config, failing fast on anything missing.

        Raises ``ConfigurationError`` listing every absent variable; there is
        no fallback key.
        """
        required = {
            "GOOGLE_CLIENT_ID": self.google_client_id,
            "GOOGLE_CLIENT_SECRET": self.google_client_secret,
            "GOOGLE_REDIRECT_URI": self.google_redirect_uri,
            "TOKEN_ENCRYPTION_KEY": self.token_encryption_key,
        }
        missing: List[str] = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Google Meet integration is not configured, missing: {', '.join(missing)}"
            )
        return GoogleOAuthConfig(
            client_id=self.google_client_id,
            client_secret=self.google_client_secret,
            redirect_uri=self.google_redirect_uri,
            encryption_key=parse_encryption_key(self.token_encryption_key),
        )


config = Settings()
