"""
Exception taxonomy for the OAuth integration.
"""

from __future__ import annotations


class OAuthIntegrationError(Exception):
    """Base exception for the OAuth integration."""
    pass


class ConfigurationError(OAuthIntegrationError):
    """Missing or invalid client id / secret / redirect URI / encryption key."""
    pass


class StateInvalidError(OAuthIntegrationError):
    """Callback ``state`` parameter could not be decoded."""
    pass


class StateExpiredError(OAuthIntegrationError):
    """Callback ``state`` parameter is older than the allowed window."""
    pass


class TokenExchangeError(OAuthIntegrationError):
    """Provider did not grant the required access + refresh token pair."""
    pass


class RefreshFailure(OAuthIntegrationError):
    """Refresh call failed or the grant was revoked upstream."""
    pass


class DecryptionError(OAuthIntegrationError):
    """Stored ciphertext is malformed or was produced with another key."""
    pass


class StoreError(OAuthIntegrationError):
    """Underlying persistence failure."""
    pass
