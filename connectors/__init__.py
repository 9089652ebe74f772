"""
connectors — OAuth integration module for external services.

Handles, per provider:
  • OAuth2 auth-URL generation with a CSRF state parameter
  • Callback handling (code → token exchange)
  • Per-user token storage & refresh ahead of expiry
  • AES-256 encryption of tokens at rest
  • Revocation / disconnect

Google Meet is the only provider wired today (see ``connectors.factory``).
"""
