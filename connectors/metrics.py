"""Prometheus metrics for the OAuth token lifecycle.

Metrics exported:
- oauth_authorizations_total: Counter of callback outcomes
- oauth_token_refreshes_total: Counter of refresh attempts
- oauth_revocations_total: Counter of disconnects, by upstream and local outcome
- oauth_errors_total: Counter of errors by type and operation

All metrics carry a ``provider`` label.  This module only emits; alerting
lives with whoever scrapes the registry.
"""

from __future__ import annotations

from prometheus_client import Counter

authorizations_total = Counter(
    "oauth_authorizations_total",
    "Total number of OAuth callback completions",
    labelnames=["provider", "status"],
)

token_refreshes_total = Counter(
    "oauth_token_refreshes_total",
    "Total number of access token refresh attempts",
    labelnames=["provider", "status"],
)

revocations_total = Counter(
    "oauth_revocations_total",
    "Total number of disconnects",
    labelnames=["provider", "upstream", "local"],
)

errors_total = Counter(
    "oauth_errors_total",
    "Total number of OAuth integration errors by type",
    labelnames=["provider", "error_type", "operation"],
)


class OAuthMetrics:
    """Metrics recorder bound to one provider."""

    def __init__(self, provider: str) -> None:
        self._provider = provider

    def record_authorization(self, status: str) -> None:
        """Record a callback outcome ("success", "state_expired", "token_exchange", ...)."""
        authorizations_total.labels(provider=self._provider, status=status).inc()

    def record_refresh(self, status: str) -> None:
        """Record a refresh attempt ("success" or "error")."""
        token_refreshes_total.labels(provider=self._provider, status=status).inc()

    def record_revocation(self, upstream: str, local: str) -> None:
        """Record a disconnect.

        Args:
            upstream: "revoked", "rejected", "error" or "skipped"
            local: "deleted", "absent" or "error"
        """
        revocations_total.labels(provider=self._provider, upstream=upstream, local=local).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        errors_total.labels(
            provider=self._provider,
            error_type=error_type,
            operation=operation,
        ).inc()
