"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request, status

from connectors.factory import GoogleMeetIntegration


async def get_current_user_id(request: Request) -> str:
    """
    Return the authenticated ``user_id``.

    The host application's authentication middleware is expected to set
    ``request.state.user_id``; identities are never created here.
    """
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return str(user_id)


async def get_google_meet(request: Request) -> GoogleMeetIntegration:
    """The integration wired at startup."""
    integration = getattr(request.app.state, "google_meet", None)
    if integration is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google Meet integration is not configured",
        )
    return integration


async def get_frontend_origin(request: Request) -> Optional[str]:
    """Origin the OAuth popup reports back to; None means the API's own origin."""
    return getattr(request.app.state, "frontend_origin", None)
