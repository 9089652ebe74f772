"""
Google Meet connector routes — auth URL, callback, status, disconnect.

Route prefix: /api/v1/google-meet
"""

from __future__ import annotations

import html
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from api.dependencies import get_current_user_id, get_frontend_origin, get_google_meet
from connectors.factory import GoogleMeetIntegration
from connectors.results import FailureKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["google-meet"])

_USER_MESSAGES = {
    FailureKind.STATE_EXPIRED: "The connection request expired. Please retry connecting.",
    FailureKind.STATE_INVALID: "The connection request was invalid. Please retry connecting.",
    FailureKind.TOKEN_EXCHANGE: "Google did not grant access. Please retry connecting.",
    FailureKind.STORE: "Your connection could not be saved. Please try again later.",
}


@router.get("/auth-url")
async def get_auth_url(
    user_id: str = Depends(get_current_user_id),
    integration: GoogleMeetIntegration = Depends(get_google_meet),
) -> Dict[str, str]:
    """
    Get the Google authorization URL for the current user.

    Frontend should open this URL in a popup window.
    """
    return {
        "auth_url": integration.flow.build_authorization_url(user_id),
        "provider": integration.flow.provider,
    }


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    integration: GoogleMeetIntegration = Depends(get_google_meet),
    frontend_origin: Optional[str] = Depends(get_frontend_origin),
) -> HTMLResponse:
    """
    OAuth callback — Google redirects here after consent.

    The user is identified by ``state``, not by a session, because the
    redirect may arrive in a popup without the app's auth header.
    """
    if error:
        logger.warning("Google returned an authorization error: %s", error)
        return HTMLResponse(_callback_html(False, "Authorization was cancelled or denied.", frontend_origin))
    if not code or not state:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing code or state")

    result = await integration.flow.handle_callback(code, state)
    if not result.success:
        message = _USER_MESSAGES.get(result.error_kind, "Connection failed. Please retry connecting.")
        return HTMLResponse(_callback_html(False, message, frontend_origin))

    return HTMLResponse(_callback_html(True, "Google Meet connected.", frontend_origin))


@router.get("/token")
async def token_status(
    user_id: str = Depends(get_current_user_id),
    integration: GoogleMeetIntegration = Depends(get_google_meet),
) -> Dict[str, Any]:
    """Connection status for the current user; never exposes token material."""
    current = await integration.tokens.get_connection_status(user_id)
    return {
        "connected": current.connected,
        "tokenValid": current.token_valid,
        "expiresAt": current.expires_at.isoformat() if current.expires_at else None,
    }


@router.post("/disconnect")
async def disconnect(
    user_id: str = Depends(get_current_user_id),
    integration: GoogleMeetIntegration = Depends(get_google_meet),
) -> Dict[str, bool]:
    """Revoke and delete the current user's Google Meet connection."""
    if not await integration.tokens.revoke(user_id):
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to disconnect Google Meet")
    return {"success": True}


# ── Callback HTML template ─────────────────────────────────────────────


def _callback_html(success: bool, message: str, target_origin: Optional[str] = None) -> str:
    """
    Small HTML page shown in the OAuth popup after redirect.
    Sends a postMessage to the opener and auto-closes.
    """
    status_text = "Connected!" if success else "Failed"
    color = "#16a34a" if success else "#dc2626"
    safe_message = html.escape(message)
    # JS literal; "<" escaped so the value cannot close the script tag.
    origin_js = json.dumps(target_origin).replace("<", "\\u003c") if target_origin else "window.location.origin"

    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Google Meet {status_text}</title>
    <style>
        body {{ font-family: system-ui, sans-serif; display: flex; align-items: center;
               justify-content: center; height: 100vh; margin: 0; }}
        h2 {{ color: {color}; }}
    </style>
</head>
<body>
    <div>
        <h2>{status_text}</h2>
        <p>{safe_message}</p>
    </div>
    <script>
        if (window.opener) {{
            window.opener.postMessage({{
                type: 'oauth-callback',
                provider: 'google_meet',
                success: {'true' if success else 'false'},
            }}, {origin_js});
        }}
        setTimeout(() => window.close(), 2000);
    </script>
</body>
</html>"""
