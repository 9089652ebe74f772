"""
OAuth ``state`` parameter helpers (CSRF protection).

The state is ``base64(json({"userId": ..., "timestamp": <epoch ms>}))`` so the
callback can recover who started the flow and when, without a server-side
session store.
"""

from __future__ import annotations

import binascii
import json
from base64 import b64decode, b64encode
from datetime import datetime, timedelta, timezone
from typing import Tuple

from connectors.exceptions import StateExpiredError, StateInvalidError

STATE_TTL = timedelta(minutes=5)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def create_state(user_id: str, now: datetime) -> str:
    """Create an opaque state string encoding user_id + issue time."""
    payload = json.dumps({"userId": user_id, "timestamp": _epoch_ms(now)})
    return b64encode(payload.encode("utf-8")).decode("ascii")


def decode_state(state: str) -> Tuple[str, datetime]:
    """Return ``(user_id, issued_at)``. Raises ``StateInvalidError``."""
    try:
        payload = json.loads(b64decode(state.encode("ascii"), validate=True))
        user_id = payload["userId"]
        issued_ms = payload["timestamp"]
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise StateInvalidError(f"Malformed OAuth state: {exc}") from exc

    if not isinstance(user_id, str) or not user_id:
        raise StateInvalidError("OAuth state carries no user id")
    if isinstance(issued_ms, bool) or not isinstance(issued_ms, (int, float)):
        raise StateInvalidError("OAuth state carries no timestamp")

    try:
        issued_at = datetime.fromtimestamp(issued_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise StateInvalidError(f"OAuth state timestamp out of range: {exc}") from exc
    return user_id, issued_at


def verify_state(state: str, now: datetime) -> str:
    """
    Verify state token, return user_id.

    Raises ``StateInvalidError`` or ``StateExpiredError``.
    """
    user_id, issued_at = decode_state(state)
    if now - issued_at > STATE_TTL:
        raise StateExpiredError("OAuth state expired, please retry connecting")
    return user_id
