"""
Tagged results returned by the OAuth flow and the token manager.

Fallible operations return ``Ok(value=...)`` or ``Err(kind=..., message=...)``
so callers branch on ``result.ok`` and ``result.kind`` instead of catching
a generic exception.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel


class FailureKind(str, Enum):
    NOT_CONNECTED = "not_connected"
    STATE_INVALID = "state_invalid"
    STATE_EXPIRED = "state_expired"
    TOKEN_EXCHANGE = "token_exchange"
    REFRESH_FAILED = "refresh_failed"
    DECRYPTION_FAILED = "decryption_failed"
    STORE = "store"


class Ok(BaseModel):
    ok: Literal[True] = True
    value: Any = None


class Err(BaseModel):
    ok: Literal[False] = False
    kind: FailureKind
    message: str


Result = Union[Ok, Err]


class CallbackResult(BaseModel):
    """Outcome of the OAuth redirect callback."""

    success: bool
    user_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None


class ConnectionStatus(BaseModel):
    """
    Non-mutating view of a user's integration.

    ``connected`` without ``token_valid`` lets the UI show "needs
    reauthorization" instead of "never connected".
    """

    connected: bool
    token_valid: bool = False
    expires_at: Optional[datetime] = None
