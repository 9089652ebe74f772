"""
Tests for the OAuth state parameter.
"""

import json
from base64 import b64decode, b64encode
from datetime import timedelta

import pytest

from connectors.exceptions import StateExpiredError, StateInvalidError
from connectors.state import create_state, decode_state, verify_state
from tests.conftest import T0


def _raw_state(payload) -> str:
    return b64encode(json.dumps(payload).encode()).decode()


class TestState:
    def test_encodes_user_and_millisecond_timestamp(self):
        state = create_state("user-42", T0)
        payload = json.loads(b64decode(state))
        assert payload == {"userId": "user-42", "timestamp": int(T0.timestamp() * 1000)}

    def test_decode_recovers_user_and_issue_time(self):
        user_id, issued_at = decode_state(create_state("user-42", T0))
        assert user_id == "user-42"
        assert issued_at == T0

    def test_fresh_state_verifies(self):
        state = create_state("user-42", T0)
        assert verify_state(state, T0 + timedelta(minutes=4, seconds=59)) == "user-42"

    def test_exactly_five_minutes_is_still_accepted(self):
        state = create_state("user-42", T0)
        assert verify_state(state, T0 + timedelta(minutes=5)) == "user-42"

    def test_stale_state_expires(self):
        state = create_state("user-42", T0)
        with pytest.raises(StateExpiredError):
            verify_state(state, T0 + timedelta(minutes=6))

    @pytest.mark.parametrize(
        "state",
        [
            "",
            "not base64!!",
            b64encode(b"not json").decode(),
            _raw_state(["a", "list"]),
            _raw_state({"timestamp": 1}),
            _raw_state({"userId": "", "timestamp": 1}),
            _raw_state({"userId": "u", "timestamp": "yesterday"}),
            _raw_state({"userId": "u"}),
        ],
    )
    def test_malformed_state_is_invalid(self, state):
        with pytest.raises(StateInvalidError):
            verify_state(state, T0)
