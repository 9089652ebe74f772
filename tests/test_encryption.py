"""
Tests for token encryption at rest.
"""

import pytest

from connectors.encryption import TokenCipher
from connectors.exceptions import ConfigurationError, DecryptionError

KEY = bytes(range(32))


class TestTokenCipher:
    def test_round_trip(self):
        cipher = TokenCipher(KEY)
        for value in ["ya29.a0Af-token", "", "ünïcødé ✓", "x" * 1000]:
            assert cipher.decrypt(cipher.encrypt(value)) == value

    def test_fresh_iv_per_call(self):
        cipher = TokenCipher(KEY)
        first = cipher.encrypt("same-token")
        second = cipher.encrypt("same-token")
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]
        assert cipher.decrypt(first) == cipher.decrypt(second) == "same-token"

    def test_output_is_hex_iv_colon_hex_data(self):
        encrypted = TokenCipher(KEY).encrypt("token")
        iv_hex, data_hex = encrypted.split(":")
        assert len(bytes.fromhex(iv_hex)) == 16
        assert len(bytes.fromhex(data_hex)) % 16 == 0
        assert "token" not in encrypted

    @pytest.mark.parametrize(
        "bad",
        [
            "",
            "no-delimiter",
            "aa:bb:cc",
            "zz" * 16 + ":" + "00" * 16,
            "00" * 8 + ":" + "00" * 16,
            "00" * 16 + ":" + "00" * 15,
            "00" * 16 + ":",
        ],
    )
    def test_malformed_input_raises(self, bad):
        with pytest.raises(DecryptionError):
            TokenCipher(KEY).decrypt(bad)

    def test_truncated_ciphertext_raises(self):
        encrypted = TokenCipher(KEY).encrypt("a-long-enough-token-value-for-two-blocks")
        with pytest.raises(DecryptionError):
            TokenCipher(KEY).decrypt(encrypted[:-32])

    def test_wrong_key_raises(self):
        encrypted = TokenCipher(KEY).encrypt("refresh-token")
        with pytest.raises(DecryptionError):
            TokenCipher(bytes(reversed(KEY))).decrypt(encrypted)

    @pytest.mark.parametrize("key", [b"", b"short", bytes(31), bytes(33)])
    def test_key_must_be_32_bytes(self, key):
        with pytest.raises(ConfigurationError):
            TokenCipher(key)
