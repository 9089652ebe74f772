"""
Token encryption — encrypt / decrypt OAuth tokens at rest.

Uses AES-256-CBC with PKCS7 padding from the ``cryptography`` library.
Every call to ``encrypt`` draws a fresh 16-byte IV; the stored form is::

    <hex(iv)>:<hex(ciphertext)>

The 32-byte key comes from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).  There is no plaintext fallback and no
key versioning: a record written under another key cannot be read back.
"""

from __future__ import annotations

import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from connectors.exceptions import ConfigurationError, DecryptionError

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 16
_BLOCK_BITS = algorithms.AES.block_size


class TokenCipher:
    """Symmetric cipher for opaque secret strings."""

    def __init__(self, key: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
            raise ConfigurationError(f"Encryption key must be exactly {KEY_SIZE} bytes")
        self._key = bytes(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token string for database storage."""
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a token string read from the database.

        Raises ``DecryptionError`` for truncated or malformed input and for
        ciphertext produced under a different key.
        """
        parts = ciphertext.split(":") if isinstance(ciphertext, str) else []
        if len(parts) != 2:
            raise DecryptionError("Ciphertext must have the form '<iv>:<data>'")

        try:
            iv = bytes.fromhex(parts[0])
            data = bytes.fromhex(parts[1])
        except ValueError as exc:
            raise DecryptionError("Ciphertext is not valid hex") from exc

        if len(iv) != IV_SIZE:
            raise DecryptionError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
        if not data or len(data) % (_BLOCK_BITS // 8):
            raise DecryptionError("Ciphertext length is not a multiple of the block size")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(data) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            raw = unpadder.update(padded) + unpadder.finalize()
            return raw.decode("utf-8")
        except ValueError as exc:
            # Bad padding or non-UTF-8 output both mean a key mismatch or tampering.
            raise DecryptionError("Ciphertext could not be decrypted with the configured key") from exc
