"""Fernet encryption for conversation text at rest.

Message text in the persisted history is encrypted before it reaches
SQLite. Levels, domains and scores stay in clear columns so preference
records can be warm-started without decrypting anything.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts JSON-serializable values with Fernet, with optional key rotation.

    The first key encrypts; every key is tried on decrypt, so tokens written
    under a retired key stay readable until :meth:`rotate` re-encrypts them.

    Usage::

        encryptor = FieldEncryptor(key, previous_keys=[old_key])
        token = encryptor.encrypt({"input": "hi", "output": "Hi."})
        encryptor.decrypt(token)  # {"input": "hi", "output": "Hi."}
    """

    def __init__(self, key: str, previous_keys: list[str] | None = None) -> None:
        """Initialize with the active key and any retired keys.

        Raises:
            EncryptionError: If a key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            fernets = [Fernet(k.encode()) for k in [key, *(previous_keys or [])]]
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        self._fernet = MultiFernet(fernets)

    def encrypt(self, data: Any) -> str:
        """Encrypt a JSON-serializable value to a token string ("" for None)."""
        if data is None:
            return ""
        try:
            plaintext = json.dumps(data, separators=(",", ":")).encode("utf-8")
            return self._fernet.encrypt(plaintext).decode("utf-8")
        except Exception as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc

    def decrypt(self, token: str) -> Any:
        """Decrypt a token string back to the original value (None for "")."""
        if not token:
            return None
        try:
            return json.loads(self._fernet.decrypt(token.encode("utf-8")))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        except Exception as exc:
            raise EncryptionError(f"Decryption failed: {exc}") from exc

    def rotate(self, token: str) -> str:
        """Re-encrypt ``token`` under the active key."""
        if not token:
            return ""
        try:
            return self._fernet.rotate(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Rotation failed: token not readable with any key") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")
