"""
Field encryption at rest.

Both directions are total: ``encrypt`` never raises and ``decrypt`` returns
its input unchanged when the value cannot be decrypted, so legacy plaintext
and corrupted ciphertext degrade to raw text instead of data loss.
"""

import base64
import binascii
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from .config import config
from .logging_utils import setup_logging

logger = setup_logging("field-encryption")

# Fernet tokens are urlsafe base64 of a 0x80 version byte, so they always start this way
FERNET_TOKEN_PREFIX = "gAAAAA"


def derive_key(secret: str) -> bytes:
    """Derive a Fernet key from an arbitrary-length secret."""
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def looks_like_ciphertext(value: str) -> bool:
    return value.startswith(FERNET_TOKEN_PREFIX)


class FieldCipher:
    """Encrypt and decrypt field text with a key derived from the configured secret."""

    def __init__(self, secret: str | None = None) -> None:
        secret = secret if secret is not None else config.get("encryption_secret")
        self._fernet: Fernet | None = Fernet(derive_key(secret)) if secret else None
        if self._fernet is None:
            logger.warning("Encryption secret not configured, field text is stored as plain text")

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, text: str) -> str:
        if not text:
            return ""
        if self._fernet is None:
            return text
        try:
            return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")
        except (TypeError, ValueError) as e:
            logger.error(f"Encryption error, storing plain text: {e}")
            return text

    def decrypt(self, cipher: str) -> str:
        if not cipher:
            return ""
        if self._fernet is None:
            return cipher
        try:
            return self._fernet.decrypt(cipher.encode("utf-8")).decode("utf-8")
        except (InvalidToken, binascii.Error, ValueError, UnicodeError):
            if looks_like_ciphertext(cipher):
                logger.warning("Ciphertext could not be decrypted, falling back to raw text")
            else:
                logger.debug("Value is not ciphertext, treating as legacy plain text")
            return cipher
