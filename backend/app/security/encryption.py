"""Encryption at rest for insurance member identifiers.

Member ids are stored as ``enc:<urlsafe base64(nonce + ciphertext)>``. The
nonce is derived from the plaintext, so equal ids encrypt to equal tokens and
remain usable in equality filters.
"""

from __future__ import annotations

import base64
import binascii
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from sqlalchemy.types import String, TypeDecorator

from app.core.config import get_settings

TOKEN_PREFIX = "enc:"
_NONCE_BYTES = 12
_MIN_KEY_BYTES = 32
_HKDF_SALT = b"vision-pos-member-id"


class EncryptionKeyError(RuntimeError):
    """Raised when APP_ENCRYPTION_KEY is missing or malformed."""


def decode_master_key(raw: str | bytes | None) -> bytes:
    """Decode a base64 (standard or urlsafe) master key."""

    if not raw:
        raise EncryptionKeyError("APP_ENCRYPTION_KEY must be configured")
    data = raw.encode("ascii") if isinstance(raw, str) else raw
    for decode in (base64.urlsafe_b64decode, base64.b64decode):
        try:
            key = decode(data)
        except (binascii.Error, ValueError):
            continue
        if len(key) >= _MIN_KEY_BYTES:
            return key
    raise EncryptionKeyError(
        f"APP_ENCRYPTION_KEY must be base64 for at least {_MIN_KEY_BYTES} bytes"
    )


class IdentifierCipher:
    """AES-GCM with a plaintext-derived nonce."""

    def __init__(self, master_key: bytes) -> None:
        derived = HKDF(
            algorithm=hashes.SHA256(), length=64, salt=_HKDF_SALT, info=b"member-id"
        ).derive(master_key)
        self._aead = AESGCM(derived[:32])
        self._nonce_key = derived[32:]

    def _nonce(self, data: bytes) -> bytes:
        mac = hmac.HMAC(self._nonce_key, hashes.SHA256())
        mac.update(data)
        return mac.finalize()[:_NONCE_BYTES]

    def encrypt(self, plain: str) -> str:
        data = plain.encode("utf-8")
        nonce = self._nonce(data)
        blob = nonce + self._aead.encrypt(nonce, data, None)
        return TOKEN_PREFIX + base64.urlsafe_b64encode(blob).decode("ascii")

    def decrypt(self, token: str) -> str | None:
        """Return the plaintext; legacy unprefixed values pass through."""
        if not token.startswith(TOKEN_PREFIX):
            return token
        try:
            blob = base64.urlsafe_b64decode(token[len(TOKEN_PREFIX) :])
        except (binascii.Error, ValueError):
            return None
        if len(blob) <= _NONCE_BYTES:
            return None
        try:
            data = self._aead.decrypt(blob[:_NONCE_BYTES], blob[_NONCE_BYTES:], None)
        except InvalidTag:
            return None
        return data.decode("utf-8")


@lru_cache
def get_cipher() -> IdentifierCipher:
    return IdentifierCipher(decode_master_key(get_settings().app_encryption_key))


def mask_identifier(value: str | None, visible: int = 4) -> str | None:
    """Replace all but the last ``visible`` characters with ``*``."""
    if not value:
        return value
    hidden = max(len(value) - visible, 0)
    if hidden == 0:
        return "*" * len(value)
    return "*" * hidden + value[hidden:]


class EncryptedStr(TypeDecorator):
    """String column encrypted with :class:`IdentifierCipher`."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: str | None, dialect) -> str | None:
        if not value or value.startswith(TOKEN_PREFIX):
            return value
        return get_cipher().encrypt(value)

    def process_result_value(self, value: str | None, dialect) -> str | None:
        if not value:
            return value
        return get_cipher().decrypt(value)
