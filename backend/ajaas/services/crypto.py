"""Field-level encryption for sensitive schedule columns.

Ciphertext format (base64url, no padding): IV (16 bytes) || auth tag (16 bytes) || ciphertext.
"""

import binascii
import logging
import secrets
from base64 import urlsafe_b64decode, urlsafe_b64encode

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16

# Minimum length for encrypted data: IV + auth tag (empty plaintext)
MIN_ENCRYPTED_LENGTH = IV_LENGTH + AUTH_TAG_LENGTH


class CryptoError(Exception):
    """Base exception for cryptographic operations."""


class InvalidKeyError(CryptoError):
    """Raised when the operator-supplied secret cannot produce a key."""


def derive_key(secret: str) -> bytes:
    """Derive an AES-256 key from an operator-supplied secret.

    The secret is UTF-8 encoded, truncated to 32 bytes and NUL-padded when
    shorter. This is not a KDF: a low-entropy secret yields a low-entropy key.

    Raises:
        InvalidKeyError: If the secret is empty.
    """
    if not secret:
        raise InvalidKeyError("Encryption key must not be empty")

    raw = secret.encode("utf-8")
    if len(raw) < KEY_LENGTH:
        logger.warning(
            f"Encryption key is {len(raw)} bytes, padding to {KEY_LENGTH}. "
            f'Generate a stronger key with: python -c "import secrets; print(secrets.token_urlsafe(32))"'
        )
        return raw.ljust(KEY_LENGTH, b"\0")
    return raw[:KEY_LENGTH]


def _b64encode(data: bytes) -> str:
    return urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    return urlsafe_b64decode(value + "=" * (-len(value) % 4))


def encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt a string with AES-256-GCM under a fresh random IV.

    Returns: base64url(IV || tag || ciphertext)
    """
    iv = secrets.token_bytes(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)

    # AESGCM appends the tag; the stored layout puts it before the ciphertext
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return _b64encode(iv + tag + ciphertext)


def decrypt(encrypted: str, key: bytes) -> str | None:
    """Decrypt a value produced by encrypt().

    Returns None for empty, malformed, truncated or tampered input and for
    ciphertext produced under a different key. The cause is not reported.
    """
    if not encrypted:
        return None

    try:
        combined = _b64decode(encrypted)
    except (binascii.Error, ValueError):
        return None

    if len(combined) < MIN_ENCRYPTED_LENGTH:
        return None

    iv = combined[:IV_LENGTH]
    tag = combined[IV_LENGTH:MIN_ENCRYPTED_LENGTH]
    ciphertext = combined[MIN_ENCRYPTED_LENGTH:]

    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError):
        return None


class FieldCodec:
    """Encrypts and decrypts individual column values at the store boundary.

    Without a key, values pass through unchanged (plaintext mode).
    """

    def __init__(self, key: bytes | None):
        self._key = key

    @classmethod
    def from_secret(cls, secret: str | None) -> "FieldCodec":
        if not secret:
            logger.warning(
                "No data encryption key configured - sensitive schedule fields "
                "will be stored as plaintext"
            )
            return cls(None)
        return cls(derive_key(secret))

    @property
    def enabled(self) -> bool:
        return self._key is not None

    def encode(self, value: str | None) -> str | None:
        if value is None or self._key is None:
            return value
        return encrypt(value, self._key)

    def decode(self, value: str | None) -> str | None:
        if value is None or self._key is None:
            return value
        plaintext = decrypt(value, self._key)
        if plaintext is None:
            # Rows written before encryption was enabled are returned as-is
            logger.debug("Field could not be decrypted, returning stored value")
            return value
        return plaintext
