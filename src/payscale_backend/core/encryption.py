# PUBLIC_INTERFACE
"""
Field-level encryption for personnel data at rest.

Each value is encrypted with AES-256-CBC under a key derived per call with
PBKDF2-HMAC-SHA256 from the master key and a random salt. The stored payload is
base64(salt | iv | ciphertext), so it carries everything needed to decrypt it
except the master key.

hash() gives a deterministic SHA-256 digest for values that must be searchable
while staying encrypted: index the digest, never the plaintext.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
from functools import lru_cache
from typing import Any, Dict, Iterable, Mapping, Optional

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptionError, EncryptionError
from .logging import get_logger
from .observability import increment_metric
from .settings import DEFAULT_ENCRYPTION_KEY, get_settings

logger = get_logger(__name__)

KEY_SIZE = 32  # AES-256
IV_SIZE = 16  # AES block size, required by CBC
MIN_KEY_LENGTH = 32
SELF_TEST_TEXT = "မြန်မာစာ test 123"

# Fields that should be encrypted, per record kind
ENCRYPTED_FIELDS: Dict[str, tuple[str, ...]] = {
    "personnel": ("personnel_id", "assigned_duties"),
    "audit": ("old_data", "new_data"),
    "personnel_grade": ("personnel_id",),
}


class EncryptionService:
    """Encrypts, decrypts and hashes individual string fields."""

    def __init__(self, secret: str, salt_size: int = 16, iterations: int = 10_000):
        self._secret = secret
        self._master_key = hashlib.sha256(secret.encode("utf-8")).digest()
        self.salt_size = salt_size
        self.iterations = iterations

    # PUBLIC_INTERFACE
    @classmethod
    def from_settings(cls) -> "EncryptionService":
        """Build the service from ENCRYPTION_* settings."""
        security = get_settings().security
        return cls(
            security.ENCRYPTION_KEY,
            salt_size=security.ENCRYPTION_SALT_SIZE,
            iterations=security.PBKDF2_ITERATIONS,
        )

    @property
    def header_size(self) -> int:
        return self.salt_size + IV_SIZE

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_SIZE, salt=salt, iterations=self.iterations)
        return kdf.derive(self._master_key)

    # PUBLIC_INTERFACE
    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string; every call yields a different payload for the same input."""
        try:
            salt = secrets.token_bytes(self.salt_size)
            iv = secrets.token_bytes(IV_SIZE)
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = Cipher(algorithms.AES(self._derive_key(salt)), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except (TypeError, ValueError, AttributeError) as exc:
            logger.error("Encryption failed: %s", type(exc).__name__)
            raise EncryptionError("Failed to encrypt data") from exc
        increment_metric("encrypt_total")
        return base64.b64encode(salt + iv + ciphertext).decode("ascii")

    # PUBLIC_INTERFACE
    def decrypt(self, payload: str) -> str:
        """Decrypt a payload produced by encrypt(); raises DecryptionError on any malformed input."""
        increment_metric("decrypt_total")
        try:
            if not isinstance(payload, str):
                raise TypeError(f"payload must be str, got {type(payload).__name__}")
            raw = base64.b64decode(payload.encode("ascii"), validate=True)
            body_len = len(raw) - self.header_size
            if body_len <= 0 or body_len % IV_SIZE:
                raise ValueError("payload has an invalid length")

            salt = raw[: self.salt_size]
            iv = raw[self.salt_size : self.header_size]
            ciphertext = raw[self.header_size :]

            decryptor = Cipher(algorithms.AES(self._derive_key(salt)), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except (TypeError, ValueError, binascii.Error) as exc:
            # UnicodeEncodeError/UnicodeDecodeError are ValueErrors too. Never log the payload.
            increment_metric("decrypt_failures_total")
            logger.warning("Decryption failed: %s", type(exc).__name__)
            raise DecryptionError("Failed to decrypt data") from exc

    # PUBLIC_INTERFACE
    def hash(self, data: str) -> str:
        """One-way SHA-256 hex digest of data concatenated with the raw secret."""
        return hashlib.sha256((data + self._secret).encode("utf-8")).hexdigest()

    # PUBLIC_INTERFACE
    def matches_hash(self, data: str, digest: str) -> bool:
        """Constant-time check of data against a digest produced by hash()."""
        return hmac.compare_digest(self.hash(data), digest)

    # PUBLIC_INTERFACE
    def secure_compare(self, encrypted1: str, encrypted2: str) -> bool:
        """Compare the plaintexts behind two payloads; False if either cannot be decrypted."""
        try:
            left = self.decrypt(encrypted1).encode("utf-8")
            right = self.decrypt(encrypted2).encode("utf-8")
        except DecryptionError:
            return False
        return hmac.compare_digest(left, right)

    # PUBLIC_INTERFACE
    @staticmethod
    def generate_secure_id() -> str:
        """Random 128-bit identifier, hex encoded."""
        return secrets.token_hex(16)

    def encrypt_personnel_id(self, personnel_id: str) -> str:
        return self.encrypt(personnel_id)

    def decrypt_personnel_id(self, encrypted_id: str) -> str:
        return self.decrypt(encrypted_id)

    def encrypt_duties(self, duties: str) -> str:
        return self.encrypt(duties)

    def decrypt_duties(self, encrypted_duties: str) -> str:
        return self.decrypt(encrypted_duties)

    # PUBLIC_INTERFACE
    def validate_key_strength(self) -> bool:
        """Warn (never fail) when the configured secret is the default or too short."""
        if self._secret == DEFAULT_ENCRYPTION_KEY:
            logger.warning("Using default encryption key! Set ENCRYPTION_KEY in production.")
            return False
        if len(self._secret) < MIN_KEY_LENGTH:
            logger.warning("Encryption key is too short. Use at least %d characters.", MIN_KEY_LENGTH)
            return False
        return True

    # PUBLIC_INTERFACE
    def initialize(self) -> bool:
        """Run the startup self-test: key advisory, then an encrypt/decrypt round trip."""
        self.validate_key_strength()
        try:
            if self.decrypt(self.encrypt(SELF_TEST_TEXT)) != SELF_TEST_TEXT:
                logger.error("Encryption self-test failed: round trip mismatch")
                return False
        except (EncryptionError, DecryptionError):
            logger.exception("Encryption service initialization failed")
            return False
        logger.info("Encryption service initialized successfully")
        return True


@lru_cache(maxsize=1)
def get_encryption_service() -> EncryptionService:
    """Process-wide encryption service built from settings."""
    return EncryptionService.from_settings()


# PUBLIC_INTERFACE
def encrypt_form_data(
    data: Mapping[str, Any],
    fields_to_encrypt: Iterable[str],
    service: Optional[EncryptionService] = None,
) -> Dict[str, Any]:
    """Return a copy of data with the named non-empty string fields encrypted."""
    service = service or get_encryption_service()
    result = dict(data)
    for field in fields_to_encrypt:
        value = result.get(field)
        if value and isinstance(value, str):
            result[field] = service.encrypt(value)
    return result


# PUBLIC_INTERFACE
def decrypt_form_data(
    data: Mapping[str, Any],
    fields_to_decrypt: Iterable[str],
    service: Optional[EncryptionService] = None,
) -> Dict[str, Any]:
    """Return a copy of data with the named fields decrypted.

    A field that fails to decrypt keeps its original (still encrypted) value so
    that partially readable records can still be shown.
    """
    service = service or get_encryption_service()
    result = dict(data)
    for field in fields_to_decrypt:
        value = result.get(field)
        if value and isinstance(value, str):
            try:
                result[field] = service.decrypt(value)
            except DecryptionError:
                logger.error("Failed to decrypt field %s", field)
    return result
