"""Connection-string encryption.

Connection strings are stored encrypted with AES-256-GCM. The key is either
a base64 encoded 32 byte key or a passphrase; passphrases are stretched with
PBKDF2-HMAC-SHA256 using a random salt stored alongside the ciphertext.

Payload layout before base64 encoding::

    mode (1) | salt length (1) | salt | nonce (12) | tag (16) | ciphertext
"""

import base64
import binascii
import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.exceptions import ConfigurationError, EncryptionKeyError, ErrorCodes
from ..logging import get_logger

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
SALT_SIZE = 16
PBKDF2_ITERATIONS = 100_000

MODE_RAW_KEY = 0
MODE_PASSPHRASE = 1


class ConnectionStringCrypto:
    """Encrypts and decrypts connection strings with a process-wide key.

    Args:
        key: Base64 encoded 32 byte key, or a passphrase

    Raises:
        EncryptionKeyError: If the key is missing or blank

    Example:
        >>> crypto = ConnectionStringCrypto("correct horse battery staple")
        >>> token = crypto.encrypt("Data Source=app.db")
        >>> crypto.decrypt(token)
        'Data Source=app.db'
    """

    def __init__(self, key: Optional[str]) -> None:
        if key is None or not key.strip():
            raise EncryptionKeyError(
                "An encryption key is required to protect connection strings",
                code=ErrorCodes.ENCRYPTION_KEY_MISSING,
            )

        self.logger = get_logger("security.crypto")
        self._passphrase = key.strip().encode("utf-8")
        self._raw_key = self._decode_raw_key(key.strip())

    @staticmethod
    def _decode_raw_key(key: str) -> Optional[bytes]:
        try:
            decoded = base64.b64decode(key, validate=True)
        except (binascii.Error, ValueError):
            return None
        return decoded if len(decoded) == KEY_SIZE else None

    @staticmethod
    def generate_key() -> str:
        """Return a new random base64 encoded 32 byte key."""
        return base64.b64encode(os.urandom(KEY_SIZE)).decode("ascii")

    @property
    def uses_passphrase(self) -> bool:
        return self._raw_key is None

    def _derive(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        return kdf.derive(self._passphrase)

    def _key_for_encrypt(self) -> Tuple[int, bytes, bytes]:
        if self._raw_key is not None:
            return MODE_RAW_KEY, b"", self._raw_key
        salt = os.urandom(SALT_SIZE)
        return MODE_PASSPHRASE, salt, self._derive(salt)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a connection string.

        Args:
            plaintext: Connection string

        Returns:
            Base64 payload
        """
        mode, salt, key = self._key_for_encrypt()
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        # AESGCM appends the tag; the payload stores it ahead of the ciphertext
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        payload = bytes([mode, len(salt)]) + salt + nonce + tag + ciphertext
        return base64.b64encode(payload).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt a payload produced by :meth:`encrypt`.

        Raises:
            ConfigurationError: If the payload is malformed, was produced with
                another key or has been tampered with
        """
        try:
            payload = base64.b64decode(token, validate=True)
            mode, salt_length = payload[0], payload[1]
            offset = 2 + salt_length
            salt = payload[2:offset]
            nonce = payload[offset:offset + NONCE_SIZE]
            tag = payload[offset + NONCE_SIZE:offset + NONCE_SIZE + TAG_SIZE]
            ciphertext = payload[offset + NONCE_SIZE + TAG_SIZE:]
            if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
                raise ValueError("payload is truncated")

            if mode == MODE_RAW_KEY:
                if self._raw_key is None:
                    raise ValueError("payload was encrypted with a raw key")
                key = self._raw_key
            elif mode == MODE_PASSPHRASE:
                key = self._derive(salt)
            else:
                raise ValueError(f"unknown payload mode {mode}")

            plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (binascii.Error, IndexError, ValueError, InvalidTag) as e:
            raise ConfigurationError(
                "Failed to decrypt connection string",
                code=ErrorCodes.DECRYPTION_FAILED,
                cause=e,
            ) from e


def create_crypto(key: Optional[str]) -> Optional[ConnectionStringCrypto]:
    """Build a crypto helper, or None when no key is configured."""
    if key is None or not key.strip():
        return None
    return ConnectionStringCrypto(key)
