"""Connection-string protection."""

from .crypto import ConnectionStringCrypto, create_crypto

__all__ = ["ConnectionStringCrypto", "create_crypto"]
