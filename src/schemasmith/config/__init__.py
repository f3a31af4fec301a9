"""SchemaSmith configuration models."""

from .models import (
    BaseConfig,
    ConnectionConfig,
    EncryptionConfig,
    LoggingConfig,
    RegistryConfig,
    SystemConfig,
)

__all__ = [
    "BaseConfig",
    "ConnectionConfig",
    "EncryptionConfig",
    "LoggingConfig",
    "RegistryConfig",
    "SystemConfig",
]
