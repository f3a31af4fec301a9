"""SchemaSmith core: exceptions, the lifecycle base class and utilities."""

from .base import AsyncComponent
from .exceptions import (
    ArgumentError,
    ConfigurationError,
    ConnectionError,
    DuplicateError,
    EncryptionKeyError,
    EngineError,
    ErrorCodes,
    NotFoundError,
    QueryValidationError,
    SchemaSmithException,
    UnsupportedOperationError,
)

__all__ = [
    "AsyncComponent",
    "ArgumentError",
    "ConfigurationError",
    "ConnectionError",
    "DuplicateError",
    "EncryptionKeyError",
    "EngineError",
    "ErrorCodes",
    "NotFoundError",
    "QueryValidationError",
    "SchemaSmithException",
    "UnsupportedOperationError",
]
