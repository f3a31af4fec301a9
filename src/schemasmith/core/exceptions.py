"""SchemaSmith exception hierarchy.

This module defines the exception taxonomy used by every SchemaSmith
operation. Each exception carries an error code and structured context so
callers can map failures onto their own error surfaces.

Classes:
    SchemaSmithException: Base exception for all SchemaSmith operations
    ArgumentError: Malformed or missing input
    QueryValidationError: Invalid query identifiers or operators
    NotFoundError: Referenced entity does not exist
    DuplicateError: Entity identity already exists
    UnsupportedOperationError: Provider cannot perform the operation
    EngineError: Database engine rejected the operation
    ConfigurationError: Configuration related errors
    EncryptionKeyError: Missing or unusable encryption key
    ConnectionError: Database connection errors

Example:
    >>> try:
    ...     await tables.get(context, "main", "Orders")
    ... except NotFoundError as e:
    ...     logger.warning("Missing table", error_code=e.code, context=e.context)
"""

from typing import Any, Dict, Optional


class SchemaSmithException(Exception):
    """Base exception for all SchemaSmith operations.

    Attributes:
        code: Unique error code for categorization
        context: Additional context information about the error
        cause: Original exception that caused this error (if any)

    Example:
        >>> raise SchemaSmithException(
        ...     "Operation failed",
        ...     code="OPERATION_FAILED",
        ...     context={"datasource_id": "main"}
        ... )
    """

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize SchemaSmith exception.

        Args:
            message: Human-readable error description
            code: Unique error code for categorization (defaults to class name)
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[Exception] = cause

    def __str__(self) -> str:
        """Return formatted error message with code."""
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r}, "
            f"cause={self.cause!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class ArgumentError(SchemaSmithException):
    """Malformed or missing required input.

    Raised before any I/O takes place, e.g. for an empty datasource id,
    a missing request object or an empty schema name.
    """
    pass


class QueryValidationError(ArgumentError):
    """Query request validation errors.

    Raised when a filter, sort or select clause references an unknown
    column or an unsupported operator.
    """
    pass


class _EntityError(SchemaSmithException):
    """Shared base for errors that refer to a named entity."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        context = dict(context or {})
        if entity_type:
            context.setdefault("entity_type", entity_type)
        if entity_name:
            context.setdefault("entity_name", entity_name)
        super().__init__(message, code=code, context=context, cause=cause)
        self.entity_type = entity_type
        self.entity_name = entity_name


class NotFoundError(_EntityError):
    """Referenced entity does not exist.

    Covers datasources, schemas, tables, views, columns, indexes and
    constraints.
    """
    pass


class DuplicateError(_EntityError):
    """Attempted creation of an entity whose identity already exists."""
    pass


class UnsupportedOperationError(SchemaSmithException):
    """Operation requested against a provider that cannot perform it."""
    pass


class EngineError(SchemaSmithException):
    """Database engine rejected the operation.

    The failing statement is available in ``context["sql"]`` and the
    driver exception in ``cause``.
    """
    pass


class ConfigurationError(SchemaSmithException):
    """Configuration related errors.

    Raised when configuration is invalid, missing, or cannot be processed.
    """
    pass


class EncryptionKeyError(ConfigurationError):
    """Encryption key is missing or unusable."""
    pass


class ConnectionError(SchemaSmithException):
    """Database connection errors.

    Raised when a connection cannot be established or has been closed.
    """
    pass


class ErrorCodes:
    """Common error codes for SchemaSmith exceptions."""

    # Argument errors
    ARGUMENT_REQUIRED = "ARGUMENT_REQUIRED"
    ARGUMENT_INVALID = "ARGUMENT_INVALID"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_FILTER = "INVALID_FILTER"
    INVALID_SORT = "INVALID_SORT"
    INVALID_SELECT = "INVALID_SELECT"

    # Entity errors
    DATASOURCE_NOT_FOUND = "DATASOURCE_NOT_FOUND"
    SCHEMA_NOT_FOUND = "SCHEMA_NOT_FOUND"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    VIEW_NOT_FOUND = "VIEW_NOT_FOUND"
    COLUMN_NOT_FOUND = "COLUMN_NOT_FOUND"
    INDEX_NOT_FOUND = "INDEX_NOT_FOUND"
    CONSTRAINT_NOT_FOUND = "CONSTRAINT_NOT_FOUND"
    OBJECT_NOT_FOUND = "OBJECT_NOT_FOUND"
    DUPLICATE_DATASOURCE = "DUPLICATE_DATASOURCE"
    DUPLICATE_OBJECT = "DUPLICATE_OBJECT"

    # Provider errors
    PROVIDER_UNSUPPORTED = "PROVIDER_UNSUPPORTED"
    OPERATION_UNSUPPORTED = "OPERATION_UNSUPPORTED"

    # Engine errors
    QUERY_EXECUTION_FAILED = "QUERY_EXECUTION_FAILED"
    METADATA_EXTRACTION_FAILED = "METADATA_EXTRACTION_FAILED"
    QUERY_TIMEOUT = "QUERY_TIMEOUT"

    # Connection errors
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    CONNECTION_CLOSED = "CONNECTION_CLOSED"
    CONNECTION_STRING_INVALID = "CONNECTION_STRING_INVALID"
    CONNECTION_STRING_UNAVAILABLE = "CONNECTION_STRING_UNAVAILABLE"

    # Configuration errors
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"
    ENCRYPTION_KEY_MISSING = "ENCRYPTION_KEY_MISSING"
    DECRYPTION_FAILED = "DECRYPTION_FAILED"

    # Lifecycle errors
    INIT_FAILED = "INIT_FAILED"
    REGISTRY_WRITE_FAILED = "REGISTRY_WRITE_FAILED"
