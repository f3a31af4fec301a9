"""Unit tests for the SchemaSmith exception hierarchy.

This module tests the exception classes to ensure proper error reporting
and context management.
"""

import pytest

from schemasmith.core.exceptions import (
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


class TestSchemaSmithException:
    """Test base SchemaSmith exception class."""

    def test_basic_exception_creation(self):
        """Test basic exception creation with message only."""
        exc = SchemaSmithException("Test error message")

        assert str(exc) == "SchemaSmithException: Test error message"
        assert exc.code == "SchemaSmithException"
        assert exc.context == {}
        assert exc.cause is None

    def test_exception_with_custom_code(self):
        """Test exception creation with custom error code."""
        exc = SchemaSmithException("Test error", code="CUSTOM_ERROR")

        assert exc.code == "CUSTOM_ERROR"
        assert str(exc) == "CUSTOM_ERROR: Test error"

    def test_exception_with_context_and_cause(self):
        """Test exception creation with context and cause."""
        original_error = ValueError("Original error")
        exc = SchemaSmithException(
            "Wrapped error",
            context={"datasource_id": "main"},
            cause=original_error,
        )

        assert exc.context == {"datasource_id": "main"}
        assert exc.cause is original_error

    def test_to_dict(self):
        """Test exception serialization."""
        exc = SchemaSmithException(
            "Failure",
            code="X",
            context={"a": 1},
            cause=RuntimeError("boom"),
        )

        assert exc.to_dict() == {
            "error_type": "SchemaSmithException",
            "message": "Failure",
            "code": "X",
            "context": {"a": 1},
            "cause": "boom",
        }

    def test_repr_includes_fields(self):
        exc = SchemaSmithException("Failure", code="X")

        assert "message='Failure'" in repr(exc)
        assert "code='X'" in repr(exc)


class TestExceptionHierarchy:
    """Test the inheritance relationships callers rely on."""

    @pytest.mark.parametrize(
        "exception_class",
        [
            ArgumentError,
            QueryValidationError,
            NotFoundError,
            DuplicateError,
            UnsupportedOperationError,
            EngineError,
            ConfigurationError,
            EncryptionKeyError,
            ConnectionError,
        ],
    )
    def test_all_derive_from_root(self, exception_class):
        assert issubclass(exception_class, SchemaSmithException)

    def test_query_validation_is_argument_error(self):
        """Bad filters are reported as argument errors."""
        with pytest.raises(ArgumentError):
            raise QueryValidationError("Unknown column", code=ErrorCodes.INVALID_FILTER)

    def test_encryption_key_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            raise EncryptionKeyError("No key", code=ErrorCodes.ENCRYPTION_KEY_MISSING)

    def test_connection_error_shadows_builtin_only_in_package(self):
        assert not issubclass(ConnectionError, OSError)


class TestEntityErrors:
    """Test NotFoundError and DuplicateError entity information."""

    def test_not_found_carries_entity(self):
        exc = NotFoundError(
            "Table 'orders' not found",
            entity_type="table",
            entity_name="orders",
            code=ErrorCodes.TABLE_NOT_FOUND,
        )

        assert exc.entity_type == "table"
        assert exc.entity_name == "orders"
        assert exc.context == {"entity_type": "table", "entity_name": "orders"}
        assert str(exc) == "TABLE_NOT_FOUND: Table 'orders' not found"

    def test_entity_context_merges_with_caller_context(self):
        exc = DuplicateError(
            "Duplicate",
            entity_type="index",
            entity_name="ix_a",
            context={"table_name": "t", "entity_name": "kept"},
        )

        assert exc.context == {"table_name": "t", "entity_name": "kept", "entity_type": "index"}

    def test_entity_fields_optional(self):
        exc = NotFoundError("Object does not exist", code=ErrorCodes.OBJECT_NOT_FOUND)

        assert exc.entity_type is None
        assert exc.entity_name is None
        assert exc.context == {}


class TestErrorCodes:
    """Test error code constants."""

    def test_codes_equal_their_names(self):
        for name in dir(ErrorCodes):
            if name.isupper():
                assert getattr(ErrorCodes, name) == name

    def test_codes_are_unique(self):
        values = [getattr(ErrorCodes, name) for name in dir(ErrorCodes) if name.isupper()]
        assert len(values) == len(set(values))
