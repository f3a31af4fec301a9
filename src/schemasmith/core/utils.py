"""Utility functions for SchemaSmith operations.

This module provides the validation helpers and the constraint-name
synthesis used across services and dialects.

Functions:
    to_raw_identifier: Build a sanitized identifier from a prefix and segments
    generate_primary_key_name: Synthesize a primary key constraint name
    generate_unique_constraint_name: Synthesize a unique constraint name
    generate_check_constraint_name: Synthesize a check constraint name
    generate_default_constraint_name: Synthesize a default constraint name
    generate_foreign_key_name: Synthesize a foreign key constraint name
    generate_index_name: Synthesize an index name
    normalize_name: Strip whitespace and collapse blanks to None
    require_not_blank: Validate a required string argument

Example:
    >>> generate_default_constraint_name("Orders", "Status")
    'df_Orders_Status'
"""

import re
from typing import Iterable, List, Optional, Sequence, TypeVar

from .exceptions import ArgumentError, ErrorCodes

T = TypeVar("T")

_NON_IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_]")


class ValidationUtils:
    """Utility class for validation operations."""

    # Characters that would break out of a quoted identifier
    FORBIDDEN_IDENTIFIER_CHARS = frozenset('"`[]\x00;')
    MAX_IDENTIFIER_LENGTH = 128
    DATASOURCE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]{1,64}$")

    @classmethod
    def validate_identifier(cls, identifier: Optional[str], *, allow_empty: bool = False) -> bool:
        """Validate a database object name.

        Names are always quoted by the dialects, so anything printable is
        accepted except characters that terminate a quoted identifier.

        Args:
            identifier: Name to validate
            allow_empty: Whether to allow empty strings

        Returns:
            True if identifier is valid

        Example:
            >>> ValidationUtils.validate_identifier("Order Items")
            True
            >>> ValidationUtils.validate_identifier('x"; DROP TABLE y')
            False
        """
        if identifier is None or not identifier.strip():
            return allow_empty

        if len(identifier) > cls.MAX_IDENTIFIER_LENGTH:
            return False

        if any(ch in cls.FORBIDDEN_IDENTIFIER_CHARS for ch in identifier):
            return False

        return all(ch.isprintable() for ch in identifier)

    @classmethod
    def validate_datasource_id(cls, datasource_id: Optional[str]) -> bool:
        """Validate a datasource identifier.

        Args:
            datasource_id: Identifier to validate

        Returns:
            True if the identifier is usable as a registry key
        """
        if not datasource_id:
            return False
        return bool(cls.DATASOURCE_ID_PATTERN.match(datasource_id))


def require_not_blank(value: Optional[str], argument_name: str) -> str:
    """Validate that a required string argument is present.

    Args:
        value: Argument value
        argument_name: Argument name used in the error message

    Returns:
        The stripped value

    Raises:
        ArgumentError: If the value is None or blank
    """
    if value is None or not str(value).strip():
        raise ArgumentError(
            f"{argument_name} is required",
            code=ErrorCodes.ARGUMENT_REQUIRED,
            context={"argument": argument_name},
        )
    return str(value).strip()


def require_identifier(value: Optional[str], argument_name: str) -> str:
    """Validate a required database object name.

    Args:
        value: Object name
        argument_name: Argument name used in the error message

    Returns:
        The stripped name

    Raises:
        ArgumentError: If the name is blank or contains forbidden characters
    """
    name = require_not_blank(value, argument_name)
    if not ValidationUtils.validate_identifier(name):
        raise ArgumentError(
            f"{argument_name} '{name}' is not a valid identifier",
            code=ErrorCodes.INVALID_IDENTIFIER,
            context={"argument": argument_name, "value": name},
        )
    return name


def require_not_none(value: Optional[T], argument_name: str) -> T:
    """Validate that a required object argument is present.

    Raises:
        ArgumentError: If the value is None
    """
    if value is None:
        raise ArgumentError(
            f"{argument_name} is required",
            code=ErrorCodes.ARGUMENT_REQUIRED,
            context={"argument": argument_name},
        )
    return value


def normalize_name(value: Optional[str]) -> Optional[str]:
    """Strip a name and turn blank values into None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def equals_ignore_case(left: Optional[str], right: Optional[str]) -> bool:
    """Compare two optional names case-insensitively."""
    if left is None or right is None:
        return left is None and right is None
    return left.casefold() == right.casefold()


def find_by_name(items: Iterable[T], name: str, attribute: str) -> Optional[T]:
    """Return the first item whose ``attribute`` matches ``name`` case-insensitively."""
    for item in items:
        if equals_ignore_case(getattr(item, attribute, None), name):
            return item
    return None


def deduplicate(items: Iterable[str]) -> List[str]:
    """Remove case-insensitive duplicates while preserving order."""
    seen = set()
    result: List[str] = []
    for item in items:
        if item is None:
            continue
        key = item.strip().casefold()
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(item.strip())
    return result


def to_raw_identifier(prefix: str, *segments: Optional[str]) -> str:
    """Build a deterministic identifier from a prefix and name segments.

    Every non-blank segment is stripped of characters other than letters,
    digits and underscores and appended with an underscore separator.

    Args:
        prefix: Leading token, e.g. ``pk`` or ``df``
        *segments: Table and column names

    Returns:
        Identifier with leading and trailing underscores removed

    Example:
        >>> to_raw_identifier("uc", "Order Items", "sku", "region")
        'uc_OrderItems_sku_region'
    """
    parts = [prefix]
    for segment in segments:
        if segment is None or not segment.strip():
            continue
        parts.append(_NON_IDENTIFIER_CHARS.sub("", segment))
    return "_".join(parts).strip("_")


def generate_primary_key_name(table_name: str, column_names: Sequence[str]) -> str:
    return to_raw_identifier("pk", table_name, *column_names)


def generate_unique_constraint_name(table_name: str, column_names: Sequence[str]) -> str:
    return to_raw_identifier("uc", table_name, *column_names)


def generate_check_constraint_name(table_name: str, column_name: Optional[str]) -> str:
    return to_raw_identifier("ck", table_name, column_name)


def generate_default_constraint_name(table_name: str, column_name: str) -> str:
    return to_raw_identifier("df", table_name, column_name)


def generate_index_name(table_name: str, column_names: Sequence[str]) -> str:
    return to_raw_identifier("ix", table_name, *column_names)


def generate_foreign_key_name(
    table_name: str,
    column_names: Sequence[str],
    referenced_table_name: str,
    referenced_column_names: Sequence[str],
) -> str:
    return to_raw_identifier(
        "fk",
        table_name,
        *column_names,
        referenced_table_name,
        *referenced_column_names,
    )
