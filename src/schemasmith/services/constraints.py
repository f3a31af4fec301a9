"""Helpers shared by the constraint services."""

from ..core.exceptions import DuplicateError, ErrorCodes, NotFoundError
from ..models.schema import Table


def constraint_not_found(table: Table, kind: str, name: str) -> NotFoundError:
    """NotFoundError for a constraint of ``kind`` (e.g. ``unique``, ``check``)."""
    label = kind.replace("_", " ").capitalize()
    return NotFoundError(
        f"{label} constraint '{name}' does not exist on table '{table.table_name}'",
        entity_type=f"{kind}_constraint",
        entity_name=name,
        code=ErrorCodes.CONSTRAINT_NOT_FOUND,
    )


def primary_key_not_found(table: Table) -> NotFoundError:
    return NotFoundError(
        f"Table '{table.table_name}' has no primary key",
        entity_type="primary_key_constraint",
        entity_name=table.table_name,
        code=ErrorCodes.CONSTRAINT_NOT_FOUND,
    )


def require_unused_name(table: Table, kind: str, name: str) -> None:
    """Reject a constraint name already used by any constraint or index on the table.

    Raises:
        DuplicateError: If the name is taken
    """
    if table.has_constraint_named(name):
        raise DuplicateError(
            f"A constraint or index named '{name}' already exists on table '{table.table_name}'",
            entity_type=f"{kind}_constraint",
            entity_name=name,
            code=ErrorCodes.DUPLICATE_OBJECT,
        )
