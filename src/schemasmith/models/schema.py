"""Database object metadata models.

These dataclasses are both the results of introspection and the request
shapes for creating objects.

Classes:
    ForeignKeyAction: Referential actions
    Schema, Column, Index, View, Table
    PrimaryKeyConstraint, UniqueConstraint, CheckConstraint,
    DefaultConstraint, ForeignKeyConstraint
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.utils import equals_ignore_case, find_by_name


class ForeignKeyAction(str, Enum):
    """Referential action for ON DELETE / ON UPDATE."""

    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"

    @classmethod
    def parse(cls, value: Any) -> "ForeignKeyAction":
        """Parse an action from SQL text or an enum-style name.

        Accepts ``NO ACTION``, ``NoAction``, ``no_action``, ``SetNull`` and
        so on. Unknown or empty values map to NO ACTION.
        """
        if isinstance(value, cls):
            return value
        text = "".join(ch for ch in str(value or "").upper() if ch.isalpha())
        for action in cls:
            if action.value.replace(" ", "") == text:
                return action
        return cls.NO_ACTION


class _Model:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Schema(_Model):
    schema_name: str


@dataclass
class Column(_Model):
    """Table or view column.

    ``provider_data_type`` is the raw engine type, e.g. ``nvarchar(255)``.
    The primary key, auto-increment, unique, default and check fields are
    honored when a table is created or a column is added.
    """

    column_name: str
    provider_data_type: str = ""
    is_nullable: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False
    is_unique: bool = False
    is_indexed: bool = False
    default_expression: Optional[str] = None
    check_expression: Optional[str] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    referenced_table_name: Optional[str] = None
    referenced_column_name: Optional[str] = None


@dataclass
class PrimaryKeyConstraint(_Model):
    column_names: List[str]
    constraint_name: Optional[str] = None


@dataclass
class UniqueConstraint(_Model):
    column_names: List[str]
    constraint_name: Optional[str] = None

    def has_same_columns(self, column_names: List[str]) -> bool:
        """Compare column sets ignoring order and case."""
        return {c.casefold() for c in self.column_names} == {c.casefold() for c in column_names}


@dataclass
class CheckConstraint(_Model):
    check_expression: str
    constraint_name: Optional[str] = None
    column_name: Optional[str] = None


@dataclass
class DefaultConstraint(_Model):
    column_name: str
    expression: str
    constraint_name: Optional[str] = None


@dataclass
class ForeignKeyConstraint(_Model):
    column_names: List[str]
    referenced_table_name: str
    referenced_column_names: List[str]
    constraint_name: Optional[str] = None
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION

    def __post_init__(self) -> None:
        self.on_delete = ForeignKeyAction.parse(self.on_delete)
        self.on_update = ForeignKeyAction.parse(self.on_update)


@dataclass
class Index(_Model):
    column_names: List[str]
    index_name: Optional[str] = None
    is_unique: bool = False


@dataclass
class View(_Model):
    view_name: str
    definition: str = ""
    schema_name: Optional[str] = None
    columns: List[Column] = field(default_factory=list)


@dataclass
class Table(_Model):
    """Table definition with its columns, constraints and indexes."""

    table_name: str
    schema_name: Optional[str] = None
    columns: List[Column] = field(default_factory=list)
    primary_key_constraint: Optional[PrimaryKeyConstraint] = None
    unique_constraints: List[UniqueConstraint] = field(default_factory=list)
    check_constraints: List[CheckConstraint] = field(default_factory=list)
    default_constraints: List[DefaultConstraint] = field(default_factory=list)
    foreign_key_constraints: List[ForeignKeyConstraint] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)

    def get_column(self, column_name: str) -> Optional[Column]:
        return find_by_name(self.columns, column_name, "column_name")

    def get_index(self, index_name: str) -> Optional[Index]:
        return find_by_name(self.indexes, index_name, "index_name")

    def get_unique_constraint(self, constraint_name: str) -> Optional[UniqueConstraint]:
        return find_by_name(self.unique_constraints, constraint_name, "constraint_name")

    def get_check_constraint(self, constraint_name: str) -> Optional[CheckConstraint]:
        return find_by_name(self.check_constraints, constraint_name, "constraint_name")

    def get_default_constraint(self, constraint_name: str) -> Optional[DefaultConstraint]:
        return find_by_name(self.default_constraints, constraint_name, "constraint_name")

    def get_default_constraint_on_column(self, column_name: str) -> Optional[DefaultConstraint]:
        return find_by_name(self.default_constraints, column_name, "column_name")

    def get_foreign_key(self, constraint_name: str) -> Optional[ForeignKeyConstraint]:
        return find_by_name(self.foreign_key_constraints, constraint_name, "constraint_name")

    def has_constraint_named(self, name: str) -> bool:
        """True if any constraint or index on the table already uses ``name``."""
        if self.primary_key_constraint and equals_ignore_case(
            self.primary_key_constraint.constraint_name, name
        ):
            return True
        return any(
            equals_ignore_case(getattr(item, "constraint_name", None) or getattr(item, "index_name", None), name)
            for item in (
                *self.unique_constraints,
                *self.check_constraints,
                *self.default_constraints,
                *self.foreign_key_constraints,
                *self.indexes,
            )
        )

    def without_details(self, *, columns: bool, indexes: bool, constraints: bool) -> "Table":
        """Return a copy that drops the sections the caller did not ask for."""
        return Table(
            table_name=self.table_name,
            schema_name=self.schema_name,
            columns=list(self.columns) if columns else [],
            primary_key_constraint=self.primary_key_constraint if constraints else None,
            unique_constraints=list(self.unique_constraints) if constraints else [],
            check_constraints=list(self.check_constraints) if constraints else [],
            default_constraints=list(self.default_constraints) if constraints else [],
            foreign_key_constraints=list(self.foreign_key_constraints) if constraints else [],
            indexes=list(self.indexes) if indexes else [],
        )
