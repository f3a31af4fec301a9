"""Provider dialect base class.

A :class:`ProviderDialect` is the per-engine capability and strategy object.
It knows whether the engine has schemas and named default constraints, how
to quote names, how to page, and how to build and run the DDL and
introspection statements for every object kind. Services consult the dialect
and never branch on the provider themselves.
"""

import copy
import re
from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional, Sequence, Tuple

from ..core.exceptions import ArgumentError, ErrorCodes
from ..core.utils import (
    equals_ignore_case,
    generate_check_constraint_name,
    generate_default_constraint_name,
    generate_foreign_key_name,
    generate_index_name,
    generate_primary_key_name,
    generate_unique_constraint_name,
    normalize_name,
)
from ..database.connection import DatabaseConnection
from ..logging import get_logger
from ..models.datasource import ProviderType
from ..models.datatypes import DataTypeInfo
from ..models.schema import (
    CheckConstraint,
    Column,
    DefaultConstraint,
    ForeignKeyConstraint,
    Index,
    PrimaryKeyConstraint,
    Table,
    UniqueConstraint,
    View,
)

_CREATE_VIEW_PATTERN = re.compile(
    r"^\s*CREATE\s+(?:OR\s+(?:ALTER|REPLACE)\s+)?(?:TEMP(?:ORARY)?\s+)?VIEW\s+"
    r"(?:IF\s+NOT\s+EXISTS\s+)?.+?\s+AS\s+(.*)$",
    re.IGNORECASE | re.DOTALL,
)


def strip_create_view(sql: Optional[str]) -> str:
    """Return the SELECT body of a ``CREATE VIEW ... AS`` statement."""
    if not sql:
        return ""
    match = _CREATE_VIEW_PATTERN.match(sql)
    return (match.group(1) if match else sql).strip().rstrip(";").strip()


def strip_outer_parentheses(expression: Optional[str]) -> str:
    """Remove parentheses that wrap the whole expression, at any depth.

    Engines echo stored expressions back wrapped, ``((0))`` on SQL Server
    and ``(`age` > 0)`` on MySQL. ``(a) AND (b)`` is left alone.
    """
    text = (expression or "").strip()
    while text.startswith("(") and text.endswith(")"):
        depth = 0
        for position, char in enumerate(text):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            if depth == 0 and position < len(text) - 1:
                return text
        text = text[1:-1].strip()
    return text


_VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?")


def parse_version(version: Optional[str]) -> Tuple[int, int, int]:
    """Extract ``(major, minor, patch)`` from a server version string."""
    match = _VERSION_PATTERN.search(version or "")
    if not match:
        return 0, 0, 0
    return int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)


class ProviderDialect(ABC):
    """Capabilities, SQL generation and introspection for one engine.

    Attributes:
        provider_type: Engine this dialect serves
        supports_schemas: Whether the engine has schema namespaces
        default_schema: Schema used when the caller gives none
        supports_named_default_constraints: Whether default constraints keep
            caller-supplied names
        requires_table_rebuild: Whether constraint changes need a table rebuild
    """

    provider_type: ClassVar[ProviderType]
    supports_schemas: ClassVar[bool] = False
    default_schema: ClassVar[Optional[str]] = None
    supports_named_default_constraints: ClassVar[bool] = False
    requires_table_rebuild: ClassVar[bool] = False
    identifier_quotes: ClassVar[Tuple[str, str]] = ('"', '"')

    def __init__(self) -> None:
        self.logger = get_logger(f"providers.{self.provider_type.value.lower()}")

    # Names

    def quote(self, name: str) -> str:
        opening, closing = self.identifier_quotes
        return f"{opening}{name.replace(closing, closing * 2)}{closing}"

    def quote_list(self, names: Sequence[str]) -> str:
        return ", ".join(self.quote(name) for name in names)

    def qualify(self, schema_name: Optional[str], name: str) -> str:
        if self.supports_schemas and schema_name:
            return f"{self.quote(schema_name)}.{self.quote(name)}"
        return self.quote(name)

    @staticmethod
    def literal(value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def normalize_schema_name(self, schema_name: Optional[str]) -> Optional[str]:
        """Resolve the schema a call targets.

        Returns None on engines without schemas and the default schema when
        the caller gives none.
        """
        if not self.supports_schemas:
            return None
        return normalize_name(schema_name) or self.default_schema

    def paging_clause(self, take: int, skip: int, *, ordered: bool) -> str:
        return f"LIMIT {int(take)} OFFSET {int(skip)}"

    def default_constraint_name(
        self, table_name: str, column_name: str, requested: Optional[str] = None
    ) -> str:
        """Name under which a default constraint is stored and found again.

        Only engines with named default constraints keep the requested name;
        everywhere else the synthesized ``df_<table>_<column>`` is
        authoritative.
        """
        requested = normalize_name(requested)
        if self.supports_named_default_constraints and requested:
            return requested
        return generate_default_constraint_name(table_name, column_name)

    # Definition normalization

    def normalize_table(self, table: Table) -> Table:
        """Promote column flags to constraints and fill in missing names.

        Single-column primary key, unique, check, default, index and
        reference flags on the columns become constraint objects, unless an
        explicit constraint already covers them.

        Returns:
            New Table; the argument is not modified
        """
        result = copy.deepcopy(table)

        if result.primary_key_constraint is None:
            pk_columns = [c.column_name for c in result.columns if c.is_primary_key]
            if pk_columns:
                result.primary_key_constraint = PrimaryKeyConstraint(column_names=pk_columns)

        for column in result.columns:
            column_name = column.column_name

            if column.is_unique and not column.is_primary_key and not any(
                uc.has_same_columns([column_name]) for uc in result.unique_constraints
            ):
                result.unique_constraints.append(UniqueConstraint(column_names=[column_name]))

            if column.check_expression and not any(
                equals_ignore_case(ck.column_name, column_name) for ck in result.check_constraints
            ):
                result.check_constraints.append(
                    CheckConstraint(check_expression=column.check_expression, column_name=column_name)
                )

            if column.default_expression and result.get_default_constraint_on_column(column_name) is None:
                result.default_constraints.append(
                    DefaultConstraint(column_name=column_name, expression=column.default_expression)
                )

            if column.is_indexed and not column.is_primary_key and not column.is_unique and not any(
                [c.casefold() for c in idx.column_names] == [column_name.casefold()] for idx in result.indexes
            ):
                result.indexes.append(Index(column_names=[column_name]))

            if column.referenced_table_name and column.referenced_column_name and not any(
                [c.casefold() for c in fk.column_names] == [column_name.casefold()]
                for fk in result.foreign_key_constraints
            ):
                result.foreign_key_constraints.append(
                    ForeignKeyConstraint(
                        column_names=[column_name],
                        referenced_table_name=column.referenced_table_name,
                        referenced_column_names=[column.referenced_column_name],
                    )
                )

        self.name_constraints(result)

        pk = result.primary_key_constraint
        for column in result.columns:
            column.is_primary_key = bool(pk) and any(
                equals_ignore_case(column.column_name, c) for c in pk.column_names
            )
            if column.is_primary_key:
                column.is_nullable = False
        return result

    def name_constraints(self, table: Table) -> None:
        """Synthesize names for every unnamed constraint and index in place."""
        name = table.table_name
        pk = table.primary_key_constraint
        if pk and not normalize_name(pk.constraint_name):
            pk.constraint_name = generate_primary_key_name(name, pk.column_names)
        for uc in table.unique_constraints:
            if not normalize_name(uc.constraint_name):
                uc.constraint_name = generate_unique_constraint_name(name, uc.column_names)
        for ck in table.check_constraints:
            if not normalize_name(ck.constraint_name):
                ck.constraint_name = generate_check_constraint_name(name, ck.column_name)
        for dc in table.default_constraints:
            dc.constraint_name = self.default_constraint_name(name, dc.column_name, dc.constraint_name)
        for fk in table.foreign_key_constraints:
            if not normalize_name(fk.constraint_name):
                fk.constraint_name = generate_foreign_key_name(
                    name, fk.column_names, fk.referenced_table_name, fk.referenced_column_names
                )
        for index in table.indexes:
            if not normalize_name(index.index_name):
                index.index_name = generate_index_name(name, index.column_names)

    # Column and constraint fragments

    def column_type_sql(self, column: Column) -> str:
        data_type = normalize_name(column.provider_data_type)
        if not data_type:
            raise ArgumentError(
                f"Column '{column.column_name}' has no data type",
                code=ErrorCodes.ARGUMENT_REQUIRED,
                context={"column": column.column_name},
            )
        return data_type

    def auto_increment_sql(self, column: Column) -> str:
        return ""

    def default_sql(self, default: DefaultConstraint) -> str:
        return f"DEFAULT {default.expression}"

    def column_definition_sql(
        self, column: Column, default: Optional[DefaultConstraint] = None
    ) -> str:
        parts = [self.quote(column.column_name), self.column_type_sql(column)]
        if column.is_auto_increment:
            identity = self.auto_increment_sql(column)
            if identity:
                parts.append(identity)
        if default is not None:
            parts.append(self.default_sql(default))
        parts.append("NULL" if column.is_nullable and not column.is_primary_key else "NOT NULL")
        return " ".join(parts)

    def primary_key_sql(self, pk: PrimaryKeyConstraint) -> str:
        return f"CONSTRAINT {self.quote(pk.constraint_name)} PRIMARY KEY ({self.quote_list(pk.column_names)})"

    def unique_sql(self, uc: UniqueConstraint) -> str:
        return f"CONSTRAINT {self.quote(uc.constraint_name)} UNIQUE ({self.quote_list(uc.column_names)})"

    def check_sql(self, ck: CheckConstraint) -> str:
        return f"CONSTRAINT {self.quote(ck.constraint_name)} CHECK ({ck.check_expression})"

    def foreign_key_sql(self, schema_name: Optional[str], fk: ForeignKeyConstraint) -> str:
        return (
            f"CONSTRAINT {self.quote(fk.constraint_name)} "
            f"FOREIGN KEY ({self.quote_list(fk.column_names)}) "
            f"REFERENCES {self.qualify(schema_name, fk.referenced_table_name)} "
            f"({self.quote_list(fk.referenced_column_names)}) "
            f"ON DELETE {fk.on_delete.value} ON UPDATE {fk.on_update.value}"
        )

    # Statement builders

    def create_schema_sql(self, schema_name: str) -> List[str]:
        return [f"CREATE SCHEMA {self.quote(schema_name)}"]

    def drop_schema_sql(self, schema_name: str) -> List[str]:
        return [f"DROP SCHEMA {self.quote(schema_name)}"]

    def create_table_sql(self, table: Table) -> List[str]:
        """Build CREATE TABLE plus CREATE INDEX statements for a normalized table."""
        schema = table.schema_name
        definitions = [
            self.column_definition_sql(column, table.get_default_constraint_on_column(column.column_name))
            for column in table.columns
        ]
        if table.primary_key_constraint:
            definitions.append(self.primary_key_sql(table.primary_key_constraint))
        definitions.extend(self.unique_sql(uc) for uc in table.unique_constraints)
        definitions.extend(self.check_sql(ck) for ck in table.check_constraints)
        definitions.extend(self.foreign_key_sql(schema, fk) for fk in table.foreign_key_constraints)

        body = ",\n    ".join(definitions)
        statements = [f"CREATE TABLE {self.qualify(schema, table.table_name)} (\n    {body}\n)"]
        statements.extend(
            self.create_index_sql(schema, table.table_name, index) for index in table.indexes
        )
        return statements

    def rename_table_sql(self, schema_name: Optional[str], table_name: str, new_table_name: str) -> List[str]:
        return [f"ALTER TABLE {self.qualify(schema_name, table_name)} RENAME TO {self.quote(new_table_name)}"]

    def drop_table_sql(self, schema_name: Optional[str], table_name: str) -> List[str]:
        return [f"DROP TABLE {self.qualify(schema_name, table_name)}"]

    def add_column_sql(
        self, table: Table, column: Column, default: Optional[DefaultConstraint] = None
    ) -> List[str]:
        return [
            f"ALTER TABLE {self.qualify(table.schema_name, table.table_name)} "
            f"ADD COLUMN {self.column_definition_sql(column, default)}"
        ]

    def rename_column_sql(self, table: Table, column_name: str, new_column_name: str) -> List[str]:
        return [
            f"ALTER TABLE {self.qualify(table.schema_name, table.table_name)} "
            f"RENAME COLUMN {self.quote(column_name)} TO {self.quote(new_column_name)}"
        ]

    def drop_column_sql(self, table: Table, column_name: str) -> List[str]:
        return [
            f"ALTER TABLE {self.qualify(table.schema_name, table.table_name)} "
            f"DROP COLUMN {self.quote(column_name)}"
        ]

    def create_index_sql(self, schema_name: Optional[str], table_name: str, index: Index) -> str:
        unique = "UNIQUE " if index.is_unique else ""
        return (
            f"CREATE {unique}INDEX {self.quote(index.index_name)} "
            f"ON {self.qualify(schema_name, table_name)} ({self.quote_list(index.column_names)})"
        )

    def drop_index_sql(self, schema_name: Optional[str], table_name: str, index_name: str) -> List[str]:
        return [f"DROP INDEX {self.qualify(schema_name, index_name)}"]

    def _alter_table(self, table: Table, clause: str) -> List[str]:
        return [f"ALTER TABLE {self.qualify(table.schema_name, table.table_name)} {clause}"]

    def drop_constraint_sql(self, table: Table, constraint_name: str) -> List[str]:
        return self._alter_table(table, f"DROP CONSTRAINT {self.quote(constraint_name)}")

    def add_primary_key_sql(self, table: Table, pk: PrimaryKeyConstraint) -> List[str]:
        return self._alter_table(table, f"ADD {self.primary_key_sql(pk)}")

    def drop_primary_key_sql(self, table: Table, pk: PrimaryKeyConstraint) -> List[str]:
        return self.drop_constraint_sql(table, pk.constraint_name)

    def add_unique_sql(self, table: Table, uc: UniqueConstraint) -> List[str]:
        return self._alter_table(table, f"ADD {self.unique_sql(uc)}")

    def drop_unique_sql(self, table: Table, uc: UniqueConstraint) -> List[str]:
        return self.drop_constraint_sql(table, uc.constraint_name)

    def add_check_sql(self, table: Table, ck: CheckConstraint) -> List[str]:
        return self._alter_table(table, f"ADD {self.check_sql(ck)}")

    def drop_check_sql(self, table: Table, ck: CheckConstraint) -> List[str]:
        return self.drop_constraint_sql(table, ck.constraint_name)

    def add_default_sql(self, table: Table, dc: DefaultConstraint) -> List[str]:
        return self._alter_table(
            table, f"ALTER COLUMN {self.quote(dc.column_name)} SET DEFAULT {dc.expression}"
        )

    def drop_default_sql(self, table: Table, dc: DefaultConstraint) -> List[str]:
        return self._alter_table(table, f"ALTER COLUMN {self.quote(dc.column_name)} DROP DEFAULT")

    def add_foreign_key_sql(self, table: Table, fk: ForeignKeyConstraint) -> List[str]:
        return self._alter_table(table, f"ADD {self.foreign_key_sql(table.schema_name, fk)}")

    def drop_foreign_key_sql(self, table: Table, fk: ForeignKeyConstraint) -> List[str]:
        return self.drop_constraint_sql(table, fk.constraint_name)

    def create_view_sql(self, view: View) -> List[str]:
        return [f"CREATE VIEW {self.qualify(view.schema_name, view.view_name)} AS {view.definition}"]

    def drop_view_sql(self, schema_name: Optional[str], view_name: str) -> List[str]:
        return [f"DROP VIEW {self.qualify(schema_name, view_name)}"]

    def update_view_sql(self, current: View, updated: View) -> List[str]:
        """Statements that replace ``current`` with ``updated`` (possibly renamed)."""
        return self.drop_view_sql(current.schema_name, current.view_name) + self.create_view_sql(updated)

    # Execution

    async def execute_statements(self, conn: DatabaseConnection, statements: Sequence[str]) -> None:
        """Run statements in order, inside one transaction when there are several."""
        if len(statements) == 1:
            await conn.execute(statements[0])
            return
        async with conn.transaction():
            for statement in statements:
                await conn.execute(statement)

    async def create_schema(self, conn: DatabaseConnection, schema_name: str) -> None:
        await self.execute_statements(conn, self.create_schema_sql(schema_name))

    async def drop_schema(self, conn: DatabaseConnection, schema_name: str) -> None:
        await self.execute_statements(conn, self.drop_schema_sql(schema_name))

    async def create_table(self, conn: DatabaseConnection, table: Table) -> None:
        await self.execute_statements(conn, self.create_table_sql(table))

    async def rename_table(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: str, new_table_name: str
    ) -> None:
        await self.execute_statements(conn, self.rename_table_sql(schema_name, table_name, new_table_name))

    async def drop_table(self, conn: DatabaseConnection, schema_name: Optional[str], table_name: str) -> None:
        await self.execute_statements(conn, self.drop_table_sql(schema_name, table_name))

    async def add_column(
        self, conn: DatabaseConnection, table: Table, column: Column, default: Optional[DefaultConstraint] = None
    ) -> None:
        await self.execute_statements(conn, self.add_column_sql(table, column, default))

    async def rename_column(
        self, conn: DatabaseConnection, table: Table, column_name: str, new_column_name: str
    ) -> None:
        await self.execute_statements(conn, self.rename_column_sql(table, column_name, new_column_name))

    async def drop_column(self, conn: DatabaseConnection, table: Table, column_name: str) -> None:
        await self.execute_statements(conn, self.drop_column_sql(table, column_name))

    async def create_index(self, conn: DatabaseConnection, table: Table, index: Index) -> None:
        await conn.execute(self.create_index_sql(table.schema_name, table.table_name, index))

    async def drop_index(self, conn: DatabaseConnection, table: Table, index: Index) -> None:
        await self.execute_statements(
            conn, self.drop_index_sql(table.schema_name, table.table_name, index.index_name)
        )

    async def add_primary_key(self, conn: DatabaseConnection, table: Table, pk: PrimaryKeyConstraint) -> None:
        await self.execute_statements(conn, self.add_primary_key_sql(table, pk))

    async def drop_primary_key(self, conn: DatabaseConnection, table: Table) -> None:
        await self.execute_statements(conn, self.drop_primary_key_sql(table, table.primary_key_constraint))

    async def add_unique_constraint(self, conn: DatabaseConnection, table: Table, uc: UniqueConstraint) -> None:
        await self.execute_statements(conn, self.add_unique_sql(table, uc))

    async def drop_unique_constraint(self, conn: DatabaseConnection, table: Table, uc: UniqueConstraint) -> None:
        await self.execute_statements(conn, self.drop_unique_sql(table, uc))

    async def add_check_constraint(self, conn: DatabaseConnection, table: Table, ck: CheckConstraint) -> None:
        await self.execute_statements(conn, self.add_check_sql(table, ck))

    async def drop_check_constraint(self, conn: DatabaseConnection, table: Table, ck: CheckConstraint) -> None:
        await self.execute_statements(conn, self.drop_check_sql(table, ck))

    async def add_default_constraint(self, conn: DatabaseConnection, table: Table, dc: DefaultConstraint) -> None:
        await self.execute_statements(conn, self.add_default_sql(table, dc))

    async def drop_default_constraint(self, conn: DatabaseConnection, table: Table, dc: DefaultConstraint) -> None:
        await self.execute_statements(conn, self.drop_default_sql(table, dc))

    async def add_foreign_key(self, conn: DatabaseConnection, table: Table, fk: ForeignKeyConstraint) -> None:
        await self.execute_statements(conn, self.add_foreign_key_sql(table, fk))

    async def drop_foreign_key(self, conn: DatabaseConnection, table: Table, fk: ForeignKeyConstraint) -> None:
        await self.execute_statements(conn, self.drop_foreign_key_sql(table, fk))

    async def create_view(self, conn: DatabaseConnection, view: View) -> None:
        await self.execute_statements(conn, self.create_view_sql(view))

    async def update_view(self, conn: DatabaseConnection, current: View, updated: View) -> None:
        await self.execute_statements(conn, self.update_view_sql(current, updated))

    async def drop_view(self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str) -> None:
        await self.execute_statements(conn, self.drop_view_sql(schema_name, view_name))

    # Introspection

    async def get_schema_names(self, conn: DatabaseConnection) -> List[str]:
        return []

    @abstractmethod
    async def get_table_names(self, conn: DatabaseConnection, schema_name: Optional[str]) -> List[str]:
        """Names of the base tables in a schema, sorted."""

    @abstractmethod
    async def get_tables(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: Optional[str] = None
    ) -> List[Table]:
        """Full table models, optionally limited to one table name."""

    @abstractmethod
    async def get_views(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: Optional[str] = None
    ) -> List[View]:
        """Views with their definitions, optionally limited to one view name."""

    @abstractmethod
    async def get_view_columns(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str
    ) -> List[Column]:
        """Columns of a view in ordinal order."""

    async def get_table(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: str
    ) -> Optional[Table]:
        for table in await self.get_tables(conn, schema_name, table_name):
            if equals_ignore_case(table.table_name, table_name):
                return table
        return None

    async def table_exists(self, conn: DatabaseConnection, schema_name: Optional[str], table_name: str) -> bool:
        names = await self.get_table_names(conn, schema_name)
        return any(equals_ignore_case(name, table_name) for name in names)

    async def get_view(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str
    ) -> Optional[View]:
        for view in await self.get_views(conn, schema_name, view_name):
            if equals_ignore_case(view.view_name, view_name):
                return view
        return None

    async def get_server_version(self, conn: DatabaseConnection) -> Optional[str]:
        return await conn.get_server_version()

    async def get_custom_datatypes(self, conn: DatabaseConnection) -> List[DataTypeInfo]:
        return []

    # Shared assembly helpers

    @staticmethod
    def apply_column_flags(table: Table) -> Table:
        """Derive the per-column convenience flags from the table's constraints."""
        pk_columns = {c.casefold() for c in table.primary_key_constraint.column_names} if table.primary_key_constraint else set()
        unique_columns = {uc.column_names[0].casefold() for uc in table.unique_constraints if len(uc.column_names) == 1}
        unique_columns |= {
            idx.column_names[0].casefold() for idx in table.indexes if idx.is_unique and len(idx.column_names) == 1
        }
        indexed_columns = {c.casefold() for idx in table.indexes for c in idx.column_names}

        for column in table.columns:
            key = column.column_name.casefold()
            column.is_primary_key = key in pk_columns
            column.is_unique = key in unique_columns
            column.is_indexed = key in indexed_columns

            default = table.get_default_constraint_on_column(column.column_name)
            column.default_expression = default.expression if default else None

            checks = [ck for ck in table.check_constraints if equals_ignore_case(ck.column_name, column.column_name)]
            column.check_expression = checks[0].check_expression if len(checks) == 1 else None

            references = [
                fk for fk in table.foreign_key_constraints
                if len(fk.column_names) == 1 and equals_ignore_case(fk.column_names[0], column.column_name)
            ]
            if references:
                column.referenced_table_name = references[0].referenced_table_name
                column.referenced_column_name = references[0].referenced_column_names[0]
        return table

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider_type.value!r})"
