"""SQLite dialect.

SQLite has no schemas and cannot alter constraints in place, so every
constraint change rebuilds the table: copy the rows aside, recreate the
table from the changed definition, copy the rows back and recreate the
indexes, all inside one transaction with foreign key enforcement paused.
"""

import copy
from typing import List, Optional

from ..core.exceptions import EngineError, ErrorCodes
from ..core.utils import equals_ignore_case
from ..database.connection import DatabaseConnection
from ..models.datasource import ProviderType
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
from .base import ProviderDialect, strip_create_view
from .sqlite_parser import parse_create_table, parse_type_arguments

REBUILD_PREFIX = "_schemasmith_rebuild_"


class SqliteDialect(ProviderDialect):
    """SQLite capabilities and SQL."""

    provider_type = ProviderType.SQLITE
    supports_schemas = False
    requires_table_rebuild = True

    # Definitions

    def default_sql(self, default: DefaultConstraint) -> str:
        # Parentheses make any expression legal as a column default
        return f"DEFAULT ({default.expression})"

    def _inline_primary_key(self, table: Table) -> Optional[PrimaryKeyConstraint]:
        pk = table.primary_key_constraint
        if pk is None or len(pk.column_names) != 1:
            return None
        column = table.get_column(pk.column_names[0])
        return pk if column is not None and column.is_auto_increment else None

    def create_table_sql(self, table: Table) -> List[str]:
        """Build CREATE TABLE with column-level checks kept inline.

        Column checks and an auto-increment primary key are written on the
        column so the column association survives a later parse.
        """
        inline_pk = self._inline_primary_key(table)
        definitions = []
        for column in table.columns:
            parts = [self.quote(column.column_name)]
            if inline_pk is not None and equals_ignore_case(inline_pk.column_names[0], column.column_name):
                parts.append(
                    f"INTEGER CONSTRAINT {self.quote(inline_pk.constraint_name)} PRIMARY KEY AUTOINCREMENT"
                )
            else:
                parts.append(self.column_type_sql(column))
            default = table.get_default_constraint_on_column(column.column_name)
            if default is not None:
                parts.append(self.default_sql(default))
            parts.append("NULL" if column.is_nullable and not column.is_primary_key else "NOT NULL")
            for ck in table.check_constraints:
                if equals_ignore_case(ck.column_name, column.column_name):
                    parts.append(f"CONSTRAINT {self.quote(ck.constraint_name)} CHECK ({ck.check_expression})")
            definitions.append(" ".join(parts))

        if table.primary_key_constraint and inline_pk is None:
            definitions.append(self.primary_key_sql(table.primary_key_constraint))
        definitions.extend(self.unique_sql(uc) for uc in table.unique_constraints)
        definitions.extend(
            self.check_sql(ck)
            for ck in table.check_constraints
            if not ck.column_name or table.get_column(ck.column_name) is None
        )
        definitions.extend(self.foreign_key_sql(None, fk) for fk in table.foreign_key_constraints)

        body = ",\n    ".join(definitions)
        statements = [f"CREATE TABLE {self.quote(table.table_name)} (\n    {body}\n)"]
        statements.extend(self.create_index_sql(None, table.table_name, index) for index in table.indexes)
        return statements

    def update_view_sql(self, current: View, updated: View) -> List[str]:
        return self.drop_view_sql(None, current.view_name) + self.create_view_sql(updated)

    # Rebuild

    async def rebuild_table(self, conn: DatabaseConnection, current: Table, target: Table) -> None:
        """Replace ``current`` with the ``target`` definition, keeping the rows.

        Columns present in both definitions are copied back; indexes whose
        columns no longer exist are dropped.
        """
        target = copy.deepcopy(target)
        self.name_constraints(target)
        target_columns = {c.column_name.casefold() for c in target.columns}
        target.indexes = [
            index for index in target.indexes
            if all(name.casefold() in target_columns for name in index.column_names)
        ]
        shared = [c.column_name for c in target.columns if current.get_column(c.column_name) is not None]

        temp_table = self.quote(f"{REBUILD_PREFIX}{current.table_name}")
        original = self.quote(current.table_name)

        self.logger.info("Rebuilding table", table=current.table_name, columns=len(target.columns))

        await conn.execute("PRAGMA foreign_keys = OFF")
        try:
            async with conn.transaction():
                await conn.execute(f"CREATE TEMP TABLE {temp_table} AS SELECT * FROM {original}")
                await conn.execute(f"DROP TABLE {original}")
                for statement in self.create_table_sql(target):
                    await conn.execute(statement)
                if shared:
                    column_list = self.quote_list(shared)
                    await conn.execute(
                        f"INSERT INTO {original} ({column_list}) SELECT {column_list} FROM {temp_table}"
                    )
                await conn.execute(f"DROP TABLE {temp_table}")
                await self._check_foreign_keys(conn, current.table_name)
        finally:
            await conn.execute("PRAGMA foreign_keys = ON")

    async def _check_foreign_keys(self, conn: DatabaseConnection, table_name: str) -> None:
        """Fail when rows of ``table_name`` break one of its foreign keys.

        Enforcement is off during a rebuild, so existing rows are only
        checked here.
        """
        violations = await conn.fetch_all(f"PRAGMA foreign_key_check({self.quote(table_name)})")
        if violations:
            raise EngineError(
                f"{len(violations)} row(s) of '{table_name}' violate a foreign key constraint",
                code=ErrorCodes.QUERY_EXECUTION_FAILED,
                context={
                    "table_name": table_name,
                    "referenced_tables": sorted({str(row.get("parent")) for row in violations}),
                },
            )

    async def rename_table(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: str, new_table_name: str
    ) -> None:
        # SQLite treats a case-only rename as a clash with the table itself
        if not equals_ignore_case(table_name, new_table_name):
            await super().rename_table(conn, schema_name, table_name, new_table_name)
            return
        interim_name = f"{REBUILD_PREFIX}{table_name}"
        async with conn.transaction():
            await super().rename_table(conn, schema_name, table_name, interim_name)
            await super().rename_table(conn, schema_name, interim_name, new_table_name)

    @staticmethod
    def _copy(table: Table) -> Table:
        return copy.deepcopy(table)

    async def add_column(
        self, conn: DatabaseConnection, table: Table, column: Column, default: Optional[DefaultConstraint] = None
    ) -> None:
        simple = default is None and column.is_nullable and not column.is_primary_key and not column.is_auto_increment
        if simple:
            await super().add_column(conn, table, column, None)
            return
        target = self._copy(table)
        target.columns.append(copy.deepcopy(column))
        if default is not None:
            target.default_constraints.append(copy.deepcopy(default))
        await self.rebuild_table(conn, table, target)

    async def drop_column(self, conn: DatabaseConnection, table: Table, column_name: str) -> None:
        target = self._copy(table)
        key = column_name.casefold()
        target.columns = [c for c in target.columns if c.column_name.casefold() != key]
        if target.primary_key_constraint and any(c.casefold() == key for c in target.primary_key_constraint.column_names):
            target.primary_key_constraint = None
        target.unique_constraints = [
            uc for uc in target.unique_constraints if all(c.casefold() != key for c in uc.column_names)
        ]
        target.check_constraints = [
            ck for ck in target.check_constraints if not equals_ignore_case(ck.column_name, column_name)
        ]
        target.default_constraints = [
            dc for dc in target.default_constraints if not equals_ignore_case(dc.column_name, column_name)
        ]
        target.foreign_key_constraints = [
            fk for fk in target.foreign_key_constraints if all(c.casefold() != key for c in fk.column_names)
        ]
        await self.rebuild_table(conn, table, target)

    async def add_primary_key(self, conn: DatabaseConnection, table: Table, pk: PrimaryKeyConstraint) -> None:
        target = self._copy(table)
        target.primary_key_constraint = copy.deepcopy(pk)
        keys = {c.casefold() for c in pk.column_names}
        for column in target.columns:
            column.is_primary_key = column.column_name.casefold() in keys
        await self.rebuild_table(conn, table, target)

    async def drop_primary_key(self, conn: DatabaseConnection, table: Table) -> None:
        target = self._copy(table)
        target.primary_key_constraint = None
        for column in target.columns:
            column.is_primary_key = False
            column.is_auto_increment = False
        await self.rebuild_table(conn, table, target)

    async def add_unique_constraint(self, conn: DatabaseConnection, table: Table, uc: UniqueConstraint) -> None:
        target = self._copy(table)
        target.unique_constraints.append(copy.deepcopy(uc))
        await self.rebuild_table(conn, table, target)

    async def drop_unique_constraint(self, conn: DatabaseConnection, table: Table, uc: UniqueConstraint) -> None:
        target = self._copy(table)
        target.unique_constraints = [
            u for u in target.unique_constraints if not equals_ignore_case(u.constraint_name, uc.constraint_name)
        ]
        await self.rebuild_table(conn, table, target)

    async def add_check_constraint(self, conn: DatabaseConnection, table: Table, ck: CheckConstraint) -> None:
        target = self._copy(table)
        target.check_constraints.append(copy.deepcopy(ck))
        await self.rebuild_table(conn, table, target)

    async def drop_check_constraint(self, conn: DatabaseConnection, table: Table, ck: CheckConstraint) -> None:
        target = self._copy(table)
        target.check_constraints = [
            c for c in target.check_constraints if not equals_ignore_case(c.constraint_name, ck.constraint_name)
        ]
        await self.rebuild_table(conn, table, target)

    async def add_default_constraint(self, conn: DatabaseConnection, table: Table, dc: DefaultConstraint) -> None:
        target = self._copy(table)
        target.default_constraints.append(copy.deepcopy(dc))
        await self.rebuild_table(conn, table, target)

    async def drop_default_constraint(self, conn: DatabaseConnection, table: Table, dc: DefaultConstraint) -> None:
        target = self._copy(table)
        target.default_constraints = [
            d for d in target.default_constraints if not equals_ignore_case(d.column_name, dc.column_name)
        ]
        await self.rebuild_table(conn, table, target)

    async def add_foreign_key(self, conn: DatabaseConnection, table: Table, fk: ForeignKeyConstraint) -> None:
        target = self._copy(table)
        target.foreign_key_constraints.append(copy.deepcopy(fk))
        await self.rebuild_table(conn, table, target)

    async def drop_foreign_key(self, conn: DatabaseConnection, table: Table, fk: ForeignKeyConstraint) -> None:
        target = self._copy(table)
        target.foreign_key_constraints = [
            f for f in target.foreign_key_constraints if not equals_ignore_case(f.constraint_name, fk.constraint_name)
        ]
        await self.rebuild_table(conn, table, target)

    # Introspection

    async def get_table_names(self, conn: DatabaseConnection, schema_name: Optional[str]) -> List[str]:
        rows = await conn.fetch_all(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' "
            "ORDER BY name"
        )
        return [row["name"] for row in rows if not row["name"].startswith(REBUILD_PREFIX)]

    async def get_tables(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: Optional[str] = None
    ) -> List[Table]:
        sql = (
            "SELECT name, sql FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'"
        )
        parameters = {}
        if table_name:
            sql += " AND name = :name COLLATE NOCASE"
            parameters["name"] = table_name
        rows = await conn.fetch_all(sql + " ORDER BY name", parameters)

        tables = []
        for row in rows:
            table = parse_create_table(row["sql"])
            if table is None:
                continue
            table.table_name = row["name"]
            self.name_constraints(table)
            table.indexes = await self._get_indexes(conn, row["name"])
            tables.append(self.apply_column_flags(table))
        return tables

    async def _get_indexes(self, conn: DatabaseConnection, table_name: str) -> List[Index]:
        rows = await conn.fetch_all(
            "SELECT name, \"unique\" AS is_unique, origin FROM pragma_index_list(:table) ORDER BY name",
            {"table": table_name},
        )
        indexes = []
        for row in rows:
            # origin 'c' is CREATE INDEX; 'u' and 'pk' back constraints
            if row["origin"] != "c" or not row["name"]:
                continue
            columns = await conn.fetch_all(
                "SELECT name FROM pragma_index_info(:index) ORDER BY seqno",
                {"index": row["name"]},
            )
            indexes.append(
                Index(
                    index_name=row["name"],
                    column_names=[c["name"] for c in columns if c["name"]],
                    is_unique=bool(row["is_unique"]),
                )
            )
        return indexes

    async def get_views(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: Optional[str] = None
    ) -> List[View]:
        sql = "SELECT name, sql FROM sqlite_master WHERE type = 'view'"
        parameters = {}
        if view_name:
            sql += " AND name = :name COLLATE NOCASE"
            parameters["name"] = view_name
        rows = await conn.fetch_all(sql + " ORDER BY name", parameters)
        return [View(view_name=row["name"], definition=strip_create_view(row["sql"])) for row in rows]

    async def get_view_columns(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str
    ) -> List[Column]:
        rows = await conn.fetch_all(
            "SELECT name, type, \"notnull\" AS not_null FROM pragma_table_info(:view) ORDER BY cid",
            {"view": view_name},
        )
        columns = []
        for row in rows:
            max_length, precision, scale = parse_type_arguments(row["type"] or "")
            columns.append(
                Column(
                    column_name=row["name"],
                    provider_data_type=row["type"] or "",
                    is_nullable=not row["not_null"],
                    max_length=max_length,
                    precision=precision,
                    scale=scale,
                )
            )
        return columns
