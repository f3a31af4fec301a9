"""MySQL and MariaDB dialect.

MySQL has no schemas below the database, so every query is scoped to
``DATABASE()``. Check constraints are only enforced from MySQL 8.0.16 and
MariaDB 10.2.1; older servers parse and silently discard them, so adding one
there is refused instead.
"""

import re
from typing import Any, Dict, List, Optional

from ..core.exceptions import ErrorCodes, UnsupportedOperationError
from ..core.utils import generate_primary_key_name
from ..database.connection import DatabaseConnection
from ..models.datasource import ProviderType
from ..models.schema import (
    CheckConstraint,
    Column,
    DefaultConstraint,
    ForeignKeyAction,
    ForeignKeyConstraint,
    Index,
    PrimaryKeyConstraint,
    Table,
    UniqueConstraint,
    View,
)
from .base import ProviderDialect, parse_version, strip_outer_parentheses
from .sqlite_parser import infer_check_column

_NUMERIC_LITERAL = re.compile(r"^-?\d+(?:\.\d+)?$")
_KEYWORD_DEFAULTS = ("CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME", "NOW(")

_COLUMNS_SQL = """
SELECT
    c.TABLE_NAME AS table_name,
    c.COLUMN_NAME AS column_name,
    c.COLUMN_TYPE AS column_type,
    c.IS_NULLABLE AS is_nullable,
    c.COLUMN_DEFAULT AS column_default,
    c.CHARACTER_MAXIMUM_LENGTH AS max_length,
    c.NUMERIC_PRECISION AS numeric_precision,
    c.NUMERIC_SCALE AS numeric_scale,
    c.EXTRA AS extra
FROM INFORMATION_SCHEMA.TABLES t
    JOIN INFORMATION_SCHEMA.COLUMNS c ON c.TABLE_SCHEMA = t.TABLE_SCHEMA AND c.TABLE_NAME = t.TABLE_NAME
WHERE t.TABLE_TYPE = 'BASE TABLE' AND t.TABLE_SCHEMA = DATABASE()
"""

_KEYS_SQL = """
SELECT
    tc.TABLE_NAME AS table_name,
    tc.CONSTRAINT_NAME AS constraint_name,
    tc.CONSTRAINT_TYPE AS constraint_type,
    kcu.COLUMN_NAME AS column_name,
    kcu.REFERENCED_TABLE_NAME AS referenced_table_name,
    kcu.REFERENCED_COLUMN_NAME AS referenced_column_name,
    rc.DELETE_RULE AS delete_rule,
    rc.UPDATE_RULE AS update_rule
FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
        ON kcu.CONSTRAINT_SCHEMA = tc.CONSTRAINT_SCHEMA
        AND kcu.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
        AND kcu.TABLE_NAME = tc.TABLE_NAME
    LEFT JOIN INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
        ON rc.CONSTRAINT_SCHEMA = tc.CONSTRAINT_SCHEMA
        AND rc.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
        AND rc.TABLE_NAME = tc.TABLE_NAME
WHERE tc.TABLE_SCHEMA = DATABASE()
    AND tc.CONSTRAINT_TYPE IN ('PRIMARY KEY', 'UNIQUE', 'FOREIGN KEY')
"""

_CHECKS_SQL = """
SELECT
    tc.TABLE_NAME AS table_name,
    tc.CONSTRAINT_NAME AS constraint_name,
    cc.CHECK_CLAUSE AS check_clause
FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
    JOIN INFORMATION_SCHEMA.CHECK_CONSTRAINTS cc
        ON cc.CONSTRAINT_SCHEMA = tc.CONSTRAINT_SCHEMA
        AND cc.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
WHERE tc.TABLE_SCHEMA = DATABASE() AND tc.CONSTRAINT_TYPE = 'CHECK'
"""

_INDEXES_SQL = """
SELECT
    s.TABLE_NAME AS table_name,
    s.INDEX_NAME AS index_name,
    s.NON_UNIQUE AS non_unique,
    s.COLUMN_NAME AS column_name
FROM INFORMATION_SCHEMA.STATISTICS s
WHERE s.TABLE_SCHEMA = DATABASE()
    AND s.INDEX_NAME <> 'PRIMARY'
    AND s.INDEX_NAME NOT IN (
        SELECT x.CONSTRAINT_NAME FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS x
        WHERE x.TABLE_SCHEMA = DATABASE() AND x.TABLE_NAME = s.TABLE_NAME
            AND x.CONSTRAINT_TYPE IN ('PRIMARY KEY', 'FOREIGN KEY', 'CHECK')
    )
"""


def supports_check_constraints(version: Optional[str]) -> bool:
    """True for MySQL 8.0.16+ and MariaDB 10.2.1+."""
    parsed = parse_version(version)
    if version and "mariadb" in version.lower():
        return parsed >= (10, 2, 1)
    return parsed >= (8, 0, 16)


class MySqlDialect(ProviderDialect):
    """MySQL capabilities and SQL."""

    provider_type = ProviderType.MYSQL
    identifier_quotes = ("`", "`")

    def auto_increment_sql(self, column: Column) -> str:
        return "AUTO_INCREMENT"

    def drop_index_sql(self, schema_name: Optional[str], table_name: str, index_name: str) -> List[str]:
        return [f"DROP INDEX {self.quote(index_name)} ON {self.quote(table_name)}"]

    def drop_primary_key_sql(self, table: Table, pk: PrimaryKeyConstraint) -> List[str]:
        return self._alter_table(table, "DROP PRIMARY KEY")

    def drop_unique_sql(self, table: Table, uc: UniqueConstraint) -> List[str]:
        return self._alter_table(table, f"DROP INDEX {self.quote(uc.constraint_name)}")

    def drop_check_sql(self, table: Table, ck: CheckConstraint) -> List[str]:
        return self._alter_table(table, f"DROP CHECK {self.quote(ck.constraint_name)}")

    def drop_foreign_key_sql(self, table: Table, fk: ForeignKeyConstraint) -> List[str]:
        return self._alter_table(table, f"DROP FOREIGN KEY {self.quote(fk.constraint_name)}")

    def update_view_sql(self, current: View, updated: View) -> List[str]:
        same_definition = current.definition.strip() == updated.definition.strip()
        same_name = current.view_name == updated.view_name
        if same_definition and not same_name:
            return [f"RENAME TABLE {self.quote(current.view_name)} TO {self.quote(updated.view_name)}"]
        if same_name:
            return [f"CREATE OR REPLACE VIEW {self.quote(updated.view_name)} AS {updated.definition}"]
        return super().update_view_sql(current, updated)

    async def _require_check_support(self, conn: DatabaseConnection) -> None:
        version = await conn.get_server_version()
        if not supports_check_constraints(version):
            raise UnsupportedOperationError(
                f"Check constraints are not enforced by server version {version}",
                code=ErrorCodes.OPERATION_UNSUPPORTED,
                context={"provider": self.provider_type.value, "version": version},
            )

    async def create_table(self, conn: DatabaseConnection, table: Table) -> None:
        if table.check_constraints:
            await self._require_check_support(conn)
        await super().create_table(conn, table)

    async def add_check_constraint(self, conn: DatabaseConnection, table: Table, ck: CheckConstraint) -> None:
        await self._require_check_support(conn)
        await super().add_check_constraint(conn, table, ck)

    async def rename_column(
        self, conn: DatabaseConnection, table: Table, column_name: str, new_column_name: str
    ) -> None:
        version = await conn.get_server_version()
        minimum = (10, 5, 2) if version and "mariadb" in version.lower() else (8, 0, 0)
        if version and parse_version(version) < minimum:
            # Older servers lack RENAME COLUMN; CHANGE needs the full definition
            column = table.get_column(column_name)
            default = table.get_default_constraint_on_column(column_name)
            definition = self.column_definition_sql(column, default)[len(self.quote(column_name)) + 1:]
            await conn.execute(
                f"ALTER TABLE {self.quote(table.table_name)} CHANGE {self.quote(column_name)} "
                f"{self.quote(new_column_name)} {definition}"
            )
            return
        await super().rename_column(conn, table, column_name, new_column_name)

    # Introspection

    async def get_table_names(self, conn: DatabaseConnection, schema_name: Optional[str]) -> List[str]:
        rows = await conn.fetch_all(
            "SELECT TABLE_NAME AS table_name FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_TYPE = 'BASE TABLE' AND TABLE_SCHEMA = DATABASE() ORDER BY TABLE_NAME"
        )
        return [row["table_name"] for row in rows]

    async def get_tables(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: Optional[str] = None
    ) -> List[Table]:
        parameters: Dict[str, Any] = {}
        columns_where = keys_where = checks_where = indexes_where = ""
        if table_name:
            parameters["table"] = table_name
            columns_where = " AND LOWER(t.TABLE_NAME) = LOWER(:table)"
            keys_where = checks_where = " AND LOWER(tc.TABLE_NAME) = LOWER(:table)"
            indexes_where = " AND LOWER(s.TABLE_NAME) = LOWER(:table)"

        column_rows = await conn.fetch_all(
            _COLUMNS_SQL + columns_where + " ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION", parameters
        )
        key_rows = await conn.fetch_all(
            _KEYS_SQL + keys_where + " ORDER BY tc.TABLE_NAME, tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION", parameters
        )
        index_rows = await conn.fetch_all(
            _INDEXES_SQL + indexes_where + " ORDER BY s.TABLE_NAME, s.INDEX_NAME, s.SEQ_IN_INDEX", parameters
        )
        check_rows = []
        if supports_check_constraints(await conn.get_server_version()):
            check_rows = await conn.fetch_all(
                _CHECKS_SQL + checks_where + " ORDER BY tc.TABLE_NAME, tc.CONSTRAINT_NAME", parameters
            )

        tables: Dict[str, Table] = {}
        for row in column_rows:
            table = tables.setdefault(row["table_name"], Table(table_name=row["table_name"]))
            self._add_column(table, row)

        for row in key_rows:
            table = tables.get(row["table_name"])
            if table is not None:
                self._add_key_column(table, row)

        for row in check_rows:
            table = tables.get(row["table_name"])
            if table is None:
                continue
            expression = strip_outer_parentheses(row["check_clause"])
            table.check_constraints.append(
                CheckConstraint(
                    check_expression=expression,
                    constraint_name=row["constraint_name"],
                    column_name=infer_check_column(
                        table.table_name, row["constraint_name"], expression, table.columns
                    ),
                )
            )

        for row in index_rows:
            table = tables.get(row["table_name"])
            if table is None:
                continue
            index = table.get_index(row["index_name"])
            if index is None:
                index = Index(index_name=row["index_name"], column_names=[], is_unique=not row["non_unique"])
                table.indexes.append(index)
            index.column_names.append(row["column_name"])

        result = []
        for table in tables.values():
            self.name_constraints(table)
            result.append(self.apply_column_flags(table))
        return result

    @staticmethod
    def _default_expression(value: Optional[str], extra: str) -> Optional[str]:
        if value is None:
            return None
        # MariaDB reports a literal NULL for columns without a default
        if value.upper() == "NULL":
            return None
        if "DEFAULT_GENERATED" in extra.upper() or value.upper().startswith(_KEYWORD_DEFAULTS):
            return strip_outer_parentheses(value)
        if _NUMERIC_LITERAL.match(value) or value.startswith("'"):
            return value
        return ProviderDialect.literal(value)

    def _add_column(self, table: Table, row: Dict[str, Any]) -> None:
        extra = row["extra"] or ""
        table.columns.append(
            Column(
                column_name=row["column_name"],
                provider_data_type=row["column_type"],
                is_nullable=row["is_nullable"] == "YES",
                is_auto_increment="auto_increment" in extra.lower(),
                max_length=row["max_length"],
                precision=row["numeric_precision"],
                scale=row["numeric_scale"],
            )
        )
        expression = self._default_expression(row["column_default"], extra)
        if expression is not None:
            table.default_constraints.append(DefaultConstraint(column_name=row["column_name"], expression=expression))

    @staticmethod
    def _add_key_column(table: Table, row: Dict[str, Any]) -> None:
        kind = row["constraint_type"]
        name = row["constraint_name"]
        column = row["column_name"]

        if kind == "PRIMARY KEY":
            if table.primary_key_constraint is None:
                table.primary_key_constraint = PrimaryKeyConstraint(column_names=[])
            table.primary_key_constraint.column_names.append(column)
            # MySQL names every primary key PRIMARY
            table.primary_key_constraint.constraint_name = generate_primary_key_name(
                table.table_name, table.primary_key_constraint.column_names
            )
        elif kind == "UNIQUE":
            uc = table.get_unique_constraint(name)
            if uc is None:
                uc = UniqueConstraint(column_names=[], constraint_name=name)
                table.unique_constraints.append(uc)
            uc.column_names.append(column)
        elif kind == "FOREIGN KEY":
            fk = table.get_foreign_key(name)
            if fk is None:
                fk = ForeignKeyConstraint(
                    column_names=[],
                    referenced_table_name=row["referenced_table_name"],
                    referenced_column_names=[],
                    constraint_name=name,
                    on_delete=ForeignKeyAction.parse(row["delete_rule"]),
                    on_update=ForeignKeyAction.parse(row["update_rule"]),
                )
                table.foreign_key_constraints.append(fk)
            fk.column_names.append(column)
            fk.referenced_column_names.append(row["referenced_column_name"])

    async def get_views(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: Optional[str] = None
    ) -> List[View]:
        sql = (
            "SELECT TABLE_NAME AS view_name, VIEW_DEFINITION AS definition "
            "FROM INFORMATION_SCHEMA.VIEWS WHERE TABLE_SCHEMA = DATABASE()"
        )
        parameters = {}
        if view_name:
            sql += " AND LOWER(TABLE_NAME) = LOWER(:view)"
            parameters["view"] = view_name
        rows = await conn.fetch_all(sql + " ORDER BY TABLE_NAME", parameters)
        return [View(view_name=row["view_name"], definition=(row["definition"] or "").strip()) for row in rows]

    async def get_view_columns(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str
    ) -> List[Column]:
        rows = await conn.fetch_all(
            "SELECT COLUMN_NAME AS column_name, COLUMN_TYPE AS column_type, IS_NULLABLE AS is_nullable, "
            "CHARACTER_MAXIMUM_LENGTH AS max_length, NUMERIC_PRECISION AS numeric_precision, "
            "NUMERIC_SCALE AS numeric_scale "
            "FROM INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = DATABASE() AND LOWER(TABLE_NAME) = LOWER(:view) "
            "ORDER BY ORDINAL_POSITION",
            {"view": view_name},
        )
        return [
            Column(
                column_name=row["column_name"],
                provider_data_type=row["column_type"],
                is_nullable=row["is_nullable"] == "YES",
                max_length=row["max_length"],
                precision=row["numeric_precision"],
                scale=row["numeric_scale"],
            )
            for row in rows
        ]
