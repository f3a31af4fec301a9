"""SQL Server dialect.

Default constraints are first-class named objects on SQL Server, so
caller-supplied names are kept and a column cannot be dropped while one is
bound to it. Introspection reads the ``sys`` catalog views.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..core.utils import equals_ignore_case
from ..database.connection import DatabaseConnection
from ..models.datasource import ProviderType
from ..models.datatypes import DataTypeInfo
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
from .base import ProviderDialect, strip_create_view, strip_outer_parentheses
from .sqlite_parser import infer_check_column

_LENGTH_TYPES = ("varchar", "char", "varbinary", "binary")
_UNICODE_TYPES = ("nvarchar", "nchar")
_DECIMAL_TYPES = ("decimal", "numeric")
_FRACTIONAL_SECOND_TYPES = ("datetime2", "datetimeoffset", "time")

_TABLE_SCOPE = """
FROM sys.tables t
    JOIN sys.schemas s ON s.schema_id = t.schema_id
"""

_COLUMNS_SQL = f"""
SELECT
    t.name AS table_name,
    c.name AS column_name,
    ty.name AS type_name,
    c.max_length AS max_length,
    c.precision AS numeric_precision,
    c.scale AS numeric_scale,
    c.is_nullable AS is_nullable,
    c.is_identity AS is_identity
{_TABLE_SCOPE}
    JOIN sys.columns c ON c.object_id = t.object_id
    JOIN sys.types ty ON ty.user_type_id = c.user_type_id
WHERE t.is_ms_shipped = 0 AND LOWER(s.name) = LOWER(:schema)
"""

_INDEX_COLUMNS_SQL = f"""
SELECT
    t.name AS table_name,
    i.name AS index_name,
    i.is_primary_key AS is_primary_key,
    i.is_unique_constraint AS is_unique_constraint,
    i.is_unique AS is_unique,
    c.name AS column_name
{_TABLE_SCOPE}
    JOIN sys.indexes i ON i.object_id = t.object_id
    JOIN sys.index_columns ic ON ic.object_id = i.object_id AND ic.index_id = i.index_id
    JOIN sys.columns c ON c.object_id = ic.object_id AND c.column_id = ic.column_id
WHERE t.is_ms_shipped = 0 AND i.type > 0 AND ic.is_included_column = 0
    AND LOWER(s.name) = LOWER(:schema)
"""

_CHECKS_SQL = f"""
SELECT
    t.name AS table_name,
    con.name AS constraint_name,
    col.name AS column_name,
    con.definition AS definition
{_TABLE_SCOPE}
    JOIN sys.check_constraints con ON con.parent_object_id = t.object_id
    LEFT JOIN sys.columns col ON col.object_id = con.parent_object_id AND col.column_id = con.parent_column_id
WHERE t.is_ms_shipped = 0 AND LOWER(s.name) = LOWER(:schema)
"""

_DEFAULTS_SQL = f"""
SELECT
    t.name AS table_name,
    con.name AS constraint_name,
    col.name AS column_name,
    con.definition AS definition
{_TABLE_SCOPE}
    JOIN sys.default_constraints con ON con.parent_object_id = t.object_id
    JOIN sys.columns col ON col.object_id = con.parent_object_id AND col.column_id = con.parent_column_id
WHERE t.is_ms_shipped = 0 AND LOWER(s.name) = LOWER(:schema)
"""

_FOREIGN_KEYS_SQL = f"""
SELECT
    t.name AS table_name,
    fk.name AS constraint_name,
    pc.name AS column_name,
    rt.name AS referenced_table_name,
    rc.name AS referenced_column_name,
    fk.delete_referential_action_desc AS delete_rule,
    fk.update_referential_action_desc AS update_rule
{_TABLE_SCOPE}
    JOIN sys.foreign_keys fk ON fk.parent_object_id = t.object_id
    JOIN sys.foreign_key_columns fkc ON fkc.constraint_object_id = fk.object_id
    JOIN sys.columns pc ON pc.object_id = fkc.parent_object_id AND pc.column_id = fkc.parent_column_id
    JOIN sys.tables rt ON rt.object_id = fkc.referenced_object_id
    JOIN sys.columns rc ON rc.object_id = fkc.referenced_object_id AND rc.column_id = fkc.referenced_column_id
WHERE t.is_ms_shipped = 0 AND LOWER(s.name) = LOWER(:schema)
"""


def format_sqlserver_type(
    type_name: str, max_length: Optional[int], precision: Optional[int], scale: Optional[int]
) -> Tuple[str, Optional[int], Optional[int], Optional[int]]:
    """Rebuild a declared type such as ``nvarchar(50)`` from ``sys.columns``.

    ``max_length`` is in bytes there, so Unicode lengths are halved and
    ``-1`` means ``max``.

    Returns:
        Tuple of type text, character length, precision and scale
    """
    name = type_name.lower()
    if name in _LENGTH_TYPES or name in _UNICODE_TYPES:
        if max_length == -1:
            return f"{type_name}(max)", -1, None, None
        length = max_length // 2 if name in _UNICODE_TYPES and max_length else max_length
        return f"{type_name}({length})", length, None, None
    if name in _DECIMAL_TYPES:
        return f"{type_name}({precision},{scale})", None, precision, scale
    if name in _FRACTIONAL_SECOND_TYPES:
        return f"{type_name}({scale})", None, None, scale
    return type_name, None, None, None


class SqlServerDialect(ProviderDialect):
    """SQL Server capabilities and SQL."""

    provider_type = ProviderType.SQLSERVER
    supports_schemas = True
    default_schema = "dbo"
    supports_named_default_constraints = True
    identifier_quotes = ("[", "]")

    def paging_clause(self, take: int, skip: int, *, ordered: bool) -> str:
        # OFFSET/FETCH is only legal after ORDER BY
        order = "" if ordered else "ORDER BY (SELECT NULL) "
        return f"{order}OFFSET {int(skip)} ROWS FETCH NEXT {int(take)} ROWS ONLY"

    def auto_increment_sql(self, column: Column) -> str:
        return "IDENTITY(1,1)"

    def default_sql(self, default: DefaultConstraint) -> str:
        if default.constraint_name:
            return f"CONSTRAINT {self.quote(default.constraint_name)} DEFAULT {default.expression}"
        return f"DEFAULT {default.expression}"

    def _object_literal(self, *parts: Optional[str]) -> str:
        return "N" + self.literal(".".join(self.quote(part) for part in parts if part))

    def rename_table_sql(self, schema_name: Optional[str], table_name: str, new_table_name: str) -> List[str]:
        return [f"EXEC sp_rename {self._object_literal(schema_name, table_name)}, N{self.literal(new_table_name)}"]

    def add_column_sql(
        self, table: Table, column: Column, default: Optional[DefaultConstraint] = None
    ) -> List[str]:
        return self._alter_table(table, f"ADD {self.column_definition_sql(column, default)}")

    def rename_column_sql(self, table: Table, column_name: str, new_column_name: str) -> List[str]:
        target = self._object_literal(table.schema_name, table.table_name, column_name)
        return [f"EXEC sp_rename {target}, N{self.literal(new_column_name)}, N'COLUMN'"]

    def drop_index_sql(self, schema_name: Optional[str], table_name: str, index_name: str) -> List[str]:
        return [f"DROP INDEX {self.quote(index_name)} ON {self.qualify(schema_name, table_name)}"]

    def add_default_sql(self, table: Table, dc: DefaultConstraint) -> List[str]:
        return self._alter_table(
            table,
            f"ADD CONSTRAINT {self.quote(dc.constraint_name)} DEFAULT {dc.expression} FOR {self.quote(dc.column_name)}",
        )

    def drop_default_sql(self, table: Table, dc: DefaultConstraint) -> List[str]:
        return self.drop_constraint_sql(table, dc.constraint_name)

    def drop_column_sql(self, table: Table, column_name: str) -> List[str]:
        """Drop the column after the constraints bound to it.

        SQL Server refuses to drop a column while a default or column-level
        check constraint still references it.
        """
        statements: List[str] = []
        default = table.get_default_constraint_on_column(column_name)
        if default is not None:
            statements.extend(self.drop_default_sql(table, default))
        for ck in table.check_constraints:
            if equals_ignore_case(ck.column_name, column_name):
                statements.extend(self.drop_check_sql(table, ck))
        statements.extend(super().drop_column_sql(table, column_name))
        return statements

    def update_view_sql(self, current: View, updated: View) -> List[str]:
        same_definition = current.definition.strip() == updated.definition.strip()
        same_name = current.view_name == updated.view_name
        if same_definition and not same_name:
            return [
                f"EXEC sp_rename {self._object_literal(current.schema_name, current.view_name)}, "
                f"N{self.literal(updated.view_name)}"
            ]
        if same_name:
            return [f"ALTER VIEW {self.qualify(updated.schema_name, updated.view_name)} AS {updated.definition}"]
        return super().update_view_sql(current, updated)

    # Introspection

    async def get_schema_names(self, conn: DatabaseConnection) -> List[str]:
        rows = await conn.fetch_all(
            "SELECT name AS schema_name FROM sys.schemas "
            "WHERE schema_id < 16384 AND name NOT IN ('sys', 'INFORMATION_SCHEMA', 'guest') "
            "ORDER BY name"
        )
        return [row["schema_name"] for row in rows]

    async def get_table_names(self, conn: DatabaseConnection, schema_name: Optional[str]) -> List[str]:
        rows = await conn.fetch_all(
            "SELECT t.name AS table_name" + _TABLE_SCOPE
            + "WHERE t.is_ms_shipped = 0 AND LOWER(s.name) = LOWER(:schema) ORDER BY t.name",
            {"schema": self.normalize_schema_name(schema_name)},
        )
        return [row["table_name"] for row in rows]

    async def get_tables(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: Optional[str] = None
    ) -> List[Table]:
        schema_name = self.normalize_schema_name(schema_name)
        parameters: Dict[str, Any] = {"schema": schema_name}
        where = ""
        if table_name:
            parameters["table"] = table_name
            where = " AND LOWER(t.name) = LOWER(:table)"

        column_rows = await conn.fetch_all(_COLUMNS_SQL + where + " ORDER BY t.name, c.column_id", parameters)
        index_rows = await conn.fetch_all(
            _INDEX_COLUMNS_SQL + where + " ORDER BY t.name, i.name, ic.key_ordinal", parameters
        )
        check_rows = await conn.fetch_all(_CHECKS_SQL + where + " ORDER BY t.name, con.name", parameters)
        default_rows = await conn.fetch_all(_DEFAULTS_SQL + where + " ORDER BY t.name, col.column_id", parameters)
        fk_rows = await conn.fetch_all(
            _FOREIGN_KEYS_SQL + where + " ORDER BY t.name, fk.name, fkc.constraint_column_id", parameters
        )

        tables: Dict[str, Table] = {}
        for row in column_rows:
            table = tables.setdefault(row["table_name"], Table(table_name=row["table_name"], schema_name=schema_name))
            data_type, length, precision, scale = format_sqlserver_type(
                row["type_name"], row["max_length"], row["numeric_precision"], row["numeric_scale"]
            )
            table.columns.append(
                Column(
                    column_name=row["column_name"],
                    provider_data_type=data_type,
                    is_nullable=bool(row["is_nullable"]),
                    is_auto_increment=bool(row["is_identity"]),
                    max_length=length,
                    precision=precision,
                    scale=scale,
                )
            )

        for row in index_rows:
            table = tables.get(row["table_name"])
            if table is not None:
                self._add_index_column(table, row)

        for row in default_rows:
            table = tables.get(row["table_name"])
            if table is not None:
                table.default_constraints.append(
                    DefaultConstraint(
                        column_name=row["column_name"],
                        expression=strip_outer_parentheses(row["definition"]),
                        constraint_name=row["constraint_name"],
                    )
                )

        for row in check_rows:
            table = tables.get(row["table_name"])
            if table is None:
                continue
            expression = strip_outer_parentheses(row["definition"])
            table.check_constraints.append(
                CheckConstraint(
                    check_expression=expression,
                    constraint_name=row["constraint_name"],
                    column_name=row["column_name"]
                    or infer_check_column(table.table_name, row["constraint_name"], expression, table.columns),
                )
            )

        for row in fk_rows:
            table = tables.get(row["table_name"])
            if table is None:
                continue
            fk = table.get_foreign_key(row["constraint_name"])
            if fk is None:
                fk = ForeignKeyConstraint(
                    column_names=[],
                    referenced_table_name=row["referenced_table_name"],
                    referenced_column_names=[],
                    constraint_name=row["constraint_name"],
                    on_delete=ForeignKeyAction.parse(row["delete_rule"]),
                    on_update=ForeignKeyAction.parse(row["update_rule"]),
                )
                table.foreign_key_constraints.append(fk)
            fk.column_names.append(row["column_name"])
            fk.referenced_column_names.append(row["referenced_column_name"])

        result = []
        for table in tables.values():
            self.name_constraints(table)
            result.append(self.apply_column_flags(table))
        return result

    @staticmethod
    def _add_index_column(table: Table, row: Dict[str, Any]) -> None:
        name = row["index_name"]
        column = row["column_name"]
        if row["is_primary_key"]:
            if table.primary_key_constraint is None:
                table.primary_key_constraint = PrimaryKeyConstraint(column_names=[], constraint_name=name)
            table.primary_key_constraint.column_names.append(column)
        elif row["is_unique_constraint"]:
            uc = table.get_unique_constraint(name)
            if uc is None:
                uc = UniqueConstraint(column_names=[], constraint_name=name)
                table.unique_constraints.append(uc)
            uc.column_names.append(column)
        else:
            index = table.get_index(name)
            if index is None:
                index = Index(column_names=[], index_name=name, is_unique=bool(row["is_unique"]))
                table.indexes.append(index)
            index.column_names.append(column)

    async def get_views(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: Optional[str] = None
    ) -> List[View]:
        schema_name = self.normalize_schema_name(schema_name)
        parameters: Dict[str, Any] = {"schema": schema_name}
        sql = (
            "SELECT v.name AS view_name, OBJECT_DEFINITION(v.object_id) AS definition "
            "FROM sys.views v JOIN sys.schemas s ON s.schema_id = v.schema_id "
            "WHERE v.is_ms_shipped = 0 AND LOWER(s.name) = LOWER(:schema)"
        )
        if view_name:
            sql += " AND LOWER(v.name) = LOWER(:view)"
            parameters["view"] = view_name
        rows = await conn.fetch_all(sql + " ORDER BY v.name", parameters)
        return [
            View(view_name=row["view_name"], definition=strip_create_view(row["definition"]), schema_name=schema_name)
            for row in rows
        ]

    async def get_view_columns(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str
    ) -> List[Column]:
        rows = await conn.fetch_all(
            "SELECT c.name AS column_name, ty.name AS type_name, c.max_length AS max_length, "
            "c.precision AS numeric_precision, c.scale AS numeric_scale, c.is_nullable AS is_nullable "
            "FROM sys.views v JOIN sys.schemas s ON s.schema_id = v.schema_id "
            "JOIN sys.columns c ON c.object_id = v.object_id "
            "JOIN sys.types ty ON ty.user_type_id = c.user_type_id "
            "WHERE LOWER(s.name) = LOWER(:schema) AND LOWER(v.name) = LOWER(:view) "
            "ORDER BY c.column_id",
            {"schema": self.normalize_schema_name(schema_name), "view": view_name},
        )
        columns = []
        for row in rows:
            data_type, length, precision, scale = format_sqlserver_type(
                row["type_name"], row["max_length"], row["numeric_precision"], row["numeric_scale"]
            )
            columns.append(
                Column(
                    column_name=row["column_name"],
                    provider_data_type=data_type,
                    is_nullable=bool(row["is_nullable"]),
                    max_length=length,
                    precision=precision,
                    scale=scale,
                )
            )
        return columns

    async def get_custom_datatypes(self, conn: DatabaseConnection) -> List[DataTypeInfo]:
        """User-defined alias and table types."""
        rows = await conn.fetch_all(
            "SELECT t.name AS type_name, bt.name AS base_type, t.max_length AS max_length, "
            "t.precision AS numeric_precision, t.scale AS numeric_scale, t.is_table_type AS is_table_type "
            "FROM sys.types t LEFT JOIN sys.types bt "
            "ON bt.user_type_id = t.system_type_id AND bt.is_user_defined = 0 "
            "WHERE t.is_user_defined = 1 ORDER BY t.name"
        )
        custom = []
        for row in rows:
            if row["is_table_type"]:
                description = "User-defined table type"
            else:
                base, _, _, _ = format_sqlserver_type(
                    row["base_type"] or "", row["max_length"], row["numeric_precision"], row["numeric_scale"]
                )
                description = f"Alias of {base}"
            custom.append(DataTypeInfo(data_type=row["type_name"], description=description, is_custom=True))
        return custom
