"""PostgreSQL dialect.

Introspection reads ``pg_catalog`` directly. Constraint column lists come
back as arrays, which asyncpg maps to Python lists.
"""

import re
from typing import Any, Dict, List, Optional

from ..database.connection import DatabaseConnection
from ..models.datasource import ProviderType
from ..models.datatypes import DataTypeCategory, DataTypeInfo
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
from .base import ProviderDialect, strip_create_view
from .sqlite_parser import parse_type_arguments

_CHECK_DEFINITION = re.compile(r"^\s*CHECK\s*\((.*)\)\s*(?:NOT\s+VALID)?\s*$", re.IGNORECASE | re.DOTALL)

_FK_ACTIONS = {
    "a": ForeignKeyAction.NO_ACTION,
    "r": ForeignKeyAction.RESTRICT,
    "c": ForeignKeyAction.CASCADE,
    "n": ForeignKeyAction.SET_NULL,
    "d": ForeignKeyAction.SET_DEFAULT,
}

# Extension tables that are not user data
_SYSTEM_TABLES = ("spatial_ref_sys", "geometry_columns", "geography_columns", "raster_columns", "raster_overviews")

_USER_SCHEMA_FILTER = "n.nspname NOT LIKE 'pg\\_%' AND n.nspname <> 'information_schema'"

_COLUMNS_SQL = f"""
SELECT
    c.relname AS table_name,
    a.attname AS column_name,
    a.attnum AS ordinal,
    pg_catalog.format_type(a.atttypid, a.atttypmod) AS data_type,
    NOT a.attnotnull AS is_nullable,
    a.attidentity <> '' AS is_identity,
    pg_catalog.pg_get_expr(d.adbin, d.adrelid) AS column_default
FROM pg_catalog.pg_attribute a
    JOIN pg_catalog.pg_class c ON a.attrelid = c.oid AND c.relkind IN ('r', 'p')
    JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid
    LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
WHERE {_USER_SCHEMA_FILTER}
    AND a.attnum > 0 AND NOT a.attisdropped
    AND lower(n.nspname) = lower(:schema)
"""

_CONSTRAINTS_SQL = f"""
SELECT
    c.relname AS table_name,
    r.conname AS constraint_name,
    r.contype AS constraint_type,
    pg_catalog.pg_get_constraintdef(r.oid, true) AS definition,
    rc.relname AS referenced_table_name,
    ARRAY(
        SELECT a.attname::text
        FROM unnest(r.conkey) WITH ORDINALITY AS k(attnum, position)
            JOIN pg_catalog.pg_attribute a ON a.attrelid = r.conrelid AND a.attnum = k.attnum
        ORDER BY k.position
    ) AS column_names,
    ARRAY(
        SELECT a.attname::text
        FROM unnest(r.confkey) WITH ORDINALITY AS k(attnum, position)
            JOIN pg_catalog.pg_attribute a ON a.attrelid = r.confrelid AND a.attnum = k.attnum
        ORDER BY k.position
    ) AS referenced_column_names,
    r.confdeltype AS delete_rule,
    r.confupdtype AS update_rule
FROM pg_catalog.pg_constraint r
    JOIN pg_catalog.pg_class c ON r.conrelid = c.oid
    JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid
    LEFT JOIN pg_catalog.pg_class rc ON r.confrelid = rc.oid
WHERE {_USER_SCHEMA_FILTER}
    AND r.contype IN ('c', 'f', 'p', 'u')
    AND lower(n.nspname) = lower(:schema)
"""

_INDEXES_SQL = f"""
SELECT
    c.relname AS table_name,
    ic.relname AS index_name,
    i.indisunique AS is_unique,
    ARRAY(
        SELECT a.attname::text
        FROM unnest(i.indkey) WITH ORDINALITY AS k(attnum, position)
            JOIN pg_catalog.pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = k.attnum
        ORDER BY k.position
    ) AS column_names
FROM pg_catalog.pg_index i
    JOIN pg_catalog.pg_class c ON c.oid = i.indrelid
    JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid
    JOIN pg_catalog.pg_class ic ON ic.oid = i.indexrelid
WHERE {_USER_SCHEMA_FILTER}
    AND i.indislive
    AND NOT i.indisprimary
    AND NOT EXISTS (SELECT 1 FROM pg_catalog.pg_constraint x WHERE x.conindid = i.indexrelid)
    AND lower(n.nspname) = lower(:schema)
"""


class PostgreSqlDialect(ProviderDialect):
    """PostgreSQL capabilities and SQL."""

    provider_type = ProviderType.POSTGRESQL
    supports_schemas = True
    default_schema = "public"

    def auto_increment_sql(self, column: Column) -> str:
        return "GENERATED BY DEFAULT AS IDENTITY"

    def drop_schema_sql(self, schema_name: str) -> List[str]:
        return [f"DROP SCHEMA {self.quote(schema_name)} CASCADE"]

    def drop_index_sql(self, schema_name: Optional[str], table_name: str, index_name: str) -> List[str]:
        return [f"DROP INDEX {self.qualify(schema_name, index_name)}"]

    def update_view_sql(self, current: View, updated: View) -> List[str]:
        if current.definition.strip() == updated.definition.strip():
            return [
                f"ALTER VIEW {self.qualify(current.schema_name, current.view_name)} "
                f"RENAME TO {self.quote(updated.view_name)}"
            ]
        return super().update_view_sql(current, updated)

    # Introspection

    async def get_schema_names(self, conn: DatabaseConnection) -> List[str]:
        rows = await conn.fetch_all(
            f"SELECT n.nspname AS schema_name FROM pg_catalog.pg_namespace n "
            f"WHERE {_USER_SCHEMA_FILTER} ORDER BY n.nspname"
        )
        return [row["schema_name"] for row in rows]

    async def get_table_names(self, conn: DatabaseConnection, schema_name: Optional[str]) -> List[str]:
        rows = await conn.fetch_all(
            f"SELECT c.relname AS table_name FROM pg_catalog.pg_class c "
            f"JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid "
            f"WHERE c.relkind IN ('r', 'p') AND {_USER_SCHEMA_FILTER} "
            f"AND lower(n.nspname) = lower(:schema) ORDER BY c.relname",
            {"schema": self.normalize_schema_name(schema_name)},
        )
        return [row["table_name"] for row in rows if row["table_name"] not in _SYSTEM_TABLES]

    @staticmethod
    def _table_filter(table_name: Optional[str], parameters: Dict[str, Any]) -> str:
        if not table_name:
            return ""
        parameters["table"] = table_name
        return " AND lower(c.relname) = lower(:table)"

    async def get_tables(
        self, conn: DatabaseConnection, schema_name: Optional[str], table_name: Optional[str] = None
    ) -> List[Table]:
        schema_name = self.normalize_schema_name(schema_name)
        parameters: Dict[str, Any] = {"schema": schema_name}
        where = self._table_filter(table_name, parameters)

        column_rows = await conn.fetch_all(_COLUMNS_SQL + where + " ORDER BY c.relname, a.attnum", parameters)
        constraint_rows = await conn.fetch_all(
            _CONSTRAINTS_SQL + where + " ORDER BY c.relname, r.conname", parameters
        )
        index_rows = await conn.fetch_all(_INDEXES_SQL + where + " ORDER BY c.relname, ic.relname", parameters)

        tables: Dict[str, Table] = {}
        for row in column_rows:
            name = row["table_name"]
            if name in _SYSTEM_TABLES:
                continue
            table = tables.setdefault(name, Table(table_name=name, schema_name=schema_name))
            self._add_column(table, row)

        for row in constraint_rows:
            table = tables.get(row["table_name"])
            if table is not None:
                self._add_constraint(table, row)

        for row in index_rows:
            table = tables.get(row["table_name"])
            if table is not None:
                table.indexes.append(
                    Index(
                        index_name=row["index_name"],
                        column_names=list(row["column_names"]),
                        is_unique=bool(row["is_unique"]),
                    )
                )

        result = []
        for table in tables.values():
            self.name_constraints(table)
            result.append(self.apply_column_flags(table))
        return result

    @staticmethod
    def _add_column(table: Table, row: Dict[str, Any]) -> None:
        data_type = row["data_type"]
        default = row["column_default"]
        is_sequence = bool(default) and default.lower().startswith("nextval(")
        max_length, precision, scale = parse_type_arguments(data_type)
        table.columns.append(
            Column(
                column_name=row["column_name"],
                provider_data_type=data_type,
                is_nullable=bool(row["is_nullable"]),
                is_auto_increment=bool(row["is_identity"]) or is_sequence,
                max_length=max_length,
                precision=precision,
                scale=scale,
            )
        )
        # Sequence defaults belong to serial columns, not to the caller
        if default and not is_sequence:
            table.default_constraints.append(DefaultConstraint(column_name=row["column_name"], expression=default))

    @staticmethod
    def _add_constraint(table: Table, row: Dict[str, Any]) -> None:
        kind = row["constraint_type"]
        name = row["constraint_name"]
        columns = list(row["column_names"] or [])

        if kind == "p":
            table.primary_key_constraint = PrimaryKeyConstraint(column_names=columns, constraint_name=name)
        elif kind == "u":
            table.unique_constraints.append(UniqueConstraint(column_names=columns, constraint_name=name))
        elif kind == "c":
            match = _CHECK_DEFINITION.match(row["definition"] or "")
            if match is None:
                return
            table.check_constraints.append(
                CheckConstraint(
                    check_expression=match.group(1).strip(),
                    constraint_name=name,
                    column_name=columns[0] if len(columns) == 1 else None,
                )
            )
        elif kind == "f":
            table.foreign_key_constraints.append(
                ForeignKeyConstraint(
                    column_names=columns,
                    referenced_table_name=row["referenced_table_name"],
                    referenced_column_names=list(row["referenced_column_names"] or []),
                    constraint_name=name,
                    on_delete=_FK_ACTIONS.get(row["delete_rule"], ForeignKeyAction.NO_ACTION),
                    on_update=_FK_ACTIONS.get(row["update_rule"], ForeignKeyAction.NO_ACTION),
                )
            )

    async def get_views(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: Optional[str] = None
    ) -> List[View]:
        schema_name = self.normalize_schema_name(schema_name)
        parameters: Dict[str, Any] = {"schema": schema_name}
        sql = (
            "SELECT c.relname AS view_name, pg_catalog.pg_get_viewdef(c.oid, true) AS definition "
            "FROM pg_catalog.pg_class c JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid "
            f"WHERE c.relkind = 'v' AND {_USER_SCHEMA_FILTER} AND lower(n.nspname) = lower(:schema)"
        )
        if view_name:
            sql += " AND lower(c.relname) = lower(:view)"
            parameters["view"] = view_name
        rows = await conn.fetch_all(sql + " ORDER BY c.relname", parameters)
        return [
            View(view_name=row["view_name"], definition=strip_create_view(row["definition"]), schema_name=schema_name)
            for row in rows
        ]

    async def get_view_columns(
        self, conn: DatabaseConnection, schema_name: Optional[str], view_name: str
    ) -> List[Column]:
        rows = await conn.fetch_all(
            "SELECT a.attname AS column_name, pg_catalog.format_type(a.atttypid, a.atttypmod) AS data_type, "
            "NOT a.attnotnull AS is_nullable "
            "FROM pg_catalog.pg_attribute a "
            "JOIN pg_catalog.pg_class c ON a.attrelid = c.oid AND c.relkind IN ('v', 'm') "
            "JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid "
            "WHERE a.attnum > 0 AND NOT a.attisdropped "
            "AND lower(n.nspname) = lower(:schema) AND lower(c.relname) = lower(:view) "
            "ORDER BY a.attnum",
            {"schema": self.normalize_schema_name(schema_name), "view": view_name},
        )
        columns = []
        for row in rows:
            max_length, precision, scale = parse_type_arguments(row["data_type"])
            columns.append(
                Column(
                    column_name=row["column_name"],
                    provider_data_type=row["data_type"],
                    is_nullable=bool(row["is_nullable"]),
                    max_length=max_length,
                    precision=precision,
                    scale=scale,
                )
            )
        return columns

    async def get_custom_datatypes(self, conn: DatabaseConnection) -> List[DataTypeInfo]:
        """Domains, enums and composite types defined in user schemas."""
        custom: List[DataTypeInfo] = []

        domains = await conn.fetch_all(
            "SELECT domain_name, data_type, character_maximum_length, numeric_precision, numeric_scale "
            "FROM information_schema.domains "
            "WHERE domain_schema NOT IN ('pg_catalog', 'information_schema') ORDER BY domain_name"
        )
        for row in domains:
            custom.append(
                DataTypeInfo(
                    data_type=row["domain_name"],
                    description=f"Domain based on {row['data_type']}",
                    supports_length=row["character_maximum_length"] is not None,
                    max_length=row["character_maximum_length"],
                    supports_precision=row["numeric_precision"] is not None,
                    max_precision=row["numeric_precision"],
                    supports_scale=row["numeric_scale"] is not None,
                    max_scale=row["numeric_scale"],
                    is_custom=True,
                )
            )

        enums = await conn.fetch_all(
            "SELECT t.typname AS type_name, "
            "ARRAY(SELECT e.enumlabel::text FROM pg_catalog.pg_enum e "
            "WHERE e.enumtypid = t.oid ORDER BY e.enumsortorder) AS labels "
            "FROM pg_catalog.pg_type t JOIN pg_catalog.pg_namespace n ON t.typnamespace = n.oid "
            f"WHERE t.typtype = 'e' AND {_USER_SCHEMA_FILTER} ORDER BY t.typname"
        )
        for row in enums:
            custom.append(
                DataTypeInfo(
                    data_type=row["type_name"],
                    description="Enum with values: " + ", ".join(row["labels"] or []),
                    is_custom=True,
                )
            )

        composites = await conn.fetch_all(
            "SELECT t.typname AS type_name, "
            "ARRAY(SELECT a.attname || ': ' || pg_catalog.format_type(a.atttypid, a.atttypmod) "
            "FROM pg_catalog.pg_attribute a WHERE a.attrelid = t.typrelid AND a.attnum > 0 "
            "AND NOT a.attisdropped ORDER BY a.attnum) AS fields "
            "FROM pg_catalog.pg_type t "
            "JOIN pg_catalog.pg_namespace n ON t.typnamespace = n.oid "
            "JOIN pg_catalog.pg_class c ON c.oid = t.typrelid AND c.relkind = 'c' "
            f"WHERE t.typtype = 'c' AND {_USER_SCHEMA_FILTER} ORDER BY t.typname"
        )
        for row in composites:
            custom.append(
                DataTypeInfo(
                    data_type=row["type_name"],
                    description="Composite type with columns: " + ", ".join(row["fields"] or []),
                    is_custom=True,
                )
            )

        self.logger.debug("Custom data types discovered", count=len(custom))
        return custom
