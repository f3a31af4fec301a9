"""Database table datasource registry.

Records live in a single table (``dm_datasources`` by default) in any of the
supported engines. The table is created through the provider dialect the
first time the registry is used.
"""

import json
from typing import Any, Dict, List, Optional

from ..core.exceptions import ConfigurationError, ErrorCodes
from ..database import ConnectionFactory, DatabaseConnection
from ..models.datasource import Datasource, ProviderType
from ..models.schema import Column, PrimaryKeyConstraint, Table
from ..providers import get_dialect
from ..security import ConnectionStringCrypto
from .base import DatasourceRepository, record_from_dict, record_to_dict

_COLUMNS = (
    "id",
    "provider",
    "connection_string",
    "display_name",
    "description",
    "tags",
    "is_enabled",
    "created_at",
    "updated_at",
)


def registry_table(table_name: str, schema_name: Optional[str]) -> Table:
    """Definition of the registry table."""
    return Table(
        table_name=table_name,
        schema_name=schema_name,
        columns=[
            Column("id", "varchar(64)", is_nullable=False),
            Column("provider", "varchar(32)", is_nullable=False),
            Column("connection_string", "varchar(4000)"),
            Column("display_name", "varchar(128)"),
            Column("description", "varchar(1000)"),
            Column("tags", "varchar(4000)"),
            Column("is_enabled", "int", is_nullable=False),
            Column("created_at", "varchar(40)", is_nullable=False),
            Column("updated_at", "varchar(40)", is_nullable=False),
        ],
        primary_key_constraint=PrimaryKeyConstraint(column_names=["id"]),
    )


class DatabaseDatasourceRepository(DatasourceRepository):
    """Registry persisted in a database table.

    A connection is opened per call; the registry keeps no connection open
    between calls.

    Args:
        provider: Provider of the registry database
        connection_string: Connection string of the registry database
        crypto: Connection string crypto
        table_name: Registry table name
        connection_factory: Factory used to open connections
    """

    backend_name = "database"

    def __init__(
        self,
        provider: Any,
        connection_string: str,
        crypto: Optional[ConnectionStringCrypto],
        *,
        table_name: str = "dm_datasources",
        connection_factory: Optional[ConnectionFactory] = None,
    ) -> None:
        super().__init__(crypto)
        self.provider = ProviderType.parse(provider)
        self.dialect = get_dialect(self.provider)
        self.connection_factory = connection_factory or ConnectionFactory()
        self.table_name = table_name
        self._connection_string = connection_string
        self._table_ready = False

    @property
    def _qualified_table(self) -> str:
        return self.dialect.qualify(self.dialect.default_schema, self.table_name)

    def _connect(self) -> DatabaseConnection:
        return self.connection_factory.create_connection(self.provider, self._connection_string)

    async def _ensure_table(self, conn: DatabaseConnection) -> None:
        if self._table_ready:
            return
        schema_name = self.dialect.default_schema
        if not await self.dialect.table_exists(conn, schema_name, self.table_name):
            await self.dialect.create_table(
                conn, self.dialect.normalize_table(registry_table(self.table_name, schema_name))
            )
            self.logger.info("Registry table created", table_name=self.table_name, provider=self.provider.value)
        self._table_ready = True

    @staticmethod
    def _to_row(record: Datasource) -> Dict[str, Any]:
        data = record_to_dict(record)
        data["tags"] = json.dumps(data.get("tags") or [])
        data["is_enabled"] = 1 if record.is_enabled else 0
        return {name: data.get(name) for name in _COLUMNS}

    def _from_row(self, row: Dict[str, Any]) -> Datasource:
        data = {name.lower(): value for name, value in row.items()}
        try:
            data["tags"] = json.loads(data.get("tags") or "[]")
        except ValueError as e:
            raise ConfigurationError(
                f"Datasource {data.get('id')} has malformed tags in the registry table",
                code=ErrorCodes.CONFIG_INVALID,
                context={"datasource_id": data.get("id"), "table_name": self.table_name},
                cause=e,
            ) from e
        data["is_enabled"] = bool(data.get("is_enabled"))
        return record_from_dict(data)

    def _select_sql(self) -> str:
        return f"SELECT {self.dialect.quote_list(_COLUMNS)} FROM {self._qualified_table}"

    def _key_predicate(self) -> str:
        return f"LOWER({self.dialect.quote('id')}) = LOWER(:id)"

    async def _fetch(self, key: str) -> Optional[Datasource]:
        async with self._connect() as conn:
            await self._ensure_table(conn)
            row = await conn.fetch_one(f"{self._select_sql()} WHERE {self._key_predicate()}", {"id": key})
        return self._from_row(row) if row else None

    async def _fetch_all(self) -> List[Datasource]:
        async with self._connect() as conn:
            await self._ensure_table(conn)
            rows = await conn.fetch_all(self._select_sql())
        return [self._from_row(row) for row in rows]

    async def _insert(self, record: Datasource) -> None:
        placeholders = ", ".join(f":{name}" for name in _COLUMNS)
        sql = f"INSERT INTO {self._qualified_table} ({self.dialect.quote_list(_COLUMNS)}) VALUES ({placeholders})"
        async with self._connect() as conn:
            await self._ensure_table(conn)
            await conn.execute(sql, self._to_row(record))

    async def _replace(self, record: Datasource) -> None:
        assignments = ", ".join(f"{self.dialect.quote(name)} = :{name}" for name in _COLUMNS if name != "id")
        sql = f"UPDATE {self._qualified_table} SET {assignments} WHERE {self._key_predicate()}"
        async with self._connect() as conn:
            await self._ensure_table(conn)
            await conn.execute(sql, self._to_row(record))

    async def _delete(self, key: str) -> bool:
        sql = f"DELETE FROM {self._qualified_table} WHERE {self._key_predicate()}"
        async with self._connect() as conn:
            await self._ensure_table(conn)
            affected = await conn.execute(sql, {"id": key})
        return affected > 0
