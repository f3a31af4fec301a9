"""PostgreSQL connection built on asyncpg."""

from typing import Any, Dict, List, Optional

import asyncpg

from ...core.exceptions import ConnectionError, ErrorCodes
from ...models.datasource import ProviderType
from ..connection import DUPLICATE, MISSING, PARAMSTYLE_NUMERIC, DatabaseConnection

_DUPLICATE_ERRORS = (
    asyncpg.DuplicateTableError,
    asyncpg.DuplicateObjectError,
    asyncpg.DuplicateSchemaError,
    asyncpg.DuplicateColumnError,
    asyncpg.UniqueViolationError,
)
_MISSING_ERRORS = (
    asyncpg.UndefinedTableError,
    asyncpg.UndefinedColumnError,
    asyncpg.UndefinedObjectError,
    asyncpg.InvalidSchemaNameError,
)


class PostgreSqlConnection(DatabaseConnection):
    """PostgreSQL connection.

    Command timeouts are enforced by asyncpg itself.
    """

    component_name = "PostgreSqlConnection"
    provider_type = ProviderType.POSTGRESQL
    platform = "postgresql"
    paramstyle = PARAMSTYLE_NUMERIC
    driver_errors = (asyncpg.PostgresError, asyncpg.InterfaceError)
    server_version_sql = "SHOW server_version"

    def __init__(self, settings: Any) -> None:
        super().__init__(settings)
        self._connection: Optional[asyncpg.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed()

    async def _async_initialize(self) -> None:
        self.logger.debug("Connecting to PostgreSQL", database=self.settings.database)

        try:
            self._connection = await asyncpg.connect(
                timeout=self.settings.connect_timeout,
                command_timeout=self.settings.command_timeout,
                **self.settings.options,
            )
        except asyncpg.InvalidAuthorizationSpecificationError as e:
            raise ConnectionError(
                f"PostgreSQL authentication failed: {e}",
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"database": self.settings.database},
                cause=e,
            ) from e
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise ConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"database": self.settings.database},
                cause=e,
            ) from e

    async def _async_cleanup(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self.logger.debug("PostgreSQL connection closed")

    def _classify_error(self, error: BaseException) -> Optional[str]:
        if isinstance(error, _DUPLICATE_ERRORS):
            return DUPLICATE
        if isinstance(error, _MISSING_ERRORS):
            return MISSING
        return None

    async def _execute_impl(self, sql: str, parameters: Any) -> int:
        status = await self._connection.execute(sql, *(parameters or ()))
        # Status looks like "UPDATE 3" or "CREATE TABLE"
        last = status.rsplit(" ", 1)[-1] if status else ""
        return int(last) if last.isdigit() else 0

    async def _fetch_all_impl(self, sql: str, parameters: Any) -> List[Dict[str, Any]]:
        records = await self._connection.fetch(sql, *(parameters or ()))
        return [dict(record) for record in records]
