"""MySQL/MariaDB connection built on aiomysql."""

from typing import Any, Dict, List, Optional

import aiomysql

from ...core.exceptions import ConnectionError, ErrorCodes
from ...models.datasource import ProviderType
from ..connection import DUPLICATE, MISSING, PARAMSTYLE_PYFORMAT, DatabaseConnection

# Server error numbers
_DUPLICATE_ERRNOS = frozenset({
    1007,  # database exists
    1050,  # table exists
    1060,  # duplicate column name
    1061,  # duplicate key name
    1062,  # duplicate entry
    1826,  # duplicate foreign key constraint name
    3822,  # duplicate check constraint name
})
_MISSING_ERRNOS = frozenset({
    1049,  # unknown database
    1054,  # unknown column
    1091,  # can't drop; check that it exists
    1146,  # table doesn't exist
    3821,  # check constraint not found
})


class MySqlConnection(DatabaseConnection):
    """MySQL connection.

    MySQL commits DDL implicitly, so ``transaction()`` only groups the data
    statements of a unit of work.
    """

    component_name = "MySqlConnection"
    provider_type = ProviderType.MYSQL
    platform = "mysql"
    paramstyle = PARAMSTYLE_PYFORMAT
    driver_errors = (aiomysql.Error,)
    enforce_command_timeout = True
    begin_sql = "START TRANSACTION"
    server_version_sql = "SELECT VERSION()"

    def __init__(self, settings: Any) -> None:
        super().__init__(settings)
        self._connection: Optional[aiomysql.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    async def _async_initialize(self) -> None:
        self.logger.debug("Connecting to MySQL", database=self.settings.database)

        try:
            self._connection = await aiomysql.connect(
                connect_timeout=self.settings.connect_timeout,
                charset="utf8mb4",
                autocommit=True,
                **self.settings.options,
            )
        except aiomysql.OperationalError as e:
            error_code = e.args[0] if e.args else 0
            message = (
                f"MySQL authentication failed: {e}"
                if error_code == 1045
                else f"Failed to connect to MySQL: {e}"
            )
            raise ConnectionError(
                message,
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"database": self.settings.database, "errno": error_code},
                cause=e,
            ) from e
        except (OSError, aiomysql.Error) as e:
            raise ConnectionError(
                f"Failed to connect to MySQL: {e}",
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"database": self.settings.database},
                cause=e,
            ) from e

    async def _async_cleanup(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self.logger.debug("MySQL connection closed")

    def _classify_error(self, error: BaseException) -> Optional[str]:
        errno = error.args[0] if getattr(error, "args", None) else None
        if errno in _DUPLICATE_ERRNOS:
            return DUPLICATE
        if errno in _MISSING_ERRNOS:
            return MISSING
        return None

    async def _execute_impl(self, sql: str, parameters: Any) -> int:
        async with self._connection.cursor() as cursor:
            await cursor.execute(sql, parameters)
            return cursor.rowcount

    async def _fetch_all_impl(self, sql: str, parameters: Any) -> List[Dict[str, Any]]:
        async with self._connection.cursor(aiomysql.DictCursor) as cursor:
            await cursor.execute(sql, parameters)
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]
