"""SQL Server connection built on aioodbc."""

import re
from typing import Any, Dict, List, Optional

import aioodbc
import pyodbc

from ...core.exceptions import ConnectionError, ErrorCodes
from ...models.datasource import ProviderType
from ..connection import DUPLICATE, MISSING, PARAMSTYLE_QMARK, DatabaseConnection

_NATIVE_ERROR = re.compile(r"\((\d{3,5})\)")

_DUPLICATE_ERRORS = frozenset({
    1801,  # database already exists
    1913,  # index already exists
    2601,  # duplicate key row in unique index
    2627,  # unique constraint violation
    2705,  # column names in each table must be unique
    2714,  # object already exists
})
_MISSING_ERRORS = frozenset({
    207,  # invalid column name
    208,  # invalid object name
    3701,  # cannot drop, object does not exist
    4902,  # cannot find the object
    15151,  # cannot find the object, or no permission
    15248,  # sp_rename could not find the object
})


def native_error_numbers(error: BaseException) -> List[int]:
    """Extract SQL Server error numbers from a pyodbc error message."""
    return [int(number) for number in _NATIVE_ERROR.findall(" ".join(str(a) for a in error.args))]


class SqlServerConnection(DatabaseConnection):
    """SQL Server connection through an ODBC driver."""

    component_name = "SqlServerConnection"
    provider_type = ProviderType.SQLSERVER
    platform = "sqlserver"
    paramstyle = PARAMSTYLE_QMARK
    driver_errors = (pyodbc.Error,)
    enforce_command_timeout = True
    begin_sql = "BEGIN TRANSACTION"
    commit_sql = "COMMIT TRANSACTION"
    rollback_sql = "IF @@TRANCOUNT > 0 ROLLBACK TRANSACTION"
    server_version_sql = "SELECT CAST(SERVERPROPERTY('ProductVersion') AS nvarchar(128))"

    def __init__(self, settings: Any) -> None:
        super().__init__(settings)
        self._connection: Optional[aioodbc.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    async def _async_initialize(self) -> None:
        self.logger.debug("Connecting to SQL Server", database=self.settings.database)

        try:
            self._connection = await aioodbc.connect(
                dsn=self.settings.options["dsn"],
                autocommit=True,
                timeout=int(self.settings.connect_timeout),
            )
        except pyodbc.Error as e:
            raise ConnectionError(
                f"Failed to connect to SQL Server: {e}",
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"database": self.settings.database},
                cause=e,
            ) from e

    async def _async_cleanup(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self.logger.debug("SQL Server connection closed")

    def _classify_error(self, error: BaseException) -> Optional[str]:
        numbers = native_error_numbers(error)
        if any(number in _DUPLICATE_ERRORS for number in numbers):
            return DUPLICATE
        if any(number in _MISSING_ERRORS for number in numbers):
            return MISSING
        return None

    async def _execute_impl(self, sql: str, parameters: Any) -> int:
        async with self._connection.cursor() as cursor:
            if parameters:
                await cursor.execute(sql, parameters)
            else:
                await cursor.execute(sql)
            return cursor.rowcount

    async def _fetch_all_impl(self, sql: str, parameters: Any) -> List[Dict[str, Any]]:
        async with self._connection.cursor() as cursor:
            if parameters:
                await cursor.execute(sql, parameters)
            else:
                await cursor.execute(sql)
            if cursor.description is None:
                return []
            columns = [description[0] for description in cursor.description]
            rows = await cursor.fetchall()
        return [dict(zip(columns, row)) for row in rows]
