"""SQLite connection built on aiosqlite."""

import sqlite3
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import aiosqlite

from ...core.exceptions import ConnectionError, ErrorCodes
from ...models.datasource import ProviderType
from ..connection import DUPLICATE, MISSING, PARAMSTYLE_NAMED, DatabaseConnection

_DUPLICATE_MARKERS = ("already exists", "duplicate column name", "unique constraint failed")
_MISSING_MARKERS = ("no such table", "no such column", "no such index", "no such view")


def adapt_parameters(parameters: Any) -> Any:
    """Convert values the sqlite3 module cannot bind.

    Decimals are stored as REAL and temporal values as ISO text, the way
    SQLite's date functions expect them.
    """
    if not parameters:
        return ()

    def adapt(value: Any) -> Any:
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (date, time)):
            return value.isoformat()
        return value

    return {name: adapt(value) for name, value in parameters.items()}


class SqliteConnection(DatabaseConnection):
    """SQLite connection.

    The driver runs in autocommit mode (``isolation_level=None``) so that
    explicit ``BEGIN``/``COMMIT`` control transactions, which the table
    rebuild used for constraint changes depends on.
    """

    component_name = "SqliteConnection"
    provider_type = ProviderType.SQLITE
    platform = "sqlite"
    paramstyle = PARAMSTYLE_NAMED
    driver_errors = (sqlite3.Error,)
    server_version_sql = "SELECT sqlite_version()"

    def __init__(self, settings: Any) -> None:
        super().__init__(settings)
        self._connection: Optional[aiosqlite.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def _async_initialize(self) -> None:
        database = self.settings.database or ":memory:"
        self.logger.debug("Opening SQLite database", database=database)

        try:
            self._connection = await aiosqlite.connect(
                database,
                timeout=self.settings.connect_timeout,
                isolation_level=None,
            )
            await self._connection.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise ConnectionError(
                f"Failed to open SQLite database: {e}",
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"database": database},
                cause=e,
            ) from e

    async def _async_cleanup(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self.logger.debug("SQLite connection closed")

    def _classify_error(self, error: BaseException) -> Optional[str]:
        message = str(error).lower()
        if any(marker in message for marker in _DUPLICATE_MARKERS):
            return DUPLICATE
        if any(marker in message for marker in _MISSING_MARKERS):
            return MISSING
        return None

    async def _execute_impl(self, sql: str, parameters: Any) -> int:
        async with self._connection.execute(sql, adapt_parameters(parameters)) as cursor:
            return cursor.rowcount

    async def _fetch_all_impl(self, sql: str, parameters: Any) -> List[Dict[str, Any]]:
        async with self._connection.execute(sql, adapt_parameters(parameters)) as cursor:
            rows = await cursor.fetchall()
            columns = [description[0] for description in cursor.description or ()]
        return [dict(zip(columns, row)) for row in rows]
