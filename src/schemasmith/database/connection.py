"""Database connection base class.

Every provider connection extends :class:`DatabaseConnection`, which gives
them the component lifecycle, timing, and translation of engine errors into
the SchemaSmith taxonomy. Core code always writes ``:name`` parameter
placeholders; :func:`convert_named_parameters` rewrites them into the
driver's own style.
"""

import asyncio
import re
from abc import abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

from ..core import AsyncComponent
from ..core.exceptions import (
    ArgumentError,
    ConnectionError,
    DuplicateError,
    EngineError,
    ErrorCodes,
    NotFoundError,
    SchemaSmithException,
)
from ..logging import get_logger, get_performance_logger
from ..models.datasource import ProviderType

DUPLICATE = "duplicate"
MISSING = "missing"

# Quoted literals and identifiers are matched first so placeholders inside
# them are left alone.
_TOKEN_PATTERN = re.compile(
    r"'(?:[^']|'')*'"
    r'|"(?:[^"]|"")*"'
    r"|(?<![:\w]):([A-Za-z_]\w*)"
)

PARAMSTYLE_NAMED = "named"
PARAMSTYLE_NUMERIC = "numeric"
PARAMSTYLE_PYFORMAT = "pyformat"
PARAMSTYLE_QMARK = "qmark"


def convert_named_parameters(
    sql: str,
    parameters: Optional[Mapping[str, Any]],
    paramstyle: str,
) -> Tuple[str, Any]:
    """Rewrite ``:name`` placeholders for a driver.

    Args:
        sql: Statement with ``:name`` placeholders
        parameters: Values keyed by placeholder name
        paramstyle: ``named``, ``numeric`` ($1), ``pyformat`` (%(name)s) or ``qmark`` (?)

    Returns:
        Tuple of the rewritten statement and the driver's parameter object,
        a dict for named styles and a list for positional ones. The
        parameter object is None when no parameters are given.

    Raises:
        ArgumentError: If a placeholder has no value

    Example:
        >>> convert_named_parameters("SELECT * FROM t WHERE a = :a OR b = :a", {"a": 1}, "numeric")
        ('SELECT * FROM t WHERE a = $1 OR b = $1', [1])
    """
    if not parameters:
        return sql, None

    if paramstyle == PARAMSTYLE_NAMED:
        return sql, dict(parameters)

    escape_percent = paramstyle == PARAMSTYLE_PYFORMAT
    output: List[str] = []
    positional: List[Any] = []
    numbered: Dict[str, int] = {}
    position = 0

    def text(chunk: str) -> str:
        return chunk.replace("%", "%%") if escape_percent else chunk

    for match in _TOKEN_PATTERN.finditer(sql):
        output.append(text(sql[position:match.start()]))
        position = match.end()
        name = match.group(1)

        if name is None:
            output.append(text(match.group(0)))
            continue

        if name not in parameters:
            raise ArgumentError(
                f"No value supplied for parameter :{name}",
                code=ErrorCodes.ARGUMENT_REQUIRED,
                context={"parameter": name},
            )

        if paramstyle == PARAMSTYLE_NUMERIC:
            if name not in numbered:
                positional.append(parameters[name])
                numbered[name] = len(positional)
            output.append(f"${numbered[name]}")
        elif paramstyle == PARAMSTYLE_PYFORMAT:
            output.append(f"%({name})s")
        else:
            positional.append(parameters[name])
            output.append("?")

    output.append(text(sql[position:]))
    converted = "".join(output)

    if paramstyle == PARAMSTYLE_PYFORMAT:
        return converted, dict(parameters)
    return converted, positional


@dataclass
class ConnectionSettings:
    """Driver settings parsed from a connection string.

    Attributes:
        provider: Database engine
        connection_string: Original connection string
        options: Driver keyword arguments
        database: Database name, or file path for SQLite
        connect_timeout: Seconds to wait for a connection
        command_timeout: Seconds to wait for a single statement
    """

    provider: ProviderType
    connection_string: str = field(repr=False)
    options: Dict[str, Any] = field(default_factory=dict, repr=False)
    database: Optional[str] = None
    connect_timeout: float = 30.0
    command_timeout: float = 60.0


class DatabaseConnection(AsyncComponent[ConnectionSettings]):
    """Base class for provider connections.

    Subclasses open the driver connection in ``_async_initialize``,
    implement the ``_execute_impl``/``_fetch_all_impl`` primitives and
    classify driver errors in ``_classify_error``.

    Example:
        >>> async with factory.create_connection("Sqlite", "Data Source=app.db") as conn:
        ...     rows = await conn.fetch_all("SELECT name FROM sqlite_master WHERE type = :t", {"t": "table"})
    """

    provider_type: ClassVar[ProviderType]
    platform: ClassVar[str] = "unknown"
    paramstyle: ClassVar[str] = PARAMSTYLE_NAMED
    driver_errors: ClassVar[Tuple[Type[BaseException], ...]] = ()
    enforce_command_timeout: ClassVar[bool] = False

    begin_sql: ClassVar[str] = "BEGIN"
    commit_sql: ClassVar[str] = "COMMIT"
    rollback_sql: ClassVar[str] = "ROLLBACK"
    server_version_sql: ClassVar[str] = "SELECT 1"

    def __init__(self, settings: ConnectionSettings) -> None:
        super().__init__(settings)
        self.logger = get_logger(f"database.{self.platform}")
        self.perf_logger = get_performance_logger(f"database.{self.platform}")
        self._in_transaction = False

    @property
    def settings(self) -> ConnectionSettings:
        return self.config

    @property
    def database_name(self) -> Optional[str]:
        return self.settings.database

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the driver connection is open."""

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise ConnectionError(
                f"{self.platform} connection is not open",
                code=ErrorCodes.CONNECTION_CLOSED,
                context={"provider": self.provider_type.value},
            )

    async def execute(self, sql: str, parameters: Optional[Mapping[str, Any]] = None) -> int:
        """Execute a statement.

        Returns:
            Number of affected rows as reported by the driver
        """
        self._ensure_connected()
        converted, params = convert_named_parameters(sql, parameters, self.paramstyle)
        with self.perf_logger.measure("execute", provider=self.provider_type.value):
            try:
                return await self._run(self._execute_impl(converted, params), sql)
            except self.driver_errors as e:
                raise self._translate_error(e, sql) from e

    async def execute_many(self, statements: List[str]) -> None:
        """Execute several parameterless statements in order."""
        for statement in statements:
            await self.execute(statement)

    async def fetch_all(
        self, sql: str, parameters: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run a query and return every row as a dict keyed by column name."""
        self._ensure_connected()
        converted, params = convert_named_parameters(sql, parameters, self.paramstyle)
        with self.perf_logger.measure("fetch", provider=self.provider_type.value):
            try:
                return await self._run(self._fetch_all_impl(converted, params), sql)
            except self.driver_errors as e:
                raise self._translate_error(e, sql) from e

    async def fetch_one(
        self, sql: str, parameters: Optional[Mapping[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        rows = await self.fetch_all(sql, parameters)
        return rows[0] if rows else None

    async def fetch_scalar(self, sql: str, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        row = await self.fetch_one(sql, parameters)
        if not row:
            return None
        return next(iter(row.values()))

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator["DatabaseConnection", None]:
        """Run the enclosed statements in one transaction.

        Nested use joins the outer transaction. The transaction is rolled back
        when the block raises and the original error propagates.
        """
        if self._in_transaction:
            yield self
            return

        await self.execute(self.begin_sql)
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._in_transaction = False
            try:
                await self.execute(self.rollback_sql)
            except SchemaSmithException as rollback_error:
                self.logger.error("Rollback failed", error=str(rollback_error))
            raise
        else:
            self._in_transaction = False
            await self.execute(self.commit_sql)

    async def get_server_version(self) -> Optional[str]:
        value = await self.fetch_scalar(self.server_version_sql)
        return None if value is None else str(value)

    async def _run(self, awaitable: Any, sql: str) -> Any:
        if not self.enforce_command_timeout:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.settings.command_timeout)
        except asyncio.TimeoutError as e:
            raise EngineError(
                f"Statement exceeded the {self.settings.command_timeout}s command timeout",
                code=ErrorCodes.QUERY_TIMEOUT,
                context={"sql": sql, "provider": self.provider_type.value},
                cause=e,
            ) from e

    def _translate_error(self, error: BaseException, sql: str) -> SchemaSmithException:
        """Map a driver error onto the SchemaSmith taxonomy."""
        kind = self._classify_error(error)
        context = {"sql": sql, "provider": self.provider_type.value}

        if kind == DUPLICATE:
            return DuplicateError(
                f"Object already exists: {error}",
                code=ErrorCodes.DUPLICATE_OBJECT,
                context=context,
                cause=error if isinstance(error, Exception) else None,
            )
        if kind == MISSING:
            return NotFoundError(
                f"Object does not exist: {error}",
                code=ErrorCodes.OBJECT_NOT_FOUND,
                context=context,
                cause=error if isinstance(error, Exception) else None,
            )

        self.logger.warning("Statement failed", provider=self.provider_type.value, error=str(error))
        return EngineError(
            f"{self.provider_type.value} rejected the statement: {error}",
            code=ErrorCodes.QUERY_EXECUTION_FAILED,
            context=context,
            cause=error if isinstance(error, Exception) else None,
        )

    @abstractmethod
    def _classify_error(self, error: BaseException) -> Optional[str]:
        """Return DUPLICATE, MISSING or None for a driver error."""

    @abstractmethod
    async def _execute_impl(self, sql: str, parameters: Any) -> int:
        """Execute a converted statement."""

    @abstractmethod
    async def _fetch_all_impl(self, sql: str, parameters: Any) -> List[Dict[str, Any]]:
        """Run a converted query."""

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"database={self.database_name!r}, "
            f"connected={self.is_connected})"
        )
