"""Shared service plumbing.

Every public service method follows the same shape: validate arguments,
resolve the datasource, open one connection, check the schema and table,
then do the work. :class:`ServiceBase` supplies those steps along with the
per-operation audit event and timing.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, ClassVar, Optional, Sequence, Tuple

from ..core.context import OperationContext
from ..core.exceptions import (
    ConfigurationError,
    DuplicateError,
    ErrorCodes,
    NotFoundError,
)
from ..core.utils import equals_ignore_case, normalize_name, require_identifier, require_not_blank
from ..database import ConnectionFactory, DatabaseConnection
from ..logging import AuditLogger, PerformanceLogger, get_audit_logger, get_logger, get_performance_logger
from ..models.datasource import Datasource
from ..models.query import Pagination, QueryRequest, QueryResult
from ..models.schema import Column, Table, View
from ..providers import DialectRegistry, ProviderDialect
from ..query import QueryTranslator
from ..repositories import DatasourceRepository

# Placeholder some callers send for "no schema"
NO_SCHEMA = "_"


def schema_argument(schema_name: Optional[str]) -> Optional[str]:
    """Normalize an optional schema argument; blank and ``_`` mean none."""
    schema_name = normalize_name(schema_name)
    if schema_name == NO_SCHEMA:
        return None
    return schema_name


def location(datasource_id: str, schema_name: Optional[str]) -> str:
    if schema_name:
        return f"schema '{schema_name}' of datasource '{datasource_id}'"
    return f"datasource '{datasource_id}'"


class ServiceBase:
    """Base class for the SchemaSmith services.

    Args:
        repository: Datasource registry
        connection_factory: Factory used to open connections
        dialects: Dialect registry
        audit_logger: Sink for per-operation audit events
        performance_logger: Timer for every operation
    """

    area: ClassVar[str] = "services"

    def __init__(
        self,
        repository: DatasourceRepository,
        connection_factory: Optional[ConnectionFactory] = None,
        dialects: Optional[DialectRegistry] = None,
        *,
        audit_logger: Optional[AuditLogger] = None,
        performance_logger: Optional[PerformanceLogger] = None,
    ) -> None:
        self.repository = repository
        self.connection_factory = connection_factory or ConnectionFactory()
        self.dialects = dialects or DialectRegistry()
        self.logger = get_logger(f"services.{self.area}")
        self.audit_logger = audit_logger or get_audit_logger("services")
        self.perf_logger = performance_logger or get_performance_logger("services")
        self.translator = QueryTranslator()

    # Operation lifecycle

    @asynccontextmanager
    async def _operation(
        self, context: Optional[OperationContext], verb: str, **entity_fields: Any
    ) -> AsyncGenerator[OperationContext, None]:
        """Scope one service call.

        Yields a copy of the caller's context named ``<area>.<verb>``. On exit
        an audit event is recorded with the outcome; the service may put a
        success message in ``properties["message"]``. Errors propagate
        unchanged. While the call runs, log events from any logger carry the
        operation name, datasource and request id.
        """
        op = (context or OperationContext()).for_operation(f"{self.area}.{verb}", **entity_fields)
        log_scope = self.logger.context(
            operation=op.operation, datasource_id=op.datasource_id, correlation_id=op.request_id
        )
        with log_scope, self.perf_logger.measure(op.operation, datasource_id=op.datasource_id):
            try:
                yield op
            except Exception as e:
                self.audit_logger.log_event(op.to_audit_event(False, str(e)))
                raise
            message = op.properties.pop("message", None)
            self.audit_logger.log_event(op.to_audit_event(True, message))

    # Datasource resolution

    async def _resolve_datasource(self, datasource_id: str) -> Tuple[Datasource, str]:
        """Registered datasource and its decrypted connection string.

        Raises:
            NotFoundError: If the datasource is not registered
            ConfigurationError: If its connection string cannot be recovered
        """
        datasource = await self.repository.get(datasource_id)
        if datasource is None:
            raise NotFoundError(
                f"Datasource '{datasource_id}' not found",
                entity_type="datasource",
                entity_name=datasource_id,
                code=ErrorCodes.DATASOURCE_NOT_FOUND,
            )

        connection_string = await self.repository.get_connection_string(datasource_id)
        if not connection_string:
            raise ConfigurationError(
                f"Datasource '{datasource_id}' has no usable connection string",
                code=ErrorCodes.CONNECTION_STRING_UNAVAILABLE,
                context={"datasource_id": datasource_id},
            )
        return datasource, connection_string

    @asynccontextmanager
    async def _session(self, datasource_id: str) -> AsyncGenerator[Tuple[DatabaseConnection, ProviderDialect], None]:
        """Open a connection to a datasource for the duration of one call."""
        datasource, connection_string = await self._resolve_datasource(datasource_id)
        dialect = self.dialects.get(datasource.provider)
        async with self.connection_factory.create_connection(datasource.provider, connection_string) as conn:
            yield conn, dialect

    # Existence checks, applied in datasource, schema, table order

    async def _require_schema(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        schema_name: Optional[str],
    ) -> Optional[str]:
        """Resolve the target schema, checking it exists when one was named.

        Returns:
            Schema to use: None on engines without schemas, the default
            schema when none was named
        """
        if not dialect.supports_schemas:
            return None
        if schema_name:
            names = await dialect.get_schema_names(conn)
            match = next((name for name in names if equals_ignore_case(name, schema_name)), None)
            if match is None:
                raise NotFoundError(
                    f"Schema '{schema_name}' not found in datasource '{datasource_id}'",
                    entity_type="schema",
                    entity_name=schema_name,
                    code=ErrorCodes.SCHEMA_NOT_FOUND,
                )
            return match
        return dialect.default_schema

    async def _require_table(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        schema_name: Optional[str],
        table_name: str,
    ) -> Table:
        table = await dialect.get_table(conn, schema_name, table_name)
        if table is None:
            raise NotFoundError(
                f"Table '{table_name}' not found in {location(datasource_id, schema_name)}",
                entity_type="table",
                entity_name=table_name,
                code=ErrorCodes.TABLE_NOT_FOUND,
            )
        return table

    async def _require_no_table(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        schema_name: Optional[str],
        table_name: str,
    ) -> None:
        if await dialect.table_exists(conn, schema_name, table_name):
            raise DuplicateError(
                f"Table '{table_name}' already exists in {location(datasource_id, schema_name)}",
                entity_type="table",
                entity_name=table_name,
                code=ErrorCodes.DUPLICATE_OBJECT,
            )

    async def _require_view(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        schema_name: Optional[str],
        view_name: str,
    ) -> View:
        view = await dialect.get_view(conn, schema_name, view_name)
        if view is None:
            raise NotFoundError(
                f"View '{view_name}' not found in {location(datasource_id, schema_name)}",
                entity_type="view",
                entity_name=view_name,
                code=ErrorCodes.VIEW_NOT_FOUND,
            )
        return view

    @asynccontextmanager
    async def _table_session(
        self, datasource_id: str, schema_name: Optional[str], table_name: str
    ) -> AsyncGenerator[Tuple[DatabaseConnection, ProviderDialect, Table], None]:
        """Session with the schema and table already checked."""
        async with self._session(datasource_id) as (conn, dialect):
            schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
            table = await self._require_table(conn, dialect, datasource_id, schema, table_name)
            yield conn, dialect, table

    async def _execute_query(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        schema_name: Optional[str],
        object_name: str,
        columns: Sequence[Column],
        request: Optional[QueryRequest],
    ) -> QueryResult:
        """Run a row query and, when asked, the matching count."""
        request = request or QueryRequest()
        query = self.translator.translate(dialect, schema_name, object_name, columns, request)
        rows = await conn.fetch_all(query.sql, query.parameters)

        total = None
        if query.count_sql:
            total = int(await conn.fetch_scalar(query.count_sql, query.parameters) or 0)

        return QueryResult(
            data=rows,
            fields=query.fields,
            pagination=Pagination(take=request.take, skip=request.skip, total=total),
        )

    # Argument validation

    @staticmethod
    def _require_datasource_id(datasource_id: Optional[str]) -> str:
        return require_not_blank(datasource_id, "datasource_id").strip()

    @staticmethod
    def _require_name(value: Optional[str], argument_name: str) -> str:
        return require_identifier(value, argument_name).strip()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(repository={self.repository!r})"
