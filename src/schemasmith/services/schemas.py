"""Schema management."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import DuplicateError, ErrorCodes, NotFoundError, UnsupportedOperationError
from ..core.utils import equals_ignore_case, require_not_none
from ..models.schema import Schema
from ..providers import ProviderDialect
from .base import ServiceBase


class SchemaService(ServiceBase):
    """Lists, creates and drops schemas.

    On engines without schemas (MySQL, SQLite) listing returns nothing,
    lookups never find anything and create/drop raise
    UnsupportedOperationError.
    """

    area = "schemas"

    @staticmethod
    def _require_support(dialect: ProviderDialect, operation: str) -> None:
        if not dialect.supports_schemas:
            raise UnsupportedOperationError(
                f"{dialect.provider_type.value} does not support schemas; cannot {operation}",
                code=ErrorCodes.OPERATION_UNSUPPORTED,
                context={"provider": dialect.provider_type.value, "operation": operation},
            )

    async def list(self, context: Optional[OperationContext], datasource_id: str) -> List[Schema]:
        async with self._operation(context, "list", datasource_id=datasource_id) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            async with self._session(datasource_id) as (conn, dialect):
                names = await dialect.get_schema_names(conn)
            op.properties["message"] = f"Retrieved {len(names)} schemas"
            return [Schema(name) for name in names]

    async def get(self, context: Optional[OperationContext], datasource_id: str, schema_name: str) -> Schema:
        """Schema by name.

        Raises:
            NotFoundError: If the schema does not exist, always on engines
                without schemas
        """
        async with self._operation(context, "get", datasource_id=datasource_id, schema_name=schema_name) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            schema_name = self._require_name(schema_name, "schema_name")
            async with self._session(datasource_id) as (conn, dialect):
                match = await self._find(conn, dialect, schema_name)
            if match is None:
                raise NotFoundError(
                    f"Schema '{schema_name}' not found in datasource '{datasource_id}'",
                    entity_type="schema",
                    entity_name=schema_name,
                    code=ErrorCodes.SCHEMA_NOT_FOUND,
                )
            op.properties["message"] = f"Retrieved schema '{match}'"
            return Schema(match)

    async def exists(self, context: Optional[OperationContext], datasource_id: str, schema_name: str) -> bool:
        async with self._operation(context, "exists", datasource_id=datasource_id, schema_name=schema_name):
            datasource_id = self._require_datasource_id(datasource_id)
            schema_name = self._require_name(schema_name, "schema_name")
            async with self._session(datasource_id) as (conn, dialect):
                return await self._find(conn, dialect, schema_name) is not None

    async def create(self, context: Optional[OperationContext], datasource_id: str, schema: Schema) -> Schema:
        """Create a schema.

        Raises:
            UnsupportedOperationError: On engines without schemas
            DuplicateError: If the schema already exists
        """
        async with self._operation(
            context, "create", datasource_id=datasource_id, schema_name=getattr(schema, "schema_name", None)
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            require_not_none(schema, "schema")
            schema_name = self._require_name(schema.schema_name, "schema_name")
            async with self._session(datasource_id) as (conn, dialect):
                self._require_support(dialect, "create schema")
                if await self._find(conn, dialect, schema_name) is not None:
                    raise DuplicateError(
                        f"Schema '{schema_name}' already exists in datasource '{datasource_id}'",
                        entity_type="schema",
                        entity_name=schema_name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )
                await dialect.create_schema(conn, schema_name)
            self.logger.info("Schema created", datasource_id=datasource_id, schema_name=schema_name)
            op.properties["message"] = f"Created schema '{schema_name}'"
            return Schema(schema_name)

    async def drop(self, context: Optional[OperationContext], datasource_id: str, schema_name: str) -> None:
        """Drop a schema.

        Raises:
            UnsupportedOperationError: On engines without schemas
            NotFoundError: If the schema does not exist
        """
        async with self._operation(context, "drop", datasource_id=datasource_id, schema_name=schema_name) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            schema_name = self._require_name(schema_name, "schema_name")
            async with self._session(datasource_id) as (conn, dialect):
                self._require_support(dialect, "drop schema")
                match = await self._find(conn, dialect, schema_name)
                if match is None:
                    raise NotFoundError(
                        f"Schema '{schema_name}' not found in datasource '{datasource_id}'",
                        entity_type="schema",
                        entity_name=schema_name,
                        code=ErrorCodes.SCHEMA_NOT_FOUND,
                    )
                await dialect.drop_schema(conn, match)
            self.logger.info("Schema dropped", datasource_id=datasource_id, schema_name=match)
            op.properties["message"] = f"Dropped schema '{match}'"

    @staticmethod
    async def _find(conn, dialect: ProviderDialect, schema_name: str) -> Optional[str]:
        if not dialect.supports_schemas:
            return None
        names = await dialect.get_schema_names(conn)
        return next((name for name in names if equals_ignore_case(name, schema_name)), None)
