"""Table management and row queries."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, ErrorCodes
from ..core.utils import equals_ignore_case, require_not_none
from ..models.query import QueryRequest, QueryResult
from ..models.schema import Table
from .base import ServiceBase, schema_argument


def validate_table_definition(table: Table) -> None:
    """Check a table definition before any I/O.

    Raises:
        ArgumentError: If the name is missing, there are no columns, or a
            column is unnamed, untyped or repeated
    """
    require_not_none(table, "table")
    ServiceBase._require_name(table.table_name, "table_name")
    if not table.columns:
        raise ArgumentError(
            f"Table '{table.table_name}' must define at least one column",
            code=ErrorCodes.ARGUMENT_REQUIRED,
            context={"argument": "columns", "table_name": table.table_name},
        )

    seen = set()
    for column in table.columns:
        name = ServiceBase._require_name(column.column_name, "column_name")
        if not (column.provider_data_type or "").strip():
            raise ArgumentError(
                f"Column '{name}' has no data type",
                code=ErrorCodes.ARGUMENT_REQUIRED,
                context={"argument": "provider_data_type", "column_name": name},
            )
        if name.casefold() in seen:
            raise ArgumentError(
                f"Column '{name}' is defined more than once",
                code=ErrorCodes.ARGUMENT_INVALID,
                context={"argument": "columns", "column_name": name},
            )
        seen.add(name.casefold())


class TableService(ServiceBase):
    """Creates, renames, drops, introspects and queries tables."""

    area = "tables"

    async def list(
        self, context: Optional[OperationContext], datasource_id: str, schema_name: Optional[str] = None
    ) -> List[Table]:
        """Every base table in a schema with its columns, indexes and constraints."""
        schema_name = schema_argument(schema_name)
        async with self._operation(context, "list", datasource_id=datasource_id, schema_name=schema_name) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                tables = await dialect.get_tables(conn, schema)
            op.properties["message"] = f"Retrieved {len(tables)} tables"
            return sorted(tables, key=lambda t: t.table_name.casefold())

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
        include_columns: bool = True,
        include_indexes: bool = True,
        include_constraints: bool = True,
    ) -> Table:
        """Table by name.

        Args:
            include_columns: Include the column list
            include_indexes: Include the indexes
            include_constraints: Include the primary key and every constraint

        Raises:
            NotFoundError: If the datasource, schema or table does not exist
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "get", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                result = table.without_details(
                    columns=include_columns, indexes=include_indexes, constraints=include_constraints
                )
            op.properties["message"] = f"Retrieved table '{table.table_name}'"
            return result

    async def exists(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> bool:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "exists", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ):
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                return await dialect.table_exists(conn, schema, table_name)

    async def create(self, context: Optional[OperationContext], datasource_id: str, table: Table) -> Table:
        """Create a table with its constraints and indexes.

        Column flags (primary key, unique, check, default, indexed, reference)
        are promoted to constraints and unnamed constraints get synthesized
        names. The whole definition is applied atomically where the engine
        allows it.

        Returns:
            The table as introspected after creation

        Raises:
            ArgumentError: If the definition is incomplete
            DuplicateError: If a table with the same name exists
        """
        schema_name = schema_argument(getattr(table, "schema_name", None))
        async with self._operation(
            context,
            "create",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=getattr(table, "table_name", None),
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            validate_table_definition(table)

            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                await self._require_no_table(conn, dialect, datasource_id, schema, table.table_name)

                definition = dialect.normalize_table(table)
                definition.schema_name = schema
                await dialect.create_table(conn, definition)
                created = await self._require_table(conn, dialect, datasource_id, schema, table.table_name)

            self.logger.info(
                "Table created",
                datasource_id=datasource_id,
                schema_name=schema,
                table_name=created.table_name,
                columns=len(created.columns),
            )
            op.properties["message"] = f"Created table '{created.table_name}'"
            return created

    async def rename(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        new_table_name: str,
        schema_name: Optional[str] = None,
    ) -> Table:
        """Rename a table.

        Raises:
            NotFoundError: If the table does not exist
            DuplicateError: If the new name is already taken
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "rename", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            new_table_name = self._require_name(new_table_name, "new_table_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                if table.table_name == new_table_name:
                    renamed = table
                else:
                    if not equals_ignore_case(table.table_name, new_table_name):
                        await self._require_no_table(conn, dialect, datasource_id, table.schema_name, new_table_name)
                    await dialect.rename_table(conn, table.schema_name, table.table_name, new_table_name)
                    renamed = await self._require_table(
                        conn, dialect, datasource_id, table.schema_name, new_table_name
                    )

            self.logger.info(
                "Table renamed",
                datasource_id=datasource_id,
                table_name=table.table_name,
                new_table_name=new_table_name,
            )
            op.properties["message"] = f"Renamed table '{table.table_name}' to '{new_table_name}'"
            return renamed

    async def drop(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        """Drop a table.

        Indexes and constraints go with it. Foreign keys in other tables that
        reference it are not dropped; the engine rejects the drop instead.

        Raises:
            NotFoundError: If the table does not exist
            EngineError: If the engine refuses the drop
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "drop", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                await dialect.drop_table(conn, table.schema_name, table.table_name)
            self.logger.info("Table dropped", datasource_id=datasource_id, table_name=table.table_name)
            op.properties["message"] = f"Dropped table '{table.table_name}'"

    async def query(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        request: Optional[QueryRequest] = None,
        schema_name: Optional[str] = None,
    ) -> QueryResult:
        """Page through a table's rows.

        Raises:
            NotFoundError: If the table does not exist
            QueryValidationError: If the request names unknown columns or
                operators
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "query", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                result = await self._execute_query(
                    conn, dialect, table.schema_name, table.table_name, table.columns, request
                )
            op.properties["message"] = f"Queried {len(result.data)} rows from table '{table.table_name}'"
            return result
