"""Index management."""

import copy
from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, DuplicateError, ErrorCodes, NotFoundError
from ..core.utils import generate_index_name, normalize_name, require_not_none
from ..models.schema import Index, Table
from .base import ServiceBase, schema_argument
from .columns import column_not_found


def index_not_found(table: Table, index_name: str) -> NotFoundError:
    return NotFoundError(
        f"Index '{index_name}' does not exist on table '{table.table_name}'",
        entity_type="index",
        entity_name=index_name,
        code=ErrorCodes.INDEX_NOT_FOUND,
    )


def resolve_columns(table: Table, column_names: List[str], argument_name: str = "column_names") -> List[str]:
    """Canonical names of the given columns.

    Raises:
        ArgumentError: If no columns are given
        NotFoundError: If a column is not on the table
    """
    names = [name.strip() for name in (column_names or []) if name and name.strip()]
    if not names:
        raise ArgumentError(
            f"{argument_name} must name at least one column",
            code=ErrorCodes.ARGUMENT_REQUIRED,
            context={"argument": argument_name},
        )
    resolved = []
    for name in names:
        column = table.get_column(name)
        if column is None:
            raise column_not_found(table, name)
        resolved.append(column.column_name)
    return resolved


class IndexService(ServiceBase):
    """Creates, drops and lists indexes, including unique and composite ones."""

    area = "indexes"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[Index]:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                indexes = list(table.indexes)
            op.properties["message"] = f"Retrieved {len(indexes)} indexes from table '{table.table_name}'"
            return indexes

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        index_name: str,
        schema_name: Optional[str] = None,
    ) -> Index:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "get",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            index_name=index_name,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            index_name = self._require_name(index_name, "index_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                index = table.get_index(index_name)
            if index is None:
                raise index_not_found(table, index_name)
            op.properties["message"] = f"Retrieved index '{index.index_name}'"
            return index

    async def create(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        index: Index,
        schema_name: Optional[str] = None,
    ) -> Index:
        """Create an index; ``ix_<table>_<columns>`` is used when unnamed.

        Raises:
            ArgumentError: If no columns are given
            NotFoundError: If the table or a column does not exist
            DuplicateError: If an index with the same name exists
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "create",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            index_name=getattr(index, "index_name", None),
            column_names=getattr(index, "column_names", None),
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            require_not_none(index, "index")
            if normalize_name(index.index_name):
                self._require_name(index.index_name, "index_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                request = copy.deepcopy(index)
                request.column_names = resolve_columns(table, index.column_names)
                request.index_name = normalize_name(request.index_name) or generate_index_name(
                    table.table_name, request.column_names
                )
                if table.get_index(request.index_name) is not None:
                    raise DuplicateError(
                        f"Index '{request.index_name}' already exists on table '{table.table_name}'",
                        entity_type="index",
                        entity_name=request.index_name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )
                await dialect.create_index(conn, table, request)

            self.logger.info(
                "Index created",
                datasource_id=datasource_id,
                table_name=table.table_name,
                index_name=request.index_name,
                is_unique=request.is_unique,
            )
            op.index_name = request.index_name
            op.properties["message"] = f"Created index '{request.index_name}' on table '{table.table_name}'"
            return request

    async def drop(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        index_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        """Drop an index.

        Raises:
            NotFoundError: If the index does not exist
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "drop",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            index_name=index_name,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            index_name = self._require_name(index_name, "index_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                index = table.get_index(index_name)
                if index is None:
                    raise index_not_found(table, index_name)
                await dialect.drop_index(conn, table, index)
            self.logger.info("Index dropped", datasource_id=datasource_id, index_name=index.index_name)
            op.properties["message"] = f"Dropped index '{index.index_name}' from table '{table.table_name}'"
