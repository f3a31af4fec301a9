"""Primary key management."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import DuplicateError, ErrorCodes
from ..core.utils import generate_primary_key_name, normalize_name, require_not_none
from ..models.schema import PrimaryKeyConstraint
from .base import ServiceBase, schema_argument
from .constraints import primary_key_not_found, require_unused_name
from .indexes import resolve_columns


class PrimaryKeyService(ServiceBase):
    """Reads, creates and drops a table's primary key."""

    area = "primary_keys"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[PrimaryKeyConstraint]:
        """The table's primary key as a list of zero or one items."""
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ):
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                pk = table.primary_key_constraint
            return [pk] if pk else []

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> PrimaryKeyConstraint:
        """The table's primary key.

        Raises:
            NotFoundError: If the table has no primary key
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "get", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                pk = table.primary_key_constraint
            if pk is None:
                raise primary_key_not_found(table)
            op.constraint_name = pk.constraint_name
            op.properties["message"] = f"Retrieved primary key of table '{table.table_name}'"
            return pk

    async def create(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        primary_key: PrimaryKeyConstraint,
        schema_name: Optional[str] = None,
    ) -> PrimaryKeyConstraint:
        """Add a primary key; ``pk_<table>_<columns>`` is used when unnamed.

        Raises:
            ArgumentError: If no columns are given
            NotFoundError: If a column does not exist
            DuplicateError: If the table already has a primary key
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "create",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            constraint_name=getattr(primary_key, "constraint_name", None),
            column_names=getattr(primary_key, "column_names", None),
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            require_not_none(primary_key, "primary_key")
            if normalize_name(primary_key.constraint_name):
                self._require_name(primary_key.constraint_name, "constraint_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                if table.primary_key_constraint is not None:
                    raise DuplicateError(
                        f"Table '{table.table_name}' already has a primary key",
                        entity_type="primary_key_constraint",
                        entity_name=table.primary_key_constraint.constraint_name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )
                columns = resolve_columns(table, primary_key.column_names)
                name = normalize_name(primary_key.constraint_name) or generate_primary_key_name(
                    table.table_name, columns
                )
                require_unused_name(table, "primary_key", name)

                request = PrimaryKeyConstraint(column_names=columns, constraint_name=name)
                await dialect.add_primary_key(conn, table, request)
                table = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)

            created = table.primary_key_constraint or request
            self.logger.info(
                "Primary key created",
                datasource_id=datasource_id,
                table_name=table.table_name,
                constraint_name=created.constraint_name,
            )
            op.constraint_name = created.constraint_name
            op.properties["message"] = f"Created primary key '{created.constraint_name}'"
            return created

    async def drop(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        """Drop the primary key.

        Raises:
            NotFoundError: If the table has no primary key
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "drop", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                pk = table.primary_key_constraint
                if pk is None:
                    raise primary_key_not_found(table)
                await dialect.drop_primary_key(conn, table)
            self.logger.info("Primary key dropped", datasource_id=datasource_id, constraint_name=pk.constraint_name)
            op.constraint_name = pk.constraint_name
            op.properties["message"] = f"Dropped primary key '{pk.constraint_name}'"
