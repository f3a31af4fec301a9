"""Foreign key management."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, ErrorCodes
from ..core.utils import generate_foreign_key_name, normalize_name, require_not_none
from ..models.schema import ForeignKeyAction, ForeignKeyConstraint
from .base import ServiceBase, schema_argument
from .constraints import constraint_not_found, require_unused_name
from .indexes import resolve_columns


class ForeignKeyService(ServiceBase):
    """Lists, creates and drops foreign keys.

    The referenced table is looked up in the same schema as the referencing
    table.
    """

    area = "foreign_keys"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[ForeignKeyConstraint]:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                constraints = list(table.foreign_key_constraints)
            op.properties["message"] = f"Retrieved {len(constraints)} foreign keys"
            return constraints

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> ForeignKeyConstraint:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "get",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            constraint_name=constraint_name,
        ):
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            constraint_name = self._require_name(constraint_name, "constraint_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                constraint = table.get_foreign_key(constraint_name)
            if constraint is None:
                raise constraint_not_found(table, "foreign_key", constraint_name)
            return constraint

    async def create(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint: ForeignKeyConstraint,
        schema_name: Optional[str] = None,
    ) -> ForeignKeyConstraint:
        """Add a foreign key.

        Unnamed keys are called
        ``fk_<table>_<columns>_<referenced table>_<referenced columns>``.

        Raises:
            ArgumentError: If the column lists are empty or differ in length
            NotFoundError: If a column or the referenced table or column
                does not exist
            DuplicateError: If the name is taken
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "create",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            constraint_name=getattr(constraint, "constraint_name", None),
            column_names=getattr(constraint, "column_names", None),
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            require_not_none(constraint, "constraint")
            referenced_table_name = self._require_name(constraint.referenced_table_name, "referenced_table_name")
            columns = [c for c in (constraint.column_names or []) if c and c.strip()]
            referenced = [c for c in (constraint.referenced_column_names or []) if c and c.strip()]
            if not columns or len(columns) != len(referenced):
                raise ArgumentError(
                    "column_names and referenced_column_names must name the same, non-zero number of columns",
                    code=ErrorCodes.ARGUMENT_INVALID,
                    context={"column_names": columns, "referenced_column_names": referenced},
                )
            if normalize_name(constraint.constraint_name):
                self._require_name(constraint.constraint_name, "constraint_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                columns = resolve_columns(table, columns)
                target = await self._require_table(
                    conn, dialect, datasource_id, table.schema_name, referenced_table_name
                )
                referenced = resolve_columns(target, referenced, "referenced_column_names")

                name = normalize_name(constraint.constraint_name) or generate_foreign_key_name(
                    table.table_name, columns, target.table_name, referenced
                )
                require_unused_name(table, "foreign_key", name)

                request = ForeignKeyConstraint(
                    column_names=columns,
                    referenced_table_name=target.table_name,
                    referenced_column_names=referenced,
                    constraint_name=name,
                    on_delete=ForeignKeyAction.parse(constraint.on_delete),
                    on_update=ForeignKeyAction.parse(constraint.on_update),
                )
                await dialect.add_foreign_key(conn, table, request)

            self.logger.info(
                "Foreign key created",
                datasource_id=datasource_id,
                table_name=table.table_name,
                referenced_table_name=target.table_name,
                constraint_name=name,
            )
            op.constraint_name = name
            op.properties["message"] = f"Created foreign key '{name}'"
            return request

    async def drop(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "drop",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            constraint_name=constraint_name,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            constraint_name = self._require_name(constraint_name, "constraint_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                constraint = table.get_foreign_key(constraint_name)
                if constraint is None:
                    raise constraint_not_found(table, "foreign_key", constraint_name)
                await dialect.drop_foreign_key(conn, table, constraint)
            self.logger.info(
                "Foreign key dropped", datasource_id=datasource_id, constraint_name=constraint.constraint_name
            )
            op.properties["message"] = f"Dropped foreign key '{constraint.constraint_name}'"
