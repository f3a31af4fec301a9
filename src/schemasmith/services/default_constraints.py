"""Default constraint management.

SQL Server keeps caller-supplied default constraint names. The other engines
have no named defaults, so the synthesized ``df_<table>_<column>`` name is
what is stored and reported back; lookups by column work everywhere.
"""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, DuplicateError, ErrorCodes, NotFoundError
from ..core.utils import normalize_name, require_not_none
from ..models.schema import DefaultConstraint, Table
from .base import ServiceBase, schema_argument
from .columns import column_not_found
from .constraints import constraint_not_found


def _no_default_on_column(table: Table, column_name: str) -> NotFoundError:
    return NotFoundError(
        f"Column '{column_name}' of table '{table.table_name}' has no default constraint",
        entity_type="default_constraint",
        entity_name=column_name,
        code=ErrorCodes.CONSTRAINT_NOT_FOUND,
    )


class DefaultConstraintService(ServiceBase):
    """Lists, creates and drops column defaults, by name or by column."""

    area = "default_constraints"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[DefaultConstraint]:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                constraints = list(table.default_constraints)
            op.properties["message"] = f"Retrieved {len(constraints)} default constraints"
            return constraints

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> DefaultConstraint:
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
                constraint = table.get_default_constraint(constraint_name)
            if constraint is None:
                raise constraint_not_found(table, "default", constraint_name)
            return constraint

    async def get_on_column(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        column_name: str,
        schema_name: Optional[str] = None,
    ) -> DefaultConstraint:
        """Default constraint of a column.

        Raises:
            NotFoundError: If the column does not exist or has no default
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "get_on_column",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            column_names=[column_name] if column_name else None,
        ):
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            column_name = self._require_name(column_name, "column_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                if table.get_column(column_name) is None:
                    raise column_not_found(table, column_name)
                constraint = table.get_default_constraint_on_column(column_name)
            if constraint is None:
                raise _no_default_on_column(table, column_name)
            return constraint

    async def create(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint: DefaultConstraint,
        schema_name: Optional[str] = None,
    ) -> DefaultConstraint:
        """Give a column a default.

        Returns:
            The constraint under the name it is stored as

        Raises:
            ArgumentError: If the column or expression is blank
            NotFoundError: If the column does not exist
            DuplicateError: If the column already has a default
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "create",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            constraint_name=getattr(constraint, "constraint_name", None),
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            require_not_none(constraint, "constraint")
            column_name = self._require_name(constraint.column_name, "column_name")
            if not normalize_name(constraint.expression):
                raise ArgumentError(
                    "expression is required",
                    code=ErrorCodes.ARGUMENT_REQUIRED,
                    context={"argument": "expression"},
                )
            if normalize_name(constraint.constraint_name):
                self._require_name(constraint.constraint_name, "constraint_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                column = table.get_column(column_name)
                if column is None:
                    raise column_not_found(table, column_name)
                existing = table.get_default_constraint_on_column(column.column_name)
                if existing is not None:
                    raise DuplicateError(
                        f"Column '{column.column_name}' already has default constraint '{existing.constraint_name}'",
                        entity_type="default_constraint",
                        entity_name=existing.constraint_name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )

                name = dialect.default_constraint_name(
                    table.table_name, column.column_name, constraint.constraint_name
                )
                if table.has_constraint_named(name):
                    raise DuplicateError(
                        f"Constraint '{name}' already exists on table '{table.table_name}'",
                        entity_type="default_constraint",
                        entity_name=name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )
                request = DefaultConstraint(
                    column_name=column.column_name,
                    expression=constraint.expression.strip(),
                    constraint_name=name,
                )
                await dialect.add_default_constraint(conn, table, request)

            self.logger.info(
                "Default constraint created",
                datasource_id=datasource_id,
                column_name=request.column_name,
                constraint_name=name,
            )
            op.constraint_name = name
            op.properties["message"] = f"Created default constraint '{name}'"
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
                constraint = table.get_default_constraint(constraint_name)
                if constraint is None:
                    raise constraint_not_found(table, "default", constraint_name)
                await dialect.drop_default_constraint(conn, table, constraint)
            self.logger.info(
                "Default constraint dropped", datasource_id=datasource_id, constraint_name=constraint.constraint_name
            )
            op.properties["message"] = f"Dropped default constraint '{constraint.constraint_name}'"

    async def drop_on_column(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        column_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        """Drop whatever default a column has.

        Raises:
            NotFoundError: If the column does not exist or has no default
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "drop_on_column",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            column_names=[column_name] if column_name else None,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            column_name = self._require_name(column_name, "column_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                if table.get_column(column_name) is None:
                    raise column_not_found(table, column_name)
                constraint = table.get_default_constraint_on_column(column_name)
                if constraint is None:
                    raise _no_default_on_column(table, column_name)
                await dialect.drop_default_constraint(conn, table, constraint)
            self.logger.info(
                "Default constraint dropped", datasource_id=datasource_id, column_name=constraint.column_name
            )
            op.constraint_name = constraint.constraint_name
            op.properties["message"] = f"Dropped default constraint on column '{constraint.column_name}'"
