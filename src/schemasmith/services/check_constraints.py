"""Check constraint management."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, ErrorCodes
from ..core.utils import generate_check_constraint_name, normalize_name, require_not_none
from ..models.schema import CheckConstraint
from .base import ServiceBase, schema_argument
from .columns import column_not_found
from .constraints import constraint_not_found, require_unused_name


class CheckConstraintService(ServiceBase):
    """Lists, creates and drops check constraints.

    Expressions are passed to the engine untouched. Engines that cannot
    enforce checks reject the request rather than accepting it silently.
    """

    area = "check_constraints"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[CheckConstraint]:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                constraints = list(table.check_constraints)
            op.properties["message"] = f"Retrieved {len(constraints)} check constraints"
            return constraints

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> CheckConstraint:
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
                constraint = table.get_check_constraint(constraint_name)
            if constraint is None:
                raise constraint_not_found(table, "check", constraint_name)
            return constraint

    async def create(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint: CheckConstraint,
        schema_name: Optional[str] = None,
    ) -> CheckConstraint:
        """Add a check constraint.

        Unnamed constraints are called ``ck_<table>_<column>``, or
        ``ck_<table>`` when no column is given.

        Raises:
            ArgumentError: If the expression is blank
            NotFoundError: If the named column does not exist
            DuplicateError: If the name is taken
            UnsupportedOperationError: If the engine cannot enforce checks
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
            if not normalize_name(constraint.check_expression):
                raise ArgumentError(
                    "check_expression is required",
                    code=ErrorCodes.ARGUMENT_REQUIRED,
                    context={"argument": "check_expression"},
                )
            if normalize_name(constraint.constraint_name):
                self._require_name(constraint.constraint_name, "constraint_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                column_name = normalize_name(constraint.column_name)
                if column_name:
                    column = table.get_column(column_name)
                    if column is None:
                        raise column_not_found(table, column_name)
                    column_name = column.column_name
                name = normalize_name(constraint.constraint_name) or generate_check_constraint_name(
                    table.table_name, column_name
                )
                require_unused_name(table, "check", name)

                request = CheckConstraint(
                    check_expression=constraint.check_expression.strip(),
                    constraint_name=name,
                    column_name=column_name,
                )
                await dialect.add_check_constraint(conn, table, request)

            self.logger.info("Check constraint created", datasource_id=datasource_id, constraint_name=name)
            op.constraint_name = name
            op.properties["message"] = f"Created check constraint '{name}'"
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
                constraint = table.get_check_constraint(constraint_name)
                if constraint is None:
                    raise constraint_not_found(table, "check", constraint_name)
                await dialect.drop_check_constraint(conn, table, constraint)
            self.logger.info(
                "Check constraint dropped", datasource_id=datasource_id, constraint_name=constraint.constraint_name
            )
            op.properties["message"] = f"Dropped check constraint '{constraint.constraint_name}'"
