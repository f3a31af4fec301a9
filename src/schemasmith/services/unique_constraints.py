"""Unique constraint management."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import DuplicateError, ErrorCodes
from ..core.utils import generate_unique_constraint_name, normalize_name, require_not_none
from ..models.schema import UniqueConstraint
from .base import ServiceBase, schema_argument
from .constraints import constraint_not_found, require_unused_name
from .indexes import resolve_columns


class UniqueConstraintService(ServiceBase):
    """Lists, creates and drops unique constraints, identified by name."""

    area = "unique_constraints"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[UniqueConstraint]:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                constraints = list(table.unique_constraints)
            op.properties["message"] = f"Retrieved {len(constraints)} unique constraints"
            return constraints

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> UniqueConstraint:
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
                constraint = table.get_unique_constraint(constraint_name)
            if constraint is None:
                raise constraint_not_found(table, "unique", constraint_name)
            return constraint

    async def create(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        constraint: UniqueConstraint,
        schema_name: Optional[str] = None,
    ) -> UniqueConstraint:
        """Add a unique constraint; ``uc_<table>_<columns>`` is used when unnamed.

        Raises:
            NotFoundError: If a column does not exist
            DuplicateError: If the name is taken or a unique constraint over
                the same columns, in any order, already exists
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
            if normalize_name(constraint.constraint_name):
                self._require_name(constraint.constraint_name, "constraint_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                columns = resolve_columns(table, constraint.column_names)
                name = normalize_name(constraint.constraint_name) or generate_unique_constraint_name(
                    table.table_name, columns
                )
                require_unused_name(table, "unique", name)
                existing = next((uc for uc in table.unique_constraints if uc.has_same_columns(columns)), None)
                if existing is not None:
                    raise DuplicateError(
                        f"Unique constraint '{existing.constraint_name}' already covers columns {', '.join(columns)}",
                        entity_type="unique_constraint",
                        entity_name=existing.constraint_name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )

                request = UniqueConstraint(column_names=columns, constraint_name=name)
                await dialect.add_unique_constraint(conn, table, request)

            self.logger.info("Unique constraint created", datasource_id=datasource_id, constraint_name=name)
            op.constraint_name = name
            op.properties["message"] = f"Created unique constraint '{name}'"
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
                constraint = table.get_unique_constraint(constraint_name)
                if constraint is None:
                    raise constraint_not_found(table, "unique", constraint_name)
                await dialect.drop_unique_constraint(conn, table, constraint)
            self.logger.info(
                "Unique constraint dropped", datasource_id=datasource_id, constraint_name=constraint.constraint_name
            )
            op.properties["message"] = f"Dropped unique constraint '{constraint.constraint_name}'"
