"""Column management."""

import copy
from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, DuplicateError, ErrorCodes, NotFoundError
from ..core.utils import equals_ignore_case, require_not_none
from ..database import DatabaseConnection
from ..models.schema import (
    CheckConstraint,
    Column,
    DefaultConstraint,
    ForeignKeyConstraint,
    Index,
    PrimaryKeyConstraint,
    Table,
    UniqueConstraint,
)
from ..providers import ProviderDialect
from .base import ServiceBase, schema_argument


def column_not_found(table: Table, column_name: str) -> NotFoundError:
    return NotFoundError(
        f"Column '{column_name}' does not exist in table '{table.table_name}'",
        entity_type="column",
        entity_name=column_name,
        code=ErrorCodes.COLUMN_NOT_FOUND,
    )


def column_exists(table: Table, column_name: str) -> DuplicateError:
    return DuplicateError(
        f"Column '{column_name}' already exists in table '{table.table_name}'",
        entity_type="column",
        entity_name=column_name,
        code=ErrorCodes.DUPLICATE_OBJECT,
    )


class ColumnService(ServiceBase):
    """Adds, renames, drops and lists table columns."""

    area = "columns"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> List[Column]:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "list", datasource_id=datasource_id, schema_name=schema_name, table_name=table_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                columns = list(table.columns)
            op.properties["message"] = f"Retrieved {len(columns)} columns from table '{table.table_name}'"
            return columns

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        column_name: str,
        schema_name: Optional[str] = None,
    ) -> Column:
        """Column by name.

        Raises:
            NotFoundError: If the table or column does not exist
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "get",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            column_names=[column_name] if column_name else None,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            column_name = self._require_name(column_name, "column_name")
            async with self._table_session(datasource_id, schema_name, table_name) as (_, _, table):
                column = table.get_column(column_name)
            if column is None:
                raise column_not_found(table, column_name)
            op.properties["message"] = f"Retrieved column '{column.column_name}' from table '{table.table_name}'"
            return column

    async def add(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        column: Column,
        schema_name: Optional[str] = None,
    ) -> Column:
        """Add a column.

        The column's default becomes a default constraint and its primary
        key, unique, check, indexed and reference flags become the matching
        constraints or index once the column exists.

        Raises:
            ArgumentError: If the column has no name or data type
            DuplicateError: If the column exists, or it is flagged as primary
                key on a table that already has one
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "add",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            column_names=[column.column_name] if getattr(column, "column_name", None) else None,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            require_not_none(column, "column")
            column_name = self._require_name(column.column_name, "column_name")
            if not (column.provider_data_type or "").strip():
                raise ArgumentError(
                    f"Column '{column_name}' has no data type",
                    code=ErrorCodes.ARGUMENT_REQUIRED,
                    context={"argument": "provider_data_type", "column_name": column_name},
                )

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                if table.get_column(column_name) is not None:
                    raise column_exists(table, column_name)
                if column.is_primary_key and table.primary_key_constraint is not None:
                    raise DuplicateError(
                        f"Table '{table.table_name}' already has a primary key",
                        entity_type="primary_key",
                        entity_name=table.primary_key_constraint.constraint_name,
                        code=ErrorCodes.DUPLICATE_OBJECT,
                    )

                added = await self._add_column(conn, dialect, datasource_id, table, column)

            self.logger.info(
                "Column added",
                datasource_id=datasource_id,
                table_name=table.table_name,
                column_name=added.column_name,
            )
            op.properties["message"] = f"Added column '{added.column_name}' to table '{table.table_name}'"
            return added

    async def _add_column(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        table: Table,
        column: Column,
    ) -> Column:
        plain = copy.deepcopy(column)
        for flag in ("is_primary_key", "is_unique", "is_indexed"):
            setattr(plain, flag, False)
        plain.check_expression = None
        plain.default_expression = None
        plain.referenced_table_name = None
        plain.referenced_column_name = None
        if column.is_primary_key:
            plain.is_nullable = False

        default = None
        if column.default_expression:
            default = DefaultConstraint(
                column_name=column.column_name,
                expression=column.default_expression,
                constraint_name=dialect.default_constraint_name(table.table_name, column.column_name),
            )

        await dialect.add_column(conn, table, plain, default)

        follow_ups = copy.deepcopy(table)
        follow_ups.columns.append(plain)
        follow_ups.primary_key_constraint = (
            PrimaryKeyConstraint(column_names=[column.column_name]) if column.is_primary_key else None
        )
        follow_ups.unique_constraints = (
            [UniqueConstraint(column_names=[column.column_name])]
            if column.is_unique and not column.is_primary_key else []
        )
        follow_ups.check_constraints = (
            [CheckConstraint(check_expression=column.check_expression, column_name=column.column_name)]
            if column.check_expression else []
        )
        follow_ups.indexes = (
            [Index(column_names=[column.column_name])]
            if column.is_indexed and not column.is_unique and not column.is_primary_key else []
        )
        follow_ups.foreign_key_constraints = (
            [
                ForeignKeyConstraint(
                    column_names=[column.column_name],
                    referenced_table_name=column.referenced_table_name,
                    referenced_column_names=[column.referenced_column_name],
                )
            ]
            if column.referenced_table_name and column.referenced_column_name else []
        )
        follow_ups.default_constraints = []
        dialect.name_constraints(follow_ups)

        current = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
        if follow_ups.primary_key_constraint:
            await dialect.add_primary_key(conn, current, follow_ups.primary_key_constraint)
            current = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
        for uc in follow_ups.unique_constraints:
            await dialect.add_unique_constraint(conn, current, uc)
            current = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
        for ck in follow_ups.check_constraints:
            await dialect.add_check_constraint(conn, current, ck)
            current = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
        for fk in follow_ups.foreign_key_constraints:
            await dialect.add_foreign_key(conn, current, fk)
            current = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
        for index in follow_ups.indexes:
            await dialect.create_index(conn, current, index)
            current = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)

        added = current.get_column(column.column_name)
        if added is None:
            raise column_not_found(current, column.column_name)
        return added

    async def rename(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        column_name: str,
        new_column_name: str,
        schema_name: Optional[str] = None,
    ) -> Column:
        """Rename a column.

        Raises:
            NotFoundError: If the column does not exist
            DuplicateError: If another column already has the new name
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "rename",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            column_names=[column_name] if column_name else None,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            column_name = self._require_name(column_name, "column_name")
            new_column_name = self._require_name(new_column_name, "new_column_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                column = table.get_column(column_name)
                if column is None:
                    raise column_not_found(table, column_name)
                if column.column_name != new_column_name:
                    if not equals_ignore_case(column.column_name, new_column_name) and table.get_column(new_column_name):
                        raise column_exists(table, new_column_name)
                    await dialect.rename_column(conn, table, column.column_name, new_column_name)
                    table = await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
                renamed = table.get_column(new_column_name)

            if renamed is None:
                raise column_not_found(table, new_column_name)
            self.logger.info(
                "Column renamed",
                datasource_id=datasource_id,
                table_name=table.table_name,
                column_name=column_name,
                new_column_name=new_column_name,
            )
            op.properties["message"] = f"Renamed column '{column_name}' to '{new_column_name}'"
            return renamed

    async def drop(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        table_name: str,
        column_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        """Drop a column along with the constraints and indexes that use it.

        Raises:
            NotFoundError: If the column does not exist
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context,
            "drop",
            datasource_id=datasource_id,
            schema_name=schema_name,
            table_name=table_name,
            column_names=[column_name] if column_name else None,
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            table_name = self._require_name(table_name, "table_name")
            column_name = self._require_name(column_name, "column_name")

            async with self._table_session(datasource_id, schema_name, table_name) as (conn, dialect, table):
                column = table.get_column(column_name)
                if column is None:
                    raise column_not_found(table, column_name)
                if dialect.requires_table_rebuild:
                    await dialect.drop_column(conn, table, column.column_name)
                else:
                    async with conn.transaction():
                        table = await self._drop_dependents(conn, dialect, datasource_id, table, column.column_name)
                        await dialect.drop_column(conn, table, column.column_name)

            self.logger.info(
                "Column dropped",
                datasource_id=datasource_id,
                table_name=table.table_name,
                column_name=column.column_name,
            )
            op.properties["message"] = f"Dropped column '{column.column_name}' from table '{table.table_name}'"

    async def _drop_dependents(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        table: Table,
        column_name: str,
    ) -> Table:
        """Drop the key, foreign keys, unique constraints, indexes and checks using a column.

        Default constraints are left to the dialect's column drop.

        Returns:
            The table as introspected afterwards
        """
        key = column_name.casefold()

        def uses(names: List[str]) -> bool:
            return any(name.casefold() == key for name in names)

        dropped = False
        for fk in table.foreign_key_constraints:
            if uses(fk.column_names):
                await dialect.drop_foreign_key(conn, table, fk)
                dropped = True
        if table.primary_key_constraint and uses(table.primary_key_constraint.column_names):
            await dialect.drop_primary_key(conn, table)
            dropped = True
        # MySQL reports a unique constraint as an index too
        removed = set()
        for uc in table.unique_constraints:
            if uses(uc.column_names):
                await dialect.drop_unique_constraint(conn, table, uc)
                removed.add(uc.constraint_name.casefold())
                dropped = True
        for index in table.indexes:
            if uses(index.column_names) and index.index_name.casefold() not in removed:
                await dialect.drop_index(conn, table, index)
                dropped = True
        for ck in table.check_constraints:
            if equals_ignore_case(ck.column_name, column_name):
                await dialect.drop_check_constraint(conn, table, ck)
                dropped = True

        if not dropped:
            return table
        return await self._require_table(conn, dialect, datasource_id, table.schema_name, table.table_name)
