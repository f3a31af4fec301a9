"""View management and row queries."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, DuplicateError, ErrorCodes
from ..core.utils import equals_ignore_case, normalize_name, require_not_none
from ..database import DatabaseConnection
from ..models.query import QueryRequest, QueryResult
from ..models.schema import View
from ..providers import ProviderDialect, strip_create_view
from .base import ServiceBase, location, schema_argument


def _require_definition(definition: Optional[str]) -> str:
    """SELECT body of a view; a full ``CREATE VIEW ... AS`` statement is accepted too."""
    body = strip_create_view(definition)
    if not body:
        raise ArgumentError(
            "definition is required",
            code=ErrorCodes.ARGUMENT_REQUIRED,
            context={"argument": "definition"},
        )
    return body


class ViewService(ServiceBase):
    """Creates, replaces, renames, drops, introspects and queries views."""

    area = "views"

    async def _require_no_view(
        self,
        conn: DatabaseConnection,
        dialect: ProviderDialect,
        datasource_id: str,
        schema_name: Optional[str],
        view_name: str,
    ) -> None:
        if await dialect.get_view(conn, schema_name, view_name) is not None:
            raise DuplicateError(
                f"View '{view_name}' already exists in {location(datasource_id, schema_name)}",
                entity_type="view",
                entity_name=view_name,
                code=ErrorCodes.DUPLICATE_OBJECT,
            )

    async def list(
        self, context: Optional[OperationContext], datasource_id: str, schema_name: Optional[str] = None
    ) -> List[View]:
        schema_name = schema_argument(schema_name)
        async with self._operation(context, "list", datasource_id=datasource_id, schema_name=schema_name) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                views = await dialect.get_views(conn, schema)
            op.properties["message"] = f"Retrieved {len(views)} views"
            return sorted(views, key=lambda v: v.view_name.casefold())

    async def get(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        view_name: str,
        schema_name: Optional[str] = None,
    ) -> View:
        """View by name, with its definition and columns.

        Raises:
            NotFoundError: If the datasource, schema or view does not exist
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "get", datasource_id=datasource_id, schema_name=schema_name, view_name=view_name
        ):
            datasource_id = self._require_datasource_id(datasource_id)
            view_name = self._require_name(view_name, "view_name")
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                view = await self._require_view(conn, dialect, datasource_id, schema, view_name)
                if not view.columns:
                    view.columns = await dialect.get_view_columns(conn, schema, view.view_name)
            return view

    async def exists(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        view_name: str,
        schema_name: Optional[str] = None,
    ) -> bool:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "exists", datasource_id=datasource_id, schema_name=schema_name, view_name=view_name
        ):
            datasource_id = self._require_datasource_id(datasource_id)
            view_name = self._require_name(view_name, "view_name")
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                return await dialect.get_view(conn, schema, view_name) is not None

    async def create(self, context: Optional[OperationContext], datasource_id: str, view: View) -> View:
        """Create a view from its SELECT definition.

        Returns:
            The view as introspected after creation

        Raises:
            ArgumentError: If the name or definition is missing
            DuplicateError: If a view with the same name exists
        """
        schema_name = schema_argument(getattr(view, "schema_name", None))
        async with self._operation(
            context,
            "create",
            datasource_id=datasource_id,
            schema_name=schema_name,
            view_name=getattr(view, "view_name", None),
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            require_not_none(view, "view")
            view_name = self._require_name(view.view_name, "view_name")
            definition = _require_definition(view.definition)

            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                await self._require_no_view(conn, dialect, datasource_id, schema, view_name)
                await dialect.create_view(conn, View(view_name=view_name, definition=definition, schema_name=schema))
                created = await self._require_view(conn, dialect, datasource_id, schema, view_name)

            self.logger.info("View created", datasource_id=datasource_id, schema_name=schema, view_name=view_name)
            op.properties["message"] = f"Created view '{view_name}'"
            return created

    async def update(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        view_name: str,
        definition: Optional[str] = None,
        new_view_name: Optional[str] = None,
        schema_name: Optional[str] = None,
    ) -> View:
        """Replace a view's definition, rename it, or both.

        Args:
            definition: New SELECT body; the current one is kept when absent
            new_view_name: New name; the view keeps its name when absent

        Raises:
            ArgumentError: If neither a definition nor a new name is given
            NotFoundError: If the view does not exist
            DuplicateError: If the new name is taken by another view
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "update", datasource_id=datasource_id, schema_name=schema_name, view_name=view_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            view_name = self._require_name(view_name, "view_name")
            if normalize_name(new_view_name):
                new_view_name = self._require_name(new_view_name, "new_view_name")
            else:
                new_view_name = None
            body = _require_definition(definition) if normalize_name(definition) else None
            if body is None and new_view_name is None:
                raise ArgumentError(
                    "Either definition or new_view_name is required",
                    code=ErrorCodes.ARGUMENT_REQUIRED,
                    context={"argument": "definition"},
                )

            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                current = await self._require_view(conn, dialect, datasource_id, schema, view_name)
                current.schema_name = schema
                target_name = new_view_name or current.view_name
                if not equals_ignore_case(target_name, current.view_name):
                    await self._require_no_view(conn, dialect, datasource_id, schema, target_name)

                updated = View(
                    view_name=target_name,
                    definition=body or _require_definition(current.definition),
                    schema_name=schema,
                )
                await dialect.update_view(conn, current, updated)
                result = await self._require_view(conn, dialect, datasource_id, schema, target_name)

            self.logger.info(
                "View updated",
                datasource_id=datasource_id,
                view_name=current.view_name,
                new_view_name=target_name,
                definition_changed=body is not None,
            )
            op.properties["message"] = f"Updated view '{current.view_name}'"
            return result

    async def rename(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        view_name: str,
        new_view_name: str,
        schema_name: Optional[str] = None,
    ) -> View:
        """Rename a view, keeping its definition.

        Raises:
            NotFoundError: If the view does not exist
            DuplicateError: If the new name is taken by another view
        """
        new_view_name = self._require_name(new_view_name, "new_view_name")
        return await self.update(
            context, datasource_id, view_name, new_view_name=new_view_name, schema_name=schema_name
        )

    async def drop(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        view_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "drop", datasource_id=datasource_id, schema_name=schema_name, view_name=view_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            view_name = self._require_name(view_name, "view_name")
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                view = await self._require_view(conn, dialect, datasource_id, schema, view_name)
                await dialect.drop_view(conn, schema, view.view_name)
            self.logger.info("View dropped", datasource_id=datasource_id, view_name=view.view_name)
            op.properties["message"] = f"Dropped view '{view.view_name}'"

    async def query(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        view_name: str,
        request: Optional[QueryRequest] = None,
        schema_name: Optional[str] = None,
    ) -> QueryResult:
        """Page through a view's rows.

        Raises:
            NotFoundError: If the view does not exist
            QueryValidationError: If the request names unknown columns or
                operators
        """
        schema_name = schema_argument(schema_name)
        async with self._operation(
            context, "query", datasource_id=datasource_id, schema_name=schema_name, view_name=view_name
        ) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            view_name = self._require_name(view_name, "view_name")
            async with self._session(datasource_id) as (conn, dialect):
                schema = await self._require_schema(conn, dialect, datasource_id, schema_name)
                view = await self._require_view(conn, dialect, datasource_id, schema, view_name)
                columns = await dialect.get_view_columns(conn, schema, view.view_name)
                result = await self._execute_query(conn, dialect, schema, view.view_name, columns, request)
            op.properties["message"] = f"Queried {len(result.data)} rows from view '{view.view_name}'"
            return result
