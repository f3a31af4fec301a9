"""Tests for ViewService and DataTypeService on SQLite."""

import pytest

from schemasmith.core.exceptions import ArgumentError, DuplicateError, EngineError, ErrorCodes, NotFoundError
from schemasmith.models import ProviderType, QueryRequest
from schemasmith.models.schema import View
from schemasmith.providers import SqliteDialect, get_datatype_catalog

OPEN_ORDERS = "SELECT Id, Status, Total FROM Orders WHERE Status = 'open'"


@pytest.fixture
async def open_orders(smith, context, orders) -> View:
    return await smith.views.create(context, "app", View(view_name="open_orders", definition=OPEN_ORDERS))


class TestViewLifecycle:
    """Creating, reading, updating and dropping views."""

    async def test_create(self, open_orders):
        assert open_orders.view_name == "open_orders"
        assert open_orders.definition == OPEN_ORDERS
        assert open_orders.schema_name is None

    async def test_get_includes_columns(self, smith, context, open_orders):
        view = await smith.views.get(context, "app", "OPEN_ORDERS")

        assert view.view_name == "open_orders"
        assert [c.column_name for c in view.columns] == ["Id", "Status", "Total"]
        assert view.columns[2].provider_data_type == "decimal(10,2)"

    async def test_duplicate(self, smith, context, open_orders):
        with pytest.raises(DuplicateError):
            await smith.views.create(context, "app", View(view_name="Open_Orders", definition="SELECT 1"))

    async def test_definition_required(self, smith, context, orders):
        with pytest.raises(ArgumentError):
            await smith.views.create(context, "app", View(view_name="empty", definition="  "))

    async def test_list_and_exists(self, smith, context, open_orders):
        await smith.views.create(context, "app", View(view_name="All_Orders", definition="SELECT * FROM Orders"))

        assert [v.view_name for v in await smith.views.list(context, "app")] == ["All_Orders", "open_orders"]
        assert await smith.views.exists(context, "app", "all_orders") is True
        assert await smith.views.exists(context, "app", "nope") is False

    async def test_get_missing(self, smith, context, orders):
        with pytest.raises(NotFoundError) as exc_info:
            await smith.views.get(context, "app", "nope")

        assert exc_info.value.code == ErrorCodes.VIEW_NOT_FOUND

    async def test_update_definition(self, smith, context, open_orders):
        updated = await smith.views.update(
            context, "app", "open_orders", definition="SELECT Id FROM Orders WHERE Status = 'open'"
        )

        assert updated.definition == "SELECT Id FROM Orders WHERE Status = 'open'"
        assert [c.column_name for c in (await smith.views.get(context, "app", "open_orders")).columns] == ["Id"]

    async def test_update_name_and_definition(self, smith, context, open_orders):
        updated = await smith.views.update(
            context, "app", "open_orders", definition="SELECT Id FROM Orders", new_view_name="order_ids"
        )

        assert updated.view_name == "order_ids"
        assert await smith.views.exists(context, "app", "open_orders") is False

    async def test_update_needs_a_change(self, smith, context, open_orders):
        with pytest.raises(ArgumentError) as exc_info:
            await smith.views.update(context, "app", "open_orders", definition=" ", new_view_name=None)

        assert exc_info.value.code == ErrorCodes.ARGUMENT_REQUIRED

    async def test_rename_keeps_definition(self, smith, context, open_orders, audit_logger):
        renamed = await smith.views.rename(context, "app", "open_orders", "pending_orders")

        assert renamed.view_name == "pending_orders"
        assert renamed.definition == OPEN_ORDERS
        (event,) = audit_logger.get_events(operation="views.update")
        assert event.view_name == "open_orders"

    async def test_rename_to_taken_name(self, smith, context, open_orders):
        await smith.views.create(context, "app", View(view_name="other", definition="SELECT 1 AS one"))

        with pytest.raises(DuplicateError):
            await smith.views.rename(context, "app", "open_orders", "OTHER")

    async def test_drop(self, smith, context, open_orders):
        await smith.views.drop(context, "app", "Open_Orders")

        assert await smith.views.list(context, "app") == []
        with pytest.raises(NotFoundError):
            await smith.views.drop(context, "app", "open_orders")


class TestQueryView:
    async def test_filters_on_view_columns(self, smith, context, open_orders):
        result = await smith.views.query(
            context, "app", "open_orders", QueryRequest(filters={"total.gte": "10"}, include_total=True)
        )

        assert result.data == [{"Id": 1, "Status": "open", "Total": 12.5}]
        assert result.pagination.total == 1
        assert result.field_names == ["Id", "Status", "Total"]

    async def test_only_view_columns_allowed(self, smith, context, open_orders):
        with pytest.raises(ArgumentError) as exc_info:
            await smith.views.query(context, "app", "open_orders", QueryRequest(select="CustomerId"))

        assert exc_info.value.code == ErrorCodes.INVALID_SELECT

    async def test_missing_view(self, smith, context, orders):
        with pytest.raises(NotFoundError):
            await smith.views.query(context, "app", "nope")


class TestDataTypeService:
    async def test_static_catalog(self, smith, context):
        types = await smith.datatypes.list(context, "app")

        assert types == get_datatype_catalog(ProviderType.SQLITE)

    async def test_common_only(self, smith, context):
        types = await smith.datatypes.list(context, "app", include_advanced=False)

        assert types and all(info.is_common for info in types)

    async def test_custom_discovery_failure_is_not_fatal(self, smith, context, monkeypatch):
        async def failing(self, conn):
            raise EngineError("catalog unavailable")

        monkeypatch.setattr(SqliteDialect, "get_custom_datatypes", failing)

        types = await smith.datatypes.list(context, "app", include_custom=True)

        assert types == get_datatype_catalog(ProviderType.SQLITE)

    async def test_unknown_datasource(self, smith, context):
        with pytest.raises(NotFoundError):
            await smith.datatypes.list(context, "nope")
