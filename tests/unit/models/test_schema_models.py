"""Unit tests for database object metadata models."""

import pytest

from schemasmith.models import (
    CheckConstraint,
    Column,
    DefaultConstraint,
    ForeignKeyAction,
    ForeignKeyConstraint,
    Index,
    PrimaryKeyConstraint,
    Table,
    UniqueConstraint,
)


@pytest.fixture
def orders_table() -> Table:
    return Table(
        table_name="Orders",
        columns=[
            Column("Id", "INTEGER", is_nullable=False, is_primary_key=True),
            Column("Status", "TEXT"),
            Column("CustomerId", "INTEGER"),
        ],
        primary_key_constraint=PrimaryKeyConstraint(["Id"], "pk_Orders_Id"),
        unique_constraints=[UniqueConstraint(["Status", "CustomerId"], "uc_Orders_Status_CustomerId")],
        check_constraints=[CheckConstraint("Id > 0", "ck_Orders_Id", "Id")],
        default_constraints=[DefaultConstraint("Status", "'new'", "df_Orders_Status")],
        foreign_key_constraints=[
            ForeignKeyConstraint(["CustomerId"], "Customers", ["Id"], "fk_Orders_CustomerId_Customers_Id")
        ],
        indexes=[Index(["CustomerId"], "ix_Orders_CustomerId")],
    )


class TestForeignKeyAction:
    """Test cases for referential action parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("CASCADE", ForeignKeyAction.CASCADE),
            ("set null", ForeignKeyAction.SET_NULL),
            ("SetNull", ForeignKeyAction.SET_NULL),
            ("set_default", ForeignKeyAction.SET_DEFAULT),
            ("NoAction", ForeignKeyAction.NO_ACTION),
            ("restrict", ForeignKeyAction.RESTRICT),
            ("", ForeignKeyAction.NO_ACTION),
            (None, ForeignKeyAction.NO_ACTION),
            ("explode", ForeignKeyAction.NO_ACTION),
            (ForeignKeyAction.CASCADE, ForeignKeyAction.CASCADE),
        ],
    )
    def test_parse(self, value, expected):
        assert ForeignKeyAction.parse(value) is expected

    def test_foreign_key_parses_actions(self):
        fk = ForeignKeyConstraint(["a"], "t", ["id"], on_delete="cascade", on_update="SetNull")

        assert fk.on_delete is ForeignKeyAction.CASCADE
        assert fk.on_update is ForeignKeyAction.SET_NULL


class TestTableLookups:
    """Test case-insensitive lookups on Table."""

    def test_get_column(self, orders_table):
        assert orders_table.get_column("status").column_name == "Status"
        assert orders_table.get_column("missing") is None

    def test_get_constraints_and_indexes(self, orders_table):
        assert orders_table.get_index("IX_ORDERS_CUSTOMERID") is orders_table.indexes[0]
        assert orders_table.get_unique_constraint("uc_orders_status_customerid") is not None
        assert orders_table.get_check_constraint("ck_orders_id").column_name == "Id"
        assert orders_table.get_default_constraint("DF_Orders_Status").expression == "'new'"
        assert orders_table.get_default_constraint_on_column("status") is not None
        assert orders_table.get_default_constraint_on_column("Id") is None
        assert orders_table.get_foreign_key("fk_orders_customerid_customers_id") is not None

    @pytest.mark.parametrize(
        "name",
        ["pk_orders_id", "uc_Orders_Status_CustomerId", "ck_Orders_Id", "df_orders_status", "ix_Orders_CustomerId"],
    )
    def test_has_constraint_named(self, orders_table, name):
        assert orders_table.has_constraint_named(name)

    def test_has_constraint_named_unknown(self, orders_table):
        assert not orders_table.has_constraint_named("uc_Orders_Other")

    def test_unique_constraint_column_set(self):
        uc = UniqueConstraint(["Sku", "Region"])

        assert uc.has_same_columns(["region", "SKU"])
        assert not uc.has_same_columns(["Sku"])


class TestTableProjection:
    """Test without_details and serialization."""

    def test_without_details_drops_sections(self, orders_table):
        bare = orders_table.without_details(columns=False, indexes=False, constraints=False)

        assert bare.table_name == "Orders"
        assert bare.columns == []
        assert bare.indexes == []
        assert bare.primary_key_constraint is None
        assert bare.foreign_key_constraints == []

    def test_without_details_keeps_requested_sections(self, orders_table):
        partial = orders_table.without_details(columns=True, indexes=True, constraints=False)

        assert len(partial.columns) == 3
        assert len(partial.indexes) == 1
        assert partial.check_constraints == []
        partial.columns.append(Column("Extra"))
        assert len(orders_table.columns) == 3

    def test_to_dict(self, orders_table):
        data = orders_table.to_dict()

        assert data["table_name"] == "Orders"
        assert data["columns"][0]["column_name"] == "Id"
        assert data["primary_key_constraint"] == {"column_names": ["Id"], "constraint_name": "pk_Orders_Id"}
        assert data["foreign_key_constraints"][0]["on_delete"] == ForeignKeyAction.NO_ACTION
