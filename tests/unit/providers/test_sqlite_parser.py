"""Unit tests for the SQLite CREATE TABLE parser."""

import pytest

from schemasmith.models.schema import Column, ForeignKeyAction
from schemasmith.providers.sqlite_parser import (
    infer_check_column,
    parse_create_table,
    parse_type_arguments,
    tokenize,
)

ORDERS_SQL = """
CREATE TABLE "orders" (
    "id" INTEGER CONSTRAINT "pk_orders_id" PRIMARY KEY AUTOINCREMENT NOT NULL,
    sku varchar(20) NOT NULL CONSTRAINT uq_sku UNIQUE,
    qty NUMERIC(10, 2) DEFAULT (0) CHECK (qty >= 0),
    note TEXT DEFAULT 'n/a, maybe' COLLATE NOCASE, -- trailing comment
    customer_id INTEGER REFERENCES customers(id) ON DELETE CASCADE,
    created TEXT DEFAULT CURRENT_TIMESTAMP,
    balance REAL DEFAULT -1.5,
    CONSTRAINT ck_orders_note CHECK (length(note) < 100),
    FOREIGN KEY (sku) REFERENCES products (sku) ON UPDATE SET NULL
)
"""


@pytest.fixture
def orders():
    return parse_create_table(ORDERS_SQL)


class TestTokenize:
    def test_skips_whitespace_and_comments(self):
        tokens = tokenize("a /* x */ -- y\n 'b''c' [d e]")

        assert [(t.kind, t.name) for t in tokens] == [("word", "a"), ("string", "b'c"), ("quoted", "d e")]

    def test_quoted_identifier_unescaped(self):
        assert tokenize('"we""ird"')[0].name == 'we"ird'


class TestParseTypeArguments:
    @pytest.mark.parametrize(
        "data_type,expected",
        [
            ("varchar(255)", (255, None, None)),
            ("decimal(10, 2)", (None, 10, 2)),
            ("numeric(5)", (None, 5, None)),
            ("blob(16)", (16, None, None)),
            ("integer", (None, None, None)),
            ("", (None, None, None)),
        ],
    )
    def test_arguments(self, data_type, expected):
        assert parse_type_arguments(data_type) == expected


class TestInferCheckColumn:
    columns = [Column("qty", "int"), Column("price", "real")]

    def test_synthesized_name_wins(self):
        assert infer_check_column("t", "CK_T_PRICE", "qty > 0", self.columns) == "price"

    def test_single_mentioned_column(self):
        assert infer_check_column("t", "positive", '"price" > 0', self.columns) == "price"

    def test_ambiguous_expression(self):
        assert infer_check_column("t", None, "qty < price", self.columns) is None

    def test_partial_names_do_not_match(self):
        assert infer_check_column("t", None, "qty2 > 0 AND price_old > 0", self.columns) is None


class TestParseCreateTable:
    """Test cases for recovering a Table from its CREATE statement."""

    def test_columns(self, orders):
        assert orders.table_name == "orders"
        assert [c.column_name for c in orders.columns] == [
            "id", "sku", "qty", "note", "customer_id", "created", "balance"
        ]
        sku = orders.get_column("sku")
        qty = orders.get_column("qty")

        assert sku.provider_data_type == "varchar(20)"
        assert sku.max_length == 20
        assert sku.is_nullable is False
        assert qty.provider_data_type == "NUMERIC(10, 2)"
        assert (qty.precision, qty.scale) == (10, 2)
        assert qty.is_nullable is True

    def test_inline_primary_key(self, orders):
        id_column = orders.get_column("id")

        assert orders.primary_key_constraint.column_names == ["id"]
        assert orders.primary_key_constraint.constraint_name == "pk_orders_id"
        assert id_column.is_auto_increment is True
        assert id_column.is_nullable is False

    def test_named_unique(self, orders):
        assert [(uc.constraint_name, uc.column_names) for uc in orders.unique_constraints] == [("uq_sku", ["sku"])]

    def test_defaults(self, orders):
        defaults = {dc.column_name: dc.expression for dc in orders.default_constraints}

        assert defaults == {
            "qty": "0",
            "note": "'n/a, maybe'",
            "created": "CURRENT_TIMESTAMP",
            "balance": "-1.5",
        }

    def test_checks_keep_column_association(self, orders):
        checks = [(ck.constraint_name, ck.column_name, ck.check_expression) for ck in orders.check_constraints]

        assert checks == [
            (None, "qty", "qty >= 0"),
            ("ck_orders_note", "note", "length(note) < 100"),
        ]

    def test_foreign_keys(self, orders):
        inline, table_level = orders.foreign_key_constraints

        assert inline.column_names == ["customer_id"]
        assert inline.referenced_table_name == "customers"
        assert inline.referenced_column_names == ["id"]
        assert inline.on_delete is ForeignKeyAction.CASCADE
        assert inline.on_update is ForeignKeyAction.NO_ACTION
        assert table_level.column_names == ["sku"]
        assert table_level.referenced_table_name == "products"
        assert table_level.on_update is ForeignKeyAction.SET_NULL

    def test_composite_primary_key(self):
        table = parse_create_table("CREATE TABLE lines (a INT, b INT, PRIMARY KEY (a, b DESC))")

        assert table.primary_key_constraint.column_names == ["a", "b"]
        assert table.primary_key_constraint.constraint_name is None

    def test_quoted_and_qualified_names(self):
        table = parse_create_table("CREATE TABLE IF NOT EXISTS main.[my table] (`a b` INT, c)")

        assert table.table_name == "my table"
        assert [c.column_name for c in table.columns] == ["a b", "c"]
        assert table.get_column("c").provider_data_type == ""

    @pytest.mark.parametrize(
        "sql",
        [None, "", "CREATE TABLE t AS SELECT 1", "CREATE INDEX ix ON t (a)", "CREATE VIRTUAL TABLE f USING fts5(x)"],
    )
    def test_not_a_column_list_table(self, sql):
        assert parse_create_table(sql) is None
