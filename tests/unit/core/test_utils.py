"""Unit tests for SchemaSmith utilities."""

from dataclasses import dataclass

import pytest

from schemasmith.core.exceptions import ArgumentError, ErrorCodes
from schemasmith.core.utils import (
    ValidationUtils,
    deduplicate,
    equals_ignore_case,
    find_by_name,
    generate_check_constraint_name,
    generate_default_constraint_name,
    generate_foreign_key_name,
    generate_index_name,
    generate_primary_key_name,
    generate_unique_constraint_name,
    normalize_name,
    require_identifier,
    require_not_blank,
    require_not_none,
    to_raw_identifier,
)


@dataclass
class Named:
    column_name: str


class TestValidationUtils:
    """Test cases for identifier validation."""

    @pytest.mark.parametrize("name", ["orders", "Order Items", "dbo_x1", "Ünïcode", "a-b"])
    def test_valid_identifiers(self, name):
        assert ValidationUtils.validate_identifier(name) is True

    @pytest.mark.parametrize("name", ['x"; DROP TABLE y', "a`b", "a]b", "a;b", "tab\tname", "x" * 129])
    def test_invalid_identifiers(self, name):
        assert ValidationUtils.validate_identifier(name) is False

    def test_empty_identifier(self):
        assert ValidationUtils.validate_identifier("  ") is False
        assert ValidationUtils.validate_identifier(None, allow_empty=True) is True

    @pytest.mark.parametrize("datasource_id,expected", [("main", True), ("crm.prod-1", True), ("has space", False), ("", False)])
    def test_datasource_id(self, datasource_id, expected):
        assert ValidationUtils.validate_datasource_id(datasource_id) is expected


class TestArgumentHelpers:
    """Test cases for the require_* helpers."""

    def test_require_not_blank_strips(self):
        assert require_not_blank("  main ", "datasource_id") == "main"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_require_not_blank_rejects(self, value):
        with pytest.raises(ArgumentError) as exc_info:
            require_not_blank(value, "datasource_id")

        assert exc_info.value.code == ErrorCodes.ARGUMENT_REQUIRED
        assert exc_info.value.context == {"argument": "datasource_id"}
        assert "datasource_id is required" in str(exc_info.value)

    def test_require_identifier_rejects_forbidden_characters(self):
        with pytest.raises(ArgumentError) as exc_info:
            require_identifier('orders"--', "table_name")

        assert exc_info.value.code == ErrorCodes.INVALID_IDENTIFIER

    def test_require_not_none(self):
        assert require_not_none(0, "value") == 0
        with pytest.raises(ArgumentError):
            require_not_none(None, "table")


class TestNameHelpers:
    """Test cases for name comparison helpers."""

    def test_normalize_name(self):
        assert normalize_name("  a ") == "a"
        assert normalize_name("   ") is None
        assert normalize_name(None) is None

    def test_equals_ignore_case(self):
        assert equals_ignore_case("Orders", "ORDERS")
        assert equals_ignore_case(None, None)
        assert not equals_ignore_case("a", None)

    def test_find_by_name(self):
        items = [Named("Id"), Named("Name")]

        assert find_by_name(items, "name", "column_name") is items[1]
        assert find_by_name(items, "missing", "column_name") is None

    def test_deduplicate_preserves_first_spelling(self):
        assert deduplicate(["Prod", " prod ", "", None, "EU", "eu"]) == ["Prod", "EU"]


class TestNameSynthesis:
    """Test cases for constraint and index name synthesis."""

    def test_to_raw_identifier_strips_non_identifier_characters(self):
        assert to_raw_identifier("uc", "Order Items", "sku", "region") == "uc_OrderItems_sku_region"

    def test_to_raw_identifier_skips_blank_segments(self):
        assert to_raw_identifier("ck", "orders", None) == "ck_orders"
        assert to_raw_identifier("ck", "orders", "  ") == "ck_orders"

    def test_generated_names(self):
        assert generate_primary_key_name("orders", ["id"]) == "pk_orders_id"
        assert generate_unique_constraint_name("orders", ["a", "b"]) == "uc_orders_a_b"
        assert generate_check_constraint_name("orders", "qty") == "ck_orders_qty"
        assert generate_check_constraint_name("orders", None) == "ck_orders"
        assert generate_default_constraint_name("Orders", "Status") == "df_Orders_Status"
        assert generate_index_name("orders", ["customer_id"]) == "ix_orders_customer_id"
        assert (
            generate_foreign_key_name("orders", ["customer_id"], "customers", ["id"])
            == "fk_orders_customer_id_customers_id"
        )

    def test_generated_names_are_deterministic(self):
        assert generate_index_name("t", ["a", "b"]) == generate_index_name("t", ["a", "b"])
        assert generate_index_name("t", ["a", "b"]) != generate_index_name("t", ["b", "a"])
