"""Unit tests for the static data type catalogs and the dialect registry."""

import pytest

from schemasmith.core.exceptions import ArgumentError, ErrorCodes
from schemasmith.models import ProviderType
from schemasmith.models.datatypes import DataTypeCategory
from schemasmith.providers import (
    DialectRegistry,
    MySqlDialect,
    PostgreSqlDialect,
    SqliteDialect,
    SqlServerDialect,
    get_datatype_catalog,
    get_dialect,
)
from schemasmith.providers.base import ProviderDialect

CATEGORY_ORDER = list(DataTypeCategory)


class TestDatatypeCatalog:
    """Test cases for get_datatype_catalog."""

    @pytest.mark.parametrize("provider", list(ProviderType))
    def test_sorted_by_category_then_name(self, provider):
        catalog = get_datatype_catalog(provider)
        keys = [(CATEGORY_ORDER.index(info.category), info.data_type) for info in catalog]

        assert catalog
        assert keys == sorted(keys)

    @pytest.mark.parametrize("provider", list(ProviderType))
    def test_common_subset(self, provider):
        everything = get_datatype_catalog(provider)
        common = get_datatype_catalog(provider, include_advanced=False)

        assert 0 < len(common) < len(everything)
        assert all(info.is_common for info in common)

    def test_sqlserver_lengths(self):
        nvarchar = next(i for i in get_datatype_catalog(ProviderType.SQLSERVER) if i.data_type == "nvarchar")

        assert nvarchar.supports_length
        assert nvarchar.max_length == 4000
        assert nvarchar.default_length == 255
        assert not nvarchar.supports_precision

    def test_postgresql_aliases(self):
        catalog = get_datatype_catalog(ProviderType.POSTGRESQL)

        assert [i.data_type for i in catalog if i.matches("VARCHAR")] == ["character varying"]
        assert [i.data_type for i in catalog if i.matches("int4")] == ["integer"]

    def test_decimal_bounds(self):
        decimal = next(i for i in get_datatype_catalog(ProviderType.MYSQL) if i.data_type == "decimal")

        assert (decimal.max_precision, decimal.max_scale) == (65, 30)
        assert decimal.to_dict()["category"] == "Decimal"

    def test_callers_get_copies(self):
        first = get_datatype_catalog(ProviderType.SQLITE)
        first[0].aliases.append("mutated")
        first[0].description = "changed"

        second = get_datatype_catalog(ProviderType.SQLITE)

        assert "mutated" not in second[0].aliases
        assert second[0].description != "changed"


class TestDialectRegistry:
    """Test cases for resolving dialects by provider."""

    @pytest.mark.parametrize(
        "provider,expected",
        [
            ("SqlServer", SqlServerDialect),
            ("postgres", PostgreSqlDialect),
            (ProviderType.MYSQL, MySqlDialect),
            ("Sqlite", SqliteDialect),
        ],
    )
    def test_get(self, provider, expected):
        assert isinstance(DialectRegistry().get(provider), expected)

    def test_dialects_are_shared(self):
        registry = DialectRegistry()

        assert registry.get("pg") is registry.get(ProviderType.POSTGRESQL)
        assert get_dialect("sqlite") is get_dialect("Sqlite")

    def test_unknown_provider(self):
        with pytest.raises(ArgumentError) as exc_info:
            DialectRegistry().get("Oracle")

        assert exc_info.value.code == ErrorCodes.PROVIDER_UNSUPPORTED

    def test_override(self):
        class QuietSqliteDialect(SqliteDialect):
            pass

        registry = DialectRegistry({ProviderType.SQLITE: QuietSqliteDialect})

        assert isinstance(registry.get("Sqlite"), QuietSqliteDialect)
        assert isinstance(registry.get("MySql"), MySqlDialect)

    @pytest.mark.parametrize(
        "dialect_class,schemas,default_schema,named_defaults,rebuild",
        [
            (SqlServerDialect, True, "dbo", True, False),
            (PostgreSqlDialect, True, "public", False, False),
            (MySqlDialect, False, None, False, False),
            (SqliteDialect, False, None, False, True),
        ],
    )
    def test_capabilities(self, dialect_class, schemas, default_schema, named_defaults, rebuild):
        dialect: ProviderDialect = dialect_class()

        assert dialect.supports_schemas is schemas
        assert dialect.default_schema == default_schema
        assert dialect.supports_named_default_constraints is named_defaults
        assert dialect.requires_table_rebuild is rebuild
