"""Unit tests for datasource models."""

import pytest
from pydantic import ValidationError

from schemasmith.core.exceptions import ArgumentError, ErrorCodes
from schemasmith.models import ConnectivityTestResult, Datasource, DatasourcePatch, ProviderType


class TestProviderType:
    """Test cases for provider name parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("SqlServer", ProviderType.SQLSERVER),
            ("mssql", ProviderType.SQLSERVER),
            ("PostgreSql", ProviderType.POSTGRESQL),
            ("postgres", ProviderType.POSTGRESQL),
            ("Npgsql", ProviderType.POSTGRESQL),
            ("pg", ProviderType.POSTGRESQL),
            ("MySql", ProviderType.MYSQL),
            ("MYSQL", ProviderType.MYSQL),
            ("Sqlite", ProviderType.SQLITE),
            ("Microsoft.Data.Sqlite", ProviderType.SQLITE),
            (ProviderType.MYSQL, ProviderType.MYSQL),
        ],
    )
    def test_parse(self, value, expected):
        assert ProviderType.parse(value) is expected

    def test_blank_provider(self):
        with pytest.raises(ArgumentError) as exc_info:
            ProviderType.parse("  ")

        assert exc_info.value.code == ErrorCodes.ARGUMENT_REQUIRED

    def test_unknown_provider(self):
        with pytest.raises(ArgumentError) as exc_info:
            ProviderType.parse("Oracle")

        assert exc_info.value.code == ErrorCodes.PROVIDER_UNSUPPORTED


class TestDatasource:
    """Test cases for the Datasource record."""

    def test_provider_alias_accepted(self):
        datasource = Datasource(id="main", provider="postgres", connection_string="Host=db")

        assert datasource.provider is ProviderType.POSTGRESQL
        assert datasource.is_enabled is True
        assert datasource.created_at.tzinfo is not None

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            Datasource(id="main", provider="Oracle")

    def test_tags_deduplicated(self):
        datasource = Datasource(id="main", tags=["Prod", "prod ", " ", "EU"])

        assert datasource.tags == ["Prod", "EU"]
        assert datasource.has_tag("eu")
        assert not datasource.has_tag("staging")

    def test_connection_string_hidden_from_repr(self):
        datasource = Datasource(id="main", connection_string="Password=s3cr3t")

        assert "s3cr3t" not in repr(datasource)

    def test_redacted(self):
        datasource = Datasource(id="main", provider="Sqlite", connection_string="Data Source=a.db")

        redacted = datasource.redacted()

        assert redacted.connection_string is None
        assert redacted.provider is ProviderType.SQLITE
        assert datasource.connection_string == "Data Source=a.db"

    def test_apply_patch_applies_present_fields(self):
        datasource = Datasource(
            id="main", provider="Sqlite", connection_string="Data Source=a.db", display_name="A", tags=["x"]
        )
        patch = DatasourcePatch(id="main", display_name="Renamed", description="  ", tags=[], is_enabled=False)

        updated = datasource.apply_patch(patch)

        assert updated.display_name == "Renamed"
        assert updated.description is None
        assert updated.tags == ["x"]
        assert updated.is_enabled is False
        assert updated.connection_string == "Data Source=a.db"
        assert updated.updated_at >= datasource.updated_at
        assert datasource.display_name == "A"

    def test_apply_patch_replaces_tags(self):
        datasource = Datasource(id="main", tags=["x"])

        updated = datasource.apply_patch(DatasourcePatch(id="main", tags=["Y", "y", "z"]))

        assert updated.tags == ["Y", "z"]


class TestDatasourcePatch:
    def test_id_required(self):
        with pytest.raises(ValidationError):
            DatasourcePatch(id="")

    def test_provider_parsed(self):
        assert DatasourcePatch(id="a", provider="mysql").provider is ProviderType.MYSQL


class TestConnectivityTestResult:
    def test_to_dict(self):
        result = ConnectivityTestResult(datasource_id="main", connected=True, provider="Sqlite")

        assert result.to_dict() == {
            "datasource_id": "main",
            "connected": True,
            "provider": "Sqlite",
            "server_version": None,
            "database_name": None,
            "error_message": None,
            "response_time_ms": 0,
        }
