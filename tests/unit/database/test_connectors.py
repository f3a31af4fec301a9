"""Unit tests for the provider connections.

SQLite runs against a real database file; the network providers are
exercised through their error classification, which needs no server.
"""

from datetime import date, datetime
from decimal import Decimal

import aiomysql
import asyncpg
import pyodbc
import pytest

from schemasmith.core.exceptions import (
    ConnectionError,
    DuplicateError,
    EngineError,
    ErrorCodes,
    NotFoundError,
)
from schemasmith.database import ConnectionFactory, ConnectionSettings
from schemasmith.database.connection import DUPLICATE, MISSING
from schemasmith.database.connectors.mysql import MySqlConnection
from schemasmith.database.connectors.postgresql import PostgreSqlConnection
from schemasmith.database.connectors.sqlite import adapt_parameters
from schemasmith.database.connectors.sqlserver import SqlServerConnection, native_error_numbers
from schemasmith.models import ProviderType


@pytest.fixture
def factory() -> ConnectionFactory:
    return ConnectionFactory()


@pytest.fixture
async def sqlite(factory, sqlite_path):
    async with factory.create_connection("Sqlite", f"Data Source={sqlite_path}") as conn:
        yield conn


class TestSqliteConnection:
    """Test cases for SqliteConnection against a database file."""

    async def test_open_and_close(self, factory, sqlite_path):
        conn = factory.create_connection("Sqlite", str(sqlite_path))

        async with conn:
            assert conn.is_connected is True
            assert conn.database_name == str(sqlite_path)

        assert conn.is_connected is False
        assert sqlite_path.exists()

    async def test_execute_and_fetch(self, sqlite):
        await sqlite.execute("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT)")
        affected = await sqlite.execute("INSERT INTO items (name) VALUES (:name)", {"name": "bolt"})

        assert affected == 1
        assert await sqlite.fetch_all("SELECT id, name FROM items") == [{"id": 1, "name": "bolt"}]
        assert await sqlite.fetch_scalar("SELECT COUNT(*) FROM items WHERE name = :n", {"n": "nut"}) == 0

    async def test_server_version(self, sqlite):
        version = await sqlite.get_server_version()

        assert version and version.startswith("3.")

    async def test_foreign_keys_enforced(self, sqlite):
        assert await sqlite.fetch_scalar("PRAGMA foreign_keys") == 1

        await sqlite.execute("CREATE TABLE parent (id INTEGER PRIMARY KEY)")
        await sqlite.execute("CREATE TABLE child (id INTEGER PRIMARY KEY, parent_id INTEGER REFERENCES parent(id))")

        with pytest.raises(EngineError):
            await sqlite.execute("INSERT INTO child (parent_id) VALUES (42)")

    async def test_duplicate_table(self, sqlite):
        await sqlite.execute("CREATE TABLE t (a INTEGER)")

        with pytest.raises(DuplicateError) as exc_info:
            await sqlite.execute("CREATE TABLE t (a INTEGER)")

        assert exc_info.value.context["provider"] == "Sqlite"

    async def test_missing_table(self, sqlite):
        with pytest.raises(NotFoundError):
            await sqlite.fetch_all("SELECT * FROM nowhere")

    async def test_syntax_error(self, sqlite):
        with pytest.raises(EngineError) as exc_info:
            await sqlite.execute("CREAT TABLE t (a INTEGER)")

        assert exc_info.value.code == ErrorCodes.QUERY_EXECUTION_FAILED

    async def test_transaction_rollback(self, sqlite):
        await sqlite.execute("CREATE TABLE t (a INTEGER)")

        with pytest.raises(RuntimeError):
            async with sqlite.transaction():
                await sqlite.execute("INSERT INTO t VALUES (1)")
                raise RuntimeError("abort")

        assert await sqlite.fetch_scalar("SELECT COUNT(*) FROM t") == 0

    async def test_transaction_commit(self, sqlite):
        await sqlite.execute("CREATE TABLE t (a INTEGER)")

        async with sqlite.transaction():
            await sqlite.execute("INSERT INTO t VALUES (1)")
            await sqlite.execute("INSERT INTO t VALUES (2)")

        assert await sqlite.fetch_scalar("SELECT COUNT(*) FROM t") == 2

    async def test_unopenable_path(self, factory, temp_dir):
        conn = factory.create_connection("Sqlite", str(temp_dir / "missing-dir" / "app.db"))

        with pytest.raises(ConnectionError) as exc_info:
            await conn.initialize()

        assert exc_info.value.code == ErrorCodes.CONNECTION_REFUSED

    async def test_decimal_and_temporal_parameters(self, sqlite):
        await sqlite.execute("CREATE TABLE t (amount REAL, placed TEXT)")
        await sqlite.execute(
            "INSERT INTO t VALUES (:amount, :placed)",
            {"amount": Decimal("12.50"), "placed": datetime(2024, 5, 1, 9, 30)},
        )

        assert await sqlite.fetch_all("SELECT amount, placed FROM t WHERE amount > :min", {"min": Decimal("10")}) == [
            {"amount": 12.5, "placed": "2024-05-01 09:30:00"}
        ]

    def test_adapt_parameters(self):
        assert adapt_parameters(None) == ()
        assert adapt_parameters({"d": date(2024, 1, 2), "s": "x", "n": None}) == {
            "d": "2024-01-02",
            "s": "x",
            "n": None,
        }


def _settings(provider: ProviderType, **options) -> ConnectionSettings:
    return ConnectionSettings(provider=provider, connection_string="unused", options=options)


class TestPostgreSqlClassification:
    @pytest.mark.parametrize(
        "error_class,expected",
        [
            (asyncpg.DuplicateTableError, DUPLICATE),
            (asyncpg.UniqueViolationError, DUPLICATE),
            (asyncpg.UndefinedTableError, MISSING),
            (asyncpg.InvalidSchemaNameError, MISSING),
            (asyncpg.SyntaxOrAccessError, None),
        ],
    )
    def test_classify(self, error_class, expected):
        conn = PostgreSqlConnection(_settings(ProviderType.POSTGRESQL, host="db"))

        assert conn._classify_error(error_class("boom")) == expected

    def test_not_connected_until_opened(self):
        assert PostgreSqlConnection(_settings(ProviderType.POSTGRESQL)).is_connected is False


class TestMySqlClassification:
    @pytest.mark.parametrize(
        "errno,expected",
        [(1050, DUPLICATE), (1061, DUPLICATE), (1146, MISSING), (1091, MISSING), (1064, None)],
    )
    def test_classify(self, errno, expected):
        conn = MySqlConnection(_settings(ProviderType.MYSQL, host="db"))

        assert conn._classify_error(aiomysql.OperationalError(errno, "server said no")) == expected

    def test_paramstyle(self):
        assert MySqlConnection.paramstyle == "pyformat"
        assert MySqlConnection.begin_sql == "START TRANSACTION"


class TestSqlServerClassification:
    def test_native_error_numbers(self):
        error = pyodbc.ProgrammingError(
            "42S01",
            "[42S01] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]"
            "There is already an object named 'Orders' in the database. (2714) (SQLExecDirectW)",
        )

        assert native_error_numbers(error) == [2714]

    @pytest.mark.parametrize(
        "number,expected",
        [(2714, DUPLICATE), (1913, DUPLICATE), (208, MISSING), (3701, MISSING), (102, None)],
    )
    def test_classify(self, number, expected):
        conn = SqlServerConnection(_settings(ProviderType.SQLSERVER, dsn="DRIVER={x}"))
        error = pyodbc.Error("HY000", f"[HY000] [SQL Server]Failure. ({number}) (SQLExecDirectW)")

        assert conn._classify_error(error) == expected
