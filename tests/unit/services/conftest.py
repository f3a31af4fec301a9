"""Fixtures for the service tests, which run against a real SQLite file."""

from typing import Any, Awaitable, Callable, Mapping, Optional

import pytest

from schemasmith.database import ConnectionFactory
from schemasmith.models.schema import Column, Table

RunSql = Callable[[str, Optional[Mapping[str, Any]]], Awaitable[Any]]


@pytest.fixture
def orders_definition() -> Table:
    """Fresh ``Orders`` definition using every column flag but unique."""
    return Table(
        table_name="Orders",
        columns=[
            Column("Id", "INTEGER", is_primary_key=True, is_auto_increment=True),
            Column("Status", "varchar(20)", is_nullable=False),
            Column("Total", "decimal(10,2)", check_expression="Total >= 0", default_expression="0"),
            Column("CustomerId", "int", is_indexed=True),
        ],
    )


@pytest.fixture
def run_sql(sqlite_path) -> RunSql:
    """Run one statement on the test database outside the services."""

    async def run(sql: str, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        async with ConnectionFactory().create_connection("Sqlite", f"Data Source={sqlite_path}") as conn:
            if sql.lstrip().upper().startswith("SELECT"):
                return await conn.fetch_all(sql, parameters)
            return await conn.execute(sql, parameters)

    return run


@pytest.fixture
async def orders(smith, context, run_sql, orders_definition) -> Table:
    """``Orders`` table with three rows."""
    table = await smith.tables.create(context, "app", orders_definition)
    for status, total, customer_id in [("open", 12.5, 1), ("shipped", 40, 2), ("open", 3, None)]:
        await run_sql(
            "INSERT INTO Orders (Status, Total, CustomerId) VALUES (:status, :total, :customer_id)",
            {"status": status, "total": total, "customer_id": customer_id},
        )
    return table


@pytest.fixture
async def customers(smith, context, run_sql) -> Table:
    table = await smith.tables.create(
        context,
        "app",
        Table(
            table_name="Customers",
            columns=[Column("Id", "INTEGER", is_primary_key=True), Column("Email", "varchar(100)")],
        ),
    )
    for customer_id in (1, 2):
        await run_sql(
            "INSERT INTO Customers (Id, Email) VALUES (:id, :email)",
            {"id": customer_id, "email": f"c{customer_id}@example.com"},
        )
    return table
