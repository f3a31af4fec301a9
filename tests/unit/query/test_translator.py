"""Unit tests for row query translation."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from schemasmith.core.exceptions import ErrorCodes, QueryValidationError
from schemasmith.models import FilterOperator, QueryRequest
from schemasmith.models.schema import Column
from schemasmith.providers import MySqlDialect, PostgreSqlDialect, SqliteDialect, SqlServerDialect
from schemasmith.query import QueryTranslator, coerce_value, parse_filter_key

COLUMNS = [
    Column("Id", "int", is_nullable=False),
    Column("Status", "varchar(20)"),
    Column("Total", "decimal(10,2)"),
    Column("Shipped", "bit"),
    Column("CreatedAt", "datetime2(7)"),
]


@pytest.fixture
def translator() -> QueryTranslator:
    return QueryTranslator()


def _translate(translator, request, dialect=None, schema=None):
    return translator.translate(dialect or SqliteDialect(), schema, "Orders", COLUMNS, request)


class TestCoerceValue:
    @pytest.mark.parametrize(
        "value,data_type,expected",
        [
            ("42", "integer", 42),
            (" 7 ", "bigint", 7),
            ("2.5", "int", Decimal("2.5")),
            ("12.50", "numeric(10,2)", Decimal("12.50")),
            ("true", "boolean", True),
            ("0", "bit", False),
            ("2024-05-01", "date", date(2024, 5, 1)),
            ("2024-05-01T10:30:00", "timestamp without time zone", datetime(2024, 5, 1, 10, 30)),
            ("abc", "int", "abc"),
            ("soon", "datetime", "soon"),
            ("maybe", "bool", "maybe"),
            ("42", "varchar(10)", "42"),
            ("42", "interval", "42"),
        ],
    )
    def test_coercion(self, value, data_type, expected):
        assert coerce_value(value, Column("c", data_type)) == expected

    def test_none(self):
        assert coerce_value(None, Column("c", "int")) is None


class TestParseFilterKey:
    def test_operator_from_last_dot(self):
        assert parse_filter_key("order.total.gte") == ("order.total", FilterOperator.GTE)

    def test_unknown_operator(self):
        assert parse_filter_key("status.between") == ("status", None)

    def test_no_operator(self):
        assert parse_filter_key(" status ") == ("status", None)


class TestTranslate:
    """Test cases for QueryTranslator.translate."""

    def test_defaults_select_every_column(self, translator):
        query = _translate(translator, QueryRequest())

        assert query.sql == (
            'SELECT "Id", "Status", "Total", "Shipped", "CreatedAt" FROM "Orders" LIMIT 100 OFFSET 0'
        )
        assert query.count_sql is None
        assert query.parameters == {}
        assert [f.name for f in query.fields] == ["Id", "Status", "Total", "Shipped", "CreatedAt"]

    def test_select_resolves_names_ignoring_case(self, translator):
        query = _translate(translator, QueryRequest(select="status, ID, status"))

        assert query.sql.startswith('SELECT "Status", "Id" FROM')
        assert [(f.name, f.field_type, f.is_nullable) for f in query.fields] == [
            ("Status", "varchar(20)", True),
            ("Id", "int", False),
        ]

    def test_filters_are_bound_parameters(self, translator):
        query = _translate(
            translator,
            QueryRequest(filters={"status.eq": "open'; DROP TABLE Orders;--", "total.gt": "10.5", "id.lte": "9"}),
        )

        assert 'WHERE "Status" = :p0 AND "Total" > :p1 AND "Id" <= :p2' in query.sql
        assert query.parameters == {
            "p0": "open'; DROP TABLE Orders;--",
            "p1": Decimal("10.5"),
            "p2": 9,
        }

    def test_like_wraps_value(self, translator):
        query = _translate(translator, QueryRequest(filters={"status.like": "pen", "status.nlike": "x"}))

        assert '"Status" LIKE :p0 AND "Status" NOT LIKE :p1' in query.sql
        assert query.parameters == {"p0": "%pen%", "p1": "%x%"}

    def test_in_list(self, translator):
        query = _translate(translator, QueryRequest(filters={"id.in": "1, 2,,3", "status.nin": "void"}))

        assert '"Id" IN (:p0, :p1, :p2) AND "Status" NOT IN (:p3)' in query.sql
        assert query.parameters == {"p0": 1, "p1": 2, "p2": 3, "p3": "void"}

    def test_empty_in_list_dropped(self, translator):
        query = _translate(translator, QueryRequest(filters={"id.in": " , "}))

        assert "WHERE" not in query.sql
        assert query.parameters == {}

    def test_null_checks_take_no_value(self, translator):
        query = _translate(translator, QueryRequest(filters={"shipped.isnull": "", "createdat.notnull": None}))

        assert 'WHERE "Shipped" IS NULL AND "CreatedAt" IS NOT NULL' in query.sql
        assert query.parameters == {}

    def test_order_by(self, translator):
        query = _translate(translator, QueryRequest(order_by="createdat.desc, id"))

        assert query.sql.endswith('ORDER BY "CreatedAt" DESC, "Id" ASC LIMIT 100 OFFSET 0')

    def test_count_sql_shares_filters(self, translator):
        query = _translate(
            translator, QueryRequest(filters={"status.eq": "open"}, include_total=True, take=5, skip=10)
        )

        assert query.count_sql == 'SELECT COUNT(*) FROM "Orders" WHERE "Status" = :p0'
        assert query.sql.endswith("LIMIT 5 OFFSET 10")

    def test_sqlserver_paging(self, translator):
        unordered = _translate(translator, QueryRequest(take=10, skip=20), SqlServerDialect(), "dbo")
        ordered = _translate(translator, QueryRequest(order_by="id", take=10), SqlServerDialect(), "dbo")

        assert unordered.sql == (
            "SELECT [Id], [Status], [Total], [Shipped], [CreatedAt] FROM [dbo].[Orders] "
            "ORDER BY (SELECT NULL) OFFSET 20 ROWS FETCH NEXT 10 ROWS ONLY"
        )
        assert ordered.sql.endswith("ORDER BY [Id] ASC OFFSET 0 ROWS FETCH NEXT 10 ROWS ONLY")

    def test_other_dialects_quote_their_way(self, translator):
        assert 'FROM "sales"."Orders"' in _translate(translator, QueryRequest(), PostgreSqlDialect(), "sales").sql
        assert "FROM `Orders`" in _translate(translator, QueryRequest(), MySqlDialect(), "shop").sql


class TestValidation:
    """Unknown identifiers and operators are rejected before any SQL runs."""

    @pytest.mark.parametrize(
        "request_kwargs,code,clause",
        [
            ({"select": "Id,Secret"}, ErrorCodes.INVALID_SELECT, "select"),
            ({"order_by": "secret.desc"}, ErrorCodes.INVALID_SORT, "order_by"),
            ({"filters": {"secret.eq": "1"}}, ErrorCodes.INVALID_FILTER, "filter"),
        ],
    )
    def test_unknown_column(self, translator, request_kwargs, code, clause):
        with pytest.raises(QueryValidationError) as exc_info:
            _translate(translator, QueryRequest(**request_kwargs))

        assert exc_info.value.code == code
        assert exc_info.value.context["clause"] == clause

    @pytest.mark.parametrize("key", ["status.between", "status"])
    def test_unknown_operator(self, translator, key):
        with pytest.raises(QueryValidationError) as exc_info:
            _translate(translator, QueryRequest(filters={key: "x"}))

        assert exc_info.value.code == ErrorCodes.INVALID_FILTER
        assert exc_info.value.context == {"filter": key}
