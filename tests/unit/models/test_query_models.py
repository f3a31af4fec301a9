"""Unit tests for query request and result models."""

import pytest
from pydantic import ValidationError

from schemasmith.models import Field, FilterOperator, Pagination, QueryRequest, QueryResult


class TestFilterOperator:
    def test_find(self):
        assert FilterOperator.find("EQ") is FilterOperator.EQ
        assert FilterOperator.find(" notnull ") is FilterOperator.NOTNULL
        assert FilterOperator.find("between") is None

    def test_takes_value(self):
        assert FilterOperator.LIKE.takes_value
        assert not FilterOperator.ISNULL.takes_value


class TestQueryRequest:
    """Test cases for QueryRequest validation."""

    def test_defaults(self):
        request = QueryRequest()

        assert request.take == 100
        assert request.skip == 0
        assert request.filters == {}
        assert request.include_total is False

    @pytest.mark.parametrize("take", [0, 1001])
    def test_take_bounds(self, take):
        with pytest.raises(ValidationError):
            QueryRequest(take=take)

    def test_negative_skip_rejected(self):
        with pytest.raises(ValidationError):
            QueryRequest(skip=-1)

    def test_blank_select_and_order_become_none(self):
        request = QueryRequest(select=" ", order_by="")

        assert request.select is None
        assert request.order_by is None

    def test_filter_values_stringified(self):
        request = QueryRequest(filters={"qty.gt": 5, "note.isnull": None})

        assert request.filters == {"qty.gt": "5", "note.isnull": None}


class TestFromQueryParameters:
    """Test cases for building a request from flat parameters."""

    def test_clamps_take_and_skip(self):
        request = QueryRequest.from_query_parameters({"take": "5000", "skip": "-3"})

        assert request.take == 1000
        assert request.skip == 0

    def test_invalid_numbers_use_defaults(self):
        request = QueryRequest.from_query_parameters({"take": "lots", "skip": "x"})

        assert request.take == 100
        assert request.skip == 0

    def test_sort_shorthand(self):
        request = QueryRequest.from_query_parameters({"sort": "-created, name,+id"})

        assert request.order_by == "created.desc,name.asc,id.asc"

    def test_count_and_select(self):
        request = QueryRequest.from_query_parameters({"count": "true", "select": "id,name"})

        assert request.include_total is True
        assert request.select == "id,name"

    def test_only_known_operators_become_filters(self):
        request = QueryRequest.from_query_parameters(
            {"status.eq": "Active", "name.between": "a", "page": "2", "deleted_at.isnull": ""}
        )

        assert request.filters == {"status.eq": "Active", "deleted_at.isnull": ""}


class TestPagination:
    """Test cases for pagination arithmetic."""

    def test_with_total(self):
        pagination = Pagination(take=10, skip=20, total=45)

        assert pagination.page == 3
        assert pagination.total_pages == 5
        assert pagination.has_more is True

    def test_last_page(self):
        pagination = Pagination(take=10, skip=40, total=45)

        assert pagination.has_more is False

    def test_without_total(self):
        pagination = Pagination(take=25, skip=0)

        assert pagination.page == 1
        assert pagination.total_pages is None
        assert pagination.has_more is None

    def test_to_dict(self):
        assert Pagination(take=10, skip=0, total=0).to_dict() == {
            "take": 10,
            "skip": 0,
            "total": 0,
            "page": 1,
            "total_pages": 0,
            "has_more": False,
        }


class TestQueryResult:
    def test_field_names_and_to_dict(self):
        result = QueryResult(
            data=[{"id": 1}],
            fields=[Field("id", "INTEGER", False)],
            pagination=Pagination(take=1, skip=0),
        )

        assert result.field_names == ["id"]
        assert result.to_dict()["fields"] == [{"name": "id", "field_type": "INTEGER", "is_nullable": False}]
