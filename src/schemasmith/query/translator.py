"""Row query translation.

Turns a :class:`QueryRequest` against a table or view into provider SQL.
Every identifier in the request is resolved against the object's real
columns and quoted by the dialect; every comparand is a bound parameter.

Example:
    >>> translator = QueryTranslator()
    >>> query = translator.translate(
    ...     get_dialect("Sqlite"), None, "Orders", columns,
    ...     QueryRequest(filters={"status.eq": "open"}, take=10),
    ... )
    >>> query.sql
    'SELECT "Id", "Status" FROM "Orders" WHERE "Status" = :p0 LIMIT 10 OFFSET 0'
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import ErrorCodes, QueryValidationError
from ..core.utils import find_by_name
from ..logging import get_logger
from ..models.query import Field, FilterCondition, FilterOperator, QueryRequest
from ..models.schema import Column
from ..providers.base import ProviderDialect

_COMPARISONS = {
    FilterOperator.EQ: "=",
    FilterOperator.NEQ: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
    FilterOperator.LIKE: "LIKE",
    FilterOperator.NLIKE: "NOT LIKE",
    FilterOperator.IN: "IN",
    FilterOperator.NIN: "NOT IN",
    FilterOperator.ISNULL: "IS NULL",
    FilterOperator.NOTNULL: "IS NOT NULL",
}

_INTEGER_TYPE = re.compile(r"^(tiny|small|medium|big)?int(eger)?\d*\b|^(small|big)?serial\b")
_DECIMAL_TYPE = re.compile(r"^(decimal|numeric|real|float|double|money|smallmoney|number)")
_BOOLEAN_TYPE = re.compile(r"^(bool|boolean|bit)\b")
_TIMESTAMP_TYPE = re.compile(r"^(timestamp|datetime|smalldatetime|datetime2|datetimeoffset)")
_DATE_TYPE = re.compile(r"^date\b")
_TIME_TYPE = re.compile(r"^time\b")

_TRUE_TEXT = {"1", "true", "yes", "on", "t", "y"}
_FALSE_TEXT = {"0", "false", "no", "off", "f", "n"}


@dataclass
class TranslatedQuery:
    """SQL and parameters for a row query.

    Attributes:
        sql: Paged select statement
        count_sql: Unpaged ``SELECT COUNT(*)`` with the same filters, when a
            total was requested
        parameters: Bound values keyed by placeholder name
        fields: Columns the select returns, in order
    """

    sql: str
    count_sql: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    fields: List[Field] = field(default_factory=list)


def _to_bool(text: str) -> Any:
    key = text.strip().lower()
    if key in _TRUE_TEXT:
        return True
    if key in _FALSE_TEXT:
        return False
    return text


def _to_decimal(text: str) -> Any:
    try:
        return Decimal(text.strip())
    except InvalidOperation:
        return text


def _to_int(text: str) -> Any:
    try:
        return int(text.strip())
    except ValueError:
        return _to_decimal(text)


def _parser(parse: Callable[[str], Any]) -> Callable[[str], Any]:
    def convert(text: str) -> Any:
        try:
            return parse(text.strip())
        except ValueError:
            return text

    return convert


_COERCIONS: Sequence[Tuple[Any, Callable[[str], Any]]] = (
    (_INTEGER_TYPE, _to_int),
    (_DECIMAL_TYPE, _to_decimal),
    (_BOOLEAN_TYPE, _to_bool),
    (_TIMESTAMP_TYPE, _parser(datetime.fromisoformat)),
    (_DATE_TYPE, _parser(date.fromisoformat)),
    (_TIME_TYPE, _parser(time.fromisoformat)),
)


def coerce_value(value: Optional[str], column: Column) -> Any:
    """Convert a textual comparand to the column's natural Python type.

    Strict drivers such as asyncpg refuse a string bound against a numeric
    or temporal column. Text that does not parse is passed through as is
    and left to the engine.
    """
    if value is None:
        return None
    type_name = (column.provider_data_type or "").strip().lower()
    for pattern, convert in _COERCIONS:
        if pattern.match(type_name):
            return convert(value)
    return value


def parse_filter_key(key: str) -> Tuple[str, Optional[FilterOperator]]:
    """Split a ``column.operator`` filter key.

    The operator is taken from the last dot so column names may contain
    dots themselves.
    """
    column, dot, operator = key.strip().rpartition(".")
    if not dot:
        return key.strip(), None
    return column.strip(), FilterOperator.find(operator)


class QueryTranslator:
    """Builds paged select and count statements for a QueryRequest."""

    def __init__(self) -> None:
        self.logger = get_logger("query.translator")

    def translate(
        self,
        dialect: ProviderDialect,
        schema_name: Optional[str],
        object_name: str,
        columns: Sequence[Column],
        request: QueryRequest,
    ) -> TranslatedQuery:
        """Translate a request against a table or view.

        Args:
            dialect: Dialect of the target provider
            schema_name: Schema of the object, None on engines without schemas
            object_name: Table or view name
            columns: The object's columns, used to validate identifiers
            request: Paging, projection, sort and filter request

        Returns:
            TranslatedQuery with SQL using ``:name`` placeholders

        Raises:
            QueryValidationError: If a select, sort or filter references an
                unknown column, or a filter uses an unknown operator
        """
        selected = self._resolve_select(columns, request.select)
        conditions = self._resolve_filters(columns, request.filters)
        order_by = self._resolve_order_by(columns, request.order_by)

        source = dialect.qualify(schema_name, object_name)
        parameters: Dict[str, Any] = {}
        where = self._where_clause(dialect, columns, conditions, parameters)

        projection = dialect.quote_list([c.column_name for c in selected])
        sql = f"SELECT {projection} FROM {source}{where}"
        if order_by:
            sql += " ORDER BY " + ", ".join(
                f"{dialect.quote(name)} {'ASC' if ascending else 'DESC'}" for name, ascending in order_by
            )
        sql += " " + dialect.paging_clause(request.take, request.skip, ordered=bool(order_by))

        count_sql = f"SELECT COUNT(*) FROM {source}{where}" if request.include_total else None

        self.logger.debug(
            "Query translated",
            object_name=object_name,
            filters=len(conditions),
            sort_keys=len(order_by),
        )
        return TranslatedQuery(
            sql=sql,
            count_sql=count_sql,
            parameters=parameters,
            fields=[Field(c.column_name, c.provider_data_type, c.is_nullable) for c in selected],
        )

    @staticmethod
    def _column(columns: Sequence[Column], name: str, code: str, clause: str) -> Column:
        column = find_by_name(columns, name, "column_name")
        if column is None:
            raise QueryValidationError(
                f"Unknown column in {clause}: {name}",
                code=code,
                context={"column": name, "clause": clause},
            )
        return column

    def _resolve_select(self, columns: Sequence[Column], select: Optional[str]) -> List[Column]:
        if not select:
            return list(columns)

        selected: List[Column] = []
        for name in select.split(","):
            name = name.strip()
            if not name:
                continue
            column = self._column(columns, name, ErrorCodes.INVALID_SELECT, "select")
            if column not in selected:
                selected.append(column)
        return selected or list(columns)

    def _resolve_filters(
        self, columns: Sequence[Column], filters: Dict[str, Optional[str]]
    ) -> List[FilterCondition]:
        conditions = []
        for key, value in filters.items():
            name, operator = parse_filter_key(key)
            if operator is None:
                raise QueryValidationError(
                    f"Unknown filter operator in '{key}'",
                    code=ErrorCodes.INVALID_FILTER,
                    context={"filter": key},
                )
            column = self._column(columns, name, ErrorCodes.INVALID_FILTER, "filter")
            conditions.append(FilterCondition(column.column_name, operator, value))
        return conditions

    def _resolve_order_by(self, columns: Sequence[Column], order_by: Optional[str]) -> List[Tuple[str, bool]]:
        if not order_by:
            return []

        keys = []
        for part in order_by.split(","):
            part = part.strip()
            if not part:
                continue
            name, direction = part, "asc"
            head, dot, tail = part.rpartition(".")
            if dot and tail.strip().lower() in ("asc", "desc"):
                name, direction = head, tail.strip().lower()
            column = self._column(columns, name.strip(), ErrorCodes.INVALID_SORT, "order_by")
            keys.append((column.column_name, direction == "asc"))
        return keys

    def _where_clause(
        self,
        dialect: ProviderDialect,
        columns: Sequence[Column],
        conditions: Sequence[FilterCondition],
        parameters: Dict[str, Any],
    ) -> str:
        predicates = []
        for condition in conditions:
            column = find_by_name(columns, condition.column, "column_name")
            target = dialect.quote(condition.column)
            operator = _COMPARISONS[condition.operator]

            if not condition.operator.takes_value:
                predicates.append(f"{target} {operator}")
            elif condition.operator in (FilterOperator.IN, FilterOperator.NIN):
                values = [v.strip() for v in (condition.value or "").split(",") if v.strip()]
                if not values:
                    # An empty list has no valid SQL form; the condition is dropped
                    continue
                names = []
                for value in values:
                    name = f"p{len(parameters)}"
                    parameters[name] = coerce_value(value, column)
                    names.append(f":{name}")
                predicates.append(f"{target} {operator} ({', '.join(names)})")
            elif condition.operator in (FilterOperator.LIKE, FilterOperator.NLIKE):
                name = f"p{len(parameters)}"
                parameters[name] = f"%{condition.value or ''}%"
                predicates.append(f"{target} {operator} :{name}")
            else:
                name = f"p{len(parameters)}"
                parameters[name] = coerce_value(condition.value, column)
                predicates.append(f"{target} {operator} :{name}")

        return " WHERE " + " AND ".join(predicates) if predicates else ""
