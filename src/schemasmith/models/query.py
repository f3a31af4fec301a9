"""Row query request and result models.

Classes:
    FilterOperator: Supported filter operators
    FilterCondition: Parsed ``column.operator`` filter
    QueryRequest: Paging, projection, sort and filter request
    Field: Column returned by a query
    Pagination: Echoed paging window plus optional total
    QueryResult: Rows, fields and pagination
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator

MAX_TAKE = 1000
DEFAULT_TAKE = 100

_TRUE_VALUES = {"1", "true", "yes", "on"}


class FilterOperator(str, Enum):
    """Operators accepted in ``column.operator`` filter keys."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    NLIKE = "nlike"
    IN = "in"
    NIN = "nin"
    ISNULL = "isnull"
    NOTNULL = "notnull"

    @classmethod
    def find(cls, value: str) -> Optional["FilterOperator"]:
        key = (value or "").strip().lower()
        for operator in cls:
            if operator.value == key:
                return operator
        return None

    @property
    def takes_value(self) -> bool:
        return self not in (FilterOperator.ISNULL, FilterOperator.NOTNULL)


@dataclass
class FilterCondition:
    column: str
    operator: FilterOperator
    value: Optional[str] = None


class QueryRequest(BaseModel):
    """Generic row query over a table or view.

    Attributes:
        take: Page size, 1 to 1000
        skip: Rows to skip
        select: Comma-separated column list, all columns when absent
        order_by: Comma-separated ``column.asc|desc`` keys
        filters: ``column.operator`` to comparand
        include_total: Run a count query and report it in the pagination
    """

    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)

    take: int = PydanticField(DEFAULT_TAKE, ge=1, le=MAX_TAKE)
    skip: int = PydanticField(0, ge=0)
    select: Optional[str] = None
    order_by: Optional[str] = None
    filters: Dict[str, Optional[str]] = PydanticField(default_factory=dict)
    include_total: bool = False

    @field_validator("select", "order_by", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("filters", mode="before")
    @classmethod
    def stringify_filters(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {str(k): (None if value is None else str(value)) for k, value in v.items()}
        return v

    @classmethod
    def from_query_parameters(cls, parameters: Mapping[str, Any]) -> "QueryRequest":
        """Build a request from flat query-string style parameters.

        ``take`` and ``skip`` are clamped rather than rejected, ``count``
        enables the total, ``sort`` accepts ``-column`` for descending order
        and every ``column.operator`` key with a known operator becomes a
        filter. Other keys are ignored.

        Example:
            >>> QueryRequest.from_query_parameters(
            ...     {"take": "5000", "sort": "-created,name", "status.eq": "Active"}
            ... ).order_by
            'created.desc,name.asc'
        """
        values: Dict[str, Any] = {"filters": {}}

        for key, raw in parameters.items():
            name = str(key).strip()
            lowered = name.lower()
            text = "" if raw is None else str(raw).strip()

            if lowered == "take":
                values["take"] = min(max(_to_int(text, DEFAULT_TAKE), 1), MAX_TAKE)
            elif lowered == "skip":
                values["skip"] = max(_to_int(text, 0), 0)
            elif lowered == "count":
                values["include_total"] = text.lower() in _TRUE_VALUES
            elif lowered == "select":
                values["select"] = text or None
            elif lowered == "sort":
                values["order_by"] = _sort_to_order_by(text)
            elif lowered in ("order_by", "orderby"):
                values["order_by"] = text or None
            elif "." in name:
                _, _, operator = name.rpartition(".")
                if FilterOperator.find(operator) is not None:
                    values["filters"][name] = None if raw is None else str(raw)

        return cls(**values)


def _to_int(text: str, default: int) -> int:
    try:
        return int(text)
    except (TypeError, ValueError):
        return default


def _sort_to_order_by(text: str) -> Optional[str]:
    keys = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("-"):
            keys.append(f"{part[1:].strip()}.desc")
        else:
            keys.append(f"{part.lstrip('+').strip()}.asc")
    return ",".join(keys) or None


@dataclass
class Field:
    name: str
    field_type: str = ""
    is_nullable: bool = True


@dataclass
class Pagination:
    """Paging window echoed from the request, plus the total when counted."""

    take: int
    skip: int
    total: Optional[int] = None

    @property
    def page(self) -> int:
        return self.skip // self.take + 1 if self.take else 1

    @property
    def total_pages(self) -> Optional[int]:
        if self.total is None or not self.take:
            return None
        return math.ceil(self.total / self.take)

    @property
    def has_more(self) -> Optional[bool]:
        if self.total is None:
            return None
        return self.skip + self.take < self.total

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result.update(page=self.page, total_pages=self.total_pages, has_more=self.has_more)
        return result


@dataclass
class QueryResult:
    data: List[Dict[str, Any]] = field(default_factory=list)
    fields: List[Field] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(take=DEFAULT_TAKE, skip=0))

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "fields": [asdict(f) for f in self.fields],
            "pagination": self.pagination.to_dict(),
        }
