"""SchemaSmith data models."""

from .datasource import ConnectivityTestResult, Datasource, DatasourcePatch, ProviderType
from .datatypes import DataTypeCategory, DataTypeInfo
from .query import (
    Field,
    FilterCondition,
    FilterOperator,
    Pagination,
    QueryRequest,
    QueryResult,
)
from .schema import (
    CheckConstraint,
    Column,
    DefaultConstraint,
    ForeignKeyAction,
    ForeignKeyConstraint,
    Index,
    PrimaryKeyConstraint,
    Schema,
    Table,
    UniqueConstraint,
    View,
)

__all__ = [
    "CheckConstraint",
    "Column",
    "ConnectivityTestResult",
    "DataTypeCategory",
    "DataTypeInfo",
    "Datasource",
    "DatasourcePatch",
    "DefaultConstraint",
    "Field",
    "FilterCondition",
    "FilterOperator",
    "ForeignKeyAction",
    "ForeignKeyConstraint",
    "Index",
    "Pagination",
    "PrimaryKeyConstraint",
    "ProviderType",
    "QueryRequest",
    "QueryResult",
    "Schema",
    "Table",
    "UniqueConstraint",
    "View",
]
