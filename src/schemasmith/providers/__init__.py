"""Provider dialects.

Each supported engine has a :class:`ProviderDialect` subclass describing its
capabilities and building its DDL and introspection SQL.
"""

from .base import ProviderDialect, parse_version, strip_create_view, strip_outer_parentheses
from .datatypes import get_datatype_catalog
from .mysql import MySqlDialect
from .postgresql import PostgreSqlDialect
from .registry import DialectRegistry, get_dialect
from .sqlite import SqliteDialect
from .sqlserver import SqlServerDialect

__all__ = [
    "ProviderDialect",
    "SqlServerDialect",
    "PostgreSqlDialect",
    "MySqlDialect",
    "SqliteDialect",
    "DialectRegistry",
    "get_dialect",
    "get_datatype_catalog",
    "parse_version",
    "strip_create_view",
    "strip_outer_parentheses",
]
