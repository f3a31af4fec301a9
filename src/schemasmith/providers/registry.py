"""Dialect registry keyed by provider."""

from typing import Dict, Optional, Type

from ..models.datasource import ProviderType
from .base import ProviderDialect
from .mysql import MySqlDialect
from .postgresql import PostgreSqlDialect
from .sqlite import SqliteDialect
from .sqlserver import SqlServerDialect


class DialectRegistry:
    """Maps each ProviderType to one shared dialect instance.

    Dialects hold no per-call state, so one instance per provider serves
    every caller.

    Example:
        >>> registry = DialectRegistry()
        >>> registry.get("postgres").default_schema
        'public'
    """

    _default_classes: Dict[ProviderType, Type[ProviderDialect]] = {
        ProviderType.SQLSERVER: SqlServerDialect,
        ProviderType.POSTGRESQL: PostgreSqlDialect,
        ProviderType.MYSQL: MySqlDialect,
        ProviderType.SQLITE: SqliteDialect,
    }

    def __init__(self, overrides: Optional[Dict[ProviderType, Type[ProviderDialect]]] = None) -> None:
        classes = dict(self._default_classes)
        classes.update(overrides or {})
        self._dialects = {provider: dialect_class() for provider, dialect_class in classes.items()}

    def get(self, provider) -> ProviderDialect:
        """Dialect for a provider name, alias or ProviderType.

        Raises:
            ArgumentError: If the provider is unknown
        """
        return self._dialects[ProviderType.parse(provider)]


_registry: Optional[DialectRegistry] = None


def get_dialect(provider) -> ProviderDialect:
    """Dialect from the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = DialectRegistry()
    return _registry.get(provider)
