"""Datasource registries.

Classes:
    DatasourceRepository: Registry contract with encryption and redaction
    InMemoryDatasourceRepository: Process-local registry
    FileDatasourceRepository: JSON file registry
    DatabaseDatasourceRepository: Registry table in a database
"""

from typing import Optional

from ..config import RegistryConfig
from ..database import ConnectionFactory
from ..security import ConnectionStringCrypto
from .base import DatasourceRepository, registry_key
from .database import DatabaseDatasourceRepository
from .file import FileDatasourceRepository
from .memory import InMemoryDatasourceRepository


def create_repository(
    config: Optional[RegistryConfig],
    crypto: Optional[ConnectionStringCrypto],
    connection_factory: Optional[ConnectionFactory] = None,
) -> DatasourceRepository:
    """Build the registry selected by configuration.

    Args:
        config: Registry configuration; None selects the memory backend
        crypto: Connection string crypto
        connection_factory: Factory for the database backend

    Returns:
        DatasourceRepository for the configured backend
    """
    config = config or RegistryConfig()
    if config.backend == "file":
        return FileDatasourceRepository(config.file_path, crypto)
    if config.backend == "database":
        return DatabaseDatasourceRepository(
            config.provider,
            config.connection_string.get_secret_value(),
            crypto,
            table_name=config.table_name,
            connection_factory=connection_factory,
        )
    return InMemoryDatasourceRepository(crypto)


__all__ = [
    "DatasourceRepository",
    "InMemoryDatasourceRepository",
    "FileDatasourceRepository",
    "DatabaseDatasourceRepository",
    "create_repository",
    "registry_key",
]
