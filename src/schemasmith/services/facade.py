"""Single entry point wiring every service from one configuration."""

from pathlib import Path
from typing import Optional, Union

from ..config import SystemConfig
from ..database import ConnectionFactory
from ..logging import get_audit_logger, get_logger, get_performance_logger
from ..logging.factory import get_factory
from ..providers import DialectRegistry
from ..repositories import DatasourceRepository, create_repository
from ..security import create_crypto
from .check_constraints import CheckConstraintService
from .columns import ColumnService
from .datasources import DatasourceService
from .datatypes import DataTypeService
from .default_constraints import DefaultConstraintService
from .foreign_keys import ForeignKeyService
from .indexes import IndexService
from .primary_keys import PrimaryKeyService
from .schemas import SchemaService
from .tables import TableService
from .unique_constraints import UniqueConstraintService
from .views import ViewService


class SchemaSmithService:
    """All SchemaSmith services over one registry and connection factory.

    The services share the registry, the dialects and the audit and
    performance loggers.

    Args:
        config: System configuration; defaults apply when omitted
        repository: Registry to use instead of the configured one
        configure_logging: Apply ``config.logging`` to the logging system

    Example:
        >>> smith = SchemaSmithService.from_file("schemasmith.yaml")
        >>> tables = await smith.tables.list(OperationContext(user="ops"), "main")
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        *,
        repository: Optional[DatasourceRepository] = None,
        configure_logging: bool = True,
    ) -> None:
        self.config = config or SystemConfig()
        if configure_logging:
            get_factory().configure_from_config(self.config.logging)
        self.logger = get_logger("services.facade")

        key = self.config.encryption.key.get_secret_value() if self.config.encryption.has_key else None
        self.connection_factory = ConnectionFactory(self.config.connection)
        self.repository = repository or create_repository(
            self.config.registry, create_crypto(key), self.connection_factory
        )
        self.dialects = DialectRegistry()
        self.audit_logger = get_audit_logger("services")
        self.performance_logger = get_performance_logger("services")

        def build(service_class):
            return service_class(
                self.repository,
                self.connection_factory,
                self.dialects,
                audit_logger=self.audit_logger,
                performance_logger=self.performance_logger,
            )

        self.datasources = build(DatasourceService)
        self.schemas = build(SchemaService)
        self.tables = build(TableService)
        self.columns = build(ColumnService)
        self.indexes = build(IndexService)
        self.primary_keys = build(PrimaryKeyService)
        self.unique_constraints = build(UniqueConstraintService)
        self.check_constraints = build(CheckConstraintService)
        self.default_constraints = build(DefaultConstraintService)
        self.foreign_keys = build(ForeignKeyService)
        self.views = build(ViewService)
        self.datatypes = build(DataTypeService)

        self.logger.info(
            "SchemaSmith services ready",
            app_name=self.config.app_name,
            registry_backend=self.repository.backend_name,
        )

    @classmethod
    def from_file(cls, file_path: Union[str, Path], **kwargs) -> "SchemaSmithService":
        """Build the services from a YAML or JSON configuration file."""
        return cls(SystemConfig.from_file(file_path), **kwargs)

    async def close(self) -> None:
        await self.repository.close()

    async def __aenter__(self) -> "SchemaSmithService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"SchemaSmithService(app_name={self.config.app_name!r}, repository={self.repository!r})"
