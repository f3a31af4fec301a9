"""SchemaSmith services.

Every public method takes an :class:`~schemasmith.core.context.OperationContext`
first, validates its arguments, opens one connection to the target
datasource and closes it before returning.

Classes:
    SchemaSmithService: Facade exposing every service below
    DatasourceService, DataTypeService
    SchemaService, TableService, ColumnService, IndexService, ViewService
    PrimaryKeyService, UniqueConstraintService, CheckConstraintService,
    DefaultConstraintService, ForeignKeyService
"""

from .base import NO_SCHEMA, ServiceBase
from .check_constraints import CheckConstraintService
from .columns import ColumnService
from .datasources import DatasourceService
from .datatypes import DataTypeService
from .default_constraints import DefaultConstraintService
from .facade import SchemaSmithService
from .foreign_keys import ForeignKeyService
from .indexes import IndexService
from .primary_keys import PrimaryKeyService
from .schemas import SchemaService
from .tables import TableService, validate_table_definition
from .unique_constraints import UniqueConstraintService
from .views import ViewService

__all__ = [
    "NO_SCHEMA",
    "ServiceBase",
    "SchemaSmithService",
    "DatasourceService",
    "DataTypeService",
    "SchemaService",
    "TableService",
    "ColumnService",
    "IndexService",
    "PrimaryKeyService",
    "UniqueConstraintService",
    "CheckConstraintService",
    "DefaultConstraintService",
    "ForeignKeyService",
    "ViewService",
    "validate_table_definition",
]
