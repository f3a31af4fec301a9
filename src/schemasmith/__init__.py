"""SchemaSmith - provider-agnostic schema management and introspection.

SchemaSmith inspects and changes the structure of SQL Server, PostgreSQL,
MySQL and SQLite databases through one API: schemas, tables, columns,
indexes, constraints and views, plus paged row queries over tables and
views.

Modules:
    core: Exceptions, lifecycle base class, operation context, utilities
    config: Configuration models
    logging: Structured, performance and audit logging
    models: Datasource, schema object and query models
    database: Connections and the connection factory
    providers: Per-engine DDL and introspection dialects
    query: Translation of row queries into parameterized SQL
    security: Connection string encryption
    repositories: Datasource registries
    services: The public service API

Example:
    >>> from schemasmith import OperationContext, SchemaSmithService
    >>> smith = SchemaSmithService.from_file("schemasmith.yaml")
    >>> ctx = OperationContext(user="ops")
    >>> table = await smith.tables.get(ctx, "main", "orders", schema_name="sales")
"""

from . import config, core, logging
from .core.context import OperationContext
from .services import SchemaSmithService

__version__ = "0.1.0"
__title__ = "SchemaSmith"
__description__ = "Provider-agnostic schema management and introspection"

__all__ = [
    "core",
    "config",
    "logging",
    "OperationContext",
    "SchemaSmithService",
    "__version__",
    "__title__",
    "__description__",
]
