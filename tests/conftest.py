"""Pytest configuration and shared fixtures.

This module provides pytest configuration and shared fixtures for all tests
in the SchemaSmith test suite.
"""

import tempfile
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from schemasmith.core.context import OperationContext
from schemasmith.logging import AuditLogger, LogContext, PerformanceLogger
from schemasmith.models import Datasource, ProviderType
from schemasmith.repositories import InMemoryDatasourceRepository
from schemasmith.security import ConnectionStringCrypto
from schemasmith.services import SchemaSmithService

# Configure test logging to suppress noise during tests
structlog.configure(
    processors=[structlog.testing.LogCapture()],
    wrapper_class=structlog.BoundLogger,
    logger_factory=structlog.testing.ReturnLoggerFactory(),
    cache_logger_on_first_use=True,
)

TEST_ENCRYPTION_KEY = ConnectionStringCrypto.generate_key()


@pytest.fixture(autouse=True)
def clean_log_context() -> Generator[None, None, None]:
    """Start every test with an empty shared log context."""
    LogContext().clear()
    yield
    LogContext().clear()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def mock_logger():
    """Mock structured logger for testing."""
    logger = MagicMock()
    logger.bind.return_value = logger
    return logger


@pytest.fixture
def crypto() -> ConnectionStringCrypto:
    """Crypto helper with a random raw key."""
    return ConnectionStringCrypto(TEST_ENCRYPTION_KEY)


@pytest.fixture
def sample_config_data(temp_dir: Path) -> dict:
    """Sample configuration data for testing."""
    return {
        "app_name": "SchemaSmith",
        "logging": {
            "level": "DEBUG",
            "format": "json",
            "console_output": False,
        },
        "encryption": {"key": TEST_ENCRYPTION_KEY},
        "connection": {"connect_timeout": 5, "command_timeout": 10},
        "registry": {"backend": "file", "file_path": str(temp_dir / "datasources.json")},
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config_data: dict) -> Path:
    """Create temporary configuration file."""
    import yaml

    config_path = temp_dir / "schemasmith.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_data, f)
    return config_path


@pytest.fixture
def context() -> OperationContext:
    """Operation context for a test caller."""
    return OperationContext(user="tester", ip_address="127.0.0.1")


@pytest.fixture
def repository(crypto: ConnectionStringCrypto) -> InMemoryDatasourceRepository:
    return InMemoryDatasourceRepository(crypto)


@pytest.fixture
def sqlite_path(temp_dir: Path) -> Path:
    return temp_dir / "app.db"


@pytest.fixture
async def sqlite_datasource(repository: InMemoryDatasourceRepository, sqlite_path: Path) -> Datasource:
    """Registered SQLite datasource ``app`` backed by a file in the temp dir."""
    datasource = Datasource(
        id="app",
        provider=ProviderType.SQLITE,
        connection_string=f"Data Source={sqlite_path}",
        display_name="Test application database",
        tags=["test", "sqlite"],
    )
    await repository.add(datasource)
    return datasource


@pytest.fixture
def audit_logger() -> AuditLogger:
    """Fresh audit logger so events from other tests do not leak in."""
    return AuditLogger("test", retain_in_memory=True)


@pytest.fixture
def performance_logger() -> PerformanceLogger:
    return PerformanceLogger("test", auto_log=False)


@pytest.fixture
async def smith(
    repository: InMemoryDatasourceRepository,
    sqlite_datasource: Datasource,
    audit_logger: AuditLogger,
    performance_logger: PerformanceLogger,
) -> AsyncGenerator[SchemaSmithService, None]:
    """Facade over the in-memory registry holding the SQLite datasource."""
    service = SchemaSmithService(repository=repository, configure_logging=False)
    for name in (
        "datasources", "schemas", "tables", "columns", "indexes", "primary_keys", "unique_constraints",
        "check_constraints", "default_constraints", "foreign_keys", "views", "datatypes",
    ):
        member = getattr(service, name)
        member.audit_logger = audit_logger
        member.perf_logger = performance_logger
    yield service
    await service.close()


@pytest.fixture
def mock_connection() -> MagicMock:
    """Driver-free connection double recording every statement."""
    conn = MagicMock()
    conn.execute = AsyncMock(return_value=0)
    conn.fetch_all = AsyncMock(return_value=[])
    conn.fetch_one = AsyncMock(return_value=None)
    conn.fetch_scalar = AsyncMock(return_value=None)
    conn.get_server_version = AsyncMock(return_value=None)

    class _Transaction:
        async def __aenter__(self):
            return conn

        async def __aexit__(self, exc_type, exc, tb):
            return False

    conn.transaction = MagicMock(side_effect=lambda: _Transaction())
    return conn


# Pytest markers for different test categories
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that touch a real SQLite database file"
    )


# Auto-mark tests based on their location
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(config.rootdir) / "tests")

        if "services" in test_path.parts:
            item.add_marker(pytest.mark.integration)
        elif test_path.parts[0] == "unit":
            item.add_marker(pytest.mark.unit)
