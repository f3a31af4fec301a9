"""Configuration models for SchemaSmith.

This module defines the Pydantic models used to configure logging,
connection-string encryption, the datasource registry backend and
connection timeouts.

Classes:
    BaseConfig: Base configuration class with environment resolution
    LoggingConfig: Logging configuration
    EncryptionConfig: Connection-string encryption key
    ConnectionConfig: Connection and command timeouts
    RegistryConfig: Datasource registry backend selection
    SystemConfig: Top-level configuration

Example:
    >>> config = SystemConfig.from_file("schemasmith.yaml")
    >>> config.registry.backend
    'file'
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator, model_validator

from ..core.exceptions import ConfigurationError, ErrorCodes

_ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")


def _resolve_value(value: Any) -> Any:
    if isinstance(value, str):
        def replace_env_var(match: "re.Match[str]") -> str:
            var_spec = match.group(1)
            if ":" in var_spec:
                var_name, default = var_spec.split(":", 1)
            else:
                var_name, default = var_spec, ""
            return os.getenv(var_name, default)

        return _ENV_REFERENCE.sub(replace_env_var, value)
    if isinstance(value, dict):
        return {k: _resolve_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]
    return value


class BaseConfig(BaseModel):
    """Base configuration class with common functionality.

    String values may reference environment variables with ``${VAR_NAME}``
    or ``${VAR_NAME:default}``; references are resolved before validation.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_environment_variables(cls, values: Any) -> Any:
        """Resolve environment variable references in raw input values."""
        if isinstance(values, dict):
            return {key: _resolve_value(value) for key, value in values.items()}
        return values

    def to_dict(self, *, mask_secrets: bool = True) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Args:
            mask_secrets: Whether to mask secret values

        Returns:
            Dictionary representation of configuration
        """
        if mask_secrets:
            return self.model_dump(mode="json")

        def reveal(value: Any) -> Any:
            if isinstance(value, SecretStr):
                return value.get_secret_value()
            if isinstance(value, dict):
                return {k: reveal(v) for k, v in value.items()}
            return value

        return reveal(self.model_dump())


class LoggingConfig(BaseConfig):
    """Logging configuration.

    Attributes:
        level: Log level
        format: Log format (json, text)
        file_path: Log file path, enables rotating file output when set
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
        console_output: Enable console output
        correlation_ids: Attach correlation ids to log events
        slow_operation_ms: Operations slower than this are logged as warnings
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )
    format: Literal["json", "text"] = Field("json", description="Log format")
    file_path: Optional[Path] = Field(None, description="Log file path")
    max_file_size: int = Field(10485760, gt=0, description="Max file size in bytes (10MB)")
    backup_count: int = Field(5, ge=0, description="Number of backup files")
    console_output: bool = Field(True, description="Enable console output")
    correlation_ids: bool = Field(True, description="Enable correlation ids")
    slow_operation_ms: Optional[float] = Field(
        1000.0, gt=0, description="Slow operation threshold in milliseconds, null disables it"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class EncryptionConfig(BaseConfig):
    """Connection-string encryption configuration.

    The key is either a base64 encoded 32 byte key or a passphrase that is
    stretched with PBKDF2. A missing key is only an error once something
    needs to encrypt or decrypt.

    Attributes:
        key: Encryption key or passphrase
    """

    key: Optional[SecretStr] = Field(None, description="Encryption key or passphrase")

    @property
    def has_key(self) -> bool:
        return self.key is not None and bool(self.key.get_secret_value().strip())


class ConnectionConfig(BaseConfig):
    """Connection settings applied by the connection factory.

    Attributes:
        connect_timeout: Seconds to wait for a connection
        command_timeout: Seconds to wait for a single statement
    """

    connect_timeout: float = Field(30.0, gt=0, description="Connect timeout in seconds")
    command_timeout: float = Field(60.0, gt=0, description="Command timeout in seconds")


class RegistryConfig(BaseConfig):
    """Datasource registry backend selection.

    Attributes:
        backend: ``memory``, ``file`` or ``database``
        file_path: JSON file used by the file backend
        provider: Provider of the database backend
        connection_string: Connection string of the database backend
        table_name: Table used by the database backend
    """

    backend: Literal["memory", "file", "database"] = Field("memory", description="Registry backend")
    file_path: Optional[Path] = Field(None, description="Registry file for the file backend")
    provider: Optional[str] = Field(None, description="Provider for the database backend")
    connection_string: Optional[SecretStr] = Field(
        None, description="Connection string for the database backend"
    )
    table_name: str = Field("dm_datasources", min_length=1, description="Registry table name")

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "RegistryConfig":
        """Ensure the selected backend has the settings it needs."""
        if self.backend == "file" and self.file_path is None:
            raise ValueError("file_path is required for the file registry backend")
        if self.backend == "database" and (not self.provider or self.connection_string is None):
            raise ValueError("provider and connection_string are required for the database registry backend")
        return self


class SystemConfig(BaseConfig):
    """Top-level SchemaSmith configuration.

    Example:
        >>> config = SystemConfig(
        ...     encryption={"key": "${SCHEMASMITH_KEY}"},
        ...     registry={"backend": "file", "file_path": "datasources.json"},
        ... )
    """

    app_name: str = Field("SchemaSmith", description="Application name")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging config")
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig, description="Encryption config")
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig, description="Connection config")
    registry: RegistryConfig = Field(default_factory=RegistryConfig, description="Registry config")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        """Build configuration from a dictionary.

        Raises:
            ConfigurationError: If validation fails
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"errors": e.errors(include_url=False)},
                cause=e,
            ) from e

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> "SystemConfig":
        """Load configuration from a YAML or JSON file.

        Args:
            file_path: Path to a ``.yaml``, ``.yml`` or ``.json`` file

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        path = Path(file_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                code=ErrorCodes.CONFIG_NOT_FOUND,
                context={"file_path": str(path)},
            )

        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file {path}: {e}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"file_path": str(path)},
                cause=e,
            ) from e

        return cls.from_dict(data or {})
