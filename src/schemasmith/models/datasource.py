"""Datasource models.

Classes:
    ProviderType: Supported database engines
    Datasource: Registered datasource record
    DatasourcePatch: Partial update of a datasource record
    ConnectivityTestResult: Outcome of a datasource connectivity test
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.exceptions import ArgumentError, ErrorCodes
from ..core.utils import deduplicate


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderType(str, Enum):
    """Supported database engines."""

    SQLSERVER = "SqlServer"
    POSTGRESQL = "PostgreSql"
    MYSQL = "MySql"
    SQLITE = "Sqlite"

    @classmethod
    def parse(cls, value: Any) -> "ProviderType":
        """Resolve a provider name or alias.

        Matching is case-insensitive and by substring, so ``postgres``,
        ``pg``, ``Npgsql`` and ``PostgreSql`` all resolve to PostgreSql and
        ``mssql`` resolves to SqlServer.

        Raises:
            ArgumentError: If the name is blank or unknown
        """
        if isinstance(value, cls):
            return value

        text = str(value or "").strip().lower()
        if not text:
            raise ArgumentError(
                "Provider is required",
                code=ErrorCodes.ARGUMENT_REQUIRED,
                context={"argument": "provider"},
            )

        if "mysql" in text:
            return cls.MYSQL
        if "postgres" in text or "pg" in text:
            return cls.POSTGRESQL
        if "sqlite" in text:
            return cls.SQLITE
        if "sqlserver" in text or "mssql" in text:
            return cls.SQLSERVER

        raise ArgumentError(
            f"Unsupported database provider: {value}",
            code=ErrorCodes.PROVIDER_UNSUPPORTED,
            context={"provider": str(value)},
        )


def _parse_provider(value: Any) -> Any:
    if value is None or isinstance(value, ProviderType):
        return value
    try:
        return ProviderType.parse(value)
    except ArgumentError as e:
        raise ValueError(e.message) from e


class Datasource(BaseModel):
    """Registered datasource record.

    ``connection_string`` holds plaintext only on its way into a registry
    and on the internal lookup path; list and get results always carry None.
    """

    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)

    id: Optional[str] = Field(None, max_length=64)
    provider: Optional[ProviderType] = None
    connection_string: Optional[str] = Field(None, max_length=2000, repr=False)
    display_name: Optional[str] = Field(None, max_length=128)
    description: Optional[str] = Field(None, max_length=1000)
    tags: List[str] = Field(default_factory=list)
    is_enabled: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, v: Any) -> Any:
        return _parse_provider(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        return deduplicate(v)

    def redacted(self) -> "Datasource":
        """Return a copy without the connection string."""
        return self.model_copy(update={"connection_string": None})

    def has_tag(self, tag: str) -> bool:
        key = tag.strip().casefold()
        return any(t.casefold() == key for t in self.tags)

    def apply_patch(self, patch: "DatasourcePatch") -> "Datasource":
        """Return a copy with the patch's present fields applied.

        None, blank strings and empty tag lists leave the stored value as is.
        """
        changes: Dict[str, Any] = {}
        for name in ("provider", "connection_string", "display_name", "description", "is_enabled"):
            value = getattr(patch, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            changes[name] = value
        if patch.tags:
            changes["tags"] = deduplicate(patch.tags)

        updated = self.model_copy(update=changes)
        updated.updated_at = utcnow()
        return updated


class DatasourcePatch(BaseModel):
    """Partial update of a datasource record.

    Every field except ``id`` is optional; only present values are applied.
    """

    id: str = Field(..., min_length=1, max_length=64)
    provider: Optional[ProviderType] = None
    connection_string: Optional[str] = Field(None, max_length=2000, repr=False)
    display_name: Optional[str] = Field(None, max_length=128)
    description: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = None
    is_enabled: Optional[bool] = None

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, v: Any) -> Any:
        return _parse_provider(v)


@dataclass
class ConnectivityTestResult:
    """Outcome of a datasource connectivity test."""

    datasource_id: str
    connected: bool = False
    provider: Optional[str] = None
    server_version: Optional[str] = None
    database_name: Optional[str] = None
    error_message: Optional[str] = None
    response_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
