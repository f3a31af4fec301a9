"""Datasource repository contract.

A repository stores :class:`Datasource` records keyed by a case-insensitive
id. Connection strings are encrypted before they reach the backend and are
only decrypted on the :meth:`DatasourceRepository.get_connection_string`
path; every other read returns records with the connection string removed.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.exceptions import ConfigurationError, EncryptionKeyError, ErrorCodes
from ..core.utils import require_not_blank, require_not_none
from ..logging import get_logger
from ..models.datasource import Datasource, DatasourcePatch
from ..security import ConnectionStringCrypto


def registry_key(datasource_id: str) -> str:
    return datasource_id.strip().casefold()


def record_to_dict(record: Datasource) -> Dict[str, Any]:
    """JSON-compatible form of a stored record."""
    return record.model_dump(mode="json")


def record_from_dict(data: Dict[str, Any]) -> Datasource:
    """Rebuild a stored record.

    The encrypted connection string is longer than the plaintext limit, so it
    is attached after validation.
    """
    payload = dict(data)
    secret = payload.pop("connection_string", None)
    return Datasource.model_validate(payload).model_copy(update={"connection_string": secret})


class DatasourceRepository(ABC):
    """Base class for datasource registries.

    Subclasses implement the storage primitives; this class supplies locking,
    encryption and redaction. Records handed to the primitives carry the
    encrypted connection string.

    Args:
        crypto: Connection string crypto; None when no key is configured,
            in which case writes and decryption raise EncryptionKeyError
    """

    backend_name = "base"

    def __init__(self, crypto: Optional[ConnectionStringCrypto]) -> None:
        self.crypto = crypto
        self.logger = get_logger(f"repositories.{self.backend_name}")
        self._lock = asyncio.Lock()

    # Storage primitives

    @abstractmethod
    async def _fetch(self, key: str) -> Optional[Datasource]:
        """Stored record for a registry key, or None."""

    @abstractmethod
    async def _fetch_all(self) -> List[Datasource]:
        """Every stored record."""

    @abstractmethod
    async def _insert(self, record: Datasource) -> None:
        """Store a new record."""

    @abstractmethod
    async def _replace(self, record: Datasource) -> None:
        """Overwrite an existing record."""

    @abstractmethod
    async def _delete(self, key: str) -> bool:
        """Remove a record; False if there was none."""

    # Encryption

    def _require_crypto(self) -> ConnectionStringCrypto:
        if self.crypto is None:
            raise EncryptionKeyError(
                "No encryption key is configured for connection strings",
                code=ErrorCodes.ENCRYPTION_KEY_MISSING,
            )
        return self.crypto

    def _encrypt(self, connection_string: Optional[str]) -> Optional[str]:
        if connection_string is None:
            return None
        return self._require_crypto().encrypt(connection_string)

    # Contract

    async def add(self, datasource: Datasource) -> bool:
        """Register a datasource.

        Returns:
            False if a datasource with the same id (ignoring case) exists

        Raises:
            ArgumentError: If the datasource or its id is missing
            EncryptionKeyError: If no encryption key is configured
        """
        require_not_none(datasource, "datasource")
        key = registry_key(require_not_blank(datasource.id, "id"))

        async with self._lock:
            if await self._fetch(key) is not None:
                return False
            record = datasource.model_copy(
                update={"connection_string": self._encrypt(datasource.connection_string)}
            )
            await self._insert(record)

        self.logger.info("Datasource added", datasource_id=datasource.id, provider=str(datasource.provider))
        return True

    async def update(self, patch: DatasourcePatch) -> bool:
        """Apply a partial update.

        Returns:
            False if the datasource does not exist
        """
        require_not_none(patch, "patch")
        key = registry_key(require_not_blank(patch.id, "id"))

        async with self._lock:
            current = await self._fetch(key)
            if current is None:
                return False
            if patch.connection_string and patch.connection_string.strip():
                patch = patch.model_copy(update={"connection_string": self._encrypt(patch.connection_string)})
            await self._replace(current.apply_patch(patch))

        self.logger.info("Datasource updated", datasource_id=patch.id)
        return True

    async def remove(self, datasource_id: str) -> bool:
        key = registry_key(require_not_blank(datasource_id, "datasource_id"))
        async with self._lock:
            removed = await self._delete(key)
        if removed:
            self.logger.info("Datasource removed", datasource_id=datasource_id)
        return removed

    async def get(self, datasource_id: str) -> Optional[Datasource]:
        """Datasource without its connection string, or None."""
        key = registry_key(require_not_blank(datasource_id, "datasource_id"))
        record = await self._fetch(key)
        return record.redacted() if record is not None else None

    async def list(self, tag: Optional[str] = None) -> List[Datasource]:
        """Datasources without connection strings, sorted by id.

        Args:
            tag: Only datasources carrying this tag, compared ignoring case
        """
        records = await self._fetch_all()
        if tag and tag.strip():
            records = [r for r in records if r.has_tag(tag)]
        return [r.redacted() for r in sorted(records, key=lambda r: (r.id or "").casefold())]

    async def exists(self, datasource_id: str) -> bool:
        key = registry_key(require_not_blank(datasource_id, "datasource_id"))
        return await self._fetch(key) is not None

    async def get_connection_string(self, datasource_id: str) -> Optional[str]:
        """Decrypted connection string.

        Returns:
            None if the datasource is missing, has no connection string, or
            its connection string cannot be decrypted

        Raises:
            EncryptionKeyError: If no encryption key is configured
        """
        key = registry_key(require_not_blank(datasource_id, "datasource_id"))
        record = await self._fetch(key)
        if record is None or not record.connection_string:
            return None

        crypto = self._require_crypto()
        try:
            return crypto.decrypt(record.connection_string)
        except EncryptionKeyError:
            raise
        except ConfigurationError as e:
            self.logger.error(
                "Failed to decrypt connection string",
                datasource_id=datasource_id,
                error=str(e),
            )
            return None

    async def close(self) -> None:
        """Release backend resources."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(backend={self.backend_name!r})"
