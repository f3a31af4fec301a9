"""JSON file datasource registry.

The file holds ``{"datasources": [...]}`` with encrypted connection strings.
Writes go to a temporary file in the same directory which then replaces the
registry file, so a crash never leaves a half-written registry behind.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from ..core.exceptions import ConfigurationError, ErrorCodes
from ..models.datasource import Datasource
from ..security import ConnectionStringCrypto
from .base import DatasourceRepository, record_from_dict, record_to_dict, registry_key


class FileDatasourceRepository(DatasourceRepository):
    """Registry persisted as a JSON document.

    Args:
        file_path: Registry file; created on the first write
        crypto: Connection string crypto
    """

    backend_name = "file"

    def __init__(self, file_path: Union[str, Path], crypto: Optional[ConnectionStringCrypto]) -> None:
        super().__init__(crypto)
        self.file_path = Path(file_path)

    def _read(self) -> Dict[str, Datasource]:
        if not self.file_path.exists():
            return {}

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                document = json.load(f)
            entries = document.get("datasources", []) if isinstance(document, dict) else None
            if not isinstance(entries, list):
                raise ValueError("'datasources' must be a list")
            records = [record_from_dict(entry) for entry in entries]
        except (ValueError, TypeError, AttributeError, ValidationError) as e:
            raise ConfigurationError(
                f"Datasource registry file is invalid: {self.file_path}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"file_path": str(self.file_path)},
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read datasource registry file: {self.file_path}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"file_path": str(self.file_path)},
                cause=e,
            ) from e

        return {registry_key(r.id): r for r in records if r.id}

    def _write(self, records: Dict[str, Datasource]) -> None:
        document = {
            "datasources": [
                record_to_dict(r) for r in sorted(records.values(), key=lambda r: (r.id or "").casefold())
            ]
        }
        directory = self.file_path.parent
        temp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=directory, prefix=f".{self.file_path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(temp_name, self.file_path)
        except OSError as e:
            if temp_name and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise ConfigurationError(
                f"Cannot write datasource registry file: {self.file_path}",
                code=ErrorCodes.REGISTRY_WRITE_FAILED,
                context={"file_path": str(self.file_path)},
                cause=e,
            ) from e

        self.logger.debug("Registry file written", file_path=str(self.file_path), count=len(records))

    async def _load(self) -> Dict[str, Datasource]:
        return await asyncio.to_thread(self._read)

    async def _save(self, records: Dict[str, Datasource]) -> None:
        await asyncio.to_thread(self._write, records)

    async def _fetch(self, key: str) -> Optional[Datasource]:
        return (await self._load()).get(key)

    async def _fetch_all(self) -> List[Datasource]:
        return list((await self._load()).values())

    async def _insert(self, record: Datasource) -> None:
        records = await self._load()
        records[registry_key(record.id)] = record
        await self._save(records)

    async def _replace(self, record: Datasource) -> None:
        await self._insert(record)

    async def _delete(self, key: str) -> bool:
        records = await self._load()
        if records.pop(key, None) is None:
            return False
        await self._save(records)
        return True
