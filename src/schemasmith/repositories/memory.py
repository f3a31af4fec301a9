"""In-memory datasource registry."""

from typing import Dict, List, Optional

from ..models.datasource import Datasource
from ..security import ConnectionStringCrypto
from .base import DatasourceRepository, registry_key


class InMemoryDatasourceRepository(DatasourceRepository):
    """Registry held in a dictionary; contents are lost with the process."""

    backend_name = "memory"

    def __init__(self, crypto: Optional[ConnectionStringCrypto]) -> None:
        super().__init__(crypto)
        self._records: Dict[str, Datasource] = {}

    async def _fetch(self, key: str) -> Optional[Datasource]:
        return self._records.get(key)

    async def _fetch_all(self) -> List[Datasource]:
        return list(self._records.values())

    async def _insert(self, record: Datasource) -> None:
        self._records[registry_key(record.id)] = record

    async def _replace(self, record: Datasource) -> None:
        self._records[registry_key(record.id)] = record

    async def _delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None
