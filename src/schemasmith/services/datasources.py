"""Datasource registration and connectivity tests."""

import time
import uuid
from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import ArgumentError, DuplicateError, ErrorCodes, NotFoundError, SchemaSmithException
from ..core.utils import require_not_blank, require_not_none
from ..models.datasource import ConnectivityTestResult, Datasource, DatasourcePatch
from .base import ServiceBase


def _datasource_not_found(datasource_id: str) -> NotFoundError:
    return NotFoundError(
        f"Datasource '{datasource_id}' not found",
        entity_type="datasource",
        entity_name=datasource_id,
        code=ErrorCodes.DATASOURCE_NOT_FOUND,
    )


class DatasourceService(ServiceBase):
    """Manages the datasource registry.

    Connection strings go into the registry encrypted and never come back
    out through this service; every returned record is redacted.
    """

    area = "datasources"

    async def list(self, context: Optional[OperationContext], tag: Optional[str] = None) -> List[Datasource]:
        async with self._operation(context, "list") as op:
            datasources = await self.repository.list(tag)
            op.properties["message"] = f"Retrieved {len(datasources)} datasources"
            return datasources

    async def get(self, context: Optional[OperationContext], datasource_id: str) -> Datasource:
        async with self._operation(context, "get", datasource_id=datasource_id):
            datasource_id = self._require_datasource_id(datasource_id)
            datasource = await self.repository.get(datasource_id)
            if datasource is None:
                raise _datasource_not_found(datasource_id)
            return datasource

    async def exists(self, context: Optional[OperationContext], datasource_id: str) -> bool:
        async with self._operation(context, "exists", datasource_id=datasource_id):
            datasource_id = self._require_datasource_id(datasource_id)
            return await self.repository.exists(datasource_id)

    async def add(self, context: Optional[OperationContext], datasource: Datasource) -> Datasource:
        """Register a datasource.

        A random id is assigned when the record has none.

        Returns:
            The stored record, without its connection string

        Raises:
            ArgumentError: If the provider or connection string is missing
            DuplicateError: If the id is already registered
            EncryptionKeyError: If no encryption key is configured
        """
        async with self._operation(
            context, "add", datasource_id=getattr(datasource, "id", None)
        ) as op:
            require_not_none(datasource, "datasource")
            if datasource.provider is None:
                raise ArgumentError(
                    "Provider is required",
                    code=ErrorCodes.ARGUMENT_REQUIRED,
                    context={"argument": "provider"},
                )
            require_not_blank(datasource.connection_string, "connection_string")

            if datasource.id and datasource.id.strip():
                record = datasource.model_copy(update={"id": self._require_datasource_id(datasource.id)})
            else:
                record = datasource.model_copy(update={"id": uuid.uuid4().hex})
            op.datasource_id = record.id

            if not await self.repository.add(record):
                raise DuplicateError(
                    f"Datasource '{record.id}' already exists",
                    entity_type="datasource",
                    entity_name=record.id,
                    code=ErrorCodes.DUPLICATE_DATASOURCE,
                )

            self.logger.info("Datasource registered", datasource_id=record.id, provider=record.provider.value)
            op.properties["message"] = f"Added datasource '{record.id}'"
            return record.redacted()

    async def update(self, context: Optional[OperationContext], patch: DatasourcePatch) -> Datasource:
        """Apply a partial update; absent fields keep their stored values.

        Raises:
            NotFoundError: If the datasource is not registered
        """
        async with self._operation(context, "update", datasource_id=getattr(patch, "id", None)) as op:
            require_not_none(patch, "patch")
            datasource_id = self._require_datasource_id(patch.id)
            if not await self.repository.update(patch):
                raise _datasource_not_found(datasource_id)
            updated = await self.repository.get(datasource_id)
            op.properties["message"] = f"Updated datasource '{datasource_id}'"
            return updated

    async def remove(self, context: Optional[OperationContext], datasource_id: str) -> None:
        async with self._operation(context, "remove", datasource_id=datasource_id) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            if not await self.repository.remove(datasource_id):
                raise _datasource_not_found(datasource_id)
            op.properties["message"] = f"Removed datasource '{datasource_id}'"

    async def test(self, context: Optional[OperationContext], datasource_id: str) -> ConnectivityTestResult:
        """Open a connection to the datasource and read the server version.

        Connection problems are reported in the result rather than raised.

        Raises:
            NotFoundError: If the datasource is not registered
        """
        async with self._operation(context, "test", datasource_id=datasource_id) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            datasource = await self.repository.get(datasource_id)
            if datasource is None:
                raise _datasource_not_found(datasource_id)

            result = ConnectivityTestResult(datasource_id=datasource.id, provider=datasource.provider.value)
            started = time.perf_counter()
            try:
                async with self._session(datasource_id) as (conn, dialect):
                    result.server_version = await dialect.get_server_version(conn)
                    result.database_name = conn.database_name
                result.connected = True
            except SchemaSmithException as e:
                result.error_message = e.message
                self.logger.warning("Connectivity test failed", datasource_id=datasource_id, error=str(e))
            result.response_time_ms = int((time.perf_counter() - started) * 1000)

            op.properties["message"] = (
                f"Connected to datasource '{datasource_id}'"
                if result.connected
                else f"Could not connect to datasource '{datasource_id}'"
            )
            return result
