"""Data type catalog service."""

from typing import List, Optional

from ..core.context import OperationContext
from ..core.exceptions import SchemaSmithException
from ..models.datatypes import DataTypeInfo
from ..providers import get_datatype_catalog
from .base import ServiceBase


class DataTypeService(ServiceBase):
    """Lists the data types a datasource's engine supports."""

    area = "datatypes"

    async def list(
        self,
        context: Optional[OperationContext],
        datasource_id: str,
        include_custom: bool = False,
        include_advanced: bool = True,
    ) -> List[DataTypeInfo]:
        """Catalog of the datasource's provider.

        Args:
            include_custom: Also discover user-defined types on the live
                database; a discovery failure is logged and the static
                catalog is returned on its own
            include_advanced: Include types not marked as common

        Raises:
            NotFoundError: If the datasource is not registered
        """
        async with self._operation(context, "list", datasource_id=datasource_id) as op:
            datasource_id = self._require_datasource_id(datasource_id)
            if not include_custom:
                datasource, _ = await self._resolve_datasource(datasource_id)
                types = get_datatype_catalog(datasource.provider, include_advanced)
            else:
                async with self._session(datasource_id) as (conn, dialect):
                    types = get_datatype_catalog(dialect.provider_type, include_advanced)
                    try:
                        custom = await dialect.get_custom_datatypes(conn)
                    except SchemaSmithException as e:
                        self.logger.warning(
                            "Custom data type discovery failed",
                            datasource_id=datasource_id,
                            error=str(e),
                        )
                        custom = []
                types.extend(custom)

            op.properties["message"] = f"Retrieved {len(types)} data types"
            return types
