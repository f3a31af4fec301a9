"""Data type catalog models."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DataTypeCategory(str, Enum):
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    MONEY = "Money"
    TEXT = "Text"
    DATETIME = "DateTime"
    BINARY = "Binary"
    BOOLEAN = "Boolean"
    JSON = "Json"
    XML = "Xml"
    SPATIAL = "Spatial"
    ARRAY = "Array"
    RANGE = "Range"
    NETWORK = "Network"
    IDENTIFIER = "Identifier"
    OTHER = "Other"


@dataclass
class DataTypeInfo:
    """Catalog entry describing one provider data type.

    Length, precision and scale bounds are only meaningful when the matching
    ``supports_*`` flag is set. ``is_common`` separates everyday types from
    advanced ones, and ``is_custom`` marks user-defined types discovered on
    a live database.
    """

    data_type: str
    category: DataTypeCategory = DataTypeCategory.OTHER
    aliases: List[str] = field(default_factory=list)
    description: Optional[str] = None
    supports_length: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    default_length: Optional[int] = None
    supports_precision: bool = False
    min_precision: Optional[int] = None
    max_precision: Optional[int] = None
    default_precision: Optional[int] = None
    supports_scale: bool = False
    min_scale: Optional[int] = None
    max_scale: Optional[int] = None
    default_scale: Optional[int] = None
    is_common: bool = False
    is_custom: bool = False

    def matches(self, type_name: str) -> bool:
        """True if ``type_name`` is this type or one of its aliases."""
        key = type_name.strip().casefold()
        return key == self.data_type.casefold() or any(a.casefold() == key for a in self.aliases)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["category"] = self.category.value
        return result
