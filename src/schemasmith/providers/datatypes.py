"""Static data type catalogs.

One catalog per provider, built on first use and cached for the life of
the process. Types flagged ``is_common`` are the everyday ones; the rest
are only listed when advanced types are requested.
"""

from dataclasses import replace
from functools import lru_cache
from typing import List, Optional, Tuple

from ..models.datasource import ProviderType
from ..models.datatypes import DataTypeCategory, DataTypeInfo

_CATEGORY_ORDER = {category: position for position, category in enumerate(DataTypeCategory)}


def _simple(name: str, category: DataTypeCategory, description: str, common: bool = False, *aliases: str) -> DataTypeInfo:
    return DataTypeInfo(
        data_type=name, category=category, description=description, is_common=common, aliases=list(aliases)
    )


def _integer(name: str, description: str, common: bool = False, *aliases: str) -> DataTypeInfo:
    return _simple(name, DataTypeCategory.INTEGER, description, common, *aliases)


def _text(
    name: str, max_length: Optional[int], default_length: Optional[int], description: str,
    common: bool = False, *aliases: str,
) -> DataTypeInfo:
    info = _simple(name, DataTypeCategory.TEXT, description, common, *aliases)
    if max_length is not None:
        info.supports_length = True
        info.min_length = 1
        info.max_length = max_length
        info.default_length = default_length
    return info


def _binary(name: str, max_length: Optional[int], default_length: Optional[int], description: str,
            common: bool = False, *aliases: str) -> DataTypeInfo:
    info = _text(name, max_length, default_length, description, common, *aliases)
    info.category = DataTypeCategory.BINARY
    return info


def _decimal(
    name: str, max_precision: int, max_scale: int, description: str, common: bool = False, *aliases: str
) -> DataTypeInfo:
    info = _simple(name, DataTypeCategory.DECIMAL, description, common, *aliases)
    info.supports_precision = True
    info.min_precision = 1
    info.max_precision = max_precision
    info.default_precision = 18
    info.supports_scale = True
    info.min_scale = 0
    info.max_scale = max_scale
    info.default_scale = 2
    return info


def _datetime(
    name: str, max_precision: Optional[int], default_precision: Optional[int], description: str,
    common: bool = False, *aliases: str,
) -> DataTypeInfo:
    info = _simple(name, DataTypeCategory.DATETIME, description, common, *aliases)
    if max_precision is not None:
        info.supports_precision = True
        info.min_precision = 0
        info.max_precision = max_precision
        info.default_precision = default_precision
    return info


def _sqlserver_types() -> List[DataTypeInfo]:
    c = DataTypeCategory
    return [
        _integer("bit", "Boolean value (0 or 1)", True),
        _integer("tinyint", "0 to 255", True),
        _integer("smallint", "-32,768 to 32,767"),
        _integer("int", "-2,147,483,648 to 2,147,483,647", True, "integer"),
        _integer("bigint", "-2^63 to 2^63-1", True),
        _decimal("decimal", 38, 38, "Fixed precision and scale", True, "dec"),
        _decimal("numeric", 38, 38, "Synonym for decimal"),
        _simple("float", c.DECIMAL, "Double precision floating point", True, "double precision"),
        _simple("real", c.DECIMAL, "Single precision floating point"),
        _simple("money", c.MONEY, "Currency with four decimal places", True),
        _simple("smallmoney", c.MONEY, "-214,748.3648 to 214,748.3647"),
        _text("char", 8000, 1, "Fixed-length non-Unicode string"),
        _text("varchar", 8000, 255, "Variable-length non-Unicode string", True),
        _text("nchar", 4000, 1, "Fixed-length Unicode string"),
        _text("nvarchar", 4000, 255, "Variable-length Unicode string", True),
        _simple("text", c.TEXT, "Deprecated large non-Unicode text"),
        _simple("ntext", c.TEXT, "Deprecated large Unicode text"),
        _datetime("date", None, None, "Date only (0001-01-01 to 9999-12-31)", True),
        _datetime("time", 7, 7, "Time of day"),
        _datetime("datetime", None, None, "Date and time, 3.33 ms accuracy", True),
        _datetime("datetime2", 7, 7, "Date and time with fractional seconds", True),
        _datetime("smalldatetime", None, None, "Date and time, minute accuracy"),
        _datetime("datetimeoffset", 7, 7, "Date and time with time zone offset"),
        _binary("binary", 8000, 1, "Fixed-length binary data"),
        _binary("varbinary", 8000, 1, "Variable-length binary data", True),
        _simple("image", c.BINARY, "Deprecated large binary data"),
        _simple("uniqueidentifier", c.IDENTIFIER, "16-byte GUID", True),
        _simple("rowversion", c.IDENTIFIER, "Automatically generated binary number", False, "timestamp"),
        _simple("xml", c.XML, "XML data"),
        _simple("geometry", c.SPATIAL, "Planar spatial data"),
        _simple("geography", c.SPATIAL, "Round-earth spatial data"),
        _simple("hierarchyid", c.OTHER, "Position in a hierarchy"),
        _simple("sql_variant", c.OTHER, "Values of various data types"),
    ]


def _postgresql_types() -> List[DataTypeInfo]:
    c = DataTypeCategory
    return [
        _integer("smallint", "2-byte signed integer", False, "int2"),
        _integer("integer", "4-byte signed integer", True, "int", "int4"),
        _integer("bigint", "8-byte signed integer", True, "int8"),
        _integer("smallserial", "2-byte autoincrementing integer", False, "serial2"),
        _integer("serial", "4-byte autoincrementing integer", True, "serial4"),
        _integer("bigserial", "8-byte autoincrementing integer", True, "serial8"),
        _decimal("numeric", 1000, 1000, "User-specified precision, exact", True, "decimal"),
        _simple("real", c.DECIMAL, "Single precision floating-point number", False, "float4"),
        _simple("double precision", c.DECIMAL, "Double precision floating-point number", False, "float8"),
        _simple("money", c.MONEY, "Currency amount"),
        _text("character", 10485760, 1, "Fixed-length character string", False, "char"),
        _text("character varying", 10485760, 255, "Variable-length character string", True, "varchar"),
        _simple("text", c.TEXT, "Variable unlimited length character string", True),
        _simple("boolean", c.BOOLEAN, "Logical true/false", True, "bool"),
        _datetime("date", None, None, "Calendar date", True),
        _datetime("time", 6, 6, "Time of day without time zone", False, "time without time zone"),
        _datetime("timetz", 6, 6, "Time of day with time zone", False, "time with time zone"),
        _datetime("timestamp", 6, 6, "Date and time without time zone", True, "timestamp without time zone"),
        _datetime("timestamptz", 6, 6, "Date and time with time zone", True, "timestamp with time zone"),
        _datetime("interval", 6, 6, "Time span"),
        _simple("bytea", c.BINARY, "Binary data", True),
        _simple("uuid", c.IDENTIFIER, "Universally unique identifier", True),
        _simple("json", c.JSON, "Textual JSON data"),
        _simple("jsonb", c.JSON, "Binary JSON data, decomposed", True),
        _simple("xml", c.XML, "XML data"),
        _simple("inet", c.NETWORK, "IPv4 or IPv6 host address"),
        _simple("cidr", c.NETWORK, "IPv4 or IPv6 network address"),
        _simple("macaddr", c.NETWORK, "MAC address"),
        _simple("point", c.SPATIAL, "Geometric point"),
        _simple("line", c.SPATIAL, "Infinite geometric line"),
        _simple("polygon", c.SPATIAL, "Closed geometric path"),
        _simple("circle", c.SPATIAL, "Geometric circle"),
        _simple("int4range", c.RANGE, "Range of integer"),
        _simple("int8range", c.RANGE, "Range of bigint"),
        _simple("numrange", c.RANGE, "Range of numeric"),
        _simple("tsrange", c.RANGE, "Range of timestamp without time zone"),
        _simple("tstzrange", c.RANGE, "Range of timestamp with time zone"),
        _simple("daterange", c.RANGE, "Range of date"),
        _simple("integer[]", c.ARRAY, "Array of integers", False, "int[]", "_int4"),
        _simple("text[]", c.ARRAY, "Array of text", False, "_text"),
        _simple("tsvector", c.OTHER, "Text search document"),
        _simple("tsquery", c.OTHER, "Text search query"),
    ]


def _mysql_types() -> List[DataTypeInfo]:
    c = DataTypeCategory
    return [
        _integer("tinyint", "1-byte signed integer (-128 to 127)"),
        _integer("smallint", "2-byte signed integer"),
        _integer("mediumint", "3-byte signed integer"),
        _integer("int", "4-byte signed integer", True, "integer"),
        _integer("bigint", "8-byte signed integer", True),
        _decimal("decimal", 65, 30, "Exact fixed-point number", True, "numeric", "dec", "fixed"),
        _simple("float", c.DECIMAL, "Single precision floating-point number"),
        _simple("double", c.DECIMAL, "Double precision floating-point number", True, "double precision", "real"),
        _text("bit", 64, 1, "Bit-value type"),
        _simple("boolean", c.BOOLEAN, "Synonym for tinyint(1)", True, "bool"),
        _text("char", 255, 1, "Fixed-length string", False, "character"),
        _text("varchar", 65535, 255, "Variable-length string", True),
        _simple("tinytext", c.TEXT, "Text up to 255 characters"),
        _simple("text", c.TEXT, "Text up to 65,535 characters", True),
        _simple("mediumtext", c.TEXT, "Text up to 16,777,215 characters"),
        _simple("longtext", c.TEXT, "Text up to 4 GB", True),
        _binary("binary", 255, 1, "Fixed-length binary string"),
        _binary("varbinary", 65535, 255, "Variable-length binary string"),
        _simple("tinyblob", c.BINARY, "Binary up to 255 bytes"),
        _simple("blob", c.BINARY, "Binary up to 65,535 bytes", True),
        _simple("mediumblob", c.BINARY, "Binary up to 16 MB"),
        _simple("longblob", c.BINARY, "Binary up to 4 GB"),
        _datetime("date", None, None, "Date value (YYYY-MM-DD)", True),
        _datetime("time", 6, 0, "Time value (HH:MM:SS)"),
        _datetime("datetime", 6, 0, "Date and time value", True),
        _datetime("timestamp", 6, 0, "UTC timestamp", True),
        _simple("year", c.DATETIME, "Year in 4-digit format"),
        _simple("json", c.JSON, "Native JSON data type", True),
        _simple("geometry", c.SPATIAL, "Any spatial value"),
        _simple("point", c.SPATIAL, "Point in 2-D space"),
        _simple("linestring", c.SPATIAL, "Curve with linear interpolation"),
        _simple("polygon", c.SPATIAL, "Planar surface"),
        _simple("enum", c.OTHER, "One value from a list"),
        _simple("set", c.OTHER, "Set of string values"),
    ]


def _sqlite_types() -> List[DataTypeInfo]:
    c = DataTypeCategory
    return [
        _integer("integer", "Signed integer, INTEGER affinity", True, "int", "bigint", "smallint", "tinyint"),
        _simple("real", c.DECIMAL, "8-byte floating point, REAL affinity", True, "double", "float"),
        _decimal("numeric", 1000, 1000, "NUMERIC affinity", True, "decimal"),
        _simple("text", c.TEXT, "Text, TEXT affinity", True, "clob"),
        _text("varchar", 1000000000, 255, "Text with a declared length, TEXT affinity", True, "character varying"),
        _text("char", 1000000000, 1, "Text with a declared length, TEXT affinity", False, "character"),
        _simple("blob", c.BINARY, "Binary data stored as input", True),
        _simple("boolean", c.BOOLEAN, "Stored as integer 0 or 1, NUMERIC affinity", True, "bool"),
        _datetime("date", None, None, "Stored as ISO-8601 text", True),
        _datetime("datetime", None, None, "Stored as ISO-8601 text", True, "timestamp"),
        _simple("json", c.JSON, "Stored as text, used with the JSON functions"),
    ]


_BUILDERS = {
    ProviderType.SQLSERVER: _sqlserver_types,
    ProviderType.POSTGRESQL: _postgresql_types,
    ProviderType.MYSQL: _mysql_types,
    ProviderType.SQLITE: _sqlite_types,
}


def _sort_key(info: DataTypeInfo) -> Tuple[int, str]:
    return _CATEGORY_ORDER[info.category], info.data_type


@lru_cache(maxsize=None)
def _catalog(provider: ProviderType) -> Tuple[DataTypeInfo, ...]:
    return tuple(sorted(_BUILDERS[provider](), key=_sort_key))


def get_datatype_catalog(provider: ProviderType, include_advanced: bool = True) -> List[DataTypeInfo]:
    """Catalog entries for a provider, ordered by category then name.

    Entries are cached and shared, so callers get copies.

    Args:
        provider: Database engine
        include_advanced: Also list the types not flagged ``is_common``
    """
    return [
        replace(info, aliases=list(info.aliases))
        for info in _catalog(provider)
        if include_advanced or info.is_common
    ]

