"""Database connections and the connection factory."""

from .connection import ConnectionSettings, DatabaseConnection, convert_named_parameters
from .factory import ConnectionFactory, parse_key_value_pairs

__all__ = [
    "ConnectionFactory",
    "ConnectionSettings",
    "DatabaseConnection",
    "convert_named_parameters",
    "parse_key_value_pairs",
]
