"""Row query translation."""

from .translator import QueryTranslator, TranslatedQuery, coerce_value, parse_filter_key

__all__ = ["QueryTranslator", "TranslatedQuery", "coerce_value", "parse_filter_key"]
