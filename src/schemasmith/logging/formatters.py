"""Log formatters for the SchemaSmith logging system.

structlog renders the event itself; these stdlib formatters decide how
the rendered record is framed by the console and file handlers.

Classes:
    JSONFormatter: One JSON object per line
    TextFormatter: Human-readable single line

Example:
    >>> handler.setFormatter(get_formatter("text"))
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

# LogRecord attributes that are not user supplied extras
_RESERVED_ATTRIBUTES = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "exc_info", "exc_text",
    "stack_info", "taskName",
})


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRIBUTES and not key.startswith("_")
    }


def _parse_rendered_event(message: str) -> Optional[Dict[str, Any]]:
    if not message.startswith("{"):
        return None
    try:
        parsed = json.loads(message)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured log output.

    Example:
        {"message": "Table created", "timestamp": "2025-01-07T10:30:45.123456",
         "level": "INFO", "logger": "schemasmith.services.tables"}
    """

    def __init__(self, *, include_location: bool = False) -> None:
        """Initialize JSON formatter.

        Args:
            include_location: Include module, function and line number
        """
        super().__init__()
        self.include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }

        # structlog's JSONRenderer already produced an object; merge it instead of nesting
        rendered = _parse_rendered_event(log_data["message"])
        if rendered is not None:
            log_data["message"] = rendered.pop("event", log_data["message"])
            rendered.pop("level", None)
            rendered.pop("timestamp", None)
            log_data.update(rendered)

        if self.include_location:
            log_data["module"] = record.module
            log_data["function"] = record.funcName
            log_data["line"] = record.lineno

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        log_data.update(_record_extras(record))
        return json.dumps(log_data, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    Example:
        2025-01-07 10:30:45.123 [INFO] schemasmith.services.tables: Table created
    """

    COLOR_CODES = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, *, colors: bool = False, include_extras: bool = True) -> None:
        super().__init__()
        self.colors = colors
        self.include_extras = include_extras

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond:06d}"[:3]

        level = f"[{record.levelname}]"
        if self.colors and record.levelname in self.COLOR_CODES:
            level = f"{self.COLOR_CODES[record.levelname]}{level}{self.RESET}"

        parts = [timestamp, level, f"{record.name}:", record.getMessage()]

        if self.include_extras:
            extras = _record_extras(record)
            if extras:
                parts.append("(" + ", ".join(f"{k}={v}" for k, v in extras.items()) + ")")

        formatted = " ".join(parts)
        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


def get_formatter(format_type: str, **kwargs: Any) -> logging.Formatter:
    """Get formatter instance by type.

    Args:
        format_type: Formatter type ('json' or 'text')
        **kwargs: Additional formatter arguments

    Returns:
        Logging formatter instance

    Raises:
        ValueError: If format_type is not supported
    """
    format_type = format_type.lower()

    if format_type == "json":
        return JSONFormatter(**kwargs)
    if format_type == "text":
        return TextFormatter(**kwargs)
    raise ValueError(f"Unsupported formatter type: {format_type}")
