"""Connection factory.

Turns a provider name and a connection string into an unopened
:class:`DatabaseConnection`. Connection strings may be ADO style
``Key=Value;`` pairs for every provider, URLs for PostgreSQL and MySQL, or a
bare file path for SQLite.
"""

from typing import Any, Dict, Optional, Type
from urllib.parse import parse_qsl, unquote, urlparse

from ..config.models import ConnectionConfig
from ..core.exceptions import ArgumentError, ErrorCodes
from ..core.utils import require_not_blank
from ..logging import get_logger
from ..models.datasource import ProviderType
from .connection import ConnectionSettings, DatabaseConnection

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

_HOST_KEYS = ("host", "server", "data source", "address", "addr", "network address")
_PORT_KEYS = ("port",)
_DATABASE_KEYS = ("database", "initial catalog", "db", "dbname")
_USER_KEYS = ("username", "user id", "userid", "user", "uid")
_PASSWORD_KEYS = ("password", "pwd")

_SQLSERVER_KEYWORDS = {
    "server": "SERVER",
    "data source": "SERVER",
    "address": "SERVER",
    "addr": "SERVER",
    "network address": "SERVER",
    "database": "DATABASE",
    "initial catalog": "DATABASE",
    "user id": "UID",
    "userid": "UID",
    "user": "UID",
    "uid": "UID",
    "password": "PWD",
    "pwd": "PWD",
    "trusted_connection": "Trusted_Connection",
    "integrated security": "Trusted_Connection",
    "trustservercertificate": "TrustServerCertificate",
    "encrypt": "Encrypt",
    "application name": "APP",
    "app": "APP",
    "multisubnetfailover": "MultiSubnetFailover",
}

_BOOLEAN_TRUE = {"true", "yes", "1", "sspi"}
_BOOLEAN_FALSE = {"false", "no", "0"}


def parse_key_value_pairs(connection_string: str) -> Dict[str, str]:
    """Parse an ADO style ``Key=Value;`` connection string.

    Keys are lower-cased and stripped. Values may be wrapped in braces or
    quotes to contain semicolons. The ``Provider`` keyword is dropped.

    Example:
        >>> parse_key_value_pairs("Server=db;Database=app;Password={a;b}")
        {'server': 'db', 'database': 'app', 'password': 'a;b'}
    """
    pairs: Dict[str, str] = {}
    index = 0
    length = len(connection_string)

    while index < length:
        separator = connection_string.find("=", index)
        if separator < 0:
            break
        key = connection_string[index:separator].strip().strip(";").strip().lower()
        index = separator + 1

        while index < length and connection_string[index] == " ":
            index += 1

        if index < length and connection_string[index] in "{\"'":
            closing = {"{": "}", '"': '"', "'": "'"}[connection_string[index]]
            end = connection_string.find(closing, index + 1)
            if end < 0:
                end = length
            value = connection_string[index + 1:end]
            index = connection_string.find(";", end)
            index = length if index < 0 else index + 1
        else:
            end = connection_string.find(";", index)
            if end < 0:
                end = length
            value = connection_string[index:end].strip()
            index = end + 1

        if key and key != "provider":
            pairs[key] = value

    return pairs


def _first(pairs: Dict[str, str], keys: tuple) -> Optional[str]:
    for key in keys:
        value = pairs.get(key)
        if value:
            return value
    return None


def _split_host_port(host: str) -> tuple:
    # SQL Server style "host,port" and "host:port"
    for separator in (",", ":"):
        if separator in host and host.count(":") <= 1:
            name, _, port = host.rpartition(separator)
            if port.isdigit():
                return name, int(port)
    return host, None


def _is_url(connection_string: str) -> bool:
    return "://" in connection_string.split(";", 1)[0]


class ConnectionFactory:
    """Creates provider connections.

    The caller owns the returned connection and opens and closes it, usually
    with ``async with``.

    Args:
        connection_config: Timeouts applied to every connection
    """

    def __init__(self, connection_config: Optional[ConnectionConfig] = None) -> None:
        self.config = connection_config or ConnectionConfig()
        self.logger = get_logger("database.factory")

    def create_connection(self, provider: Any, connection_string: str) -> DatabaseConnection:
        """Create an unopened connection.

        Args:
            provider: Provider name, alias or ProviderType
            connection_string: Driver connection string

        Returns:
            DatabaseConnection for the provider

        Raises:
            ArgumentError: If an argument is blank, the provider is unknown or
                the connection string cannot be parsed
        """
        if not isinstance(provider, ProviderType):
            require_not_blank(provider, "provider")
        require_not_blank(connection_string, "connection_string")

        provider_type = ProviderType.parse(provider)
        settings = self.parse_connection_string(provider_type, connection_string)
        connection_class = self._connection_class(provider_type)

        self.logger.debug(
            "Connection created",
            provider=provider_type.value,
            database=settings.database,
        )
        return connection_class(settings)

    def parse_connection_string(
        self, provider: ProviderType, connection_string: str
    ) -> ConnectionSettings:
        """Parse a connection string into driver settings."""
        text = connection_string.strip()
        parsers = {
            ProviderType.SQLITE: self._parse_sqlite,
            ProviderType.POSTGRESQL: self._parse_postgresql,
            ProviderType.MYSQL: self._parse_mysql,
            ProviderType.SQLSERVER: self._parse_sqlserver,
        }
        options, database = parsers[provider](text)
        return ConnectionSettings(
            provider=provider,
            connection_string=connection_string,
            options=options,
            database=database,
            connect_timeout=self.config.connect_timeout,
            command_timeout=self.config.command_timeout,
        )

    @staticmethod
    def _connection_class(provider: ProviderType) -> Type[DatabaseConnection]:
        # Drivers are imported on demand so only the ones in use must be installed
        if provider is ProviderType.SQLITE:
            from .connectors.sqlite import SqliteConnection

            return SqliteConnection
        if provider is ProviderType.POSTGRESQL:
            from .connectors.postgresql import PostgreSqlConnection

            return PostgreSqlConnection
        if provider is ProviderType.MYSQL:
            from .connectors.mysql import MySqlConnection

            return MySqlConnection
        from .connectors.sqlserver import SqlServerConnection

        return SqlServerConnection

    @staticmethod
    def _invalid(provider: ProviderType, reason: str) -> ArgumentError:
        return ArgumentError(
            f"Invalid {provider.value} connection string: {reason}",
            code=ErrorCodes.CONNECTION_STRING_INVALID,
            context={"provider": provider.value},
        )

    def _parse_sqlite(self, text: str) -> tuple:
        if text.lower().startswith("sqlite:///"):
            return {}, unquote(text[len("sqlite:///"):])
        if "=" not in text:
            return {}, text

        pairs = parse_key_value_pairs(text)
        database = _first(pairs, ("data source", "datasource", "filename", "database"))
        if not database:
            raise self._invalid(ProviderType.SQLITE, "missing Data Source")
        return {}, database

    def _parse_postgresql(self, text: str) -> tuple:
        if _is_url(text):
            parsed = urlparse(text)
            database = parsed.path.lstrip("/") or None
            return {"dsn": text}, database

        pairs = parse_key_value_pairs(text)
        host = _first(pairs, _HOST_KEYS)
        if not host:
            raise self._invalid(ProviderType.POSTGRESQL, "missing Host")
        host, embedded_port = _split_host_port(host)

        options: Dict[str, Any] = {"host": host}
        port = _first(pairs, _PORT_KEYS)
        if port or embedded_port:
            options["port"] = int(port) if port else embedded_port
        database = _first(pairs, _DATABASE_KEYS)
        if database:
            options["database"] = database
        user = _first(pairs, _USER_KEYS)
        if user:
            options["user"] = user
        password = _first(pairs, _PASSWORD_KEYS)
        if password:
            options["password"] = password
        ssl_mode = pairs.get("ssl mode") or pairs.get("sslmode")
        if ssl_mode:
            options["ssl"] = ssl_mode.lower()
        return options, database

    def _parse_mysql(self, text: str) -> tuple:
        if _is_url(text):
            parsed = urlparse(text)
            if not parsed.hostname:
                raise self._invalid(ProviderType.MYSQL, "missing host")
            options: Dict[str, Any] = {"host": parsed.hostname}
            if parsed.port:
                options["port"] = parsed.port
            if parsed.username:
                options["user"] = unquote(parsed.username)
            if parsed.password:
                options["password"] = unquote(parsed.password)
            database = parsed.path.lstrip("/") or None
            if database:
                options["db"] = database
            for key, value in parse_qsl(parsed.query):
                if key == "charset":
                    options["charset"] = value
            return options, database

        pairs = parse_key_value_pairs(text)
        host = _first(pairs, _HOST_KEYS)
        if not host:
            raise self._invalid(ProviderType.MYSQL, "missing Server")
        host, embedded_port = _split_host_port(host)

        options = {"host": host}
        port = _first(pairs, _PORT_KEYS)
        if port or embedded_port:
            options["port"] = int(port) if port else embedded_port
        database = _first(pairs, _DATABASE_KEYS)
        if database:
            options["db"] = database
        user = _first(pairs, _USER_KEYS)
        if user:
            options["user"] = user
        password = _first(pairs, _PASSWORD_KEYS)
        if password:
            options["password"] = password
        return options, database

    def _parse_sqlserver(self, text: str) -> tuple:
        pairs = parse_key_value_pairs(text)
        if not _first(pairs, ("server", "data source", "address", "addr", "network address")):
            raise self._invalid(ProviderType.SQLSERVER, "missing Server")

        driver = pairs.pop("driver", None) or DEFAULT_ODBC_DRIVER
        port = pairs.pop("port", None)
        if port:
            for key in ("server", "data source", "address", "addr", "network address"):
                if pairs.get(key) and "," not in pairs[key]:
                    pairs[key] = f"{pairs[key]},{port}"
                    break

        parts = [f"DRIVER={{{driver.strip('{}')}}}"]
        for key, value in pairs.items():
            keyword = _SQLSERVER_KEYWORDS.get(key, key)
            if keyword in ("Trusted_Connection", "TrustServerCertificate", "Encrypt", "MultiSubnetFailover"):
                lowered = value.lower()
                if lowered in _BOOLEAN_TRUE:
                    value = "yes"
                elif lowered in _BOOLEAN_FALSE:
                    value = "no"
            if ";" in value:
                value = "{" + value + "}"
            parts.append(f"{keyword}={value}")

        database = _first(pairs, ("database", "initial catalog"))
        return {"dsn": ";".join(parts)}, database
