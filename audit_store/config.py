# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   to the connection strategy and the audit handler.
#
# CLASSES:
# --------
# - ConnectionType (Enum)
#     SINGLE | POOLED | JNDI   (unknown/missing → SINGLE)
#
# - MySQLConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "root")
#     database: str      (default "audit_db")
#     to_url() -> str    → mysql+pymysql:// URL
#
# - ConnectionConfig (dataclass, frozen)
#     driver, url, user, password, data_source_class, auto_commit,
#     connection_timeout (ms), idle_timeout (ms), max_lifetime (ms),
#     minimum_idle, maximum_pool_size, jndi_data_source, connection_type
#
# - AuditStoreConfig (dataclass)
#     connection: ConnectionConfig
#     embedded: bool | None        (None → decide from connection config)
#     schema, table_prefix, table_suffix, default_table_name,
#     separate_per_repository, cache_maximum_size,
#     cache_expire_after_access (seconds), embedded_database_path
#
# FUNCTIONS:
# ----------
# - parse_bool(value) -> bool | None
# - get_config() -> AuditStoreConfig
#     Load .env using python-dotenv, construct AuditStoreConfig.
#     Returns the same instance on repeated calls.
#
# USAGE:
# ------
#   from audit_store.config import get_config
#   config = get_config()
#   print(config.connection.url)
#   print(config.default_table_name)
#
# ==============================================

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from sqlalchemy.engine import URL

from audit_store.errors import ConfigurationError


DEFAULT_TABLE_NAME = "audit"
DEFAULT_TABLE_SUFFIX = "audit"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def parse_bool(value: Union[bool, str, None]) -> Optional[bool]:
    """
    Interpret a configuration flag.

    Args:
        value: A bool, a string such as "true"/"false", or None

    Returns:
        The boolean value, or None when the flag is unset
    """
    if value is None or isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized == "":
        return None
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Expected a boolean value, got {value!r}")


class ConnectionType(Enum):
    """How database connections are obtained."""
    SINGLE = "single"
    POOLED = "pooled"
    JNDI = "jndi"

    @classmethod
    def parse(cls, value: Union["ConnectionType", str, None]) -> "ConnectionType":
        if isinstance(value, cls):
            return value
        for member in cls:
            if value is not None and member.value == str(value).strip().lower():
                return member
        return cls.SINGLE


@dataclass
class MySQLConfig:
    """MySQL database configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "audit_db"

    def to_url(self) -> str:
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        ).render_as_string(hide_password=False)


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Connection strategy configuration.

    Frozen: it is chosen once before the strategy is initialized and never
    changes afterwards. Timeouts are milliseconds.
    """
    driver: Optional[str] = None
    url: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    data_source_class: Optional[str] = None
    auto_commit: bool = True
    connection_timeout: int = 30000
    idle_timeout: int = 600000
    max_lifetime: int = 1800000
    minimum_idle: Optional[int] = None
    maximum_pool_size: int = 10
    jndi_data_source: Optional[str] = None
    connection_type: ConnectionType = ConnectionType.SINGLE

    def __post_init__(self):
        object.__setattr__(self, "connection_type", ConnectionType.parse(self.connection_type))


@dataclass
class AuditStoreConfig:
    """Audit handler configuration."""
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    embedded: Optional[bool] = None
    schema: Optional[str] = None
    table_prefix: Optional[str] = None
    table_suffix: str = DEFAULT_TABLE_SUFFIX
    default_table_name: str = DEFAULT_TABLE_NAME
    separate_per_repository: bool = False
    cache_maximum_size: int = 1000
    cache_expire_after_access: float = 15 * 60
    embedded_database_path: str = "auditdb.sqlite"

    def __post_init__(self):
        self.embedded = parse_bool(self.embedded)
        self.separate_per_repository = bool(parse_bool(self.separate_per_repository))
        if self.default_table_name is None or not str(self.default_table_name).strip():
            raise ConfigurationError("Table name must not be empty")


# Cached instance
_config_instance: Optional[AuditStoreConfig] = None


def _getenv_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _load_connection_config() -> ConnectionConfig:
    url = os.getenv("AUDIT_DB_URL") or None
    if url is None and os.getenv("MYSQL_HOST"):
        # Fall back to the plain MySQL variables
        url = MySQLConfig(
            host=os.getenv("MYSQL_HOST", "localhost"),
            port=int(os.getenv("MYSQL_PORT", "3306")),
            user=os.getenv("MYSQL_USER", "root"),
            password=os.getenv("MYSQL_PASSWORD", "root"),
            database=os.getenv("MYSQL_DATABASE", "audit_db"),
        ).to_url()

    options = {
        "driver": os.getenv("AUDIT_DB_DRIVER") or None,
        "url": url,
        "user": os.getenv("AUDIT_DB_USER") or None,
        "password": os.getenv("AUDIT_DB_PASSWORD") or None,
        "data_source_class": os.getenv("AUDIT_DB_DATASOURCE_CLASS") or None,
        "jndi_data_source": os.getenv("AUDIT_DB_JNDI_DATASOURCE") or None,
        "connection_type": ConnectionType.parse(os.getenv("AUDIT_DB_CONNECTION_TYPE")),
        "minimum_idle": _getenv_int("AUDIT_DB_POOL_MINIMUM_IDLE"),
    }
    auto_commit = parse_bool(os.getenv("AUDIT_DB_POOL_AUTO_COMMIT"))
    if auto_commit is not None:
        options["auto_commit"] = auto_commit
    for option, env_name in (
        ("connection_timeout", "AUDIT_DB_POOL_CONNECTION_TIMEOUT"),
        ("idle_timeout", "AUDIT_DB_POOL_IDLE_TIMEOUT"),
        ("max_lifetime", "AUDIT_DB_POOL_MAX_LIFETIME"),
        ("maximum_pool_size", "AUDIT_DB_POOL_MAXIMUM_POOL_SIZE"),
    ):
        value = _getenv_int(env_name)
        if value is not None:
            options[option] = value
    return ConnectionConfig(**options)


def get_config(reload: bool = False) -> AuditStoreConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same instance on repeated calls.

    Args:
        reload: Discard the cached instance and read the environment again

    Returns:
        AuditStoreConfig: Audit store configuration
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    _config_instance = AuditStoreConfig(
        connection=_load_connection_config(),
        embedded=parse_bool(os.getenv("AUDIT_DB_EMBEDDED")),
        schema=os.getenv("AUDIT_DB_SCHEMA") or None,
        table_prefix=os.getenv("AUDIT_DB_TABLE_PREFIX") or None,
        table_suffix=os.getenv("AUDIT_DB_TABLE_SUFFIX", DEFAULT_TABLE_SUFFIX),
        default_table_name=os.getenv("AUDIT_DB_DEFAULT_TABLE_NAME", DEFAULT_TABLE_NAME),
        separate_per_repository=bool(parse_bool(os.getenv("AUDIT_DB_SEPARATE_PER_REPOSITORY"))),
        embedded_database_path=os.getenv("AUDIT_DB_EMBEDDED_PATH", "auditdb.sqlite"),
    )

    return _config_instance
