# ==============================================
# ConnectionStrategy
# ==============================================
#
# PURPOSE:
#   Hands out scoped database connections to the audit DAOs under
#   one of three modes, chosen once from ConnectionConfig.
#
# MODES:
# ------
#   SINGLE  → one physical connection (StaticPool) shared by every
#             caller. Nothing serializes statements on it.
#   POOLED  → QueuePool of `maximum_pool_size` connections. Checkout
#             blocks up to `connection_timeout` ms, then fails.
#             Connections idle longer than `idle_timeout` or older
#             than `max_lifetime` are replaced.
#   JNDI    → the engine is looked up by `jndi_data_source` in a
#             DataSourceDirectory and used as-is.
#
#   An engine passed in explicitly (data_source=...) wins over all
#   three modes. Engines the strategy did not create are never
#   disposed by it.
#
# CLASS: ConnectionStrategy
# -------------------------
#   Constructor:
#   ------------
#   - __init__(config, data_source=None, directory=None)
#       Store configuration. Don't connect yet.
#
#   Methods:
#   --------
#   - init() -> None          → Validate and build the engine. Idempotent.
#   - acquire() -> ctx mgr    → `with strategy.acquire() as conn:`
#   - stop() -> None          → Dispose owned engine. Idempotent.
#   - dialect (property)      → Detected once, then cached.
#
# ==============================================

import importlib
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine, URL, make_url
from sqlalchemy.exc import ArgumentError, DisconnectionError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import QueuePool, StaticPool

from audit_store.config import ConnectionConfig, ConnectionType
from audit_store.connection.directory import DataSourceDirectory, default_directory
from audit_store.dialects.detector import detect
from audit_store.dialects.dialect import Dialect
from audit_store.errors import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)

# Backends that get pymysql when the URL names no driver
_PYMYSQL_BACKENDS = ("mysql", "mariadb")


def _import_creator(path: str) -> Callable:
    module_name, _, attribute = path.replace(":", ".").rpartition(".")
    if not module_name:
        raise ConfigurationError(f"data_source_class must be a dotted path, got {path!r}")
    try:
        module = importlib.import_module(module_name)
        creator = getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Unable to load data_source_class {path!r}: {e}") from e
    if not callable(creator):
        raise ConfigurationError(f"data_source_class {path!r} is not callable")
    return creator


class ConnectionStrategy:
    """Produces scoped connections for the configured connection type."""

    def __init__(
        self,
        config: ConnectionConfig,
        data_source: Optional[Engine] = None,
        directory: Optional[DataSourceDirectory] = None,
    ):
        self.config = config
        self._data_source = data_source
        self._directory = directory or default_directory
        self._engine: Optional[Engine] = None
        self._owns_engine = False
        self._dialect: Optional[Dialect] = None
        self._lock = threading.Lock()
        self._dialect_lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    def init(self) -> None:
        """
        Validate the configuration and build (or look up) the engine.

        Raises:
            ConfigurationError: required options are missing or invalid
            DatabaseConnectionError: the pool could not be filled
        """
        with self._lock:
            if self._engine is not None:
                return
            self._validate()

            if self._data_source is not None:
                engine, owns = self._data_source, False
            elif self.config.connection_type is ConnectionType.JNDI:
                engine, owns = self._directory.lookup(self.config.jndi_data_source), False
            else:
                engine, owns = self._create_engine(), True

            if owns and self.config.connection_type is ConnectionType.POOLED:
                self._warm_up(engine)

            self._engine, self._owns_engine = engine, owns

        logger.info(
            "Connection strategy initialized (type=%s, url=%s)",
            self.config.connection_type.value,
            engine.url.render_as_string(hide_password=True),
        )

    @contextmanager
    def acquire(self) -> Iterator[Connection]:
        """
        Borrow a connection for the duration of a `with` block.

        Work done on the connection is committed when the block exits
        normally; the connection goes back to its pool on every exit path.

        Raises:
            DatabaseConnectionError: not initialized, pool timeout, or the
                database refused the connection
        """
        engine = self._engine
        if engine is None:
            raise DatabaseConnectionError("Connection strategy is not initialized")
        try:
            conn = engine.connect()
        except PoolTimeoutError as e:
            raise DatabaseConnectionError(
                f"Timed out after {self.config.connection_timeout} ms waiting for a pooled connection"
            ) from e
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Unable to open a database connection: {e}") from e
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @property
    def dialect(self) -> Dialect:
        """Dialect of the underlying database, detected on first use."""
        if self._dialect is None:
            with self._dialect_lock:
                if self._dialect is None:
                    with self.acquire() as conn:
                        self._dialect = detect(conn)
                    logger.info("Detected %s dialect", self._dialect.name)
        return self._dialect

    def stop(self) -> None:
        with self._lock:
            engine, owns = self._engine, self._owns_engine
            self._engine, self._owns_engine, self._dialect = None, False, None
        if engine is not None and owns:
            engine.dispose()
            logger.info("Connection strategy stopped")

    def _validate(self) -> None:
        config = self.config
        if self._data_source is not None:
            return
        if config.connection_type is ConnectionType.JNDI:
            if not config.jndi_data_source:
                raise ConfigurationError("jndi_data_source is required for jndi connections")
            return
        if not config.url:
            raise ConfigurationError(f"url is required for {config.connection_type.value} connections")
        if config.connection_type is ConnectionType.POOLED:
            if config.maximum_pool_size <= 0:
                raise ConfigurationError("maximum_pool_size must be positive")
            if config.connection_timeout <= 0:
                raise ConfigurationError("connection_timeout must be positive")
            if config.minimum_idle is not None and config.minimum_idle < 0:
                raise ConfigurationError("minimum_idle must not be negative")

    def _build_url(self) -> URL:
        config = self.config
        try:
            url = make_url(config.url)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid database url {config.url!r}") from e

        if "+" not in url.drivername:
            backend = url.drivername
            if config.driver:
                url = url.set(drivername=f"{backend}+{config.driver}")
            elif backend in _PYMYSQL_BACKENDS:
                url = url.set(drivername=f"{backend}+pymysql")
        if config.user is not None:
            url = url.set(username=config.user)
        if config.password is not None:
            url = url.set(password=config.password)
        return url

    def _create_engine(self) -> Engine:
        config = self.config
        url = self._build_url()

        options = {}
        if url.get_backend_name() == "sqlite":
            options["connect_args"] = {"check_same_thread": False}
        if config.data_source_class:
            options["creator"] = _import_creator(config.data_source_class)
        if config.auto_commit:
            options["isolation_level"] = "AUTOCOMMIT"

        if config.connection_type is ConnectionType.POOLED:
            options.update(
                poolclass=QueuePool,
                pool_size=config.maximum_pool_size,
                max_overflow=0,
                pool_timeout=config.connection_timeout / 1000.0,
                pool_recycle=config.max_lifetime / 1000.0 if config.max_lifetime > 0 else -1,
                pool_pre_ping=True,
            )
        else:
            options["poolclass"] = StaticPool

        try:
            engine = create_engine(url, **options)
        except (ArgumentError, NoSuchModuleError, ImportError) as e:
            raise ConfigurationError(f"Unable to create engine for {url.drivername}: {e}") from e

        if config.connection_type is ConnectionType.POOLED and config.idle_timeout > 0:
            self._install_idle_timeout(engine, config.idle_timeout / 1000.0)
        return engine

    @staticmethod
    def _install_idle_timeout(engine: Engine, idle_seconds: float) -> None:
        @event.listens_for(engine, "checkin")
        def _mark_idle(dbapi_connection, connection_record):
            connection_record.info["idle_since"] = time.monotonic()

        @event.listens_for(engine, "checkout")
        def _discard_idle(dbapi_connection, connection_record, connection_proxy):
            idle_since = connection_record.info.pop("idle_since", None)
            if idle_since is not None and time.monotonic() - idle_since > idle_seconds:
                # The pool replaces the connection and retries the checkout
                raise DisconnectionError("Connection exceeded idle_timeout")

    def _warm_up(self, engine: Engine) -> None:
        config = self.config
        count = config.maximum_pool_size if config.minimum_idle is None else config.minimum_idle
        count = min(count, config.maximum_pool_size)
        opened = []
        try:
            for _ in range(count):
                opened.append(engine.connect())
        except SQLAlchemyError as e:
            for conn in opened:
                conn.close()
            engine.dispose()
            raise DatabaseConnectionError(f"Unable to open pooled connections: {e}") from e
        for conn in opened:
            conn.close()
