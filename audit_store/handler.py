# ==============================================
# DatabaseAuditHandler (Orchestrator)
# ==============================================
#
# PURPOSE:
#   The class the enclosing audit pipeline talks to. It wires the
#   connection strategy, the DAO cache and (optionally) the embedded
#   database together, and routes every event or query to the right
#   audit table.
#
# HOW IT CONNECTS THE PIECES:
#
#   handle(event) / find(actor, ...)
#        │
#        ▼
#   resolve_table_name(repository)
#        │  "audit"  or  "[prefix_]repository_suffix"
#        ▼
#   DaoCache.get(table) ──(miss)──► AuditLogDao(table, schema, connections)
#        │                              │ detects dialect, creates table
#        ▼                              ▼
#   AuditLogDao.write_event / find_audit_events_by_actor
#        │
#        ▼
#   ConnectionStrategy.acquire()  →  EventCodec
#
# CLASS: DatabaseAuditHandler
# ---------------------------
#   Constructor:
#   ------------
#   - __init__(config=None, data_source=None, directory=None, embedded_server=None)
#
#   Public Methods:
#   ---------------
#   - init() -> None
#       1. Start embedded database if embedded mode applies
#       2. Initialize the connection strategy
#       3. Build the default table's DAO (creates the table)
#       Any failure → InitializationError, handler stays not-ready.
#
#   - handle(event: AuditEvent) -> None
#   - find(actor, limit=None, repository=None) -> list[AuditEvent]
#   - stop() -> None                      (idempotent)
#   - resolve_table_name(repository) -> str
#   - implements_search() -> bool
#
# ==============================================

import logging
from dataclasses import replace
from typing import List, Optional

from sqlalchemy.engine import Engine

from audit_store.config import AuditStoreConfig, ConnectionConfig, ConnectionType, get_config
from audit_store.connection.directory import DataSourceDirectory
from audit_store.connection.embedded import (
    EMBEDDED_DB_PASSWORD,
    EMBEDDED_DB_USER,
    EmbeddedDatabaseServer,
)
from audit_store.connection.strategy import ConnectionStrategy
from audit_store.errors import AuditStoreError, InitializationError
from audit_store.events import AuditEvent
from audit_store.storage.audit_log_dao import AuditLogDao
from audit_store.storage.dao_cache import DaoCache

logger = logging.getLogger(__name__)


class DatabaseAuditHandler:
    """Persists audit events to relational tables and reads them back by actor."""

    def __init__(
        self,
        config: Optional[AuditStoreConfig] = None,
        data_source: Optional[Engine] = None,
        directory: Optional[DataSourceDirectory] = None,
        embedded_server: Optional[EmbeddedDatabaseServer] = None,
    ):
        """
        Args:
            config: Handler configuration. If None, loads from environment.
            data_source: Engine to use instead of building one from the URL
            directory: Registry for jndi lookups (default: process-wide one)
            embedded_server: Embedded database to start in embedded mode
        """
        self._config = config or get_config()
        self._data_source = data_source
        self._directory = directory
        self._server = embedded_server
        self._started_server: Optional[EmbeddedDatabaseServer] = None
        self._connections: Optional[ConnectionStrategy] = None
        self._daos: Optional[DaoCache[AuditLogDao]] = None
        self._ready = False

    @property
    def config(self) -> AuditStoreConfig:
        return self._config

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def connections(self) -> Optional[ConnectionStrategy]:
        return self._connections

    def init(self) -> None:
        """
        Start the handler.

        Raises:
            InitializationError: configuration, connection or table creation
                failed. Everything already started has been stopped again.
        """
        if self._ready:
            return

        try:
            connection_config = self._config.connection
            if self._use_embedded():
                connection_config = self._start_embedded(connection_config)

            self._connections = ConnectionStrategy(
                connection_config,
                data_source=self._data_source,
                directory=self._directory,
            )
            self._connections.init()

            self._daos = DaoCache(
                self._build_dao,
                maximum_size=self._config.cache_maximum_size,
                expire_after_access=self._config.cache_expire_after_access,
            )
            self._daos.get(self._config.default_table_name)
        except AuditStoreError as e:
            self.stop()
            raise InitializationError(f"Unable to create tables: {e}") from e

        self._ready = True
        logger.info("Database audit handler started (default table: %s)", self._config.default_table_name)

    def handle(self, event: AuditEvent) -> None:
        """
        Write one event to its table.

        Raises:
            InitializationError: init() has not succeeded
            CacheBuildError: the target table could not be created
            PersistenceError: the insert failed
        """
        table_name = self.resolve_table_name(event.repository)
        self._dao_for_table(table_name).write_event(event)

    def find(self, actor: str, limit: Optional[int] = None, repository: Optional[str] = None) -> List[AuditEvent]:
        """
        Find the events of one actor, newest first.

        Args:
            actor: Actor to look up
            limit: Maximum number of events, or None for all
            repository: Repository whose table to search

        Returns:
            Matching audit events
        """
        table_name = self.resolve_table_name(repository)
        return self._dao_for_table(table_name).find_audit_events_by_actor(actor, limit)

    def implements_search(self) -> bool:
        return True

    def stop(self) -> None:
        """Stop the connection strategy, then any embedded database we started."""
        was_running = self._ready
        self._ready = False
        if self._daos is not None:
            self._daos.invalidate_all()
            self._daos = None
        if self._connections is not None:
            self._connections.stop()
            self._connections = None
        if self._started_server is not None:
            self._started_server.shutdown()
            self._started_server = None
        if was_running:
            logger.info("Database audit handler stopped")

    def resolve_table_name(self, repository: Optional[str]) -> str:
        """
        Pick the table for a repository.

        Returns:
            The default table unless per-repository separation is enabled
            and a repository is given; then "[prefix_]repository_suffix".
        """
        config = self._config
        if not config.separate_per_repository or repository is None:
            return config.default_table_name
        if config.table_prefix is None:
            return f"{repository}_{config.table_suffix}"
        return f"{config.table_prefix}_{repository}_{config.table_suffix}"

    def _dao_for_table(self, table_name: str) -> AuditLogDao:
        daos = self._daos
        if not self._ready or daos is None:
            raise InitializationError("Database audit handler is not initialized")
        return daos.get(table_name)

    def _build_dao(self, table_name: str) -> AuditLogDao:
        return AuditLogDao(table_name, self._config.schema, self._connections)

    def _use_embedded(self) -> bool:
        if self._config.embedded is not None:
            return self._config.embedded
        connection = self._config.connection
        external = (
            self._data_source is not None
            or bool(connection.url)
            or connection.connection_type is ConnectionType.JNDI
        )
        return not external

    def _start_embedded(self, connection_config: ConnectionConfig) -> ConnectionConfig:
        server = self._server or EmbeddedDatabaseServer(self._config.embedded_database_path)
        logger.warning(
            "Audit database handler runs in embedded mode (%s). "
            "Configure an external database for production use.",
            server.database_path,
        )
        server.uname = connection_config.user or EMBEDDED_DB_USER
        server.password = connection_config.password or EMBEDDED_DB_PASSWORD
        server.start()
        self._started_server = server

        return replace(
            connection_config,
            driver=None,
            url=server.url(),
            user=None,
            password=None,
            connection_type=ConnectionType.SINGLE
            if connection_config.connection_type is ConnectionType.JNDI
            else connection_config.connection_type,
        )

    def __enter__(self):
        """Context manager entry."""
        self.init()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop()
        return False  # Don't suppress exceptions
