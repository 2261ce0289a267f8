# ==============================================
# AuditLogDao
# ==============================================
#
# PURPOSE:
#   Reads and writes audit events for exactly one audit table.
#
# WHY THIS CLASS EXISTS:
#   Audit events may be split across many tables (one per repository).
#   Each table gets its own DAO, bound to (schema, table) for life.
#   Building a DAO creates its table, so a DAO that exists always has
#   a table behind it.
#
# CLASS: AuditLogDao
# ------------------
#   Stateless apart from its table identity. Owns no connection;
#   borrows one from the ConnectionStrategy for every call.
#
#   Constructor:
#   ------------
#   - __init__(table_name, schema_name, connections, dialect=None, codec=None)
#       Validate the table name, resolve the dialect, provision the table.
#
#   Methods:
#   --------
#   - create_table_if_not_exists() -> None
#       Provision table (and indexes) using the dialect. Safe to repeat.
#
#   - write_event(event: AuditEvent) -> bool
#       Insert one row. Fields are stored as JSON in `elements`.
#
#   - find_audit_events_by_actor(actor: str, limit: int | None) -> list[AuditEvent]
#       Newest first. Only for dialects with supports_query.
#
# ==============================================

import logging
import re
from typing import List, Optional

from sqlalchemy import DateTime, String, Text, bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from audit_store.connection.strategy import ConnectionStrategy
from audit_store.dialects.dialect import Dialect, qualify
from audit_store.errors import ConfigurationError, PersistenceError, UnsupportedOperationError
from audit_store.events import AuditEvent
from audit_store.serialization.event_codec import EventCodec

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def check_identifier(value: Optional[str], what: str) -> str:
    """
    Validate a table or schema name before it is spliced into SQL.

    Raises:
        ConfigurationError: empty, whitespace-only, or not a plain identifier
    """
    if value is None or not str(value).strip():
        raise ConfigurationError(f"{what} must not be empty")
    value = str(value).strip()
    if not _IDENTIFIER.match(value):
        raise ConfigurationError(f"{what} {value!r} is not a valid SQL identifier")
    return value


class AuditLogDao:
    """Persistence for one (schema, table) audit table."""

    def __init__(
        self,
        table_name: str,
        schema_name: Optional[str],
        connections: ConnectionStrategy,
        dialect: Optional[Dialect] = None,
        codec: Optional[EventCodec] = None,
    ):
        self._table_name = check_identifier(table_name, "Table name")
        self._schema_name = check_identifier(schema_name, "Schema name") if schema_name else None
        self._connections = connections
        self._dialect = dialect or connections.dialect
        self._codec = codec or EventCodec()

        self._insert = text(self._dialect.insert_sql(self.qualified_name)).bindparams(
            bindparam("timestamp", type_=DateTime())
        )

        self.create_table_if_not_exists()

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def schema_name(self) -> Optional[str]:
        return self._schema_name

    @property
    def qualified_name(self) -> str:
        return qualify(self._schema_name, self._table_name)

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def create_table_if_not_exists(self) -> None:
        """
        Create the audit table (and, where the dialect wants them, its
        indexes) unless they already exist.

        Raises:
            PersistenceError: a DDL statement or catalog probe failed
            DatabaseConnectionError: no connection could be acquired
        """
        try:
            with self._connections.acquire() as conn:
                self._dialect.provision(conn, self._schema_name, self._table_name)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Unable to create table {self.qualified_name}: {e}") from e
        logger.info("Audit table %s ready (%s)", self.qualified_name, self._dialect.name)

    def write_event(self, event: AuditEvent) -> bool:
        """
        Insert one audit event.

        Args:
            event: The event to persist

        Returns:
            True once the row is committed

        Raises:
            PersistenceError: the insert failed (nothing is written)
        """
        params = {
            "identifier": str(event.identifier),
            "timestamp": event.timestamp,
            "actor": event.actor,
            "origin": event.origin,
            "action": event.action,
            "elements": self._codec.encode(event.fields),
        }
        try:
            with self._connections.acquire() as conn:
                conn.execute(self._insert, params)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Unable to write audit event to {self.qualified_name}: {e}") from e
        return True

    def find_audit_events_by_actor(self, actor: str, limit: Optional[int] = None) -> List[AuditEvent]:
        """
        Load the events of one actor, newest first.

        Args:
            actor: Actor to match exactly
            limit: Maximum number of events, or None for all

        Returns:
            Reassembled audit events

        Raises:
            UnsupportedOperationError: the dialect cannot run the query
                (raised before any connection is used)
            PersistenceError: the query failed or a row could not be decoded
        """
        if not self._dialect.supports_query:
            raise UnsupportedOperationError("find_audit_events_by_actor", self._dialect.name)
        if limit is not None and limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")

        query = text(self._dialect.select_by_actor_sql(self.qualified_name, limit is not None)).columns(
            identifier=String,
            timestamp=DateTime,
            actor=String,
            origin=String,
            action=String,
            elements=Text,
        )
        params = {"actor": actor}
        if limit is not None:
            params["limit"] = limit

        try:
            with self._connections.acquire() as conn:
                rows = conn.execute(query, params).mappings().all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Unable to read audit events from {self.qualified_name}: {e}") from e

        return [self._to_event(row) for row in rows]

    def _to_event(self, row) -> AuditEvent:
        return AuditEvent(
            actor=row["actor"],
            action=row["action"],
            origin=row["origin"],
            fields=self._codec.decode(row["elements"]),
            identifier=row["identifier"],
            timestamp=row["timestamp"],
        )

    def __repr__(self):
        return f"<AuditLogDao {self.qualified_name} ({self._dialect.name})>"
