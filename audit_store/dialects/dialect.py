# ==============================================
# Dialects
# ==============================================
#
# PURPOSE:
#   Everything that differs between SQL products when creating and
#   querying audit tables lives here, one class per product.
#
# WHY THIS FILE EXISTS:
#   The audit table has the same six logical columns everywhere, but
#   each product spells the column types and the "create only if
#   missing" guard differently, MySQL additionally gets indexes, and
#   only some products have a working read query. The DAO asks its
#   dialect instead of branching on product names.
#
# CLASSES:
# --------
# - Dialect            → Generic SQL; base class for the others
# - MySQLDialect       → IF NOT EXISTS + guarded indexes, supports reads
# - OracleDialect      → all_tables probe, then CREATE TABLE
# - HSQLDialect        → IF NOT EXISTS with LONGVARCHAR
# - SQLServerDialect   → IF OBJECT_ID(...) IS NULL BEGIN ... END
#
#   Capabilities every dialect exposes:
#   -----------------------------------
#   - ddl_for_create_table(qualified_name) -> str
#   - ddl_for_indexes(schema, table_name) -> list[IndexDefinition]
#   - supports_query: bool
#   - provision(conn, schema, table_name) -> None
#       Create table (and indexes) if missing. Safe to repeat.
#   - insert_sql(qualified_name) / select_by_actor_sql(qualified_name, limited)
#
# ==============================================

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from pymysql.constants import ER
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)


def qualify(schema: Optional[str], table_name: str) -> str:
    """Return `schema.table` or just `table` when no schema is set."""
    if schema:
        return f"{schema}.{table_name}"
    return table_name


@dataclass(frozen=True)
class IndexDefinition:
    """An index to create on an audit table."""
    name: str
    column: str
    order: str
    ddl: str


class Dialect:
    """Generic SQL. Used for any product not recognized below."""

    name = "Generic"
    supports_query = False

    string_type = "VARCHAR(200)"
    timestamp_type = "TIMESTAMP"
    elements_type = "VARCHAR(70000)"

    # (column, order) pairs indexed by ddl_for_indexes()
    index_columns = ()

    def column_definitions(self) -> str:
        s = self.string_type
        return (
            f"identifier {s} NOT NULL, "
            f"timestamp {self.timestamp_type} NOT NULL, "
            f"actor {s} NOT NULL, "
            f"origin {s}, "
            f"action {s} NOT NULL, "
            f"elements {self.elements_type}"
        )

    def ddl_for_create_table(self, qualified_name: str) -> str:
        return f"CREATE TABLE IF NOT EXISTS {qualified_name} ({self.column_definitions()})"

    def ddl_for_indexes(self, schema: Optional[str], table_name: str) -> List[IndexDefinition]:
        return []

    def insert_sql(self, qualified_name: str) -> str:
        return (
            f"INSERT INTO {qualified_name} "
            "(identifier, timestamp, actor, origin, action, elements) "
            "VALUES (:identifier, :timestamp, :actor, :origin, :action, :elements)"
        )

    def select_by_actor_sql(self, qualified_name: str, limited: bool) -> str:
        query = (
            "SELECT identifier, timestamp, actor, origin, action, elements "
            f"FROM {qualified_name} WHERE actor = :actor ORDER BY timestamp DESC"
        )
        if limited:
            query += " LIMIT :limit"
        return query

    def create_table(self, conn, schema: Optional[str], table_name: str) -> None:
        conn.execute(text(self.ddl_for_create_table(qualify(schema, table_name))))

    def current_schema(self, conn) -> Optional[str]:
        return None

    def index_exists(self, conn, schema: Optional[str], table_name: str, index: IndexDefinition) -> bool:
        return False

    def create_index(self, conn, index: IndexDefinition) -> None:
        conn.execute(text(index.ddl))

    def provision(self, conn, schema: Optional[str], table_name: str) -> None:
        """
        Create the audit table and its indexes if they do not exist yet.

        Args:
            conn: Open SQLAlchemy connection
            schema: Optional schema name
            table_name: Audit table name
        """
        self.create_table(conn, schema, table_name)
        if not self.index_columns:
            return

        index_schema = schema or self.current_schema(conn)
        for index in self.ddl_for_indexes(index_schema, table_name):
            if self.index_exists(conn, index_schema, table_name, index):
                continue
            self.create_index(conn, index)
            logger.info("Created index %s on %s", index.name, qualify(index_schema, table_name))

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class MySQLDialect(Dialect):
    """MySQL and MariaDB."""

    name = "MySQL"
    supports_query = True
    elements_type = "TEXT"

    index_columns = (("actor", "ASC"), ("timestamp", "DESC"))

    def ddl_for_indexes(self, schema: Optional[str], table_name: str) -> List[IndexDefinition]:
        indexes = []
        for column, order in self.index_columns:
            index_name = f"{schema}_{table_name}_{column}_IDX" if schema else f"{table_name}_{column}_IDX"
            ddl = (
                f"ALTER TABLE {qualify(schema, table_name)} "
                f"ADD INDEX `{index_name}` (`{column}` {order})"
            )
            indexes.append(IndexDefinition(name=index_name, column=column, order=order, ddl=ddl))
        return indexes

    def select_by_actor_sql(self, qualified_name: str, limited: bool) -> str:
        query = (
            "SELECT identifier, `timestamp`, actor, origin, `action`, elements "
            f"FROM {qualified_name} WHERE actor = :actor ORDER BY `timestamp` DESC"
        )
        if limited:
            query += " LIMIT :limit"
        return query

    def current_schema(self, conn) -> Optional[str]:
        return conn.execute(text("SELECT DATABASE()")).scalar()

    def index_exists(self, conn, schema: Optional[str], table_name: str, index: IndexDefinition) -> bool:
        query = (
            "SELECT COUNT(*) FROM INFORMATION_SCHEMA.STATISTICS "
            "WHERE TABLE_NAME = :table_name AND INDEX_NAME = :index_name"
        )
        params = {"table_name": table_name, "index_name": index.name}
        if schema:
            query += " AND TABLE_SCHEMA = :schema"
            params["schema"] = schema
        count = conn.execute(text(query), params).scalar()
        return bool(count)

    def create_index(self, conn, index: IndexDefinition) -> None:
        try:
            conn.execute(text(index.ddl))
        except DBAPIError as e:
            # Another process created it between the probe and the ALTER
            args = getattr(e.orig, "args", ())
            if args and args[0] == ER.DUP_KEYNAME:
                logger.info("Index %s already exists", index.name)
                return
            raise


class OracleDialect(Dialect):
    """Oracle. Has no IF NOT EXISTS, so the catalog is probed first."""

    name = "Oracle"
    string_type = "VARCHAR2(200)"
    elements_type = "CLOB"

    def ddl_for_create_table(self, qualified_name: str) -> str:
        return f"CREATE TABLE {qualified_name} ({self.column_definitions()})"

    def table_exists(self, conn, schema: Optional[str], table_name: str) -> bool:
        query = "SELECT COUNT(*) FROM all_tables WHERE table_name = UPPER(:table_name)"
        params = {"table_name": table_name}
        if schema:
            query += " AND owner = UPPER(:schema)"
            params["schema"] = schema
        return bool(conn.execute(text(query), params).scalar())

    def create_table(self, conn, schema: Optional[str], table_name: str) -> None:
        if self.table_exists(conn, schema, table_name):
            return
        super().create_table(conn, schema, table_name)


class HSQLDialect(Dialect):
    """HyperSQL."""

    name = "HSQL"
    elements_type = "LONGVARCHAR"


class SQLServerDialect(Dialect):
    """Microsoft SQL Server."""

    name = "SQLServer"
    timestamp_type = "DATETIME"
    elements_type = "TEXT"

    def ddl_for_create_table(self, qualified_name: str) -> str:
        return (
            f"IF OBJECT_ID(N'{qualified_name}', N'U') IS NULL BEGIN "
            f"CREATE TABLE {qualified_name} ({self.column_definitions()}) "
            "END"
        )


GENERIC = Dialect()
MYSQL = MySQLDialect()
ORACLE = OracleDialect()
HSQL = HSQLDialect()
SQLSERVER = SQLServerDialect()

DIALECTS: Dict[str, Dialect] = {d.name: d for d in (GENERIC, MYSQL, ORACLE, HSQL, SQLSERVER)}
