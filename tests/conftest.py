# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests.
#
# FIXTURES:
# ---------
# - sqlite_url        → URL of a throwaway SQLite file database
# - connections       → Initialized single-connection strategy on it
# - sample_event      → The "alice logs in" event
# - queryable_dialect → Generic SQL that declares read support, so the
#                       read path can run against SQLite
# - RecordingConnection / FakeConnections
#                     → Stand-ins that record SQL for dialects that
#                       cannot run locally (MySQL, Oracle, SQL Server)
#
# ==============================================

from contextlib import contextmanager
from datetime import datetime

import pytest

from audit_store.config import ConnectionConfig
from audit_store.connection.strategy import ConnectionStrategy
from audit_store.dialects.dialect import Dialect
from audit_store.events import AuditEvent, Field


class QueryableDialect(Dialect):
    name = "QueryableGeneric"
    supports_query = True


class FakeResult:
    def __init__(self, value=None, rows=None):
        self._value = value
        self._rows = rows or []

    def scalar(self):
        return self._value

    def mappings(self):
        return self

    def all(self):
        return list(self._rows)


class RecordingConnection:
    """Records every statement; answers probes from `scalars` or `on_execute`."""

    def __init__(self, scalars=None, rows=None, on_execute=None):
        self.statements = []
        self._scalars = scalars or {}
        self._rows = rows or []
        self._on_execute = on_execute

    def execute(self, clause, params=None):
        sql = str(clause)
        params = dict(params or {})
        self.statements.append((sql, params))
        if self._on_execute is not None:
            result = self._on_execute(sql, params)
            if result is not None:
                return result
        for needle, value in self._scalars.items():
            if needle in sql:
                return FakeResult(value)
        if sql.lstrip().upper().startswith("SELECT IDENTIFIER"):
            return FakeResult(rows=self._rows)
        return FakeResult()

    def sql(self):
        return [sql for sql, _ in self.statements]


class FakeConnections:
    """ConnectionStrategy stand-in handing out one RecordingConnection."""

    def __init__(self, conn=None, dialect=None):
        self.conn = conn or RecordingConnection()
        self.dialect = dialect
        self.acquired = 0

    @contextmanager
    def acquire(self):
        self.acquired += 1
        yield self.conn


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'audit.db'}"


@pytest.fixture
def connections(sqlite_url):
    strategy = ConnectionStrategy(ConnectionConfig(url=sqlite_url))
    strategy.init()
    yield strategy
    strategy.stop()


@pytest.fixture
def sample_event():
    return AuditEvent(
        actor="alice",
        action="LOGIN",
        origin="10.0.0.1",
        fields=[Field(name="ip", type="string", value="10.0.0.1")],
        timestamp=datetime(2024, 1, 15, 10, 30, 0, 123456),
    )


@pytest.fixture
def queryable_dialect():
    return QueryableDialect()
