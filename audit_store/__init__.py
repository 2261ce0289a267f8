# ==============================================
# Audit Store
# ==============================================
#
# Persists audit events into relational tables and reads them
# back by actor, across MySQL, Oracle, SQL Server, HSQL and
# generic SQL databases.
#
# Package Structure:
#
# audit_store/
# ├── connection/      # How connections are obtained (single / pooled / jndi)
# ├── dialects/        # Per-product DDL, indexes, read support, detection
# ├── serialization/   # Event field list <-> JSON text
# ├── storage/         # Per-table DAOs and the build-once DAO cache
# ├── config.py        # Configuration management
# ├── errors.py        # Error taxonomy
# ├── events.py        # AuditEvent / Field model
# └── handler.py       # DatabaseAuditHandler orchestrator
#
# ==============================================

from audit_store.config import AuditStoreConfig, ConnectionConfig, ConnectionType, get_config
from audit_store.errors import (
    AuditStoreError,
    CacheBuildError,
    ConfigurationError,
    DatabaseConnectionError,
    EventCodecError,
    InitializationError,
    PersistenceError,
    UnsupportedOperationError,
)
from audit_store.events import AuditEvent, Field
from audit_store.handler import DatabaseAuditHandler

__version__ = "0.1.0"

__all__ = [
    "AuditEvent",
    "AuditStoreConfig",
    "AuditStoreError",
    "CacheBuildError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionType",
    "DatabaseAuditHandler",
    "DatabaseConnectionError",
    "EventCodecError",
    "Field",
    "InitializationError",
    "PersistenceError",
    "UnsupportedOperationError",
    "get_config",
]
