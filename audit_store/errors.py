# ==============================================
# Error Taxonomy
# ==============================================
#
# PURPOSE:
#   Every failure the audit store surfaces to its caller is one of
#   the classes below. Driver exceptions never leak out raw; they are
#   chained with `raise ... from exc` so the original stays reachable
#   through __cause__.
#
# HIERARCHY:
# ----------
#   AuditStoreError
#   ├── ConfigurationError        → bad/missing configuration, bad table name
#   ├── DatabaseConnectionError   → connection could not be opened/acquired
#   ├── InitializationError       → startup failed, handler not ready
#   ├── PersistenceError          → a write or read statement failed
#   │   └── EventCodecError       → stored elements could not be decoded
#   ├── UnsupportedOperationError → read requested on a dialect without support
#   └── CacheBuildError           → a DAO cache build failed (wraps the cause)
#
# ==============================================

from typing import Optional


class AuditStoreError(Exception):
    """Base class for all audit store errors."""


class ConfigurationError(AuditStoreError):
    """Raised when configuration is missing or invalid."""


class DatabaseConnectionError(AuditStoreError):
    """Raised when a database connection cannot be opened or acquired."""


class InitializationError(AuditStoreError):
    """Raised when the handler fails to start. The handler stays not-ready."""


class PersistenceError(AuditStoreError):
    """Raised when a statement against an audit table fails."""


class EventCodecError(PersistenceError):
    """Raised when a persisted field list cannot be encoded or decoded."""


class UnsupportedOperationError(AuditStoreError):
    """Raised when a dialect does not support the requested operation."""

    def __init__(self, operation: str, dialect: str):
        super().__init__(f"{operation} is not implemented for {dialect}")
        self.operation = operation
        self.dialect = dialect


class CacheBuildError(AuditStoreError):
    """Raised when building a cached DAO fails."""

    def __init__(self, key: str, cause: Optional[BaseException] = None):
        message = f"Unable to build DAO for table '{key}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.key = key
