# ==============================================
# EmbeddedDatabaseServer
# ==============================================
#
# PURPOSE:
#   Lets the audit handler run without any external database. The
#   "server" is a SQLite file: start() creates it and keeps one
#   connection open for the lifetime of the service, shutdown()
#   releases it.
#
# CLASS: EmbeddedDatabaseServer
# -----------------------------
#   Attributes:
#   -----------
#   - driver: str             → DBAPI driver identifier ("pysqlite")
#   - network_protocol: str   → URL backend ("sqlite")
#   - database_path: Path     → SQLite file
#   - uname / password        → Credentials handed out to clients.
#                               SQLite does not check them.
#
#   Methods:
#   --------
#   - url() -> str        → SQLAlchemy URL clients should connect to
#   - start() -> None     → Idempotent (raises DatabaseConnectionError)
#   - shutdown() -> None  → Idempotent
#
# ==============================================

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional, Union

from audit_store.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

EMBEDDED_DB_USER = "auditdbuser"
EMBEDDED_DB_PASSWORD = "auditdbpassword"


class EmbeddedDatabaseServer:
    driver = "pysqlite"
    network_protocol = "sqlite"

    def __init__(self, database_path: Union[str, Path] = "auditdb.sqlite"):
        self.database_path = Path(database_path)
        self.uname: Optional[str] = None
        self.password: Optional[str] = None
        self._keepalive: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._keepalive is not None

    def url(self) -> str:
        return f"{self.network_protocol}+{self.driver}:///{self.database_path}"

    def start(self) -> None:
        with self._lock:
            if self._keepalive is not None:
                return
            try:
                self.database_path.parent.mkdir(parents=True, exist_ok=True)
                self._keepalive = sqlite3.connect(str(self.database_path), check_same_thread=False)
            except (OSError, sqlite3.Error) as e:
                raise DatabaseConnectionError(
                    f"Unable to start embedded database at {self.database_path}: {e}"
                ) from e
        logger.info("Embedded audit database started at %s", self.database_path)

    def shutdown(self) -> None:
        with self._lock:
            keepalive, self._keepalive = self._keepalive, None
        if keepalive is not None:
            keepalive.close()
            logger.info("Embedded audit database stopped")
