# ==============================================
# DataSourceDirectory
# ==============================================
#
# PURPOSE:
#   A process-wide name → data source registry. Applications bind
#   their SQLAlchemy engines under a name at startup; connection
#   strategies configured for directory lookup ("jndi") resolve the
#   engine by that name when they initialize.
#
# USAGE:
# ------
#   from audit_store.connection.directory import default_directory
#   default_directory.bind("jdbc/audit", engine)
#   ...
#   ConnectionConfig(connection_type="jndi", jndi_data_source="jdbc/audit")
#
# ==============================================

import threading
from typing import Dict, List

from sqlalchemy.engine import Engine

from audit_store.errors import ConfigurationError


class DataSourceDirectory:
    """Thread-safe registry of named data sources."""

    def __init__(self):
        self._sources: Dict[str, Engine] = {}
        self._lock = threading.Lock()

    def bind(self, name: str, data_source: Engine) -> None:
        """Bind (or rebind) a data source under a name."""
        if not name or not name.strip():
            raise ConfigurationError("Data source name must not be empty")
        with self._lock:
            self._sources[name] = data_source

    def unbind(self, name: str) -> None:
        with self._lock:
            self._sources.pop(name, None)

    def lookup(self, name: str) -> Engine:
        """
        Resolve a data source by name.

        Raises:
            ConfigurationError: nothing is bound under the name
        """
        with self._lock:
            data_source = self._sources.get(name)
        if data_source is None:
            raise ConfigurationError(f"No data source bound under '{name}'")
        return data_source

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._sources)


default_directory = DataSourceDirectory()
