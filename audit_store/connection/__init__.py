# ==============================================
# CONNECTION
# ==============================================
#
# This package decides how the audit store gets database
# connections and owns the optional embedded database.
#
# Modules:
# --------
# - strategy.py   → ConnectionStrategy (single / pooled / jndi)
# - directory.py  → Named data source registry for jndi lookups
# - embedded.py   → SQLite-backed embedded database service
#
# ==============================================

from .directory import DataSourceDirectory, default_directory
from .embedded import EmbeddedDatabaseServer
from .strategy import ConnectionStrategy

__all__ = [
    "ConnectionStrategy",
    "DataSourceDirectory",
    "EmbeddedDatabaseServer",
    "default_directory",
]
