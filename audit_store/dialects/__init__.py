# ==============================================
# DIALECTS
# ==============================================
#
# This package knows how each SQL product creates and queries
# audit tables, and how to tell which product a connection speaks.
#
# Modules:
# --------
# - dialect.py   → Dialect classes (DDL, index DDL, read support)
# - detector.py  → Classify a live connection into a Dialect
#
# ==============================================

from .dialect import (
    DIALECTS,
    Dialect,
    HSQLDialect,
    IndexDefinition,
    MySQLDialect,
    OracleDialect,
    SQLServerDialect,
    qualify,
)
from .detector import classify_product, detect

__all__ = [
    "DIALECTS",
    "Dialect",
    "HSQLDialect",
    "IndexDefinition",
    "MySQLDialect",
    "OracleDialect",
    "SQLServerDialect",
    "qualify",
    "classify_product",
    "detect",
]
