# ==============================================
# DialectDetector
# ==============================================
#
# PURPOSE:
#   Decide which Dialect a live connection speaks.
#
#   classify_product(name) is pure: the same product name always maps
#   to the same dialect. detect(conn) only reads connection metadata
#   (the SQLAlchemy dialect name, or the DBAPI module name when the
#   dialect has none) and never runs a query.
#
#   Matching (case-insensitive substring, first hit wins):
#     "mysql" / "mariadb"                → MySQL
#     "oracle"                           → Oracle
#     "hsql"                             → HSQL
#     "mssql" / "sql server" / "sqlserver" → SQLServer
#     anything else                      → Generic
#
# ==============================================

from typing import Optional

from audit_store.dialects.dialect import GENERIC, HSQL, MYSQL, ORACLE, SQLSERVER, Dialect

_PRODUCT_PATTERNS = (
    (("mysql", "mariadb"), MYSQL),
    (("oracle",), ORACLE),
    (("hsql",), HSQL),
    (("mssql", "sql server", "sqlserver"), SQLSERVER),
)


def classify_product(product_name: Optional[str]) -> Dialect:
    if not product_name:
        return GENERIC
    normalized = product_name.lower()
    for needles, dialect in _PRODUCT_PATTERNS:
        if any(needle in normalized for needle in needles):
            return dialect
    return GENERIC


def product_name(conn) -> Optional[str]:
    """Return the product identity reported by a SQLAlchemy connection."""
    sa_dialect = getattr(conn, "dialect", None)
    if sa_dialect is None:
        return None
    name = getattr(sa_dialect, "name", None)
    if name and name != "default":
        return name
    dbapi = getattr(sa_dialect, "dbapi", None)
    return getattr(dbapi, "__name__", None)


def detect(conn) -> Dialect:
    return classify_product(product_name(conn))
