# ==============================================
# STORAGE
# ==============================================
#
# This package handles the audit tables themselves:
# creating them, writing events, reading them back.
#
# Modules:
# --------
# - audit_log_dao.py  → One DAO per (schema, table): provision, write, find
# - dao_cache.py      → Build-once, bounded, expiring cache of DAOs
#
# ==============================================

from .audit_log_dao import AuditLogDao, check_identifier
from .dao_cache import DaoCache

__all__ = [
    "AuditLogDao",
    "DaoCache",
    "check_identifier",
]
