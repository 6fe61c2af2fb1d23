"""
Database module - pool lifecycle and per-table query modules
"""
from database.db import (
    init_db, close_db, get_connection, transaction,
    check_db_health, escape_like, paginate,
)

__all__ = [
    "init_db",
    "close_db",
    "get_connection",
    "transaction",
    "check_db_health",
    "escape_like",
    "paginate",
]
