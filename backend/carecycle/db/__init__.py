"""
Database connection for carecycle.

- PostgreSQL: system of record (via SQLAlchemy)
"""

from .postgres import db, init_db, get_db_session

__all__ = [
    "db",
    "init_db",
    "get_db_session",
]
