"""Unified database wrapper - PostgreSQL in production, SQLite in dev"""

from functools import lru_cache

from config import config


@lru_cache(maxsize=1)
def get_db():
    """Get appropriate database connection based on environment"""
    if config.USE_POSTGRES:
        from data.postgres_db import PostgreSQLConnection
        return PostgreSQLConnection(config.DATABASE_URL)
    else:
        from data.db import DatabaseConnection
        return DatabaseConnection(config.SQLITE_PATH)
