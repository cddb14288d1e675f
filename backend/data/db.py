"""SQLite database connection and utilities for development and tests"""

import sqlite3
from typing import Optional, Dict, Any
from contextlib import contextmanager


class DatabaseConnection:
    """SQLite database connection manager

    Queries are written once with psycopg2-style ``%s`` placeholders and
    translated here, so repositories run unchanged against both backends.
    """

    def __init__(self, db_path: str = "ad_alignment.db"):
        self.db_path = db_path
        self._ensure_tables_exist()

    def _ensure_tables_exist(self):
        """Ensure all required tables exist (migration-friendly for existing databases)"""
        with self.get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS identities (
                    email TEXT PRIMARY KEY,
                    tier TEXT NOT NULL DEFAULT 'free',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS usage_counters (
                    counter_key TEXT PRIMARY KEY,
                    monthly_count INTEGER NOT NULL DEFAULT 0 CHECK (monthly_count >= 0),
                    period_label TEXT NOT NULL,
                    bonus_credits INTEGER NOT NULL DEFAULT 0 CHECK (bonus_credits >= 0),
                    last_updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS evaluations (
                    id TEXT PRIMARY KEY,
                    platform TEXT NOT NULL,
                    ad_source_type TEXT NOT NULL,
                    media_type TEXT NOT NULL,
                    landing_page_url TEXT NOT NULL,
                    overall_score INTEGER NOT NULL,
                    visual_score INTEGER NOT NULL,
                    contextual_score INTEGER NOT NULL,
                    tone_score INTEGER NOT NULL,
                    analysis_mode TEXT NOT NULL,
                    analysis_json TEXT NOT NULL,
                    used_ai INTEGER NOT NULL DEFAULT 1,
                    fallback_reason TEXT,
                    requester_key TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS shared_reports (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    share_token TEXT UNIQUE NOT NULL,
                    evaluation_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    sanitized_payload TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    view_count INTEGER NOT NULL DEFAULT 0,
                    last_viewed_at TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_evaluations_requester_created
                ON evaluations(requester_key, created_at)
            """)

            conn.commit()

    @staticmethod
    def _translate(query: str) -> str:
        return query.replace("%s", "?")

    @contextmanager
    def get_connection(self):
        """Get database connection context manager"""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        try:
            yield conn
        finally:
            conn.close()

    def execute_query(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute a single query and return first result as dict"""
        with self.get_connection() as conn:
            cursor = conn.execute(self._translate(query), params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def execute_write(self, query: str, params: tuple = ()) -> int:
        """Execute INSERT/UPDATE/DELETE and return number of affected rows"""
        with self.get_connection() as conn:
            cursor = conn.execute(self._translate(query), params)
            affected_rows = cursor.rowcount
            conn.commit()
            return affected_rows

    def execute_returning(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute a write with a RETURNING clause and return the row, if any"""
        with self.get_connection() as conn:
            cursor = conn.execute(self._translate(query), params)
            row = cursor.fetchone()
            conn.commit()
            return dict(row) if row else None
