"""PostgreSQL database connection and utilities for production"""

import os
import psycopg2
import psycopg2.extras
from typing import Optional, Dict, Any
from contextlib import contextmanager


class PostgreSQLConnection:
    """PostgreSQL database connection manager for production use"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or os.environ.get("DATABASE_URL")
        if not self.database_url:
            raise ValueError("DATABASE_URL environment variable is required for PostgreSQL")

        self._ensure_tables_exist()

    def _ensure_tables_exist(self):
        """Ensure all required tables exist (migration-friendly)"""
        with self.get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS identities (
                        email TEXT PRIMARY KEY,
                        tier TEXT NOT NULL DEFAULT 'free',
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                # Quota counters, one row per identity or IP key
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS usage_counters (
                        counter_key TEXT PRIMARY KEY,
                        monthly_count INTEGER NOT NULL DEFAULT 0 CHECK (monthly_count >= 0),
                        period_label TEXT NOT NULL,
                        bonus_credits INTEGER NOT NULL DEFAULT 0 CHECK (bonus_credits >= 0),
                        last_updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cursor.execute("""
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
                        used_ai BOOLEAN NOT NULL DEFAULT TRUE,
                        fallback_reason TEXT,
                        requester_key TEXT,
                        created_at TIMESTAMPTZ NOT NULL
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS shared_reports (
                        id SERIAL PRIMARY KEY,
                        share_token TEXT UNIQUE NOT NULL,
                        evaluation_id TEXT NOT NULL,
                        title TEXT NOT NULL,
                        sanitized_payload TEXT NOT NULL,
                        expires_at TIMESTAMPTZ NOT NULL,
                        view_count INTEGER NOT NULL DEFAULT 0,
                        last_viewed_at TIMESTAMPTZ,
                        created_at TIMESTAMPTZ NOT NULL
                    )
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_evaluations_requester_created
                    ON evaluations(requester_key, created_at)
                """)

                conn.commit()

    @contextmanager
    def get_connection(self):
        """Get database connection context manager with RealDictCursor"""
        conn = psycopg2.connect(
            self.database_url,
            cursor_factory=psycopg2.extras.RealDictCursor
        )
        try:
            yield conn
        finally:
            conn.close()

    def execute_query(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute a single query and return first result as dict"""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(query, params)
                result = cursor.fetchone()
                return dict(result) if result else None

    def execute_write(self, query: str, params: tuple = ()) -> int:
        """Execute INSERT/UPDATE/DELETE and return number of affected rows"""
        with self.get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                conn.commit()
                return cursor.rowcount or 0

    def execute_returning(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute a write with a RETURNING clause and return the row, if any"""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(query, params)
                result = cursor.fetchone()
                conn.commit()
                return dict(result) if result else None
