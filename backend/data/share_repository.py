"""Storage for shareable report links"""

import json
import logging
from typing import Any, Dict, Optional

from data.db_wrapper import get_db
from schemas.domain import SharedReport
from utils.periods import to_datetime, utc_now

logger = logging.getLogger(__name__)


class ShareRepository:

    def __init__(self, db=None):
        self.db = db or get_db()

    def insert(self, report: SharedReport) -> bool:
        """Insert a share; False when the token is already taken"""
        row = self.db.execute_returning(
            """
            INSERT INTO shared_reports (
                share_token, evaluation_id, title, sanitized_payload,
                expires_at, view_count, created_at
            ) VALUES (%s, %s, %s, %s, %s, 0, %s)
            ON CONFLICT (share_token) DO NOTHING
            RETURNING share_token
            """,
            (
                report.share_token,
                report.evaluation_id,
                report.title,
                json.dumps(report.sanitized_payload),
                report.expires_at.isoformat(),
                report.created_at.isoformat(),
            ),
        )
        return row is not None

    def get_by_token(self, share_token: str) -> Optional[SharedReport]:
        row = self.db.execute_query(
            "SELECT * FROM shared_reports WHERE share_token = %s",
            (share_token,),
        )
        return self._to_report(row) if row else None

    def increment_view_count(self, share_token: str) -> bool:
        affected = self.db.execute_write(
            """
            UPDATE shared_reports
            SET view_count = view_count + 1, last_viewed_at = %s
            WHERE share_token = %s
            """,
            (utc_now().isoformat(), share_token),
        )
        return affected > 0

    @staticmethod
    def _to_report(row: Dict[str, Any]) -> SharedReport:
        return SharedReport(
            share_token=row["share_token"],
            evaluation_id=row["evaluation_id"],
            title=row["title"],
            sanitized_payload=json.loads(row["sanitized_payload"]),
            expires_at=to_datetime(row["expires_at"]),
            view_count=row["view_count"],
            last_viewed_at=to_datetime(row.get("last_viewed_at")),
            created_at=to_datetime(row["created_at"]),
        )
