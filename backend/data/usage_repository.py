"""
Persistence for usage counters and identity tiers.

Every counter mutation is a single atomic statement; nothing here reads a
counter and writes it back.
"""
import logging
from typing import Any, Dict, Optional

from data.db_wrapper import get_db

logger = logging.getLogger(__name__)


class UsageRepository:
    """usage_counters and identities tables"""

    def __init__(self, db=None):
        self.db = db or get_db()

    # Counters

    def get_counter(self, counter_key: str) -> Optional[Dict[str, Any]]:
        return self.db.execute_query(
            """
            SELECT counter_key, monthly_count, period_label, bonus_credits, last_updated_at
            FROM usage_counters
            WHERE counter_key = %s
            """,
            (counter_key,),
        )

    def ensure_counter(self, counter_key: str, period: str, bonus_credits: int = 0) -> bool:
        """Create an empty counter row; True if it did not exist before"""
        created = self.db.execute_write(
            """
            INSERT INTO usage_counters (counter_key, monthly_count, period_label, bonus_credits, last_updated_at)
            VALUES (%s, 0, %s, %s, CURRENT_TIMESTAMP)
            ON CONFLICT (counter_key) DO NOTHING
            """,
            (counter_key, period, bonus_credits),
        )
        return created > 0

    def reserve_unit(self, counter_key: str, period: str, base_limit: int) -> Optional[int]:
        """
        Atomically take one unit if the key is still under its limit.

        A row from an older period restarts at 1. Returns the new count, or
        None when a concurrent reservation already used the last unit.
        """
        row = self.db.execute_returning(
            """
            INSERT INTO usage_counters (counter_key, monthly_count, period_label, bonus_credits, last_updated_at)
            VALUES (%s, 1, %s, 0, CURRENT_TIMESTAMP)
            ON CONFLICT (counter_key) DO UPDATE SET
                monthly_count = CASE
                    WHEN usage_counters.period_label = excluded.period_label
                    THEN usage_counters.monthly_count + 1
                    ELSE 1
                END,
                period_label = excluded.period_label,
                last_updated_at = CURRENT_TIMESTAMP
            WHERE usage_counters.period_label <> excluded.period_label
               OR usage_counters.monthly_count < %s + usage_counters.bonus_credits
            RETURNING monthly_count
            """,
            (counter_key, period, base_limit),
        )
        return row["monthly_count"] if row else None

    def release_unit(self, counter_key: str, period: str) -> bool:
        """Give back one unit taken in ``period``; never goes below zero"""
        affected = self.db.execute_write(
            """
            UPDATE usage_counters
            SET monthly_count = monthly_count - 1, last_updated_at = CURRENT_TIMESTAMP
            WHERE counter_key = %s AND period_label = %s AND monthly_count > 0
            """,
            (counter_key, period),
        )
        return affected > 0

    def reset_counter(self, counter_key: str) -> bool:
        affected = self.db.execute_write(
            """
            UPDATE usage_counters
            SET monthly_count = 0, last_updated_at = CURRENT_TIMESTAMP
            WHERE counter_key = %s
            """,
            (counter_key,),
        )
        return affected > 0

    def add_bonus(self, counter_key: str, period: str, credits: int) -> Optional[int]:
        row = self.db.execute_returning(
            """
            INSERT INTO usage_counters (counter_key, monthly_count, period_label, bonus_credits, last_updated_at)
            VALUES (%s, 0, %s, %s, CURRENT_TIMESTAMP)
            ON CONFLICT (counter_key) DO UPDATE SET
                bonus_credits = usage_counters.bonus_credits + excluded.bonus_credits,
                last_updated_at = CURRENT_TIMESTAMP
            RETURNING bonus_credits
            """,
            (counter_key, period, credits),
        )
        return row["bonus_credits"] if row else None

    # Identities

    def get_identity(self, email: str) -> Optional[Dict[str, Any]]:
        return self.db.execute_query(
            "SELECT email, tier, created_at, updated_at FROM identities WHERE email = %s",
            (email,),
        )

    def register_identity(self, email: str, tier: str) -> bool:
        """Insert the identity if unknown; True when this call created it"""
        created = self.db.execute_write(
            """
            INSERT INTO identities (email, tier, created_at, updated_at)
            VALUES (%s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            ON CONFLICT (email) DO NOTHING
            """,
            (email, tier),
        )
        return created > 0

    def set_tier(self, email: str, tier: str) -> None:
        self.db.execute_write(
            """
            INSERT INTO identities (email, tier, created_at, updated_at)
            VALUES (%s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            ON CONFLICT (email) DO UPDATE SET tier = excluded.tier, updated_at = CURRENT_TIMESTAMP
            """,
            (email, tier),
        )
        logger.info(f"Tier for {email[:3]}*** set to {tier}")
