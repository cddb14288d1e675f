"""
Monthly evaluation quotas for identities (tier based) and anonymous IPs.

Counters roll over lazily: a stored row whose period label is not the
current month counts as zero for decisions, and is physically restarted by
the next successful reservation for that key. A counter can therefore
still show last month's number until somebody writes to it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from config import config
from data.usage_repository import UsageRepository
from schemas.domain import Tier
from utils.periods import next_period_start, period_label, utc_now

logger = logging.getLogger(__name__)

TIER_ALLOWANCES: Dict[Tier, int] = {
    Tier.FREE: 1,
    Tier.PRO: 25,
    Tier.AGENCY: 200,
    Tier.ENTERPRISE: 2000,
}


def identity_key(email: str) -> str:
    return f"user:{email.strip().lower()}"


def ip_key(address: str) -> str:
    return f"ip:{address.strip()}"


@dataclass(frozen=True)
class QuotaSubject:
    """Who an evaluation is charged to: an identity or an anonymous IP"""
    counter_key: str
    email: Optional[str] = None
    ip_address: Optional[str] = None
    tier: Optional[Tier] = None  # Known tier from an upstream auth collaborator

    @property
    def is_identity(self) -> bool:
        return self.email is not None

    @classmethod
    def for_identity(cls, email: str, tier: Optional[Tier] = None) -> "QuotaSubject":
        normalized = email.strip().lower()
        return cls(counter_key=identity_key(normalized), email=normalized, tier=tier)

    @classmethod
    def for_ip(cls, address: str) -> "QuotaSubject":
        return cls(counter_key=ip_key(address), ip_address=address.strip())


@dataclass(frozen=True)
class UsageSnapshot:
    used: int
    limit: int
    next_reset_at: datetime
    tier: Optional[Tier] = None

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def can_evaluate(self) -> bool:
        return self.used < self.limit


@dataclass
class QuotaReservation:
    """
    Outcome of check_and_reserve.

    ``used`` and ``remaining`` describe the counter as it stood before this
    reservation took its unit.
    """
    subject: QuotaSubject
    allowed: bool
    used: int
    limit: int
    next_reset_at: datetime
    period: str
    tier: Optional[Tier] = None
    state: str = "reserved"

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def is_pending(self) -> bool:
        return self.allowed and self.state == "reserved"


class UsageQuotaEngine:
    """Check-and-reserve gate in front of the vision analysis"""

    def __init__(
        self,
        repository: Optional[UsageRepository] = None,
        clock: Callable[[], datetime] = utc_now,
        ip_monthly_limit: Optional[int] = None,
        signup_bonus_credits: Optional[int] = None,
    ):
        self.repository = repository or UsageRepository()
        self.clock = clock
        self.ip_monthly_limit = ip_monthly_limit if ip_monthly_limit is not None else config.IP_MONTHLY_LIMIT
        self.signup_bonus_credits = (
            signup_bonus_credits if signup_bonus_credits is not None else config.SIGNUP_BONUS_CREDITS
        )

    @staticmethod
    def effective_count(counter: Optional[Dict], period: str) -> int:
        """Stored count if it belongs to ``period``, otherwise zero"""
        if not counter or counter.get("period_label") != period:
            return 0
        return int(counter.get("monthly_count") or 0)

    def _base_allowance(self, subject: QuotaSubject, tier: Optional[Tier]) -> int:
        if subject.is_identity:
            return TIER_ALLOWANCES[tier or Tier.FREE]
        return self.ip_monthly_limit

    def _lookup_tier(self, subject: QuotaSubject) -> Optional[Tier]:
        if not subject.is_identity:
            return None
        if subject.tier is not None:
            return subject.tier
        identity = self.repository.get_identity(subject.email)
        if identity is None:
            return Tier.FREE
        try:
            return Tier(identity["tier"])
        except ValueError:
            logger.warning(f"Unknown tier {identity['tier']!r} stored for identity, treating as free")
            return Tier.FREE

    def _ensure_identity(self, subject: QuotaSubject, period: str) -> None:
        """First sight of an identity registers it on free with the signup bonus"""
        if self.repository.register_identity(subject.email, (subject.tier or Tier.FREE).value):
            self.repository.ensure_counter(subject.counter_key, period, self.signup_bonus_credits)
            logger.info(f"🆕 Registered identity with {self.signup_bonus_credits} signup bonus credits")

    def get_usage(self, subject: QuotaSubject) -> UsageSnapshot:
        """Read-only view of the subject's quota for the current period"""
        now = self.clock()
        period = period_label(now)
        tier = self._lookup_tier(subject)
        counter = self.repository.get_counter(subject.counter_key)

        if counter is not None:
            bonus = int(counter.get("bonus_credits") or 0)
        elif subject.is_identity and self.repository.get_identity(subject.email) is None:
            # What registration would grant, without writing anything
            bonus = self.signup_bonus_credits
        else:
            bonus = 0

        return UsageSnapshot(
            used=self.effective_count(counter, period),
            limit=self._base_allowance(subject, tier) + bonus,
            next_reset_at=next_period_start(now),
            tier=tier,
        )

    def check_and_reserve(self, subject: QuotaSubject) -> QuotaReservation:
        """
        Decide whether the subject may run one more evaluation and, if so,
        take the unit atomically.

        The conditional upsert is the only write; when it matches no row a
        concurrent request got the last unit and this one is denied.
        """
        now = self.clock()
        period = period_label(now)
        next_reset = next_period_start(now)

        if subject.is_identity:
            self._ensure_identity(subject, period)
        tier = self._lookup_tier(subject)
        base = self._base_allowance(subject, tier)

        counter = self.repository.get_counter(subject.counter_key)
        used = self.effective_count(counter, period)
        limit = base + int((counter or {}).get("bonus_credits") or 0)

        def denied(used_count: int) -> QuotaReservation:
            logger.info(f"🚫 Quota exhausted for {subject.counter_key[:8]}***: {used_count}/{limit}")
            return QuotaReservation(
                subject=subject, allowed=False, used=used_count, limit=limit,
                next_reset_at=next_reset, period=period, tier=tier, state="denied",
            )

        if used >= limit:
            return denied(used)

        new_count = self.repository.reserve_unit(subject.counter_key, period, base)
        if new_count is None:
            return denied(limit)

        logger.info(f"🎟️  Reserved evaluation {new_count}/{limit} for {subject.counter_key[:8]}***")
        return QuotaReservation(
            subject=subject, allowed=True, used=used, limit=limit,
            next_reset_at=next_reset, period=period, tier=tier,
        )

    def commit(self, reservation: QuotaReservation) -> None:
        """Make the reservation permanent; the unit is already counted"""
        if not reservation.is_pending:
            logger.warning(f"Ignoring commit of {reservation.state} reservation")
            return
        reservation.state = "committed"

    def release(self, reservation: QuotaReservation) -> None:
        """Hand the unit back when the evaluation failed before analysis"""
        if not reservation.is_pending:
            return
        self.repository.release_unit(reservation.subject.counter_key, reservation.period)
        reservation.state = "released"
        logger.info(f"↩️  Released reservation for {reservation.subject.counter_key[:8]}***")

    def reset_usage(self, counter_key: str) -> bool:
        """External reset, e.g. after a successful billing cycle"""
        return self.repository.reset_counter(counter_key)

    def grant_bonus(self, email: str, credits: int) -> Optional[int]:
        if credits <= 0:
            raise ValueError("Bonus credits must be positive")
        subject = QuotaSubject.for_identity(email)
        period = period_label(self.clock())
        self._ensure_identity(subject, period)
        return self.repository.add_bonus(subject.counter_key, period, credits)
