"""Time-boxed, view-counted public links to evaluation results"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from config import config
from data.evaluation_repository import EvaluationRepository
from data.share_repository import ShareRepository
from schemas.domain import SharedReport
from services.reports.sanitizer import sanitize_evaluation
from utils.periods import utc_now

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 16
MAX_TOKEN_ATTEMPTS = 3
SHARE_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


class ShareTokenCollisionError(Exception):
    """Every generated token was already taken"""
    pass


class ShareSourceNotFoundError(LookupError):
    """No evaluation data supplied and none stored under the given id"""
    pass


class ShareLookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


@dataclass
class ShareLookup:
    status: ShareLookupStatus
    report: Optional[SharedReport] = None


@dataclass
class ShareCreation:
    share_token: str
    share_url: str
    title: str
    expires_at: datetime
    mock: bool = False


def generate_share_token() -> str:
    return secrets.token_urlsafe(SHARE_TOKEN_BYTES)


def is_valid_share_token(token: str) -> bool:
    return isinstance(token, str) and bool(SHARE_TOKEN_PATTERN.match(token))


def build_share_title(payload: Dict[str, Any], now: datetime) -> str:
    platform = payload.get("platform")
    platform_name = platform.capitalize() if isinstance(platform, str) and platform else "Platform"
    score = payload.get("overallScore")
    score = round(score) if isinstance(score, (int, float)) and not isinstance(score, bool) else 0
    return f"{platform_name} Ad Analysis - {score}/10 Score ({now.strftime('%b %d, %Y')})"


class ShareService:

    def __init__(
        self,
        shares: Optional[ShareRepository] = None,
        evaluations: Optional[EvaluationRepository] = None,
        clock: Callable[[], datetime] = utc_now,
        token_factory: Callable[[], str] = generate_share_token,
        duration_hours: Optional[int] = None,
        public_url: Optional[str] = None,
    ):
        self.shares = shares or ShareRepository()
        self.evaluations = evaluations or EvaluationRepository()
        self.clock = clock
        self.token_factory = token_factory
        self.duration = timedelta(hours=duration_hours if duration_hours is not None else config.SHARE_DURATION_HOURS)
        self.public_url = (public_url or config.PUBLIC_APP_URL).rstrip("/")

    def share_url(self, token: str) -> str:
        return f"{self.public_url}/shared/{token}"

    def _load_payload(self, evaluation_id: str) -> Dict[str, Any]:
        evaluation = self.evaluations.get(evaluation_id)
        if evaluation is None:
            raise ShareSourceNotFoundError(f"Evaluation {evaluation_id} not found")
        return {
            **evaluation.analysis,
            "platform": evaluation.platform.value,
            "analysisMode": evaluation.analysis_mode.value,
            "createdAt": evaluation.created_at.isoformat(),
        }

    def create_share(self, evaluation_id: str, payload: Optional[Dict[str, Any]] = None) -> ShareCreation:
        """
        Sanitize once and store a new share.

        A token collision regenerates the token; a storage failure still
        returns a usable (unpersisted) share marked ``mock``.

        Raises:
            ShareSourceNotFoundError: no payload given and no stored evaluation
            ShareTokenCollisionError: every attempt hit an existing token
        """
        if payload is None:
            payload = self._load_payload(evaluation_id)

        now = self.clock()
        title = build_share_title(payload, now)
        sanitized = sanitize_evaluation(payload)
        expires_at = now + self.duration

        for attempt in range(1, MAX_TOKEN_ATTEMPTS + 1):
            token = self.token_factory()
            report = SharedReport(
                share_token=token,
                evaluation_id=evaluation_id,
                title=title,
                sanitized_payload=sanitized,
                expires_at=expires_at,
                created_at=now,
            )
            try:
                inserted = self.shares.insert(report)
            except Exception as e:
                logger.warning(f"⚠️  Share storage failed, returning unpersisted share: {e}")
                return ShareCreation(token, self.share_url(token), title, expires_at, mock=True)

            if inserted:
                logger.info(f"🔗 Created share for evaluation {evaluation_id} (expires {expires_at.isoformat()})")
                return ShareCreation(token, self.share_url(token), title, expires_at)
            logger.warning(f"Share token collision on attempt {attempt}/{MAX_TOKEN_ATTEMPTS}, regenerating")

        raise ShareTokenCollisionError("Could not generate a unique share token")

    def get_share(self, token: str) -> ShareLookup:
        """Expiry is checked at read time and wins over everything else"""
        report = self.shares.get_by_token(token)
        if report is None:
            return ShareLookup(ShareLookupStatus.NOT_FOUND)
        if self.clock() > report.expires_at:
            return ShareLookup(ShareLookupStatus.EXPIRED, report)
        return ShareLookup(ShareLookupStatus.FOUND, report)

    def record_view(self, token: str) -> None:
        """Best-effort view counter; failures are logged, never raised"""
        try:
            self.shares.increment_view_count(token)
        except Exception as e:
            logger.error(f"Failed to record view for share {token[:6]}***: {e}")
