"""Read-only usage quota routes"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import EmailStr

from app.dependencies import get_quota_engine
from schemas.api import UsageRequest, UsageResponse
from services.usage.quota_engine import QuotaSubject, UsageQuotaEngine
from utils.rate_limit import get_client_ip

router = APIRouter()


def _usage_for(engine: UsageQuotaEngine, request: Request, email: Optional[str]) -> UsageResponse:
    subject = QuotaSubject.for_identity(email) if email else QuotaSubject.for_ip(get_client_ip(request))
    snapshot = engine.get_usage(subject)
    return UsageResponse(
        used=snapshot.used,
        limit=snapshot.limit,
        remaining=snapshot.remaining,
        can_evaluate=snapshot.can_evaluate,
        next_reset=snapshot.next_reset_at,
        tier=snapshot.tier.value if snapshot.tier else None,
    )


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    request: Request,
    user_email: Optional[EmailStr] = Query(None, alias="userEmail"),
    engine: UsageQuotaEngine = Depends(get_quota_engine),
):
    """Current month's usage for an identity, or for the caller's IP"""
    return _usage_for(engine, request, user_email)


@router.post("/usage", response_model=UsageResponse)
def post_usage(
    request: Request,
    payload: UsageRequest,
    engine: UsageQuotaEngine = Depends(get_quota_engine),
):
    return _usage_for(engine, request, payload.user_email)
