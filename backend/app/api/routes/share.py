"""Shareable report routes"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from app.dependencies import get_share_service
from config import config
from schemas.api import CreateShareRequest, CreateShareResponse, SharedReportData, SharedReportResponse
from services.reports.share_service import (
    ShareLookupStatus,
    ShareService,
    ShareSourceNotFoundError,
    ShareTokenCollisionError,
    is_valid_share_token,
)
from utils.errors import ExternalServiceError, GoneError, NotFoundError, ValidationError
from utils.periods import utc_now
from utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/share", response_model=CreateShareResponse)
@limiter.limit(config.SHARE_RATE_LIMIT)
def create_share(
    request: Request,
    payload: CreateShareRequest,
    shares: ShareService = Depends(get_share_service),
):
    """Create a 72-hour public link to a sanitized copy of an evaluation"""
    try:
        created = shares.create_share(payload.evaluation_id, payload.evaluation_data)
    except ShareSourceNotFoundError:
        raise NotFoundError("Evaluation not found")
    except ShareTokenCollisionError as e:
        logger.error(f"❌ {e}")
        raise HTTPException(status_code=500, detail="Failed to create shareable link")
    except Exception as e:
        logger.error(f"❌ Could not load evaluation {payload.evaluation_id} for sharing: {e}")
        raise ExternalServiceError("database", "Service temporarily unavailable. Please try again later.")

    return CreateShareResponse(
        share_token=created.share_token,
        share_url=created.share_url,
        title=created.title,
        expires_at=created.expires_at,
        mock=created.mock,
    )


@router.get("/share/{share_token}", response_model=SharedReportResponse)
def get_shared_report(
    share_token: str,
    background_tasks: BackgroundTasks,
    shares: ShareService = Depends(get_share_service),
):
    """Public read of a shared report; 404 unknown, 410 expired"""
    if not is_valid_share_token(share_token):
        raise ValidationError("Invalid share token")

    try:
        lookup = shares.get_share(share_token)
    except Exception as e:
        logger.error(f"❌ Shared report lookup failed: {e}")
        raise ExternalServiceError("database", "Service temporarily unavailable. Please try again later.")

    if lookup.status == ShareLookupStatus.NOT_FOUND:
        raise NotFoundError("Shared report not found")
    if lookup.status == ShareLookupStatus.EXPIRED:
        raise GoneError("Shared report has expired")

    report = lookup.report
    background_tasks.add_task(shares.record_view, share_token)
    return SharedReportResponse(
        data=SharedReportData(
            share_token=report.share_token,
            title=report.title,
            sanitized_data=report.sanitized_payload,
            expires_at=report.expires_at,
            view_count=report.view_count + 1,
            last_viewed_at=utc_now(),
            created_at=report.created_at,
        )
    )
