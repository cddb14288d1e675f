"""Ad / landing-page evaluation route"""

import logging

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_evaluation_pipeline
from config import config
from schemas.api import EvaluateRequest
from services.capture.screenshot_service import InvalidUploadError
from services.evaluation_pipeline import EvaluationPipeline, EvaluationRequest
from utils.errors import ValidationError
from utils.rate_limit import limiter, get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/evaluate")
@limiter.limit(config.EVALUATE_RATE_LIMIT)
async def evaluate(
    request: Request,
    payload: EvaluateRequest,
    pipeline: EvaluationPipeline = Depends(get_evaluation_pipeline),
):
    """
    Score how well an ad creative matches its landing page.

    Always answers 200 with a complete analysis when the input is valid;
    model or screenshot failures produce a fallback analysis flagged
    ``usedAi: false``. Quota exhaustion is answered with 429 by the
    app-level handler.
    """
    evaluation_request = EvaluationRequest.from_api(payload, get_client_ip(request))
    try:
        return await pipeline.run(evaluation_request)
    except InvalidUploadError as e:
        logger.info(f"Rejected ad upload: {e}")
        raise ValidationError(str(e))
