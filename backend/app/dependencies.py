"""
FastAPI dependencies providing shared service instances.

Usage in routes:
    @router.post("/evaluate")
    async def evaluate(pipeline: EvaluationPipeline = Depends(get_evaluation_pipeline)):
        ...

Tests swap any of these through ``app.dependency_overrides``.
"""
from functools import lru_cache

from data.evaluation_repository import EvaluationRepository
from services.ai.vision_analyzer import VisionAnalyzer
from services.capture.screenshot_service import ScreenshotService
from services.evaluation_pipeline import EvaluationPipeline
from services.reports.share_service import ShareService
from services.usage.quota_engine import UsageQuotaEngine


@lru_cache(maxsize=1)
def get_screenshot_service() -> ScreenshotService:
    return ScreenshotService()


@lru_cache(maxsize=1)
def get_vision_analyzer() -> VisionAnalyzer:
    return VisionAnalyzer()


@lru_cache(maxsize=1)
def get_quota_engine() -> UsageQuotaEngine:
    return UsageQuotaEngine()


@lru_cache(maxsize=1)
def get_evaluation_repository() -> EvaluationRepository:
    return EvaluationRepository()


@lru_cache(maxsize=1)
def get_share_service() -> ShareService:
    return ShareService(evaluations=get_evaluation_repository())


@lru_cache(maxsize=1)
def get_evaluation_pipeline() -> EvaluationPipeline:
    return EvaluationPipeline(
        screenshots=get_screenshot_service(),
        analyzer=get_vision_analyzer(),
        quota=get_quota_engine(),
        evaluations=get_evaluation_repository(),
    )
