"""
End-to-end evaluation: classify, capture, gate on quota, analyze, persist.

Only malformed input (``InvalidUploadError``) and quota exhaustion
(``UsageLimitExceededError``) leave this module as errors. Capture and
model failures are already absorbed by the services below, storage
failures are logged, and the outer timeout answers with a fallback.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from config import config
from data.evaluation_repository import EvaluationRepository
from middleware.error_handler import UsageLimitExceededError
from schemas.api import EvaluateRequest
from schemas.domain import (
    AdClassification,
    AdReference,
    AdReferenceKind,
    AnalysisMode,
    AnalysisResult,
    AudienceProfile,
    CapturedImage,
    Evaluation,
)
from services.ads.input_classifier import classify
from services.ai.fallback import build_fallback_result
from services.ai.prompts import AnalysisContext
from services.ai.vision_analyzer import AnalysisOutcome, VisionAnalyzer
from services.capture.screenshot_service import ScreenshotService
from services.usage.quota_engine import QuotaReservation, QuotaSubject, UsageQuotaEngine
from utils.periods import utc_now

logger = logging.getLogger(__name__)


@dataclass
class EvaluationRequest:
    """One evaluation as the pipeline sees it; owned by a single run"""
    ad_reference: AdReference
    landing_page_url: str
    audience: AudienceProfile
    analysis_mode: AnalysisMode = AnalysisMode.STANDARD
    landing_page_title: Optional[str] = None
    landing_page_cta: Optional[str] = None
    requester_email: Optional[str] = None
    client_ip: str = "unknown"

    @classmethod
    def from_api(cls, payload: EvaluateRequest, client_ip: str) -> "EvaluationRequest":
        ad = payload.ad_data
        if ad.image_url:
            reference = AdReference(kind=AdReferenceKind.UPLOAD, raw_value=ad.image_url,
                                    platform=ad.platform, media_type=ad.media_type)
        else:
            reference = AdReference(kind=AdReferenceKind.URL, raw_value=ad.ad_url,
                                    platform=ad.platform, media_type=ad.media_type)
        return cls(
            ad_reference=reference,
            landing_page_url=payload.landing_page_data.url,
            audience=payload.audience_data.to_profile(),
            analysis_mode=payload.analysis_mode,
            landing_page_title=payload.landing_page_data.title,
            landing_page_cta=payload.landing_page_data.cta_text,
            requester_email=payload.requester_email,
            client_ip=client_ip,
        )

    @property
    def subject(self) -> QuotaSubject:
        if self.requester_email:
            return QuotaSubject.for_identity(self.requester_email)
        return QuotaSubject.for_ip(self.client_ip)


def _screenshot_summary(image: Optional[CapturedImage]) -> Optional[Dict[str, Any]]:
    if image is None:
        return None
    return {
        "sourceUrl": image.source_url if image.source_url != "upload" else None,
        "isPlaceholder": image.is_placeholder,
        "capturedAt": image.captured_at.isoformat(),
        "fullPage": image.metadata.full_page,
    }


class _RunState:
    """Progress of one run, visible to the timeout handler"""

    def __init__(self):
        self.reservation: Optional[QuotaReservation] = None
        self.reserving: Optional[asyncio.Future] = None  # In-flight check_and_reserve


class EvaluationPipeline:

    def __init__(
        self,
        screenshots: ScreenshotService,
        analyzer: VisionAnalyzer,
        quota: UsageQuotaEngine,
        evaluations: EvaluationRepository,
        timeout_seconds: Optional[float] = None,
    ):
        self.screenshots = screenshots
        self.analyzer = analyzer
        self.quota = quota
        self.evaluations = evaluations
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else config.PIPELINE_TIMEOUT_SECONDS

    async def run(self, request: EvaluationRequest) -> Dict[str, Any]:
        """
        Evaluate one ad against its landing page.

        Raises:
            InvalidUploadError: the uploaded ad image is unusable
            UsageLimitExceededError: the requester has no evaluations left
        """
        classification = classify(request.ad_reference)
        logger.info(
            f"🔍 Evaluation started: platform={classification.platform.value}, "
            f"source={classification.source_type.value}, media={classification.media_type.value}"
        )

        state = _RunState()
        try:
            return await asyncio.wait_for(
                self._run(request, classification, state),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"⏱️  Evaluation exceeded {self.timeout_seconds:.0f}s, answering with fallback")
            reservation = await self._settle_reservation(state)
            if reservation is not None and reservation.is_pending:
                await self._in_executor(self.quota.release, reservation)
            context = self._context(request, classification)
            return self._response(
                build_fallback_result(context), request, classification,
                used_ai=False, evaluation_id=None,
            )

    async def _run(self, request: EvaluationRequest, classification: AdClassification, state: _RunState) -> Dict[str, Any]:
        subject = request.subject

        # Cheap read-only check so exhausted requesters skip the captures
        snapshot = await self._in_executor(self.quota.get_usage, subject)
        if not snapshot.can_evaluate:
            raise UsageLimitExceededError(snapshot.used, snapshot.limit, snapshot.next_reset_at, snapshot.tier)

        if request.ad_reference.kind == AdReferenceKind.UPLOAD:
            ad_image = self.screenshots.resolve_upload(request.ad_reference.raw_value)
            landing_image = await self.screenshots.capture_landing_page(request.landing_page_url)
        else:
            ad_image, landing_image = await self.screenshots.capture_pair(
                request.ad_reference.raw_value, request.landing_page_url, classification
            )

        # Shielded so a timeout cannot drop a unit the worker thread already took
        state.reserving = asyncio.ensure_future(self._in_executor(self.quota.check_and_reserve, subject))
        reservation = await asyncio.shield(state.reserving)
        if not reservation.allowed:
            raise UsageLimitExceededError(reservation.used, reservation.limit, reservation.next_reset_at, reservation.tier)
        state.reservation = reservation

        context = self._context(request, classification, ad_image, landing_image)
        try:
            outcome = await self.analyzer.analyze(ad_image, landing_image, context)
        except Exception:
            await self._in_executor(self.quota.release, reservation)
            raise

        # Fallback results consume quota too; the requester still got a report
        self.quota.commit(reservation)
        evaluation_id = await self._persist(request, classification, outcome)

        response = self._response(
            outcome.result, request, classification,
            used_ai=outcome.used_ai, evaluation_id=evaluation_id,
        )
        response["screenshots"] = {
            "ad": _screenshot_summary(ad_image),
            "landingPage": _screenshot_summary(landing_image),
        }
        response["usage"] = {
            "used": reservation.used + 1,
            "limit": reservation.limit,
            "remaining": max(reservation.remaining - 1, 0),
            "nextReset": reservation.next_reset_at.isoformat(),
        }
        logger.info(
            f"✅ Evaluation complete: overall={outcome.result.overall_score}, "
            f"used_ai={outcome.used_ai}" + (f", fallback_reason={outcome.reason}" if outcome.reason else "")
        )
        return response

    async def _settle_reservation(self, state: _RunState) -> Optional[QuotaReservation]:
        """Reservation taken by a timed-out run, waiting for an in-flight one"""
        if state.reservation is not None or state.reserving is None:
            return state.reservation
        try:
            return await state.reserving
        except Exception as e:
            logger.error(f"❌ Quota reservation failed after timeout: {type(e).__name__}: {e}")
            return None

    @staticmethod
    async def _in_executor(func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    @staticmethod
    def _context(
        request: EvaluationRequest,
        classification: AdClassification,
        ad_image: Optional[CapturedImage] = None,
        landing_image: Optional[CapturedImage] = None,
    ) -> AnalysisContext:
        return AnalysisContext(
            classification=classification,
            landing_page_url=request.landing_page_url,
            audience=request.audience,
            mode=request.analysis_mode,
            landing_page_title=request.landing_page_title,
            landing_page_cta=request.landing_page_cta,
            ad_is_placeholder=bool(ad_image and ad_image.is_placeholder),
            landing_is_placeholder=bool(landing_image and landing_image.is_placeholder),
        )

    async def _persist(
        self,
        request: EvaluationRequest,
        classification: AdClassification,
        outcome: AnalysisOutcome,
    ) -> Optional[str]:
        analysis = outcome.result.to_response()
        if request.landing_page_title:
            analysis["landingPageTitle"] = request.landing_page_title
        evaluation = Evaluation(
            id=str(uuid.uuid4()),
            platform=classification.platform,
            ad_source_type=classification.source_type,
            media_type=classification.media_type,
            landing_page_url=request.landing_page_url,
            overall_score=outcome.result.overall_score,
            component_scores=outcome.result.component_scores,
            analysis_mode=outcome.result.mode,
            analysis=analysis,
            used_ai=outcome.used_ai,
            fallback_reason=outcome.reason,
            requester_key=request.subject.counter_key,
            created_at=utc_now(),
        )
        try:
            return await self._in_executor(self.evaluations.persist, evaluation)
        except Exception as e:
            logger.error(f"❌ Failed to store evaluation {evaluation.id}: {type(e).__name__}: {e}")
            return None

    @staticmethod
    def _response(
        result: AnalysisResult,
        request: EvaluationRequest,
        classification: AdClassification,
        used_ai: bool,
        evaluation_id: Optional[str],
    ) -> Dict[str, Any]:
        response = result.to_response()
        response.update({
            "evaluationId": evaluation_id,
            "usedAi": used_ai,
            "analysisMode": result.mode.value,
            "platform": classification.platform.value,
            "sourceType": classification.source_type.value,
            "mediaType": classification.media_type.value,
            "adId": classification.ad_id,
            "landingPageTitle": request.landing_page_title,
            "createdAt": utc_now().isoformat(),
        })
        return response
