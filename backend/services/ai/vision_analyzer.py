"""
Vision analysis orchestrator: one multi-image Claude call per evaluation.

``analyze`` always resolves. A validated model result comes back as
``AnalysisSuccess``; any failure along the way (no client, API error,
timeout, missing tool output, invalid JSON, out-of-range scores) comes back
as ``AnalysisFallback`` carrying a deterministic result and the reason.
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Union

import anthropic

from config import config
from integrations.anthropic_client import create_anthropic_client, get_default_model
from schemas.domain import AnalysisFallback, AnalysisSuccess, CapturedImage
from services.ai.fallback import build_fallback_result
from services.ai.prompts import AnalysisContext, build_analysis_prompt, tool_for
from services.ai.response_validator import AnalysisValidationError, extract_payload, validate_payload

logger = logging.getLogger(__name__)

AnalysisOutcome = Union[AnalysisSuccess, AnalysisFallback]

# Claude Sonnet pricing per million tokens, for cost logging only
INPUT_COST_PER_MTOK = 3.0
OUTPUT_COST_PER_MTOK = 15.0


def image_block(image: CapturedImage) -> Dict[str, Any]:
    """Messages API image content block for a captured or uploaded image"""
    if image.remote:
        return {"type": "image", "source": {"type": "url", "url": image.source_url}}
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": image.media_type,
            "data": image.to_base64(),
        },
    }


class VisionAnalyzer:
    """Builds the prompt, calls the model and applies the validation gate"""

    _UNSET = object()

    def __init__(self, client: Any = _UNSET, model: Optional[str] = None, timeout: Optional[float] = None):
        self.client = create_anthropic_client() if client is VisionAnalyzer._UNSET else client
        self.model = model or get_default_model()
        self.timeout = timeout if timeout is not None else config.VISION_TIMEOUT_SECONDS

    def build_messages(
        self,
        ad_image: CapturedImage,
        landing_image: CapturedImage,
        context: AnalysisContext,
    ) -> List[Dict[str, Any]]:
        return [{
            "role": "user",
            "content": [
                image_block(ad_image),
                image_block(landing_image),
                {"type": "text", "text": build_analysis_prompt(context)},
            ],
        }]

    def _fallback(self, context: AnalysisContext, reason: str) -> AnalysisFallback:
        logger.warning(f"⚠️  Using fallback analysis ({context.platform.value}): {reason}")
        return AnalysisFallback(result=build_fallback_result(context), reason=reason)

    async def analyze(
        self,
        ad_image: CapturedImage,
        landing_image: CapturedImage,
        context: AnalysisContext,
    ) -> AnalysisOutcome:
        if self.client is None:
            return self._fallback(context, "vision client not configured")

        tool = tool_for(context.mode)
        messages = self.build_messages(ad_image, landing_image, context)

        start_time = time.time()
        try:
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self.client.messages.create(
                        model=self.model,
                        max_tokens=config.VISION_MAX_TOKENS,
                        tools=[tool],
                        tool_choice={"type": "tool", "name": tool["name"]},
                        messages=messages,
                    ),
                ),
                timeout=self.timeout,
            )
            payload = extract_payload(response, tool["name"])
            result = validate_payload(payload, context.mode)
        except asyncio.TimeoutError:
            return self._fallback(context, f"vision model timed out after {self.timeout:.0f}s")
        except anthropic.APIError as e:
            return self._fallback(context, f"vision model error: {type(e).__name__}")
        except AnalysisValidationError as e:
            return self._fallback(context, f"invalid model output: {e}")
        except Exception as e:
            logger.error(f"❌ Unexpected vision analysis failure: {type(e).__name__}: {e}")
            return self._fallback(context, f"unexpected error: {type(e).__name__}")

        latency_ms = int((time.time() - start_time) * 1000)
        self._log_usage(response, latency_ms)
        return AnalysisSuccess(result=result, model=self.model, latency_ms=latency_ms)

    def _log_usage(self, response: Any, latency_ms: int):
        usage = getattr(response, "usage", None)
        if usage is None:
            logger.info(f"🤖 Vision analysis completed in {latency_ms}ms ({self.model})")
            return

        input_tokens = getattr(usage, "input_tokens", 0) or 0
        output_tokens = getattr(usage, "output_tokens", 0) or 0
        cost = (input_tokens / 1_000_000) * INPUT_COST_PER_MTOK + (output_tokens / 1_000_000) * OUTPUT_COST_PER_MTOK
        logger.info(
            f"🤖 Vision analysis completed in {latency_ms}ms ({self.model}) - "
            f"tokens: {input_tokens} input + {output_tokens} output, est. cost: ${cost:.4f}"
        )
