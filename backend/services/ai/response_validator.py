"""Validation gate between the vision model's output and everything downstream"""

import json
import re
from typing import Any, Dict, Optional

from schemas.domain import (
    AlignmentVerdict,
    AnalysisMode,
    AnalysisResult,
    ComponentScores,
    PersuasionAnalysis,
    PersuasionPrinciple,
    PrincipleStrength,
    Suggestions,
    PERSUASION_PRINCIPLES,
)
from services.ai.prompts import PRINCIPLE_KEYS

VERDICT_SCORES = {
    AlignmentVerdict.STRONG: 8,
    AlignmentVerdict.MODERATE: 6,
    AlignmentVerdict.WEAK: 4,
}

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class AnalysisValidationError(ValueError):
    """Model output is missing, unparseable or outside the expected shape"""
    pass


def compute_overall_score(
    mode: AnalysisMode,
    scores: ComponentScores,
    verdict: Optional[AlignmentVerdict] = None,
) -> int:
    """Overall score shared by model and fallback results"""
    if mode == AnalysisMode.PERSUASION:
        if verdict is None:
            raise AnalysisValidationError("persuasion results need an alignment verdict")
        return VERDICT_SCORES[verdict]
    total = scores.visual_match + scores.contextual_match + scores.tone_alignment
    return round(total / 3)


def extract_payload(response: Any, tool_name: str) -> Dict[str, Any]:
    """Pull the structured payload out of a Messages API response"""
    text_parts = []
    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "tool_use" and getattr(block, "name", None) == tool_name:
            if not isinstance(block.input, dict):
                raise AnalysisValidationError("tool input is not an object")
            return block.input
        if block_type == "text":
            text_parts.append(block.text)

    text = "\n".join(text_parts).strip()
    if not text:
        raise AnalysisValidationError("response contained neither tool input nor text")
    return parse_json_text(text)


def parse_json_text(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model text, tolerating code fences and chatter"""
    fenced = _FENCE_PATTERN.search(text)
    candidate = fenced.group(1) if fenced else text
    start, end = candidate.find("{"), candidate.rfind("}")
    if start == -1 or end <= start:
        raise AnalysisValidationError("no JSON object found in model text")
    try:
        parsed = json.loads(candidate[start:end + 1])
    except json.JSONDecodeError as e:
        raise AnalysisValidationError(f"invalid JSON from model: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise AnalysisValidationError("model JSON is not an object")
    return parsed


def _score(scores: Dict[str, Any], key: str) -> int:
    value = scores.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise AnalysisValidationError(f"score '{key}' must be an integer, got {value!r}")
    if not 1 <= value <= 10:
        raise AnalysisValidationError(f"score '{key}' out of range: {value}")
    return value


def _string_list(container: Dict[str, Any], key: str) -> list:
    value = container.get(key)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise AnalysisValidationError(f"'{key}' must be a list of strings")
    return [item.strip() for item in value if item.strip()]


def _persuasion(payload: Dict[str, Any]) -> PersuasionAnalysis:
    block = payload.get("persuasion")
    if not isinstance(block, dict):
        raise AnalysisValidationError("missing 'persuasion' object")
    principles_raw = block.get("principles")
    if not isinstance(principles_raw, dict):
        raise AnalysisValidationError("missing 'persuasion.principles' object")

    principles = {}
    for internal_name, wire_name in zip(PERSUASION_PRINCIPLES, PRINCIPLE_KEYS):
        entry = principles_raw.get(wire_name, principles_raw.get(internal_name))
        if not isinstance(entry, dict):
            raise AnalysisValidationError(f"missing principle '{wire_name}'")
        try:
            strength = PrincipleStrength(str(entry.get("score", "")).upper())
        except ValueError as e:
            raise AnalysisValidationError(f"principle '{wire_name}' has invalid score") from e
        principles[internal_name] = PersuasionPrinciple(
            score=strength,
            ad_analysis=str(entry.get("adAnalysis", "")),
            page_analysis=str(entry.get("pageAnalysis", "")),
            recommendation=str(entry.get("recommendation", "")),
        )

    try:
        verdict = AlignmentVerdict(str(block.get("alignmentVerdict", "")).upper())
    except ValueError as e:
        raise AnalysisValidationError("invalid 'alignmentVerdict'") from e

    insights = block.get("psychologicalInsights") or []
    if not isinstance(insights, list):
        raise AnalysisValidationError("'psychologicalInsights' must be a list")
    return PersuasionAnalysis(
        principles=principles,
        alignment_verdict=verdict,
        psychological_insights=[str(item) for item in insights],
    )


def validate_payload(payload: Dict[str, Any], mode: AnalysisMode) -> AnalysisResult:
    """
    Turn a raw payload into a trusted AnalysisResult.

    All-or-nothing: any missing key, non-integer or out-of-range score, or
    malformed persuasion block raises AnalysisValidationError.
    """
    scores = payload.get("scores", payload.get("componentScores"))
    if not isinstance(scores, dict):
        raise AnalysisValidationError("missing 'scores' object")
    suggestions = payload.get("suggestions")
    if not isinstance(suggestions, dict):
        raise AnalysisValidationError("missing 'suggestions' object")

    component_scores = ComponentScores(
        visual_match=_score(scores, "visualMatch"),
        contextual_match=_score(scores, "contextualMatch"),
        tone_alignment=_score(scores, "toneAlignment"),
    )
    parsed_suggestions = Suggestions(
        visual=_string_list(suggestions, "visual"),
        contextual=_string_list(suggestions, "contextual"),
        tone=_string_list(suggestions, "tone"),
    )

    persuasion = _persuasion(payload) if mode == AnalysisMode.PERSUASION else None
    return AnalysisResult(
        mode=mode,
        component_scores=component_scores,
        suggestions=parsed_suggestions,
        overall_score=compute_overall_score(
            mode, component_scores, persuasion.alignment_verdict if persuasion else None
        ),
        persuasion=persuasion,
    )
