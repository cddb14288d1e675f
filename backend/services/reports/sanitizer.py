"""Public-safe copy of an evaluation for shared reports"""

import re
from typing import Any, Dict, List, Optional

URL_PATTERN = re.compile(r"https?://\S+")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")

SCORE_KEYS = ("visualMatch", "contextualMatch", "toneAlignment")
SUGGESTION_KEYS = ("visual", "contextual", "tone")
PRINCIPLE_TEXT_KEYS = ("adAnalysis", "pageAnalysis", "recommendation")


def sanitize_text(text: Any) -> str:
    if not isinstance(text, str):
        return ""
    text = URL_PATTERN.sub("[URL]", text)
    text = EMAIL_PATTERN.sub("[EMAIL]", text)
    text = PHONE_PATTERN.sub("[PHONE]", text)
    return text.strip()


def _text_list(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [sanitize_text(value) for value in values if isinstance(value, str)]


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(round(value))
    return None


def _section(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _persuasion(block: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(block, dict):
        return None
    principles = {}
    for name, entry in _section(block.get("principles")).items():
        if not isinstance(entry, dict):
            continue
        principles[str(name)] = {
            "score": entry.get("score") if entry.get("score") in ("HIGH", "MEDIUM", "LOW") else None,
            **{key: sanitize_text(entry.get(key)) for key in PRINCIPLE_TEXT_KEYS},
        }
    verdict = block.get("alignmentVerdict")
    return {
        "alignmentVerdict": verdict if verdict in ("STRONG", "MODERATE", "WEAK") else None,
        "principles": principles,
        "psychologicalInsights": _text_list(block.get("psychologicalInsights")),
    }


def sanitize_evaluation(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Whitelist the fields safe for public viewing.

    Everything not named here (ids, identity, IP, landing page URL,
    screenshots, usage) is dropped; free text has URLs, emails and phone
    numbers masked.
    """
    scores = _section(data.get("componentScores"))
    suggestions = _section(data.get("suggestions"))

    sanitized: Dict[str, Any] = {
        "overallScore": _int_or_none(data.get("overallScore")),
        "componentScores": {key: _int_or_none(scores.get(key)) for key in SCORE_KEYS},
        "suggestions": {key: _text_list(suggestions.get(key)) for key in SUGGESTION_KEYS},
        "platform": data.get("platform") if isinstance(data.get("platform"), str) else None,
        "analysisMode": data.get("analysisMode") if isinstance(data.get("analysisMode"), str) else None,
        "createdAt": data.get("createdAt") if isinstance(data.get("createdAt"), str) else None,
        "landingPageTitle": sanitize_text(data.get("landingPageTitle")) or None,
    }
    persuasion = _persuasion(data.get("persuasion"))
    if persuasion is not None:
        sanitized["persuasion"] = persuasion
    return sanitized
