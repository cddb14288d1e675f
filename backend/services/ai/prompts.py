"""
Prompt text and tool schemas for the ad / landing-page vision analysis.
"""
from dataclasses import dataclass
from typing import Optional

from schemas.domain import (
    AdClassification,
    AdSourceType,
    AnalysisMode,
    AudienceProfile,
    MediaType,
    Platform,
)
from services.ads.platforms import display_name_for, prompt_framing_for

ALIGNMENT_TOOL_NAME = "record_alignment_analysis"
PERSUASION_TOOL_NAME = "record_persuasion_analysis"

_SCORE_SCHEMA = {"type": "integer", "minimum": 1, "maximum": 10}

_SUGGESTION_LIST = {
    "type": "array",
    "items": {"type": "string"},
    "minItems": 1,
    "maxItems": 5,
}

_SCORES_AND_SUGGESTIONS = {
    "scores": {
        "type": "object",
        "description": "Alignment scores from 1 (no alignment) to 10 (perfect alignment)",
        "properties": {
            "visualMatch": {**_SCORE_SCHEMA, "description": "Ad visual design alignment with landing page"},
            "contextualMatch": {**_SCORE_SCHEMA, "description": "Ad message alignment with landing page content"},
            "toneAlignment": {**_SCORE_SCHEMA, "description": "Voice and messaging consistency"},
        },
        "required": ["visualMatch", "contextualMatch", "toneAlignment"],
    },
    "suggestions": {
        "type": "object",
        "description": "Concrete, actionable improvements per dimension",
        "properties": {
            "visual": _SUGGESTION_LIST,
            "contextual": _SUGGESTION_LIST,
            "tone": _SUGGESTION_LIST,
        },
        "required": ["visual", "contextual", "tone"],
    },
}

# Tool schema for Anthropic structured outputs
ALIGNMENT_ANALYSIS_TOOL = {
    "name": ALIGNMENT_TOOL_NAME,
    "description": "Record the alignment analysis between an ad creative and its landing page",
    "input_schema": {
        "type": "object",
        "properties": dict(_SCORES_AND_SUGGESTIONS),
        "required": ["scores", "suggestions"],
    },
}

_PRINCIPLE_SCHEMA = {
    "type": "object",
    "properties": {
        "score": {"type": "string", "enum": ["HIGH", "MEDIUM", "LOW"]},
        "adAnalysis": {"type": "string", "description": "How the ad uses this principle (1-2 sentences)"},
        "pageAnalysis": {"type": "string", "description": "How the landing page uses this principle (1-2 sentences)"},
        "recommendation": {"type": "string", "description": "One specific improvement"},
    },
    "required": ["score", "adAnalysis", "pageAnalysis", "recommendation"],
}

PRINCIPLE_KEYS = ("reciprocity", "commitment", "socialProof", "authority", "liking", "scarcity")

PERSUASION_ANALYSIS_TOOL = {
    "name": PERSUASION_TOOL_NAME,
    "description": "Record alignment scores plus a persuasion-principle breakdown of ad and landing page",
    "input_schema": {
        "type": "object",
        "properties": {
            **_SCORES_AND_SUGGESTIONS,
            "persuasion": {
                "type": "object",
                "properties": {
                    "principles": {
                        "type": "object",
                        "properties": {key: _PRINCIPLE_SCHEMA for key in PRINCIPLE_KEYS},
                        "required": list(PRINCIPLE_KEYS),
                    },
                    "alignmentVerdict": {"type": "string", "enum": ["STRONG", "MODERATE", "WEAK"]},
                    "psychologicalInsights": {
                        "type": "array",
                        "items": {"type": "string"},
                        "maxItems": 5,
                    },
                },
                "required": ["principles", "alignmentVerdict"],
            },
        },
        "required": ["scores", "suggestions", "persuasion"],
    },
}


@dataclass(frozen=True)
class AnalysisContext:
    """Everything the prompt needs besides the two images"""
    classification: AdClassification
    landing_page_url: str
    audience: AudienceProfile
    mode: AnalysisMode = AnalysisMode.STANDARD
    landing_page_title: Optional[str] = None
    landing_page_cta: Optional[str] = None
    ad_is_placeholder: bool = False
    landing_is_placeholder: bool = False

    @property
    def platform(self) -> Platform:
        return self.classification.platform


def tool_for(mode: AnalysisMode) -> dict:
    return PERSUASION_ANALYSIS_TOOL if mode == AnalysisMode.PERSUASION else ALIGNMENT_ANALYSIS_TOOL


def build_analysis_prompt(context: AnalysisContext) -> str:
    classification = context.classification
    lines = [
        f"You are an expert {prompt_framing_for(context.platform)} ads analyst.",
        "The first image is the ad creative; the second image is the landing page it links to.",
        "",
        f"Ad Platform: {display_name_for(context.platform)}",
        f"Landing Page: {context.landing_page_url}",
    ]
    if context.landing_page_title:
        lines.append(f"Landing Page Title: {context.landing_page_title}")
    if context.landing_page_cta:
        lines.append(f"Primary Call-to-Action: {context.landing_page_cta}")
    lines.append(f"Target Audience: {context.audience.describe()}")

    notes = []
    if classification.source_type == AdSourceType.PREVIEW:
        notes.append(
            "The ad image is a screenshot of a platform preview page, not the original asset. "
            "Ignore surrounding platform chrome and do not penalise compression or cropping."
        )
    if classification.media_type == MediaType.VIDEO:
        notes.append(
            "The ad is a video; the image is a single captured frame. "
            "Judge the visible frame and on-screen text, not motion."
        )
    if context.ad_is_placeholder:
        notes.append("The ad could not be captured and is shown as a placeholder; rely on the landing page and context.")
    if context.landing_is_placeholder:
        notes.append("The landing page could not be captured and is shown as a placeholder; rely on the URL and context.")
    if notes:
        lines.append("")
        lines.append("Notes:")
        lines.extend(f"- {note}" for note in notes)

    lines.extend([
        "",
        "Evaluate and provide integer scores (1-10) for:",
        "1. Visual Match: Ad visual design alignment with landing page",
        "2. Contextual Match: Ad message alignment with landing page content",
        "3. Tone Alignment: Voice and messaging consistency",
        "Give three specific suggestions for each dimension.",
    ])
    if context.mode == AnalysisMode.PERSUASION:
        lines.extend([
            "",
            "Also rate how strongly the ad and landing page together apply each of Cialdini's principles",
            "(reciprocity, commitment, socialProof, authority, liking, scarcity) as HIGH, MEDIUM or LOW,",
            "give an overall STRONG, MODERATE or WEAK persuasion alignment verdict,",
            "and list up to five psychological insights.",
        ])

    lines.append("")
    lines.append(f"Use the {tool_for(context.mode)['name']} tool to return your analysis.")
    return "\n".join(lines)
