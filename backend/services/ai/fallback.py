"""Deterministic, platform-aware stand-in analysis"""

import random

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
from services.ads.platforms import fallback_suggestions_for
from services.ai.prompts import AnalysisContext
from services.ai.response_validator import compute_overall_score

FALLBACK_SCORE_RANGE = (5, 8)

_PRINCIPLE_RECOMMENDATIONS = {
    "reciprocity": "Offer something of value (guide, trial, discount) before asking for the conversion",
    "commitment": "Start with a small first step that matches the ad's call to action",
    "social_proof": "Show reviews, ratings or customer counts near the primary CTA",
    "authority": "Surface credentials, certifications or press mentions above the fold",
    "liking": "Keep the friendly, relatable voice of the ad on the landing page",
    "scarcity": "State genuine limits (time, stock) consistently in both ad and page",
}

_FALLBACK_INSIGHTS = [
    "Consistency between ad promise and page headline reduces bounce",
    "Visible social proof near the CTA lowers perceived risk",
]


def fallback_seed(context: AnalysisContext) -> str:
    return f"{context.platform.value}|{context.landing_page_url}"


def build_fallback_result(context: AnalysisContext) -> AnalysisResult:
    """Same context always yields the same scores and suggestions"""
    rng = random.Random(fallback_seed(context))
    low, high = FALLBACK_SCORE_RANGE
    scores = ComponentScores(
        visual_match=rng.randint(low, high),
        contextual_match=rng.randint(low, high),
        tone_alignment=rng.randint(low, high),
    )
    static = fallback_suggestions_for(context.platform)
    suggestions = Suggestions(
        visual=list(static["visual"]),
        contextual=list(static["contextual"]),
        tone=list(static["tone"]),
    )

    persuasion = None
    if context.mode == AnalysisMode.PERSUASION:
        persuasion = PersuasionAnalysis(
            principles={
                name: PersuasionPrinciple(
                    score=PrincipleStrength.MEDIUM,
                    ad_analysis="Automated review unavailable for this principle",
                    page_analysis="Automated review unavailable for this principle",
                    recommendation=_PRINCIPLE_RECOMMENDATIONS[name],
                )
                for name in PERSUASION_PRINCIPLES
            },
            alignment_verdict=AlignmentVerdict.MODERATE,
            psychological_insights=list(_FALLBACK_INSIGHTS),
        )

    return AnalysisResult(
        mode=context.mode,
        component_scores=scores,
        suggestions=suggestions,
        overall_score=compute_overall_score(
            context.mode, scores, persuasion.alignment_verdict if persuasion else None
        ),
        persuasion=persuasion,
    )
