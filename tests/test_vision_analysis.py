"""
Unit tests for response validation, fallback analysis and the vision analyzer
"""

import json
import time
import unittest
import sys
import os
from types import SimpleNamespace
from unittest.mock import Mock

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import anthropic

from schemas.domain import (
    AdClassification,
    AdSourceType,
    AlignmentVerdict,
    AnalysisFallback,
    AnalysisMode,
    AnalysisSuccess,
    AudienceProfile,
    CapturedImage,
    ComponentScores,
    MediaType,
    Platform,
    PrincipleStrength,
)
from services.ai.fallback import build_fallback_result
from services.ai.prompts import (
    ALIGNMENT_TOOL_NAME,
    PERSUASION_TOOL_NAME,
    PRINCIPLE_KEYS,
    AnalysisContext,
    build_analysis_prompt,
)
from services.ai.response_validator import (
    AnalysisValidationError,
    compute_overall_score,
    extract_payload,
    parse_json_text,
    validate_payload,
)
from services.ai.vision_analyzer import VisionAnalyzer, image_block
from utils.periods import utc_now

VALID_PAYLOAD = {
    "scores": {"visualMatch": 8, "contextualMatch": 7, "toneAlignment": 9},
    "suggestions": {
        "visual": ["Use the same hero image"],
        "contextual": ["Repeat the offer in the headline"],
        "tone": ["Keep the playful voice"],
    },
}


def persuasion_payload(verdict="STRONG"):
    principle = {"score": "HIGH", "adAnalysis": "a", "pageAnalysis": "b", "recommendation": "c"}
    return {
        **VALID_PAYLOAD,
        "persuasion": {
            "principles": {key: dict(principle) for key in PRINCIPLE_KEYS},
            "alignmentVerdict": verdict,
            "psychologicalInsights": ["Scarcity drives urgency"],
        },
    }


def make_context(platform=Platform.META, mode=AnalysisMode.STANDARD, source_type=AdSourceType.URL,
                 media_type=MediaType.IMAGE, url="https://shop.example.com/offer"):
    return AnalysisContext(
        classification=AdClassification(
            platform=platform, media_type=media_type, source_type=source_type,
            is_preview_link=source_type == AdSourceType.PREVIEW,
        ),
        landing_page_url=url,
        audience=AudienceProfile(age_range="25-34", interests="fitness"),
        mode=mode,
    )


def make_image(content=b"png-bytes"):
    return CapturedImage(source_url="https://example.com", content=content, captured_at=utc_now())


def tool_response(payload, name=ALIGNMENT_TOOL_NAME):
    return SimpleNamespace(
        content=[SimpleNamespace(type="tool_use", name=name, input=payload)],
        usage=SimpleNamespace(input_tokens=1200, output_tokens=300),
    )


def text_response(text):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)], usage=None)


class TestResponseValidator(unittest.TestCase):

    def test_valid_payload(self):
        result = validate_payload(VALID_PAYLOAD, AnalysisMode.STANDARD)
        self.assertEqual(result.component_scores.visual_match, 8)
        self.assertEqual(result.overall_score, 8)  # round(24 / 3)
        self.assertIsNone(result.persuasion)

    def test_overall_score_is_rounded_mean(self):
        scores = ComponentScores(visual_match=7, contextual_match=8, tone_alignment=8)
        self.assertEqual(compute_overall_score(AnalysisMode.STANDARD, scores), 8)  # 7.67
        scores = ComponentScores(visual_match=5, contextual_match=5, tone_alignment=6)
        self.assertEqual(compute_overall_score(AnalysisMode.STANDARD, scores), 5)  # 5.33

    def test_verdict_mapping(self):
        scores = ComponentScores(visual_match=1, contextual_match=1, tone_alignment=1)
        expected = {AlignmentVerdict.STRONG: 8, AlignmentVerdict.MODERATE: 6, AlignmentVerdict.WEAK: 4}
        for verdict, score in expected.items():
            self.assertEqual(compute_overall_score(AnalysisMode.PERSUASION, scores, verdict), score)

    def test_accepts_component_scores_key(self):
        payload = {"componentScores": VALID_PAYLOAD["scores"], "suggestions": VALID_PAYLOAD["suggestions"]}
        self.assertEqual(validate_payload(payload, AnalysisMode.STANDARD).overall_score, 8)

    def test_rejects_missing_keys_and_bad_scores(self):
        bad_payloads = [
            {},
            {"scores": VALID_PAYLOAD["scores"]},
            {"suggestions": VALID_PAYLOAD["suggestions"]},
            {**VALID_PAYLOAD, "scores": {"visualMatch": 8, "contextualMatch": 7}},
            {**VALID_PAYLOAD, "scores": {"visualMatch": 11, "contextualMatch": 7, "toneAlignment": 9}},
            {**VALID_PAYLOAD, "scores": {"visualMatch": 0, "contextualMatch": 7, "toneAlignment": 9}},
            {**VALID_PAYLOAD, "scores": {"visualMatch": "8", "contextualMatch": 7, "toneAlignment": 9}},
            {**VALID_PAYLOAD, "scores": {"visualMatch": True, "contextualMatch": 7, "toneAlignment": 9}},
            {**VALID_PAYLOAD, "suggestions": {"visual": "one", "contextual": [], "tone": []}},
        ]
        for payload in bad_payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(AnalysisValidationError):
                    validate_payload(payload, AnalysisMode.STANDARD)

    def test_persuasion_payload(self):
        result = validate_payload(persuasion_payload("WEAK"), AnalysisMode.PERSUASION)
        self.assertEqual(result.overall_score, 4)
        self.assertEqual(set(result.persuasion.principles), {
            "reciprocity", "commitment", "social_proof", "authority", "liking", "scarcity",
        })
        response = result.to_response()
        self.assertIn("socialProof", response["persuasion"]["principles"])

    def test_persuasion_requires_every_principle(self):
        payload = persuasion_payload()
        del payload["persuasion"]["principles"]["scarcity"]
        with self.assertRaises(AnalysisValidationError):
            validate_payload(payload, AnalysisMode.PERSUASION)

    def test_parse_json_text_handles_fences(self):
        text = "Here you go:\n```json\n" + json.dumps(VALID_PAYLOAD) + "\n```"
        self.assertEqual(parse_json_text(text), VALID_PAYLOAD)

    def test_parse_json_text_rejects_invalid_json(self):
        for text in ["{not json", "no braces here", '{"scores": {"visualMatch": 8,}}']:
            with self.subTest(text=text):
                with self.assertRaises(AnalysisValidationError):
                    parse_json_text(text)

    def test_extract_payload_prefers_tool_block(self):
        self.assertEqual(extract_payload(tool_response(VALID_PAYLOAD), ALIGNMENT_TOOL_NAME), VALID_PAYLOAD)

    def test_extract_payload_empty_response(self):
        with self.assertRaises(AnalysisValidationError):
            extract_payload(SimpleNamespace(content=[]), ALIGNMENT_TOOL_NAME)


class TestFallback(unittest.TestCase):

    def test_fallback_is_deterministic_and_in_range(self):
        context = make_context()
        first = build_fallback_result(context)
        second = build_fallback_result(context)
        self.assertEqual(first, second)
        for score in first.component_scores.model_dump().values():
            self.assertTrue(5 <= score <= 8)

    def test_fallback_overall_is_rounded_mean(self):
        for url in ["https://a.example", "https://b.example", "https://c.example/x"]:
            result = build_fallback_result(make_context(url=url))
            scores = result.component_scores
            expected = round((scores.visual_match + scores.contextual_match + scores.tone_alignment) / 3)
            self.assertEqual(result.overall_score, expected)

    def test_fallback_uses_platform_suggestions(self):
        tiktok = build_fallback_result(make_context(platform=Platform.TIKTOK))
        unknown = build_fallback_result(make_context(platform=Platform.UNKNOWN))
        self.assertNotEqual(tiktok.suggestions, unknown.suggestions)
        self.assertEqual(len(tiktok.suggestions.visual), 3)

    def test_persuasion_fallback(self):
        result = build_fallback_result(make_context(mode=AnalysisMode.PERSUASION))
        self.assertEqual(result.persuasion.alignment_verdict, AlignmentVerdict.MODERATE)
        self.assertEqual(result.overall_score, 6)
        self.assertTrue(all(p.score == PrincipleStrength.MEDIUM for p in result.persuasion.principles.values()))


class TestPrompt(unittest.TestCase):

    def test_preview_note_and_framing(self):
        prompt = build_analysis_prompt(make_context(
            platform=Platform.TIKTOK, source_type=AdSourceType.PREVIEW, media_type=MediaType.VIDEO,
        ))
        self.assertIn("visual energy", prompt)
        self.assertIn("screenshot of a platform preview page", prompt)
        self.assertIn("single captured frame", prompt)
        self.assertIn("https://shop.example.com/offer", prompt)

    def test_no_preview_note_for_library_url(self):
        prompt = build_analysis_prompt(make_context())
        self.assertNotIn("preview page", prompt)
        self.assertIn(ALIGNMENT_TOOL_NAME, prompt)

    def test_image_blocks(self):
        self.assertEqual(image_block(make_image())["source"]["type"], "base64")
        remote = CapturedImage(source_url="https://cdn.example.com/ad.png", captured_at=utc_now(), remote=True)
        self.assertEqual(image_block(remote)["source"], {"type": "url", "url": "https://cdn.example.com/ad.png"})


class TestVisionAnalyzer(unittest.IsolatedAsyncioTestCase):

    def make_analyzer(self, create=None, timeout=5.0):
        client = Mock()
        client.messages.create = create or Mock(return_value=tool_response(VALID_PAYLOAD))
        return VisionAnalyzer(client=client, model="test-model", timeout=timeout), client

    async def test_success(self):
        analyzer, client = self.make_analyzer()
        outcome = await analyzer.analyze(make_image(), make_image(), make_context())

        self.assertIsInstance(outcome, AnalysisSuccess)
        self.assertTrue(outcome.used_ai)
        self.assertEqual(outcome.result.overall_score, 8)

        kwargs = client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        self.assertEqual(kwargs["tool_choice"], {"type": "tool", "name": ALIGNMENT_TOOL_NAME})
        images = [block for block in kwargs["messages"][0]["content"] if block["type"] == "image"]
        self.assertEqual(len(images), 2)

    async def test_persuasion_uses_persuasion_tool(self):
        create = Mock(return_value=tool_response(persuasion_payload(), name=PERSUASION_TOOL_NAME))
        analyzer, client = self.make_analyzer(create=create)
        outcome = await analyzer.analyze(make_image(), make_image(), make_context(mode=AnalysisMode.PERSUASION))
        self.assertIsInstance(outcome, AnalysisSuccess)
        self.assertEqual(outcome.result.overall_score, 8)
        self.assertEqual(client.messages.create.call_args.kwargs["tools"][0]["name"], PERSUASION_TOOL_NAME)

    async def test_invalid_json_falls_back_with_rounded_mean(self):
        analyzer, _ = self.make_analyzer(create=Mock(return_value=text_response("{'scores': oops")))
        outcome = await analyzer.analyze(make_image(), make_image(), make_context())

        self.assertIsInstance(outcome, AnalysisFallback)
        self.assertFalse(outcome.used_ai)
        self.assertIn("invalid model output", outcome.reason)
        scores = outcome.result.component_scores
        self.assertEqual(
            outcome.result.overall_score,
            round((scores.visual_match + scores.contextual_match + scores.tone_alignment) / 3),
        )

    async def test_api_error_falls_back(self):
        error = anthropic.APIConnectionError(request=Mock())
        analyzer, _ = self.make_analyzer(create=Mock(side_effect=error))
        outcome = await analyzer.analyze(make_image(), make_image(), make_context())
        self.assertIsInstance(outcome, AnalysisFallback)
        self.assertIn("APIConnectionError", outcome.reason)

    async def test_timeout_falls_back(self):
        def slow_create(**kwargs):
            time.sleep(0.5)
            return tool_response(VALID_PAYLOAD)

        analyzer, _ = self.make_analyzer(create=Mock(side_effect=slow_create), timeout=0.05)
        outcome = await analyzer.analyze(make_image(), make_image(), make_context())
        self.assertIsInstance(outcome, AnalysisFallback)
        self.assertIn("timed out", outcome.reason)

    async def test_out_of_range_score_falls_back(self):
        payload = {**VALID_PAYLOAD, "scores": {"visualMatch": 12, "contextualMatch": 7, "toneAlignment": 9}}
        analyzer, _ = self.make_analyzer(create=Mock(return_value=tool_response(payload)))
        outcome = await analyzer.analyze(make_image(), make_image(), make_context())
        self.assertIsInstance(outcome, AnalysisFallback)

    async def test_missing_client_falls_back(self):
        analyzer = VisionAnalyzer(client=None, model="test-model")
        outcome = await analyzer.analyze(make_image(), make_image(), make_context())
        self.assertIsInstance(outcome, AnalysisFallback)
        self.assertEqual(outcome.reason, "vision client not configured")


if __name__ == '__main__':
    unittest.main()
