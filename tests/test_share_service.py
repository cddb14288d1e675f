"""
Unit tests for shared report links and sanitization
"""

import shutil
import tempfile
import unittest
import sys
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from data.db import DatabaseConnection
from data.evaluation_repository import EvaluationRepository
from data.share_repository import ShareRepository
from schemas.domain import (
    AdSourceType,
    AnalysisMode,
    ComponentScores,
    Evaluation,
    MediaType,
    Platform,
)
from services.reports.sanitizer import sanitize_evaluation, sanitize_text
from services.reports.share_service import (
    ShareLookupStatus,
    ShareService,
    ShareSourceNotFoundError,
    ShareTokenCollisionError,
    build_share_title,
    generate_share_token,
    is_valid_share_token,
)

EVALUATION_PAYLOAD = {
    "overallScore": 7,
    "componentScores": {"visualMatch": 8, "contextualMatch": 6, "toneAlignment": 7},
    "suggestions": {
        "visual": ["Match the hero image at https://shop.example.com/hero.png"],
        "contextual": ["Email sales@shop.example.com for the offer details"],
        "tone": ["Call 555-123-4567 is too pushy for this audience"],
    },
    "platform": "meta",
    "analysisMode": "standard",
    "evaluationId": "eval-1",
    "landingPageUrl": "https://shop.example.com/secret-campaign",
    "userEmail": "owner@acme.io",
    "clientIp": "203.0.113.9",
    "screenshots": {"ad": {"sourceUrl": "https://facebook.com/ads/library/?id=1"}},
}


class TestSanitizer(unittest.TestCase):

    def test_masks_urls_emails_and_phones(self):
        self.assertEqual(sanitize_text("see https://x.example/a?b=1 now"), "see [URL] now")
        self.assertEqual(sanitize_text("mail jo@acme.io"), "mail [EMAIL]")
        self.assertEqual(sanitize_text("call 555.123.4567"), "call [PHONE]")
        self.assertEqual(sanitize_text(None), "")

    def test_whitelists_public_fields(self):
        sanitized = sanitize_evaluation(EVALUATION_PAYLOAD)

        for private_key in ("evaluationId", "landingPageUrl", "userEmail", "clientIp", "screenshots"):
            self.assertNotIn(private_key, sanitized)
        self.assertEqual(sanitized["overallScore"], 7)
        self.assertEqual(sanitized["componentScores"]["visualMatch"], 8)
        self.assertEqual(sanitized["platform"], "meta")
        self.assertEqual(sanitized["suggestions"]["visual"], ["Match the hero image at [URL]"])
        self.assertEqual(sanitized["suggestions"]["contextual"], ["Email [EMAIL] for the offer details"])
        self.assertEqual(sanitized["suggestions"]["tone"], ["Call [PHONE] is too pushy for this audience"])

    def test_persuasion_block_is_sanitized(self):
        payload = {
            **EVALUATION_PAYLOAD,
            "persuasion": {
                "alignmentVerdict": "STRONG",
                "principles": {"socialProof": {"score": "HIGH", "adAnalysis": "Quote from bob@acme.io",
                                               "pageAnalysis": "ok", "recommendation": "ok", "extra": "x"}},
                "psychologicalInsights": ["Visit https://evil.example"],
            },
        }
        persuasion = sanitize_evaluation(payload)["persuasion"]
        self.assertEqual(persuasion["alignmentVerdict"], "STRONG")
        self.assertEqual(persuasion["principles"]["socialProof"]["adAnalysis"], "Quote from [EMAIL]")
        self.assertNotIn("extra", persuasion["principles"]["socialProof"])
        self.assertEqual(persuasion["psychologicalInsights"], ["Visit [URL]"])

    def test_wrong_shaped_sections_are_dropped(self):
        payload = {
            **EVALUATION_PAYLOAD,
            "componentScores": [7, 7, 7],
            "suggestions": "be better",
            "persuasion": {"principles": ["x"], "alignmentVerdict": "WEAK"},
        }
        sanitized = sanitize_evaluation(payload)
        self.assertEqual(sanitized["componentScores"], {"visualMatch": None, "contextualMatch": None, "toneAlignment": None})
        self.assertEqual(sanitized["suggestions"], {"visual": [], "contextual": [], "tone": []})
        self.assertEqual(sanitized["persuasion"]["principles"], {})
        self.assertEqual(sanitized["persuasion"]["alignmentVerdict"], "WEAK")


class TestShareTokens(unittest.TestCase):

    def test_generated_tokens_are_valid_and_unique(self):
        tokens = {generate_share_token() for _ in range(200)}
        self.assertEqual(len(tokens), 200)
        self.assertTrue(all(is_valid_share_token(token) for token in tokens))

    def test_rejects_malformed_tokens(self):
        for token in ["short", "has spaces in the token value", "../../etc/passwd-xxxxxxxx", "x" * 65, ""]:
            with self.subTest(token=token):
                self.assertFalse(is_valid_share_token(token))

    def test_title(self):
        now = datetime(2026, 3, 5, tzinfo=timezone.utc)
        self.assertEqual(build_share_title(EVALUATION_PAYLOAD, now), "Meta Ad Analysis - 7/10 Score (Mar 05, 2026)")
        self.assertEqual(build_share_title({}, now), "Platform Ad Analysis - 0/10 Score (Mar 05, 2026)")


class TestShareService(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db = DatabaseConnection(os.path.join(self.tmpdir, "shares.db"))
        self.shares = ShareRepository(self.db)
        self.evaluations = EvaluationRepository(self.db)
        self.now = datetime(2026, 3, 5, 9, 0, tzinfo=timezone.utc)
        self.service = self.make_service()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def make_service(self, **kwargs):
        kwargs.setdefault("shares", self.shares)
        kwargs.setdefault("evaluations", self.evaluations)
        return ShareService(
            clock=lambda: self.now,
            duration_hours=72,
            public_url="https://app.example.com/",
            **kwargs,
        )

    def test_create_and_read_share(self):
        creation = self.service.create_share("eval-1", EVALUATION_PAYLOAD)
        self.assertFalse(creation.mock)
        self.assertEqual(creation.share_url, f"https://app.example.com/shared/{creation.share_token}")
        self.assertEqual(creation.expires_at, self.now + timedelta(hours=72))

        lookup = self.service.get_share(creation.share_token)
        self.assertEqual(lookup.status, ShareLookupStatus.FOUND)
        self.assertEqual(lookup.report.view_count, 0)
        self.assertNotIn("landingPageUrl", lookup.report.sanitized_payload)

    def test_share_from_stored_evaluation(self):
        self.evaluations.persist(Evaluation(
            id="eval-stored",
            platform=Platform.TIKTOK,
            ad_source_type=AdSourceType.PREVIEW,
            media_type=MediaType.VIDEO,
            landing_page_url="https://shop.example.com/",
            overall_score=6,
            component_scores=ComponentScores(visual_match=6, contextual_match=6, tone_alignment=7),
            analysis_mode=AnalysisMode.STANDARD,
            analysis={"overallScore": 6, "componentScores": {"visualMatch": 6, "contextualMatch": 6, "toneAlignment": 7},
                      "suggestions": {"visual": [], "contextual": [], "tone": []}},
            used_ai=False,
            created_at=self.now,
        ))
        creation = self.service.create_share("eval-stored")
        self.assertTrue(creation.title.startswith("Tiktok Ad Analysis - 6/10"))
        report = self.service.get_share(creation.share_token).report
        self.assertEqual(report.sanitized_payload["platform"], "tiktok")

    def test_missing_evaluation(self):
        with self.assertRaises(ShareSourceNotFoundError):
            self.service.create_share("does-not-exist")

    def test_unknown_token(self):
        self.assertEqual(self.service.get_share("A" * 22).status, ShareLookupStatus.NOT_FOUND)

    def test_expired_share_is_gone_even_after_views(self):
        creation = self.service.create_share("eval-1", EVALUATION_PAYLOAD)
        for _ in range(3):
            self.service.record_view(creation.share_token)

        self.now = self.now + timedelta(hours=72, seconds=1)
        lookup = self.service.get_share(creation.share_token)
        self.assertEqual(lookup.status, ShareLookupStatus.EXPIRED)
        self.assertEqual(lookup.report.view_count, 3)

    def test_share_valid_until_expiry_instant(self):
        creation = self.service.create_share("eval-1", EVALUATION_PAYLOAD)
        self.now = creation.expires_at
        self.assertEqual(self.service.get_share(creation.share_token).status, ShareLookupStatus.FOUND)

    def test_record_view_increments(self):
        creation = self.service.create_share("eval-1", EVALUATION_PAYLOAD)
        self.service.record_view(creation.share_token)
        report = self.service.get_share(creation.share_token).report
        self.assertEqual(report.view_count, 1)
        self.assertIsNotNone(report.last_viewed_at)

    def test_token_collision_regenerates(self):
        tokens = iter(["collision-token-0001", "collision-token-0001", "fresh-token-000002"])
        service = self.make_service(token_factory=lambda: next(tokens))

        first = service.create_share("eval-1", EVALUATION_PAYLOAD)
        second = service.create_share("eval-2", EVALUATION_PAYLOAD)
        self.assertEqual(first.share_token, "collision-token-0001")
        self.assertEqual(second.share_token, "fresh-token-000002")

    def test_repeated_collisions_raise(self):
        service = self.make_service(token_factory=lambda: "always-the-same-token")
        service.create_share("eval-1", EVALUATION_PAYLOAD)
        with self.assertRaises(ShareTokenCollisionError):
            service.create_share("eval-2", EVALUATION_PAYLOAD)

    def test_storage_failure_returns_mock_share(self):
        shares = Mock(spec=ShareRepository)
        shares.insert.side_effect = RuntimeError("database unavailable")
        service = self.make_service(shares=shares)

        creation = service.create_share("eval-1", EVALUATION_PAYLOAD)
        self.assertTrue(creation.mock)
        self.assertTrue(is_valid_share_token(creation.share_token))

    def test_record_view_failure_is_swallowed(self):
        shares = Mock(spec=ShareRepository)
        shares.increment_view_count.side_effect = RuntimeError("database unavailable")
        service = self.make_service(shares=shares)
        service.record_view("A" * 22)
        shares.increment_view_count.assert_called_once_with("A" * 22)


if __name__ == '__main__':
    unittest.main()
