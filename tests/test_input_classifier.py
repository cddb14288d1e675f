"""
Unit tests for the ad input classifier
"""

import unittest
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from schemas.domain import AdReference, AdReferenceKind, AdSourceType, MediaType, Platform
from services.ads.input_classifier import classify, detect_platform, extract_ad_id
from services.ads.platforms import PLATFORM_PROFILES


def url_ref(url, **kwargs):
    return AdReference(kind=AdReferenceKind.URL, raw_value=url, **kwargs)


class TestPlatformProfiles(unittest.TestCase):

    def test_every_supported_platform_has_a_profile(self):
        for platform in Platform:
            if platform == Platform.UNKNOWN:
                self.assertNotIn(platform, PLATFORM_PROFILES)
            else:
                self.assertIn(platform, PLATFORM_PROFILES, f"{platform} has no profile")
                self.assertEqual(PLATFORM_PROFILES[platform].platform, platform)

    def test_fallback_suggestions_cover_all_dimensions(self):
        for profile in PLATFORM_PROFILES.values():
            self.assertEqual(set(profile.fallback_suggestions), {"visual", "contextual", "tone"})
            for suggestions in profile.fallback_suggestions.values():
                self.assertEqual(len(suggestions), 3)


class TestInputClassifier(unittest.TestCase):
    """Test cases for classify()"""

    def test_detects_each_platform_from_library_urls(self):
        cases = {
            "https://www.facebook.com/ads/library/?id=123456": Platform.META,
            "https://library.tiktok.com/ads/detail/?ad_id=987": Platform.TIKTOK,
            "https://adstransparency.google.com/advertiser/AR1?creative-id=CR9": Platform.GOOGLE,
            "https://www.linkedin.com/ad-library/detail/55501": Platform.LINKEDIN,
            "https://www.reddit.com/r/RedditPoliticalAds/comments/abc123/post/": Platform.REDDIT,
        }
        for url, expected in cases.items():
            with self.subTest(url=url):
                self.assertEqual(detect_platform(url), expected)

    def test_unmatched_url_defaults_to_unknown(self):
        result = classify(url_ref("https://cdn.example.com/creative.png"))
        self.assertEqual(result.platform, Platform.UNKNOWN)
        self.assertEqual(result.source_type, AdSourceType.URL)
        self.assertEqual(result.media_type, MediaType.IMAGE)

    def test_malformed_url_never_raises(self):
        for raw in ["not a url", "", "http://", "ftp://facebook.com/ads/library", "http://[::1"]:
            with self.subTest(raw=raw):
                result = classify(url_ref(raw))
                self.assertEqual(result.platform, Platform.UNKNOWN)
                self.assertFalse(result.is_preview_link)

    def test_tiktok_preview_link_is_preview_video(self):
        result = classify(url_ref("https://ttam.tiktok.com/ad/preview?token=abc"))
        self.assertEqual(result.platform, Platform.TIKTOK)
        self.assertEqual(result.source_type, AdSourceType.PREVIEW)
        self.assertEqual(result.media_type, MediaType.VIDEO)
        self.assertTrue(result.is_preview_link)

    def test_meta_preview_links(self):
        for url in ["https://fb.me/adspreview/abc", "https://www.facebook.com/ads/experience/confirmation/?id=1"]:
            with self.subTest(url=url):
                result = classify(url_ref(url))
                self.assertEqual(result.platform, Platform.META)
                self.assertEqual(result.source_type, AdSourceType.PREVIEW)

    def test_library_url_is_not_preview(self):
        result = classify(url_ref("https://www.facebook.com/ads/library/?id=42"))
        self.assertFalse(result.is_preview_link)
        self.assertEqual(result.source_type, AdSourceType.URL)

    def test_tiktok_is_video_even_with_image_hint(self):
        result = classify(url_ref("https://library.tiktok.com/ads/detail/?ad_id=1", media_type="image"))
        self.assertEqual(result.media_type, MediaType.VIDEO)

    def test_media_hint_used_for_other_platforms(self):
        result = classify(url_ref("https://www.facebook.com/ads/library/?id=1", media_type="video"))
        self.assertEqual(result.media_type, MediaType.VIDEO)

    def test_upload_uses_explicit_platform(self):
        result = classify(AdReference(kind=AdReferenceKind.UPLOAD, raw_value="data:image/png;base64,AAAA",
                                      platform="LinkedIn"))
        self.assertEqual(result.platform, Platform.LINKEDIN)
        self.assertEqual(result.source_type, AdSourceType.UPLOAD)
        self.assertFalse(result.is_preview_link)

    def test_upload_with_unknown_platform(self):
        result = classify(AdReference(kind=AdReferenceKind.UPLOAD, raw_value="data:image/png;base64,AAAA",
                                      platform="myspace"))
        self.assertEqual(result.platform, Platform.UNKNOWN)

    def test_classification_is_idempotent(self):
        references = [
            url_ref("https://ttam.tiktok.com/ad/preview?token=abc"),
            url_ref("https://www.reddit.com/promoted/xyz"),
            url_ref("garbage"),
            AdReference(kind=AdReferenceKind.UPLOAD, raw_value="data:image/png;base64,AAAA", platform="meta"),
        ]
        for reference in references:
            with self.subTest(reference=reference.raw_value):
                self.assertEqual(classify(reference), classify(reference))


class TestExtractAdId(unittest.TestCase):

    def test_meta_query_parameter(self):
        self.assertEqual(extract_ad_id("https://www.facebook.com/ads/library/?ad_id=777"), "777")

    def test_google_advertiser_id(self):
        url = "https://adstransparency.google.com/advertiser/x?advertiser-id=AR42&creative-id=CR1"
        self.assertEqual(extract_ad_id(url), "AR42")

    def test_reddit_comment_id(self):
        self.assertEqual(extract_ad_id("https://www.reddit.com/r/RedditPoliticalAds/comments/q1w2e3/title/"), "q1w2e3")

    def test_listing_page_has_no_id(self):
        self.assertIsNone(extract_ad_id("https://library.tiktok.com/ads"))

    def test_unknown_platform_has_no_id(self):
        self.assertIsNone(extract_ad_id("https://example.com/ad/123"))


if __name__ == '__main__':
    unittest.main()
