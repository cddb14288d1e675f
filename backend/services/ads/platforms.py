"""
Per-platform profiles for the supported ad platforms.

Every supported ``Platform`` member owns exactly one ``PlatformProfile``.
Recognition patterns, preview-link capture tuning, prompt framing and the
static fallback suggestions all hang off the profile, so adding a platform
means adding one entry here (``tests/test_input_classifier.py`` fails when a
member has no profile).
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Pattern, Tuple

from schemas.domain import Platform

DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
IPHONE_SAFARI_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@dataclass(frozen=True)
class PreviewCaptureTuning:
    """Capture parameters for client-rendered preview pages"""
    delay_ms: int
    wait_for_selector: str
    user_agent: str
    timeout_seconds: float = 35.0


@dataclass(frozen=True)
class PlatformProfile:
    platform: Platform
    display_name: str
    url_patterns: Tuple[Pattern, ...]
    prompt_framing: str
    fallback_suggestions: Dict[str, Tuple[str, ...]]
    preview_patterns: Tuple[Pattern, ...] = ()
    preview_tuning: Optional[PreviewCaptureTuning] = None
    video_first: bool = False
    ad_id_params: Tuple[str, ...] = field(default=())
    ad_id_path_pattern: Optional[Pattern] = None


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


LAST_PATH_SEGMENT = re.compile(r"/([^/]+)/?$")

DEFAULT_PREVIEW_TUNING = PreviewCaptureTuning(
    delay_ms=8000,
    wait_for_selector="video, img",
    user_agent=DESKTOP_CHROME_UA,
)

GENERIC_FRAMING = "digital advertising - focus on message match and conversion clarity"

GENERIC_FALLBACK_SUGGESTIONS: Dict[str, Tuple[str, ...]] = {
    "visual": (
        "Ensure brand colors are consistent between ad and landing page",
        "Optimize images for mobile viewing",
        "Use high-contrast visuals that stand out",
    ),
    "contextual": (
        "Match your ad's value proposition with landing page headline",
        "Ensure CTA language is consistent",
        "Include social proof elements",
    ),
    "tone": (
        "Maintain consistent voice across touchpoints",
        "Use platform-appropriate language",
        "Focus on user benefits",
    ),
}


PLATFORM_PROFILES: Dict[Platform, PlatformProfile] = {
    Platform.META: PlatformProfile(
        platform=Platform.META,
        display_name="Meta (Facebook/Instagram)",
        url_patterns=_compile(
            r"facebook\.com/ads/library",
            r"facebook\.com/ad_library",
            r"facebook\.com/ads/experience/confirmation",
            r"^https?://(www\.)?fb\.me/",
        ),
        preview_patterns=_compile(
            r"^https?://(www\.)?fb\.me/",
            r"/ads/experience/confirmation",
        ),
        preview_tuning=PreviewCaptureTuning(
            delay_ms=8000,
            wait_for_selector='[data-testid*="ad"], [role="img"], video',
            user_agent=DESKTOP_CHROME_UA,
        ),
        prompt_framing="Meta (Facebook & Instagram) - focus on social engagement and mobile optimization",
        fallback_suggestions={
            "visual": (
                "Carry the ad's hero image or product shot into the landing page's first screen",
                "Optimize the landing page for the mobile feed audience that clicked",
                "Keep brand colors identical between the feed creative and the page header",
            ),
            "contextual": (
                "Repeat the ad's primary text promise in the landing page headline",
                "Make the offer from the ad visible without scrolling",
                "Add reviews or social proof that echo the ad's claims",
            ),
            "tone": (
                "Keep the conversational feed tone on the landing page",
                "Avoid switching from casual ad copy to formal page copy",
                "Use the same call-to-action wording as the ad button",
            ),
        },
        ad_id_params=("ad_id", "id"),
        ad_id_path_pattern=LAST_PATH_SEGMENT,
    ),
    Platform.TIKTOK: PlatformProfile(
        platform=Platform.TIKTOK,
        display_name="TikTok",
        url_patterns=_compile(
            r"library\.tiktok\.com",
            r"ads\.tiktok\.com/library",
            r"ttam\.tiktok\.com",
        ),
        preview_patterns=_compile(
            r"^https?://(v-)?ttam\.tiktok\.com",
        ),
        preview_tuning=PreviewCaptureTuning(
            delay_ms=9000,
            wait_for_selector='video, [data-e2e="video-player"], canvas',
            user_agent=IPHONE_SAFARI_UA,
        ),
        video_first=True,
        ad_id_path_pattern=LAST_PATH_SEGMENT,
        prompt_framing="TikTok - focus on visual energy, trends, and authentic content",
        fallback_suggestions={
            "visual": (
                "Reuse the video's key frame or creator look above the fold",
                "Design the landing page for vertical, thumb-first browsing",
                "Mirror the video's color grading and on-screen text style",
            ),
            "contextual": (
                "Reference the hook from the first seconds of the video in the headline",
                "Show the exact product featured in the video immediately",
                "Surface creator or community proof that matches the video",
            ),
            "tone": (
                "Keep the authentic, unpolished voice of the video",
                "Avoid corporate language right after a native-style ad",
                "Use short, energetic copy that matches the video pacing",
            ),
        },
    ),
    Platform.GOOGLE: PlatformProfile(
        platform=Platform.GOOGLE,
        display_name="Google Ads",
        url_patterns=_compile(
            r"adstransparency\.google\.com",
            r"ads\.google\.com/transparency",
            r"transparencyreport\.google\.com.*ads",
        ),
        prompt_framing="Google Ads - focus on search intent alignment and conversion optimization",
        fallback_suggestions={
            "visual": (
                "Keep the landing page layout focused on the advertised product or service",
                "Make the primary conversion element visually dominant",
                "Use imagery that confirms the searcher reached the right page",
            ),
            "contextual": (
                "Echo the ad headline keywords in the landing page H1",
                "Answer the search intent in the first paragraph",
                "Keep pricing or offer details consistent with the ad text",
            ),
            "tone": (
                "Match the direct, benefit-led tone of the ad copy",
                "Use the same terminology searchers used in the ad",
                "Keep the call-to-action wording identical to the ad",
            ),
        },
        ad_id_params=("advertiser-id", "creative-id"),
    ),
    Platform.LINKEDIN: PlatformProfile(
        platform=Platform.LINKEDIN,
        display_name="LinkedIn",
        url_patterns=_compile(
            r"linkedin\.com/ad-library",
            r"linkedin\.com/ads/library",
        ),
        prompt_framing="LinkedIn - focus on professional tone and B2B value propositions",
        fallback_suggestions={
            "visual": (
                "Use the same professional imagery style as the sponsored post",
                "Keep company branding prominent in the page header",
                "Present data or charts shown in the ad on the page",
            ),
            "contextual": (
                "Restate the B2B value proposition from the ad in the headline",
                "Match the gated asset or offer promised in the ad",
                "Add client logos or case studies that support the ad's claim",
            ),
            "tone": (
                "Keep an expert, credible voice consistent with the ad",
                "Address the same job role the ad targets",
                "Avoid consumer-style hype after a professional ad",
            ),
        },
        ad_id_params=("ad_id",),
        ad_id_path_pattern=LAST_PATH_SEGMENT,
    ),
    Platform.REDDIT: PlatformProfile(
        platform=Platform.REDDIT,
        display_name="Reddit",
        url_patterns=_compile(
            r"reddit\.com/promoted",
            r"reddit\.com/advertising",
            r"ads\.reddit\.com",
            r"reddit\.com/r/RedditPoliticalAds",
        ),
        prompt_framing="Reddit - focus on community authenticity and non-promotional tone",
        ad_id_path_pattern=re.compile(r"/comments/([a-z0-9]+)"),
        fallback_suggestions={
            "visual": (
                "Keep visuals understated and consistent with the promoted post",
                "Avoid heavy stock imagery that contrasts with the post",
                "Show the product in real use as the post suggests",
            ),
            "contextual": (
                "Deliver the specific detail the promoted post teased",
                "Include transparent pricing and FAQs for skeptical readers",
                "Reference community feedback or reviews",
            ),
            "tone": (
                "Keep the candid, non-promotional voice of the post",
                "Avoid aggressive sales language",
                "Speak to the community's interests directly",
            ),
        },
    ),
}


def get_platform_profile(platform: Platform) -> Optional[PlatformProfile]:
    """Profile for a supported platform; None for UNKNOWN"""
    return PLATFORM_PROFILES.get(platform)


def prompt_framing_for(platform: Platform) -> str:
    profile = get_platform_profile(platform)
    return profile.prompt_framing if profile else GENERIC_FRAMING


def fallback_suggestions_for(platform: Platform) -> Dict[str, Tuple[str, ...]]:
    profile = get_platform_profile(platform)
    return profile.fallback_suggestions if profile else GENERIC_FALLBACK_SUGGESTIONS


def preview_tuning_for(platform: Platform) -> PreviewCaptureTuning:
    profile = get_platform_profile(platform)
    if profile and profile.preview_tuning:
        return profile.preview_tuning
    return DEFAULT_PREVIEW_TUNING


def display_name_for(platform: Platform) -> str:
    profile = get_platform_profile(platform)
    return profile.display_name if profile else "Generic"
