"""Classify submitted ad references by platform, media type and source kind"""

import logging
from typing import Optional
from urllib.parse import urlparse, parse_qs

from schemas.domain import (
    AdClassification,
    AdReference,
    AdReferenceKind,
    AdSourceType,
    MediaType,
    Platform,
)
from services.ads.platforms import PLATFORM_PROFILES, get_platform_profile

logger = logging.getLogger(__name__)

# Path segments that name a listing page rather than an ad
_GENERIC_SEGMENTS = {"ads", "library", "ad-library", "ad_library", "confirmation", "detail", "preview"}


def _parse(url: str):
    """urlparse that reports malformed input as None instead of raising"""
    try:
        parsed = urlparse(url.strip())
    except (ValueError, AttributeError):
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return parsed


def detect_platform(url: str) -> Platform:
    """Match a URL against every platform's patterns; UNKNOWN when nothing matches"""
    if _parse(url) is None:
        return Platform.UNKNOWN

    for platform, profile in PLATFORM_PROFILES.items():
        if any(pattern.search(url) for pattern in profile.url_patterns):
            return platform
    return Platform.UNKNOWN


def is_preview_link(url: str, platform: Platform) -> bool:
    profile = get_platform_profile(platform)
    if profile is None or _parse(url) is None:
        return False
    return any(pattern.search(url) for pattern in profile.preview_patterns)


def extract_ad_id(url: str) -> Optional[str]:
    """Read a platform-specific ad identifier out of an ad URL, if present"""
    parsed = _parse(url)
    if parsed is None:
        return None

    profile = get_platform_profile(detect_platform(url))
    if profile is None:
        return None

    query = parse_qs(parsed.query)
    for param in profile.ad_id_params:
        values = query.get(param)
        if values and values[0]:
            return values[0]

    if profile.ad_id_path_pattern is not None:
        match = profile.ad_id_path_pattern.search(parsed.path)
        if match and match.group(1).lower() not in _GENERIC_SEGMENTS:
            return match.group(1)
    return None


def _resolve_media_type(platform: Platform, hint: Optional[str]) -> MediaType:
    profile = get_platform_profile(platform)
    if profile is not None and profile.video_first:
        return MediaType.VIDEO
    if hint:
        try:
            return MediaType(hint.strip().lower())
        except ValueError:
            pass
    return MediaType.IMAGE


def classify(reference: AdReference) -> AdClassification:
    """
    Decide platform, media type and source type for an ad reference.

    Pure and total: the same reference always yields the same classification
    and bad input degrades to ``Platform.UNKNOWN`` instead of raising.
    """
    if reference.kind == AdReferenceKind.UPLOAD:
        platform = Platform.parse(reference.platform)
        return AdClassification(
            platform=platform,
            media_type=_resolve_media_type(platform, reference.media_type),
            source_type=AdSourceType.UPLOAD,
        )

    url = reference.raw_value or ""
    platform = detect_platform(url)
    if platform == Platform.UNKNOWN and reference.platform:
        # Hosted creatives on CDNs carry no platform signal in the URL
        platform = Platform.parse(reference.platform)

    preview = is_preview_link(url, platform)
    classification = AdClassification(
        platform=platform,
        media_type=_resolve_media_type(platform, reference.media_type),
        source_type=AdSourceType.PREVIEW if preview else AdSourceType.URL,
        is_preview_link=preview,
        ad_id=extract_ad_id(url),
    )
    logger.debug(f"Classified ad reference: {classification.model_dump()}")
    return classification
