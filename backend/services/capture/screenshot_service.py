"""
Screenshot acquisition for landing pages and ad URLs.

``capture`` never raises: unsafe targets, missing credentials, network
errors, timeouts and non-image responses all come back as a placeholder
image tagged ``is_placeholder=True`` with the reason in its metadata.
"""
import asyncio
import base64
import binascii
import logging
import re
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse

from integrations.screenshot_api import CaptureOptions, ScreenshotAPIClient, ScreenshotAPIError
from schemas.domain import AdClassification, CapturedImage, CaptureMetadata, Platform
from services.ads.platforms import DESKTOP_CHROME_UA, preview_tuning_for
from services.capture.placeholder import build_placeholder
from services.capture.url_safety import check_capture_url
from utils.periods import utc_now

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_UPLOAD_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
DATA_URL_PATTERN = re.compile(r"^data:(?P<media_type>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


class CaptureTarget(str, Enum):
    LANDING_PAGE = "landing_page"
    AD = "ad"


class InvalidUploadError(ValueError):
    """Uploaded ad image is malformed, too large or of an unsupported type"""
    pass


LANDING_PAGE_OPTIONS = CaptureOptions(
    width=1920,
    height=1080,
    full_page=True,
    delay_ms=2000,
    timeout_seconds=25.0,
    user_agent=DESKTOP_CHROME_UA,
)

AD_PAGE_OPTIONS = CaptureOptions(
    width=1200,
    height=1200,
    full_page=False,
    delay_ms=3000,
    timeout_seconds=25.0,
    user_agent=DESKTOP_CHROME_UA,
)


def capture_options_for(platform: Platform, is_preview: bool, target: CaptureTarget) -> CaptureOptions:
    """Capture parameters for a target; preview links get platform tuning"""
    if target == CaptureTarget.LANDING_PAGE:
        return LANDING_PAGE_OPTIONS
    if not is_preview:
        return AD_PAGE_OPTIONS

    tuning = preview_tuning_for(platform)
    return CaptureOptions(
        width=AD_PAGE_OPTIONS.width,
        height=AD_PAGE_OPTIONS.height,
        full_page=False,
        delay_ms=tuning.delay_ms,
        timeout_seconds=tuning.timeout_seconds,
        wait_for_selector=tuning.wait_for_selector,
        user_agent=tuning.user_agent,
    )


def _metadata(options: CaptureOptions) -> CaptureMetadata:
    return CaptureMetadata(
        viewport_width=options.width,
        viewport_height=options.height,
        full_page=options.full_page,
        delay_ms=options.delay_ms,
        wait_for_selector=options.wait_for_selector,
    )


class ScreenshotService:
    """Turns URLs into images, falling back to placeholders"""

    def __init__(self, api_client: Optional[ScreenshotAPIClient] = None):
        self.api_client = api_client or ScreenshotAPIClient()

    async def capture(self, url: str, options: CaptureOptions) -> CapturedImage:
        metadata = _metadata(options)

        allowed, reason = check_capture_url(url)
        if not allowed:
            logger.warning(f"🚫 Refusing to capture {url!r}: {reason}")
            return build_placeholder(url, f"blocked ({reason})", metadata)

        try:
            screenshot = await self.api_client.capture(url, options)
        except ScreenshotAPIError as e:
            logger.warning(f"⚠️  Screenshot failed for {url}: {e}")
            return build_placeholder(url, str(e), metadata)
        except Exception as e:
            logger.error(f"❌ Unexpected screenshot error for {url}: {type(e).__name__}: {e}")
            return build_placeholder(url, "unexpected capture error", metadata)

        logger.info(f"📸 Captured {url} ({len(screenshot.content)} bytes, {screenshot.media_type}, delay={options.delay_ms}ms)")
        return CapturedImage(
            source_url=url,
            content=screenshot.content,
            media_type=screenshot.media_type,
            captured_at=utc_now(),
            metadata=metadata,
        )

    async def capture_landing_page(self, url: str) -> CapturedImage:
        return await self.capture(url, LANDING_PAGE_OPTIONS)

    async def capture_ad(self, url: str, classification: AdClassification) -> CapturedImage:
        options = capture_options_for(
            classification.platform, classification.is_preview_link, CaptureTarget.AD
        )
        return await self.capture(url, options)

    async def capture_pair(
        self,
        ad_url: Optional[str],
        landing_url: str,
        classification: AdClassification,
    ) -> Tuple[Optional[CapturedImage], CapturedImage]:
        """Capture ad (when given) and landing page concurrently; each falls back on its own"""
        if ad_url is None:
            return None, await self.capture_landing_page(landing_url)

        ad_image, landing_image = await asyncio.gather(
            self.capture_ad(ad_url, classification),
            self.capture_landing_page(landing_url),
        )
        return ad_image, landing_image

    def resolve_upload(self, raw_value: str) -> CapturedImage:
        """
        Turn an uploaded ad into a CapturedImage.

        ``data:`` URLs are decoded and checked inline. Hosted image URLs are
        passed through by reference for the vision model to fetch.

        Raises:
            InvalidUploadError: for malformed data, oversize images or
                unsupported image types
        """
        raw_value = (raw_value or "").strip()
        match = DATA_URL_PATTERN.match(raw_value)
        if match:
            media_type = match.group("media_type").lower()
            if media_type == "image/jpg":
                media_type = "image/jpeg"
            if media_type not in ALLOWED_UPLOAD_TYPES:
                raise InvalidUploadError(f"Unsupported image type: {media_type}")
            try:
                content = base64.b64decode(match.group("data"), validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidUploadError("Uploaded image is not valid base64") from e
            if not content:
                raise InvalidUploadError("Uploaded image is empty")
            if len(content) > MAX_UPLOAD_BYTES:
                raise InvalidUploadError("Uploaded image exceeds the 5MB limit")
            return CapturedImage(
                source_url="upload",
                content=content,
                media_type=media_type,
                captured_at=utc_now(),
            )

        parsed = urlparse(raw_value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidUploadError("imageUrl must be a data: URL or an http(s) image URL")
        return CapturedImage(
            source_url=raw_value,
            captured_at=utc_now(),
            remote=True,
        )

    async def close(self):
        await self.api_client.close()
