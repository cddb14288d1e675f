"""ScreenshotAPI.net client"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from config import config

logger = logging.getLogger(__name__)


class ScreenshotAPIError(Exception):
    """Capture request failed or returned something other than an image"""
    pass


@dataclass(frozen=True)
class CaptureOptions:
    width: int
    height: int
    full_page: bool
    delay_ms: int
    timeout_seconds: float
    wait_for_selector: Optional[str] = None
    user_agent: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "width": self.width,
            "height": self.height,
            "full_page": self.full_page,
            "delay": self.delay_ms,
            "output": "image",
            "file_type": "png",
            "wait_for_event": "load",
            "block_ads": True,
            "block_cookie_banners": True,
        }
        if self.wait_for_selector:
            params["wait_for_selector"] = self.wait_for_selector
        if self.user_agent:
            params["user_agent"] = self.user_agent
        return params


@dataclass(frozen=True)
class CapturedScreenshot:
    content: bytes
    media_type: str


class ScreenshotAPIClient:
    """Thin async wrapper around the capture endpoint; one attempt per call"""

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else config.SCREENSHOT_API_KEY
        self.api_url = api_url or config.SCREENSHOT_API_URL
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def capture(self, url: str, options: CaptureOptions) -> CapturedScreenshot:
        """Return the image for ``url`` with its content type, or raise ScreenshotAPIError"""
        if not self.api_key:
            raise ScreenshotAPIError("SCREENSHOT_API_KEY is not configured")

        payload = {"token": self.api_key, "url": url, **options.to_params()}
        client = await self._get_client()
        try:
            response = await client.post(self.api_url, json=payload, timeout=options.timeout_seconds)
        except httpx.TimeoutException as e:
            raise ScreenshotAPIError(f"capture timed out after {options.timeout_seconds:.0f}s") from e
        except httpx.HTTPError as e:
            raise ScreenshotAPIError(f"capture request failed: {type(e).__name__}") from e

        if response.status_code != 200:
            raise ScreenshotAPIError(f"capture service returned HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if not content_type.startswith("image/") or not response.content:
            raise ScreenshotAPIError(f"capture service returned non-image content ({content_type or 'empty'})")

        logger.debug(f"Captured {len(response.content)} bytes for {url}")
        return CapturedScreenshot(content=response.content, media_type=content_type)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
