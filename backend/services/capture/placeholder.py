"""Synthesized stand-in images for screenshots that could not be captured"""

import io
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from PIL import Image, ImageDraw, ImageFont

from schemas.domain import CapturedImage, CaptureMetadata
from utils.periods import utc_now

PLACEHOLDER_WIDTH = 1200
PLACEHOLDER_HEIGHT = 800
BACKGROUND = (241, 245, 249)
FRAME = (203, 213, 225)
HEADLINE = (30, 41, 59)
CAPTION = (100, 116, 139)


def domain_for(url: str) -> str:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    return hostname or "unknown site"


def render_placeholder_png(domain: str, caption: str) -> bytes:
    """Draw the placeholder; identical inputs always give identical bytes"""
    image = Image.new("RGB", (PLACEHOLDER_WIDTH, PLACEHOLDER_HEIGHT), BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    draw.rectangle(
        [40, 40, PLACEHOLDER_WIDTH - 40, PLACEHOLDER_HEIGHT - 40],
        outline=FRAME,
        width=4,
    )
    # Browser-style address bar
    draw.rectangle([40, 40, PLACEHOLDER_WIDTH - 40, 110], fill=FRAME)
    draw.text((70, 68), domain, fill=HEADLINE, font=font)

    for text, top, colour in ((domain, 360, HEADLINE), (caption, 420, CAPTION)):
        left = (PLACEHOLDER_WIDTH - draw.textlength(text, font=font)) // 2
        draw.text((left, top), text, fill=colour, font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def build_placeholder(
    url: str,
    reason: str,
    metadata: Optional[CaptureMetadata] = None,
    captured_at: Optional[datetime] = None,
) -> CapturedImage:
    domain = domain_for(url)
    caption = f"Screenshot unavailable: {reason}"
    meta = (metadata or CaptureMetadata()).model_copy(update={"reason": reason})
    return CapturedImage(
        source_url=url,
        content=render_placeholder_png(domain, caption),
        media_type="image/png",
        captured_at=captured_at or utc_now(),
        is_placeholder=True,
        metadata=meta,
    )
