"""Anthropic API client factory"""

import logging
from typing import Optional

import anthropic

from config import config

logger = logging.getLogger(__name__)


def create_anthropic_client(api_key: Optional[str] = None) -> Optional[anthropic.Anthropic]:
    """Create Anthropic client with proper configuration

    Returns None when no key is configured; callers treat that as a failed
    model call and use their fallback path.
    """
    key = api_key or config.ANTHROPIC_API_KEY

    if not key:
        logger.warning("⚠️  ANTHROPIC_API_KEY not found - vision analysis will use fallback results")
        return None

    try:
        # Single attempt; the analyzer enforces its own deadline on top
        return anthropic.Anthropic(
            api_key=key,
            timeout=config.VISION_TIMEOUT_SECONDS,
            max_retries=0,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Anthropic client: {e}")
        return None


def get_default_model() -> str:
    """Get the vision-capable Claude model to use"""
    return config.VISION_MODEL
