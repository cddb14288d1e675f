"""Production configuration and environment settings"""

import os
from typing import List


class Config:
    """Application configuration from environment variables"""

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    IS_PRODUCTION = ENVIRONMENT == "production"

    # CORS Configuration
    ALLOWED_ORIGINS: List[str] = []
    allowed_origins_env = os.getenv("ALLOWED_ORIGINS")
    if allowed_origins_env:
        ALLOWED_ORIGINS = [origin.strip() for origin in allowed_origins_env.split(",")]
    elif not IS_PRODUCTION:
        # Development fallback - but warn about it
        ALLOWED_ORIGINS = ["*"]

    # Database Configuration
    USE_POSTGRES = os.getenv("USE_POSTGRES", "false").lower() == "true"
    DATABASE_URL = os.getenv("DATABASE_URL")
    SQLITE_PATH = os.getenv("SQLITE_PATH", "ad_alignment.db")

    # Vision model (validated at startup)
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
    VISION_MODEL = os.getenv("VISION_MODEL", "claude-sonnet-4-20250514")
    VISION_MAX_TOKENS = int(os.getenv("VISION_MAX_TOKENS", "2000"))
    VISION_TIMEOUT_SECONDS = float(os.getenv("VISION_TIMEOUT_SECONDS", "90"))

    # Screenshot service
    SCREENSHOT_API_KEY = os.getenv("SCREENSHOT_API_KEY")
    SCREENSHOT_API_URL = os.getenv("SCREENSHOT_API_URL", "https://shot.screenshotapi.net/screenshot")

    # Outer safety net, must stay above capture + vision budgets
    PIPELINE_TIMEOUT_SECONDS = float(os.getenv("PIPELINE_TIMEOUT_SECONDS", "180"))

    # Usage quotas
    IP_MONTHLY_LIMIT = int(os.getenv("IP_MONTHLY_LIMIT", "5"))
    SIGNUP_BONUS_CREDITS = int(os.getenv("SIGNUP_BONUS_CREDITS", "2"))

    # Shared reports
    SHARE_DURATION_HOURS = int(os.getenv("SHARE_DURATION_HOURS", "72"))  # 3 days
    PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "https://adalign.io")

    # Rate Limiting
    RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    DEFAULT_RATE_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "60/minute")
    EVALUATE_RATE_LIMIT = os.getenv("EVALUATE_RATE_LIMIT", "10/minute")
    SHARE_RATE_LIMIT = os.getenv("SHARE_RATE_LIMIT", "20/minute")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    STRUCTURED_LOGGING = os.getenv("STRUCTURED_LOGGING", "true").lower() == "true"

    @classmethod
    def validate(cls):
        """Validate critical configuration at startup"""
        errors = []

        if cls.IS_PRODUCTION and not cls.ALLOWED_ORIGINS:
            errors.append("ALLOWED_ORIGINS must be set in production")

        if cls.USE_POSTGRES and not cls.DATABASE_URL:
            errors.append("DATABASE_URL must be set when USE_POSTGRES=true")

        if not cls.ANTHROPIC_API_KEY:
            errors.append("ANTHROPIC_API_KEY is required")

        if cls.IS_PRODUCTION and not cls.SCREENSHOT_API_KEY:
            errors.append("SCREENSHOT_API_KEY is required in production")

        if cls.PIPELINE_TIMEOUT_SECONDS <= cls.VISION_TIMEOUT_SECONDS:
            errors.append("PIPELINE_TIMEOUT_SECONDS must exceed VISION_TIMEOUT_SECONDS")

        return errors

    @classmethod
    def get_summary(cls) -> dict:
        """Get configuration summary for logging (without secrets)"""
        return {
            "environment": cls.ENVIRONMENT,
            "use_postgres": cls.USE_POSTGRES,
            "vision_model": cls.VISION_MODEL,
            "screenshot_api_configured": bool(cls.SCREENSHOT_API_KEY),
            "rate_limit_enabled": cls.RATE_LIMIT_ENABLED,
            "cors_origins_count": len(cls.ALLOWED_ORIGINS),
            "ip_monthly_limit": cls.IP_MONTHLY_LIMIT,
            "structured_logging": cls.STRUCTURED_LOGGING,
        }


config = Config()
