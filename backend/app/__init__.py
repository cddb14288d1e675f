"""
Ad Alignment Evaluator - Application Factory
"""

import logging
import sys
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import config
from utils.rate_limit import limiter
from middleware.error_handler import ErrorHandlerMiddleware, UsageLimitExceededError, ConfigurationError
from app.api.routes import evaluate, usage, share, health
from app.dependencies import get_screenshot_service


# Configure logging
def setup_logging():
    """Setup structured logging for production"""
    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    # Clear any existing handlers
    logging.root.handlers = []

    # Create formatter
    if config.STRUCTURED_LOGGING:
        # JSON-like structured logging for production
        formatter = logging.Formatter(
            '{"time":"%(asctime)s", "level":"%(levelname)s", "name":"%(name)s", "message":"%(message)s"}'
        )
    else:
        # Human-readable logging for development
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    # Configure root logger
    logging.root.setLevel(log_level)
    logging.root.addHandler(console_handler)

    # Set specific levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _validation_message(exc: RequestValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    # Setup logging first
    setup_logging()
    logger = logging.getLogger(__name__)

    # Validate configuration
    config_errors = config.validate()
    if config_errors:
        logger.error(f"❌ Configuration errors: {', '.join(config_errors)}")
        if config.IS_PRODUCTION:
            raise ConfigurationError(f"Production configuration invalid: {', '.join(config_errors)}")
        else:
            logger.warning("⚠️  Configuration warnings (development mode - proceeding anyway)")

    # Log configuration summary
    logger.info(f"🚀 Starting application with config: {config.get_summary()}")

    app = FastAPI(
        title="Ad Alignment Evaluator",
        description="AI vision analysis of ad creative and landing page alignment",
        version="1.0.0"
    )

    # Add error handling middleware (first, to catch all errors)
    app.add_middleware(ErrorHandlerMiddleware)

    # CORS middleware - production-ready configuration
    if config.ALLOWED_ORIGINS:
        allowed_origins = config.ALLOWED_ORIGINS
        logger.info(f"✅ CORS configured with {len(allowed_origins)} allowed origins")
    else:
        allowed_origins = ["*"]
        logger.warning("⚠️  WARNING: ALLOWED_ORIGINS not set - using permissive CORS policy!")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-User-Email"],
    )

    # Rate limiting (abuse guard, separate from monthly quotas)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    # Custom exception handlers
    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request, exc):
        return JSONResponse(
            status_code=429,
            content={"error": f"Rate limit exceeded: {exc.detail}", "errorCode": "RATE_LIMITED"}
        )

    @app.exception_handler(UsageLimitExceededError)
    async def usage_limit_handler(request, exc):
        return JSONResponse(status_code=429, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc):
        logger.info(f"Invalid request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": _validation_message(exc), "errorCode": "INVALID_REQUEST"}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.on_event("shutdown")
    async def close_http_clients():
        screenshots = app.dependency_overrides.get(get_screenshot_service, get_screenshot_service)()
        await screenshots.close()
        logger.info("Screenshot client closed")

    # Include API routes
    app.include_router(health.router, tags=["health"])  # Root level routes like /health
    app.include_router(evaluate.router, prefix="/api", tags=["evaluation"])
    app.include_router(usage.router, prefix="/api", tags=["usage"])
    app.include_router(share.router, prefix="/api", tags=["sharing"])

    return app
