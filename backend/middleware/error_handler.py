"""Global error handling middleware for production"""

import logging
import traceback
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch unhandled exceptions and return user-friendly errors"""
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response
        
        except ValueError as e:
            # Bad request errors
            logger.warning(f"ValueError in {request.url.path}: {str(e)}")
            return JSONResponse(
                status_code=400,
                content={
                    "error": str(e),
                    "type": "validation_error"
                }
            )
        
        except ConnectionError as e:
            # External API failures
            logger.error(f"Connection error in {request.url.path}: {str(e)}")
            return JSONResponse(
                status_code=503,
                content={
                    "error": "External service temporarily unavailable. Please try again.",
                    "type": "service_unavailable"
                }
            )
        
        except Exception as e:
            # Catch-all for unexpected errors
            error_id = traceback.format_exc()[-50:]  # Last 50 chars as error ID
            logger.error(
                f"Unhandled exception in {request.url.path}: {type(e).__name__}: {str(e)}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )
            
            return JSONResponse(
                status_code=500,
                content={
                    "error": "An unexpected error occurred. Please try again later.",
                    "type": "internal_error",
                    "error_id": error_id[-12:]  # Short error ID for support
                }
            )


class UsageLimitExceededError(Exception):
    """Raised when an identity or IP has used its monthly evaluations"""

    def __init__(self, used: int, limit: int, next_reset, tier=None):
        self.used = used
        self.limit = limit
        self.next_reset = next_reset
        self.tier = tier
        super().__init__(f"Monthly evaluation limit reached ({used}/{limit})")

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": str(self),
            "errorCode": "USAGE_LIMIT_EXCEEDED",
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "nextReset": self.next_reset.isoformat(),
        }


class ConfigurationError(Exception):
    """Raised at startup when production configuration is invalid"""
    pass
