"""Rate limiting utilities"""

from fastapi import Request
from slowapi import Limiter

from config import config


def get_client_ip(request: Request) -> str:
    """Client address, honouring the first hop of X-Forwarded-For behind a proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def get_user_or_ip_key(request: Request) -> str:
    """Get unique identifier for rate limiting - identity if supplied, otherwise IP"""
    
    # Identity header set by the frontend for signed-in users
    identity = request.headers.get("X-User-Email")
    if identity:
        return f"user_{identity.strip().lower()}"
    
    # Fallback to IP-based rate limiting
    return f"ip_{get_client_ip(request)}"


# Shared limiter instance - can be imported by route modules and app factory
limiter = Limiter(
    key_func=get_user_or_ip_key,
    default_limits=[config.DEFAULT_RATE_LIMIT],
    enabled=config.RATE_LIMIT_ENABLED,
)
