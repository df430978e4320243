"""
Request Rate Limits (slowapi)

Three tiers, all configurable through the environment:

    RATE_LIMIT_DEFAULT  reads, applied to every route
    RATE_LIMIT_AUTH     signup, login and Google sign-in
    RATE_LIMIT_WRITE    catalog writes, reviews, comments, likes, favourites

Clients are keyed by IP, honouring the proxy headers set by the load
balancer. Counters are shared through Redis when the cache is on and kept
per process otherwise. RATE_LIMIT_ENABLED=false turns every limit off.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from bookworld.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

RETRY_AFTER_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    for header in ("X-Forwarded-For", "X-Real-IP"):
        value = request.headers.get(header)
        if value:
            return value.split(",")[0].strip()
    return get_remote_address(request)


def create_limiter() -> Limiter:
    shared = settings.rate_limit_enabled and settings.cache_enabled

    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=settings.redis_url if shared else "memory://",
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
        # Redis outages fall back to per-process counters
        in_memory_fallback_enabled=shared,
    )

    if settings.rate_limit_enabled:
        logger.info(
            f"Rate limits: default={settings.rate_limit_default} "
            f"auth={settings.rate_limit_auth} write={settings.rate_limit_write} "
            f"storage={'redis' if shared else 'memory'}"
        )
    else:
        logger.info("Rate limiting disabled")

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with the usual {"message": ...} body and a Retry-After hint."""
    logger.warning(f"Rate limit hit by {get_client_ip(request)} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={"message": f"Rate limit exceeded: {exc.detail}"},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
