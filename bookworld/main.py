"""
Book World application.

create_app() wires the routers, the rate limiter, CORS and the error
handlers onto a FastAPI instance. Redis is connected during startup and
released on shutdown; without it the service runs uncached.

    uvicorn bookworld.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from bookworld.config import get_settings
from bookworld.exceptions import register_exception_handlers
from bookworld.routers import (
    books_router,
    comments_router,
    reviews_router,
    users_router,
)
from bookworld.services.cache import close_redis_connection, get_cache_stats, get_redis_client
from bookworld.services.rate_limiter import limiter, rate_limit_exceeded_handler

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Browse a catalog of books, review them, and discuss the reviews.

- **Books**: genres and cover images, managed by admins
- **Reviews**: one per user per book, feeding the book's average rating
- **Comments**: threaded replies under each review
- **Likes and favourites**: toggle endpoints for reviews, comments and books

Sign up or log in under `/users` (email/password or Google) and send the
returned token as `Authorization: Bearer <token>`.
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    if get_redis_client() is None:
        logger.warning("Book cache disabled: Redis not available")
    if not settings.storage_configured:
        logger.warning("S3 bucket not configured: cover uploads will be rejected")

    yield

    close_redis_connection()
    logger.info(f"{settings.app_name} stopped")


def create_app() -> FastAPI:
    """Build the application. Tests call this and override get_db."""
    app = FastAPI(
        title=settings.app_name,
        description=API_DESCRIPTION,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for router in (users_router, books_router, reviews_router, comments_router):
        app.include_router(router, prefix=settings.api_prefix)

    @app.get("/health", tags=["Health"], summary="Service status")
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "version": settings.app_version,
            "cache": get_cache_stats(),
            "rate_limiting": settings.rate_limit_enabled,
            "cover_storage": settings.storage_configured,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("bookworld.main:app", host=settings.host, port=settings.port, reload=settings.debug)
