"""
Book Response Cache (Redis)

The catalog is read far more often than it is written, so the JSON bodies
of GET /books and GET /books/{id} are kept in Redis.

Keys:
    book:<id>                                  one book
    books:genre=<g>:page=<n>:per_page=<m>:q=<q>  one list page

Every book write, and every review write that moves a book's rating
aggregate, drops that book's key and all list pages. With CACHE_ENABLED
off, or Redis unreachable, every lookup is a miss and writes are no-ops.
"""

import json
import logging
from typing import Any

import redis
from redis.exceptions import RedisError

from bookworld.config import get_settings

logger = logging.getLogger(__name__)

BOOK_PREFIX = "book"
BOOK_PAGE_PREFIX = "books"

_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis | None:
    """
    Shared Redis client, connected on first use.

    Returns None when caching is off or the server does not answer a PING.
    """
    global _client

    if _client is not None:
        return _client

    settings = get_settings()
    if not settings.cache_enabled:
        return None

    candidate = redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    try:
        candidate.ping()
    except RedisError as e:
        logger.warning(f"Redis at {settings.redis_url} unavailable, book cache off: {e}")
        return None

    logger.info("Connected to Redis for the book cache")
    _client = candidate
    return _client


def close_redis_connection() -> None:
    global _client
    if _client is None:
        return
    _client.close()
    _client = None
    logger.info("Redis connection closed")


def make_cache_key(prefix: str, *args, **kwargs) -> str:
    """
    Build a key from positional parts and sorted keyword parts.

        make_cache_key("book", 7)                 -> "book:7"
        make_cache_key("books", page=1, q="dune") -> "books:page=1:q=dune"

    None values are left out so optional filters do not change the key.
    """
    parts = [prefix, *(str(a) for a in args if a is not None)]
    parts.extend(f"{k}={kwargs[k]}" for k in sorted(kwargs) if kwargs[k] is not None)
    return ":".join(parts)


def cache_get(key: str) -> Any | None:
    """Decoded JSON stored under key, or None on a miss."""
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None

    if raw is None:
        logger.debug(f"Cache miss: {key}")
        return None

    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Dropping undecodable cache entry {key}")
        cache_delete(key)
        return None

    logger.debug(f"Cache hit: {key}")
    return value


def cache_set(key: str, value: Any, ttl: int | None = None) -> bool:
    """
    Store value as JSON under key.

    Returns:
        True if the value was written
    """
    client = get_redis_client()
    if client is None:
        return False

    expires = ttl if ttl is not None else get_settings().cache_ttl
    try:
        client.setex(key, expires, json.dumps(value, default=str))
    except (RedisError, TypeError, ValueError) as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


def cache_delete(key: str) -> bool:
    client = get_redis_client()
    if client is None:
        return False

    try:
        client.delete(key)
    except RedisError as e:
        logger.warning(f"Cache delete failed for {key}: {e}")
        return False
    return True


def cache_delete_pattern(pattern: str) -> int:
    """
    Delete every key matching a glob pattern, walking the keyspace with SCAN.

    Returns:
        Number of keys deleted
    """
    client = get_redis_client()
    if client is None:
        return 0

    deleted = 0
    try:
        batch: list[str] = []
        for key in client.scan_iter(match=pattern, count=500):
            batch.append(key)
            if len(batch) >= 500:
                deleted += client.delete(*batch)
                batch.clear()
        if batch:
            deleted += client.delete(*batch)
    except RedisError as e:
        logger.warning(f"Cache pattern delete failed for {pattern}: {e}")
    return deleted


def invalidate_book_cache(book_id: int | None = None) -> None:
    """
    Forget cached responses that may show a stale book.

    Args:
        book_id: The changed book, or None to drop every cached book
    """
    if book_id is None:
        cache_delete_pattern(f"{BOOK_PREFIX}:*")
    else:
        cache_delete(make_cache_key(BOOK_PREFIX, book_id))

    removed_pages = cache_delete_pattern(f"{BOOK_PAGE_PREFIX}:*")
    if removed_pages:
        logger.debug(f"Invalidated {removed_pages} cached book list pages")


def get_cache_stats() -> dict:
    """Connection state and hit counters for /health."""
    client = get_redis_client()
    if client is None:
        return {"status": "disconnected"}

    try:
        stats = client.info("stats")
        return {
            "status": "connected",
            "hits": stats.get("keyspace_hits", 0),
            "misses": stats.get("keyspace_misses", 0),
            "keys": client.dbsize(),
        }
    except RedisError:
        return {"status": "error"}
