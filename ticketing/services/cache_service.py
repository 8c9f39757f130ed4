"""
Redis caching service for event listings.

CACHING STRATEGY
================

What we cache:
  - Event listing responses (paginated, JSON-serialized)
  - Cache key pattern: "events:list:page={page}&size={size}&upcoming={upcoming}"

Invalidation:
  - Every inventory mutation (confirm, cancel, delete of a confirmed booking)
    and every event create/update/delete deletes all "events:list:*" keys
  - TTL-based expiry as safety net

Single events are never cached: the booking path needs the live
tickets_sold value, so it always reads the database.

Redis is optional. When it is disabled or unreachable every call degrades to
a cache miss and the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis
from ticketing.core.config import get_settings
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

EVENT_LIST_PREFIX = "events:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except (redis.RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_event_list_key(page: int, page_size: int, upcoming_only: bool) -> str:
    return f"{EVENT_LIST_PREFIX}page={page}&size={page_size}&upcoming={upcoming_only}"


async def get_cached_events(page: int, page_size: int, upcoming_only: bool) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_event_list_key(page, page_size, upcoming_only)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            return json.loads(data)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_events(
    page: int,
    page_size: int,
    upcoming_only: bool,
    data: dict,
) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_event_list_key(page, page_size, upcoming_only)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """Delete every cached event listing page."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
