"""
Redis connection for the analysis cache, opened once in the app lifespan.

The client lives on app.state.redis and is shared by the result cache and /api/health,
so both always report the same connection. A failed connect at startup means the
process runs DB-only until restart; health says "unavailable" for that whole time.
"""
import logging

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


async def connect_redis(url: str, connect_timeout: float) -> Redis | None:
    """Connect and ping once. None when disabled (empty url) or unreachable."""
    url = (url or "").strip()
    if not url:
        logger.info("REDIS_URL not set; analysis cache uses DB only")
        return None
    client = Redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=connect_timeout,
        socket_timeout=connect_timeout,
    )
    try:
        await client.ping()
    except Exception as e:
        logger.warning("Redis unavailable at %s (analysis cache uses DB only): %s", _redact(url), e)
        await close_redis(client)
        return None
    logger.info("Redis analysis cache connected: %s", _redact(url))
    return client


async def ping_status(client: Redis | None) -> str:
    """Health view of the client the cache uses: "unavailable", "ok" or "error"."""
    if client is None:
        return "unavailable"
    try:
        await client.ping()
    except Exception as e:
        logger.warning("Redis health ping failed: %s", e)
        return "error"
    return "ok"


async def close_redis(client: Redis | None) -> None:
    if client is None:
        return
    try:
        await client.aclose()
    except Exception as e:
        logger.warning("Redis close error: %s", e)
