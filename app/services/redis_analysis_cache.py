"""
Redis layer over the analysis cache. Cache-Aside: Redis is a read-through copy only.
All Redis errors are handled internally; never raise to caller. System works if Redis is down.
Key: analysis:{kind}:{fingerprint} holds the JSON string of the cached entry, TTL from settings.
"""
import json
import logging
from typing import Any

from app.config import get_settings
from app.repositories.analysis_cache_repository import CachedAnalysis

logger = logging.getLogger(__name__)

ANALYSIS_KEY_PREFIX = "analysis:"


def _key(kind: str, fingerprint: str) -> str:
    return f"{ANALYSIS_KEY_PREFIX}{kind}:{fingerprint}"


def _deserialize(s: str) -> CachedAnalysis | None:
    try:
        data = json.loads(s)
        if isinstance(data, dict) and "analysis" in data:
            return CachedAnalysis.from_dict(data)
    except (json.JSONDecodeError, TypeError, KeyError, ValueError):
        pass
    return None


class RedisAnalysisCache:
    """
    Async Redis cache for analyses. GET / SET EX.
    All methods swallow Redis errors and log; caller gets None or no-op on failure.
    """

    def __init__(self, redis_client: Any, ttl_seconds: int | None = None):
        self._redis = redis_client
        self._ttl = ttl_seconds or get_settings().analysis_cache_ttl_seconds

    async def get(self, kind: str, fingerprint: str) -> CachedAnalysis | None:
        """Returns the entry, or None on miss/error (caller should hit DB)."""
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(_key(kind, fingerprint))
            if not raw:
                return None
            s = raw.decode() if isinstance(raw, bytes) else raw
            return _deserialize(s)
        except Exception as e:
            logger.warning("Redis analysis cache get failed for %s:%s: %s", kind, fingerprint[:12], e, exc_info=False)
            return None

    async def set(self, entry: CachedAnalysis) -> None:
        """After DB write or on DB hit (warm). On Redis error: log only, do not raise."""
        if not self._redis:
            return
        try:
            await self._redis.set(
                _key(entry.kind, entry.fingerprint),
                json.dumps(entry.to_dict()),
                ex=self._ttl,
            )
        except Exception as e:
            logger.warning(
                "Redis analysis cache set failed for %s:%s: %s", entry.kind, entry.fingerprint[:12], e, exc_info=False
            )
