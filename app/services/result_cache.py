"""
Result cache: DB as source of truth (permanent, no eviction), Redis as optional cache (Cache-Aside).
- get: try Redis; on miss load from DB, warm Redis, return.
- put: DB first (upsert, last write wins), then best-effort Redis.
Entries written under another prompt version read as misses.
"""
import asyncio
import logging

from sqlalchemy.orm import sessionmaker

from app.repositories.analysis_cache_repository import AnalysisCacheRepository, CachedAnalysis
from app.services.redis_analysis_cache import RedisAnalysisCache

logger = logging.getLogger(__name__)


class ResultCache:
    def __init__(
        self,
        session_factory: sessionmaker,
        prompt_version: str,
        redis_cache: RedisAnalysisCache | None = None,
        repository: AnalysisCacheRepository | None = None,
    ):
        self._session_factory = session_factory
        self._prompt_version = prompt_version
        self._cache = redis_cache
        self._repo = repository or AnalysisCacheRepository()

    @property
    def prompt_version(self) -> str:
        return self._prompt_version

    @property
    def redis_enabled(self) -> bool:
        return self._cache is not None

    async def get(self, kind: str, fingerprint: str) -> CachedAnalysis | None:
        if self._cache:
            entry = await self._cache.get(kind, fingerprint)
            if entry is not None and entry.prompt_version == self._prompt_version:
                return entry

        def _do():
            db = self._session_factory()
            try:
                return self._repo.get_entry(db, kind, fingerprint)
            finally:
                db.close()

        loop = asyncio.get_running_loop()
        entry = await loop.run_in_executor(None, _do)
        if entry is None:
            return None
        if entry.prompt_version != self._prompt_version:
            logger.info(
                "Cache entry %s:%s is from prompt %s (current %s); treating as miss",
                kind, fingerprint[:12], entry.prompt_version, self._prompt_version,
            )
            return None
        if self._cache:
            await self._cache.set(entry)
        return entry

    async def put(self, entry: CachedAnalysis) -> None:
        def _do():
            db = self._session_factory()
            try:
                self._repo.upsert_entry(db, entry)
            finally:
                db.close()

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _do)
        if self._cache:
            await self._cache.set(entry)
