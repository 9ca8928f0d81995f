"""Local caches for technical sheet payloads.

The cache is the fast, local half of persistence. Reads and writes never
raise: failures are logged and reported as a miss (``None``) or ``False``.
Payloads are JSON so they stay readable by other clients of the same cache.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Protocol

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)

KEY_PREFIX = "technical-sheet-data"


def cache_key(project_id: str) -> str:
    return f"{KEY_PREFIX}:{project_id}"


class SheetCache(Protocol):
    async def get(self, project_id: str) -> list[dict[str, Any]] | None: ...

    async def set(self, project_id: str, payload: list[dict[str, Any]]) -> bool: ...

    async def delete(self, project_id: str) -> bool: ...


class NullSheetCache:
    """Cache that stores nothing (cache backend ``none``)."""

    async def get(self, project_id: str) -> list[dict[str, Any]] | None:
        return None

    async def set(self, project_id: str, payload: list[dict[str, Any]]) -> bool:
        return False

    async def delete(self, project_id: str) -> bool:
        return False


class FileSheetCache:
    """One JSON file per project under a cache directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, project_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in project_id)
        return self.directory / f"{KEY_PREFIX}-{safe}.json"

    async def get(self, project_id: str) -> list[dict[str, Any]] | None:
        path = self.path_for(project_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("cache_read_failed", key=cache_key(project_id), path=str(path), error=str(e))
            return None

    async def set(self, project_id: str, payload: list[dict[str, Any]]) -> bool:
        path = self.path_for(project_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning("cache_write_failed", key=cache_key(project_id), path=str(path), error=str(e))
            return False

    async def delete(self, project_id: str) -> bool:
        try:
            self.path_for(project_id).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning("cache_delete_failed", key=cache_key(project_id), error=str(e))
            return False


class RedisSheetCache:
    """Redis-backed cache with a per-entry TTL."""

    def __init__(
        self,
        url: str | None = None,
        ttl_seconds: int = 7 * 24 * 3600,
        client: redis.Redis | None = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._client = client or redis.from_url(
            url or os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            encoding="utf-8",
            decode_responses=True,
        )

    async def get(self, project_id: str) -> list[dict[str, Any]] | None:
        key = cache_key(project_id)
        try:
            cached = await self._client.get(key)
            if cached:
                return json.loads(cached)
        except (RedisError, OSError, json.JSONDecodeError) as e:
            # Cache misses are acceptable
            logger.warning("cache_read_failed", key=key, error=str(e))
        return None

    async def set(self, project_id: str, payload: list[dict[str, Any]]) -> bool:
        key = cache_key(project_id)
        try:
            await self._client.setex(key, self.ttl_seconds, json.dumps(payload, ensure_ascii=False))
            return True
        except (RedisError, OSError, TypeError, ValueError) as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False

    async def delete(self, project_id: str) -> bool:
        key = cache_key(project_id)
        try:
            await self._client.delete(key)
            return True
        except (RedisError, OSError) as e:
            logger.warning("cache_delete_failed", key=key, error=str(e))
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
