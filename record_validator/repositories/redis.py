"""
Redis repository - async JSON storage with TTL, used as the optional result cache.
"""
import json
from datetime import timedelta
from typing import Any, Dict, Optional, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from record_validator.core.config import Settings, get_settings
from record_validator.core.errors import CacheError
from record_validator.core.logging import LogEvent, get_logger

logger = get_logger(__name__)


class RedisRepository:
    """Thin async wrapper with JSON serialization; raises CacheError on failure."""

    def __init__(self, redis_url: str, redis_client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self._client = redis_client

    @property
    def client(self) -> redis.Redis:
        """Connect lazily on first use."""
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._client

    async def disconnect(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def set(self, key: str, value: Any, ttl: Optional[Union[int, timedelta]] = None) -> bool:
        ex = int(ttl.total_seconds()) if isinstance(ttl, timedelta) else ttl
        try:
            result = await self.client.set(key, json.dumps(value, ensure_ascii=False), ex=ex)
        except RedisError as e:
            raise CacheError(f"Failed to set cache: {e}", "set") from e
        return bool(result)

    async def get(self, key: str, default: Any = None) -> Any:
        try:
            value = await self.client.get(key)
        except RedisError as e:
            raise CacheError(f"Failed to get cache: {e}", "get") from e
        if value is None:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.client.delete(key))
        except RedisError as e:
            raise CacheError(f"Failed to delete cache: {e}", "delete") from e

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self.client.ping()
        except RedisError as e:
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}


class ResultCache:
    """Finished validation results, keyed by document id. Failures are logged, never raised."""

    key_prefix = "validation_result:"

    def __init__(self, settings: Optional[Settings] = None, repository: Optional[RedisRepository] = None):
        self.settings = settings or get_settings()
        self.repo = repository or RedisRepository(self.settings.redis_url)
        self.ttl = self.settings.result_cache_ttl

    def _key(self, document_id: str) -> str:
        return f"{self.key_prefix}{document_id}"

    async def store(self, document_id: str, payload: Dict[str, Any]) -> bool:
        try:
            return await self.repo.set(self._key(document_id), payload, ttl=self.ttl)
        except CacheError as e:
            logger.warning(LogEvent.CACHE_ERROR, operation="store", document_id=document_id, error=e.message)
            return False

    async def fetch(self, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.repo.get(self._key(document_id))
        except CacheError as e:
            logger.warning(LogEvent.CACHE_ERROR, operation="fetch", document_id=document_id, error=e.message)
            return None

    async def close(self):
        await self.repo.disconnect()
