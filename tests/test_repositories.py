from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from record_validator.core.errors import CacheError, ResourceNotFoundError
from record_validator.models.document import DocumentRecordStatus
from record_validator.repositories.documents import DocumentRepository
from record_validator.repositories.redis import RedisRepository, ResultCache


@pytest.fixture()
def redis_client():
    client = MagicMock()
    client.set = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


class TestRedisRepository:
    @pytest.mark.asyncio
    async def test_set_serializes_json(self, redis_client) -> None:
        repo = RedisRepository("redis://localhost:6379/0", redis_client=redis_client)

        assert await repo.set("key", {"text": "검증"}, ttl=60) is True

        redis_client.set.assert_awaited_once_with("key", '{"text": "검증"}', ex=60)

    @pytest.mark.asyncio
    async def test_get_decodes_json_and_falls_back_to_raw(self, redis_client) -> None:
        repo = RedisRepository("redis://localhost:6379/0", redis_client=redis_client)

        redis_client.get.return_value = '{"status": "completed"}'
        assert await repo.get("key") == {"status": "completed"}
        redis_client.get.return_value = "plain"
        assert await repo.get("key") == "plain"
        redis_client.get.return_value = None
        assert await repo.get("key", default="missing") == "missing"

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_errors(self, redis_client) -> None:
        redis_client.set.side_effect = RedisConnectionError("connection refused")
        repo = RedisRepository("redis://localhost:6379/0", redis_client=redis_client)

        with pytest.raises(CacheError) as exc_info:
            await repo.set("key", {})

        assert exc_info.value.details == {"operation": "set"}
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_health_check(self, redis_client) -> None:
        repo = RedisRepository("redis://localhost:6379/0", redis_client=redis_client)
        assert await repo.health_check() == {"status": "healthy"}

        redis_client.ping.side_effect = RedisConnectionError("down")
        assert await repo.health_check() == {"status": "unhealthy", "error": "down"}

    @pytest.mark.asyncio
    async def test_disconnect(self, redis_client) -> None:
        repo = RedisRepository("redis://localhost:6379/0", redis_client=redis_client)
        await repo.disconnect()
        redis_client.aclose.assert_awaited_once()


class TestResultCache:
    @pytest.mark.asyncio
    async def test_store_and_fetch_use_prefixed_keys(self, settings) -> None:
        repo = MagicMock()
        repo.set = AsyncMock(return_value=True)
        repo.get = AsyncMock(return_value={"id": "doc-1"})
        cache = ResultCache(settings.model_copy(update={"result_cache_ttl": 120}), repository=repo)

        assert await cache.store("doc-1", {"id": "doc-1"}) is True
        assert await cache.fetch("doc-1") == {"id": "doc-1"}

        repo.set.assert_awaited_once_with("validation_result:doc-1", {"id": "doc-1"}, ttl=120)
        repo.get.assert_awaited_once_with("validation_result:doc-1")

    @pytest.mark.asyncio
    async def test_cache_failures_are_swallowed(self, settings) -> None:
        repo = MagicMock()
        repo.set = AsyncMock(side_effect=CacheError("down", "set"))
        repo.get = AsyncMock(side_effect=CacheError("down", "get"))
        cache = ResultCache(settings, repository=repo)

        assert await cache.store("doc-1", {}) is False
        assert await cache.fetch("doc-1") is None


class TestDocumentRepository:
    @pytest.mark.asyncio
    async def test_session_and_category_queries(self, make_sheet_document) -> None:
        repo = DocumentRepository()
        await repo.add("s1", make_sheet_document([["내용"]], document_id="a", category="1학년"))
        await repo.add("s1", make_sheet_document([["내용"]], document_id="b", category="2학년"))
        await repo.add("s2", make_sheet_document([["내용"]], document_id="c", category="1학년"))

        assert [r.document_id for r in await repo.list_by_session("s1")] == ["a", "b"]
        assert [r.document_id for r in await repo.list_by_category("s1", "1학년")] == ["a"]
        assert await repo.count() == 3

    @pytest.mark.asyncio
    async def test_update_status(self, make_sheet_document) -> None:
        repo = DocumentRepository()
        await repo.add("s1", make_sheet_document([["내용"]], document_id="a"))

        record = await repo.update_status("a", DocumentRecordStatus.PROCESSING, validation_id="a")

        assert record.status == DocumentRecordStatus.PROCESSING
        assert record.last_validation_id == "a"
        assert await repo.update_status("missing", DocumentRecordStatus.FAILED) is None

    @pytest.mark.asyncio
    async def test_require(self) -> None:
        with pytest.raises(ResourceNotFoundError):
            await DocumentRepository().require("missing")
