"""
Base repository pattern - generic data access interface and in-memory implementation.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from record_validator.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class BaseRepository(ABC, Generic[T, K]):
    """Abstract CRUD interface."""

    @abstractmethod
    async def create(self, entity: T) -> T:
        pass

    @abstractmethod
    async def get_by_id(self, entity_id: K) -> Optional[T]:
        pass

    @abstractmethod
    async def update(self, entity_id: K, updates: Dict[str, Any]) -> Optional[T]:
        pass

    @abstractmethod
    async def delete(self, entity_id: K) -> bool:
        pass

    @abstractmethod
    async def list_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


class InMemoryRepository(BaseRepository[T, K]):
    """Dictionary-backed repository; entities are keyed by key_of(entity)."""

    def __init__(self, key_of: Callable[[T], K]):
        self._storage: Dict[K, T] = {}
        self._key_of = key_of

    async def create(self, entity: T) -> T:
        entity_id = self._key_of(entity)
        self._storage[entity_id] = entity
        logger.debug("repository_entity_created", entity_id=entity_id)
        return entity

    async def get_by_id(self, entity_id: K) -> Optional[T]:
        return self._storage.get(entity_id)

    async def update(self, entity_id: K, updates: Dict[str, Any]) -> Optional[T]:
        entity = self._storage.get(entity_id)
        if entity is None:
            return None

        for key, value in updates.items():
            if hasattr(entity, key):
                setattr(entity, key, value)

        logger.debug("repository_entity_updated", entity_id=entity_id, fields=list(updates))
        return entity

    async def delete(self, entity_id: K) -> bool:
        if entity_id in self._storage:
            del self._storage[entity_id]
            return True
        return False

    async def list_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        entities = list(self._storage.values())
        if offset > 0:
            entities = entities[offset:]
        if limit is not None:
            entities = entities[:limit]
        return entities

    async def filter_by(self, predicate: Callable[[T], bool]) -> List[T]:
        return [entity for entity in self._storage.values() if predicate(entity)]

    async def count(self) -> int:
        return len(self._storage)

    async def clear(self):
        self._storage.clear()
