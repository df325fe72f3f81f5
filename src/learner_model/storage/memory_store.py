"""In-process user state store with least-recently-used eviction."""

import threading
from collections import OrderedDict
from collections.abc import Iterator

import structlog
from pydantic import BaseModel

from learner_model.storage.base import EntityKind

logger = structlog.get_logger()


class InMemoryUserStore:
    """Keeps every user's entities in a dict, evicting whole users when full.

    Args:
        max_users: Users kept before the least recently used one is dropped.
            0 disables eviction.
    """

    def __init__(self, max_users: int = 0):
        self.max_users = max_users
        self._users: OrderedDict[str, dict[EntityKind, BaseModel]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, kind: EntityKind, user_id: str) -> BaseModel | None:
        with self._lock:
            entities = self._users.get(user_id)
            if entities is None:
                return None
            self._users.move_to_end(user_id)
            return entities.get(EntityKind(kind))

    def put(self, kind: EntityKind, user_id: str, entity: BaseModel) -> None:
        with self._lock:
            entities = self._users.setdefault(user_id, {})
            entities[EntityKind(kind)] = entity
            self._users.move_to_end(user_id)
            self._evict()

    def delete(self, kind: EntityKind, user_id: str) -> bool:
        with self._lock:
            entities = self._users.get(user_id)
            if entities is None or EntityKind(kind) not in entities:
                return False
            del entities[EntityKind(kind)]
            if not entities:
                del self._users[user_id]
            return True

    def user_ids(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._users))

    def __len__(self) -> int:
        return len(self._users)

    def _evict(self) -> None:
        if not self.max_users:
            return
        while len(self._users) > self.max_users:
            user_id, _ = self._users.popitem(last=False)
            logger.info("user_state_evicted", user_id=user_id)
