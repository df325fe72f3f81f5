"""User state store interface."""

from collections.abc import Iterator
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel

from learner_model.models.memory import ConversationLog
from learner_model.models.profile import UserProfile
from learner_model.models.progression import LearningProgression, PreferenceProfile


class EntityKind(StrEnum):
    """The four per-user entities the engine persists."""

    PROFILE = "profile"
    MEMORY = "memory"
    PROGRESSION = "progression"
    PREFERENCES = "preferences"


ENTITY_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.PROFILE: UserProfile,
    EntityKind.MEMORY: ConversationLog,
    EntityKind.PROGRESSION: LearningProgression,
    EntityKind.PREFERENCES: PreferenceProfile,
}


class UserStateStore(Protocol):
    """Get/put/delete of per-user entities, keyed by entity kind and user id."""

    def get(self, kind: EntityKind, user_id: str) -> BaseModel | None: ...

    def put(self, kind: EntityKind, user_id: str, entity: BaseModel) -> None: ...

    def delete(self, kind: EntityKind, user_id: str) -> bool: ...

    def user_ids(self) -> Iterator[str]: ...
