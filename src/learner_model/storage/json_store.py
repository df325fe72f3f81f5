"""User state persistence (JSON + fcntl.flock + atomic write)."""

import fcntl
import json
import os
import re
import tempfile
from collections.abc import Iterator
from pathlib import Path

import structlog
from pydantic import BaseModel, ValidationError

from learner_model.errors import StoreError
from learner_model.storage.base import ENTITY_MODELS, EntityKind

logger = structlog.get_logger()

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.@-]{0,127}$")


def is_valid_user_id(user_id: str) -> bool:
    return bool(_USER_ID_PATTERN.match(user_id)) and ".." not in user_id


def validate_user_id(user_id: str) -> str:
    if not is_valid_user_id(user_id):
        raise StoreError(f"Invalid user id for file storage: {user_id!r}")
    return user_id


class JsonFileUserStore:
    """One JSON file per entity kind and user under ``data_dir/<kind>/``.

    Args:
        data_dir: Root directory; created on demand.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def get_entity_path(self, kind: EntityKind, user_id: str) -> Path:
        kind_dir = self.data_dir / EntityKind(kind).value
        kind_dir.mkdir(parents=True, exist_ok=True)
        return kind_dir / f"{validate_user_id(user_id)}.json"

    def get(self, kind: EntityKind, user_id: str) -> BaseModel | None:
        # Ids that could never have been written have nothing to read.
        if not is_valid_user_id(user_id):
            return None
        path = self.get_entity_path(kind, user_id)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
                fcntl.flock(f, fcntl.LOCK_UN)
            return ENTITY_MODELS[EntityKind(kind)].model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("entity_load_failed", kind=str(kind), user_id=user_id, error=str(e))
            raise StoreError(f"Could not load {kind} for {user_id}: {e}") from e

    def put(self, kind: EntityKind, user_id: str, entity: BaseModel) -> None:
        path = self.get_entity_path(kind, user_id)
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=path.parent, delete=False, suffix=".json", encoding="utf-8"
            ) as tmp:
                json.dump(entity.model_dump(mode="json"), tmp)
            os.replace(tmp.name, path)
        except OSError as e:
            logger.error("entity_save_failed", kind=str(kind), user_id=user_id, error=str(e))
            raise StoreError(f"Could not save {kind} for {user_id}: {e}") from e

    def delete(self, kind: EntityKind, user_id: str) -> bool:
        if not is_valid_user_id(user_id):
            return False
        path = self.get_entity_path(kind, user_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def user_ids(self) -> Iterator[str]:
        profiles_dir = self.data_dir / EntityKind.PROFILE.value
        if not profiles_dir.exists():
            return iter([])
        return iter(sorted(p.stem for p in profiles_dir.glob("*.json")))
