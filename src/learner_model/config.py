"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from learner_model.clock import MS_PER_HOUR
from learner_model.models.memory import MemoryTier, MemoryTiers


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        return flatten_settings(data)


def flatten_settings(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten the nested YAML layout to Settings field names."""
    flattened: dict[str, Any] = {}
    if 'server' in data:
        flattened['host'] = data['server'].get('host')
        flattened['port'] = data['server'].get('port')
    if 'memory' in data:
        for tier in ('short_term', 'medium_term', 'long_term'):
            tier_data = data['memory'].get(tier) or {}
            flattened[f'memory_{tier}_hours'] = tier_data.get('hours')
            flattened[f'memory_{tier}_capacity'] = tier_data.get('capacity')
    if 'progression' in data:
        progression = data['progression']
        flattened['progression_path_limit'] = progression.get('path_limit')
        flattened['default_learning_velocity'] = progression.get('default_velocity')
        flattened['max_learning_velocity'] = progression.get('max_velocity')
    if 'storage' in data:
        storage = data['storage']
        flattened['store_backend'] = storage.get('backend')
        flattened['data_dir'] = storage.get('data_dir')
        flattened['max_users'] = storage.get('max_users')

    # Remove None values
    return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Memory tiers
    memory_short_term_hours: float = Field(default=24, gt=0)
    memory_short_term_capacity: int = Field(default=10, gt=0)
    memory_medium_term_hours: float = Field(default=7 * 24, gt=0)
    memory_medium_term_capacity: int = Field(default=50, gt=0)
    memory_long_term_hours: float = Field(default=30 * 24, gt=0)
    memory_long_term_capacity: int = Field(default=200, gt=0)

    # Progression
    progression_path_limit: int = Field(default=50, gt=0)
    default_learning_velocity: float = Field(default=0.5, ge=0)
    max_learning_velocity: float = Field(default=2.0, gt=0)

    # Storage
    store_backend: Literal["memory", "json"] = Field(default="memory")
    data_dir: Path | None = Field(default=None)
    max_users: int = Field(default=10000, ge=0)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def state_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data" / "user_state"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def memory_tiers(self) -> MemoryTiers:
        def tier(hours: float, capacity: int) -> MemoryTier:
            return MemoryTier(duration_ms=int(hours * MS_PER_HOUR), capacity=capacity)

        return MemoryTiers(
            short_term=tier(self.memory_short_term_hours, self.memory_short_term_capacity),
            medium_term=tier(self.memory_medium_term_hours, self.memory_medium_term_capacity),
            long_term=tier(self.memory_long_term_hours, self.memory_long_term_capacity),
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
