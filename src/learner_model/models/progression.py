"""Learning progression and preference profile models."""

from pydantic import BaseModel, Field

DEFAULT_TOPIC_MASTERY = 0.5


class ProgressionStep(BaseModel):
    timestamp: int  # ms since epoch
    topic: str
    user_input: str
    confidence: float = Field(ge=0.0, le=1.0)


class LearningProgression(BaseModel):
    """Topic coverage and pace for one user.

    ``topics_explored`` only ever grows; ``progression_path`` is bounded and
    drops its oldest step first.
    """

    user_id: str
    topics_explored: set[str] = Field(default_factory=set)
    progression_path: list[ProgressionStep] = Field(default_factory=list)
    learning_velocity: float = Field(default=0.5, ge=0.0)
    topic_mastery: dict[str, float] = Field(default_factory=dict)


class PreferenceProfile(BaseModel):
    """Accumulated preference weights by category."""

    user_id: str
    content: dict[str, float] = Field(default_factory=dict)
    interaction: dict[str, float] = Field(default_factory=dict)
    difficulty: dict[str, float] = Field(default_factory=dict)
