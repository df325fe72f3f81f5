"""Read-side models: personalized context, recommendations, outcomes."""

from enum import StrEnum

from pydantic import BaseModel, Field

DEFAULT_CONTENT_TYPES = ["explanatory", "practical"]


class InsightType(StrEnum):
    EXPERTISE = "expertise"
    LEARNING_STYLE = "learning_style"
    PROGRESSION = "progression"


class Insight(BaseModel):
    type: InsightType
    message: str
    confidence: float


class PersonalizedContext(BaseModel):
    """Personalization snapshot handed to the response pipeline.

    The default context for an unknown user only sets the first six fields;
    the rest stay ``None`` and drop out of ``model_dump(exclude_none=True)``.
    """

    expertise_level: str = "developing"
    learning_style: str = "mixed"
    subject_context: str = "general"
    teaching_level: str = "primary"
    known_topics: list[str] = Field(default_factory=list)
    conversation_history: str = "none"
    confidence: dict[str, float] | None = None
    learning_velocity: float | None = None
    preferred_content_types: list[str] | None = None
    insights: list[Insight] | None = None
    personalized_prompts: list[str] | None = None
    adaptation_recommendations: list[str] | None = None


class Recommendations(BaseModel):
    next_topics: list[str]
    learning_path: str
    content_type: str
    interaction_style: str
    difficulty_level: str
    reminders: list[str] | None = None


DEFAULT_RECOMMENDATIONS = Recommendations(
    next_topics=["field_building", "modeling", "joint_construction"],
    learning_path="tlc_basics",
    content_type="mixed",
    interaction_style="supportive",
    difficulty_level="intermediate",
)


class RecommendationResult(BaseModel):
    user_id: str
    recommendations: Recommendations
    confidence_score: float
    based_on: list[str] = Field(default_factory=list)


class ContextEntry(BaseModel):
    """A past turn judged relevant to the current input."""

    timestamp: int
    topic: str
    user_progress: str
    key_learnings: list[str] = Field(default_factory=list)
    unresolved_topics: list[str] = Field(default_factory=list)
    relevance_score: float


class Continuity(StrEnum):
    CONTINUING = "continuing"
    RELATED = "related"
    NEW_TOPIC = "new_topic"


class CrossConversationContext(BaseModel):
    available: bool
    context: list[ContextEntry] = Field(default_factory=list)
    continuity: Continuity | None = None
    suggestions: list[str] | None = None


class ProfileSummary(BaseModel):
    user_id: str
    expertise: str
    learning_style: str
    subject: str
    teaching_level: str
    conversation_count: int
    topics_explored: list[str]
    model_confidence: float
    last_seen: int
