"""User profile model: the four modeled dimensions and their confidences."""

from enum import StrEnum

from pydantic import BaseModel, Field

INITIAL_CONFIDENCE = 0.1


class ExpertiseLevel(StrEnum):
    """Ordered expertise levels (ordinal 0..3)."""

    NOVICE = "novice"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    EXPERT = "expert"

    @property
    def ordinal(self) -> int:
        return EXPERTISE_ORDER.index(self)

    @classmethod
    def from_ordinal(cls, ordinal: int) -> "ExpertiseLevel":
        """Map an ordinal back to its level, clamping to the valid range."""
        return EXPERTISE_ORDER[max(0, min(len(EXPERTISE_ORDER) - 1, ordinal))]


EXPERTISE_ORDER: tuple[ExpertiseLevel, ...] = (
    ExpertiseLevel.NOVICE,
    ExpertiseLevel.DEVELOPING,
    ExpertiseLevel.PROFICIENT,
    ExpertiseLevel.EXPERT,
)


class LearningStyle(StrEnum):
    """Preferred learning style. MIXED means no style inferred yet."""

    VISUAL = "visual"
    AUDITORY = "auditory"
    KINESTHETIC = "kinesthetic"
    READING = "reading"
    MIXED = "mixed"


class SubjectArea(StrEnum):
    ENGLISH = "english"
    SCIENCE = "science"
    MATHEMATICS = "mathematics"
    HISTORY = "history"
    GENERAL = "general"


class TeachingContext(StrEnum):
    EARLY_YEARS = "early_years"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    ADULT = "adult"


class Dimension(StrEnum):
    """Names of the modeled dimensions (shared by Dimensions and DimensionConfidence)."""

    EXPERTISE_LEVEL = "expertise_level"
    LEARNING_STYLE = "learning_style"
    SUBJECT_EXPERTISE = "subject_expertise"
    TEACHING_CONTEXT = "teaching_context"


class Dimensions(BaseModel):
    expertise_level: ExpertiseLevel = ExpertiseLevel.DEVELOPING
    learning_style: LearningStyle = LearningStyle.MIXED
    subject_expertise: SubjectArea = SubjectArea.GENERAL
    teaching_context: TeachingContext = TeachingContext.PRIMARY


class DimensionConfidence(BaseModel):
    """Evidence strength per dimension, each in [0, 1]."""

    expertise_level: float = Field(default=INITIAL_CONFIDENCE, ge=0.0, le=1.0)
    learning_style: float = Field(default=INITIAL_CONFIDENCE, ge=0.0, le=1.0)
    subject_expertise: float = Field(default=INITIAL_CONFIDENCE, ge=0.0, le=1.0)
    teaching_context: float = Field(default=INITIAL_CONFIDENCE, ge=0.0, le=1.0)

    def raise_by(self, dimension: Dimension, amount: float) -> float:
        """Increase a confidence by |amount|, capped at 1.0. Never lowers it.

        Args:
            dimension: Dimension to update.
            amount: Evidence strength; the sign is ignored.

        Returns:
            The new confidence value.
        """
        current = getattr(self, dimension.value)
        updated = round(min(current + abs(amount), 1.0), 6)
        updated = max(current, updated)
        setattr(self, dimension.value, updated)
        return updated

    def mean(self) -> float:
        values = list(self.model_dump().values())
        return sum(values) / len(values)


class UserProfile(BaseModel):
    user_id: str
    created_at: int  # ms since epoch
    last_updated_at: int
    conversation_count: int = 0
    dimensions: Dimensions = Field(default_factory=Dimensions)
    confidence: DimensionConfidence = Field(default_factory=DimensionConfidence)
