"""Per-turn analysis result produced by a TurnAnalyzer."""

from pydantic import BaseModel, Field

from learner_model.models.profile import SubjectArea, TeachingContext


class LearningState(BaseModel):
    """Indicator hit counts for the learner's state in this turn."""

    mastery: int = 0
    struggle: int = 0
    engagement: int = 0


class PreferenceSignals(BaseModel):
    detailed_explanations: int = 0
    practical_examples: int = 0
    step_by_step: int = 0
    research_based: int = 0


class ExpertiseIndicators(BaseModel):
    novice: int = 0
    expert: int = 0
    complexity: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisResult(BaseModel):
    """Signals extracted from one conversational turn.

    ``subject_context`` keeps the fixed priority order
    english > science > mathematics > history, and ``teaching_contexts``
    keeps the declared order early_years, primary, secondary.
    """

    learning_state: LearningState = Field(default_factory=LearningState)
    preferences: PreferenceSignals = Field(default_factory=PreferenceSignals)
    expertise: ExpertiseIndicators = Field(default_factory=ExpertiseIndicators)
    subject_context: list[SubjectArea] = Field(default_factory=list)
    teaching_contexts: list[TeachingContext] = Field(default_factory=list)
    conversation_length: int = 0
    question_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self == AnalysisResult()
