"""Result type for the update pipeline."""

from enum import StrEnum

from pydantic import BaseModel, Field

from learner_model.models.context import Insight, PersonalizedContext, ProfileSummary


class UpdateStep(StrEnum):
    """Update pipeline steps, in execution order."""

    ANALYZE = "analyze"
    LOAD = "load"
    DIMENSIONS = "dimensions"
    PROGRESSION = "progression"
    PREFERENCES = "preferences"
    MEMORY = "memory"
    COMMIT = "commit"
    SYNTHESIZE = "synthesize"


class UpdateOutcome(BaseModel):
    """Outcome of one ``update_user_model`` call.

    On failure, ``failed_step`` names the step that raised. Steps before
    COMMIT only touch working copies, so a failure there leaves stored state
    unchanged. A COMMIT failure may leave some entities written. A SYNTHESIZE
    failure happens after everything was committed.
    """

    success: bool
    user_id: str
    personalized_context: PersonalizedContext | None = None
    user_insights: list[Insight] = Field(default_factory=list)
    profile_summary: ProfileSummary | None = None
    error: str | None = None
    failed_step: UpdateStep | None = None

    @classmethod
    def failed(cls, user_id: str, step: UpdateStep, error: str) -> "UpdateOutcome":
        return cls(success=False, user_id=user_id, error=error, failed_step=step)
