"""Preference profile updates."""

from learner_model.models.analysis import AnalysisResult
from learner_model.models.context import DEFAULT_CONTENT_TYPES
from learner_model.models.progression import PreferenceProfile

CONTENT_TYPE_LABELS: dict[str, str] = {
    "detailed_explanations": "explanatory",
    "practical_examples": "practical",
    "step_by_step": "procedural",
    "research_based": "research-informed",
}

MAX_CONTENT_TYPES = 2


def _bump(weights: dict[str, float], key: str, amount: float) -> None:
    if amount > 0:
        weights[key] = weights.get(key, 0.0) + amount


class PreferenceTracker:
    """Accumulates content, interaction and difficulty preference weights."""

    def record(self, preferences: PreferenceProfile, analysis: AnalysisResult) -> None:
        for category, count in analysis.preferences.model_dump().items():
            _bump(preferences.content, category, count)

        state = analysis.learning_state
        _bump(preferences.interaction, "questioning", analysis.question_count)
        _bump(preferences.interaction, "discussion", state.engagement)

        if state.mastery > state.struggle:
            _bump(preferences.difficulty, "challenge", 1)
        elif state.struggle > state.mastery:
            _bump(preferences.difficulty, "support", 1)


def preferred_content_types(preferences: PreferenceProfile | None) -> list[str]:
    """Top content types by weight, or the default pair when nothing is known.

    Ties keep the category declaration order.
    """
    if preferences is None:
        return list(DEFAULT_CONTENT_TYPES)
    ranked = sorted(
        (
            (category, weight)
            for category, weight in preferences.content.items()
            if weight > 0 and category in CONTENT_TYPE_LABELS
        ),
        key=lambda item: (-item[1], list(CONTENT_TYPE_LABELS).index(item[0])),
    )
    if not ranked:
        return list(DEFAULT_CONTENT_TYPES)
    return [CONTENT_TYPE_LABELS[category] for category, _ in ranked[:MAX_CONTENT_TYPES]]


def dominant(weights: dict[str, float]) -> str | None:
    """Key with the highest positive weight; ties go to the first inserted."""
    best: str | None = None
    for key, weight in weights.items():
        if weight > 0 and (best is None or weight > weights[best]):
            best = key
    return best
