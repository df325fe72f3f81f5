"""Dimension updates: expertise, learning style, subject and teaching context."""

import math

import structlog

from learner_model.models.analysis import AnalysisResult
from learner_model.models.profile import (
    Dimension,
    ExpertiseLevel,
    LearningStyle,
    TeachingContext,
    UserProfile,
)

logger = structlog.get_logger()

# Expertise evidence weights. Expert and novice phrases count per hit so two
# novice phrases on a fresh profile reach 0.3 confidence (see DESIGN.md).
EXPERT_PHRASE_WEIGHT = 0.10
HIGH_COMPLEXITY_WEIGHT = 0.10
MASTERY_WEIGHT = 0.05
NOVICE_PHRASE_WEIGHT = -0.10
STRUGGLE_WEIGHT = -0.05

HIGH_COMPLEXITY_THRESHOLD = 0.7
LEVEL_CHANGE_CONFIDENCE = 0.6
LEVEL_CHANGE_MIN_ADJUSTMENT = 0.1
ADJUSTMENT_TO_LEVELS = 10

LEARNING_STYLE_STEP = 0.10
SUBJECT_STEP = 0.20
TEACHING_CONTEXT_STEP = 0.20

# Tie-break priority for the learning-style argmax.
LEARNING_STYLE_PRIORITY: tuple[LearningStyle, ...] = (
    LearningStyle.VISUAL,
    LearningStyle.READING,
    LearningStyle.KINESTHETIC,
    LearningStyle.AUDITORY,
)

# Evaluation order for teaching context; when several groups match, the last wins.
TEACHING_CONTEXT_ORDER: tuple[TeachingContext, ...] = (
    TeachingContext.EARLY_YEARS,
    TeachingContext.PRIMARY,
    TeachingContext.SECONDARY,
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class DimensionUpdater:
    """Applies one turn's analysis to a profile's four dimensions.

    Confidences only ever grow (capped at 1.0). Categorical values move
    only when each dimension's gate opens:

    - expertise: confidence > 0.6 and |adjustment| > 0.1
    - learning style: the winning style score is positive
    - subject: any subject detected (latest detection wins)
    - teaching context: any group matched (last matching group wins)
    """

    def apply(self, profile: UserProfile, analysis: AnalysisResult, timestamp: int) -> None:
        """Update all dimensions in place.

        Args:
            profile: Profile to mutate.
            analysis: Analysis of the current turn.
            timestamp: Turn time in ms since epoch.
        """
        self.update_expertise(profile, analysis)
        self.update_learning_style(profile, analysis)
        self.update_subject(profile, analysis)
        self.update_teaching_context(profile, analysis)

        profile.conversation_count += 1
        profile.last_updated_at = timestamp

    @staticmethod
    def expertise_adjustment(analysis: AnalysisResult) -> float:
        """Signed evidence for moving the expertise level.

        Expert and novice phrases contribute per hit; the other terms fire
        once when their condition holds.
        """
        expertise = analysis.expertise
        state = analysis.learning_state

        adjustment = EXPERT_PHRASE_WEIGHT * expertise.expert
        if expertise.complexity > HIGH_COMPLEXITY_THRESHOLD:
            adjustment += HIGH_COMPLEXITY_WEIGHT
        if state.mastery > state.struggle:
            adjustment += MASTERY_WEIGHT
        adjustment += NOVICE_PHRASE_WEIGHT * expertise.novice
        if state.struggle > state.mastery:
            adjustment += STRUGGLE_WEIGHT
        return round(adjustment, 4)

    def update_expertise(self, profile: UserProfile, analysis: AnalysisResult) -> None:
        adjustment = self.expertise_adjustment(analysis)
        confidence = profile.confidence.raise_by(Dimension.EXPERTISE_LEVEL, adjustment)

        if confidence > LEVEL_CHANGE_CONFIDENCE and abs(adjustment) > LEVEL_CHANGE_MIN_ADJUSTMENT:
            current = profile.dimensions.expertise_level
            shifted = _round_half_up(current.ordinal + adjustment * ADJUSTMENT_TO_LEVELS)
            new_level = ExpertiseLevel.from_ordinal(shifted)
            if new_level != current:
                profile.dimensions.expertise_level = new_level
                logger.info(
                    "expertise_level_changed",
                    user_id=profile.user_id,
                    old_level=current.value,
                    new_level=new_level.value,
                    adjustment=adjustment,
                    confidence=confidence,
                )

    def update_learning_style(self, profile: UserProfile, analysis: AnalysisResult) -> None:
        scores = {
            LearningStyle.VISUAL: analysis.preferences.practical_examples,
            LearningStyle.READING: analysis.preferences.detailed_explanations,
            LearningStyle.KINESTHETIC: analysis.preferences.step_by_step,
            LearningStyle.AUDITORY: analysis.learning_state.engagement,
        }

        preferred = LEARNING_STYLE_PRIORITY[0]
        for style in LEARNING_STYLE_PRIORITY[1:]:
            if scores[style] > scores[preferred]:
                preferred = style

        if scores[preferred] > 0:
            profile.dimensions.learning_style = preferred
            profile.confidence.raise_by(Dimension.LEARNING_STYLE, LEARNING_STYLE_STEP)

    def update_subject(self, profile: UserProfile, analysis: AnalysisResult) -> None:
        # Recency wins over accumulated confidence; kept pending product review.
        if analysis.subject_context:
            profile.dimensions.subject_expertise = analysis.subject_context[0]
            profile.confidence.raise_by(Dimension.SUBJECT_EXPERTISE, SUBJECT_STEP)

    def update_teaching_context(self, profile: UserProfile, analysis: AnalysisResult) -> None:
        detected = set(analysis.teaching_contexts)
        for context in TEACHING_CONTEXT_ORDER:
            if context not in detected:
                continue
            profile.dimensions.teaching_context = context
            profile.confidence.raise_by(Dimension.TEACHING_CONTEXT, TEACHING_CONTEXT_STEP)
