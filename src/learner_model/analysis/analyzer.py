"""Rule-based turn analyzer."""

from collections.abc import Callable
from typing import Any, Protocol

import structlog

from learner_model.analysis.complexity import score_language_complexity
from learner_model.analysis.vocabulary import (
    ENGAGEMENT_INDICATORS,
    EXPERT_PHRASES,
    MASTERY_INDICATORS,
    NOVICE_PHRASES,
    PREFERENCE_INDICATORS,
    STRUGGLE_INDICATORS,
    SUBJECT_KEYWORDS,
    TEACHING_CONTEXT_KEYWORDS,
    count_hits,
)
from learner_model.models.analysis import (
    AnalysisResult,
    ExpertiseIndicators,
    LearningState,
    PreferenceSignals,
)

logger = structlog.get_logger()

ComplexityScorer = Callable[[str], float]


class TurnAnalyzer(Protocol):
    """Anything that turns one conversational turn into an AnalysisResult."""

    def analyze(
        self,
        turn_text: str | None,
        conversation_context: dict[str, Any] | None = None,
    ) -> AnalysisResult: ...


class KeywordTurnAnalyzer:
    """Extracts learning signals from a turn by vocabulary matching.

    Deterministic and side-effect free. Missing, empty or non-string text
    yields an all-zero result instead of an error.

    Args:
        complexity_scorer: Maps raw text to a complexity score in [0, 1].
    """

    def __init__(self, complexity_scorer: ComplexityScorer = score_language_complexity):
        self.complexity_scorer = complexity_scorer

    def analyze(
        self,
        turn_text: str | None,
        conversation_context: dict[str, Any] | None = None,
    ) -> AnalysisResult:
        """Analyze one user turn.

        Args:
            turn_text: What the user said.
            conversation_context: Caller-supplied conversation data. Accepted
                for interface compatibility; keyword matching ignores it.

        Returns:
            AnalysisResult with indicator counts, tags and raw features.
        """
        if not isinstance(turn_text, str) or not turn_text.strip():
            if turn_text is not None and not isinstance(turn_text, str):
                logger.warning("analyzer_non_text_input", input_type=type(turn_text).__name__)
            return AnalysisResult()

        text = turn_text.lower()

        complexity = max(0.0, min(float(self.complexity_scorer(turn_text)), 1.0))

        result = AnalysisResult(
            learning_state=LearningState(
                mastery=count_hits(text, MASTERY_INDICATORS),
                struggle=count_hits(text, STRUGGLE_INDICATORS),
                engagement=count_hits(text, ENGAGEMENT_INDICATORS),
            ),
            preferences=PreferenceSignals(**{
                category: count_hits(text, indicators)
                for category, indicators in PREFERENCE_INDICATORS
            }),
            expertise=ExpertiseIndicators(
                novice=count_hits(text, NOVICE_PHRASES),
                expert=count_hits(text, EXPERT_PHRASES),
                complexity=complexity,
            ),
            subject_context=[
                subject for subject, keywords in SUBJECT_KEYWORDS
                if any(keyword in text for keyword in keywords)
            ],
            teaching_contexts=[
                context for context, keywords in TEACHING_CONTEXT_KEYWORDS
                if any(keyword in text for keyword in keywords)
            ],
            conversation_length=len(turn_text),
            question_count=turn_text.count("?"),
        )

        logger.debug(
            "turn_analyzed",
            mastery=result.learning_state.mastery,
            struggle=result.learning_state.struggle,
            novice=result.expertise.novice,
            expert=result.expertise.expert,
            complexity=complexity,
        )
        return result
