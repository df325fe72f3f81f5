"""Learning progression tracking: topics explored, path and velocity."""

import structlog

from learner_model.analysis.vocabulary import GENERAL_TOPIC, extract_topics
from learner_model.clock import MS_PER_HOUR
from learner_model.models.analysis import AnalysisResult
from learner_model.models.progression import (
    DEFAULT_TOPIC_MASTERY,
    LearningProgression,
    ProgressionStep,
)

logger = structlog.get_logger()

DEFAULT_PATH_LIMIT = 50
DEFAULT_VELOCITY = 0.5
MAX_VELOCITY = 2.0
MIN_SPAN_MS = 1

MASTERY_STEP = 0.1


def topic_confidence(analysis: AnalysisResult) -> float:
    """Estimate how confidently the user handled the topic of this turn.

    Starts neutral at 0.5, moves 0.15 per mastery or struggle signal (at most
    two of each count) and 0.05 for expert or novice phrasing.
    """
    state = analysis.learning_state
    expertise = analysis.expertise
    confidence = 0.5
    confidence += 0.15 * min(state.mastery, 2)
    confidence -= 0.15 * min(state.struggle, 2)
    if expertise.expert > 0:
        confidence += 0.05
    if expertise.novice > 0:
        confidence -= 0.05
    return round(max(0.1, min(confidence, 1.0)), 2)


def calculate_learning_velocity(
    path: list[ProgressionStep],
    default: float = DEFAULT_VELOCITY,
    cap: float = MAX_VELOCITY,
) -> float:
    """Distinct topics per hour across the path, capped.

    Args:
        path: Progression steps, oldest first.
        default: Velocity reported for fewer than two steps.
        cap: Upper bound on velocity.

    Returns:
        Topics per hour in [0, cap].
    """
    if len(path) < 2:
        return default
    span_ms = max(path[-1].timestamp - path[0].timestamp, MIN_SPAN_MS)
    distinct_topics = len({step.topic for step in path})
    return min(distinct_topics / (span_ms / MS_PER_HOUR), cap)


class ProgressionTracker:
    """Records each turn on a user's learning progression.

    Args:
        path_limit: Maximum progression path length; oldest steps drop first.
        default_velocity: Velocity while the path has fewer than two steps.
        max_velocity: Velocity cap in topics per hour.
    """

    def __init__(
        self,
        path_limit: int = DEFAULT_PATH_LIMIT,
        default_velocity: float = DEFAULT_VELOCITY,
        max_velocity: float = MAX_VELOCITY,
    ):
        self.path_limit = path_limit
        self.default_velocity = default_velocity
        self.max_velocity = max_velocity

    def record(
        self,
        progression: LearningProgression,
        turn_text: str | None,
        analysis: AnalysisResult,
        timestamp: int,
    ) -> list[str]:
        """Add one turn to the progression in place.

        Args:
            progression: Progression to mutate.
            turn_text: What the user said.
            analysis: Analysis of the same turn.
            timestamp: Turn time in ms since epoch.

        Returns:
            Topics extracted from the turn, in teaching-sequence order.
        """
        topics = extract_topics(turn_text)
        progression.topics_explored.update(topics)
        self._update_mastery(progression, topics, analysis)

        progression.progression_path.append(ProgressionStep(
            timestamp=timestamp,
            topic=topics[0] if topics else GENERAL_TOPIC,
            user_input=turn_text if isinstance(turn_text, str) else "",
            confidence=topic_confidence(analysis),
        ))
        overflow = len(progression.progression_path) - self.path_limit
        if overflow > 0:
            del progression.progression_path[:overflow]

        progression.learning_velocity = calculate_learning_velocity(
            progression.progression_path,
            default=self.default_velocity,
            cap=self.max_velocity,
        )

        logger.debug(
            "progression_recorded",
            user_id=progression.user_id,
            topics=topics,
            path_length=len(progression.progression_path),
            velocity=progression.learning_velocity,
        )
        return topics

    @staticmethod
    def _update_mastery(
        progression: LearningProgression,
        topics: list[str],
        analysis: AnalysisResult,
    ) -> None:
        net = analysis.learning_state.mastery - analysis.learning_state.struggle
        for topic in topics:
            current = progression.topic_mastery.get(topic, DEFAULT_TOPIC_MASTERY)
            progression.topic_mastery[topic] = round(
                max(0.0, min(current + MASTERY_STEP * net, 1.0)), 4
            )
