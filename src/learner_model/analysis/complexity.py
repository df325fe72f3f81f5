"""Language complexity metrics for expertise estimation."""

import re

import structlog
import textstat

logger = structlog.get_logger()

MIN_WORDS = 3
LONG_WORD_LENGTH = 7

# Normalisation ceilings: values at or above these count as fully complex.
MAX_GRADE = 16.0
MAX_SENTENCE_LENGTH = 25.0

READABILITY_WEIGHT = 0.4
SENTENCE_LENGTH_WEIGHT = 0.3
LONG_WORD_WEIGHT = 0.3


def compute_text_metrics(text: str) -> dict[str, float]:
    """Compute surface metrics of a turn.

    Args:
        text: Raw turn text.

    Returns:
        Dict with total_words, avg_sentence_length, long_word_ratio, readability.
    """
    words = re.findall(r"[a-zA-Z']+", text.lower())
    if not words:
        return {
            "total_words": 0,
            "avg_sentence_length": 0.0,
            "long_word_ratio": 0.0,
            "readability": 0.0,
        }

    sentences = [s.strip() for s in re.split(r"[.!?]+", text) if s.strip()]
    avg_sentence_length = len(words) / max(len(sentences), 1)
    long_words = sum(1 for w in words if len(w.strip("'")) >= LONG_WORD_LENGTH)

    try:
        readability = textstat.flesch_kincaid_grade(text)
    except Exception:
        logger.warning("readability_failed", text_length=len(text))
        readability = 0.0

    return {
        "total_words": len(words),
        "avg_sentence_length": avg_sentence_length,
        "long_word_ratio": long_words / len(words),
        "readability": max(0.0, min(readability, MAX_GRADE)),
    }


def score_language_complexity(text: str) -> float:
    """Score how linguistically complex a turn is.

    Blends Flesch-Kincaid grade, average sentence length and the share of
    long words. Very short turns carry no signal and score 0.

    Args:
        text: Raw turn text.

    Returns:
        Complexity in [0, 1].
    """
    if not text or not text.strip():
        return 0.0

    metrics = compute_text_metrics(text)
    if metrics["total_words"] < MIN_WORDS:
        return 0.0

    score = (
        READABILITY_WEIGHT * metrics["readability"] / MAX_GRADE
        + SENTENCE_LENGTH_WEIGHT * min(metrics["avg_sentence_length"] / MAX_SENTENCE_LENGTH, 1.0)
        + LONG_WORD_WEIGHT * metrics["long_word_ratio"]
    )
    return round(max(0.0, min(score, 1.0)), 4)
