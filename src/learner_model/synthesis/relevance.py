"""Relevance scoring between past turns and the current input."""

import re

from learner_model.analysis.vocabulary import extract_topics
from learner_model.models.memory import ConversationLogEntry

KEYWORD_WEIGHT = 0.7
TOPIC_WEIGHT = 0.3
MIN_TOKEN_LENGTH = 3

STOPWORDS: frozenset[str] = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
    "had", "her", "was", "one", "our", "out", "has", "have", "him", "his",
    "how", "its", "may", "now", "see", "way", "who", "did", "get", "let",
    "she", "too", "use", "that", "this", "with", "what", "when", "where",
    "which", "will", "would", "could", "should", "there", "their", "them",
    "they", "then", "than", "from", "into", "about", "been", "were", "your",
    "just", "like", "some", "more", "also", "very", "want", "know", "does",
    "i'm", "it's", "don't", "dont",
})


def keywords(text: str | None) -> set[str]:
    """Content words of a text: lowercase, no stopwords, at least 3 letters."""
    if not text or not isinstance(text, str):
        return set()
    return {
        token for token in re.findall(r"[a-z']+", text.lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    }


def relevance_score(entry: ConversationLogEntry, current_input: str | None) -> float:
    """Score how related a past turn is to the current input.

    Blends keyword Jaccard overlap with the share of the input's TLC topics
    that the past turn also touched.

    Args:
        entry: Past conversation turn.
        current_input: What the user is saying now.

    Returns:
        Relevance in [0, 1].
    """
    current_words = keywords(current_input)
    past_words = keywords(entry.user_input)
    keyword_overlap = 0.0
    if current_words and past_words:
        keyword_overlap = len(current_words & past_words) / len(current_words | past_words)

    current_topics = set(extract_topics(current_input))
    topic_overlap = 0.0
    if current_topics:
        past_topics = set(extract_topics(entry.user_input))
        topic_overlap = len(current_topics & past_topics) / len(current_topics)

    return round(KEYWORD_WEIGHT * keyword_overlap + TOPIC_WEIGHT * topic_overlap, 4)


def rank_relevant(
    entries: list[ConversationLogEntry],
    current_input: str | None,
    limit: int,
) -> list[tuple[ConversationLogEntry, float]]:
    """Most relevant past turns with a positive score, best first.

    Ties go to the newer turn, then to the later log position.
    """
    if limit <= 0:
        return []
    scored = [
        (position, entry, relevance_score(entry, current_input))
        for position, entry in enumerate(entries)
    ]
    scored = [item for item in scored if item[2] > 0]
    scored.sort(key=lambda item: (-item[2], -item[1].timestamp, -item[0]))
    return [(entry, score) for _, entry, score in scored[:limit]]
