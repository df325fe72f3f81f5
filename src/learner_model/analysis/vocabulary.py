"""Indicator vocabularies for keyword-based turn analysis.

All matching is lowercase substring containment, not word-boundary matching:
"how" also hits "show me" and "however". Group order is significant wherever a
consumer takes the first or last match, so groups are tuples, not dicts.
"""

from learner_model.models.profile import SubjectArea, TeachingContext

MASTERY_INDICATORS: tuple[str, ...] = (
    "understand", "clear", "makes sense", "got it", "brilliant",
    "helpful", "exactly", "perfect", "ready to try",
)

STRUGGLE_INDICATORS: tuple[str, ...] = (
    "confused", "difficult", "not sure", "struggling", "help",
    "dont understand", "unclear", "lost", "complicated",
)

ENGAGEMENT_INDICATORS: tuple[str, ...] = (
    "interesting", "more about", "tell me", "what about", "how",
    "example", "show me", "curious", "want to know",
)

PREFERENCE_INDICATORS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("detailed_explanations", ("explain more", "details", "thorough", "comprehensive")),
    ("practical_examples", ("example", "practical", "real classroom", "in practice")),
    ("step_by_step", ("step by step", "stages", "process", "how to")),
    ("research_based", ("research", "evidence", "studies", "theoretical")),
)

NOVICE_PHRASES: tuple[str, ...] = ("new to", "dont know", "help me", "what is", "how do i")

EXPERT_PHRASES: tuple[str, ...] = (
    "in my experience", "i usually", "effective strategy", "research shows",
)

# Priority order: english > science > mathematics > history
SUBJECT_KEYWORDS: tuple[tuple[SubjectArea, tuple[str, ...]], ...] = (
    (SubjectArea.ENGLISH, ("english", "literacy", "writing", "reading", "language")),
    (SubjectArea.SCIENCE, ("science", "biology", "chemistry", "physics", "experiment")),
    (SubjectArea.MATHEMATICS, ("math", "maths", "mathematics", "number", "calculation")),
    (SubjectArea.HISTORY, ("history", "social studies", "humanities")),
)

# Evaluated in this order; when several groups match, the last one wins.
TEACHING_CONTEXT_KEYWORDS: tuple[tuple[TeachingContext, tuple[str, ...]], ...] = (
    (TeachingContext.EARLY_YEARS, ("foundation", "prep", "kindergarten", "early years")),
    (TeachingContext.PRIMARY, (
        "primary", "elementary", "year 3", "year 4", "year 5", "year 6",
    )),
    (TeachingContext.SECONDARY, (
        "secondary", "high school", "year 7", "year 8", "year 9", "year 10",
    )),
)

# Teaching and Learning Cycle topics, in teaching sequence.
TOPIC_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("field_building", ("field building", "prior knowledge", "context")),
    ("modeling", ("modeling", "demonstration", "example")),
    ("joint_construction", ("joint construction", "guided practice", "together")),
    ("independent_construction", ("independent", "individual", "assessment")),
    ("differentiation", ("differentiation", "diverse", "support")),
    ("assessment", ("assessment", "feedback", "evaluation")),
)

TLC_SEQUENCE: tuple[str, ...] = tuple(topic for topic, _ in TOPIC_KEYWORDS)

GENERAL_TOPIC = "general"


def count_hits(text: str, indicators: tuple[str, ...]) -> int:
    """Count how many indicators occur in already-lowercased text."""
    return sum(1 for indicator in indicators if indicator in text)


def extract_topics(text: str | None) -> list[str]:
    """Return TLC topics mentioned in text, in teaching-sequence order."""
    if not text or not isinstance(text, str):
        return []
    lowered = text.lower()
    return [
        topic for topic, keywords in TOPIC_KEYWORDS
        if any(keyword in lowered for keyword in keywords)
    ]
