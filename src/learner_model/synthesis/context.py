"""Personalized context, insights, recommendations and cross-conversation context."""

from typing import Any

from learner_model.analysis.vocabulary import GENERAL_TOPIC, TLC_SEQUENCE, extract_topics
from learner_model.memory.conversation_memory import ConversationMemory
from learner_model.modeling.preferences import (
    CONTENT_TYPE_LABELS,
    dominant,
    preferred_content_types,
)
from learner_model.models.context import (
    DEFAULT_RECOMMENDATIONS,
    ContextEntry,
    Continuity,
    CrossConversationContext,
    Insight,
    InsightType,
    PersonalizedContext,
    ProfileSummary,
    RecommendationResult,
    Recommendations,
)
from learner_model.models.memory import ConversationLogEntry, MemoryView
from learner_model.models.profile import ExpertiseLevel, LearningStyle, SubjectArea, UserProfile
from learner_model.models.progression import (
    DEFAULT_TOPIC_MASTERY,
    LearningProgression,
    PreferenceProfile,
)
from learner_model.synthesis.relevance import rank_relevant

EXPERTISE_INSIGHT_CONFIDENCE = 0.7
STYLE_INSIGHT_CONFIDENCE = 0.6
PROGRESSION_INSIGHT_TOPICS = 3
PROGRESSION_INSIGHT_CONFIDENCE = 0.8

CONTINUING_RELEVANCE = 0.5
FAST_VELOCITY = 1.5
SLOW_VELOCITY = 0.25
MAX_NEXT_TOPICS = 3
MAX_REMINDERS = 3

LEARNING_PATHS: dict[ExpertiseLevel, str] = {
    ExpertiseLevel.NOVICE: "tlc_basics",
    ExpertiseLevel.DEVELOPING: "tlc_guided_practice",
    ExpertiseLevel.PROFICIENT: "tlc_independent_application",
    ExpertiseLevel.EXPERT: "tlc_mentoring",
}

STYLE_CONTENT_TYPES: dict[LearningStyle, str] = {
    LearningStyle.VISUAL: "worked_examples",
    LearningStyle.READING: "detailed_explanations",
    LearningStyle.KINESTHETIC: "hands_on_activities",
    LearningStyle.AUDITORY: "discussion",
    LearningStyle.MIXED: "mixed",
}

STYLE_PROMPTS: dict[LearningStyle, str] = {
    LearningStyle.VISUAL: "Lead with concrete classroom examples.",
    LearningStyle.READING: "Provide thorough written explanations.",
    LearningStyle.KINESTHETIC: "Break guidance into actionable steps.",
    LearningStyle.AUDITORY: "Keep a conversational, discussion-based tone.",
}

DIFFICULTY_LEVELS: tuple[str, ...] = ("introductory", "intermediate", "advanced", "expert")
HIGH_MASTERY = 0.8
LOW_MASTERY = 0.3


def _label(topic: str) -> str:
    return topic.replace("_", " ")


def _entry_topics(entry: ConversationLogEntry) -> list[str]:
    return extract_topics(entry.user_input) or [GENERAL_TOPIC]


def _user_progress(entry: ConversationLogEntry) -> str:
    state = entry.analysis.learning_state
    if state.mastery > state.struggle:
        return "progressing"
    if state.struggle > state.mastery:
        return "struggling"
    if state.engagement > 0:
        return "exploring"
    return "unknown"


def _unresolved(entry: ConversationLogEntry) -> list[str]:
    state = entry.analysis.learning_state
    asked_without_resolution = entry.analysis.question_count > 0 and state.mastery == 0
    if state.struggle > state.mastery or asked_without_resolution:
        return _entry_topics(entry)
    return []


def _key_learnings(entry: ConversationLogEntry) -> list[str]:
    state = entry.analysis.learning_state
    if state.mastery > state.struggle:
        return _entry_topics(entry)
    return []


def _struggling_recently(entries: list[ConversationLogEntry]) -> bool:
    mastery = sum(e.analysis.learning_state.mastery for e in entries)
    struggle = sum(e.analysis.learning_state.struggle for e in entries)
    return struggle > mastery


class ContextSynthesizer:
    """Builds read-only views of a user's model. Never mutates its inputs."""

    # Personalized context

    def build_personalized_context(
        self,
        profile: UserProfile | None,
        progression: LearningProgression | None = None,
        preferences: PreferenceProfile | None = None,
        memory: ConversationMemory | None = None,
    ) -> PersonalizedContext:
        """Assemble the personalization snapshot for the next interaction.

        Returns the fixed default context when there is no profile.
        """
        if profile is None:
            return PersonalizedContext()

        dims = profile.dimensions
        return PersonalizedContext(
            expertise_level=dims.expertise_level.value,
            learning_style=dims.learning_style.value,
            subject_context=dims.subject_expertise.value,
            teaching_level=dims.teaching_context.value,
            known_topics=sorted(progression.topics_explored) if progression else [],
            conversation_history=self.summarize_recent_memory(memory),
            confidence=profile.confidence.model_dump(),
            learning_velocity=(
                progression.learning_velocity if progression else 0.5
            ),
            preferred_content_types=preferred_content_types(preferences),
            insights=self.generate_insights(profile, progression),
            personalized_prompts=self._personalized_prompts(profile, progression),
            adaptation_recommendations=self._adaptation_recommendations(
                profile, progression, memory
            ),
        )

    def generate_insights(
        self,
        profile: UserProfile | None,
        progression: LearningProgression | None,
    ) -> list[Insight]:
        """Natural-language insights, each gated by a confidence threshold."""
        if profile is None:
            return []

        insights = []
        if profile.confidence.expertise_level > EXPERTISE_INSIGHT_CONFIDENCE:
            insights.append(Insight(
                type=InsightType.EXPERTISE,
                message=(
                    f"User demonstrates {profile.dimensions.expertise_level.value} "
                    "level understanding"
                ),
                confidence=profile.confidence.expertise_level,
            ))
        if profile.confidence.learning_style > STYLE_INSIGHT_CONFIDENCE:
            insights.append(Insight(
                type=InsightType.LEARNING_STYLE,
                message=(
                    f"Prefers {profile.dimensions.learning_style.value} learning approaches"
                ),
                confidence=profile.confidence.learning_style,
            ))
        if progression and len(progression.topics_explored) > PROGRESSION_INSIGHT_TOPICS:
            insights.append(Insight(
                type=InsightType.PROGRESSION,
                message=(
                    f"Explored {len(progression.topics_explored)} TLC topics "
                    "with good engagement"
                ),
                confidence=PROGRESSION_INSIGHT_CONFIDENCE,
            ))
        return insights

    def summarize_recent_memory(self, memory: ConversationMemory | None) -> str:
        if memory is None:
            return "none"
        recent = memory.query(MemoryView.SHORT_TERM)
        if not recent:
            return "none"

        topics: list[str] = []
        for entry in recent:
            for topic in extract_topics(entry.user_input):
                if topic not in topics:
                    topics.append(topic)

        state = "struggling" if _struggling_recently(recent) else _user_progress(recent[-1])
        noun = "conversation" if len(recent) == 1 else "conversations"
        topic_text = ", ".join(_label(t) for t in topics) if topics else "general discussion"
        return f"{len(recent)} recent {noun}; topics: {topic_text}; latest state: {state}"

    def _personalized_prompts(
        self,
        profile: UserProfile,
        progression: LearningProgression | None,
    ) -> list[str]:
        dims = profile.dimensions
        prompts = [f"Pitch explanations for a {dims.expertise_level.value} teacher."]
        if dims.learning_style in STYLE_PROMPTS:
            prompts.append(STYLE_PROMPTS[dims.learning_style])
        if dims.subject_expertise != SubjectArea.GENERAL:
            prompts.append(
                f"Ground examples in {dims.subject_expertise.value} teaching for "
                f"{_label(dims.teaching_context.value)} students."
            )
        if progression and progression.topics_explored:
            known = ", ".join(_label(t) for t in sorted(progression.topics_explored)[:3])
            prompts.append(f"Build on topics already explored: {known}.")
        return prompts

    def _adaptation_recommendations(
        self,
        profile: UserProfile,
        progression: LearningProgression | None,
        memory: ConversationMemory | None,
    ) -> list[str]:
        recommendations = []
        if profile.confidence.expertise_level < 0.3:
            recommendations.append(
                "Gather more evidence of expertise before adjusting complexity."
            )
        if progression and len(progression.progression_path) >= 2:
            if progression.learning_velocity >= FAST_VELOCITY:
                recommendations.append("Offer extension material; the user is moving quickly.")
            elif progression.learning_velocity < SLOW_VELOCITY:
                recommendations.append(
                    "Consolidate current topics before introducing new ones."
                )
        if memory is not None and _struggling_recently(memory.query(MemoryView.SHORT_TERM)):
            recommendations.append("Check understanding and slow the pace.")
        return recommendations

    # Recommendations

    def default_recommendations(self, user_id: str) -> RecommendationResult:
        return RecommendationResult(
            user_id=user_id,
            recommendations=DEFAULT_RECOMMENDATIONS.model_copy(deep=True),
            confidence_score=0.0,
            based_on=["default"],
        )

    def recommend(
        self,
        profile: UserProfile | None,
        progression: LearningProgression | None,
        preferences: PreferenceProfile | None,
        memory: ConversationMemory | None,
        current_topic: str | None = None,
        context: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> RecommendationResult:
        """Personalized next steps for a user.

        Falls back to the fixed default bundle when there is no profile.
        """
        if profile is None:
            return self.default_recommendations(user_id or "")

        context = context or {}
        recent = memory.query(MemoryView.SHORT_TERM) if memory else []
        history = memory.query(MemoryView.MEDIUM_TERM) if memory else []

        recommendations = Recommendations(
            next_topics=self._next_topics(progression, current_topic),
            learning_path=self._learning_path(profile, context),
            content_type=self._content_type(profile, preferences),
            interaction_style=self._interaction_style(profile, preferences, recent),
            difficulty_level=self._difficulty(profile, progression, current_topic),
            reminders=self._reminders(history),
        )
        return RecommendationResult(
            user_id=profile.user_id,
            recommendations=recommendations,
            confidence_score=round(profile.confidence.mean(), 4),
            based_on=self._reasoning(profile, progression, history),
        )

    @staticmethod
    def _next_topics(
        progression: LearningProgression | None,
        current_topic: str | None,
    ) -> list[str]:
        explored = progression.topics_explored if progression else set()
        start = TLC_SEQUENCE.index(current_topic) + 1 if current_topic in TLC_SEQUENCE else 0
        ordered = TLC_SEQUENCE[start:] + TLC_SEQUENCE[:start]
        candidates = [t for t in ordered if t != current_topic]

        unexplored = [t for t in candidates if t not in explored]
        if unexplored:
            return unexplored[:MAX_NEXT_TOPICS]

        mastery = progression.topic_mastery if progression else {}
        weakest = sorted(
            candidates,
            key=lambda t: (mastery.get(t, DEFAULT_TOPIC_MASTERY), TLC_SEQUENCE.index(t)),
        )
        return weakest[:MAX_NEXT_TOPICS]

    @staticmethod
    def _learning_path(profile: UserProfile, context: dict[str, Any]) -> str:
        goal = context.get("goal")
        if isinstance(goal, str) and goal.strip():
            return goal.strip()
        return LEARNING_PATHS[profile.dimensions.expertise_level]

    @staticmethod
    def _content_type(profile: UserProfile, preferences: PreferenceProfile | None) -> str:
        if preferences is not None:
            top = dominant(preferences.content)
            if top in CONTENT_TYPE_LABELS:
                return CONTENT_TYPE_LABELS[top]
        return STYLE_CONTENT_TYPES[profile.dimensions.learning_style]

    @staticmethod
    def _interaction_style(
        profile: UserProfile,
        preferences: PreferenceProfile | None,
        recent: list[ConversationLogEntry],
    ) -> str:
        level = profile.dimensions.expertise_level
        if _struggling_recently(recent) or level == ExpertiseLevel.NOVICE:
            return "supportive"
        if level == ExpertiseLevel.EXPERT:
            return "collegial"
        top = dominant(preferences.interaction) if preferences else None
        if top == "questioning":
            return "socratic"
        if top == "discussion":
            return "conversational"
        return "guided"

    @staticmethod
    def _difficulty(
        profile: UserProfile,
        progression: LearningProgression | None,
        current_topic: str | None,
    ) -> str:
        index = profile.dimensions.expertise_level.ordinal
        if progression and current_topic in progression.topic_mastery:
            mastery = progression.topic_mastery[current_topic]
            if mastery >= HIGH_MASTERY:
                index += 1
            elif mastery <= LOW_MASTERY:
                index -= 1
        return DIFFICULTY_LEVELS[max(0, min(len(DIFFICULTY_LEVELS) - 1, index))]

    @staticmethod
    def _reminders(history: list[ConversationLogEntry]) -> list[str]:
        reminders: list[str] = []
        for entry in reversed(history):
            for topic in _unresolved(entry):
                reminder = f"Follow up on {_label(topic)}: it was left unresolved."
                if reminder not in reminders:
                    reminders.append(reminder)
        return reminders[:MAX_REMINDERS]

    @staticmethod
    def _reasoning(
        profile: UserProfile,
        progression: LearningProgression | None,
        history: list[ConversationLogEntry],
    ) -> list[str]:
        dims = profile.dimensions
        conf = profile.confidence
        return [
            f"expertise_level={dims.expertise_level.value} ({conf.expertise_level:.2f})",
            f"learning_style={dims.learning_style.value} ({conf.learning_style:.2f})",
            f"subject={dims.subject_expertise.value} ({conf.subject_expertise:.2f})",
            f"teaching_context={dims.teaching_context.value} ({conf.teaching_context:.2f})",
            f"topics_explored={len(progression.topics_explored) if progression else 0}",
            f"recent_conversations={len(history)}",
        ]

    # Cross-conversation context

    def cross_conversation_context(
        self,
        memory: ConversationMemory | None,
        current_input: str | None,
        max_context: int = 5,
    ) -> CrossConversationContext:
        """Relevant past turns plus a continuity reading of the current input.

        Returns ``available=False`` with an empty context when the user has
        no conversation memory.
        """
        if memory is None or len(memory) == 0:
            return CrossConversationContext(available=False, context=[])

        ranked = rank_relevant(memory.entries, current_input, max_context)
        context = [
            ContextEntry(
                timestamp=entry.timestamp,
                topic=_entry_topics(entry)[0],
                user_progress=_user_progress(entry),
                key_learnings=_key_learnings(entry),
                unresolved_topics=_unresolved(entry),
                relevance_score=score,
            )
            for entry, score in ranked
        ]
        continuity = self._continuity(context, current_input)
        return CrossConversationContext(
            available=True,
            context=context,
            continuity=continuity,
            suggestions=self._continuity_suggestions(context, continuity),
        )

    @staticmethod
    def _continuity(context: list[ContextEntry], current_input: str | None) -> Continuity:
        if not context:
            return Continuity.NEW_TOPIC
        current_topics = set(extract_topics(current_input))
        if context[0].relevance_score >= CONTINUING_RELEVANCE or (
            context[0].topic in current_topics
        ):
            return Continuity.CONTINUING
        return Continuity.RELATED

    @staticmethod
    def _continuity_suggestions(
        context: list[ContextEntry],
        continuity: Continuity,
    ) -> list[str]:
        if continuity == Continuity.NEW_TOPIC:
            return ["Introduce the new topic and link it to what the user already knows."]

        top = _label(context[0].topic)
        if continuity == Continuity.CONTINUING:
            suggestions = [f"Build on the earlier discussion of {top}."]
        else:
            suggestions = [f"Connect this to the earlier discussion of {top}."]

        seen: set[str] = set()
        for entry in context:
            for topic in entry.unresolved_topics:
                if topic not in seen:
                    seen.add(topic)
                    suggestions.append(f"Revisit {_label(topic)}, which was unresolved earlier.")
        return suggestions

    # Summary

    def profile_summary(
        self,
        profile: UserProfile | None,
        progression: LearningProgression | None,
    ) -> ProfileSummary | None:
        if profile is None:
            return None
        dims = profile.dimensions
        return ProfileSummary(
            user_id=profile.user_id,
            expertise=dims.expertise_level.value,
            learning_style=dims.learning_style.value,
            subject=dims.subject_expertise.value,
            teaching_level=dims.teaching_context.value,
            conversation_count=profile.conversation_count,
            topics_explored=sorted(progression.topics_explored) if progression else [],
            model_confidence=round(profile.confidence.mean(), 4),
            last_seen=profile.last_updated_at,
        )
