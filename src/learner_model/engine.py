"""User modeling engine: orchestrates analysis, updates, memory and synthesis."""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from learner_model.analysis.analyzer import KeywordTurnAnalyzer, TurnAnalyzer
from learner_model.clock import now_ms
from learner_model.config import Settings, get_settings
from learner_model.errors import UpdateStepError
from learner_model.memory.conversation_memory import ConversationMemory
from learner_model.modeling.dimensions import DimensionUpdater
from learner_model.modeling.preferences import PreferenceTracker
from learner_model.modeling.progression import ProgressionTracker
from learner_model.models.context import (
    CrossConversationContext,
    PersonalizedContext,
    ProfileSummary,
    RecommendationResult,
)
from learner_model.models.memory import ConversationLog, ConversationLogEntry
from learner_model.models.outcome import UpdateOutcome, UpdateStep
from learner_model.models.profile import UserProfile
from learner_model.models.progression import LearningProgression, PreferenceProfile
from learner_model.storage.base import EntityKind, UserStateStore
from learner_model.storage.json_store import JsonFileUserStore
from learner_model.storage.memory_store import InMemoryUserStore
from learner_model.synthesis.context import ContextSynthesizer

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class UserState:
    """Working set of one user's entities during an update."""

    profile: UserProfile
    log: ConversationLog
    progression: LearningProgression
    preferences: PreferenceProfile


@dataclass
class _UserLock:
    """A user's lock plus the number of callers holding or waiting on it."""

    lock: threading.Lock
    refs: int = 0


def build_store(settings: Settings) -> UserStateStore:
    """Create the store configured by ``store_backend``."""
    if settings.store_backend == "json":
        return JsonFileUserStore(settings.state_dir)
    return InMemoryUserStore(max_users=settings.max_users)


class UserModelingEngine:
    """Maintains per-user models across conversational turns.

    Calls for the same user are serialised on a per-user lock; calls for
    different users never wait on each other. Updates work on copies of the
    stored entities and write them back only after every mutation step
    succeeds.

    Args:
        store: Where per-user entities live. Built from settings if omitted.
        analyzer: Turn analyzer; keyword matching by default.
        settings: Tier, progression and storage settings.
        clock: Returns the current time in ms since epoch.
    """

    def __init__(
        self,
        store: UserStateStore | None = None,
        analyzer: TurnAnalyzer | None = None,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings or get_settings()
        self.store = store if store is not None else build_store(self.settings)
        self.analyzer = analyzer or KeywordTurnAnalyzer()
        self.clock = clock

        self.dimension_updater = DimensionUpdater()
        self.progression_tracker = ProgressionTracker(
            path_limit=self.settings.progression_path_limit,
            default_velocity=self.settings.default_learning_velocity,
            max_velocity=self.settings.max_learning_velocity,
        )
        self.preference_tracker = PreferenceTracker()
        self.synthesizer = ContextSynthesizer()
        self.memory_tiers = self.settings.memory_tiers

        self._user_locks: dict[str, _UserLock] = {}
        self._locks_guard = threading.Lock()

    # Public API

    def update_user_model(
        self,
        user_id: str,
        conversation_data: dict[str, Any] | None = None,
        user_response: str | None = "",
        system_response: str | None = "",
        metadata: dict[str, Any] | None = None,
    ) -> UpdateOutcome:
        """Fold one conversational turn into the user's model.

        Args:
            user_id: User key.
            conversation_data: Caller context passed through to the analyzer.
            user_response: What the user said.
            system_response: What the assistant replied.
            metadata: Opaque key/value data stored with the turn.

        Returns:
            UpdateOutcome with the refreshed personalized context, insights and
            profile summary, or ``success=False`` naming the failed step.
        """
        with self._user_lock(user_id), structlog.contextvars.bound_contextvars(user_id=user_id):
            timestamp = self.clock()
            try:
                analysis = self._run_step(
                    UpdateStep.ANALYZE, self.analyzer.analyze, user_response, conversation_data
                )
                state = self._run_step(UpdateStep.LOAD, self._load_state, user_id, timestamp)

                self._run_step(
                    UpdateStep.DIMENSIONS,
                    self.dimension_updater.apply, state.profile, analysis, timestamp,
                )
                self._run_step(
                    UpdateStep.PROGRESSION,
                    self.progression_tracker.record,
                    state.progression, user_response, analysis, timestamp,
                )
                self._run_step(
                    UpdateStep.PREFERENCES,
                    self.preference_tracker.record, state.preferences, analysis,
                )
                entry = ConversationLogEntry(
                    timestamp=timestamp,
                    user_input=user_response if isinstance(user_response, str) else "",
                    system_response=system_response if isinstance(system_response, str) else "",
                    metadata=dict(metadata or {}),
                    analysis=analysis,
                )
                memory = self._memory(state.log)
                self._run_step(UpdateStep.MEMORY, memory.append, entry)
                self._run_step(UpdateStep.COMMIT, self._commit, user_id, state)

                outcome = self._run_step(
                    UpdateStep.SYNTHESIZE, self._build_outcome, user_id, state, memory
                )
            except UpdateStepError as e:
                logger.error("user_model_update_failed", step=e.step.value, error=str(e.cause))
                return UpdateOutcome.failed(user_id, e.step, str(e.cause))

            logger.info(
                "user_model_updated",
                conversation_count=state.profile.conversation_count,
                expertise_level=state.profile.dimensions.expertise_level.value,
                memory_size=len(memory),
            )
            return outcome

    def get_personalized_context(self, user_id: str) -> PersonalizedContext:
        """Personalization snapshot; the default context for unknown users."""
        with self._user_lock(user_id):
            profile, progression, preferences, memory = self._read_state(user_id)
            return self.synthesizer.build_personalized_context(
                profile, progression, preferences, memory
            )

    def get_personalized_recommendations(
        self,
        user_id: str,
        current_topic: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> RecommendationResult:
        """Next topics, learning path, content type, interaction style and difficulty."""
        with self._user_lock(user_id):
            profile, progression, preferences, memory = self._read_state(user_id)
            if profile is None:
                return self.synthesizer.default_recommendations(user_id)
            return self.synthesizer.recommend(
                profile, progression, preferences, memory,
                current_topic=current_topic,
                context=context or {},
                user_id=user_id,
            )

    def get_cross_conversation_context(
        self,
        user_id: str,
        current_input: str | None,
        max_context: int = 5,
    ) -> CrossConversationContext:
        """Past turns relevant to ``current_input``, with continuity hints."""
        with self._user_lock(user_id):
            log = self.store.get(EntityKind.MEMORY, user_id)
            memory = self._memory(log) if log is not None else None
            return self.synthesizer.cross_conversation_context(
                memory, current_input, max_context
            )

    def get_profile_summary(self, user_id: str) -> ProfileSummary | None:
        with self._user_lock(user_id):
            profile = self.store.get(EntityKind.PROFILE, user_id)
            progression = self.store.get(EntityKind.PROGRESSION, user_id)
            return self.synthesizer.profile_summary(profile, progression)

    def forget_user(self, user_id: str) -> bool:
        """Delete every entity held for a user.

        Returns:
            True if anything was deleted.
        """
        with self._user_lock(user_id):
            deleted = [self.store.delete(kind, user_id) for kind in EntityKind]
        if any(deleted):
            logger.info("user_forgotten", user_id=user_id)
        return any(deleted)

    # Internals

    @contextmanager
    def _user_lock(self, user_id: str) -> Iterator[None]:
        # An entry lives only while someone holds or waits on it.
        with self._locks_guard:
            entry = self._user_locks.get(user_id)
            if entry is None:
                entry = self._user_locks[user_id] = _UserLock(threading.Lock())
            entry.refs += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.refs -= 1
                if entry.refs == 0:
                    del self._user_locks[user_id]

    @staticmethod
    def _run_step(step: UpdateStep, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except Exception as e:
            logger.exception("update_step_failed", step=step.value)
            raise UpdateStepError(step, e) from e

    def _memory(self, log: ConversationLog) -> ConversationMemory:
        return ConversationMemory(log, tiers=self.memory_tiers, clock=self.clock)

    def _load_state(self, user_id: str, timestamp: int) -> UserState:
        """Deep copies of the stored entities, or fresh ones for a new user."""

        def load(kind: EntityKind, factory: Callable[[], T]) -> T:
            stored = self.store.get(kind, user_id)
            return stored.model_copy(deep=True) if stored is not None else factory()

        def new_profile() -> UserProfile:
            logger.info("user_profile_created")
            return UserProfile(user_id=user_id, created_at=timestamp, last_updated_at=timestamp)

        return UserState(
            profile=load(EntityKind.PROFILE, new_profile),
            log=load(EntityKind.MEMORY, lambda: ConversationLog(user_id=user_id)),
            progression=load(
                EntityKind.PROGRESSION,
                lambda: LearningProgression(
                    user_id=user_id,
                    learning_velocity=self.settings.default_learning_velocity,
                ),
            ),
            preferences=load(EntityKind.PREFERENCES, lambda: PreferenceProfile(user_id=user_id)),
        )

    def _commit(self, user_id: str, state: UserState) -> None:
        self.store.put(EntityKind.PROFILE, user_id, state.profile)
        self.store.put(EntityKind.PROGRESSION, user_id, state.progression)
        self.store.put(EntityKind.PREFERENCES, user_id, state.preferences)
        self.store.put(EntityKind.MEMORY, user_id, state.log)

    def _read_state(self, user_id: str) -> tuple[
        UserProfile | None,
        LearningProgression | None,
        PreferenceProfile | None,
        ConversationMemory | None,
    ]:
        log = self.store.get(EntityKind.MEMORY, user_id)
        return (
            self.store.get(EntityKind.PROFILE, user_id),
            self.store.get(EntityKind.PROGRESSION, user_id),
            self.store.get(EntityKind.PREFERENCES, user_id),
            self._memory(log) if log is not None else None,
        )

    def _build_outcome(
        self,
        user_id: str,
        state: UserState,
        memory: ConversationMemory,
    ) -> UpdateOutcome:
        return UpdateOutcome(
            success=True,
            user_id=user_id,
            personalized_context=self.synthesizer.build_personalized_context(
                state.profile, state.progression, state.preferences, memory
            ),
            user_insights=self.synthesizer.generate_insights(state.profile, state.progression),
            profile_summary=self.synthesizer.profile_summary(state.profile, state.progression),
        )
