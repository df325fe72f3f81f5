"""Tests for the user modeling engine."""

import threading
import time

import pytest

from learner_model.analysis.analyzer import KeywordTurnAnalyzer
from learner_model.config import Settings
from learner_model.engine import UserModelingEngine
from learner_model.models.context import Continuity, InsightType
from learner_model.models.memory import DAY_MS
from learner_model.models.outcome import UpdateStep
from learner_model.models.profile import ExpertiseLevel
from learner_model.storage.base import EntityKind
from learner_model.storage.memory_store import InMemoryUserStore

NOVICE_QUESTION = "I'm new to this, what is field building?"
EXPERT_REMARK = "In my experience the research shows this works"


class TestUpdateUserModel:
    def test_fresh_user_neutral_turn(self, engine, clock):
        outcome = engine.update_user_model("u1", user_response="Hello there")

        assert outcome.success
        assert outcome.error is None
        summary = outcome.profile_summary
        assert summary.conversation_count == 1
        assert summary.expertise == "developing"
        assert summary.learning_style == "mixed"
        assert summary.subject == "general"
        assert summary.teaching_level == "primary"
        assert summary.last_seen == clock.now
        assert outcome.personalized_context.confidence == {
            "expertise_level": 0.1,
            "learning_style": 0.1,
            "subject_expertise": 0.1,
            "teaching_context": 0.1,
        }

    def test_novice_question(self, engine):
        outcome = engine.update_user_model("u1", user_response=NOVICE_QUESTION)

        context = outcome.personalized_context
        assert context.expertise_level == "developing"
        assert context.confidence["expertise_level"] == pytest.approx(0.3)
        assert context.known_topics == ["field_building"]
        assert context.conversation_history.startswith("1 recent conversation;")

    def test_turn_is_stored_with_metadata(self, engine, store, clock):
        engine.update_user_model(
            "u1",
            user_response="How do I run joint construction?",
            system_response="Start by co-writing the opening together.",
            metadata={"session": "abc"},
        )
        log = store.get(EntityKind.MEMORY, "u1")
        assert len(log.entries) == 1
        stored = log.entries[0]
        assert stored.timestamp == clock.now
        assert stored.system_response == "Start by co-writing the opening together."
        assert stored.metadata == {"session": "abc"}
        assert stored.analysis.question_count == 1

    def test_conversation_count_accumulates(self, engine, clock):
        for _ in range(3):
            engine.update_user_model("u1", user_response="Hello")
            clock.advance(1000)
        assert engine.get_profile_summary("u1").conversation_count == 3

    def test_empty_and_missing_input(self, engine, store):
        assert engine.update_user_model("u1", user_response="").success
        assert engine.update_user_model("u1", user_response=None).success
        assert store.get(EntityKind.PROFILE, "u1").conversation_count == 2
        assert store.get(EntityKind.MEMORY, "u1").entries[-1].user_input == ""

    def test_expertise_rises_with_repeated_evidence(self, engine):
        for _ in range(4):
            outcome = engine.update_user_model("u1", user_response=EXPERT_REMARK)

        assert outcome.profile_summary.expertise == ExpertiseLevel.EXPERT.value
        assert [i.type for i in outcome.user_insights] == [InsightType.EXPERTISE]
        assert outcome.user_insights[0].message == "User demonstrates expert level understanding"

    def test_users_are_isolated(self, engine, store):
        engine.update_user_model("u1", user_response=NOVICE_QUESTION)
        engine.update_user_model("u2", user_response="Hello")
        assert store.get(EntityKind.PROGRESSION, "u2").topics_explored == set()
        assert store.get(EntityKind.PROGRESSION, "u1").topics_explored == {"field_building"}


class TestFailureStaging:
    def test_failed_step_leaves_store_unchanged(self, engine, store, monkeypatch):
        engine.update_user_model("u1", user_response=NOVICE_QUESTION)

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine.progression_tracker, "record", broken)
        outcome = engine.update_user_model("u1", user_response="That makes sense, got it")

        assert not outcome.success
        assert outcome.failed_step == UpdateStep.PROGRESSION
        assert "boom" in outcome.error
        profile = store.get(EntityKind.PROFILE, "u1")
        assert profile.conversation_count == 1
        assert profile.confidence.expertise_level == pytest.approx(0.3)
        assert len(store.get(EntityKind.MEMORY, "u1").entries) == 1

    def test_analyzer_failure_creates_nothing(self, store, clock):
        class BrokenAnalyzer:
            def analyze(self, turn_text, conversation_context=None):
                raise ValueError("cannot analyze")

        engine = UserModelingEngine(
            store=store, analyzer=BrokenAnalyzer(), settings=Settings(), clock=clock
        )
        outcome = engine.update_user_model("u1", user_response="Hello")

        assert outcome.failed_step == UpdateStep.ANALYZE
        assert outcome.personalized_context is None
        assert store.get(EntityKind.PROFILE, "u1") is None

    def test_engine_recovers_after_failure(self, engine, monkeypatch):
        def broken(*args):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine.preference_tracker, "record", broken)
        outcome = engine.update_user_model("u1", user_response="Hello")
        assert outcome.failed_step == UpdateStep.PREFERENCES

        monkeypatch.undo()
        assert engine.update_user_model("u1", user_response="Hello").success
        assert engine.get_profile_summary("u1").conversation_count == 1


class TestConcurrency:
    def test_same_user_updates_are_serialised(self, engine, store):
        def worker():
            for _ in range(25):
                engine.update_user_model("shared", user_response="How do I give feedback?")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get(EntityKind.PROFILE, "shared").conversation_count == 200
        assert len(store.get(EntityKind.MEMORY, "shared").entries) == 200
        assert len(store.get(EntityKind.PROGRESSION, "shared").progression_path) == 50

    def test_many_users_in_parallel(self, engine, store):
        def worker(user_id):
            for _ in range(10):
                engine.update_user_model(user_id, user_response="Hello")

        threads = [threading.Thread(target=worker, args=(f"user-{i}",)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for i in range(6):
            assert store.get(EntityKind.PROFILE, f"user-{i}").conversation_count == 10


class TestPersonalizedContext:
    def test_unknown_user_gets_default(self, engine):
        context = engine.get_personalized_context("nobody")
        assert context.model_dump(exclude_none=True) == {
            "expertise_level": "developing",
            "learning_style": "mixed",
            "subject_context": "general",
            "teaching_level": "primary",
            "known_topics": [],
            "conversation_history": "none",
        }

    def test_known_user(self, engine):
        engine.update_user_model("u1", user_response="I teach science to my year 8 class")
        context = engine.get_personalized_context("u1")
        assert context.subject_context == "science"
        assert context.teaching_level == "secondary"
        assert context.preferred_content_types == ["explanatory", "practical"]
        assert "Ground examples in science teaching for secondary students." in (
            context.personalized_prompts
        )

    def test_history_empties_after_a_day(self, engine, clock):
        engine.update_user_model("u1", user_response="Hello")
        clock.advance(DAY_MS)
        assert engine.get_personalized_context("u1").conversation_history == "none"


class TestRecommendations:
    def test_unknown_user_gets_default(self, engine):
        result = engine.get_personalized_recommendations("nobody")
        assert result.user_id == "nobody"
        assert result.confidence_score == 0.0
        assert result.based_on == ["default"]
        assert result.recommendations.model_dump(exclude_none=True) == {
            "next_topics": ["field_building", "modeling", "joint_construction"],
            "learning_path": "tlc_basics",
            "content_type": "mixed",
            "interaction_style": "supportive",
            "difficulty_level": "intermediate",
        }

    def test_after_novice_question(self, engine):
        engine.update_user_model("u1", user_response=NOVICE_QUESTION)
        result = engine.get_personalized_recommendations("u1", current_topic="field_building")
        recs = result.recommendations

        assert recs.next_topics == ["modeling", "joint_construction", "independent_construction"]
        assert recs.learning_path == "tlc_guided_practice"
        assert recs.content_type == "mixed"
        assert recs.interaction_style == "socratic"
        assert recs.difficulty_level == "intermediate"
        assert recs.reminders == ["Follow up on field building: it was left unresolved."]
        assert result.confidence_score == pytest.approx(0.15)

    def test_goal_sets_learning_path(self, engine):
        engine.update_user_model("u1", user_response="Hello")
        result = engine.get_personalized_recommendations(
            "u1", context={"goal": "persuasive_writing_unit"}
        )
        assert result.recommendations.learning_path == "persuasive_writing_unit"

    def test_struggling_user_gets_support(self, engine):
        engine.update_user_model("u1", user_response="I'm confused, this is difficult")
        result = engine.get_personalized_recommendations("u1")
        assert result.recommendations.interaction_style == "supportive"

    def test_unexplored_topics_come_first(self, engine):
        engine.update_user_model("u1", user_response="field building and modeling")
        result = engine.get_personalized_recommendations("u1")
        assert result.recommendations.next_topics == [
            "joint_construction",
            "independent_construction",
            "differentiation",
        ]


class TestCrossConversationContext:
    def test_unknown_user(self, engine):
        result = engine.get_cross_conversation_context("nobody", "anything")
        assert result.model_dump(exclude_none=True) == {"available": False, "context": []}

    def test_relevant_turn_is_found(self, engine, clock):
        engine.update_user_model("u1", user_response="How do I run joint construction with year 5?")
        clock.advance(1000)
        engine.update_user_model("u1", user_response="Thanks, that makes sense")

        result = engine.get_cross_conversation_context("u1", "more ideas for joint construction")

        assert result.available
        assert len(result.context) == 1
        top = result.context[0]
        assert top.topic == "joint_construction"
        assert top.relevance_score == pytest.approx(0.58)
        assert top.unresolved_topics == ["joint_construction"]
        assert result.continuity == Continuity.CONTINUING
        assert result.suggestions[0] == "Build on the earlier discussion of joint construction."

    def test_unrelated_input(self, engine):
        engine.update_user_model("u1", user_response="Hello")
        result = engine.get_cross_conversation_context("u1", "assessment rubrics")
        assert result.available
        assert result.context == []
        assert result.continuity == Continuity.NEW_TOPIC

    def test_max_context_limits_results(self, engine, clock):
        for _ in range(4):
            engine.update_user_model("u1", user_response="feedback on writing")
            clock.advance(1000)
        result = engine.get_cross_conversation_context("u1", "feedback on writing", max_context=2)
        assert len(result.context) == 2
        assert result.context[0].timestamp > result.context[1].timestamp


class TestForgetUser:
    def test_forget_removes_everything(self, engine, store):
        engine.update_user_model("u1", user_response="Hello")
        assert engine.forget_user("u1")
        for kind in EntityKind:
            assert store.get(kind, "u1") is None
        assert engine.get_profile_summary("u1") is None

    def test_forget_unknown_user(self, engine):
        assert not engine.forget_user("nobody")


class TestUserLocks:
    def test_waiter_behind_forget_still_serialises(self, clock):
        delete_started = threading.Event()
        release_delete = threading.Event()
        release_first_update = threading.Event()
        state = {"in_flight": 0, "peak": 0, "calls": 0}
        guard = threading.Lock()

        class SlowDeleteStore(InMemoryUserStore):
            def delete(self, kind, user_id):
                if not delete_started.is_set():
                    delete_started.set()
                    release_delete.wait(5)
                return super().delete(kind, user_id)

        class TrackingAnalyzer(KeywordTurnAnalyzer):
            def analyze(self, turn_text, conversation_context=None):
                with guard:
                    state["in_flight"] += 1
                    state["calls"] += 1
                    state["peak"] = max(state["peak"], state["in_flight"])
                    first = state["calls"] == 1
                if first:
                    release_first_update.wait(5)
                try:
                    return super().analyze(turn_text, conversation_context)
                finally:
                    with guard:
                        state["in_flight"] -= 1

        engine = UserModelingEngine(
            store=SlowDeleteStore(),
            analyzer=TrackingAnalyzer(),
            settings=Settings(),
            clock=clock,
        )
        forgetter = threading.Thread(target=engine.forget_user, args=("u",))
        forgetter.start()
        assert delete_started.wait(5)

        waiting = threading.Thread(target=engine.update_user_model, args=("u", None, "Hello"))
        waiting.start()
        time.sleep(0.05)
        release_delete.set()
        forgetter.join(5)

        late = threading.Thread(target=engine.update_user_model, args=("u", None, "Hello"))
        late.start()
        time.sleep(0.1)
        assert state["calls"] == 1

        release_first_update.set()
        waiting.join(5)
        late.join(5)

        assert state["peak"] == 1
        assert engine.get_profile_summary("u").conversation_count == 2

    def test_lock_entries_do_not_accumulate(self, clock):
        engine = UserModelingEngine(
            store=InMemoryUserStore(max_users=10), settings=Settings(), clock=clock
        )
        for i in range(200):
            engine.get_cross_conversation_context(f"visitor-{i}", "hello")
            engine.get_personalized_recommendations(f"visitor-{i}")
        for i in range(30):
            engine.update_user_model(f"user-{i}", user_response="Hello")
        engine.forget_user("user-29")

        assert engine._user_locks == {}
        assert len(engine.store) == 9
