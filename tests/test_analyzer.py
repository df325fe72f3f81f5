"""Tests for turn analysis and language complexity."""

from learner_model.analysis.analyzer import KeywordTurnAnalyzer
from learner_model.analysis.complexity import compute_text_metrics, score_language_complexity
from learner_model.analysis.vocabulary import extract_topics
from learner_model.models.analysis import AnalysisResult
from learner_model.models.profile import SubjectArea, TeachingContext

SIMPLE_TEXT = "I like my class. We read books. It is fun."
ACADEMIC_TEXT = (
    "Comprehensive differentiation strategies necessitate systematic consideration "
    "of heterogeneous linguistic backgrounds, particularly when scaffolding "
    "independent construction of persuasive argumentation."
)


class TestEmptyInput:
    def test_empty_string(self):
        assert KeywordTurnAnalyzer().analyze("") == AnalysisResult()

    def test_whitespace_only(self):
        assert KeywordTurnAnalyzer().analyze("   \n") == AnalysisResult()

    def test_none(self):
        assert KeywordTurnAnalyzer().analyze(None) == AnalysisResult()

    def test_non_text(self):
        result = KeywordTurnAnalyzer().analyze(12345)  # type: ignore[arg-type]
        assert result == AnalysisResult()
        assert result.is_empty


class TestIndicatorCounts:
    def test_novice_phrases(self):
        result = KeywordTurnAnalyzer().analyze("I'm new to this, what is field building?")
        assert result.expertise.novice == 2
        assert result.expertise.expert == 0

    def test_expert_phrases(self):
        result = KeywordTurnAnalyzer().analyze(
            "In my experience the research shows this works"
        )
        assert result.expertise.expert == 2

    def test_mastery(self):
        result = KeywordTurnAnalyzer().analyze("That makes sense, got it")
        assert result.learning_state.mastery == 2
        assert result.learning_state.struggle == 0

    def test_struggle(self):
        result = KeywordTurnAnalyzer().analyze("I'm confused and it's difficult")
        assert result.learning_state.struggle == 2

    def test_substring_matching(self):
        # "how" also matches inside "show"
        result = KeywordTurnAnalyzer().analyze("Can you show me an example?")
        assert result.learning_state.engagement == 3
        assert result.preferences.practical_examples == 1

    def test_case_insensitive(self):
        result = KeywordTurnAnalyzer().analyze("STEP BY STEP please")
        assert result.preferences.step_by_step == 1


class TestTags:
    def test_subject_priority_order(self):
        result = KeywordTurnAnalyzer().analyze("I teach maths and english writing")
        assert result.subject_context == [SubjectArea.ENGLISH, SubjectArea.MATHEMATICS]

    def test_no_subject(self):
        result = KeywordTurnAnalyzer().analyze("Good morning")
        assert result.subject_context == []

    def test_teaching_contexts_declared_order(self):
        result = KeywordTurnAnalyzer().analyze("my year 7 class and my kindergarten group")
        assert result.teaching_contexts == [TeachingContext.EARLY_YEARS, TeachingContext.SECONDARY]


class TestRawFeatures:
    def test_length_and_questions(self):
        result = KeywordTurnAnalyzer().analyze("What? Why??")
        assert result.conversation_length == 11
        assert result.question_count == 3


class TestComplexityScorer:
    def test_injected_scorer(self):
        analyzer = KeywordTurnAnalyzer(complexity_scorer=lambda text: 0.9)
        assert analyzer.analyze("anything at all").expertise.complexity == 0.9

    def test_injected_scorer_is_clamped(self):
        analyzer = KeywordTurnAnalyzer(complexity_scorer=lambda text: 5.0)
        assert analyzer.analyze("anything at all").expertise.complexity == 1.0

    def test_empty_text_scores_zero(self):
        assert score_language_complexity("") == 0.0

    def test_too_short_scores_zero(self):
        assert score_language_complexity("hi there") == 0.0

    def test_range(self):
        for text in (SIMPLE_TEXT, ACADEMIC_TEXT, "I'm new to this, what is field building?"):
            assert 0.0 <= score_language_complexity(text) <= 1.0

    def test_academic_text_scores_higher(self):
        simple = score_language_complexity(SIMPLE_TEXT)
        academic = score_language_complexity(ACADEMIC_TEXT)
        assert academic > simple
        assert academic > 0.7
        assert simple < 0.3

    def test_short_question_is_not_complex(self):
        assert score_language_complexity("I'm new to this, what is field building?") < 0.7

    def test_metrics_empty(self):
        metrics = compute_text_metrics("")
        assert metrics["total_words"] == 0
        assert metrics["long_word_ratio"] == 0.0


class TestTopicExtraction:
    def test_sequence_order(self):
        topics = extract_topics("Feedback on our joint construction and field building")
        assert topics == ["field_building", "joint_construction", "assessment"]

    def test_none(self):
        assert extract_topics(None) == []
