"""Tests for social_core.analysis.surface."""

from social_core.analysis import lexicon
from social_core.analysis.surface import analyze_surface, is_meta_text
from social_core.models import SurfaceFeatures


class TestEmptyInput:
    def test_empty_string_is_all_zero(self) -> None:
        assert analyze_surface("") == SurfaceFeatures()

    def test_whitespace_only_is_all_zero(self) -> None:
        features = analyze_surface("   \n  ")
        assert features.word_count == 0
        assert features.meta_text is False


class TestCounts:
    def test_word_and_sentence_counts(self) -> None:
        features = analyze_surface("I love this place. It feels like home.")
        assert features.word_count == 8
        assert features.sentence_count == 2
        assert features.average_sentence_length == 4

    def test_hedge_at_start_and_question_at_end(self) -> None:
        features = analyze_surface("Maybe we should talk later?")
        assert features.starts_with_hedge is True
        assert features.hedging_count == 1
        assert features.ends_with_question is True
        assert features.question_count == 1

    def test_blunt_opening_caps_and_direct_address(self) -> None:
        features = analyze_surface("Listen. You NEED to stop.")
        assert features.blunt_markers_count == 1
        assert features.all_caps_word_count == 1
        assert features.direct_address_count == 1

    def test_politeness_and_softener(self) -> None:
        features = analyze_surface("Thanks for the chat, just saying")
        assert features.politeness_count == 1
        assert features.ends_with_softener is True

    def test_emotional_intensity_from_lexicon(self) -> None:
        calm = analyze_surface("We had lunch by the pool.")
        upset = analyze_surface("I am furious and scared.")
        assert calm.emotional_word_intensity == 0
        assert upset.emotional_word_intensity > 0


class TestMetaText:
    def test_default_markers(self) -> None:
        assert analyze_surface("Are you just an NPC?").meta_text is True
        assert analyze_surface("This whole program is scripted").meta_text is True

    def test_in_character_words_are_not_meta(self) -> None:
        assert analyze_surface("This game is so fake sometimes").meta_text is False

    def test_no_pattern_disables_detection(self) -> None:
        assert analyze_surface("you are the AI", None).meta_text is False

    def test_custom_pattern(self) -> None:
        pattern = lexicon.compile_markers(["fourth wall"])
        assert is_meta_text("breaking the fourth wall here", pattern) is True
        assert is_meta_text("the AI wrote this", pattern) is False
