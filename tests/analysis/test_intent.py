"""Tests for social_core.analysis.intent."""

from social_core.analysis.intent import (
    detect_topic,
    extract_numbers,
    parse_intent,
    valid_mentions,
)
from social_core.analysis.speech_acts import SpeechActClassifier

ROSTER = ["Mara", "Dex", "Theo"]


def _intent(text: str, names: list[str] = ROSTER):
    act = SpeechActClassifier().classify(text, names)
    return parse_intent(text, act, names)


class TestTopic:
    def test_unnamed_secret_alliance_is_other(self) -> None:
        intent = _intent("I think there's a secret alliance that we don't know about")
        assert intent.topic == "other"
        assert intent.vote_target is None

    def test_alliance_word_counts_with_a_name(self) -> None:
        assert _intent("Is Dex in an alliance?").topic == "alliance"

    def test_fixed_alliance_phrase(self) -> None:
        assert detect_topic("we should team up") == "alliance"

    def test_vote_wins_over_alliance(self) -> None:
        assert detect_topic("let's team up and vote out the loudest one") == "vote"

    def test_default_is_other(self) -> None:
        assert detect_topic("nice weather") == "other"

    def test_life(self) -> None:
        assert detect_topic("Where are you from?") == "life"


class TestTargets:
    def test_single_mention_with_vote_verb(self) -> None:
        intent = _intent("We should vote out Dex tonight")
        assert intent.topic == "vote"
        assert intent.vote_target == "Dex"

    def test_no_vote_target_without_mentions(self) -> None:
        assert _intent("Who are you voting for?").vote_target is None

    def test_unknown_names_are_dropped(self) -> None:
        assert valid_mentions(["Mara"], ["Zed", "mara"]) == ["Mara"]

    def test_explicit_exclusion(self) -> None:
        intent = _intent("Let's team up, just us, without Theo")
        assert intent.topic == "alliance"
        assert intent.wants_to_exclude == ["Theo"]

    def test_us_we_heuristic_excludes_all_but_first(self) -> None:
        intent = _intent("Mara and Dex, we should form an alliance")
        assert intent.mentioned == ["Mara", "Dex"]
        assert intent.wants_to_exclude == ["Dex"]

    def test_info_targets_when_asking(self) -> None:
        intent = _intent("What do you think about Theo?")
        assert intent.wants_info_on == ["Theo"]


class TestNumbers:
    def test_explicit_numbers(self) -> None:
        numbers = extract_numbers("we have 3 and they have 4, we need 5")
        assert numbers is not None
        assert (numbers.ours, numbers.theirs, numbers.needed) == (3, 4, 5)

    def test_no_numbers(self) -> None:
        assert extract_numbers("we have plenty") is None
