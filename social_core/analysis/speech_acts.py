"""Speech-act classifier.

classify() turns one utterance into a SpeechAct:

  - confidence per type = matched rules / rules for that type x 100
  - primary / secondary = the two highest-confidence types; ties go to the
    type listed first in lexicon.SPEECH_ACT_PATTERNS
  - nothing matched -> neutral_conversation with confidence 0
  - emotional subtext from the lexicon, manipulation and threat levels from
    their own pattern sets (capped contributions, clamped to 100)

Player messages also feed a rolling LinguisticProfile. It is an auxiliary
signal only; nothing in classification reads it back.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from social_core.analysis import lexicon
from social_core.analysis.surface import is_meta_text
from social_core.config import DEFAULT_META_MARKERS
from social_core.models import LinguisticProfile, SpeechAct, SpeechActType

logger = logging.getLogger(__name__)

PROFILE_WINDOW = 20
PROFILE_BLEND = 0.9  # weight kept from the previous value


def detect_acts(text: str) -> list[tuple[SpeechActType, float]]:
    """Every matching act with its confidence, best first, table order on ties."""
    scored: list[tuple[SpeechActType, float]] = []
    for act, patterns in lexicon.SPEECH_ACT_PATTERNS:
        hits = sum(1 for p in patterns if p.search(text))
        if hits:
            scored.append((act, hits / len(patterns) * 100))
    # sorted() is stable, so equal confidences keep table order
    return sorted(scored, key=lambda pair: -pair[1])


def manipulation_level(text: str) -> float:
    score = sum(
        len(p.findall(text)) * lexicon.MANIPULATION_PER_MATCH
        for p in lexicon.MANIPULATION_PATTERNS
    )
    return float(min(100, score))


def threat_level(text: str) -> float:
    score = sum(len(p.findall(text)) * lexicon.THREAT_PER_MATCH for p in lexicon.THREAT_PATTERNS)
    return float(min(100, score))


def is_information_seeking(text: str) -> bool:
    if any(p.search(text) for p in lexicon.NON_QUESTION_WHAT):
        return "?" in text
    if "?" in text:
        return True
    return bool(
        lexicon.INTERROGATIVE_START.search(text)
        or lexicon.AUXILIARY_START.search(text)
        or lexicon.EXPLICIT_ASK.search(text)
    )


def is_trust_building(text: str) -> bool:
    return any(p.search(text) for p in lexicon.TRUST_PATTERNS)


def find_mentions(text: str, names: Iterable[str]) -> list[str]:
    """Roster names that appear as whole words, in roster order, deduplicated."""
    mentions: list[str] = []
    for name in names:
        n = (name or "").strip()
        if not n or n in mentions:
            continue
        if re.search(rf"\b{re.escape(n)}\b", text, re.IGNORECASE):
            mentions.append(n)
    return mentions


class SpeechActClassifier:
    def __init__(self, meta_markers: Iterable[str] = DEFAULT_META_MARKERS) -> None:
        self._meta = lexicon.compile_markers(meta_markers)
        self.profile = LinguisticProfile()

    @property
    def meta_pattern(self) -> re.Pattern[str] | None:
        return self._meta

    def is_meta_text(self, text: str) -> bool:
        return is_meta_text(text, self._meta)

    def classify(
        self, text: str, names: Iterable[str] = (), from_player: bool = True
    ) -> SpeechAct:
        message = (text or "").strip()
        if not message:
            return SpeechAct()

        if from_player:
            self._update_profile(message)

        detected = detect_acts(message)
        primary, confidence = detected[0] if detected else ("neutral_conversation", 0.0)
        secondary = detected[1][0] if len(detected) > 1 else None

        act = SpeechAct(
            primary=primary,
            secondary=secondary,
            confidence=confidence,
            emotional_subtext=lexicon.emotional_subtext(message),
            manipulation_level=manipulation_level(message),
            threat_level=threat_level(message),
            information_seeking=is_information_seeking(message),
            trust_building=is_trust_building(message),
            named_mentions=find_mentions(message, names),
            detected=[a for a, _ in detected],
        )
        logger.debug(
            "classified primary=%s secondary=%s conf=%.0f", act.primary, act.secondary, act.confidence
        )
        return act

    # ------------------------------------------------------------------
    # Linguistic profile
    # ------------------------------------------------------------------

    def _update_profile(self, message: str) -> None:
        p = self.profile
        p.total_messages += 1
        p.recent_messages = (p.recent_messages + [message])[-PROFILE_WINDOW:]
        p.average_message_length = (
            p.average_message_length * (p.total_messages - 1) + len(message)
        ) / p.total_messages

        lower = message.lower()
        formal = lexicon.count_phrases(lower, lexicon.FORMAL_WORDS)
        p.formality = _blend(p.formality, formal / len(lexicon.FORMAL_WORDS) * 100)

        expressive = len(lexicon.EMOTIONAL_PUNCTUATION.findall(message)) + len(
            lexicon.CAPS_RUN.findall(message)
        )
        p.expressiveness = _blend(p.expressiveness, min(100, expressive * 20))

        p.questioning_frequency = _blend(
            p.questioning_frequency, min(100, message.count("?") * 50)
        )
        p.manipulation_tendency = _blend(
            p.manipulation_tendency,
            min(100, len(lexicon.PROFILE_MANIPULATION.findall(message)) * 25),
        )
        p.directness = _blend(
            p.directness,
            70.0 if lexicon.count_phrases(lower, lexicon.HEDGES) == 0 else 30.0,
        )


def _blend(old: float, sample: float) -> float:
    return old * PROFILE_BLEND + sample * (1 - PROFILE_BLEND)
