"""Surface feature extractor: the shape of a message, not its meaning."""

from __future__ import annotations

import re

from social_core.analysis import lexicon
from social_core.config import DEFAULT_META_MARKERS
from social_core.models import SurfaceFeatures

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_FRAGMENT_SPLIT = re.compile(r"[\n.!?]")
_PUNCTUATION = re.compile(r"[!?.,;]")
_ELLIPSIS = re.compile(r"\.{3,}")
_YOU = re.compile(r"\byou\b", re.IGNORECASE)
_INDIRECT = re.compile(r"\bthey\b|\bpeople\b|\bsome folks\b", re.IGNORECASE)
_ALL_CAPS = re.compile(r"\b[A-Z]{2,}\b")
_BLUNT = tuple(re.compile(rf"^\s*{b}\b", re.IGNORECASE) for b in lexicon.BLUNT_STARTS)
_HEDGE_START = re.compile(
    r"^(?:" + "|".join(re.escape(h) for h in lexicon.HEDGES) + r")\b", re.IGNORECASE
)

_DEFAULT_META = lexicon.compile_markers(DEFAULT_META_MARKERS)


def is_meta_text(text: str, meta_pattern: re.Pattern[str] | None = _DEFAULT_META) -> bool:
    return bool(meta_pattern and meta_pattern.search(text))


def analyze_surface(
    text: str, meta_pattern: re.Pattern[str] | None = _DEFAULT_META
) -> SurfaceFeatures:
    trimmed = (text or "").strip()
    if not trimmed:
        return SurfaceFeatures()

    words = lexicon.WORD_RE.findall(trimmed)
    word_count = len(words)
    sentences = [s for s in (p.strip() for p in _SENTENCE_SPLIT.split(trimmed)) if s]
    sentence_count = len(sentences) or (1 if word_count else 0)

    fragments = [s for s in (p.strip() for p in _FRAGMENT_SPLIT.split(trimmed)) if s]
    fragment_count = sum(1 for s in fragments if 0 < len(s.split()) < 4)

    char_count = len(trimmed)
    lower = trimmed.lower()
    subtext = lexicon.emotional_subtext(trimmed)

    return SurfaceFeatures(
        char_count=char_count,
        word_count=word_count,
        sentence_count=sentence_count,
        average_sentence_length=word_count / sentence_count if sentence_count else 0.0,
        fragment_ratio=min(1.0, fragment_count / sentence_count) if sentence_count else 0.0,
        exclamation_count=trimmed.count("!"),
        question_count=trimmed.count("?"),
        ellipsis_count=len(_ELLIPSIS.findall(trimmed)),
        punctuation_density=len(_PUNCTUATION.findall(trimmed)) / char_count * 100,
        hedging_count=lexicon.count_phrases(lower, lexicon.HEDGES),
        absolutes_count=lexicon.count_phrases(lower, lexicon.ABSOLUTES),
        politeness_count=lexicon.count_phrases(lower, lexicon.POLITENESS),
        blunt_markers_count=sum(1 for rx in _BLUNT if rx.search(trimmed)),
        direct_address_count=len(_YOU.findall(trimmed)),
        indirect_ref_count=len(_INDIRECT.findall(trimmed)),
        all_caps_word_count=len(_ALL_CAPS.findall(trimmed)),
        emotional_word_intensity=(
            subtext.anger + subtext.fear + subtext.attraction + subtext.desperation
        ) / 4,
        starts_with_hedge=bool(_HEDGE_START.match(lower)),
        ends_with_question=trimmed.endswith("?"),
        ends_with_softener=any(lower.endswith(s) for s in lexicon.SOFTENERS),
        meta_text=is_meta_text(trimmed, meta_pattern),
    )
