"""Conversation intent: topic and targets over a classified utterance.

Topic rules run in order and the first match wins. Generic alliance words
("alliance", "numbers") only count when a real cast member is named; the
fixed phrases ("team up", "final two", ...) count on their own. A message
that speculates about *some* alliance without naming anyone stays "other".

Names are only ever taken from the speech act's mentions intersected with
the roster, so an intent never references someone who isn't in the game.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from social_core.models import ConversationIntent, ExplicitNumbers, SpeechAct, Topic

_VOTE = re.compile(
    r"\b(vote|votes|evict|eviction|on the block|put (them|him|her) up|backdoor|target)\b"
)
_ALLIANCE_PHRASES = re.compile(
    r"\b(work together|team up|ride or die|final two|final 2|us three|we three)\b"
)
_ALLIANCE_WORDS = re.compile(r"\b(alliance|numbers)\b")
_RELATIONSHIP = re.compile(
    r"\b(trust|feel about|feel with|feel around|vibe|relationship|where we stand|how we are)\b"
)
_EDIT = re.compile(
    r"\b(edit|viewers|audience|screen time|airtime|segment|episode|feeds?)\b"
)
_LIFE = re.compile(
    r"\b(where are you from|what do you do|job|work|outside the game|real life|back home)\b"
)

_VOTE_VERBS = re.compile(r"\b(vote|votes|evict|send home|get rid of|target)\b")
_AGGRESSIVE_ACTS = frozenset({"threatening", "sabotaging", "gaslighting"})

_WE_HAVE = re.compile(r"\bwe (have|got)\s+(\d+)\b")
_THEY_HAVE = re.compile(r"\bthey (have|got)\s+(\d+)\b")
_NEED = re.compile(r"\bneed\s+(\d+)\b")
_US_WE = re.compile(r"\bus\b|\bwe\b")


def detect_topic(message: str, has_mentions: bool = False) -> Topic:
    lower = message.lower()
    if _VOTE.search(lower):
        return "vote"
    if _ALLIANCE_PHRASES.search(lower) or (has_mentions and _ALLIANCE_WORDS.search(lower)):
        return "alliance"
    if _RELATIONSHIP.search(lower):
        return "relationship"
    if _EDIT.search(lower):
        return "edit"
    if _LIFE.search(lower):
        return "life"
    return "other"


def valid_mentions(roster_names: Iterable[str], mentions: Iterable[str]) -> list[str]:
    known = {n.lower(): n for n in roster_names if n}
    out: list[str] = []
    for m in mentions:
        name = known.get((m or "").lower())
        if name and name not in out:
            out.append(name)
    return out


def extract_vote_target(
    message: str, topic: Topic, speech_act: SpeechAct, mentions: list[str]
) -> str | None:
    if topic != "vote" or not mentions:
        return None
    if len(mentions) == 1 and _VOTE_VERBS.search(message.lower()):
        return mentions[0]
    if speech_act.primary in _AGGRESSIVE_ACTS:
        return mentions[0]
    return None


def extract_numbers(message: str) -> ExplicitNumbers | None:
    lower = message.lower()
    ours = _WE_HAVE.search(lower)
    theirs = _THEY_HAVE.search(lower)
    need = _NEED.search(lower)
    numbers = ExplicitNumbers(
        ours=int(ours.group(2)) if ours else None,
        theirs=int(theirs.group(2)) if theirs else None,
        needed=int(need.group(1)) if need else None,
    )
    if numbers.ours or numbers.theirs or numbers.needed:
        return numbers
    return None


def extract_exclusions(
    message: str, roster_names: Iterable[str], mentions: list[str]
) -> list[str]:
    lower = message.lower()
    excluded: list[str] = []
    for name in roster_names:
        if not name:
            continue
        esc = re.escape(name.lower())
        if re.search(rf"\b(without|not|except)\s+{esc}\b", lower):
            excluded.append(name)

    # Heuristic: "us"/"we" plus several names reads as "the first one and me,
    # not the rest". Misfires with three or more names in one sentence.
    if _US_WE.search(lower) and len(mentions) > 1:
        excluded.extend(mentions[1:])

    return list(dict.fromkeys(excluded))


def parse_intent(
    message: str, speech_act: SpeechAct, roster_names: Iterable[str]
) -> ConversationIntent:
    names = [n for n in roster_names if n]
    mentions = valid_mentions(names, speech_act.named_mentions)
    topic = detect_topic(message, has_mentions=bool(mentions))

    wants_to_exclude: list[str] = []
    if topic in ("alliance", "vote"):
        wants_to_exclude = extract_exclusions(message, names, mentions)

    return ConversationIntent(
        primary_act=speech_act.primary,
        secondary_act=speech_act.secondary,
        topic=topic,
        vote_target=extract_vote_target(message, topic, speech_act, mentions),
        mentioned=mentions,
        wants_alliance_with=mentions if topic == "alliance" else [],
        wants_to_exclude=wants_to_exclude,
        wants_info_on=mentions if speech_act.information_seeking else [],
        explicit_numbers=extract_numbers(message),
    )
