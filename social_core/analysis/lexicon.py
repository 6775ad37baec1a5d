"""Pattern tables and the emotional lexicon.

Everything the analysis stages match against lives here as module-level
constants, so the classifier, the surface extractor and the intent engine
all agree on the same vocabulary.

Speech-act table: ordered. Ranking ties are broken by position in
SPEECH_ACT_PATTERNS, never by chance.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from social_core.models import EmotionalSubtext, SpeechActType

_I = re.IGNORECASE

WORD_RE = re.compile(r"\b[\w']+\b")


def _rx(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, _I) for p in patterns)


# ---------------------------------------------------------------------------
# Speech acts
# ---------------------------------------------------------------------------

SPEECH_ACT_PATTERNS: tuple[tuple[SpeechActType, tuple[re.Pattern[str], ...]], ...] = (
    ("alliance_proposal", _rx(
        r"\b(work together|team up|alliance|partner|trust each other)\b",
        r"\b(we should|let's stick|join forces|have my back)\b",
        r"\b(mutual benefit|protect each other|stronger together)\b",
    )),
    ("flirting", _rx(
        r"\b(cute|attractive|like you|special connection|chemistry)\b",
        r"\b(spend time|alone together|private|intimate)\b",
        r"\b(beautiful|handsome|charming|amazing|incredible)\b",
    )),
    ("threatening", _rx(
        r"\b(or else|better watch|regret|consequences|warning)\b",
        r"\b(make you pay|get you|destroy|ruin|eliminate)\b",
        r"\b(don't mess|cross me|enemy|target)\b",
    )),
    ("testing_loyalty", _rx(
        r"\b(can i trust|are you with|where do you stand|loyalty)\b",
        r"\b(prove|show me|demonstrate|test)\b",
        r"\b(really on my side|actually support|genuine)\b",
    )),
    ("gaslighting", _rx(
        r"\b(you're imagining|didn't happen|misremembering|paranoid)\b",
        r"\b(overreacting|too sensitive|crazy|dramatic)\b",
        r"\b(that's not what|never said|you're confused)\b",
    )),
    ("information_fishing", _rx(
        r"\b(what do you think about|heard anything|know anything|what's the word)\b",
        r"\b(tell me about|fill me in|what's happening|insider info)\b",
        r"\b(between you and me|confidentially|secretly)\b",
    )),
    ("sabotaging", _rx(
        r"\b(spread the word|everyone should know|expose|reveal)\b",
        r"\b(can't be trusted|fake|liar|manipulative)\b",
        r"\b(turn against|poison|undermine)\b",
    )),
    ("withholding_info", _rx(
        r"\b(can't say|won't tell|secret|private|classified)\b",
        r"\b(not ready|maybe later|ask me tomorrow)\b",
        r"\b(need to know basis|selective|protected)\b",
    )),
    ("expressing_suspicion", _rx(
        r"\b(don't trust|suspicious|fishy|sketchy|shady)\b",
        r"\b(something's off|not right|weird|strange)\b",
        r"\b(hiding something|lying|deceptive)\b",
    )),
    ("seeking_reassurance", _rx(
        r"\b(am i safe|do you still|everything okay|worried)\b",
        r"\b(need to know|promise me|swear|guarantee)\b",
        r"\b(still friends|still allies|still together)\b",
    )),
    ("deflecting", _rx(
        r"\b(change the subject|talk about something else|anyway)\b",
        r"\b(not important|doesn't matter|forget about it)\b",
        r"\b(moving on|whatever|so what)\b",
    )),
    ("expressing_trust", _rx(
        r"\b(trust you|i trust|honest|be straight|be real)\b",
        r"\b(open with you|transparent|no games)\b",
        r"\b(promise|i swear|you have my word)\b",
    )),
    ("complimenting", _rx(
        r"\b(respect|impressed|smart|strong|social|well played)\b",
        r"\b(good read|nice move|great game|admire)\b",
    )),
    ("insulting", _rx(
        r"\b(stupid|idiot|coward|snake|fake|two-faced)\b",
        r"\b(useless|pathetic|weak|annoying)\b",
    )),
    ("confessing", _rx(
        r"\b(i lied|i messed up|i was wrong|my fault|i'm sorry|apologize)\b",
        r"\b(confess|truth is|to be honest)\b",
    )),
    ("lying", _rx(
        r"\b(swore i didn't|never happened|that's not true)\b",
        r"\b(i would never|had nothing to do with|wasn't me)\b",
    )),
    ("provoking", _rx(
        r"\b(try me|say it to my face|do something|make me)\b",
        r"\b(bet you won't|come at me|bring it)\b",
    )),
    ("gossiping", _rx(
        r"\b(did you hear|rumor|they said|apparently)\b",
        r"\b(secret|talking about|word is)\b",
    )),
    ("banter", _rx(
        r"\b(lol|haha|lmao|rofl)\b",
        r"\b(joking|kidding|just kidding|banter|funny)\b",
    )),
    ("distracting", _rx(
        r"\b(by the way|speaking of|random but|unrelated)\b",
        r"\b(did you see the|have you tried|look at that)\b",
    )),
    ("downplaying_betrayal", _rx(
        r"\b(no big deal|not a big deal|it was nothing|blown out of proportion)\b",
        r"\b(just game|just strategy|nothing personal|don't take it personally)\b",
    )),
)

# Acts that count toward the keyword-spam heuristic.
STRATEGIC_ACTS: frozenset[str] = frozenset({
    "alliance_proposal",
    "information_fishing",
    "testing_loyalty",
    "sabotaging",
    "withholding_info",
    "gossiping",
    "seeking_reassurance",
})

MANIPULATION_PATTERNS = _rx(
    r"\b(trust me|believe me|i promise|i swear)\b",
    r"\b(just between us|our secret|don't tell)\b",
    r"\b(you should|you need to|you have to)\b",
    r"\b(everyone thinks|people are saying)\b",
)
MANIPULATION_PER_MATCH = 25

THREAT_PATTERNS = _rx(
    r"\b(or else|better watch|regret|consequences)\b",
    r"\b(make you pay|get you|eliminate|target)\b",
    r"\b(cross me|enemy|against me)\b",
)
THREAT_PER_MATCH = 30

TRUST_PATTERNS = _rx(
    r"\b(trust|honest|sincere|genuine|real)\b",
    r"\b(open|transparent|straight|direct)\b",
    r"\b(promise|swear|guarantee|commit)\b",
)

# Sentences that contain "what" without asking anything.
NON_QUESTION_WHAT = _rx(
    r"not what",
    r"that's what",
    r"what i (said|meant|did)",
    r"you know what",
)
INTERROGATIVE_START = re.compile(r"^\s*(what|who|when|where|why|how)\b", _I)
AUXILIARY_START = re.compile(
    r"^\s*(can|could|would|will|do|does|did|are|is|was|were|should|shall|have|has|had|may|might)\b",
    _I,
)
EXPLICIT_ASK = re.compile(
    r"\b(tell me|let me know|fill me in|what's the plan|what's happening)\b", _I
)

# Linguistic profile signals
FORMAL_WORDS: tuple[str, ...] = ("please", "thank you", "would", "could", "might", "perhaps")
PROFILE_MANIPULATION = re.compile(
    r"\b(convince|persuade|make you|should really|trust me|between us)\b", _I
)
EMOTIONAL_PUNCTUATION = re.compile(r"[!?]{2,}|[.]{3,}")
CAPS_RUN = re.compile(r"[A-Z]{2,}")


# ---------------------------------------------------------------------------
# Surface markers
# ---------------------------------------------------------------------------

HEDGES: tuple[str, ...] = (
    "maybe", "i guess", "kind of", "sort of", "i think", "low-key", "lowkey", "honestly", "tbh",
)
ABSOLUTES: tuple[str, ...] = (
    "always", "never", "everyone", "no one", "literally", "for sure", "definitely",
)
POLITENESS: tuple[str, ...] = (
    "please", "thank you", "thanks", "sorry", "excuse me", "would you mind",
)
BLUNT_STARTS: tuple[str, ...] = ("no", "stop", "listen", "look", "nah", "nope")
SOFTENERS: tuple[str, ...] = (
    "if that's okay", "if thats okay", "just saying", "just sayin", "no offense",
)


# ---------------------------------------------------------------------------
# Emotional lexicon
# ---------------------------------------------------------------------------

def _vector(anger, fear, attraction, manipulation, sincerity, desperation, confidence):
    return EmotionalSubtext(
        anger=anger, fear=fear, attraction=attraction, manipulation=manipulation,
        sincerity=sincerity, desperation=desperation, confidence=confidence,
    )


_LEXICON_GROUPS: tuple[tuple[tuple[str, ...], EmotionalSubtext], ...] = (
    (("angry", "furious", "mad", "pissed", "rage", "hate"),
     _vector(80, 0, 0, 20, 70, 30, 60)),
    (("scared", "afraid", "worried", "nervous", "terrified", "anxious"),
     _vector(0, 80, 0, 10, 80, 60, 20)),
    (("love", "adore", "attracted", "beautiful", "gorgeous", "sexy"),
     _vector(0, 0, 90, 30, 60, 20, 70)),
    (("sorry", "apologize", "apologies", "forgive", "thank", "thanks",
      "appreciate", "grateful", "honest", "truth"),
     _vector(0, 0, 0, 0, 85, 10, 55)),
    (("respect", "admire", "impressed", "well played"),
     _vector(0, 0, 20, 10, 75, 5, 60)),
    (("stupid", "idiot", "coward", "snake", "fake", "useless", "pathetic", "weak"),
     _vector(85, 0, 0, 20, 20, 15, 70)),
    (("lol", "haha", "lmao", "rofl", "kidding", "joking", "funny"),
     _vector(0, 0, 10, 0, 65, 0, 60)),
    (("rumor", "apparently", "secret"),
     _vector(0, 5, 0, 40, 40, 10, 50)),
)

EMOTIONAL_LEXICON: dict[str, EmotionalSubtext] = {
    word: vec for words, vec in _LEXICON_GROUPS for word in words
}

_LEXICON_PHRASES: dict[str, re.Pattern[str]] = {
    phrase: re.compile(rf"\b{re.escape(phrase)}\b", _I)
    for phrase in EMOTIONAL_LEXICON
    if " " in phrase
}

SUBTEXT_FIELDS: tuple[str, ...] = tuple(EmotionalSubtext.model_fields)


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def matched_vectors(text: str) -> list[EmotionalSubtext]:
    """Lexicon vectors for every matching word or phrase occurrence."""
    found = [
        EMOTIONAL_LEXICON[w]
        for w in (t.lower() for t in WORD_RE.findall(text))
        if w in EMOTIONAL_LEXICON
    ]
    for phrase, pattern in _LEXICON_PHRASES.items():
        found.extend(EMOTIONAL_LEXICON[phrase] for _ in pattern.findall(text))
    return found


def emotional_subtext(text: str) -> EmotionalSubtext:
    """Average the lexicon vectors of matched words, then apply punctuation boosts.

    With no matches the neutral baseline (sincerity 50, confidence 50) is kept.
    """
    vectors = matched_vectors(text)
    if vectors:
        values = {
            f: sum(getattr(v, f) for v in vectors) / len(vectors) for f in SUBTEXT_FIELDS
        }
    else:
        values = EmotionalSubtext().model_dump()

    if text.count("!") > 1:
        values["confidence"] += 20
    if text.count("?") > 2:
        values["desperation"] += 15
    caps = sum(1 for ch in text if "A" <= ch <= "Z")
    if text and caps > len(text) * 0.3:
        values["anger"] += 25

    return EmotionalSubtext(**{f: _clamp(values[f]) for f in SUBTEXT_FIELDS})


def count_phrases(lower: str, phrases: Iterable[str]) -> int:
    """How many of `phrases` occur in the lowercased text (each counted once)."""
    return sum(1 for p in phrases if p in lower)


def compile_markers(markers: Iterable[str]) -> re.Pattern[str] | None:
    cleaned = [m.strip() for m in markers if m and m.strip()]
    if not cleaned:
        return None
    alternation = "|".join(re.escape(m) for m in sorted(cleaned, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})\b", _I)
