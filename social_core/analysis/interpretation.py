"""Social interpretation: one NPC's reading of the global hypotheses.

For each observing NPC:

  1. re-weight every axis through the NPC's personality
     (loyal -> bonding, paranoid -> distancing, aggressive -> dominance, ...)
  2. pick one label per axis. Calm NPCs (emotionality < 30) and confident
     axes (> 0.7) take the argmax; everyone else draws from the top three
     with the injected Random, which is where misreadings come from
  3. score divergence from the global reading, certainty, hostility, warmth

The engine also keeps rolling state that persists across messages: a global
tone profile, one tone profile per NPC and the anti-exploit scores.
"""

from __future__ import annotations

import logging
import random

from social_core.analysis.lexicon import STRATEGIC_ACTS
from social_core.models import (
    AntiExploitProfile,
    AxisDistribution,
    AxisOption,
    IntentHypotheses,
    InterpretationState,
    NPCToneProfile,
    PerceivedIntent,
    Personality,
    Relationship,
    SpeechAct,
    SurfaceFeatures,
)

logger = logging.getLogger(__name__)

TONE_BLEND = 0.9
CONSISTENCY_BLEND = 0.85

# Fixed affect table: label -> (hostility, warmth) contribution
AFFECT: dict[str, tuple[float, float]] = {
    "bonding": (0, 30),
    "distancing": (15, 0),
    "dominance": (25, 0),
    "deflection": (5, 0),
    "sincere": (0, 25),
    "performative": (10, 5),
    "passive_aggressive": (20, 0),
    "guarded": (5, 0),
    "alliance_signaling": (0, 15),
}


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def _personality_factor(axis: str, label: str, p: Personality) -> float:
    if axis == "social_strategy":
        if label == "bonding":
            return 1 + p.loyalty / 300
        if label == "distancing":
            return 1 + p.paranoia / 300
        if label == "dominance":
            return 1 + p.aggressiveness / 300
    elif axis == "emotional_posture":
        if label == "performative" and p.paranoia > 60:
            return 1.2
        if label == "sincere" and p.loyalty > 60:
            return 1.15
    elif axis == "game_motive":
        if label == "reputation_management" and p.manipulation > 60:
            return 1.2
        if label == "information_fishing" and p.intelligence > 60:
            return 1.2
    elif axis == "risk_tolerance":
        if label == "bold":
            return 1 + p.risk_tolerance / 300
        if label == "risk_averse" and p.risk_tolerance < 40:
            return 1.1
    return 1.0


def weight_by_personality(dist: AxisDistribution, personality: Personality) -> AxisDistribution:
    """Scale each label by the personality lens and renormalise.

    The axis keeps its global confidence; the lens changes what the NPC
    leans toward, not how clear the message was.
    """
    scaled = [
        (o.label, o.weight * _personality_factor(dist.axis, o.label, personality))
        for o in dist.options
    ]
    total = sum(w for _, w in scaled) or 1.0
    return AxisDistribution(
        axis=dist.axis,
        options=[AxisOption(label=label, weight=w / total) for label, w in scaled],
        confidence=dist.confidence,
    )


def sample_label(dist: AxisDistribution, personality: Personality, rng: random.Random) -> str:
    ranked = dist.ranked()
    top = ranked[0]
    if personality.emotionality < 30 or dist.confidence > 0.7:
        return top.label

    candidates = ranked[:3]
    total = sum(c.weight for c in candidates) or 1.0
    r = rng.random() * total
    acc = 0.0
    for c in candidates:
        acc += c.weight
        if r <= acc:
            return c.label
    return top.label


def divergence(hypotheses: IntentHypotheses, chosen: dict[str, str]) -> int:
    """Mean of (1 - global weight of the chosen label) over the axes, as 0..100."""
    distances = [max(0.0, 1 - d.weight_of(chosen[d.axis])) for d in hypotheses.axes()]
    return int(sum(distances) / len(distances) * 100 + 0.5)


def certainty(hypotheses: IntentHypotheses, personality: Personality, drama_tension: float) -> float:
    base = sum(d.confidence for d in hypotheses.axes()) / 4
    return _clamp(base + personality.paranoia / 300 + drama_tension / 400, 0.0, 1.0)


def affect(
    chosen: dict[str, str], relationship: Relationship | None, public: bool
) -> tuple[float, float]:
    hostility, warmth = 20.0, 20.0
    for axis in ("social_strategy", "emotional_posture", "game_motive"):
        h, w = AFFECT.get(chosen[axis], (0, 0))
        hostility += h
        warmth += w
    if chosen["game_motive"] == "reputation_management" and public:
        hostility += 15

    if relationship is not None:
        if relationship.trust > 65 and relationship.suspicion < 40:
            warmth += 15
            hostility -= 10
        if relationship.suspicion > 65:
            hostility += 20
            warmth -= 10

    return _clamp(hostility), _clamp(warmth)


def _assertiveness_sample(surface: SurfaceFeatures) -> float:
    return 70.0 if surface.hedging_count == 0 and surface.direct_address_count > 0 else 40.0


def _volatility_sample(surface: SurfaceFeatures) -> float:
    return (
        surface.emotional_word_intensity
        + surface.exclamation_count * 10
        + surface.all_caps_word_count * 15
    )


class SocialInterpretationEngine:
    def __init__(self, rng: random.Random, state: InterpretationState | None = None) -> None:
        self._rng = rng
        self.state = state or InterpretationState()

    # ── reading ─────────────────────────────────────────────

    def interpret(
        self,
        npc_id: int,
        hypotheses: IntentHypotheses,
        surface: SurfaceFeatures,
        personality: Personality,
        *,
        relationship: Relationship | None = None,
        public: bool = False,
        drama_tension: float = 30.0,
        speech_act: SpeechAct | None = None,
        repeated: bool = False,
    ) -> PerceivedIntent:
        chosen: dict[str, str] = {}
        for dist in hypotheses.axes():
            lensed = weight_by_personality(dist, personality)
            chosen[dist.axis] = sample_label(lensed, personality, self._rng)

        hostility, warmth = affect(chosen, relationship, public)
        perceived = PerceivedIntent(
            npc_id=npc_id,
            social_strategy=chosen["social_strategy"],
            emotional_posture=chosen["emotional_posture"],
            game_motive=chosen["game_motive"],
            risk_tolerance=chosen["risk_tolerance"],
            divergence=divergence(hypotheses, chosen),
            hostility=hostility,
            warmth=warmth,
            certainty=certainty(hypotheses, personality, drama_tension),
        )

        self._update_global_tone(hypotheses, surface, public)
        self._update_npc_tone(npc_id, hypotheses, surface, relationship, public)
        self._update_anti_exploit(surface, speech_act, repeated)

        logger.debug(
            "npc %d reads %s/%s/%s/%s divergence=%d",
            npc_id,
            perceived.social_strategy,
            perceived.emotional_posture,
            perceived.game_motive,
            perceived.risk_tolerance,
            perceived.divergence,
        )
        return perceived

    def tone_for(self, npc_id: int) -> NPCToneProfile:
        for profile in self.state.npc_tone:
            if profile.npc_id == npc_id:
                return profile
        profile = NPCToneProfile(npc_id=npc_id)
        self.state.npc_tone.append(profile)
        return profile

    @property
    def anti_exploit(self) -> AntiExploitProfile:
        return self.state.anti_exploit

    def observe(
        self, surface: SurfaceFeatures, speech_act: SpeechAct | None = None, repeated: bool = False
    ) -> AntiExploitProfile:
        """Update only the anti-exploit profile, for messages no NPC gets to read."""
        self._update_anti_exploit(surface, speech_act, repeated)
        return self.state.anti_exploit

    # ── rolling profiles ────────────────────────────────────

    def _update_global_tone(
        self, hypotheses: IntentHypotheses, surface: SurfaceFeatures, public: bool
    ) -> None:
        tone = self.state.global_tone
        n = tone.message_count
        count = n + 1

        bold = hypotheses.risk_tolerance.weight_of("bold")
        performative = hypotheses.emotional_posture.weight_of("performative")

        tone.baseline_assertiveness = (
            tone.baseline_assertiveness * n + _assertiveness_sample(surface)
        ) / count
        tone.emotional_volatility = (tone.emotional_volatility * n + _volatility_sample(surface)) / count
        tone.average_risk_tolerance = (tone.average_risk_tolerance * n + bold * 100) / count
        tone.conflict_avoidance = (
            tone.conflict_avoidance * n + (65 if surface.hedging_count > 0 else 35)
        ) / count

        if public:
            shift = performative * 20
        else:
            shift = -performative * 10
        tone.performative_vs_private = _clamp(tone.performative_vs_private * TONE_BLEND + shift)

        tone.message_count = count

    def _update_npc_tone(
        self,
        npc_id: int,
        hypotheses: IntentHypotheses,
        surface: SurfaceFeatures,
        relationship: Relationship | None,
        public: bool,
    ) -> None:
        tone = self.tone_for(npc_id)
        keep = 1 - TONE_BLEND

        tone.perceived_assertiveness = (
            tone.perceived_assertiveness * TONE_BLEND + _assertiveness_sample(surface) * keep
        )
        tone.perceived_volatility = (
            tone.perceived_volatility * TONE_BLEND + _volatility_sample(surface) * keep
        )

        performative = hypotheses.emotional_posture.weight_of("performative")
        bump = performative * (25 if public else 10)
        tone.perceived_fakeness = _clamp(tone.perceived_fakeness * TONE_BLEND + bump * keep)

        trust = relationship.trust if relationship is not None else 50.0
        sample = 100 - min(60.0, abs(tone.perceived_volatility - 50)) + (trust - 50) * 0.2
        tone.perceived_consistency = (
            tone.perceived_consistency * CONSISTENCY_BLEND + sample * (1 - CONSISTENCY_BLEND)
        )

    def _update_anti_exploit(
        self, surface: SurfaceFeatures, speech_act: SpeechAct | None, repeated: bool
    ) -> None:
        ax = self.state.anti_exploit

        pr_like = (
            surface.word_count > 0
            and surface.politeness_count > 0
            and surface.hedging_count > 0
            and surface.fragment_ratio < 0.3
            and surface.all_caps_word_count == 0
        )
        ax.pr_like_tone_score = (
            _clamp(ax.pr_like_tone_score + 1.5) if pr_like else _clamp(ax.pr_like_tone_score - 0.5)
        )

        ax.meta_gaming_score = (
            _clamp(ax.meta_gaming_score + 10) if surface.meta_text else _clamp(ax.meta_gaming_score - 1)
        )

        strategic = 0
        if speech_act is not None:
            strategic = sum(1 for act in speech_act.detected if act in STRATEGIC_ACTS)
        if surface.word_count > 0 and strategic > 2:
            ax.keyword_spam_score = _clamp(ax.keyword_spam_score + 1)
        else:
            ax.keyword_spam_score = _clamp(ax.keyword_spam_score - 0.5)

        ax.repetitive_pattern_score = (
            _clamp(ax.repetitive_pattern_score + 5) if repeated else _clamp(ax.repetitive_pattern_score - 1)
        )
