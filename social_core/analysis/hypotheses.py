"""Intent hypotheses: what the speaker most likely meant, before any NPC
looks at it.

Each of the four axes starts at weight 1 per label, collects additive boosts
from the speech act, the surface features and the conversation intent, and
is then normalised. Axis confidence is the spread between the heaviest and
lightest label, so a flat axis reads as uncertain.

No randomness, no state: the same inputs always give the same hypotheses.
"""

from __future__ import annotations

import math

from social_core.models import (
    AxisDistribution,
    AxisName,
    AxisOption,
    ConversationIntent,
    IntentHypotheses,
    ScoredAct,
    SpeechAct,
    SurfaceFeatures,
)

AXIS_LABELS: dict[AxisName, tuple[str, ...]] = {
    "social_strategy": ("bonding", "distancing", "dominance", "deflection"),
    "emotional_posture": ("guarded", "performative", "sincere", "passive_aggressive"),
    "game_motive": (
        "information_fishing",
        "alliance_signaling",
        "reputation_management",
        "venting",
    ),
    "risk_tolerance": ("bold", "cautious", "reckless", "risk_averse"),
}


def _distribution(axis: AxisName, weights: dict[str, float]) -> AxisDistribution:
    total = sum(max(w, 0.0) for w in weights.values()) or 1.0
    options = [AxisOption(label=label, weight=max(w, 0.0) / total) for label, w in weights.items()]
    spread = max(o.weight for o in options) - min(o.weight for o in options)
    return AxisDistribution(axis=axis, options=options, confidence=min(1.0, max(0.0, spread)))


def _prior(axis: AxisName) -> dict[str, float]:
    return {label: 1.0 for label in AXIS_LABELS[axis]}


def social_strategy_axis(
    act: SpeechAct, surface: SurfaceFeatures, intent: ConversationIntent
) -> AxisDistribution:
    w = _prior("social_strategy")
    sub = act.emotional_subtext

    if act.trust_building:
        w["bonding"] += 2
    if surface.politeness_count > 0:
        w["bonding"] += 1
    if intent.topic in ("relationship", "life"):
        w["bonding"] += 1

    if act.primary == "expressing_suspicion":
        w["distancing"] += 2
    if surface.absolutes_count > 0:
        w["distancing"] += 1
    if sub.anger > 60:
        w["distancing"] += 1.5

    if act.threat_level > 40 or act.primary == "threatening":
        w["dominance"] += 2.5
    if surface.blunt_markers_count > 0:
        w["dominance"] += 1
    if surface.average_sentence_length > 18 and surface.hedging_count == 0:
        w["dominance"] += 1

    if act.primary in ("deflecting", "withholding_info"):
        w["deflection"] += 2
    if surface.hedging_count > 1 and not surface.ends_with_question:
        w["deflection"] += 1
    if surface.fragment_ratio > 0.6:
        w["deflection"] += 0.5

    return _distribution("social_strategy", w)


def emotional_posture_axis(act: SpeechAct, surface: SurfaceFeatures) -> AxisDistribution:
    w = _prior("emotional_posture")
    sub = act.emotional_subtext

    if surface.hedging_count > 0:
        w["guarded"] += 1.5
    if act.primary in ("withholding_info", "deflecting"):
        w["guarded"] += 1.5
    if sub.fear > 50 and sub.confidence < 50:
        w["guarded"] += 1

    if surface.emotional_word_intensity > 55 and (
        surface.exclamation_count > 1 or surface.all_caps_word_count > 0
    ):
        w["performative"] += 1.5
    if surface.politeness_count > 0 and surface.emotional_word_intensity > 40:
        w["performative"] += 1

    if sub.sincerity > 60 and act.manipulation_level < 40:
        w["sincere"] += 2
    if surface.hedging_count > 0 and surface.exclamation_count <= 1:
        w["sincere"] += 0.5

    if surface.politeness_count > 0 and (sub.anger > 40 or surface.absolutes_count > 0):
        w["passive_aggressive"] += 2
    if act.primary == "insulting" and surface.politeness_count > 0:
        w["passive_aggressive"] += 1.5

    return _distribution("emotional_posture", w)


def game_motive_axis(act: SpeechAct, intent: ConversationIntent) -> AxisDistribution:
    w = _prior("game_motive")
    sub = act.emotional_subtext

    if act.information_seeking:
        w["information_fishing"] += 2.5
    if act.primary == "information_fishing":
        w["information_fishing"] += 2
    if intent.wants_info_on:
        w["information_fishing"] += 1

    if act.primary == "alliance_proposal":
        w["alliance_signaling"] += 3
    if intent.topic == "alliance":
        w["alliance_signaling"] += 1.5

    if intent.topic == "edit":
        w["reputation_management"] += 2.5
    if act.primary == "downplaying_betrayal":
        w["reputation_management"] += 2

    if sub.anger > 60 or sub.desperation > 60:
        w["venting"] += 2
    if not act.information_seeking and not act.trust_building and sub.anger > 40:
        w["venting"] += 1

    return _distribution("game_motive", w)


def risk_tolerance_axis(act: SpeechAct, surface: SurfaceFeatures) -> AxisDistribution:
    w = _prior("risk_tolerance")
    sub = act.emotional_subtext

    if act.threat_level > 40 or act.primary == "threatening":
        w["bold"] += 2.5
    if surface.hedging_count == 0 and surface.direct_address_count > 0:
        w["bold"] += 1.5

    if w["bold"] > 1 and sub.anger > 60:
        w["reckless"] += 1.5

    if surface.hedging_count > 0:
        w["cautious"] += 1.5
    if surface.ends_with_question and not act.threat_level:
        w["cautious"] += 0.5

    if surface.hedging_count > 1 and sub.anger < 40 and sub.confidence < 50:
        w["risk_averse"] += 1.5

    return _distribution("risk_tolerance", w)


def build_hypotheses(
    act: SpeechAct, surface: SurfaceFeatures, intent: ConversationIntent
) -> IntentHypotheses:
    acts = [ScoredAct(type=act.primary, confidence=act.confidence)]
    if act.secondary:
        # half the primary's confidence, rounded half up, never below 10
        acts.append(
            ScoredAct(type=act.secondary, confidence=max(10, math.floor(act.confidence * 0.5 + 0.5)))
        )

    return IntentHypotheses(
        social_strategy=social_strategy_axis(act, surface, intent),
        emotional_posture=emotional_posture_axis(act, surface),
        game_motive=game_motive_axis(act, intent),
        risk_tolerance=risk_tolerance_axis(act, surface),
        speech_acts=acts,
        topic=intent.topic,
    )
