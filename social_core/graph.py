"""Relationship graph.

Directed edges between every ordered pair of cast members. Each direction is
its own Relationship; updating A->B also applies a smaller mirrored update to
B->A in the same call, so no reader ever sees one half of the pair.

Trust dynamics inside update():

  - recent = interactions on this edge within the last 3 days
  - positive trust: x max(0.3, 1 - 0.1 * recent), then x 1.5 during days 1-7
  - negative trust: x (1 + 0.3 * recent negative), capped at x 2
  - mirror: trust x 0.7, suspicion x 0.8, closeness x 0.6 of the adjusted delta

Scores are always clamped: trust -100..100, suspicion and closeness 0..100.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable

from social_core.models import (
    Alliance,
    InteractionRecord,
    InteractionType,
    Relationship,
    SocialStanding,
)

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
RECENT_DAYS = 3
EARLY_GAME_DAYS = 7

TRUST_BOUNDS = (-100.0, 100.0)
SCORE_BOUNDS = (0.0, 100.0)

MIRROR_TRUST = 0.7
MIRROR_SUSPICION = 0.8
MIRROR_CLOSENESS = 0.6

# decay() pulls trust into this band and high suspicion down toward the mid
NEUTRAL_TRUST = (30.0, 70.0)
HIGH_SUSPICION = 60.0
SUSPICION_FLOOR = 50.0
MAX_DECAY_STEP = 5.0

Deltas = tuple[float, float, float]


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    lo, hi = bounds
    return max(lo, min(hi, value))


class RelationshipGraph:
    def __init__(self, rng: random.Random, grace_days: int = 3) -> None:
        self._rng = rng
        self.grace_days = grace_days
        self._edges: dict[tuple[int, int], Relationship] = {}

    # ── setup ───────────────────────────────────────────────

    def initialize(self, ids: Iterable[int]) -> None:
        """Create an edge for every ordered pair, with a little starting noise."""
        members = list(ids)
        self._edges.clear()
        for a in members:
            for b in members:
                if a == b:
                    continue
                self._edges[(a, b)] = Relationship(
                    source=a,
                    target=b,
                    trust=50 + (self._rng.random() - 0.5) * 20,
                    suspicion=self._rng.random() * 20,
                    closeness=self._rng.random() * 30,
                )
        logger.info("Relationship graph initialised: %d members, %d edges", len(members), len(self._edges))

    # ── reads ───────────────────────────────────────────────

    def get(self, source: int, target: int) -> Relationship | None:
        return self._edges.get((source, target))

    def __len__(self) -> int:
        return len(self._edges)

    def edges(self) -> list[Relationship]:
        return list(self._edges.values())

    def relationships_for(self, source: int) -> list[Relationship]:
        return [r for (s, _), r in self._edges.items() if s == source]

    def social_standing(self, npc_id: int) -> SocialStanding:
        rels = self.relationships_for(npc_id)
        if not rels:
            return SocialStanding()
        avg_trust = sum(r.trust for r in rels) / len(rels)
        avg_suspicion = sum(r.suspicion for r in rels) / len(rels)
        alliances = sum(1 for r in rels if r.in_alliance)
        power = avg_trust * 0.4 - avg_suspicion * 0.3 + alliances * 10
        return SocialStanding(
            average_trust=avg_trust,
            average_suspicion=avg_suspicion,
            alliance_count=alliances,
            social_power=_clamp(power, SCORE_BOUNDS),
        )

    def alliances(self) -> list[Alliance]:
        """Unique allied pairs, lower id first."""
        seen: set[tuple[int, int]] = set()
        out: list[Alliance] = []
        for (a, b), rel in self._edges.items():
            if not rel.in_alliance:
                continue
            pair = (min(a, b), max(a, b))
            if pair in seen:
                continue
            seen.add(pair)
            out.append(Alliance(members=pair, strength=rel.alliance_strength or 50))
        return out

    # ── mutators ────────────────────────────────────────────

    def update(
        self,
        source: int,
        target: int,
        trust_delta: float,
        suspicion_delta: float,
        closeness_delta: float,
        event_type: InteractionType,
        description: str,
        day: int,
    ) -> Deltas | None:
        """Apply an interaction to source->target and its mirror.

        Returns the adjusted forward deltas, or None when the edge is unknown.
        """
        forward = self._edges.get((source, target))
        if forward is None:
            logger.warning("update: no relationship %r -> %r", source, target)
            return None

        recent = [h for h in forward.history if day - h.day <= RECENT_DAYS]
        if trust_delta > 0:
            adjusted = trust_delta * max(0.3, 1 - 0.1 * len(recent))
            if day <= EARLY_GAME_DAYS:
                adjusted *= 1.5
        else:
            negatives = sum(1 for h in recent if h.impact < 0)
            adjusted = trust_delta * min(2.0, 1 + 0.3 * negatives)

        self._apply(forward, adjusted, suspicion_delta, closeness_delta, event_type, description, day)

        reverse = self._edges.get((target, source))
        if reverse is not None:
            self._apply(
                reverse,
                adjusted * MIRROR_TRUST,
                suspicion_delta * MIRROR_SUSPICION,
                closeness_delta * MIRROR_CLOSENESS,
                event_type,
                f"From {source}: {description}",
                day,
            )

        logger.debug(
            "%d -> %d: trust %.1f (%+.1f), suspicion %.1f",
            source, target, forward.trust, adjusted, forward.suspicion,
        )
        return adjusted, suspicion_delta, closeness_delta

    @staticmethod
    def _apply(
        rel: Relationship,
        trust: float,
        suspicion: float,
        closeness: float,
        event_type: InteractionType,
        description: str,
        day: int,
    ) -> None:
        rel.trust = _clamp(rel.trust + trust, TRUST_BOUNDS)
        rel.suspicion = _clamp(rel.suspicion + suspicion, SCORE_BOUNDS)
        rel.closeness = _clamp(rel.closeness + closeness, SCORE_BOUNDS)
        rel.last_interaction_day = max(rel.last_interaction_day, day)
        rel.history.append(
            InteractionRecord(
                day=day, type=event_type, impact=trust + closeness - suspicion, description=description
            )
        )
        if len(rel.history) > HISTORY_LIMIT:
            rel.history = rel.history[-HISTORY_LIMIT:]

    def form_alliance(self, a: int, b: int, strength: float = 50.0) -> bool:
        pair = [self._edges.get((a, b)), self._edges.get((b, a))]
        if None in pair:
            logger.warning("form_alliance: unknown pair %r/%r", a, b)
            return False
        for rel in pair:
            rel.in_alliance = True
            rel.alliance_strength = strength
            rel.trust = _clamp(rel.trust + 15, TRUST_BOUNDS)
            rel.closeness = _clamp(rel.closeness + 10, SCORE_BOUNDS)
        logger.debug("alliance formed %d + %d (strength %.0f)", a, b, strength)
        return True

    def break_alliance(self, betrayer: int, betrayed: int, betrayal_level: float = 50.0) -> bool:
        """Dissolve an alliance. The betrayed side takes the heavier hit."""
        own = self._edges.get((betrayer, betrayed))
        theirs = self._edges.get((betrayed, betrayer))
        if own is None or theirs is None:
            logger.warning("break_alliance: unknown pair %r/%r", betrayer, betrayed)
            return False

        for rel, trust_k, suspicion_k, closeness_k in (
            (own, 1.0, 0.8, 0.6),
            (theirs, 1.2, 1.0, 0.8),
        ):
            rel.in_alliance = False
            rel.alliance_strength = 0.0
            rel.trust = _clamp(rel.trust - betrayal_level * trust_k, TRUST_BOUNDS)
            rel.suspicion = _clamp(rel.suspicion + betrayal_level * suspicion_k, SCORE_BOUNDS)
            rel.closeness = _clamp(rel.closeness - betrayal_level * closeness_k, SCORE_BOUNDS)
        logger.debug("alliance broken %d -x- %d (level %.0f)", betrayer, betrayed, betrayal_level)
        return True

    def voting_update(self, votes: dict[int, int], eliminated: int, day: int) -> None:
        """Co-voters against the eliminated player bond; unsuccessful voters sour."""
        for voter, target in votes.items():
            if target == eliminated:
                for other, other_target in votes.items():
                    if other != voter and other_target == target:
                        self.update(
                            voter, other, 3, -2, 1, "vote", f"Voted together against {eliminated}", day
                        )
            else:
                self.update(voter, target, -5, 8, -3, "vote", f"Voted against {target} unsuccessfully", day)

    def decay(self, day: int) -> int:
        """Cool off edges left alone past the grace period. Returns edges touched.

        Each edge decays at most once per game day. The step grows with the
        length of the silence and is capped.
        """
        touched = 0
        for rel in self._edges.values():
            silence = day - rel.last_interaction_day
            if silence <= self.grace_days or rel.last_decay_day >= day:
                continue
            step = min(MAX_DECAY_STEP, 1 + 0.5 * (silence - self.grace_days))
            lo, hi = NEUTRAL_TRUST
            if rel.trust > hi:
                rel.trust = max(hi, rel.trust - step)
            elif rel.trust < lo:
                rel.trust = min(lo, rel.trust + step)

            if rel.suspicion > HIGH_SUSPICION:
                rel.suspicion = max(SUSPICION_FLOOR, rel.suspicion - step)

            # good relationships warm back up a little while apart
            if rel.trust >= 60 and rel.suspicion <= 30 and rel.closeness > 0:
                rel.closeness = _clamp(rel.closeness + 1, SCORE_BOUNDS)

            rel.last_decay_day = day
            touched += 1
        if touched:
            logger.debug("decay day %d: %d edges", day, touched)
        return touched

    # ── snapshot ────────────────────────────────────────────

    def export(self) -> list[Relationship]:
        return [r.model_copy(deep=True) for r in self._edges.values()]

    def load(self, edges: Iterable[Relationship]) -> None:
        self._edges = {(r.source, r.target): r.model_copy(deep=True) for r in edges}
