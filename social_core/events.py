"""Emergent event engine.

Per tick:

  1. drama tension per NPC =
       avg suspicion + max(0, 50 - avg trust)
       + 10 x negative memories in the last 3 days
       + 15 x motives above 70          (clamped to 100)
  2. seeds: each checks its condition against the live graph, motives and
     memory, finds concrete participants, then rolls its probability
  3. memory triggers: a recent betrayal may come back as a confrontation;
     repeated good conversations with the same person may become an alliance
  4. escalation: ongoing events above 60 tension may flare up again (+20)
  5. drama floor: nothing fired and (avg tension < 30 or the house has been
     quiet too long) -> one low-key event between two random NPCs

Consequences of every fired event are applied at once. Events are kept for
the retention window (7 days by default) and then dropped.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from collections.abc import Callable

from social_core.autonomy import AutonomyEngine
from social_core.clock import Clock
from social_core.config import SimConfig
from social_core.graph import RelationshipGraph
from social_core.memory import MemoryEngine
from social_core.models import (
    EmergentEvent,
    EventConsequence,
    EventState,
    EventType,
    InteractionType,
    Involvement,
    MemoryEventType,
    Outcome,
    Relationship,
)
from social_core.roster import Roster

logger = logging.getLogger(__name__)

ESCALATION_THRESHOLD = 60
ESCALATION_CHANCE = 0.3
REVENGE_CHANCE = 0.4
MEMORY_ALLIANCE_CHANCE = 0.3
FLOOR_TENSION = 30

# event type -> (interaction recorded on the graph, memory type)
EVENT_KINDS: dict[EventType, tuple[InteractionType, MemoryEventType]] = {
    "conflict": ("confrontation", "scheme"),
    "alliance_formation": ("alliance", "alliance_form"),
    "betrayal": ("betrayal", "betrayal"),
    "romance": ("conversation", "conversation"),
    "rumor_spread": ("scheme", "gossip"),
    "confession_leak": ("confrontation", "confessional"),
    "power_shift": ("scheme", "scheme"),
}

Pair = tuple[int, int]


def memory_impact(tension: float) -> float:
    if tension > 70:
        return -5
    if tension > 40:
        return 0
    return 3


class EmergentEventEngine:
    def __init__(
        self,
        roster: Roster,
        graph: RelationshipGraph,
        memory: MemoryEngine,
        autonomy: AutonomyEngine,
        rng: random.Random,
        clock: Clock,
        config: SimConfig,
    ) -> None:
        self._roster = roster
        self._graph = graph
        self._memory = memory
        self._autonomy = autonomy
        self._rng = rng
        self._clock = clock
        self._config = config
        self._active: list[EmergentEvent] = []
        self._tension: dict[int, float] = {}
        self._last_event_at = clock.now()
        self._seq = 1

        # (name, probability, finder). A finder builds the event when its condition holds.
        self._seeds: list[tuple[str, float, Callable[[int], EmergentEvent | None]]] = [
            ("conflict", 0.7, self._seed_hostile_pair),
            ("motivated_conflict", 0.5, self._seed_driven_conflict),
            ("alliance", 0.6, self._seed_alliance),
            ("betrayal", 0.4, self._seed_betrayal),
            ("romance", 0.3, self._seed_romance),
            ("rumor", 0.8, self._seed_rumor),
            ("confession_leak", 0.2, self._seed_confession_leak),
        ]

    def initialize(self) -> None:
        self._active.clear()
        self._tension.clear()
        self._last_event_at = self._clock.now()
        self._seq = 1

    # ── reads ───────────────────────────────────────────────

    def active_events(self) -> list[EmergentEvent]:
        return list(self._active)

    def tension_for(self, npc_id: int) -> float:
        return self._tension.get(npc_id, 0.0)

    def average_tension(self) -> float:
        if not self._tension:
            return 0.0
        return sum(self._tension.values()) / len(self._tension)

    # ── tick ────────────────────────────────────────────────

    def update_tension(self, day: int) -> None:
        self._tension.clear()
        active = set(self._roster.active_ids())
        for npc in self._roster.npcs():
            rels = [r for r in self._graph.relationships_for(npc.id) if r.target in active]
            count = len(rels) or 1
            avg_suspicion = sum(r.suspicion for r in rels) / count
            avg_trust = sum(r.trust for r in rels) / count if rels else 50.0
            tension = avg_suspicion + max(0.0, 50 - avg_trust)

            negatives = [e for e in self._memory.recent_events(npc.id, day, 3) if e.emotional_impact < -3]
            tension += len(negatives) * 10
            tension += sum(1 for m in self._autonomy.motives_for(npc.id) if m.intensity > 70) * 15
            self._tension[npc.id] = min(100.0, tension)

    def generate(self, day: int) -> list[EmergentEvent]:
        self.update_tension(day)

        fired: list[EmergentEvent] = []
        for name, probability, finder in self._seeds:
            event = finder(day)
            if event is not None and self._rng.random() < probability:
                fired.append(event)
                logger.debug("seed %s fired: %s", name, event.description)
        fired.extend(self._memory_triggers(day))
        fired.extend(self._escalations(day))

        if not fired and self._should_force():
            forced = self._drama_floor(day)
            if forced is not None:
                fired.append(forced)

        if fired:
            self._last_event_at = self._clock.now()
        for event in fired:
            self.apply(event, day)
            self._active.append(event)

        retention = self._config.event_retention_days
        self._active = [e for e in self._active if day - e.day <= retention]
        return fired

    def _should_force(self) -> bool:
        quiet = self._clock.now() - self._last_event_at
        return self.average_tension() < FLOOR_TENSION or quiet > self._config.drama_floor_seconds

    # ── building events ─────────────────────────────────────

    def _event(
        self,
        type: EventType,
        participants: Pair | list[int],
        description: str,
        tension: float,
        day: int,
        *,
        triggers: list[str],
        consequences: list[EventConsequence] | None = None,
        outcome: Outcome = "ongoing",
        involvement: Involvement = "witness",
    ) -> EmergentEvent:
        people = list(participants)
        player = self._roster.player
        if player is not None and player.id in people and involvement != "catalyst":
            involvement = "participant"
        event = EmergentEvent(
            id=f"{type}-{day}-{self._seq}",
            type=type,
            participants=people,
            description=description,
            triggers=triggers,
            consequences=list(consequences or [])
            + [
                EventConsequence(
                    type="memory_creation", targets=people, description=description
                )
            ],
            drama_tension=min(100.0, tension),
            day=day,
            player_involvement=involvement,
            outcome=outcome,
        )
        self._seq += 1
        return event

    @staticmethod
    def _change(targets: Pair, description: str, **values: float) -> EventConsequence:
        return EventConsequence(
            type="relationship_change", targets=list(targets), values=values, description=description
        )

    def _name(self, npc_id: int) -> str:
        return self._roster.name_of(npc_id)

    def _npc_edges(self) -> list[Relationship]:
        """Edges from active NPCs to anyone still in the game."""
        active = set(self._roster.active_ids())
        npcs = {m.id for m in self._roster.npcs()}
        return [e for e in self._graph.edges() if e.source in npcs and e.target in active]

    # ── seeds ───────────────────────────────────────────────

    def _seed_hostile_pair(self, day: int) -> EmergentEvent | None:
        hostile = [e for e in self._npc_edges() if e.trust < -30]
        if not hostile:
            return None
        edge = min(hostile, key=lambda e: e.trust)
        a, b = edge.source, edge.target
        return self._event(
            "conflict", (a, b),
            f"A heated argument erupted between {self._name(a)} and {self._name(b)} during dinner",
            70, day, triggers=["high_suspicion"],
            consequences=[self._change((b, a), "Argument at dinner", trust=-10, suspicion=10)],
        )

    def _seed_driven_conflict(self, day: int) -> EmergentEvent | None:
        for npc in self._roster.npcs():
            driven = [m for m in self._autonomy.motives_for(npc.id) if m.intensity > 80]
            if not driven:
                continue
            target = next((t for m in driven for t in m.targets if t in self._roster), None)
            if target is None:
                rels = [e for e in self._npc_edges() if e.source == npc.id]
                if not rels:
                    continue
                target = min(rels, key=lambda e: e.trust).target
            return self._event(
                "conflict", (npc.id, target),
                f"Tensions between {npc.name} and {self._name(target)} finally boiled over into confrontation",
                85, day, triggers=["motive_intensity"],
                consequences=[self._change((target, npc.id), "Confrontation", trust=-12, suspicion=15)],
            )
        return None

    def _seed_alliance(self, day: int) -> EmergentEvent | None:
        best: tuple[float, Pair] | None = None
        for e in self._npc_edges():
            if e.source > e.target or e.in_alliance or e.trust <= 70:
                continue
            back = self._graph.get(e.target, e.source)
            if back is None or back.trust <= 70 or self._roster.get(e.target).is_player:
                continue
            score = e.trust + back.trust
            if best is None or score > best[0]:
                best = (score, (e.source, e.target))
        if best is None:
            return None
        a, b = best[1]
        return self._event(
            "alliance_formation", (a, b),
            f"{self._name(a)} and {self._name(b)} secretly formed a new alliance",
            50, day, triggers=["high_trust"],
            consequences=[
                EventConsequence(
                    type="alliance_shift", targets=[a, b], values={"alliance_strength": 60},
                    description="Secret alliance formed",
                )
            ],
            outcome="resolved",
            involvement="none",
        )

    def _seed_betrayal(self, day: int) -> EmergentEvent | None:
        for npc in self._roster.npcs():
            if not any(m.intensity > 75 for m in self._autonomy.motives_for(npc.id)):
                continue
            allied = [e for e in self._npc_edges() if e.source == npc.id and e.in_alliance]
            if not allied:
                continue
            victim = min(allied, key=lambda e: e.trust).target
            return self._event(
                "betrayal", (npc.id, victim),
                f"{npc.name} broke their alliance with {self._name(victim)}",
                90, day, triggers=["high_motive_intensity"],
                consequences=[
                    EventConsequence(
                        type="alliance_break", targets=[npc.id, victim], values={"betrayal_level": 40},
                        description="Alliance broken through betrayal",
                    )
                ],
            )
        return None

    def _seed_romance(self, day: int) -> EmergentEvent | None:
        close = [e for e in self._npc_edges() if e.closeness > 80]
        if not close:
            return None
        edge = max(close, key=lambda e: e.closeness)
        a, b = edge.source, edge.target
        return self._event(
            "romance", (a, b),
            f"Romance is blooming between {self._name(a)} and {self._name(b)}",
            30, day, triggers=["high_emotional_closeness"],
            consequences=[self._change((a, b), "Growing closer", trust=5, closeness=10)],
        )

    def _seed_rumor(self, day: int) -> EmergentEvent | None:
        for npc in self._roster.npcs():
            if len(self._memory.recent_events(npc.id, day, 3)) <= 3:
                continue
            others = [m.id for m in self._roster.npcs() if m.id != npc.id]
            if not others:
                continue
            about = self._rng.choice(others)
            description = f"Whispers are circulating: {npc.name} has been talking about {self._name(about)}"
            self._memory.spread_gossip(description, npc.id, day, "rumor", about=about)
            return self._event(
                "rumor_spread", (npc.id, about), description, 60, day,
                triggers=["memory_accumulation"],
                consequences=[self._change((about, npc.id), "Heard the rumors", trust=-5, suspicion=10)],
            )
        return None

    def _seed_confession_leak(self, day: int) -> EmergentEvent | None:
        player = self._roster.player
        for npc in self._roster.npcs():
            extreme = [m for m in self._autonomy.motives_for(npc.id) if m.intensity > 90]
            if not extreme:
                continue
            others = [m.id for m in self._roster.npcs() if m.id != npc.id]
            if not others:
                continue
            hearer = self._rng.choice(others)
            # a leak driven by a motive aimed at the player is on the player
            caused = player is not None and any(player.id in m.targets for m in extreme)
            return self._event(
                "confession_leak", (npc.id, hearer),
                f"{npc.name}'s private confessions leaked to {self._name(hearer)}",
                80, day, triggers=["extreme_motive"],
                consequences=[self._change((hearer, npc.id), "Confession leaked", trust=-15, suspicion=20)],
                involvement="catalyst" if caused else "witness",
            )
        return None

    # ── memory triggers / escalation / floor ───────────────

    def _memory_triggers(self, day: int) -> list[EmergentEvent]:
        out: list[EmergentEvent] = []
        for npc in self._roster.npcs():
            betrayals = [
                e for e in self._memory.recent_events(npc.id, day, 5)
                if e.type in ("betrayal", "scheme") and e.emotional_impact < -5
            ]
            if betrayals:
                others = [p for p in betrayals[-1].participants if p != npc.id and p in self._roster]
                if others and self._rng.random() < REVENGE_CHANCE:
                    target = others[0]
                    out.append(self._event(
                        "conflict", (npc.id, target),
                        f"{npc.name} confronted {self._name(target)} about past betrayal",
                        75, day, triggers=["revenge_memory"],
                        consequences=[self._change(
                            (npc.id, target), "Confrontation damaged relationship further",
                            trust=-20, suspicion=25,
                        )],
                        outcome="escalated",
                    ))

            positive = [
                e for e in self._memory.recent_events(npc.id, day, 3)
                if e.type == "conversation" and e.emotional_impact > 5
            ]
            if len(positive) >= 2:
                seen = Counter(p for e in positive for p in set(e.participants) if p != npc.id)
                repeat = [p for p, n in seen.items() if n >= 2 and p in self._roster]
                if repeat and self._rng.random() < MEMORY_ALLIANCE_CHANCE:
                    ally = repeat[0]
                    edge = self._graph.get(npc.id, ally)
                    if edge is not None and not edge.in_alliance:
                        out.append(self._event(
                            "alliance_formation", (npc.id, ally),
                            f"{npc.name} and {self._name(ally)} decided to form a secret alliance",
                            45, day, triggers=["positive_memory_pattern"],
                            consequences=[EventConsequence(
                                type="alliance_shift", targets=[npc.id, ally],
                                values={"alliance_strength": 60}, description="Secret alliance formed",
                            )],
                            outcome="resolved",
                            involvement="none",
                        ))
        return out

    def _escalations(self, day: int) -> list[EmergentEvent]:
        out: list[EmergentEvent] = []
        for base in list(self._active):
            if base.outcome != "ongoing" or base.drama_tension <= ESCALATION_THRESHOLD:
                continue
            if self._rng.random() >= ESCALATION_CHANCE:
                continue
            base.outcome = "escalated"
            names = " and ".join(self._name(p) for p in base.participants)
            pair = base.participants[:2]
            consequences = []
            if len(pair) == 2:
                consequences.append(self._change(
                    (pair[0], pair[1]), "Escalation worsened relationships", trust=-15, suspicion=20
                ))
            out.append(self._event(
                base.type, base.participants,
                f"The situation between {names} has escalated further",
                base.drama_tension + 20, day, triggers=["event_escalation"],
                consequences=consequences,
            ))
        return out

    def _drama_floor(self, day: int) -> EmergentEvent | None:
        eligible = [m.id for m in self._roster.npcs()]
        if len(eligible) < 2:
            return None
        a, b = self._rng.sample(eligible, 2)
        return self._event(
            "rumor_spread", (a, b),
            f"{self._name(a)} was overheard making comments about {self._name(b)}'s game strategy",
            40, day, triggers=["low_drama_threshold"],
            consequences=[self._change(
                (b, a), "Increased suspicion from overheard comments", trust=-10, suspicion=15
            )],
        )

    # ── consequences ────────────────────────────────────────

    def apply(self, event: EmergentEvent, day: int) -> None:
        interaction, memory_type = EVENT_KINDS[event.type]
        for c in event.consequences:
            if c.type == "relationship_change" and len(c.targets) >= 2:
                self._graph.update(
                    c.targets[0],
                    c.targets[1],
                    c.values.get("trust", 0.0),
                    c.values.get("suspicion", 0.0),
                    c.values.get("closeness", 0.0),
                    interaction,
                    c.description,
                    day,
                )
            elif c.type == "alliance_shift" and len(c.targets) >= 2:
                self._graph.form_alliance(c.targets[0], c.targets[1], c.values.get("alliance_strength", 50))
            elif c.type == "alliance_break" and len(c.targets) >= 2:
                self._graph.break_alliance(c.targets[0], c.targets[1], c.values.get("betrayal_level", 50))
            elif c.type == "memory_creation":
                self._memory.record_event(
                    day=day,
                    type=memory_type,
                    participants=[p for p in c.targets if p in self._roster],
                    content=event.description,
                    emotional_impact=memory_impact(event.drama_tension),
                    importance=min(10.0, event.drama_tension / 10),
                    witnessed=list(event.participants),
                )
        logger.debug("event %s applied (%s)", event.id, event.description)

    # ── snapshot ────────────────────────────────────────────

    def export(self) -> EventState:
        return EventState(
            active=[e.model_copy(deep=True) for e in self._active],
            tensions=dict(self._tension),
            seconds_since_event=max(0.0, self._clock.now() - self._last_event_at),
            next_seq=self._seq,
        )

    def load(self, state: EventState) -> None:
        self._active = [e.model_copy(deep=True) for e in state.active]
        self._tension = {int(k): v for k, v in state.tensions.items()}
        self._last_event_at = self._clock.now() - state.seconds_since_event
        self._seq = state.next_seq
