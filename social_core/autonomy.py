"""NPC autonomy.

Each tick, for every active NPC:

  1. refresh motives from the graph and recent memory
       survival           always present, stronger as average trust falls
       alliance_building  manipulative NPCs (manipulation > 60)
       information_gathering  sharp NPCs (intelligence > 70)
       chaos              reckless, disloyal NPCs
       revenge            betrayal-type memory in the last 2 days, 3-day deadline
       romance            charisma > 70 and a warm, close relationship
  2. turn each motive into candidate decisions, urgency = motive intensity
  3. weight = urgency x trait fit, halved if the NPC acted recently
  4. weighted draw among the top three
  5. execute only past the cooldown, then with P = urgency / 100
     (flat 30% below urgency 40)

The engine only *returns* decisions. Applying them is the orchestrator's job.
"""

from __future__ import annotations

import logging
import random

from social_core.clock import Clock
from social_core.config import SimConfig
from social_core.graph import RelationshipGraph
from social_core.memory import MemoryEngine
from social_core.models import (
    CastMember,
    DecisionType,
    MotiveType,
    NPCAutonomyState,
    NPCDecision,
    NPCMotive,
    Personality,
    Relationship,
)
from social_core.roster import Roster
from social_core.templates import LineTemplate, bank

logger = logging.getLogger(__name__)

REVENGE_LOOKBACK_DAYS = 2
REVENGE_DEADLINE_DAYS = 3
TOP_CANDIDATES = 3

DECISION_LINES: dict[DecisionType, tuple[LineTemplate, ...]] = {
    "propose_alliance": bank(
        "Hey {target}, I think we should work together. We both know this game is getting intense.",
        "{target}, I've been thinking... we could really help each other out in this game.",
        "Listen {target}, I trust you more than most people here. Want to form an alliance?",
        "{target}, we need to stick together if we want to survive the next few votes.",
    ),
    "send_dm": bank(
        "{target}, what do you think about the other contestants? I'm trying to figure out who to trust.",
        "Hey {target}, have you noticed anything weird about anyone lately?",
        "{target}, I'm worried about the next vote. Do you know which way people are leaning?",
        "I feel like there's some drama brewing. {target}, have you heard anything?",
    ),
    "initiate_conversation": bank(
        "{target}, got a minute? I feel like we haven't really talked yet.",
        "Hey {target}, how are you holding up in here?",
    ),
    "confront": bank(
        "{target}, we need to talk. I know what you did and I'm not going to let it slide.",
    ),
    "scheme": bank(
        "I'm going to make sure everyone knows what kind of person {target} really is.",
    ),
    "betray_alliance": bank(
        "{target} thinks we're solid. They're about to find out we're not.",
    ),
    "spread_rumor": bank(
        "I think there's a secret alliance that we don't know about.",
        "Someone here is definitely not being honest about their game strategy.",
        "I heard some interesting conversations that everyone should know about.",
        "There's definitely more going on behind the scenes than we realize.",
    ),
    "flirt": bank(
        "{target}, you've been looking really good lately. Just wanted you to know.",
        "I really enjoy our conversations, {target}. You're different from everyone else here.",
        "{target}, want to spend some time together away from all this drama?",
        "I feel like we have a real connection, {target}. This place is crazy but you keep me grounded.",
    ),
}


def trait_fit(decision: DecisionType, p: Personality) -> float:
    if decision == "confront":
        return p.aggressiveness / 100
    if decision == "scheme":
        return p.manipulation / 100
    if decision == "propose_alliance":
        return p.intelligence / 100
    if decision == "flirt":
        return p.charisma / 100
    if decision == "spread_rumor":
        return (p.manipulation / 100) * (p.risk_tolerance / 100)
    if decision == "betray_alliance":
        return (100 - p.loyalty) / 100
    if decision == "initiate_conversation":
        return p.charisma / 100
    return 1.0


class AutonomyEngine:
    def __init__(
        self,
        roster: Roster,
        graph: RelationshipGraph,
        memory: MemoryEngine,
        rng: random.Random,
        clock: Clock,
        config: SimConfig,
    ) -> None:
        self._roster = roster
        self._graph = graph
        self._memory = memory
        self._rng = rng
        self._clock = clock
        self._config = config
        self._motives: dict[int, list[NPCMotive]] = {}
        self._last_action: dict[int, float] = {}

    # ── setup / reads ───────────────────────────────────────

    def initialize(self) -> None:
        self._motives.clear()
        self._last_action.clear()
        now = self._clock.now()
        for npc in self._roster.npcs():
            self._motives[npc.id] = self._initial_motives(npc.personality)
            self._last_action[npc.id] = now

    def _initial_motives(self, p: Personality) -> list[NPCMotive]:
        motives = [NPCMotive(type="survival", intensity=70 + self._rng.random() * 30)]
        if p.manipulation > 60:
            motives.append(NPCMotive(type="alliance_building", intensity=p.manipulation))
        if p.intelligence > 70:
            motives.append(NPCMotive(type="information_gathering", intensity=p.intelligence * 0.8))
        if p.risk_tolerance > 70 and p.loyalty < 40:
            motives.append(NPCMotive(type="chaos", intensity=p.risk_tolerance))
        return motives

    def motives_for(self, npc_id: int) -> list[NPCMotive]:
        return [m.model_copy() for m in self._motives.get(npc_id, [])]

    def personality(self, npc_id: int) -> Personality:
        return self._roster.personality(npc_id)

    def last_action_at(self, npc_id: int) -> float | None:
        return self._last_action.get(npc_id)

    # ── tick ────────────────────────────────────────────────

    def update(self, day: int) -> list[NPCDecision]:
        decisions: list[NPCDecision] = []
        for npc in self._roster.npcs():
            self.refresh_motives(npc, day)
            candidates = self.candidates(npc)
            chosen = self.select(npc.id, candidates)
            if chosen is not None and self.should_execute(npc.id, chosen):
                chosen.created_at = self._clock.now()
                self._last_action[npc.id] = chosen.created_at
                decisions.append(chosen)
                logger.debug(
                    "%s decides %s -> %s (urgency %.0f)",
                    npc.name, chosen.type, self._roster.name_of(chosen.target), chosen.urgency,
                )
        return decisions

    def refresh_motives(self, npc: CastMember, day: int) -> None:
        motives = self._motives.setdefault(npc.id, self._initial_motives(npc.personality))
        motives[:] = [m for m in motives if m.deadline is None or m.deadline >= day]

        rels = self._live_relationships(npc.id)
        survival = next((m for m in motives if m.type == "survival"), None)
        if survival is None:
            survival = NPCMotive(type="survival", intensity=70)
            motives.insert(0, survival)
        if rels:
            avg_trust = sum(r.trust for r in rels) / len(rels)
            survival.intensity = min(100.0, max(50.0, 100 - avg_trust))

        if not any(m.type == "revenge" for m in motives):
            for event in reversed(self._memory.recent_events(npc.id, day, REVENGE_LOOKBACK_DAYS)):
                betrayal = event.type in ("betrayal", "alliance_break") or (
                    event.type == "scheme" and event.emotional_impact < -5
                )
                targets = [p for p in event.participants if p != npc.id and p in self._roster]
                if betrayal and targets and event.emotional_impact < 0:
                    motives.append(
                        NPCMotive(
                            type="revenge",
                            intensity=min(100.0, abs(event.emotional_impact) * 10),
                            targets=targets,
                            deadline=day + REVENGE_DEADLINE_DAYS,
                        )
                    )
                    break

        # romance tracks the live graph: gone once the target cools off or leaves
        motives[:] = [m for m in motives if m.type != "romance"]
        if npc.personality.charisma > 70:
            warm = [r.target for r in rels if r.trust > 60 and r.closeness > 50]
            if warm:
                motives.append(NPCMotive(type="romance", intensity=npc.personality.charisma, targets=warm))

    def _live_relationships(self, npc_id: int) -> list[Relationship]:
        active = set(self._roster.active_ids())
        return [r for r in self._graph.relationships_for(npc_id) if r.target in active]

    def candidates(self, npc: CastMember) -> list[NPCDecision]:
        rels = self._live_relationships(npc.id)
        out: list[NPCDecision] = []
        for motive in self._motives.get(npc.id, []):
            if motive.type == "survival":
                allies = sorted(
                    (r for r in rels if r.trust > 50 and not r.in_alliance), key=lambda r: -r.trust
                )
                if allies:
                    out.append(self._decision("propose_alliance", npc, allies[0].target, motive))
            elif motive.type == "alliance_building":
                prospects = sorted((r for r in rels if not r.in_alliance), key=lambda r: -r.closeness)
                if prospects:
                    out.append(self._decision("initiate_conversation", npc, prospects[0].target, motive))
            elif motive.type == "information_gathering":
                sources = sorted((r for r in rels if r.trust > 40), key=lambda r: -r.trust)
                if sources:
                    out.append(self._decision("send_dm", npc, sources[0].target, motive))
            elif motive.type == "revenge" and motive.targets:
                target = motive.targets[0]
                edge = self._graph.get(npc.id, target)
                if edge is not None and edge.in_alliance:
                    kind: DecisionType = "betray_alliance"
                else:
                    kind = "confront" if npc.personality.aggressiveness > 60 else "scheme"
                out.append(self._decision(kind, npc, target, motive))
            elif motive.type == "chaos":
                marks = [r for r in rels if r.suspicion < 30]
                if marks:
                    out.append(self._decision("spread_rumor", npc, self._rng.choice(marks).target, motive))
            elif motive.type == "romance" and motive.targets:
                out.append(self._decision("flirt", npc, motive.targets[0], motive))
        return out

    def _decision(
        self, kind: DecisionType, npc: CastMember, target: int, motive: NPCMotive
    ) -> NPCDecision:
        template = self._rng.choice(DECISION_LINES[kind])
        content = template.render(
            {"target": lambda: self._roster.name_of(target), "actor": lambda: npc.name}
        )
        motivation: MotiveType = motive.type
        return NPCDecision(
            type=kind,
            actor=npc.id,
            target=target,
            content=content,
            motivation=motivation,
            urgency=motive.intensity,
        )

    def weight(self, npc_id: int, decision: NPCDecision) -> float:
        w = decision.urgency * trait_fit(decision.type, self._roster.personality(npc_id))
        last = self._last_action.get(npc_id)
        if last is not None and self._clock.now() - last < self._config.recent_action_seconds:
            w *= 0.5
        return w

    def select(self, npc_id: int, candidates: list[NPCDecision]) -> NPCDecision | None:
        if not candidates:
            return None
        weighted = sorted(
            ((self.weight(npc_id, d), d) for d in candidates), key=lambda pair: -pair[0]
        )[:TOP_CANDIDATES]
        total = sum(w for w, _ in weighted)
        if total <= 0:
            return weighted[0][1]
        r = self._rng.random() * total
        acc = 0.0
        for w, decision in weighted:
            acc += w
            if r <= acc:
                return decision
        return weighted[0][1]

    def should_execute(self, npc_id: int, decision: NPCDecision) -> bool:
        last = self._last_action.get(npc_id)
        if last is not None and self._clock.now() - last < self._config.decision_cooldown_seconds:
            return False
        if decision.urgency < 40:
            return self._rng.random() < 0.3
        return self._rng.random() < decision.urgency / 100

    def mark_acted(self, npc_id: int) -> None:
        self._last_action[npc_id] = self._clock.now()

    # ── snapshot ────────────────────────────────────────────

    def export(self) -> list[NPCAutonomyState]:
        now = self._clock.now()
        return [
            NPCAutonomyState(
                npc_id=npc_id,
                motives=[m.model_copy() for m in motives],
                seconds_since_action=max(0.0, now - self._last_action.get(npc_id, now)),
            )
            for npc_id, motives in self._motives.items()
        ]

    def load(self, states: list[NPCAutonomyState]) -> None:
        now = self._clock.now()
        self._motives = {s.npc_id: [m.model_copy() for m in s.motives] for s in states}
        self._last_action = {s.npc_id: now - s.seconds_since_action for s in states}
