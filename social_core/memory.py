"""Memory engine.

Every cast member gets a private journal at game start. recordEvent appends
one immutable MemoryEvent to the shared log, to its week bucket and to each
participant's journal. Journals, gossip and the shared log are capped working
sets: once full, the oldest entries fall off, week buckets included.

Readers never fail on unknown ids; they get empty results. Mutators log a
warning and do nothing.
"""

from __future__ import annotations

import logging
import math
import random

from social_core.models import (
    DayRange,
    Gossip,
    GossipReliability,
    MemoryEvent,
    MemoryEventType,
    MemoryQuery,
    MemorySearchResult,
    MemoryState,
    Personality,
    PrivateJournal,
    Promise,
    Reliability,
    Secret,
    StrategicContext,
)
from social_core.roster import Roster

logger = logging.getLogger(__name__)

JOURNAL_LIMIT = 100
SHARED_LIMIT = 500
NOTES_LIMIT = 5
GOSSIP_LIMIT = 200

STRATEGIES = (
    "Fly under the radar until jury phase",
    "Build strong alliances early and stay loyal",
    "Play aggressively and eliminate threats",
    "Float between alliances as needed",
    "Focus on winning challenges for safety",
    "Use social bonds to secure votes",
    "Create chaos to advance position",
)
SHORT_TERM_GOALS = (
    "Avoid being nominated",
    "Win next immunity challenge",
    "Form alliance with strong players",
    "Gather information about voting plans",
    "Build trust with majority",
)
LONG_TERM_GOALS = (
    "Make it to final 4",
    "Control jury votes",
    "Eliminate biggest threats",
    "Maintain alliance loyalty",
    "Build resume for finale",
)

GOSSIP_VALUE: dict[str, int] = {"confirmed": 8, "rumor": 5, "lie": 2}


def week_of(day: int) -> int:
    return max(1, math.ceil(day / 7))


def initial_strategy(personality: Personality, rng: random.Random) -> str:
    if personality.loyalty > 70:
        return STRATEGIES[1]
    if personality.paranoia > 70 or personality.aggressiveness > 70:
        return STRATEGIES[2]
    if personality.intelligence >= 80:
        return STRATEGIES[3]
    return rng.choice(STRATEGIES)


class MemoryEngine:
    def __init__(self, roster: Roster, rng: random.Random) -> None:
        self._roster = roster
        self._rng = rng
        self._journals: dict[int, PrivateJournal] = {}
        self._shared: list[MemoryEvent] = []
        self._gossip: list[Gossip] = []
        self._weekly: dict[int, list[str]] = {}
        self._seq = 1

    # ── setup ───────────────────────────────────────────────

    def init_journals(self) -> None:
        self._journals.clear()
        self._shared.clear()
        self._gossip.clear()
        self._weekly.clear()
        self._seq = 1
        for member in self._roster.members():
            self._journals[member.id] = PrivateJournal(
                npc_id=member.id,
                strategy=initial_strategy(member.personality, self._rng),
                short_term_goals=list(SHORT_TERM_GOALS[: 2 + self._rng.randint(0, 1)]),
                long_term_goals=list(LONG_TERM_GOALS[: 2 + self._rng.randint(0, 1)]),
            )
        logger.info("Initialised %d journals", len(self._journals))

    def journal(self, npc_id: int) -> PrivateJournal | None:
        return self._journals.get(npc_id)

    def _require(self, npc_id: int, op: str) -> PrivateJournal | None:
        journal = self._journals.get(npc_id)
        if journal is None:
            logger.warning("%s: no journal for %r", op, npc_id)
        return journal

    # ── events ──────────────────────────────────────────────

    def record_event(
        self,
        *,
        day: int,
        type: MemoryEventType,
        participants: list[int],
        content: str,
        emotional_impact: float = 0.0,
        importance: float = 5.0,
        reliability: Reliability = "confirmed",
        witnessed: list[int] | None = None,
        trust_delta: float | None = None,
        suspicion_delta: float | None = None,
        owners: list[int] | None = None,
    ) -> MemoryEvent:
        """Record one event. It lands in the journal of every participant, or of
        `owners` when the people who remember it differ from those involved."""
        event = MemoryEvent(
            id=f"m{day}-{self._seq}",
            day=day,
            type=type,
            participants=list(participants),
            content=content,
            emotional_impact=max(-10.0, min(10.0, emotional_impact)),
            importance=max(0.0, min(10.0, importance)),
            reliability=reliability,
            witnessed=list(witnessed or []),
            trust_delta=trust_delta,
            suspicion_delta=suspicion_delta,
        )
        self._seq += 1

        self._shared.append(event)
        self._weekly.setdefault(week_of(day), []).append(event.id)
        if len(self._shared) > SHARED_LIMIT:
            evicted = self._shared[:-SHARED_LIMIT]
            self._shared = self._shared[-SHARED_LIMIT:]
            self._forget_weekly(evicted)

        for pid in dict.fromkeys(participants if owners is None else owners):
            journal = self._journals.get(pid)
            if journal is None:
                continue
            journal.events.append(event)
            if len(journal.events) > JOURNAL_LIMIT:
                journal.events = journal.events[-JOURNAL_LIMIT:]

        logger.debug("memory %s [%s] %s", event.id, type, content)
        return event

    def recent_events(self, npc_id: int, day: int, within: int) -> list[MemoryEvent]:
        journal = self._journals.get(npc_id)
        if journal is None:
            return []
        return [e for e in journal.events if day - e.day <= within]

    def shared_events(self) -> list[MemoryEvent]:
        return list(self._shared)

    def weekly(self, week: int) -> list[MemoryEvent]:
        ids = set(self._weekly.get(week, ()))
        return [e for e in self._shared if e.id in ids]

    def _forget_weekly(self, evicted: list[MemoryEvent]) -> None:
        gone = {e.id for e in evicted}
        for week in {week_of(e.day) for e in evicted}:
            kept = [i for i in self._weekly.get(week, ()) if i not in gone]
            if kept:
                self._weekly[week] = kept
            else:
                self._weekly.pop(week, None)

    # ── journal mutators ────────────────────────────────────

    def update_voting_plan(self, npc_id: int, target: int, reasoning: str, day: int) -> None:
        journal = self._require(npc_id, "update_voting_plan")
        if journal is None:
            return
        journal.voting_plan = target
        journal.voting_plan_source = reasoning
        journal.voting_plan_day = day
        self.record_event(
            day=day,
            type="vote",
            participants=[npc_id],
            content=f"Planning to vote for {self._roster.name_of(target)}: {reasoning}",
            importance=9,
        )

    def record_promise(self, source: int, to: int, promise: str, day: int) -> None:
        journal = self._require(source, "record_promise")
        if journal is None:
            return
        journal.promises.append(Promise(to=to, promise=promise, day=day))
        self.record_event(
            day=day,
            type="promise",
            participants=[source, to],
            content=f"{self._roster.name_of(source)} promised {self._roster.name_of(to)}: {promise}",
            emotional_impact=3,
            importance=7,
        )

    def resolve_promise(self, source: int, to: int, kept: bool) -> bool:
        """Mark the most recent open promise from source to `to` as kept or broken."""
        journal = self._require(source, "resolve_promise")
        if journal is None:
            return False
        for promise in reversed(journal.promises):
            if promise.to == to and promise.kept is None:
                promise.kept = kept
                return True
        return False

    def record_secret(self, about: int, secret: str, known_by: int, day: int) -> None:
        journal = self._require(known_by, "record_secret")
        if journal is not None:
            journal.secrets.append(Secret(about=about, secret=secret, day=day))

    def share_secret(self, holder: int, recipient: int, about: int) -> bool:
        own = self._journals.get(holder)
        theirs = self._journals.get(recipient)
        if own is None or theirs is None:
            logger.warning("share_secret: unknown holder/recipient %r/%r", holder, recipient)
            return False
        secret = next((s for s in own.secrets if s.about == about), None)
        if secret is None:
            return False
        if recipient not in secret.shared_with:
            secret.shared_with.append(recipient)
        theirs.secrets.append(
            Secret(about=secret.about, secret=secret.secret, day=secret.day, shared_with=[holder])
        )
        return True

    def spread_gossip(
        self,
        info: str,
        source: int,
        day: int,
        reliability: GossipReliability = "rumor",
        about: int | None = None,
    ) -> Gossip | None:
        if source not in self._journals or (about is not None and about not in self._journals):
            logger.warning("spread_gossip: unknown source/subject %r/%r", source, about)
            return None
        gossip = Gossip(
            info=info,
            source=source,
            day=day,
            about=about,
            reliability=reliability,
            strategic_value=GOSSIP_VALUE[reliability],
        )
        self._gossip.append(gossip)
        if len(self._gossip) > GOSSIP_LIMIT:
            self._gossip = self._gossip[-GOSSIP_LIMIT:]
        return gossip

    def hear_gossip(self, gossip: Gossip, hearer: int) -> bool:
        if hearer not in self._journals:
            logger.warning("hear_gossip: no journal for %r", hearer)
            return False
        if hearer == gossip.source or hearer in gossip.spread_to:
            return False
        gossip.spread_to.append(hearer)
        return True

    def gossip(self) -> list[Gossip]:
        return list(self._gossip)

    def update_threat_assessment(self, assessor: int, target: int, level: float) -> None:
        journal = self._require(assessor, "update_threat_assessment")
        if journal is not None:
            journal.threat_assessment[target] = max(0.0, min(10.0, level))

    def update_personal_bond(self, a: int, b: int, strength: float) -> None:
        bond = max(-5.0, min(5.0, strength))
        for owner, other in ((a, b), (b, a)):
            journal = self._journals.get(owner)
            if journal is not None:
                journal.personal_bonds[other] = bond

    # ── queries ─────────────────────────────────────────────

    def query(self, npc_id: int, query: MemoryQuery | None = None) -> MemorySearchResult:
        journal = self._journals.get(npc_id)
        if journal is None:
            return MemorySearchResult()
        q = query or MemoryQuery()

        events = list(journal.events)
        if q.participants:
            wanted = set(q.participants)
            events = [e for e in events if wanted.intersection(e.participants)]
        if q.types:
            events = [e for e in events if e.type in q.types]
        if q.day_range:
            events = [e for e in events if q.day_range.start <= e.day <= q.day_range.end]
        if q.min_importance is not None:
            events = [e for e in events if e.importance >= q.min_importance]
        if q.reliability:
            events = [e for e in events if e.reliability in q.reliability]

        gossip = [g for g in self._gossip if g.source == npc_id or npc_id in g.spread_to]

        return MemorySearchResult(
            events=sorted(events, key=lambda e: e.day, reverse=True),
            relevant_gossip=sorted(gossip, key=lambda g: g.day, reverse=True),
            personal_notes=self.generate_personal_notes(npc_id),
        )

    def events_between(self, npc_id: int, start: int, end: int) -> list[MemoryEvent]:
        return self.query(npc_id, MemoryQuery(day_range=DayRange(start=start, end=end))).events

    def generate_personal_notes(self, npc_id: int) -> list[str]:
        journal = self._journals.get(npc_id)
        if journal is None:
            return []
        name = self._roster.name_of
        notes: list[str] = []
        for p in journal.promises:
            if p.kept is None:
                notes.append(f"Must follow through on promise to {name(p.to)}: {p.promise}")
            elif p.kept is False:
                notes.append(f"Broke promise to {name(p.to)} - they may not trust me")
        for person, threat in journal.threat_assessment.items():
            if threat > 7:
                notes.append(f"{name(person)} is a major threat - consider voting them out")
        for person, bond in journal.personal_bonds.items():
            if bond > 3:
                notes.append(f"{name(person)} is a close ally - protect them")
            elif bond < -3:
                notes.append(f"{name(person)} dislikes me - be careful around them")
        return notes[:NOTES_LIMIT]

    def strategic_context(self, npc_id: int, day: int) -> StrategicContext | None:
        journal = self._journals.get(npc_id)
        if journal is None:
            return None
        recent = sorted(
            (e for e in journal.events if e.day >= day - 3),
            key=lambda e: e.importance,
            reverse=True,
        )
        threats = sorted(journal.threat_assessment.items(), key=lambda kv: kv[1], reverse=True)
        allies = sorted(
            ((k, v) for k, v in journal.personal_bonds.items() if v > 2),
            key=lambda kv: kv[1],
            reverse=True,
        )
        return StrategicContext(
            strategy=journal.strategy,
            recent_events=[e.content for e in recent[:3]],
            top_threats=[k for k, _ in threats[:3]],
            allies=[k for k, _ in allies],
        )

    # ── snapshot ────────────────────────────────────────────

    def export(self) -> MemoryState:
        return MemoryState(
            journals=[j.model_copy(deep=True) for j in self._journals.values()],
            shared=list(self._shared),
            gossip=[g.model_copy(deep=True) for g in self._gossip],
            weekly={k: list(v) for k, v in self._weekly.items()},
            next_seq=self._seq,
        )

    def load(self, state: MemoryState) -> None:
        self._journals = {j.npc_id: j.model_copy(deep=True) for j in state.journals}
        self._shared = list(state.shared)
        self._gossip = [g.model_copy(deep=True) for g in state.gossip]
        self._weekly = {int(k): list(v) for k, v in state.weekly.items()}
        self._seq = state.next_seq
