"""Game orchestrator. Owns every engine and runs the two entry points.

Tick flow (throttled to tick_interval_seconds; early calls only run health checks):
  1. Autonomy engine picks NPC decisions; each is applied to graph + memory.
  2. Emergent event engine seeds / escalates events and applies them.
  3. Follow-ups scheduled by earlier player actions that are now due run
     as NPC decisions.

Player-action flow:
  1. Resolve the target name to an id (unknown -> warning + neutral no-op).
  2. Classify the utterance. Meta text short-circuits to the fourth-wall reply.
  3. Surface -> intent -> hypotheses -> the target NPC's reading.
  4. Response synthesis: tone, strategy, line, consequences, follow-up.
  5. Apply consequences to the graph and the NPC's memory; schedule the
     follow-up 30-90 s ahead on the clock.
  6. Summarise the reaction for the caller.

respond() wraps the player action with the asynchronous phrase renderer and
drops the rendered text if the day/turn stamp moved while it was awaited.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable

from social_core.analysis import (
    SocialInterpretationEngine,
    SpeechActClassifier,
    analyze_surface,
    build_hypotheses,
    parse_intent,
)
from social_core.autonomy import AutonomyEngine
from social_core.clock import Clock, Scheduler, WallClock
from social_core.config import SimConfig
from social_core.events import EmergentEventEngine
from social_core.graph import RelationshipGraph
from social_core.memory import MemoryEngine
from social_core.models import (
    ActionResult,
    CastEntry,
    CastMember,
    ConversationType,
    DebugInfo,
    DecisionType,
    HealthCheck,
    MemoryQuery,
    MemorySearchResult,
    MotiveType,
    NPCDecision,
    NPCResponse,
    PlayerAction,
    ReactionSummary,
    SocialStanding,
    TickResult,
)
from social_core.renderer import PhraseRenderer, RenderRequest, render_with_fallback
from social_core.responses import ResponseContext, ResponseEngine
from social_core.roster import Roster
from social_core.snapshot import GameSnapshot, PendingTask
from social_core.templates import bank

logger = logging.getLogger(__name__)

FOLLOW_UP_DELAY = (30.0, 90.0)
ACTIVITY_FLOOR = 5
EXTREME_SHARE = 0.6

# follow-up -> (decision it becomes, motive behind it)
FOLLOW_UPS: dict[str, tuple[DecisionType, MotiveType]] = {
    "dm_player": ("send_dm", "information_gathering"),
    "form_alliance": ("propose_alliance", "alliance_building"),
    "spread_rumor": ("spread_rumor", "chaos"),
    "scheme": ("scheme", "survival"),
}
FOLLOW_UP_LINES = {
    "dm_player": bank(
        "Hey {target}, can we talk privately? I've been thinking about what you said.",
        "{target}, quick word away from everyone else?",
    ),
    "form_alliance": bank(
        "{target}, I meant what I said. Let's make it official, just the two of us.",
    ),
    "spread_rumor": bank(
        "Be careful with {target}. They've been fishing for information all day.",
        "I don't know what {target} is playing at, but it isn't what they say it is.",
    ),
    "scheme": bank(
        "{target} is getting too comfortable. Time to do something about it.",
    ),
}


def _normalise(text: str) -> str:
    return " ".join(text.lower().split())


class Game:
    """One game's worth of social state. Single writer; no globals."""

    def __init__(
        self,
        config: SimConfig | None = None,
        *,
        clock: Clock | None = None,
        renderer: PhraseRenderer | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or SimConfig()
        self.clock = clock or WallClock()
        self.renderer = renderer
        self.rng = rng or random.Random(self.config.seed)
        self.day = 1
        self.turn = 0
        self.initialized = False
        self._last_tick: float | None = None
        self._build(Roster())

    def _build(self, roster: Roster) -> None:
        cfg = self.config
        self.roster = roster
        self.graph = RelationshipGraph(self.rng, grace_days=cfg.decay_grace_days)
        self.memory = MemoryEngine(roster, self.rng)
        self.autonomy = AutonomyEngine(roster, self.graph, self.memory, self.rng, self.clock, cfg)
        self.events = EmergentEventEngine(
            roster, self.graph, self.memory, self.autonomy, self.rng, self.clock, cfg
        )
        self.classifier = SpeechActClassifier(cfg.meta_markers)
        self.interpreter = SocialInterpretationEngine(self.rng)
        self.responses = ResponseEngine(self.rng)
        self.scheduler = Scheduler()

    # ── setup ───────────────────────────────────────────────

    def new_cast(
        self, cast: Iterable[CastEntry], *, player_name: str | None = None, day: int = 1
    ) -> None:
        """Start over with a fresh cast. The player joins the roster too."""
        roster = Roster()
        for entry in cast:
            roster.add(entry.name, entry.dispositions)
        roster.add(player_name or self.config.player_name, is_player=True)
        self._build(roster)

        self.day = day
        self.turn = 0
        self.graph.initialize(roster.ids())
        self.memory.init_journals()
        self.autonomy.initialize()
        self.events.initialize()
        self._last_tick = self.clock.now()
        self.initialized = True
        logger.info("New cast: %d contestants, day %d", len(roster), day)

    @property
    def player(self) -> CastMember | None:
        return self.roster.player

    @property
    def stamp(self) -> tuple[int, int]:
        return self.day, self.turn

    def advance_day(self, days: int = 1) -> int:
        """Move the game clock forward by whole days and let relationships cool."""
        for _ in range(max(0, days)):
            self.day += 1
            self.graph.decay(self.day)
        self.turn += 1
        logger.info("Day %d", self.day)
        return self.day

    def vote(self, votes: dict[str, str], eliminated: str) -> bool:
        """Apply an elimination vote given as voter name -> target name."""
        out_id = self.roster.id_for(eliminated)
        if out_id is None:
            logger.warning("vote: unknown eliminated contestant %r", eliminated)
            return False

        by_id: dict[int, int] = {}
        for voter, target in votes.items():
            voter_id, target_id = self.roster.id_for(voter), self.roster.id_for(target)
            if voter_id is None or target_id is None:
                logger.warning("vote: skipping unknown ballot %r -> %r", voter, target)
                continue
            by_id[voter_id] = target_id

        self.graph.voting_update(by_id, out_id, self.day)
        for voter_id, target_id in by_id.items():
            self.memory.record_event(
                day=self.day, type="vote", participants=[voter_id, target_id],
                content=f"{self.roster.name_of(voter_id)} voted for {self.roster.name_of(target_id)}",
                importance=6, owners=[voter_id],
            )
        self.memory.record_event(
            day=self.day, type="elimination", participants=[out_id],
            content=f"{eliminated} was voted out", emotional_impact=-3, importance=9,
            owners=[m.id for m in self.roster.members() if not m.eliminated],
        )
        self.roster.eliminate(out_id)
        self.turn += 1
        logger.info("%s eliminated on day %d (%d ballots)", eliminated, self.day, len(by_id))
        return True

    # ── tick ────────────────────────────────────────────────

    def tick(self, force: bool = False) -> TickResult:
        if not self.initialized:
            logger.warning("tick: no cast yet")
            return TickResult(ran=False)

        now = self.clock.now()
        if (
            not force
            and self._last_tick is not None
            and now - self._last_tick < self.config.tick_interval_seconds
        ):
            return TickResult(ran=False, health=self.health_checks())

        decisions = self.autonomy.update(self.day)
        for decision in decisions:
            self.apply_decision(decision)
        events = self.events.generate(self.day)
        follow_ups = self._run_follow_ups(now)

        self._last_tick = now
        self.turn += 1
        return TickResult(
            ran=True,
            decisions=decisions,
            events=events,
            follow_ups=follow_ups,
            health=self.health_checks(),
        )

    def _run_follow_ups(self, now: float) -> list[NPCDecision]:
        player = self.roster.player
        out: list[NPCDecision] = []
        for task in self.scheduler.due(now, self.day):
            npc = self.roster.get(task.payload.get("npc", -1))
            if npc is None or npc.eliminated or player is None:
                continue
            kind, motive = FOLLOW_UPS[task.kind]
            content = self.rng.choice(FOLLOW_UP_LINES[task.kind]).render(
                {"target": lambda: player.name}
            )
            decision = NPCDecision(
                type=kind,
                actor=npc.id,
                target=player.id,
                content=content,
                motivation=motive,
                urgency=50,
                created_at=now,
            )
            self.apply_decision(decision)
            self.autonomy.mark_acted(npc.id)
            out.append(decision)
        return out

    # ── decisions ───────────────────────────────────────────

    def apply_decision(self, decision: NPCDecision) -> None:
        actor = self.roster.get(decision.actor)
        if actor is None or actor.eliminated:
            logger.debug("decision dropped: actor %r gone", decision.actor)
            return
        target = self.roster.get(decision.target) if decision.target is not None else None
        if decision.target is not None and (target is None or target.eliminated):
            logger.warning("decision %s: unknown or eliminated target %r", decision.type, decision.target)
            return

        handler = getattr(self, f"_decision_{decision.type}")
        handler(decision, actor, target)

    def _decision_initiate_conversation(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        participants = [actor.id] + ([target.id] if target else [])
        self.memory.record_event(
            day=self.day, type="conversation", participants=participants,
            content=d.content, emotional_impact=2,
        )
        if target is not None:
            self.graph.update(actor.id, target.id, 3, 0, 2, "conversation", "Initiated friendly conversation", self.day)

    def _decision_send_dm(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        if target is None:
            return
        self.memory.record_event(
            day=self.day, type="conversation", participants=[actor.id, target.id],
            content=d.content, emotional_impact=1,
        )
        self.graph.update(actor.id, target.id, 2, -1, 3, "conversation", "Private message exchange", self.day)

    def _decision_propose_alliance(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        if target is None:
            return
        rel = self.graph.get(target.id, actor.id)
        accept = (rel.trust + 50) / 150 if rel is not None else 0.3
        if self.rng.random() < accept:
            self.graph.form_alliance(actor.id, target.id, 60)
            self.memory.record_event(
                day=self.day, type="alliance_form", participants=[actor.id, target.id],
                content=f"Secret alliance formed between {actor.name} and {target.name}",
                emotional_impact=5, importance=8,
            )
        else:
            self.graph.update(target.id, actor.id, -5, 10, -2, "scheme", "Rejected alliance proposal", self.day)

    def _decision_betray_alliance(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        if target is None:
            return
        self.graph.break_alliance(actor.id, target.id, 70)
        content = f"{actor.name} betrayed their alliance with {target.name}"
        self.memory.record_event(
            day=self.day, type="betrayal", participants=[actor.id, target.id],
            content=content, emotional_impact=-8, importance=9, owners=[target.id],
        )
        self.memory.record_event(
            day=self.day, type="scheme", participants=[actor.id, target.id],
            content=content, emotional_impact=3, importance=7, owners=[actor.id],
        )

    def _decision_spread_rumor(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        about = target.id if target else None
        listeners = [
            m for m in self.roster.members()
            if not m.eliminated and m.id not in (actor.id, about)
        ]
        hearers = self.rng.sample(listeners, min(3, len(listeners)))
        gossip = self.memory.spread_gossip(d.content, actor.id, self.day, "rumor", about=about)
        if gossip is None:
            return
        for hearer in hearers:
            self.memory.hear_gossip(gossip, hearer.id)
            self.memory.record_event(
                day=self.day, type="gossip",
                participants=[actor.id] + ([about] if about is not None else []),
                content=f"{actor.name} spread rumors: {d.content}",
                emotional_impact=-2, reliability="rumor",
                witnessed=[hearer.id], owners=[hearer.id],
            )
            if about is not None:
                self.graph.update(hearer.id, about, -3, 8, -1, "scheme", "Heard concerning rumors", self.day)

    def _decision_confront(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        if target is None:
            return
        self.graph.update(actor.id, target.id, -15, 20, -10, "confrontation", d.content, self.day)
        for owner, impact in ((actor.id, 2), (target.id, -6)):
            self.memory.record_event(
                day=self.day, type="conversation", participants=[actor.id, target.id],
                content=f"Confrontation: {d.content}", emotional_impact=impact,
                importance=7, owners=[owner],
            )

    def _decision_flirt(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        if target is None:
            return
        rel = self.graph.get(target.id, actor.id)
        receptive = rel.closeness if rel is not None else 30
        if receptive > 50:
            self.graph.update(actor.id, target.id, 5, -3, 15, "conversation", "Romantic interaction", self.day)
        else:
            self.graph.update(actor.id, target.id, -2, 5, -5, "conversation", "Unwelcome romantic advance", self.day)

    def _decision_scheme(self, d: NPCDecision, actor: CastMember, target: CastMember | None) -> None:
        participants = [actor.id] + ([target.id] if target else [])
        self.memory.record_event(
            day=self.day, type="scheme", participants=participants,
            content=d.content, emotional_impact=4, owners=[actor.id],
        )
        for other in self.roster.members():
            if other.eliminated or other.id == actor.id:
                continue
            if self.rng.random() < 0.3:
                self.graph.update(other.id, actor.id, -1, 3, 0, "conversation", "Noticed suspicious behavior", self.day)

    # ── player actions ──────────────────────────────────────

    def player_action(self, action: PlayerAction) -> ActionResult:
        result, ctx = self._act(action)
        if ctx is not None and result.response is not None:
            self.responses.record_exchange(ctx, action.content or "", result.text)
        return result

    async def respond(self, action: PlayerAction) -> ActionResult:
        """Player action plus rendered reply. Never raises on renderer trouble."""
        result, ctx = self._act(action)
        if ctx is None or result.response is None:
            return result

        stamp = self.stamp
        response = result.response
        request = RenderRequest(
            npc_name=ctx.npc.name,
            personality=ctx.npc.personality,
            tone=response.tone,
            strategy_summary=response.summary,
            player_text=action.content or "",
            player_name=ctx.player_name,
            history=self.responses.history(ctx.npc.id),
        )
        renderer = None if response.meta else self.renderer
        text, tier = await render_with_fallback(
            renderer, request, response.line, timeout=self.config.render_timeout_seconds
        )

        if self.stamp != stamp:
            logger.info(
                "Discarding rendered reply from %s: game moved from %s to %s",
                ctx.npc.name, stamp, self.stamp,
            )
            return result.model_copy(update={"stale": True})

        self.responses.record_exchange(ctx, action.content or "", text)
        return result.model_copy(update={"text": text, "render_tier": tier})

    def _act(self, action: PlayerAction) -> tuple[ActionResult, ResponseContext | None]:
        npc_id = self.roster.id_for(action.target)
        npc = self.roster.get(npc_id) if npc_id is not None else None
        player = self.roster.player
        if npc is None or npc.is_player or npc.eliminated or player is None:
            logger.warning("player_action: unknown target %r", action.target)
            return self._no_op(action), None

        content = action.content or ""
        conversation: ConversationType = "private" if action.type == "dm" else "public"
        ctx = self._context(npc, player, conversation)

        repeated = bool(content.strip()) and _normalise(content) in {
            _normalise(m) for m in self.classifier.profile.recent_messages
        }
        act = self.classifier.classify(content, self.roster.names())
        surface = analyze_surface(content, self.classifier.meta_pattern)
        intent = parse_intent(content, act, self.roster.names())

        if surface.meta_text:
            self.interpreter.observe(surface, act, repeated)
            response = self.responses.meta_response(ctx)
            self.responses.update_perception(ctx, act)
        else:
            ctx.drama_tension = min(100.0, ctx.drama_tension + act.threat_level * 0.2)
            hypotheses = build_hypotheses(act, surface, intent)
            reading = self.interpreter.interpret(
                npc.id,
                hypotheses,
                surface,
                npc.personality,
                relationship=ctx.relationship,
                public=conversation == "public",
                drama_tension=ctx.drama_tension,
                speech_act=act,
                repeated=repeated,
            )
            response = self.responses.respond(
                ctx,
                act,
                reading,
                global_tone=self.interpreter.state.global_tone,
                npc_tone=self.interpreter.tone_for(npc.id),
                anti_exploit=self.interpreter.anti_exploit,
            )

        self._apply_response(npc, player, action, response)
        if response.follow_up is not None:
            lo, hi = FOLLOW_UP_DELAY
            self.scheduler.schedule(
                at=self.clock.now() + lo + self.rng.random() * (hi - lo),
                day=self.day,
                kind=response.follow_up,
                payload={"npc": npc.id},
            )

        self.turn += 1
        reaction = self.responses.summarize(
            action.type, content, self.graph.get(npc.id, player.id), response
        )
        result = ActionResult(
            npc_id=npc.id,
            reaction=reaction,
            response=response,
            speech_act=act,
            intent=intent,
            day=self.day,
            turn=self.turn,
            text=response.line,
            render_tier="template",
        )
        return result, ctx

    def _no_op(self, action: PlayerAction) -> ActionResult:
        return ActionResult(
            reaction=ReactionSummary(
                take="neutral",
                context={"talk": "public", "dm": "private"}.get(action.type, action.type),
                notes=["no one answers"],
            ),
            day=self.day,
            turn=self.turn,
        )

    def _context(
        self, npc: CastMember, player: CastMember, conversation: ConversationType
    ) -> ResponseContext:
        rels = self.graph.relationships_for(npc.id)
        active = {m.id for m in self.roster.members() if not m.eliminated}
        others = [r for r in rels if r.target in active and r.target != player.id]

        recent = self.memory.recent_events(npc.id, self.day, 2)[-4:]
        drama_events = [
            e for e in self.memory.shared_events()
            if self.day - e.day <= 2 and e.type in ("scheme", "alliance_form", "gossip")
        ]
        return ResponseContext(
            npc=npc,
            player_name=player.name,
            conversation_type=conversation,
            relationship=self.graph.get(npc.id, player.id),
            alliances=[self.roster.name_of(r.target) for r in others if r.in_alliance],
            threats=[self.roster.name_of(r.target) for r in others if r.suspicion > 60],
            opportunities=[
                self.roster.name_of(r.target) for r in others if r.trust > 65 and not r.in_alliance
            ],
            recent_events=[e.content for e in recent],
            drama_tension=max(10.0, min(100.0, 30 + len(drama_events) * 10)),
        )

    def _apply_response(
        self, npc: CastMember, player: CastMember, action: PlayerAction, response: NPCResponse
    ) -> None:
        for c in response.consequences:
            if c.type == "trust_change":
                self.graph.update(npc.id, player.id, c.value, 0, 0, "conversation", c.description, self.day)
            elif c.type == "suspicion_change":
                self.graph.update(npc.id, player.id, 0, c.value, 0, "conversation", c.description, self.day)
            elif c.type == "memory_creation":
                self.memory.record_event(
                    day=self.day, type="conversation", participants=[player.id, npc.id],
                    content=c.description, emotional_impact=round(c.value / 10),
                    importance=7, owners=[npc.id],
                )
            elif c.type == "reputation_change":
                # the rest of the house hears about it
                for other in self.roster.npcs():
                    if other.id != npc.id:
                        self.graph.update(
                            other.id, player.id, c.value / 5, abs(c.value) / 5, 0,
                            "conversation", c.description, self.day,
                        )

        self.memory.record_event(
            day=self.day,
            type="conversation",
            participants=[player.id, npc.id],
            content=f"{player.name}: {action.content or ''}",
            emotional_impact=response.memory_impact,
            importance=min(10.0, abs(response.memory_impact) + 3),
            owners=[npc.id],
        )

    # ── health / reads ──────────────────────────────────────

    def health_checks(self) -> list[HealthCheck]:
        checks: list[HealthCheck] = []
        npcs = self.roster.npcs()

        activity = sum(len(self.memory.recent_events(n.id, self.day, 2)) for n in npcs)
        if activity < ACTIVITY_FLOOR:
            checks.append(HealthCheck(
                system="Drama Engine",
                status="warning",
                message="Low social activity detected",
                recommendations=["Force minimum drama event", "Increase NPC initiative"],
            ))

        edges = self.graph.edges()
        extreme = [r for r in edges if r.trust < 20 or r.trust > 80 or r.suspicion > 80]
        if edges and len(extreme) / len(edges) > EXTREME_SHARE:
            checks.append(HealthCheck(
                system="Relationship Graph",
                status="warning",
                message="Too many extreme relationships",
                recommendations=["Apply relationship decay", "Generate reconciliation events"],
            ))

        if (
            self._last_tick is not None
            and self.clock.now() - self._last_tick > self.config.tick_interval_seconds * 2
        ):
            checks.append(HealthCheck(
                system="Update Cycle",
                status="warning",
                message="Update cycle running slowly",
                recommendations=["Check for performance issues"],
            ))

        for check in checks:
            logger.info("health: %s - %s", check.system, check.message)
        return checks

    def standing(self, name: str) -> SocialStanding | None:
        npc_id = self.roster.id_for(name)
        if npc_id is None:
            logger.warning("standing: unknown name %r", name)
            return None
        return self.graph.social_standing(npc_id)

    def search_memory(self, name: str, query: MemoryQuery | None = None) -> MemorySearchResult:
        npc_id = self.roster.id_for(name)
        if npc_id is None:
            logger.warning("search_memory: unknown name %r", name)
            return MemorySearchResult()
        return self.memory.query(npc_id, query)

    def debug(self) -> DebugInfo:
        npcs = self.roster.npcs()
        return DebugInfo(
            day=self.day,
            turn=self.turn,
            drama_tension={n.name: self.events.tension_for(n.id) for n in npcs},
            standings={n.name: self.graph.social_standing(n.id) for n in npcs},
            motives={n.name: self.autonomy.motives_for(n.id) for n in npcs},
            player_profile=self.classifier.profile.model_copy(deep=True),
            anti_exploit=self.interpreter.anti_exploit.model_copy(),
            pending_follow_ups=len(self.scheduler),
        )

    # ── snapshot ────────────────────────────────────────────

    def export(self) -> GameSnapshot:
        now = self.clock.now()
        version, internal, gauss = self.rng.getstate()
        return GameSnapshot(
            day=self.day,
            turn=self.turn,
            cast=[m.model_copy(deep=True) for m in self.roster.members()],
            relationships=self.graph.export(),
            memory=self.memory.export(),
            autonomy=self.autonomy.export(),
            events=self.events.export(),
            interpretation=self.interpreter.state.model_copy(deep=True),
            player_profile=self.classifier.profile.model_copy(deep=True),
            responses=self.responses.export(),
            pending=[
                PendingTask(seconds_until=max(0.0, t.due - now), day=t.day, kind=t.kind, payload=dict(t.payload))
                for t in self.scheduler.pending()
            ],
            seconds_since_tick=None if self._last_tick is None else max(0.0, now - self._last_tick),
            rng_state=(version, list(internal), gauss),
        )

    def load(self, snapshot: GameSnapshot) -> None:
        now = self.clock.now()
        if snapshot.rng_state is not None:
            version, internal, gauss = snapshot.rng_state
            self.rng.setstate((version, tuple(internal), gauss))

        self._build(Roster(m.model_copy(deep=True) for m in snapshot.cast))
        self.day = snapshot.day
        self.turn = snapshot.turn
        self.graph.load(snapshot.relationships)
        self.memory.load(snapshot.memory)
        self.autonomy.load(snapshot.autonomy)
        self.events.load(snapshot.events)
        self.interpreter.state = snapshot.interpretation.model_copy(deep=True)
        self.classifier.profile = snapshot.player_profile.model_copy(deep=True)
        self.responses.load(snapshot.responses)
        for task in snapshot.pending:
            self.scheduler.schedule(
                at=now + task.seconds_until, day=task.day, kind=task.kind, payload=dict(task.payload)
            )
        self._last_tick = None if snapshot.seconds_since_tick is None else now - snapshot.seconds_since_tick
        self.initialized = bool(snapshot.cast)
        logger.info("Loaded snapshot: day %d, %d contestants", self.day, len(self.roster))
