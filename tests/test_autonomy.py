"""Tests for social_core.autonomy — AutonomyEngine."""

import random

import pytest

from social_core.autonomy import AutonomyEngine, trait_fit
from social_core.clock import VirtualClock
from social_core.config import SimConfig
from social_core.graph import RelationshipGraph
from social_core.memory import MemoryEngine
from social_core.models import NPCDecision, Personality
from social_core.roster import Roster


class World:
    def __init__(self) -> None:
        self.rng = random.Random(4)
        self.clock = VirtualClock(start=1000.0)
        self.config = SimConfig()
        self.roster = Roster()
        self.schemer = self.roster.add("Lena", ["deceptive", "calculating"])
        self.brute = self.roster.add("Dex", ["aggressive", "charming"])
        self.loyal = self.roster.add("Ivy", ["loyal"])
        self.player = self.roster.add("Sam", is_player=True)
        self.graph = RelationshipGraph(self.rng)
        self.graph.initialize(self.roster.ids())
        self.memory = MemoryEngine(self.roster, self.rng)
        self.memory.init_journals()
        self.engine = AutonomyEngine(
            self.roster, self.graph, self.memory, self.rng, self.clock, self.config
        )
        self.engine.initialize()

    def motive_types(self, npc_id: int) -> list[str]:
        return [m.type for m in self.engine.motives_for(npc_id)]


@pytest.fixture
def world() -> World:
    return World()


class TestMotives:
    def test_initial_motives_follow_personality(self, world) -> None:
        types = world.motive_types(world.schemer.id)
        assert types[0] == "survival"
        assert "alliance_building" in types
        assert "information_gathering" in types
        assert world.motive_types(world.loyal.id) == ["survival"]

    def test_player_has_no_motives(self, world) -> None:
        assert world.engine.motives_for(world.player.id) == []

    def test_survival_falls_as_trust_rises(self, world) -> None:
        for rel in world.graph.relationships_for(world.loyal.id):
            rel.trust = 90
        world.engine.refresh_motives(world.loyal, day=2)
        assert world.engine.motives_for(world.loyal.id)[0].intensity == 50

    def test_betrayal_memory_creates_revenge(self, world) -> None:
        world.memory.record_event(
            day=3, type="betrayal", participants=[world.schemer.id, world.loyal.id],
            content="betrayed", emotional_impact=-8, owners=[world.loyal.id],
        )
        world.engine.refresh_motives(world.loyal, day=3)
        world.engine.refresh_motives(world.schemer, day=3)

        revenge = [m for m in world.engine.motives_for(world.loyal.id) if m.type == "revenge"]
        assert len(revenge) == 1
        assert revenge[0].intensity == 80
        assert revenge[0].targets == [world.schemer.id]
        assert revenge[0].deadline == 6
        assert "revenge" not in world.motive_types(world.schemer.id)

    def test_revenge_expires_after_deadline(self, world) -> None:
        world.memory.record_event(
            day=3, type="betrayal", participants=[world.schemer.id, world.loyal.id],
            content="betrayed", emotional_impact=-8, owners=[world.loyal.id],
        )
        world.engine.refresh_motives(world.loyal, day=3)
        world.engine.refresh_motives(world.loyal, day=7)
        assert "revenge" not in world.motive_types(world.loyal.id)

    def test_romance_needs_charisma_and_a_warm_edge(self, world) -> None:
        edge = world.graph.get(world.brute.id, world.loyal.id)
        edge.trust, edge.closeness = 70, 60
        world.engine.refresh_motives(world.brute, day=1)
        romance = [m for m in world.engine.motives_for(world.brute.id) if m.type == "romance"]
        assert romance and romance[0].targets == [world.loyal.id]

    def test_romance_ends_when_target_is_eliminated(self, world) -> None:
        edge = world.graph.get(world.brute.id, world.loyal.id)
        edge.trust, edge.closeness = 70, 60
        world.engine.refresh_motives(world.brute, day=1)
        world.roster.eliminate(world.loyal.id)
        world.engine.refresh_motives(world.brute, day=2)
        assert "romance" not in world.motive_types(world.brute.id)

    def test_romance_ends_when_trust_sours(self, world) -> None:
        edge = world.graph.get(world.brute.id, world.loyal.id)
        edge.trust, edge.closeness = 70, 60
        world.engine.refresh_motives(world.brute, day=1)
        edge.trust = 20
        world.engine.refresh_motives(world.brute, day=2)
        assert "romance" not in world.motive_types(world.brute.id)
        assert world.motive_types(world.brute.id).count("survival") == 1


class TestCandidates:
    def test_revenge_against_an_ally_is_betrayal(self, world) -> None:
        world.graph.form_alliance(world.loyal.id, world.schemer.id)
        world.memory.record_event(
            day=2, type="alliance_break", participants=[world.schemer.id, world.loyal.id],
            content="broken", emotional_impact=-6,
        )
        world.engine.refresh_motives(world.loyal, day=2)
        kinds = [d.type for d in world.engine.candidates(world.loyal)]
        assert "betray_alliance" in kinds

    def test_aggressive_revenge_is_confrontation(self, world) -> None:
        world.memory.record_event(
            day=2, type="betrayal", participants=[world.schemer.id, world.brute.id],
            content="betrayed", emotional_impact=-6, owners=[world.brute.id],
        )
        world.engine.refresh_motives(world.brute, day=2)
        decisions = [d for d in world.engine.candidates(world.brute) if d.motivation == "revenge"]
        assert decisions[0].type == "confront"
        assert decisions[0].target == world.schemer.id
        assert "Lena" in decisions[0].content

    def test_decisions_carry_motive_urgency(self, world) -> None:
        for d in world.engine.candidates(world.schemer):
            motive = next(m for m in world.engine.motives_for(world.schemer.id) if m.type == d.motivation)
            assert d.urgency == motive.intensity


class TestSelection:
    def _decision(self, world, kind="confront", urgency=80.0) -> NPCDecision:
        return NPCDecision(
            type=kind, actor=world.brute.id, target=world.loyal.id,
            content="x", motivation="survival", urgency=urgency,
        )

    def test_trait_fit(self) -> None:
        p = Personality(aggressiveness=80, manipulation=50, risk_tolerance=40, loyalty=20)
        assert trait_fit("confront", p) == pytest.approx(0.8)
        assert trait_fit("spread_rumor", p) == pytest.approx(0.2)
        assert trait_fit("betray_alliance", p) == pytest.approx(0.8)
        assert trait_fit("send_dm", p) == 1.0

    def test_recent_action_halves_weight(self, world) -> None:
        decision = self._decision(world)
        recent = world.engine.weight(world.brute.id, decision)
        world.clock.advance(world.config.recent_action_seconds + 1)
        assert world.engine.weight(world.brute.id, decision) == pytest.approx(recent * 2)

    def test_select_empty_and_single(self, world) -> None:
        assert world.engine.select(world.brute.id, []) is None
        only = self._decision(world)
        assert world.engine.select(world.brute.id, [only]) is only

    def test_cooldown_blocks_execution(self, world) -> None:
        decision = self._decision(world, urgency=100)
        assert world.engine.should_execute(world.brute.id, decision) is False
        world.clock.advance(world.config.decision_cooldown_seconds + 1)
        assert world.engine.should_execute(world.brute.id, decision) is True

    def test_no_decisions_inside_cooldown(self, world) -> None:
        assert world.engine.update(day=1) == []

    def test_executed_decisions_are_stamped(self, world) -> None:
        world.clock.advance(world.config.decision_cooldown_seconds + 1)
        for decision in world.engine.update(day=1):
            assert decision.created_at == world.clock.now()
            assert world.engine.last_action_at(decision.actor) == world.clock.now()
            assert decision.actor != world.player.id


class TestSnapshot:
    def test_relative_times_survive_a_new_clock(self, world) -> None:
        world.clock.advance(50)
        states = world.engine.export()
        assert all(s.seconds_since_action == 50 for s in states)

        clock = VirtualClock(start=5.0)
        other = AutonomyEngine(world.roster, world.graph, world.memory, random.Random(0), clock, world.config)
        other.load(states)
        assert other.last_action_at(world.brute.id) == pytest.approx(-45.0)
        assert other.motives_for(world.schemer.id) == world.engine.motives_for(world.schemer.id)
