"""Tests for social_core.memory — MemoryEngine."""

import random

import pytest

from social_core.memory import GOSSIP_LIMIT, SHARED_LIMIT, MemoryEngine, STRATEGIES, week_of
from social_core.models import DayRange, MemoryQuery
from social_core.roster import Roster


@pytest.fixture
def roster() -> Roster:
    r = Roster()
    r.add("Mara", ["loyal"])
    r.add("Dex", ["aggressive"])
    r.add("Ivy")
    return r


@pytest.fixture
def memory(roster) -> MemoryEngine:
    engine = MemoryEngine(roster, random.Random(3))
    engine.init_journals()
    return engine


class TestJournals:
    def test_one_journal_per_member(self, memory, roster) -> None:
        for member_id in roster.ids():
            assert memory.journal(member_id) is not None

    def test_strategy_from_personality(self, memory, roster) -> None:
        assert memory.journal(roster.id_for("Mara")).strategy == STRATEGIES[1]
        assert memory.journal(roster.id_for("Dex")).strategy == STRATEGIES[2]
        assert memory.journal(roster.id_for("Ivy")).strategy in STRATEGIES

    def test_unknown_id_reads_empty(self, memory) -> None:
        assert memory.journal(99) is None
        assert memory.query(99).events == []
        assert memory.generate_personal_notes(99) == []
        assert memory.strategic_context(99, 1) is None


class TestRecordEvent:
    def test_lands_in_every_participant_journal(self, memory) -> None:
        event = memory.record_event(day=2, type="conversation", participants=[1, 2], content="chat")
        assert event in memory.journal(1).events
        assert event in memory.journal(2).events
        assert event not in memory.journal(3).events
        assert memory.shared_events() == [event]

    def test_owners_override_participants(self, memory) -> None:
        event = memory.record_event(
            day=2, type="betrayal", participants=[1, 2], content="x", owners=[2]
        )
        assert event not in memory.journal(1).events
        assert event in memory.journal(2).events

    def test_ids_are_sequential(self, memory) -> None:
        a = memory.record_event(day=1, type="conversation", participants=[1], content="a")
        b = memory.record_event(day=1, type="conversation", participants=[1], content="b")
        assert (a.id, b.id) == ("m1-1", "m1-2")

    def test_scores_are_clamped(self, memory) -> None:
        event = memory.record_event(
            day=1, type="conversation", participants=[1], content="x",
            emotional_impact=40, importance=-3,
        )
        assert event.emotional_impact == 10
        assert event.importance == 0

    def test_weekly_buckets(self, memory) -> None:
        memory.record_event(day=3, type="conversation", participants=[1], content="week one")
        memory.record_event(day=9, type="conversation", participants=[1], content="week two")
        assert week_of(9) == 2
        assert [e.content for e in memory.weekly(2)] == ["week two"]

    def test_journal_is_capped(self, memory) -> None:
        for i in range(120):
            memory.record_event(day=1, type="conversation", participants=[1], content=str(i))
        events = memory.journal(1).events
        assert len(events) == 100
        assert events[-1].content == "119"

    def test_weekly_follows_shared_eviction(self, memory) -> None:
        for i in range(SHARED_LIMIT + 10):
            memory.record_event(day=1, type="conversation", participants=[1], content=str(i))
        week = memory.weekly(week_of(1))
        assert len(week) == len(memory.shared_events()) == SHARED_LIMIT
        assert week[0].content == "10"
        assert len(memory.export().weekly[week_of(1)]) == SHARED_LIMIT

    def test_emptied_week_bucket_is_dropped(self, memory) -> None:
        memory.record_event(day=1, type="conversation", participants=[1], content="old week")
        for i in range(SHARED_LIMIT):
            memory.record_event(day=8, type="conversation", participants=[1], content=str(i))
        assert memory.weekly(1) == []
        assert 1 not in memory.export().weekly


class TestQuery:
    def test_compound_filters_and_day_descending(self, memory) -> None:
        memory.record_event(day=1, type="conversation", participants=[1, 2], content="old", importance=8)
        memory.record_event(day=4, type="scheme", participants=[1, 3], content="scheme", importance=8)
        memory.record_event(day=5, type="conversation", participants=[1, 2], content="new", importance=8)
        memory.record_event(day=6, type="conversation", participants=[1, 2], content="minor", importance=2)

        result = memory.query(1, MemoryQuery(
            participants=[2],
            types=["conversation"],
            day_range=DayRange(start=1, end=6),
            min_importance=5,
        ))
        assert [e.content for e in result.events] == ["new", "old"]

    def test_reliability_filter(self, memory) -> None:
        memory.record_event(day=1, type="gossip", participants=[1], content="heard", reliability="rumor")
        memory.record_event(day=1, type="conversation", participants=[1], content="saw")
        result = memory.query(1, MemoryQuery(reliability=["rumor"]))
        assert [e.content for e in result.events] == ["heard"]

    def test_events_between(self, memory) -> None:
        for day in (1, 3, 5):
            memory.record_event(day=day, type="conversation", participants=[1], content=str(day))
        assert [e.content for e in memory.events_between(1, 2, 5)] == ["5", "3"]


class TestJournalMutators:
    def test_promises_and_notes(self, memory) -> None:
        memory.record_promise(1, 2, "keep you safe", day=2)
        notes = memory.generate_personal_notes(1)
        assert notes == ["Must follow through on promise to Dex: keep you safe"]

        assert memory.resolve_promise(1, 2, kept=False) is True
        assert memory.generate_personal_notes(1) == ["Broke promise to Dex - they may not trust me"]
        assert memory.resolve_promise(1, 2, kept=True) is False

    def test_threats_and_bonds_in_notes(self, memory) -> None:
        memory.update_threat_assessment(1, 2, 9)
        memory.update_personal_bond(1, 3, 4)
        notes = memory.generate_personal_notes(1)
        assert "Dex is a major threat - consider voting them out" in notes
        assert "Ivy is a close ally - protect them" in notes
        assert memory.journal(3).personal_bonds[1] == 4

    def test_notes_are_capped(self, memory) -> None:
        for i in range(8):
            memory.record_promise(1, 2, f"promise {i}", day=1)
        assert len(memory.generate_personal_notes(1)) == 5

    def test_threat_is_clamped(self, memory) -> None:
        memory.update_threat_assessment(1, 2, 50)
        assert memory.journal(1).threat_assessment[2] == 10

    def test_voting_plan(self, memory) -> None:
        memory.update_voting_plan(1, 2, "too loud", day=3)
        journal = memory.journal(1)
        assert journal.voting_plan == 2
        assert journal.events[-1].type == "vote"

    def test_secret_sharing(self, memory) -> None:
        memory.record_secret(about=2, secret="Dex has an idol", known_by=1, day=2)
        assert memory.share_secret(1, 3, about=2) is True
        assert memory.journal(3).secrets[0].secret == "Dex has an idol"
        assert memory.journal(1).secrets[0].shared_with == [3]
        assert memory.share_secret(1, 3, about=3) is False

    def test_gossip_spread(self, memory) -> None:
        gossip = memory.spread_gossip("Ivy is flipping", source=1, day=2, about=3)
        memory.hear_gossip(gossip, 2)
        memory.hear_gossip(gossip, 2)
        memory.hear_gossip(gossip, 1)
        assert gossip.spread_to == [2]
        assert gossip.strategic_value == 5
        assert memory.query(2).relevant_gossip == [gossip]
        assert memory.query(3).relevant_gossip == []

    def test_gossip_with_unknown_ids_is_noop(self, memory) -> None:
        assert memory.spread_gossip("who?", source=99, day=2) is None
        assert memory.spread_gossip("about a ghost", source=1, day=2, about=99) is None
        assert memory.gossip() == []
        gossip = memory.spread_gossip("Ivy is flipping", source=1, day=2, about=3)
        assert memory.hear_gossip(gossip, 99) is False
        assert memory.hear_gossip(gossip, 2) is True
        assert gossip.spread_to == [2]

    def test_gossip_is_capped(self, memory) -> None:
        for i in range(GOSSIP_LIMIT + 5):
            memory.spread_gossip(f"rumor {i}", source=1, day=1)
        kept = memory.gossip()
        assert len(kept) == GOSSIP_LIMIT
        assert kept[0].info == "rumor 5"

    def test_unknown_owner_is_noop(self, memory) -> None:
        memory.record_promise(99, 1, "x", day=1)
        memory.update_threat_assessment(99, 1, 5)
        assert memory.shared_events() == []


class TestStrategicContext:
    def test_context(self, memory) -> None:
        memory.record_event(day=5, type="scheme", participants=[1], content="big", importance=9)
        memory.record_event(day=5, type="conversation", participants=[1], content="small", importance=2)
        memory.update_threat_assessment(1, 2, 8)
        memory.update_personal_bond(1, 3, 3)
        ctx = memory.strategic_context(1, day=6)
        assert ctx.recent_events[0] == "big"
        assert ctx.top_threats == [2]
        assert ctx.allies == [3]


class TestSnapshot:
    def test_export_load_keeps_sequence(self, memory, roster) -> None:
        memory.record_event(day=1, type="conversation", participants=[1], content="a")
        state = memory.export()
        restored = MemoryEngine(roster, random.Random(0))
        restored.load(state)
        event = restored.record_event(day=1, type="conversation", participants=[1], content="b")
        assert event.id == "m1-2"
        assert len(restored.journal(1).events) == 2
