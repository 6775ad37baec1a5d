"""Tests for social_core.responses — ResponseEngine."""

import random

import pytest

from social_core.models import (
    AntiExploitProfile,
    CastMember,
    EmotionalSubtext,
    NPCResponse,
    PerceivedIntent,
    Personality,
    Relationship,
    ResponseConsequence,
    SpeechAct,
)
from social_core.responses import REACTION_NOTES, ResponseContext, ResponseEngine


def _ctx(**kwargs) -> ResponseContext:
    return ResponseContext(npc=CastMember(id=1, name="Mara"), player_name="Sam", **kwargs)


def _rel(**scores) -> Relationship:
    return Relationship(source=1, target=0, **scores)


def _reading(**kwargs) -> PerceivedIntent:
    defaults = dict(
        npc_id=1,
        social_strategy="deflection",
        emotional_posture="guarded",
        game_motive="venting",
        risk_tolerance="cautious",
        divergence=0,
        hostility=20,
        warmth=20,
        certainty=0.9,
    )
    defaults.update(kwargs)
    return PerceivedIntent(**defaults)


@pytest.fixture
def engine() -> ResponseEngine:
    return ResponseEngine(random.Random(3))


# ---------------------------------------------------------------------------
# Tone and strategy
# ---------------------------------------------------------------------------


class TestTone:
    def test_threat_reads_aggressive(self, engine) -> None:
        act = SpeechAct(threat_level=70)
        assert engine.determine_tone(act, _ctx(), Personality()) == "aggressive"

    def test_trusted_speaker_reads_friendly(self, engine) -> None:
        ctx = _ctx(relationship=_rel(trust=70))
        assert engine.determine_tone(SpeechAct(), ctx, Personality()) == "friendly"

    def test_high_drama_makes_neutral_suspicious(self, engine) -> None:
        ctx = _ctx(drama_tension=80)
        assert engine.determine_tone(SpeechAct(), ctx, Personality()) == "suspicious"

    def test_calm_house_softens_suspicion(self, engine) -> None:
        act = SpeechAct(manipulation_level=70)
        assert engine.determine_tone(act, _ctx(), Personality()) == "suspicious"
        assert engine.determine_tone(act, _ctx(drama_tension=20), Personality()) == "neutral"

    def test_uncertain_reading_leaves_tone_alone(self, engine) -> None:
        reading = _reading(warmth=90, hostility=0, certainty=0.2)
        assert engine.adjust_tone("neutral", reading, Personality()) == "neutral"

    def test_warm_reading_nudges_to_friendly(self, engine) -> None:
        reading = _reading(warmth=90, hostility=10)
        assert engine.adjust_tone("suspicious", reading, Personality()) == "friendly"

    def test_hostile_reading_cools_friendly(self, engine) -> None:
        reading = _reading(hostility=80, warmth=0)
        assert engine.adjust_tone("friendly", reading, Personality()) == "suspicious"


class TestStrategy:
    def test_choices(self, engine) -> None:
        assert engine.choose_strategy(SpeechAct(), "flirty") == "reciprocal_flirting"
        assert (
            engine.choose_strategy(SpeechAct(primary="alliance_proposal"), "friendly")
            == "strategic_alliance"
        )
        assert engine.choose_strategy(SpeechAct(threat_level=70), "aggressive") == "confrontational"
        assert engine.choose_strategy(SpeechAct(threat_level=70), "neutral") == "defensive"
        asking = SpeechAct(information_seeking=True)
        assert engine.choose_strategy(asking, "strategic") == "information_extraction"
        assert engine.choose_strategy(asking, "neutral") == "suspicious"
        assert engine.choose_strategy(SpeechAct(), "neutral") == "neutral"

    def test_alliance_signal_upgrades_friendly_chat(self, engine) -> None:
        reading = _reading(game_motive="alliance_signaling")
        assert engine.choose_strategy(SpeechAct(), "friendly", reading) == "strategic_alliance"


# ---------------------------------------------------------------------------
# Consequences and follow-ups
# ---------------------------------------------------------------------------


class TestConsequences:
    def test_sincere_trust_building(self, engine) -> None:
        act = SpeechAct(trust_building=True)
        out = engine.consequences(act, EmotionalSubtext(sincerity=60))
        assert [(c.type, c.value) for c in out] == [("trust_change", 11)]

    def test_manipulation_and_threat(self, engine) -> None:
        act = SpeechAct(manipulation_level=80, threat_level=50)
        out = {c.type: c.value for c in engine.consequences(act, EmotionalSubtext())}
        assert out == {"memory_creation": 50, "suspicion_change": 16}

    def test_trust_gain_is_clamped(self, engine) -> None:
        act = SpeechAct(trust_building=True)
        reading = _reading(warmth=100, hostility=0, certainty=1.0)
        out = engine.consequences(act, EmotionalSubtext(sincerity=100), reading)
        assert [(c.type, c.value) for c in out] == [("trust_change", 20)]

    def test_formulaic_phrasing_dampens_trust(self, engine) -> None:
        act = SpeechAct(trust_building=True)
        exploit = AntiExploitProfile(pr_like_tone_score=60, keyword_spam_score=30)
        out = engine.consequences(act, EmotionalSubtext(sincerity=60), anti_exploit=exploit)
        assert out[0].value == pytest.approx(7.7)

    def test_memory_impact_bounds(self, engine) -> None:
        assert engine.memory_impact(SpeechAct(), EmotionalSubtext()) == 5
        loud = SpeechAct(threat_level=100)
        assert engine.memory_impact(loud, EmotionalSubtext(anger=100)) == 10


class TestFollowUp:
    def test_trusted_alliance_pitch(self, engine) -> None:
        ctx = _ctx(relationship=_rel(trust=70, suspicion=10))
        act = SpeechAct(primary="alliance_proposal")
        assert engine.follow_up(act, ctx, "friendly", []) == "form_alliance"

    def test_strategic_question_gets_a_dm(self, engine) -> None:
        act = SpeechAct(information_seeking=True)
        assert engine.follow_up(act, _ctx(), "strategic", []) == "dm_player"

    def test_hostile_reading_spreads_rumor(self, engine) -> None:
        shift = [ResponseConsequence(type="suspicion_change", value=5, description="x")]
        reading = _reading(hostility=80, warmth=0)
        assert engine.follow_up(SpeechAct(), _ctx(), "neutral", shift, reading) == "spread_rumor"

    def test_aggressive_tone_schemes(self, engine) -> None:
        assert engine.follow_up(SpeechAct(), _ctx(), "aggressive", []) == "scheme"

    def test_nothing_to_follow_up(self, engine) -> None:
        assert engine.follow_up(SpeechAct(), _ctx(), "neutral", []) is None


# ---------------------------------------------------------------------------
# Lines, perception and history
# ---------------------------------------------------------------------------


class TestLines:
    def test_alliance_line_names_partner(self, engine) -> None:
        act = SpeechAct(primary="alliance_proposal")
        line = engine.rule_line(act, _ctx(alliances=["Ivy"]), "friendly")
        assert line.startswith("If we lock in with Ivy,")

    def test_aggressive_line_names_mention(self, engine) -> None:
        act = SpeechAct(named_mentions=["Dex"])
        line = engine.rule_line(act, _ctx(), "aggressive")
        assert line.startswith("If you're pushing this hard on Dex,")

    def test_friendly_line_recalls_recent_event(self, engine) -> None:
        line = engine.rule_line(SpeechAct(), _ctx(recent_events=["Big Fight"]), "friendly")
        assert "After big fight," in line

    def test_meta_response(self, engine) -> None:
        response = engine.meta_response(_ctx())
        assert response.strategy == "fourth_wall"
        assert response.meta is True
        assert "Mara" in response.line
        assert {c.type: c.value for c in response.consequences} == {
            "suspicion_change": 20,
            "reputation_change": -10,
        }


class TestPerception:
    def test_update(self, engine) -> None:
        ctx = _ctx(relationship=_rel(trust=80, closeness=70))
        act = SpeechAct(manipulation_level=100, emotional_subtext=EmotionalSubtext(anger=70))
        p = engine.update_perception(ctx, act)
        assert p.manipulation_awareness == pytest.approx(36)
        assert p.consistency == pytest.approx(48)
        assert p.role == "showmance"
        assert p.notes == ["angry"]
        assert engine.perception(1) is p

    def test_history_is_bounded(self, engine) -> None:
        ctx = _ctx()
        for i in range(6):
            engine.record_exchange(ctx, f"line {i}", f"reply {i}")
        history = engine.history(1)
        assert len(history) == 10
        assert history[0] == "Sam: line 1"
        assert history[-1] == "Mara: reply 5"

    def test_export_load(self, engine) -> None:
        ctx = _ctx(relationship=_rel(trust=70))
        engine.update_perception(ctx, SpeechAct())
        engine.record_exchange(ctx, "hi", "hey")

        other = ResponseEngine(random.Random(0))
        other.load(engine.export())
        assert other.history(1) == ["Sam: hi", "Mara: hey"]
        assert other.perception(1) == engine.perception(1)


class TestRespond:
    def test_full_response(self, engine) -> None:
        ctx = _ctx(relationship=_rel(trust=70, suspicion=10))
        response = engine.respond(ctx, SpeechAct(primary="alliance_proposal"))
        assert response.npc_id == 1
        assert response.tone == "friendly"
        assert response.strategy == "strategic_alliance"
        assert response.follow_up == "form_alliance"
        assert response.line


# ---------------------------------------------------------------------------
# Reaction summary
# ---------------------------------------------------------------------------


class TestSummarize:
    def test_scheme_under_suspicion(self, engine) -> None:
        summary = engine.summarize("scheme", "anything", _rel(suspicion=60))
        assert summary.take == "pushback"
        assert summary.context == "scheme"
        assert summary.notes[0] in REACTION_NOTES["pushback"]

    def test_public_game_talk(self, engine) -> None:
        summary = engine.summarize("talk", "Who's the target this week?", _rel(suspicion=10))
        assert summary.take == "suspicious"
        assert summary.context == "public"

    def test_private_game_talk_with_trust(self, engine) -> None:
        summary = engine.summarize("dm", "want to lock in votes", _rel(trust=60))
        assert summary.take == "positive"
        assert summary.context == "private"

    def test_no_relationship(self, engine) -> None:
        summary = engine.summarize("activity", "pool day", None)
        assert summary.take == "neutral"
        assert summary.deltas.trust == 0

    def test_deltas(self, engine) -> None:
        response = NPCResponse(
            npc_id=1,
            strategy="strategic_alliance",
            tone="aggressive",
            summary="s",
            line="l",
            consequences=[
                ResponseConsequence(type="trust_change", value=10, description="t"),
                ResponseConsequence(type="suspicion_change", value=5, description="s"),
                ResponseConsequence(type="reputation_change", value=-10, description="r"),
            ],
            follow_up="form_alliance",
            memory_impact=6,
        )
        summary = engine.summarize("dm", "want to lock in votes", _rel(trust=60), response)
        assert summary.deltas.trust == 10
        assert summary.deltas.suspicion == 5
        assert summary.deltas.influence == 2
        assert summary.deltas.entertainment == 5
