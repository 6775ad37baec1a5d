"""NPC response synthesis.

Given one NPC's reading of a player utterance, decide how the NPC answers:

  perception   rolling view of the player (awareness, consistency, role)
  tone         from the speech act, relationship, personality and house drama,
               then nudged by the social reading when it is confident enough
  strategy     one of the response strategies, picked from act + tone
  line         rule-based line from a template bank (the renderer may replace it)
  consequences trust / suspicion / memory deltas, clamped
  follow-up    optional dm_player / form_alliance / spread_rumor / scheme
  impact       how memorable the exchange is, -10..10

Meta text never gets here through the normal path: it goes to meta_response.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from social_core.models import (
    ActionType,
    AntiExploitProfile,
    CastMember,
    ConversationType,
    EmotionalSubtext,
    FollowUp,
    GlobalToneProfile,
    NPCPerception,
    NPCResponse,
    NPCToneProfile,
    PerceivedIntent,
    Personality,
    PlayerRole,
    ReactionDeltas,
    ReactionSummary,
    Relationship,
    ResponseConsequence,
    ResponseState,
    SpeechAct,
    Strategy,
    Take,
    Tone,
)
from social_core.templates import LineTemplate, Resolver, bank

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
NOTES_LIMIT = 8
TRUST_RANGE = (-10.0, 20.0)
SUSPICION_RANGE = (0.0, 25.0)

STRATEGY_SUMMARY: dict[Strategy, str] = {
    "defensive": "Deflect and protect my own position without giving anything away.",
    "strategic_alliance": "Open the door to working together, on my terms.",
    "hostile": "Push back hard and make it clear I'm not a soft target.",
    "information_extraction": "Trade carefully and get more than I give.",
    "reciprocal_flirting": "Lean into the chemistry, but keep it quiet.",
    "suspicious": "Question their angle before committing to anything.",
    "confrontational": "Call out the threat directly.",
    "neutral": "Stay polite and noncommittal while I read them.",
    "fourth_wall": "React to something that makes no sense in here.",
}

# ── rule-based lines ────────────────────────────────────────
# Slots: player, partner, subject, recent, target, focus. All resolve from
# the response context; each slot carries its own fallback.

ACT_LINES: dict[tuple[str, str], tuple[LineTemplate, ...]] = {
    ("alliance_proposal", "open"): bank(
        "If we lock in with {partner|you}, we can keep the numbers clean. I'm open, but no leaks.",
    ),
    ("alliance_proposal", "closed"): bank(
        "You want to work together? I need to see consistency before I commit to anything.",
    ),
    ("flirting", "flirty"): bank(
        "You're bold, {player|you}. I like it, but let's keep this between us and off the feeds.",
    ),
    ("flirting", "other"): bank(
        "You're charming, but I'm not sure mixing game and feelings is smart.",
    ),
    ("information_fishing", "strategic"): bank(
        "What exactly about {subject|people}? Votes, alliances, or just vibes? I don't hand out info for free.",
    ),
    ("information_fishing", "wary"): bank(
        "You keep circling around {subject|people}. If you want something from me, say whether you're protecting me or aiming at me.",
    ),
    ("information_fishing", "other"): bank(
        "You're probing a lot right now, and I'm clocking it. Be clear whether you want numbers, a target, or just reassurance.",
    ),
    ("expressing_trust", "any"): bank(
        "I hear you. Trust goes both ways, and I'm clocking how you move as much as what you say.",
    ),
    ("expressing_suspicion", "any"): bank(
        "If you have doubts, say them clean. Half-accusations just make everyone more paranoid.",
    ),
    ("testing_loyalty", "any"): bank(
        "You're not wrong to test people. Just remember I'm tracking who tests and who actually shows up.",
    ),
    ("complimenting", "any"): bank(
        "I appreciate that. Compliments are nice, but actions on vote night matter more.",
    ),
    ("insulting", "aggressive"): bank(
        "Careful. If you're going to come for me like that, you better not miss.",
    ),
    ("insulting", "other"): bank(
        "Okay. Noted. But throwing shots says more about your position than mine.",
    ),
}

TONE_LINES: dict[str, tuple[LineTemplate, ...]] = {
    "friendly_recent": bank(
        "I get where you're coming from. After {recent}, I'm trying to keep things solid with you.",
    ),
    "friendly": bank(
        "I get it. I'm trying to keep things simple and honest between us in here.",
    ),
    "aggressive": bank(
        "If you're pushing this hard on {target|you}, don't be surprised when people start pushing back.",
    ),
    "suspicious": bank(
        "Why are you asking me this about {target|you}? I'm not convinced your angle is clean.",
    ),
    "strategic": bank(
        "We can talk strategy about {focus|the vote}, but I need to know you're not repeating this word-for-word.",
    ),
    "neutral": bank(
        "I hear you. I'm taking all of this in and figuring out where you actually stand.",
    ),
}

META_LINES = bank(
    '{name} looks at you strangely. "What are you talking about? You\'re being really weird right now."',
    '{name} raises an eyebrow. "Are you feeling okay? That doesn\'t make any sense."',
    '{name} laughs nervously. "I think the isolation is getting to you..."',
    '{name} steps back. "Okay, you\'re starting to freak me out a little."',
    '{name} frowns. "Is this some kind of strategy? Because it\'s not working."',
)

# ── reaction summary ────────────────────────────────────────

GAME_TALK = (
    "ally", "alliance", "numbers", "vote", "votes", "target", "backdoor", "flip",
    "lock", "majority", "minority",
)

REACTION_NOTES: dict[str, tuple[str, ...]] = {
    "positive": ("onboard in principle", "receptive, will consider", "open to next steps"),
    "curious": ("wants specifics", "seeking info first", "asking for details"),
    "deflect": ("deflects in public", "keeps it vague", "changes subject"),
    "suspicious": ("takes note, wary", "reads it as risky", "guards info"),
    "pushback": ("pushes back hard", "rejects the angle", "not buying it"),
    "neutral": ("acknowledged", "noted", "no commitment"),
}
TAKE_FOR: dict[str, Take] = {
    "positive": "positive",
    "curious": "neutral",
    "deflect": "pushback",
    "suspicious": "suspicious",
    "pushback": "pushback",
    "neutral": "neutral",
}


@dataclass
class ResponseContext:
    """What the NPC knows when it answers. Built by the orchestrator."""

    npc: CastMember
    player_name: str
    conversation_type: ConversationType = "public"
    relationship: Relationship | None = None
    alliances: list[str] = field(default_factory=list)
    threats: list[str] = field(default_factory=list)
    opportunities: list[str] = field(default_factory=list)
    recent_events: list[str] = field(default_factory=list)
    drama_tension: float = 30.0


def _clamp(v: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, v))


def is_game_talk(text: str) -> bool:
    words = set(text.lower().replace("?", " ").replace(".", " ").replace(",", " ").split())
    return any(w in words for w in GAME_TALK)


class ResponseEngine:
    def __init__(self, rng: random.Random) -> None:
        self._rng = rng
        self._perceptions: dict[int, NPCPerception] = {}
        self._histories: dict[int, list[str]] = {}

    # ── reads ───────────────────────────────────────────────

    def perception(self, npc_id: int) -> NPCPerception | None:
        return self._perceptions.get(npc_id)

    def history(self, npc_id: int) -> list[str]:
        return list(self._histories.get(npc_id, []))

    # ── perception ──────────────────────────────────────────

    def update_perception(self, ctx: ResponseContext, act: SpeechAct) -> NPCPerception:
        p = self._perceptions.setdefault(ctx.npc.id, NPCPerception(npc_id=ctx.npc.id))
        rel = ctx.relationship
        if rel is not None:
            p.trust = rel.trust
            p.suspicion = rel.suspicion

        p.manipulation_awareness = _clamp(
            p.manipulation_awareness * 0.8 + act.manipulation_level * 0.2
        )
        extremity = max(act.emotional_subtext.anger, act.emotional_subtext.fear) / 100
        p.consistency = _clamp(p.consistency * 0.9 + (1 - extremity) * 10)
        p.role = self._infer_role(rel, p)

        note = self._linguistic_note(act.emotional_subtext)
        if note:
            p.notes = (p.notes + [note])[-NOTES_LIMIT:]
        return p

    @staticmethod
    def _infer_role(rel: Relationship | None, p: NPCPerception) -> PlayerRole:
        if rel is None:
            return "neutral"
        if rel.trust > 70 and rel.closeness > 65:
            return "showmance"
        if rel.trust > 65 and rel.suspicion < 40:
            return "ally"
        if rel.suspicion > 65 or p.manipulation_awareness > 70:
            return "threat"
        return "neutral"

    @staticmethod
    def _linguistic_note(sub: EmotionalSubtext) -> str | None:
        if sub.anger > 60:
            return "angry"
        if sub.fear > 60:
            return "anxious"
        if sub.attraction > 60:
            return "flirty"
        if sub.manipulation > 60:
            return "manipulative"
        if sub.sincerity > 70:
            return "formal"
        return None

    # ── tone and strategy ───────────────────────────────────

    def determine_tone(
        self,
        act: SpeechAct,
        ctx: ResponseContext,
        personality: Personality,
        perception: NPCPerception | None = None,
    ) -> Tone:
        rel = ctx.relationship
        awareness = perception.manipulation_awareness if perception else 0.0
        tone: Tone = "neutral"

        if act.primary == "flirting" and perception is not None and perception.role == "showmance":
            tone = "flirty"
        elif act.threat_level > 60:
            tone = "aggressive"
        elif act.manipulation_level > 60 or awareness > 60:
            tone = "suspicious"
        elif rel is not None and rel.trust > 60:
            tone = "friendly"
        elif act.information_seeking:
            tone = "strategic"

        if personality.aggressiveness > 75 and tone == "neutral":
            tone = "aggressive"
        if personality.charisma > 75 and tone == "neutral" and rel is not None and rel.trust > 55:
            tone = "friendly"

        if ctx.drama_tension > 70 and tone == "neutral":
            tone = "suspicious"
        elif ctx.drama_tension < 30 and tone == "suspicious":
            tone = "neutral"
        return tone

    @staticmethod
    def adjust_tone(tone: Tone, reading: PerceivedIntent, personality: Personality) -> Tone:
        """Nudge, never override: an uncertain reading leaves the tone alone."""
        if reading.certainty < 0.35:
            return tone
        if reading.warmth > 70 and reading.hostility < 40 and tone in ("neutral", "suspicious"):
            tone = "friendly"
        if reading.hostility > 70:
            if tone == "neutral" and personality.aggressiveness > 60:
                tone = "aggressive"
            elif tone == "friendly":
                tone = "suspicious"
        return tone

    @staticmethod
    def choose_strategy(act: SpeechAct, tone: Tone, reading: PerceivedIntent | None = None) -> Strategy:
        if tone == "flirty":
            return "reciprocal_flirting"
        if act.primary == "alliance_proposal" and tone in ("friendly", "strategic"):
            return "strategic_alliance"
        if act.threat_level > 60 or act.primary in ("threatening", "provoking"):
            return "confrontational" if tone == "aggressive" else "defensive"
        if tone == "aggressive":
            return "hostile"
        if act.information_seeking or act.primary == "information_fishing":
            return "information_extraction" if tone in ("strategic", "friendly") else "suspicious"
        if tone == "suspicious":
            return "suspicious"
        if act.primary in ("gaslighting", "lying", "downplaying_betrayal", "deflecting"):
            return "defensive"
        if (
            tone == "friendly"
            and reading is not None
            and reading.game_motive == "alliance_signaling"
        ):
            return "strategic_alliance"
        return "neutral"

    # ── lines ───────────────────────────────────────────────

    def rule_line(self, act: SpeechAct, ctx: ResponseContext, tone: Tone) -> str:
        mention = act.named_mentions[0] if act.named_mentions else None
        ally = ctx.alliances[0] if ctx.alliances else None
        threat = ctx.threats[0] if ctx.threats else None
        recent = ctx.recent_events[0].lower() if ctx.recent_events else None

        resolvers: dict[str, Resolver] = {
            "player": lambda: ctx.player_name,
            "partner": lambda: ally or ctx.player_name,
            "subject": lambda: mention or threat or ally,
            "recent": lambda: recent,
            "target": lambda: mention or (threat if tone == "aggressive" else None) or ctx.player_name,
            "focus": lambda: mention or threat or ally,
        }
        templates = self._line_bank(act, ctx, tone, recent is not None)
        return self._rng.choice(templates).render(resolvers)

    @staticmethod
    def _line_bank(
        act: SpeechAct, ctx: ResponseContext, tone: Tone, has_recent: bool
    ) -> tuple[LineTemplate, ...]:
        primary = act.primary
        if primary == "alliance_proposal":
            return ACT_LINES[(primary, "open" if tone in ("friendly", "strategic") else "closed")]
        if primary == "flirting":
            return ACT_LINES[(primary, "flirty" if tone == "flirty" else "other")]
        if primary == "information_fishing":
            if tone == "strategic":
                return ACT_LINES[(primary, "strategic")]
            if tone == "suspicious" or ctx.drama_tension > 60:
                return ACT_LINES[(primary, "wary")]
            return ACT_LINES[(primary, "other")]
        if primary == "insulting":
            return ACT_LINES[(primary, "aggressive" if tone == "aggressive" else "other")]
        if (primary, "any") in ACT_LINES:
            return ACT_LINES[(primary, "any")]

        if tone == "friendly":
            return TONE_LINES["friendly_recent" if has_recent else "friendly"]
        return TONE_LINES.get(tone, TONE_LINES["neutral"])

    # ── scoring ─────────────────────────────────────────────

    @staticmethod
    def emotional_subtext(act: SpeechAct, personality: Personality) -> EmotionalSubtext:
        base = act.emotional_subtext
        return base.model_copy(
            update={
                "sincerity": _clamp(base.sincerity - personality.manipulation * 0.3),
                "manipulation": min(100.0, base.manipulation + personality.manipulation * 0.3),
                "fear": min(100.0, base.fear + personality.paranoia * 0.2),
                "anger": min(100.0, base.anger + personality.aggressiveness * 0.2),
            }
        )

    @staticmethod
    def consequences(
        act: SpeechAct,
        sub: EmotionalSubtext,
        reading: PerceivedIntent | None = None,
        global_tone: GlobalToneProfile | None = None,
        npc_tone: NPCToneProfile | None = None,
        anti_exploit: AntiExploitProfile | None = None,
    ) -> list[ResponseConsequence]:
        out: list[ResponseConsequence] = []
        trust = 0.0
        suspicion = 0.0
        trust_reasons: list[str] = []
        suspicion_reasons: list[str] = []

        if act.trust_building and sub.sincerity > 40:
            trust += 5 + sub.sincerity * 0.1
            trust_reasons.append("Player seems genuinely invested in trust")
        if act.manipulation_level > 50:
            suspicion += act.manipulation_level * 0.2
            suspicion_reasons.append("Player is coming off as manipulative")
        if act.threat_level > 40 or sub.anger > 40:
            out.append(
                ResponseConsequence(
                    type="memory_creation",
                    value=max(act.threat_level, sub.anger),
                    description="Confrontational or tense interaction",
                )
            )

        if reading is not None:
            scale = 0.5 + reading.certainty * 0.5
            if reading.warmth > 55 and reading.hostility < 50:
                trust += (reading.warmth - 55) / 45 * 6 * scale
                trust_reasons.append("NPC reads the player as warm and connective")
            if reading.hostility > 55:
                suspicion += (reading.hostility - 55) / 45 * 8 * scale
                suspicion_reasons.append("NPC reads the player as hostile or adversarial")
            if reading.social_strategy == "bonding":
                trust += 2 * scale
                trust_reasons.append("Social strategy feels bonding")
            elif reading.social_strategy in ("distancing", "dominance"):
                suspicion += 2 * scale
                suspicion_reasons.append("Social strategy feels distancing or dominant")
            if reading.game_motive == "reputation_management":
                suspicion += 3 * scale
                suspicion_reasons.append("Conversation feels like reputation management")
            if reading.divergence > 60:
                suspicion += 2 * scale
                suspicion_reasons.append("Player behavior feels inconsistent with prior pattern")

        if global_tone is not None and global_tone.emotional_volatility > 65:
            suspicion += 1.5
            suspicion_reasons.append("Player has been emotionally volatile overall")
        if npc_tone is not None:
            if npc_tone.perceived_fakeness > 55:
                if trust > 0:
                    trust *= 0.6
                    trust_reasons.append("Perceived fakeness dampens trust gains")
                suspicion += 2
                suspicion_reasons.append("NPC suspects the player is being fake")
            if npc_tone.perceived_consistency > 65 and suspicion > 0:
                suspicion *= 0.8
                suspicion_reasons.append("Consistent behavior tempers suspicion slightly")

        if anti_exploit is not None and trust > 0:
            pressure = (
                anti_exploit.pr_like_tone_score
                + anti_exploit.keyword_spam_score
                + anti_exploit.repetitive_pattern_score
            ) / 300
            if anti_exploit.meta_gaming_score > 50:
                pressure += 0.25
            if pressure > 0:
                trust *= 1 - min(0.6, pressure)
                trust_reasons.append("Formulaic phrasing earns less goodwill")

        if trust != 0:
            out.append(
                ResponseConsequence(
                    type="trust_change",
                    value=_clamp(trust, *TRUST_RANGE),
                    description="; ".join(trust_reasons)
                    or "Trust shifts based on how the player comes across",
                )
            )
        if suspicion != 0:
            out.append(
                ResponseConsequence(
                    type="suspicion_change",
                    value=_clamp(suspicion, *SUSPICION_RANGE),
                    description="; ".join(suspicion_reasons)
                    or "Suspicion shifts based on how the player comes across",
                )
            )
        return out

    @staticmethod
    def follow_up(
        act: SpeechAct,
        ctx: ResponseContext,
        tone: Tone,
        consequences: list[ResponseConsequence],
        reading: PerceivedIntent | None = None,
        global_tone: GlobalToneProfile | None = None,
        npc_tone: NPCToneProfile | None = None,
    ) -> FollowUp | None:
        drama = ctx.drama_tension
        rel = ctx.relationship
        shift = next((c for c in consequences if c.type == "suspicion_change" and c.value > 0), None)
        warmth = reading.warmth if reading else 0.0
        hostility = reading.hostility if reading else 0.0
        certainty = reading.certainty if reading else 0.0
        high_hostile = hostility > 65
        fake = npc_tone is not None and npc_tone.perceived_fakeness > 60
        avoidant = global_tone is not None and global_tone.conflict_avoidance > 60

        if (
            rel is not None
            and rel.trust > 60
            and rel.suspicion < 55
            and (
                act.primary == "alliance_proposal"
                or (reading is not None and reading.game_motive == "alliance_signaling")
            )
        ):
            return "form_alliance"

        if act.information_seeking and tone == "strategic":
            if shift is not None and (fake or high_hostile) and drama > 55:
                return "spread_rumor"
            return "dm_player"

        if (
            ctx.conversation_type == "public"
            and rel is not None
            and rel.trust > 55
            and rel.suspicion < 50
            and warmth > 65
            and shift is None
            and (avoidant or tone == "friendly")
        ):
            return "dm_player"

        if shift is not None:
            threshold = 65 - (10 if fake else 0)
            if global_tone is not None and global_tone.emotional_volatility > 70:
                threshold -= 5
            if (drama > threshold or tone == "aggressive" or high_hostile) and certainty > 0.4:
                return "spread_rumor"
            if tone == "aggressive" or hostility > 55:
                return "scheme"

        if tone == "aggressive":
            return "scheme"
        return None

    @staticmethod
    def memory_impact(act: SpeechAct, sub: EmotionalSubtext) -> int:
        impact = (
            5
            + act.confidence * 0.1
            + sub.anger * 0.15
            + sub.fear * 0.1
            + act.manipulation_level * 0.1
            + act.threat_level * 0.2
        )
        return int(max(-10, min(10, round(impact))))

    # ── entry points ────────────────────────────────────────

    def respond(
        self,
        ctx: ResponseContext,
        act: SpeechAct,
        reading: PerceivedIntent | None = None,
        *,
        global_tone: GlobalToneProfile | None = None,
        npc_tone: NPCToneProfile | None = None,
        anti_exploit: AntiExploitProfile | None = None,
    ) -> NPCResponse:
        personality = ctx.npc.personality
        perception = self.update_perception(ctx, act)

        tone = self.determine_tone(act, ctx, personality, perception)
        if reading is not None:
            tone = self.adjust_tone(tone, reading, personality)
        strategy = self.choose_strategy(act, tone, reading)

        sub = self.emotional_subtext(act, personality)
        consequences = self.consequences(act, sub, reading, global_tone, npc_tone, anti_exploit)
        follow_up = self.follow_up(act, ctx, tone, consequences, reading, global_tone, npc_tone)

        response = NPCResponse(
            npc_id=ctx.npc.id,
            strategy=strategy,
            tone=tone,
            summary=STRATEGY_SUMMARY[strategy],
            line=self.rule_line(act, ctx, tone),
            consequences=consequences,
            follow_up=follow_up,
            memory_impact=self.memory_impact(act, sub),
            perceived=reading,
        )
        logger.debug(
            "%s answers %s/%s follow_up=%s", ctx.npc.name, strategy, tone, follow_up
        )
        return response

    def meta_response(self, ctx: ResponseContext) -> NPCResponse:
        line = self._rng.choice(META_LINES).render({"name": lambda: ctx.npc.name})
        return NPCResponse(
            npc_id=ctx.npc.id,
            strategy="fourth_wall",
            tone="suspicious",
            summary=STRATEGY_SUMMARY["fourth_wall"],
            line=line,
            consequences=[
                ResponseConsequence(
                    type="suspicion_change",
                    value=20,
                    description="Player is acting strangely or breaking the fourth wall",
                ),
                ResponseConsequence(
                    type="reputation_change",
                    value=-10,
                    description="Others might see the player as unstable",
                ),
            ],
            memory_impact=8,
            meta=True,
        )

    def record_exchange(self, ctx: ResponseContext, player_text: str, reply: str) -> None:
        history = self._histories.setdefault(ctx.npc.id, [])
        history.append(f"{ctx.player_name}: {player_text}")
        history.append(f"{ctx.npc.name}: {reply}")
        del history[:-HISTORY_LIMIT]

    # ── reaction summary ────────────────────────────────────

    def summarize(
        self,
        action_type: ActionType,
        content: str,
        relationship: Relationship | None,
        response: NPCResponse | None = None,
    ) -> ReactionSummary:
        trust = relationship.trust if relationship else 0.0
        suspicion = relationship.suspicion if relationship else 30.0
        context = {"talk": "public", "dm": "private"}.get(action_type, action_type)

        flavour = "neutral"
        if action_type == "scheme":
            flavour = "pushback" if suspicion > 50 else "suspicious"
        elif action_type == "activity":
            flavour = "positive" if trust > 30 else "neutral"
        elif is_game_talk(content):
            if context == "public":
                flavour = "deflect" if suspicion > 40 else "suspicious"
            else:
                flavour = "positive" if trust > 50 else "curious"
        else:
            flavour = "positive" if trust > 50 else "suspicious" if suspicion > 60 else "neutral"

        take = TAKE_FOR[flavour]
        return ReactionSummary(
            take=take,
            context=context,
            notes=[self._rng.choice(REACTION_NOTES[flavour])],
            deltas=self._deltas(take, response),
        )

    @staticmethod
    def _deltas(take: Take, response: NPCResponse | None) -> ReactionDeltas:
        if response is None:
            return ReactionDeltas()
        trust = sum(c.value for c in response.consequences if c.type == "trust_change")
        suspicion = sum(c.value for c in response.consequences if c.type == "suspicion_change")
        influence = sum(c.value for c in response.consequences if c.type == "reputation_change") / 5
        if response.follow_up == "form_alliance":
            influence += 3
        if take == "positive":
            influence += 1
        elif take == "pushback":
            influence -= 1
        entertainment = abs(response.memory_impact) * 0.5
        if response.tone in ("aggressive", "flirty") or response.meta:
            entertainment += 2
        return ReactionDeltas(
            trust=round(trust, 2),
            suspicion=round(suspicion, 2),
            influence=round(influence, 2),
            entertainment=round(entertainment, 2),
        )

    # ── snapshot ────────────────────────────────────────────

    def export(self) -> ResponseState:
        return ResponseState(
            perceptions=[p.model_copy(deep=True) for p in self._perceptions.values()],
            histories={k: list(v) for k, v in self._histories.items()},
        )

    def load(self, state: ResponseState) -> None:
        self._perceptions = {p.npc_id: p.model_copy(deep=True) for p in state.perceptions}
        self._histories = {int(k): list(v) for k, v in state.histories.items()}
