"""Core domain models.

Every engine in the social core reads and writes these types. Pydantic is
used for validation and serialisation at every data boundary, which is also
what makes a full game snapshot a plain ``model_dump()`` away.

NPCs are referred to by integer ids handed out by the Roster; display names
only appear at the edges (player actions, rendered lines, API bodies).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

SpeechActType = Literal[
    "alliance_proposal",
    "flirting",
    "threatening",
    "testing_loyalty",
    "gaslighting",
    "information_fishing",
    "sabotaging",
    "withholding_info",
    "distracting",
    "downplaying_betrayal",
    "expressing_trust",
    "expressing_suspicion",
    "seeking_reassurance",
    "deflecting",
    "provoking",
    "complimenting",
    "insulting",
    "confessing",
    "lying",
    "gossiping",
    "banter",
    "neutral_conversation",
]

Topic = Literal["vote", "alliance", "relationship", "edit", "life", "other"]

SocialStrategy = Literal["bonding", "distancing", "dominance", "deflection"]
EmotionalPosture = Literal["guarded", "performative", "sincere", "passive_aggressive"]
GameMotive = Literal[
    "information_fishing", "alliance_signaling", "reputation_management", "venting"
]
RiskTolerance = Literal["bold", "cautious", "reckless", "risk_averse"]
AxisName = Literal["social_strategy", "emotional_posture", "game_motive", "risk_tolerance"]

InteractionType = Literal[
    "conversation", "scheme", "betrayal", "alliance", "vote", "confrontation"
]

MemoryEventType = Literal[
    "alliance_form",
    "alliance_break",
    "promise",
    "betrayal",
    "gossip",
    "vote",
    "conversation",
    "scheme",
    "challenge",
    "elimination",
    "confessional",
]
Reliability = Literal["confirmed", "rumor", "speculation"]
GossipReliability = Literal["confirmed", "rumor", "lie"]

MotiveType = Literal[
    "survival", "alliance_building", "revenge", "romance", "chaos", "information_gathering"
]
DecisionType = Literal[
    "initiate_conversation",
    "send_dm",
    "propose_alliance",
    "betray_alliance",
    "spread_rumor",
    "confront",
    "flirt",
    "scheme",
]

EventType = Literal[
    "conflict",
    "alliance_formation",
    "betrayal",
    "romance",
    "rumor_spread",
    "confession_leak",
    "power_shift",
]
Involvement = Literal["none", "witness", "participant", "catalyst"]
Outcome = Literal["resolved", "escalated", "ongoing"]
ConsequenceType = Literal[
    "relationship_change", "alliance_shift", "alliance_break", "memory_creation"
]

ConversationType = Literal["public", "private", "confessional"]
ActionType = Literal["talk", "dm", "scheme", "activity"]
Tone = Literal["friendly", "neutral", "aggressive", "suspicious", "flirty", "strategic"]
Strategy = Literal[
    "defensive",
    "strategic_alliance",
    "hostile",
    "information_extraction",
    "reciprocal_flirting",
    "suspicious",
    "confrontational",
    "neutral",
    "fourth_wall",
]
FollowUp = Literal["dm_player", "form_alliance", "spread_rumor", "scheme"]
PlayerRole = Literal["ally", "threat", "showmance", "neutral"]
Take = Literal["positive", "neutral", "suspicious", "pushback"]
HealthStatus = Literal["healthy", "warning", "error"]


# ---------------------------------------------------------------------------
# Utterance analysis (ephemeral, one per message)
# ---------------------------------------------------------------------------

class SurfaceFeatures(BaseModel):
    """Shape of a single utterance. No semantics."""

    char_count: int = 0
    word_count: int = 0
    sentence_count: int = 0
    average_sentence_length: float = 0.0
    fragment_ratio: float = 0.0
    exclamation_count: int = 0
    question_count: int = 0
    ellipsis_count: int = 0
    punctuation_density: float = 0.0
    hedging_count: int = 0
    absolutes_count: int = 0
    politeness_count: int = 0
    blunt_markers_count: int = 0
    direct_address_count: int = 0
    indirect_ref_count: int = 0
    all_caps_word_count: int = 0
    emotional_word_intensity: float = 0.0
    starts_with_hedge: bool = False
    ends_with_question: bool = False
    ends_with_softener: bool = False
    meta_text: bool = False


class EmotionalSubtext(BaseModel):
    anger: float = 0.0
    fear: float = 0.0
    attraction: float = 0.0
    manipulation: float = 0.0
    sincerity: float = 50.0
    desperation: float = 0.0
    confidence: float = 50.0


class SpeechAct(BaseModel):
    """Typed classification of one utterance."""

    primary: SpeechActType = "neutral_conversation"
    secondary: SpeechActType | None = None
    confidence: float = 0.0  # 0–100
    emotional_subtext: EmotionalSubtext = Field(default_factory=EmotionalSubtext)
    manipulation_level: float = 0.0
    threat_level: float = 0.0
    information_seeking: bool = False
    trust_building: bool = False
    named_mentions: list[str] = Field(default_factory=list)
    detected: list[SpeechActType] = Field(default_factory=list)  # every matched type, ranked


class LinguisticProfile(BaseModel):
    """Rolling description of how the player writes."""

    average_message_length: float = 50.0
    formality: float = 50.0
    expressiveness: float = 50.0
    manipulation_tendency: float = 30.0
    directness: float = 50.0
    vocabulary_complexity: float = 50.0
    questioning_frequency: float = 20.0
    recent_messages: list[str] = Field(default_factory=list)
    total_messages: int = 0


class ExplicitNumbers(BaseModel):
    ours: int | None = None
    theirs: int | None = None
    needed: int | None = None


class ConversationIntent(BaseModel):
    primary_act: SpeechActType = "neutral_conversation"
    secondary_act: SpeechActType | None = None
    topic: Topic = "other"
    vote_target: str | None = None
    mentioned: list[str] = Field(default_factory=list)
    wants_alliance_with: list[str] = Field(default_factory=list)
    wants_to_exclude: list[str] = Field(default_factory=list)
    wants_info_on: list[str] = Field(default_factory=list)
    explicit_numbers: ExplicitNumbers | None = None


class AxisOption(BaseModel):
    label: str
    weight: float


class AxisDistribution(BaseModel):
    """One categorical distribution over an axis. Weights sum to 1."""

    axis: AxisName
    options: list[AxisOption]
    confidence: float  # 0–1, peakedness

    def weight_of(self, label: str) -> float:
        for opt in self.options:
            if opt.label == label:
                return opt.weight
        return 0.0

    def ranked(self) -> list[AxisOption]:
        """Options by descending weight; ties keep declaration order."""
        return sorted(self.options, key=lambda o: -o.weight)


class ScoredAct(BaseModel):
    type: SpeechActType
    confidence: float


class IntentHypotheses(BaseModel):
    social_strategy: AxisDistribution
    emotional_posture: AxisDistribution
    game_motive: AxisDistribution
    risk_tolerance: AxisDistribution
    speech_acts: list[ScoredAct] = Field(default_factory=list)
    topic: Topic = "other"

    def axes(self) -> list[AxisDistribution]:
        return [
            self.social_strategy,
            self.emotional_posture,
            self.game_motive,
            self.risk_tolerance,
        ]


class PerceivedIntent(BaseModel):
    """One NPC's reading of one utterance."""

    npc_id: int
    social_strategy: SocialStrategy
    emotional_posture: EmotionalPosture
    game_motive: GameMotive
    risk_tolerance: RiskTolerance
    divergence: int  # 0–100
    hostility: float  # 0–100
    warmth: float  # 0–100
    certainty: float  # 0–1


# ---------------------------------------------------------------------------
# Tone and anti-exploit profiles (persisted)
# ---------------------------------------------------------------------------

class GlobalToneProfile(BaseModel):
    baseline_assertiveness: float = 50.0
    emotional_volatility: float = 50.0
    performative_vs_private: float = 0.0
    conflict_avoidance: float = 50.0
    average_risk_tolerance: float = 50.0
    message_count: int = 0


class NPCToneProfile(BaseModel):
    npc_id: int
    perceived_assertiveness: float = 50.0
    perceived_volatility: float = 50.0
    perceived_fakeness: float = 0.0
    perceived_consistency: float = 50.0


class AntiExploitProfile(BaseModel):
    repetitive_pattern_score: float = 0.0
    keyword_spam_score: float = 0.0
    pr_like_tone_score: float = 0.0
    meta_gaming_score: float = 0.0


class InterpretationState(BaseModel):
    global_tone: GlobalToneProfile = Field(default_factory=GlobalToneProfile)
    npc_tone: list[NPCToneProfile] = Field(default_factory=list)
    anti_exploit: AntiExploitProfile = Field(default_factory=AntiExploitProfile)


# ---------------------------------------------------------------------------
# Cast and relationships
# ---------------------------------------------------------------------------

class Personality(BaseModel):
    """Fixed traits, 0–100 each. Derived once from disposition tags."""

    model_config = {"frozen": True}

    aggressiveness: float = 50.0
    manipulation: float = 50.0
    loyalty: float = 50.0
    paranoia: float = 50.0
    charisma: float = 50.0
    intelligence: float = 50.0
    emotionality: float = 50.0
    risk_tolerance: float = 50.0


class CastMember(BaseModel):
    id: int
    name: str
    dispositions: list[str] = Field(default_factory=list)
    is_player: bool = False
    personality: Personality = Field(default_factory=Personality)
    eliminated: bool = False


class CastEntry(BaseModel):
    """One contestant as handed over by the caller at game start."""

    name: str
    dispositions: list[str] = Field(default_factory=list)


class InteractionRecord(BaseModel):
    day: int
    type: InteractionType
    impact: float
    description: str


class Relationship(BaseModel):
    """Directed edge source -> target."""

    source: int
    target: int
    trust: float = 50.0  # -100..100
    suspicion: float = 0.0  # 0..100
    closeness: float = 0.0  # 0..100
    in_alliance: bool = False
    alliance_strength: float = 0.0
    last_interaction_day: int = 0
    last_decay_day: int = 0
    history: list[InteractionRecord] = Field(default_factory=list)


class SocialStanding(BaseModel):
    average_trust: float = 50.0
    average_suspicion: float = 50.0
    alliance_count: int = 0
    social_power: float = 0.0


class Alliance(BaseModel):
    members: tuple[int, int]
    strength: float


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

class MemoryEvent(BaseModel):
    """Immutable once recorded."""

    model_config = {"frozen": True}

    id: str
    day: int
    type: MemoryEventType
    participants: list[int]
    content: str
    emotional_impact: float = 0.0  # -10..10
    trust_delta: float | None = None
    suspicion_delta: float | None = None
    witnessed: list[int] = Field(default_factory=list)
    reliability: Reliability = "confirmed"
    importance: float = 5.0  # 0..10


class Promise(BaseModel):
    to: int
    promise: str
    day: int
    kept: bool | None = None


class Secret(BaseModel):
    about: int
    secret: str
    day: int
    shared_with: list[int] = Field(default_factory=list)


class PrivateJournal(BaseModel):
    npc_id: int
    strategy: str = ""
    short_term_goals: list[str] = Field(default_factory=list)
    long_term_goals: list[str] = Field(default_factory=list)
    voting_plan: int | None = None
    voting_plan_source: str | None = None
    voting_plan_day: int | None = None
    alliance_notes: dict[int, str] = Field(default_factory=dict)
    threat_assessment: dict[int, float] = Field(default_factory=dict)  # 0..10
    personal_bonds: dict[int, float] = Field(default_factory=dict)  # -5..5
    promises: list[Promise] = Field(default_factory=list)
    secrets: list[Secret] = Field(default_factory=list)
    events: list[MemoryEvent] = Field(default_factory=list)


class Gossip(BaseModel):
    info: str
    source: int
    day: int
    about: int | None = None
    spread_to: list[int] = Field(default_factory=list)
    reliability: GossipReliability = "rumor"
    strategic_value: int = 5


class DayRange(BaseModel):
    start: int
    end: int


class MemoryQuery(BaseModel):
    participants: list[int] | None = None
    types: list[MemoryEventType] | None = None
    day_range: DayRange | None = None
    min_importance: float | None = None
    reliability: list[Reliability] | None = None


class MemorySearchResult(BaseModel):
    events: list[MemoryEvent] = Field(default_factory=list)
    relevant_gossip: list[Gossip] = Field(default_factory=list)
    personal_notes: list[str] = Field(default_factory=list)


class MemoryState(BaseModel):
    """Everything the memory engine owns, in serialisable form."""

    journals: list[PrivateJournal] = Field(default_factory=list)
    shared: list[MemoryEvent] = Field(default_factory=list)
    gossip: list[Gossip] = Field(default_factory=list)
    weekly: dict[int, list[str]] = Field(default_factory=dict)  # week -> event ids
    next_seq: int = 1


class StrategicContext(BaseModel):
    strategy: str
    recent_events: list[str] = Field(default_factory=list)
    top_threats: list[int] = Field(default_factory=list)
    allies: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Autonomy and events
# ---------------------------------------------------------------------------

class NPCMotive(BaseModel):
    type: MotiveType
    intensity: float  # 0..100
    targets: list[int] = Field(default_factory=list)
    deadline: int | None = None


class NPCDecision(BaseModel):
    type: DecisionType
    actor: int
    target: int | None = None
    content: str
    motivation: MotiveType
    urgency: float
    created_at: float = 0.0


class NPCAutonomyState(BaseModel):
    npc_id: int
    motives: list[NPCMotive] = Field(default_factory=list)
    seconds_since_action: float = 0.0


class EventConsequence(BaseModel):
    type: ConsequenceType
    targets: list[int]
    values: dict[str, float] = Field(default_factory=dict)
    description: str


class EmergentEvent(BaseModel):
    id: str
    type: EventType
    participants: list[int]
    description: str
    triggers: list[str] = Field(default_factory=list)
    consequences: list[EventConsequence] = Field(default_factory=list)
    drama_tension: float
    day: int
    player_involvement: Involvement = "none"
    outcome: Outcome = "ongoing"


class EventState(BaseModel):
    active: list[EmergentEvent] = Field(default_factory=list)
    tensions: dict[int, float] = Field(default_factory=dict)
    seconds_since_event: float = 0.0
    next_seq: int = 1


# ---------------------------------------------------------------------------
# Player actions and responses
# ---------------------------------------------------------------------------

class PlayerAction(BaseModel):
    type: ActionType = "talk"
    target: str | None = None
    content: str | None = None
    tone: str | None = None


class ResponseConsequence(BaseModel):
    type: Literal["trust_change", "suspicion_change", "memory_creation", "reputation_change"]
    value: float
    description: str


class NPCPerception(BaseModel):
    """What one NPC has concluded about the player over time."""

    npc_id: int
    trust: float = 50.0
    suspicion: float = 30.0
    consistency: float = 50.0
    manipulation_awareness: float = 20.0
    role: PlayerRole = "neutral"
    notes: list[str] = Field(default_factory=list)


class NPCResponse(BaseModel):
    npc_id: int
    strategy: Strategy
    tone: Tone
    summary: str
    line: str  # rule-based line; rendered text may replace it later
    consequences: list[ResponseConsequence] = Field(default_factory=list)
    follow_up: FollowUp | None = None
    memory_impact: int = 0
    perceived: PerceivedIntent | None = None
    meta: bool = False


class ResponseState(BaseModel):
    perceptions: list[NPCPerception] = Field(default_factory=list)
    histories: dict[int, list[str]] = Field(default_factory=dict)


class ReactionDeltas(BaseModel):
    trust: float = 0.0
    suspicion: float = 0.0
    influence: float = 0.0
    entertainment: float = 0.0


class ReactionSummary(BaseModel):
    take: Take
    context: str
    notes: list[str] = Field(default_factory=list)
    deltas: ReactionDeltas = Field(default_factory=ReactionDeltas)


class ActionResult(BaseModel):
    npc_id: int | None = None
    reaction: ReactionSummary
    response: NPCResponse | None = None
    speech_act: SpeechAct | None = None
    intent: ConversationIntent | None = None
    day: int = 0
    turn: int = 0
    text: str = ""
    render_tier: str | None = None
    stale: bool = False  # rendered text arrived after the game moved on


class HealthCheck(BaseModel):
    system: str
    status: HealthStatus
    message: str
    recommendations: list[str] = Field(default_factory=list)


class TickResult(BaseModel):
    ran: bool
    decisions: list[NPCDecision] = Field(default_factory=list)
    events: list[EmergentEvent] = Field(default_factory=list)
    follow_ups: list[NPCDecision] = Field(default_factory=list)
    health: list[HealthCheck] = Field(default_factory=list)


class DebugInfo(BaseModel):
    """Per-NPC internals keyed by display name, for dashboards and tests."""

    day: int
    turn: int
    drama_tension: dict[str, float] = Field(default_factory=dict)
    standings: dict[str, SocialStanding] = Field(default_factory=dict)
    motives: dict[str, list[NPCMotive]] = Field(default_factory=dict)
    player_profile: LinguisticProfile = Field(default_factory=LinguisticProfile)
    anti_exploit: AntiExploitProfile = Field(default_factory=AntiExploitProfile)
    pending_follow_ups: int = 0
