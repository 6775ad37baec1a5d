"""Full game-state snapshots.

A GameSnapshot is plain data: every engine exports a pydantic state model
and loads it back. Clock-based fields are stored relative to "now" (seconds
since / seconds until), so a snapshot taken under one clock restores cleanly
under another. The RNG state is included, so a restored game replays the
same draws.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from social_core.models import (
    CastMember,
    EventState,
    InterpretationState,
    LinguisticProfile,
    MemoryState,
    NPCAutonomyState,
    Relationship,
    ResponseState,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    """Raised for an incompatible or malformed snapshot."""


class PendingTask(BaseModel):
    seconds_until: float
    day: int
    kind: str
    payload: dict[str, Any] = Field(default_factory=dict)


class GameSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    day: int = 1
    turn: int = 0
    cast: list[CastMember] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    memory: MemoryState = Field(default_factory=MemoryState)
    autonomy: list[NPCAutonomyState] = Field(default_factory=list)
    events: EventState = Field(default_factory=EventState)
    interpretation: InterpretationState = Field(default_factory=InterpretationState)
    player_profile: LinguisticProfile = Field(default_factory=LinguisticProfile)
    responses: ResponseState = Field(default_factory=ResponseState)
    pending: list[PendingTask] = Field(default_factory=list)
    seconds_since_tick: float | None = None
    rng_state: tuple[int, list[int], float | None] | None = None


def parse_snapshot(raw: str | bytes | dict[str, Any]) -> GameSnapshot:
    """Validate a snapshot from JSON text or a decoded dict."""
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot must be a JSON object, got {type(data).__name__}")

    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise SnapshotError(
            f"Unsupported snapshot version {version!r} (expected {SNAPSHOT_VERSION})"
        )
    try:
        snapshot = GameSnapshot.model_validate(data)
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot: {e.error_count()} error(s)") from e
    logger.debug("parsed snapshot day=%d cast=%d", snapshot.day, len(snapshot.cast))
    return snapshot
