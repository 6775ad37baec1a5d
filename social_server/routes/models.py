"""Pydantic request models for API endpoints."""

from pydantic import BaseModel, Field

from social_core.models import ActionType, CastEntry, DayRange, MemoryEventType, Reliability


class NewGameBody(BaseModel):
    cast: list[CastEntry]
    player_name: str | None = None
    day: int = 1


class TickBody(BaseModel):
    force: bool = False


class DayBody(BaseModel):
    days: int = Field(default=1, ge=1)


class VoteBody(BaseModel):
    votes: dict[str, str]
    eliminated: str


class ActionBody(BaseModel):
    type: ActionType = "talk"
    target: str | None = None
    content: str | None = None
    tone: str | None = None


class MemorySearchBody(BaseModel):
    participants: list[str] | None = None
    types: list[MemoryEventType] | None = None
    day_range: DayRange | None = None
    min_importance: float | None = None
    reliability: list[Reliability] | None = None
