"""Per-contestant read endpoints."""

from fastapi import APIRouter, Depends

from social_core.models import MemoryQuery
from social_core.orchestrator import Game

from .deps import get_game, require_npc
from .models import MemorySearchBody

router = APIRouter()


@router.get("/npcs")
async def list_npcs(game: Game = Depends(get_game)):
    """List the cast, player included."""
    return game.roster.members()


@router.get("/npcs/{name}/standing")
async def get_standing(name: str, game: Game = Depends(get_game)):
    """Aggregate trust, suspicion, alliances and social power for one contestant."""
    require_npc(game, name)
    return game.standing(name)


@router.post("/npcs/{name}/memory/search")
async def search_memory(name: str, body: MemorySearchBody, game: Game = Depends(get_game)):
    """Search one contestant's memories. Participant filters are given by name."""
    require_npc(game, name)
    participants = None
    if body.participants is not None:
        participants = [require_npc(game, p) for p in body.participants]
    query = MemoryQuery(
        participants=participants,
        types=body.types,
        day_range=body.day_range,
        min_importance=body.min_importance,
        reliability=body.reliability,
    )
    return game.search_memory(name, query)
