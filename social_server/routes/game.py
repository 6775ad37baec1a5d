"""Game lifecycle endpoints: new cast, tick, day, vote, player actions, snapshots."""

from fastapi import APIRouter, Body, Depends, HTTPException

from social_core.models import PlayerAction
from social_core.orchestrator import Game
from social_core.snapshot import SnapshotError, parse_snapshot

from .deps import get_game, require_cast, require_npc
from .models import ActionBody, DayBody, NewGameBody, TickBody, VoteBody

router = APIRouter()


@router.get("/health")
async def health(game: Game = Depends(get_game)):
    """Health check plus the advisory system checks for the running game."""
    checks = game.health_checks() if game.initialized else []
    return {"status": "ok", "initialized": game.initialized, "checks": checks}


@router.post("/game", status_code=201)
async def new_game(body: NewGameBody, game: Game = Depends(get_game)):
    """Start a new game with the given cast."""
    names = [entry.name.strip().lower() for entry in body.cast]
    names.append((body.player_name or game.config.player_name).strip().lower())
    if len(set(names)) != len(names):
        raise HTTPException(409, "Cast names must be unique")
    game.new_cast(body.cast, player_name=body.player_name, day=body.day)
    return {"day": game.day, "cast": game.roster.members()}


@router.post("/game/tick")
async def tick(body: TickBody | None = None, game: Game = Depends(get_game)):
    """Run one update cycle (throttled unless forced)."""
    require_cast(game)
    return game.tick(force=body.force if body else False)


@router.post("/game/day")
async def advance_day(body: DayBody | None = None, game: Game = Depends(get_game)):
    """Advance the in-game day and apply relationship decay."""
    require_cast(game)
    return {"day": game.advance_day(body.days if body else 1)}


@router.post("/game/vote")
async def vote(body: VoteBody, game: Game = Depends(get_game)):
    """Apply an elimination vote (voter name -> target name)."""
    require_cast(game)
    require_npc(game, body.eliminated)
    game.vote(body.votes, body.eliminated)
    return {"eliminated": body.eliminated, "day": game.day}


@router.post("/game/actions")
async def player_action(body: ActionBody, game: Game = Depends(get_game)):
    """Player speaks or acts toward an NPC. Returns the reaction and the NPC line."""
    require_cast(game)
    if body.target is not None:
        require_npc(game, body.target)
    return await game.respond(PlayerAction(**body.model_dump()))


@router.get("/alliances")
async def list_alliances(game: Game = Depends(get_game)):
    """List current alliance pairs by name."""
    return [
        {"members": [game.roster.name_of(m) for m in a.members], "strength": a.strength}
        for a in game.graph.alliances()
    ]


@router.get("/events")
async def list_events(game: Game = Depends(get_game)):
    """List emergent events still within the retention window."""
    return [
        {**e.model_dump(), "participant_names": [game.roster.name_of(p) for p in e.participants]}
        for e in game.events.active_events()
    ]


@router.get("/snapshot")
async def export_snapshot(game: Game = Depends(get_game)):
    """Export the full game state."""
    return game.export()


@router.put("/snapshot")
async def import_snapshot(payload: dict = Body(...), game: Game = Depends(get_game)):
    """Replace the game state with an exported snapshot."""
    try:
        snapshot = parse_snapshot(payload)
    except SnapshotError as e:
        raise HTTPException(422, str(e)) from e
    game.load(snapshot)
    return {"day": game.day, "turn": game.turn}


@router.get("/debug")
async def debug(game: Game = Depends(get_game)):
    """Per-NPC internals: drama tension, standings, motives, player profile."""
    require_cast(game)
    return game.debug()
