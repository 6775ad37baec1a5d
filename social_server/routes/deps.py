"""Shared lookups for route handlers."""

from fastapi import HTTPException, Request

from social_core.orchestrator import Game
from social_core.storage import SnapshotStore


def get_game(request: Request) -> Game:
    return request.app.state.game


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def require_cast(game: Game) -> None:
    if not game.initialized:
        raise HTTPException(409, "No game in progress")


def require_npc(game: Game, name: str) -> int:
    npc_id = game.roster.id_for(name)
    if npc_id is None:
        raise HTTPException(404, f"Contestant '{name}' not found")
    return npc_id
