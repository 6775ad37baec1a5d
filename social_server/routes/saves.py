"""Named save slots backed by the snapshot store."""

from fastapi import APIRouter, Depends, HTTPException

from social_core.orchestrator import Game
from social_core.snapshot import SnapshotError
from social_core.storage import SnapshotStore

from .deps import get_game, get_store, require_cast

router = APIRouter()


@router.get("/saves")
async def list_saves(store: SnapshotStore = Depends(get_store)):
    """List saved games by slug."""
    return store.list()


@router.post("/saves/{name}", status_code=201)
async def save_game(
    name: str, game: Game = Depends(get_game), store: SnapshotStore = Depends(get_store)
):
    """Save the running game under a name."""
    require_cast(game)
    return {"slug": store.save(name, game.export())}


@router.post("/saves/{name}/load")
async def load_game(
    name: str, game: Game = Depends(get_game), store: SnapshotStore = Depends(get_store)
):
    """Replace the running game with a saved one."""
    try:
        snapshot = store.load(name)
    except SnapshotError as e:
        raise HTTPException(422, str(e)) from e
    if snapshot is None:
        raise HTTPException(404, "Save not found")
    game.load(snapshot)
    return {"day": game.day, "turn": game.turn}


@router.delete("/saves/{name}", status_code=204)
async def delete_save(name: str, store: SnapshotStore = Depends(get_store)):
    """Delete a saved game."""
    if not store.delete(name):
        raise HTTPException(404, "Save not found")
