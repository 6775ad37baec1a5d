"""FastAPI API endpoints under /api.

Endpoint groups: health, game lifecycle (new cast, tick, day, vote, player
actions), NPC reads (standing, memory search), alliances and events,
snapshots (export/import plus named saves) and debug.

Every route works on the single Game held on app.state.
"""

from fastapi import APIRouter

from .game import router as game_router
from .npcs import router as npcs_router
from .saves import router as saves_router

router = APIRouter()
router.include_router(game_router)
router.include_router(npcs_router)
router.include_router(saves_router)
