from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from social_core.clock import Clock
from social_core.config import SimConfig, load_config
from social_core.orchestrator import Game
from social_core.renderer import HttpPhraseRenderer, PhraseRenderer
from social_core.storage import SnapshotStore
from social_server.routes import router

load_dotenv(Path(__file__).parent.parent / ".env")


def create_app(
    config: SimConfig | None = None,
    *,
    clock: Clock | None = None,
    renderer: PhraseRenderer | None = None,
) -> FastAPI:
    cfg = config or load_config()
    if renderer is None and cfg.renderer_url:
        renderer = HttpPhraseRenderer.from_config(cfg)

    app = FastAPI(title="Social Core")
    app.state.game = Game(cfg, clock=clock, renderer=renderer)
    app.state.store = SnapshotStore(cfg.data_dir)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (config from SOCIAL_* env vars)
app = create_app()
