"""Simulation configuration (cadence, renderer connection, meta markers, seed).

Values are resolved in three layers, later layers winning:

    1. _CONFIG_DEFAULTS below
    2. an optional JSON file (the same keys, partial is fine)
    3. SOCIAL_* environment variables, e.g. SOCIAL_TICK_INTERVAL_SECONDS=10

A .env file at the repository root is loaded once on import, the same way
the app and the launcher pick up their settings.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

load_dotenv(Path(__file__).parent.parent / ".env")

ENV_PREFIX = "SOCIAL_"

# Phrases that break the fiction. Excludes "game" and "fake", which
# contestants use in-character all the time.
DEFAULT_META_MARKERS: tuple[str, ...] = (
    "npc",
    "the ai",
    "an ai",
    "artificial intelligence",
    "robot",
    "the program",
    "the code",
    "simulation",
    "scripted",
    "not real",
    "developer",
    "programmer",
)

_CONFIG_DEFAULTS: dict[str, Any] = {
    "tick_interval_seconds": 30.0,
    "decision_cooldown_seconds": 180.0,
    "recent_action_seconds": 300.0,
    "drama_floor_seconds": 600.0,
    "event_retention_days": 7,
    "decay_grace_days": 3,
    "render_timeout_seconds": 8.0,
    "renderer_url": "",
    "renderer_format": "koboldcpp",
    "renderer_api_key": "",
    "renderer_model": "",
    "meta_markers": list(DEFAULT_META_MARKERS),
    "seed": None,
    "player_name": "Player",
    "log_level": "INFO",
    "data_dir": "data",
}


class SimConfig(BaseModel):
    tick_interval_seconds: float = _CONFIG_DEFAULTS["tick_interval_seconds"]
    decision_cooldown_seconds: float = _CONFIG_DEFAULTS["decision_cooldown_seconds"]
    recent_action_seconds: float = _CONFIG_DEFAULTS["recent_action_seconds"]
    drama_floor_seconds: float = _CONFIG_DEFAULTS["drama_floor_seconds"]
    event_retention_days: int = _CONFIG_DEFAULTS["event_retention_days"]
    decay_grace_days: int = _CONFIG_DEFAULTS["decay_grace_days"]
    render_timeout_seconds: float = _CONFIG_DEFAULTS["render_timeout_seconds"]
    renderer_url: str = _CONFIG_DEFAULTS["renderer_url"]
    renderer_format: Literal["koboldcpp", "openai"] = _CONFIG_DEFAULTS["renderer_format"]
    renderer_api_key: str = _CONFIG_DEFAULTS["renderer_api_key"]
    renderer_model: str = _CONFIG_DEFAULTS["renderer_model"]
    meta_markers: list[str] = Field(default_factory=lambda: list(DEFAULT_META_MARKERS))
    seed: int | None = None
    player_name: str = _CONFIG_DEFAULTS["player_name"]
    log_level: str = _CONFIG_DEFAULTS["log_level"]
    data_dir: Path = Path(_CONFIG_DEFAULTS["data_dir"])


def _env_overrides() -> dict[str, Any]:
    """Collect SOCIAL_* variables that name a known config key."""
    overrides: dict[str, Any] = {}
    for key in _CONFIG_DEFAULTS:
        raw = os.getenv(ENV_PREFIX + key.upper())
        if raw is None or raw == "":
            continue
        if key == "meta_markers":
            overrides[key] = [m.strip() for m in raw.split(",") if m.strip()]
        else:
            overrides[key] = raw
    return overrides


def load_config(path: Path | None = None) -> SimConfig:
    """Return defaults merged with the JSON file (if any) and the environment."""
    merged: dict[str, Any] = dict(_CONFIG_DEFAULTS)
    merged["meta_markers"] = list(_CONFIG_DEFAULTS["meta_markers"])
    if path is not None and path.is_file():
        stored = json.loads(path.read_text())
        for key, value in stored.items():
            if key in _CONFIG_DEFAULTS:
                merged[key] = value
            else:
                logger.warning("Ignoring unknown config key %r in %s", key, path)
    merged.update(_env_overrides())
    return SimConfig.model_validate(merged)


def save_config(config: SimConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2))
