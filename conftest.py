import os
import random

import pytest

from social_core.clock import VirtualClock
from social_core.config import ENV_PREFIX, SimConfig
from social_core.models import CastEntry
from social_core.orchestrator import Game


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep SOCIAL_* variables from a developer's shell or .env out of tests."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def cast() -> list[CastEntry]:
    return [
        CastEntry(name="Mara", dispositions=["strategic", "calculating", "charming"]),
        CastEntry(name="Dex", dispositions=["aggressive", "confrontational"]),
        CastEntry(name="Ivy", dispositions=["loyal", "emotional"]),
        CastEntry(name="Theo", dispositions=["paranoid", "conservative"]),
    ]


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock(start=1000.0)


@pytest.fixture
def game(cast, clock) -> Game:
    g = Game(SimConfig(seed=7), clock=clock, rng=random.Random(7))
    g.new_cast(cast, player_name="Sam")
    return g
