"""Demo cast and a headless simulation loop for development."""

from __future__ import annotations

import logging

from social_core.clock import VirtualClock
from social_core.models import CastEntry, PlayerAction
from social_core.orchestrator import Game

logger = logging.getLogger(__name__)

DEMO_CAST = [
    CastEntry(name="Mara", dispositions=["strategic", "calculating", "charming"]),
    CastEntry(name="Dex", dispositions=["aggressive", "confrontational", "rebellious"]),
    CastEntry(name="Ivy", dispositions=["loyal", "emotional", "diplomatic"]),
    CastEntry(name="Theo", dispositions=["paranoid", "conservative"]),
    CastEntry(name="Lena", dispositions=["deceptive", "treacherous", "strategic"]),
    CastEntry(name="Bo", dispositions=["charming", "reactive"]),
]

DEMO_LINES = [
    ("Mara", "I trust you, want to work together this week?"),
    ("Dex", "Who are you voting for tonight?"),
    ("Ivy", "Honestly I just want to get to know you better."),
    ("Theo", "I'm not worried about the vote, are you?"),
]


def run_simulation(game: Game, clock: VirtualClock, days: int, ticks_per_day: int = 6) -> None:
    """Drive the game for a number of days: ticks, a few player lines, day ends."""
    if not game.initialized:
        game.new_cast(DEMO_CAST)

    for _ in range(days):
        for i in range(ticks_per_day):
            clock.advance(game.config.tick_interval_seconds)
            result = game.tick()
            for decision in result.decisions + result.follow_ups:
                logger.info(
                    "day %d: %s -> %s [%s] %s",
                    game.day,
                    game.roster.name_of(decision.actor),
                    game.roster.name_of(decision.target),
                    decision.type,
                    decision.content,
                )
            for event in result.events:
                logger.info("day %d: event %s: %s", game.day, event.type, event.description)

            target, line = DEMO_LINES[(game.day + i) % len(DEMO_LINES)]
            action = game.player_action(PlayerAction(type="talk", target=target, content=line))
            logger.info("%s (%s): %s", target, action.reaction.take, action.text)
        game.advance_day()

    for npc in game.roster.npcs():
        standing = game.standing(npc.name)
        if standing is not None:
            logger.info(
                "%-6s trust %5.1f  suspicion %5.1f  alliances %d  power %5.1f",
                npc.name,
                standing.average_trust,
                standing.average_suspicion,
                standing.alliance_count,
                standing.social_power,
            )
