"""Social Core launcher. Serves the API, or runs a headless demo simulation."""

import argparse
import logging
import os
import random
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13015")


def main():
    parser = argparse.ArgumentParser(description="Social Core launcher")
    parser.add_argument("--config", type=Path, default=None,
                        help="JSON config file (SOCIAL_* env vars still win)")
    parser.add_argument("--simulate", type=int, metavar="DAYS", default=None,
                        help="Run a headless demo simulation for DAYS days and exit")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for a reproducible simulation")
    parser.add_argument("--reload", action="store_true", help="Reload the server on code changes")
    args = parser.parse_args()

    from social_core.config import load_config

    config = load_config(args.config)
    if args.seed is not None:
        config = config.model_copy(update={"seed": args.seed})
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if args.simulate is not None:
        from social_core.clock import VirtualClock
        from social_core.demo import run_simulation
        from social_core.orchestrator import Game

        clock = VirtualClock()
        game = Game(config, clock=clock, rng=random.Random(config.seed))
        run_simulation(game, clock, args.simulate)
        return

    import uvicorn

    print(f"Starting API on http://localhost:{PORT} ...")
    uvicorn.run("social_server.app:app", host=HOST, port=int(PORT), reload=args.reload)


if __name__ == "__main__":
    main()
