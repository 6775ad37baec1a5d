"""JSON file storage for game snapshots.

Snapshots are stored as flat JSON files under a configurable base directory.
There is no database: reads and writes go through pydantic's JSON helpers.

Directory layout:

    {base}/
      saves/
        {slug}.json    <- one GameSnapshot per named save
"""

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path

from social_core.snapshot import GameSnapshot, parse_snapshot

logger = logging.getLogger(__name__)

SLUG_MAX = 80
_QUOTES = str.maketrans("", "", "'\"\u2019")
_WORD = re.compile(r"[a-z0-9]+")


class SnapshotStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._saves = base_path / "saves"
        self._saves.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def slug_for(name: str) -> str:
        """File stem for a save name: "Week 3 Blindside" -> "week-3-blindside".

        Accents fold to their base letter, quotes vanish, every other run of
        non-alphanumerics becomes one dash.
        """
        folded = unicodedata.normalize("NFKD", name.casefold().translate(_QUOTES))
        plain = "".join(c for c in folded if not unicodedata.combining(c))
        slug = "-".join(_WORD.findall(plain))[:SLUG_MAX].strip("-")
        return slug or "untitled"

    def _file(self, name: str) -> Path:
        return self._saves / f"{self.slug_for(name)}.json"

    def save(self, name: str, snapshot: GameSnapshot) -> str:
        """Write a snapshot, replacing any save with the same slug. Returns the slug."""
        path = self._file(name)
        path.write_text(snapshot.model_dump_json(indent=2))
        logger.info("Saved snapshot %s (day %d)", path.stem, snapshot.day)
        return path.stem

    def load(self, name: str) -> GameSnapshot | None:
        """Read a save back. Missing saves return None; bad ones raise SnapshotError."""
        path = self._file(name)
        if not path.exists():
            return None
        return parse_snapshot(path.read_text())

    def delete(self, name: str) -> bool:
        path = self._file(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list(self) -> list[str]:
        return sorted(p.stem for p in self._saves.glob("*.json"))
