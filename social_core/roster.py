"""Cast roster: the id arena every engine keys on.

Names are resolved to ids here and nowhere else. Personalities are derived
once, when a member joins, from their disposition tags:

    trait           first tag hit -> value     second tag hit -> value   else
    aggressiveness  confrontational 80         aggressive 90             30
    manipulation    deceptive 85               calculating 70            25
    loyalty         loyal 85                   treacherous 15            50
    paranoia        paranoid 90                suspicious 70             30
    charisma        charming 85                diplomatic 75             40
    intelligence    calculating 85             strategic 80              50
    emotionality    emotional 85               reactive 75               40
    risk_tolerance  rebellious 80              conservative 20           50
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from social_core.models import CastMember, Personality

logger = logging.getLogger(__name__)

# trait -> ((tag, value), (tag, value), default)
TRAIT_RULES: dict[str, tuple[tuple[str, float], tuple[str, float], float]] = {
    "aggressiveness": (("confrontational", 80), ("aggressive", 90), 30),
    "manipulation": (("deceptive", 85), ("calculating", 70), 25),
    "loyalty": (("loyal", 85), ("treacherous", 15), 50),
    "paranoia": (("paranoid", 90), ("suspicious", 70), 30),
    "charisma": (("charming", 85), ("diplomatic", 75), 40),
    "intelligence": (("calculating", 85), ("strategic", 80), 50),
    "emotionality": (("emotional", 85), ("reactive", 75), 40),
    "risk_tolerance": (("rebellious", 80), ("conservative", 20), 50),
}


def derive_personality(dispositions: Iterable[str]) -> Personality:
    tags = {d.strip().lower() for d in dispositions}
    traits: dict[str, float] = {}
    for trait, ((tag_a, val_a), (tag_b, val_b), default) in TRAIT_RULES.items():
        if tag_a in tags:
            traits[trait] = val_a
        elif tag_b in tags:
            traits[trait] = val_b
        else:
            traits[trait] = default
    return Personality(**traits)


class Roster:
    """Ordered arena of cast members indexed by stable integer ids."""

    def __init__(self, members: Iterable[CastMember] = ()) -> None:
        self._members: dict[int, CastMember] = {}
        self._by_name: dict[str, int] = {}
        self._next_id = 1
        for m in members:
            self._insert(m)

    def _insert(self, member: CastMember) -> None:
        key = member.name.strip().lower()
        if key in self._by_name:
            raise ValueError(f"Duplicate cast member name {member.name!r}")
        self._members[member.id] = member
        self._by_name[key] = member.id
        self._next_id = max(self._next_id, member.id + 1)

    def add(self, name: str, dispositions: Iterable[str] = (), is_player: bool = False) -> CastMember:
        tags = list(dispositions)
        member = CastMember(
            id=self._next_id,
            name=name,
            dispositions=tags,
            is_player=is_player,
            personality=Personality() if is_player else derive_personality(tags),
        )
        self._insert(member)
        return member

    # ── lookup ──────────────────────────────────────────────

    def __contains__(self, npc_id: object) -> bool:
        return npc_id in self._members

    def __len__(self) -> int:
        return len(self._members)

    def get(self, npc_id: int) -> CastMember | None:
        return self._members.get(npc_id)

    def id_for(self, name: str | None) -> int | None:
        if not name:
            return None
        return self._by_name.get(name.strip().lower())

    def name_of(self, npc_id: int | None) -> str:
        member = self._members.get(npc_id) if npc_id is not None else None
        return member.name if member else "someone"

    def names(self) -> list[str]:
        return [m.name for m in self._members.values()]

    def members(self) -> list[CastMember]:
        return list(self._members.values())

    def ids(self) -> list[int]:
        return list(self._members)

    def npcs(self, include_eliminated: bool = False) -> list[CastMember]:
        return [
            m for m in self._members.values()
            if not m.is_player and (include_eliminated or not m.eliminated)
        ]

    def active_ids(self) -> list[int]:
        return [m.id for m in self._members.values() if not m.eliminated]

    @property
    def player(self) -> CastMember | None:
        for m in self._members.values():
            if m.is_player:
                return m
        return None

    def personality(self, npc_id: int) -> Personality:
        member = self._members.get(npc_id)
        return member.personality if member else Personality()

    def eliminate(self, npc_id: int) -> None:
        member = self._members.get(npc_id)
        if member is None:
            logger.warning("eliminate: unknown cast id %r", npc_id)
            return
        member.eliminated = True
