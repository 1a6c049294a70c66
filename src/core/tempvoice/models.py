from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional, Set, Tuple

USER_LIMIT_MAX = 99


def clamp_user_limit(value: int) -> int:
    return max(0, min(USER_LIMIT_MAX, int(value)))


def _id_set(raw) -> Set[int]:
    out: Set[int] = set()
    for v in raw or ():
        try:
            out.add(int(v))
        except (TypeError, ValueError, OverflowError):
            continue
    return out


@dataclass
class Room:
    """État d'une room temporaire.

    locked/private : les nouvelles connexions non autorisées sont bloquées
    hidden         : salon invisible pour @everyone
    user_limit     : 0 = illimité, sinon 1..99 (miroir de la limite du salon)
    backup_name    : dernier nom connu, restauré si le salon est renommé de l'extérieur
    """

    channel_id: int
    guild_id: int
    owner: int
    co_owners: Set[int] = field(default_factory=set)
    trusted: Set[int] = field(default_factory=set)
    banned: Set[int] = field(default_factory=set)
    locked: bool = False
    private: bool = False
    hidden: bool = False
    user_limit: int = 0
    backup_name: str = ""
    created_at: float = field(default_factory=time.time)

    def is_manager(self, user_id: int) -> bool:
        return user_id == self.owner or user_id in self.co_owners

    def set_owner(self, user_id: int) -> None:
        self.owner = user_id
        # Le propriétaire ne peut jamais être banni
        self.banned.discard(user_id)

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            "co_owners": sorted(self.co_owners),
            "trusted": sorted(self.trusted),
            "banned": sorted(self.banned),
            "locked": self.locked,
            "private": self.private,
            "hidden": self.hidden,
            "user_limit": self.user_limit,
            "backup_name": self.backup_name,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, guild_id: int, channel_id: int, data: dict) -> "Room":
        """Accepte aussi l'ancien format camelCase (coowners, userLimit, backupName, createdAt en ms)."""
        created_at = data.get("created_at")
        if created_at is None and data.get("createdAt") is not None:
            created_at = float(data["createdAt"]) / 1000.0
        room = cls(
            channel_id=int(channel_id),
            guild_id=int(guild_id),
            owner=int(data["owner"]),
            co_owners=_id_set(data.get("co_owners", data.get("coowners"))),
            trusted=_id_set(data.get("trusted")),
            banned=_id_set(data.get("banned")),
            locked=bool(data.get("locked", False)),
            private=bool(data.get("private", False)),
            hidden=bool(data.get("hidden", False)),
            user_limit=clamp_user_limit(data.get("user_limit", data.get("userLimit")) or 0),
            backup_name=str(data.get("backup_name", data.get("backupName")) or ""),
            created_at=float(created_at or time.time()),
        )
        room.banned.discard(room.owner)
        return room


class RoomRegistry:
    """Table en mémoire guild_id -> channel_id -> Room (source de vérité du processus)."""

    def __init__(self):
        self._rooms: Dict[int, Dict[int, Room]] = {}

    def get(self, guild_id: int, channel_id: int) -> Optional[Room]:
        return self._rooms.get(guild_id, {}).get(channel_id)

    def add(self, room: Room) -> None:
        self._rooms.setdefault(room.guild_id, {})[room.channel_id] = room

    def remove(self, guild_id: int, channel_id: int) -> Optional[Room]:
        rooms = self._rooms.get(guild_id)
        if not rooms:
            return None
        room = rooms.pop(channel_id, None)
        if not rooms:
            self._rooms.pop(guild_id, None)
        return room

    def guild_rooms(self, guild_id: int) -> list[Room]:
        return list(self._rooms.get(guild_id, {}).values())

    def __iter__(self) -> Iterator[Room]:
        for rooms in list(self._rooms.values()):
            yield from list(rooms.values())

    def __len__(self) -> int:
        return sum(len(r) for r in self._rooms.values())

    def __contains__(self, key: Tuple[int, int]) -> bool:
        guild_id, channel_id = key
        return self.get(guild_id, channel_id) is not None

    def to_dict(self) -> dict:
        # Document persistant : clés str (JSON) guild -> channel -> attributs
        return {
            str(gid): {str(cid): room.to_dict() for cid, room in rooms.items()}
            for gid, rooms in self._rooms.items()
            if rooms
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoomRegistry":
        registry = cls()
        for gid, rooms in (data or {}).items():
            if not isinstance(rooms, dict):
                continue
            for cid, raw in rooms.items():
                try:
                    registry.add(Room.from_dict(int(gid), int(cid), raw))
                except (KeyError, TypeError, ValueError, OverflowError):
                    continue
        return registry


class CooldownLedger:
    """Dernière création de room par utilisateur (non persisté)."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.clock = clock
        self._last: Dict[int, float] = {}

    def try_acquire(self, user_id: int) -> bool:
        now = self.clock()
        last = self._last.get(user_id)
        if last is not None and now - last < self.interval:
            return False
        self._last[user_id] = now
        return True
