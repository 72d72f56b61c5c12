"""Typed server events decoded from the game's batched API calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional


@dataclass(frozen=True)
class AttackOption:
    """One enemy formation offered on a two-choice dungeon floor."""

    power: int = 0
    hero_ids: FrozenSet[Any] = frozenset()
    defender_type: str = "unknown"


@dataclass(frozen=True)
class AttackOptions:
    prime: AttackOption
    nonprime: AttackOption


@dataclass(frozen=True)
class ServerEvent:
    name: str


@dataclass(frozen=True)
class DungeonInfo(ServerEvent):
    floor_number: Optional[int] = None
    options: Optional[AttackOptions] = None


@dataclass(frozen=True)
class DungeonFloorObserved(ServerEvent):
    floor_number: int = 0


@dataclass(frozen=True)
class DungeonBattleStarted(ServerEvent):
    pass


@dataclass(frozen=True)
class DungeonBattleEnded(ServerEvent):
    won: bool = True
    next_options: Optional[AttackOptions] = None


@dataclass(frozen=True)
class DungeonLevelComplete(ServerEvent):
    pass


@dataclass(frozen=True)
class TowerNextChest(ServerEvent):
    pass


@dataclass(frozen=True)
class TowerChestOpened(ServerEvent):
    pass


@dataclass(frozen=True)
class TowerReward(ServerEvent):
    data: Any = None


@dataclass(frozen=True)
class ExpeditionStatus(ServerEvent):
    rewards_available: bool = False


@dataclass(frozen=True)
class Unrecognized(ServerEvent):
    args: Dict[str, Any] = field(default_factory=dict)
    response: Any = None


TOWER_REWARD_CALLS = frozenset({"tower_getSkullReward", "tower_farmSkullReward", "tower_farmPointRewards"})

# expeditionGet entry status for a finished expedition whose reward is waiting
EXPEDITION_STATUS_FINISHED = 2


def floor_number(value: Any) -> Optional[int]:
    """Coerce an API floor field to a positive int, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number or None


def parse_attack_options(floor: Any) -> Optional[AttackOptions]:
    """Read the two formations from a dungeon ``floor`` object.

    ``floor.userData[0]`` is the left (prime) button, ``[1]`` the right one.
    """
    if not isinstance(floor, dict):
        return None
    user_data = floor.get("userData")
    if not isinstance(user_data, list) or len(user_data) < 2:
        return None

    def option(entry: Any) -> AttackOption:
        if not isinstance(entry, dict):
            return AttackOption()
        team = entry.get("team") or []
        hero_ids = frozenset(
            hero.get("id") for hero in team if isinstance(hero, dict) and hero.get("id") is not None
        )
        return AttackOption(
            power=int(entry.get("power") or 0),
            hero_ids=hero_ids,
            defender_type=str(entry.get("defenderType") or "unknown"),
        )

    return AttackOptions(prime=option(user_data[0]), nonprime=option(user_data[1]))


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def scan_floor_number(response: Any) -> Optional[int]:
    """Find a floor number anywhere the dungeon API is known to report one."""
    if not isinstance(response, dict):
        return None
    for path in (("dungeon", "floorNumber"), ("floorNumber",), ("floor", "number"), ("dungeon", "floor")):
        number = floor_number(_dig(response, *path))
        if number:
            return number
    return None


def expedition_rewards_available(response: Any) -> bool:
    entries: Any = response
    if isinstance(response, dict):
        entries = list(response.values())
    if not isinstance(entries, list):
        return False
    return any(
        isinstance(entry, dict) and entry.get("status") == EXPEDITION_STATUS_FINISHED
        for entry in entries
    )


def classify_call(name: str, args: Any, response: Any) -> ServerEvent:
    """Map one call/result pair to its typed event."""
    args = args if isinstance(args, dict) else {}
    if name == "dungeonGetInfo":
        return DungeonInfo(
            name=name,
            floor_number=floor_number(_dig(response, "floorNumber")),
            options=parse_attack_options(_dig(response, "floor")),
        )
    if name == "dungeonStartBattle":
        return DungeonBattleStarted(name=name)
    if name == "dungeonEndBattle":
        won = _dig(args, "result", "win") is not False
        return DungeonBattleEnded(
            name=name,
            won=won,
            next_options=parse_attack_options(_dig(response, "dungeon", "floor")),
        )
    if name == "dungeonSaveProgress":
        return DungeonLevelComplete(name=name)
    if name == "towerNextChest":
        return TowerNextChest(name=name)
    if name == "towerOpenChest":
        return TowerChestOpened(name=name)
    if name in TOWER_REWARD_CALLS:
        return TowerReward(name=name, data=response)
    if name == "expeditionGet":
        return ExpeditionStatus(name=name, rewards_available=expedition_rewards_available(response))
    return Unrecognized(name=name, args=args, response=response)
