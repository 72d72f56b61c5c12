"""Passive observation of the game's API traffic."""

from .envelope import decode_exchange
from .events import (
    AttackOption,
    AttackOptions,
    DungeonBattleEnded,
    DungeonBattleStarted,
    DungeonFloorObserved,
    DungeonInfo,
    DungeonLevelComplete,
    ExpeditionStatus,
    ServerEvent,
    TowerChestOpened,
    TowerNextChest,
    TowerReward,
    Unrecognized,
)
from .observer import NetworkObserver

__all__ = [
    "AttackOption",
    "AttackOptions",
    "DungeonBattleEnded",
    "DungeonBattleStarted",
    "DungeonFloorObserved",
    "DungeonInfo",
    "DungeonLevelComplete",
    "ExpeditionStatus",
    "NetworkObserver",
    "ServerEvent",
    "TowerChestOpened",
    "TowerNextChest",
    "TowerReward",
    "Unrecognized",
    "decode_exchange",
]
