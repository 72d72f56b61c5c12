"""Automation modes: one sequencer per kind of daily content."""

from .base import ModeController, ModeState
from .daily import DailyController
from .dungeon import DungeonController
from .tower import TowerController

__all__ = ["DailyController", "DungeonController", "ModeController", "ModeState", "TowerController"]
