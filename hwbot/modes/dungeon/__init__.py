from .controller import DungeonController, DungeonState

__all__ = ["DungeonController", "DungeonState"]
