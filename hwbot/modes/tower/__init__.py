from .controller import CHEST_FLOORS, DOOR_POSITIONS, TowerController, TowerState

__all__ = ["CHEST_FLOORS", "DOOR_POSITIONS", "TowerController", "TowerState"]
