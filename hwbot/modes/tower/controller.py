from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from hwbot.core.config import load_mode_config
from hwbot.core.models import parse_coordinate_table, parse_timing_table
from hwbot.modes.base import ModeController, ModeState
from hwbot.network.events import ServerEvent, TowerChestOpened, TowerNextChest, TowerReward

# The 15 tower levels holding a chest, and which door leads to each (parallel lists).
CHEST_FLOORS = [4, 8, 10, 14, 16, 20, 22, 26, 28, 32, 35, 39, 42, 46, 50]
DOOR_POSITIONS = [
    "right", "right", "right", "right",
    "right", "right", "right", "right",
    "right", "right", "left", "left",
    "right", "right", "top",
]

CHESTS = ("chest_1", "chest_2", "chest_3")

DEFAULT_TIMING = {
    "after_instant_clear": [1500, 2000],
    "after_next_chest": [1200, 1600],
    "after_chest_door": [1000, 1500],
    "after_chest_open": [2500, 3200],
    "after_top_floor": [1000, 1500],
    "after_skull_button": [1200, 1600],
    "after_exchange": [1500, 2000],
    "after_tower_points": [1200, 1600],
    "after_collect": [1000, 1400],
    "after_escape": [800, 1200],
}


@dataclass
class TowerState(ModeState):
    chest_index: int = 0  # 0-14 into CHEST_FLOORS
    chests_opened: int = 0


class TowerController(ModeController):
    """Opens one chest on every chest floor, then cashes in the run rewards."""

    name = "tower"

    def __init__(self, inputs: Any, config: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        if config is None:
            config = load_mode_config("tower")
        super().__init__(inputs, config, **kwargs)
        self.state = TowerState()
        cfg = self.config
        if self.max_session_minutes is None:
            self.max_session_minutes = 30.0
        self.chest_floors: List[int] = [int(f) for f in cfg.get("chest_floors") or CHEST_FLOORS]
        self.door_positions: List[str] = [str(p) for p in cfg.get("door_positions") or DOOR_POSITIONS]
        if len(self.chest_floors) != len(self.door_positions):
            raise ValueError("chest_floors and door_positions must have the same length")
        self.timings = parse_timing_table(cfg.get("timing"), DEFAULT_TIMING)
        self.buttons = parse_coordinate_table(cfg.get("buttons"))

    def apply_event(self, event: ServerEvent) -> None:
        if isinstance(event, TowerReward):
            self.logger.info("%s: %s", event.name, event.data)

    def wants(self, event: ServerEvent) -> bool:
        return isinstance(event, (TowerNextChest, TowerChestOpened))

    def reset_session(self) -> None:
        self.state.chest_index = 0
        self.state.chests_opened = 0

    @property
    def current_floor(self) -> int:
        return self.chest_floors[min(self.state.chest_index, len(self.chest_floors) - 1)]

    async def run(self) -> None:
        self.logger.info("Starting tower run")
        self.set_status("Starting...")
        # towerNextChest fires for the first chest floor once chests are self-selected.
        await self.click_target("instant_clear", self.buttons.get("instant_clear"))
        self.set_status("Instant clear...")
        if not await self.pause(self.timings["after_instant_clear"]):
            return
        await self.click_target("select_chests_self", self.buttons.get("select_chests_self"))
        self.set_status("Selecting chests...")

        while self.state.running:
            event = await self.receive()
            if event is None:
                break
            if isinstance(event, TowerNextChest):
                await self._on_next_chest()
            elif isinstance(event, TowerChestOpened):
                if await self._on_chest_opened():
                    break

    async def _on_next_chest(self) -> None:
        index = self.state.chest_index
        if index >= len(self.chest_floors):
            self.logger.debug("towerNextChest after the last chest floor; ignored")
            return
        floor = self.chest_floors[index]
        door = f"door_{self.door_positions[index]}"
        self.logger.info("Floor %d (%d/%d): clicking %s", floor, index + 1, len(self.chest_floors), door)
        self.set_status("Going to floor...")
        if not await self.pause(self.timings["after_next_chest"]):
            return
        await self.click_target(door, self.buttons.get(door))
        self.set_status("Entering room...")
        if not await self.pause(self.timings["after_chest_door"]):
            return
        chest = self.rng.choice(CHESTS)
        self.logger.info("Floor %d: randomly opening %s", floor, chest)
        self.set_status("Opening chest...")
        await self.click_target(chest, self.buttons.get(chest))

    async def _on_chest_opened(self) -> bool:
        """Returns True once the run is over (top floor handled)."""
        self.state.chests_opened += 1
        self.state.chest_index += 1
        self.set_status("Chest opened...")
        if not await self.pause(self.timings["after_chest_open"]):
            return True

        if self.state.chest_index < len(self.chest_floors):
            # towerNextChest follows for the next chest floor.
            await self.click_target("proceed", self.buttons.get("proceed"))
            return False

        self.logger.info("Top floor complete; pressing Escape")
        self.set_status("Exiting top floor...")
        await self.press_escape("leave top floor")
        if await self.pause(self.timings["after_top_floor"]):
            await self._finish_run()
        return True

    async def _finish_run(self) -> None:
        """Skull exchange, tower point rewards, exit. Purely time driven."""
        self.logger.info("Finishing run: skull exchange, tower rewards, exit")
        self.set_status("Skull exchange...")
        await self.click_target("skull_button", self.buttons.get("skull_button"))
        if not await self.pause(self.timings["after_skull_button"]):
            return
        await self.click_target("exchange_skulls", self.buttons.get("exchange_skulls"))
        if not await self.pause(self.timings["after_exchange"]):
            return

        self.set_status("Tower rewards...")
        await self.click_target("tower_points", self.buttons.get("tower_points"))
        if not await self.pause(self.timings["after_tower_points"]):
            return
        await self.click_target("collect_all", self.buttons.get("collect_all"))
        self.set_status("Collecting...")
        if not await self.pause(self.timings["after_collect"]):
            return

        await self.press_escape("close rewards")
        self.set_status("Closing...")
        if not await self.pause(self.timings["after_escape"]):
            return
        await self.press_escape("exit tower")
        self.stop("Tower run complete")

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(
            {
                "floor": self.current_floor,
                "chests_opened": self.state.chests_opened,
                "chests_total": len(self.chest_floors),
            }
        )
        return snap

    def summary(self) -> str:
        return f"Chests this run: {self.state.chests_opened}"
