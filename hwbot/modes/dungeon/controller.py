from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from hwbot.core.config import load_mode_config
from hwbot.core.models import Coordinate, TimingRange, parse_coordinate_table, parse_timing_table
from hwbot.modes.base import ModeController, ModeState
from hwbot.modes.dungeon.strategy import PRIME, build_strategy
from hwbot.network.events import (
    AttackOptions,
    DungeonBattleEnded,
    DungeonBattleStarted,
    DungeonFloorObserved,
    DungeonInfo,
    DungeonLevelComplete,
    ServerEvent,
)

FLOORS_PER_LEVEL = 10

DEFAULT_TIMING = {
    "after_door_click": [2000, 2500],
    "after_attack_choice": [1800, 2100],
    "after_battle_button": [2100, 2350],
    "after_auto": [800, 1000],
    "after_battle_end": [1800, 2000],
    "after_ok": [3500, 4300],
    "after_reward_icon": [3500, 4200],
    "after_collect": [6000, 6500],
}


@dataclass
class DungeonState(ModeState):
    floors_this_session: int = 0
    floor_index: int = 0  # 0-9 within the current level
    attack_options: Optional[AttackOptions] = None
    absolute_floor: Optional[int] = None
    alt_pick_stronger: bool = False


class DungeonController(ModeController):
    """Clears dungeon floors one after another until a loss or a session limit.

    Per floor: door -> attack button -> Battle, then Auto and Speed Up once
    the battle starts, then OK once it ends. After floor 10 the level reward
    is collected and the next level starts from floor 1.
    """

    name = "dungeon"

    def __init__(self, inputs: Any, config: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        if config is None:
            config = load_mode_config("dungeon")
        super().__init__(inputs, config, **kwargs)
        self.state = DungeonState()
        cfg = self.config
        self.strategy = build_strategy(str(cfg.get("attack_strategy", "elemental_priority")), cfg)
        self.max_floors = int(cfg.get("max_floors_per_session", 100))
        if self.max_session_minutes is None:
            self.max_session_minutes = 90.0
        self.two_team_floors = frozenset(int(i) for i in cfg.get("two_team_floors", (4, 6, 9)))
        wait_cfg = cfg.get("formation_wait") or {}
        self.formation_wait_ms = int(wait_cfg.get("interval_ms", 200))
        self.formation_wait_attempts = int(wait_cfg.get("attempts", 15))
        self.timings = parse_timing_table(cfg.get("timing"), DEFAULT_TIMING)
        idle = cfg.get("idle_pause") or {}
        self.idle_frequency = float(idle.get("frequency", 0.05))
        self.idle_range = TimingRange.parse([idle.get("min", 90_000), idle.get("max", 240_000)])
        self.doors: List[Coordinate] = [Coordinate.parse(d) for d in cfg.get("doors") or []]
        self.buttons = parse_coordinate_table(cfg.get("buttons"))

    # Events ----------------------------------------------------------------
    def apply_event(self, event: ServerEvent) -> None:
        if isinstance(event, DungeonInfo):
            if event.floor_number:
                self.state.floor_index = (event.floor_number % FLOORS_PER_LEVEL + 9) % FLOORS_PER_LEVEL
                self.state.absolute_floor = event.floor_number
                self.logger.info(
                    "dungeonGetInfo: floor %d -> position %d/%d",
                    event.floor_number,
                    self.state.floor_index + 1,
                    FLOORS_PER_LEVEL,
                )
            self._cache_options(event.options)
        elif isinstance(event, DungeonFloorObserved):
            self.state.absolute_floor = event.floor_number
            self.logger.debug("[%s] API floor: %d", event.name, event.floor_number)
        elif isinstance(event, DungeonBattleEnded):
            # Next floor's formations arrive with the previous battle's result.
            self._cache_options(event.next_options)

    def wants(self, event: ServerEvent) -> bool:
        return isinstance(event, (DungeonBattleStarted, DungeonBattleEnded, DungeonLevelComplete))

    def _cache_options(self, options: Optional[AttackOptions]) -> None:
        if options is None:
            return
        self.state.attack_options = options
        self.logger.info(
            "Attack data: prime=%d (%s), nonprime=%d (%s)",
            options.prime.power,
            options.prime.defender_type,
            options.nonprime.power,
            options.nonprime.defender_type,
        )

    # Sequencer -------------------------------------------------------------
    def reset_session(self) -> None:
        self.state.floors_this_session = 0
        self.state.alt_pick_stronger = False

    async def run(self) -> None:
        self.logger.info("Starting at floor %d/%d", self.state.floor_index + 1, FLOORS_PER_LEVEL)
        self.set_status("Starting...")
        await self._enter_floor()
        while self.state.running:
            event = await self.receive()
            if event is None:
                break
            if isinstance(event, DungeonBattleStarted):
                await self._on_battle_started()
            elif isinstance(event, DungeonBattleEnded):
                await self._on_battle_ended(event.won)
            elif isinstance(event, DungeonLevelComplete):
                await self._on_level_complete()

    async def _enter_floor(self) -> None:
        if not self.state.running or not self.check_time_limit():
            return
        index = self.state.floor_index
        door = self.doors[index] if index < len(self.doors) else None
        self.set_status("Entering floor...")
        await self.click_target(f"door {index + 1}", door)
        if not await self.pause(self.timings["after_door_click"]):
            return

        if index in self.two_team_floors and self.state.attack_options is None:
            self.logger.info("Waiting for floor power data...")
            self.set_status("Loading teams...")
            for _ in range(self.formation_wait_attempts):
                if self.state.attack_options is not None:
                    break
                if not await self.pause(self.formation_wait_ms):
                    return

        attack = self.choose_attack()
        self.set_status("Choosing attack...")
        await self.click_target(attack, self.buttons.get(attack))
        if not await self.pause(self.timings["after_attack_choice"]):
            return
        await self.click_target("battle", self.buttons.get("battle"))

    def choose_attack(self) -> str:
        index = self.state.floor_index
        if index not in self.two_team_floors:
            self.logger.info("Floor %d: single team -> attack_single", index + 1)
            return "attack_single"
        options = self.state.attack_options
        if options is None:
            self.logger.info("No attack data yet; defaulting to prime")
            return PRIME
        self.state.attack_options = None
        return self.strategy.choose(options, self.state)

    async def _on_battle_started(self) -> None:
        self.set_status("Battle starting...")
        if not await self.pause(self.timings["after_battle_button"]):
            return
        await self.click_target("auto", self.buttons.get("auto"))
        self.set_status("In battle...")
        if not await self.pause(self.timings["after_auto"]):
            return
        await self.click_target("speed_up", self.buttons.get("speed_up"))

    async def _on_battle_ended(self, won: bool) -> None:
        self.state.floors_this_session += 1
        if not won:
            self.logger.warning(
                "BATTLE LOST on floor %d; handle the loss screen manually",
                self.state.floor_index + 1,
            )
            self.stop("Battle lost")
            return

        self.logger.info(
            "Floor %d/%d cleared (%d this session)",
            self.state.floor_index + 1,
            FLOORS_PER_LEVEL,
            self.state.floors_this_session,
        )
        if not self.session_ok():
            return

        if self.rng.random() < self.idle_frequency:
            idle_ms = self.idle_range.sample(self.rng)
            self.logger.info("Idle pause: %d min", round(idle_ms / 60_000))
            self.set_status("Pausing...")
            if not await self.pause(idle_ms):
                return

        self.set_status("Battle won...")
        if not await self.pause(self.timings["after_battle_end"]):
            return
        await self.click_target("ok", self.buttons.get("ok"))

        finished = self.state.floor_index
        self.state.floor_index = (finished + 1) % FLOORS_PER_LEVEL

        if finished == FLOORS_PER_LEVEL - 1:
            self.logger.info("Floor %d cleared; collecting level rewards", FLOORS_PER_LEVEL)
            self.set_status("Collecting...")
            if not await self.pause(self.timings["after_ok"]):
                return
            await self.click_target("reward_icon", self.buttons.get("reward_icon"))
            if not await self.pause(self.timings["after_reward_icon"]):
                return
            await self.click_target("collect", self.buttons.get("collect"))
            # dungeonSaveProgress follows -> _on_level_complete
        else:
            self.set_status("Next floor...")
            if not await self.pause(self.timings["after_ok"]):
                return
            await self._enter_floor()

    async def _on_level_complete(self) -> None:
        self.logger.info("Level complete; waiting for next level to load")
        self.set_status("Next level...")
        if not await self.pause(self.timings["after_collect"]):
            return
        if not self.session_ok():
            return
        self.state.floor_index = 0
        await self._enter_floor()

    def session_ok(self) -> bool:
        if self.state.floors_this_session >= self.max_floors:
            self.stop(f"Reached max floors ({self.max_floors})")
            return False
        return self.check_time_limit()

    # Reporting -------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(
            {
                "floor_in_level": self.state.floor_index + 1,
                "absolute_floor": self.state.absolute_floor,
                "floors_session": self.state.floors_this_session,
                "strategy": self.strategy.name,
            }
        )
        return snap

    def summary(self) -> str:
        return f"Floors this session: {self.state.floors_this_session}"
