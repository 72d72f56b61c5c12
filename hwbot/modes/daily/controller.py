from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from hwbot.core.config import load_mode_config
from hwbot.modes.base import ModeController, ModeState
from hwbot.modes.daily.steps import CLICK, ESCAPE, SECTION, AutomationStep, parse_steps
from hwbot.network.events import ExpeditionStatus, ServerEvent


@dataclass
class DailyState(ModeState):
    steps_done: int = 0
    current_step: str = ""
    expedition_rewards_available: Optional[bool] = None  # None until expeditionGet is seen


class DailyController(ModeController):
    """Walks the chore checklist top to bottom.

    There is no feedback loop: each step fires and waits its interval whether
    or not the game reacted.
    """

    name = "daily"

    def __init__(
        self,
        inputs: Any,
        config: Optional[Dict[str, Any]] = None,
        *,
        steps: Optional[List[AutomationStep]] = None,
        **kwargs: Any,
    ) -> None:
        if config is None:
            config = load_mode_config("daily")
        super().__init__(inputs, config, **kwargs)
        self.state = DailyState()
        self.steps = steps if steps is not None else parse_steps(self.config.get("steps") or [])

    def apply_event(self, event: ServerEvent) -> None:
        if isinstance(event, ExpeditionStatus):
            self.state.expedition_rewards_available = event.rewards_available
            self.logger.info("expeditionGet: rewards available=%s", event.rewards_available)

    def reset_session(self) -> None:
        self.state.steps_done = 0
        self.state.current_step = ""
        self.state.expedition_rewards_available = None

    async def run(self) -> None:
        self.logger.info("Starting daily run (%d steps)", len(self.steps))
        self.set_status("Starting...")
        for step in self.steps:
            if not self.state.running:
                return
            if step.kind == SECTION:
                self.logger.info("-- %s --", step.label)
                self._mark(step)
                continue
            if not step.applies(self.state):
                self.logger.info("Skipping: %s", step.label)
                self.timeline.add(self.name, "info", "skip", step=step.label, guard=step.guard_name)
                continue

            self.logger.info(step.label)
            self._mark(step)
            if step.kind == CLICK:
                await self.click_target(step.label, step.coord)
            elif step.kind == ESCAPE:
                await self.press_escape(step.label)
            self.state.steps_done += 1

            if step.wait is not None and not await self.pause(step.wait):
                return

        if self.state.running:
            self.stop("Daily run complete")

    def _mark(self, step: AutomationStep) -> None:
        self.state.current_step = step.label
        self.set_status(step.label)

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(
            {
                "current_step": self.state.current_step,
                "steps_done": self.state.steps_done,
                "steps_total": sum(1 for s in self.steps if s.kind != SECTION),
                "expedition_rewards_available": self.state.expedition_rewards_available,
            }
        )
        return snap

    def summary(self) -> str:
        return f"Steps done: {self.state.steps_done}"
