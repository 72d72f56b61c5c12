from __future__ import annotations

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from hwbot.core.models import Coordinate, TimingRange
from hwbot.core.timeline import Timeline, timeline as default_timeline
from hwbot.network.events import ServerEvent

Sleep = Callable[[float], Awaitable[Any]]

# Posted to an inbox by stop() so a pending receive() wakes up and sees running=False.
_WAKE = object()


@dataclass
class ModeState:
    """Run bookkeeping shared by every mode."""

    running: bool = False
    session_start: Optional[float] = None
    status_label: Optional[str] = None

    def begin_session(self, now: float) -> None:
        self.running = True
        self.session_start = now
        self.status_label = None

    def elapsed_seconds(self, now: float) -> float:
        if self.session_start is None:
            return 0.0
        return max(0.0, now - self.session_start)


class ModeController(ABC):
    """Sequencer contract for one automation mode.

    A controller owns its state and an inbox of server events. ``start`` spawns
    the sequencer task on the running loop; ``stop`` is cooperative: it flips
    the running flag and every continuation re-checks it after each await.
    All methods must be called on the event loop thread.
    """

    name: str = "base"
    state: ModeState

    def __init__(
        self,
        inputs: Any,
        config: Optional[Mapping[str, Any]] = None,
        *,
        timeline: Optional[Timeline] = None,
        sleep: Optional[Sleep] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.inputs = inputs
        self.config: Dict[str, Any] = dict(config or {})
        self.timeline = timeline or default_timeline
        self.logger = logging.getLogger(f"hwbot.{self.name}")
        self._sleep: Sleep = sleep or asyncio.sleep
        self._clock = clock
        self.rng = rng or random.Random()
        self._inbox: "asyncio.Queue[Any]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self.coord_mode = bool(self.config.get("coord_mode", False))
        minutes = self.config.get("max_session_minutes")
        self.max_session_minutes: Optional[float] = float(minutes) if minutes is not None else None

    # Lifecycle -------------------------------------------------------------
    def start(self) -> bool:
        """Begin a run. Returns False when one is already in progress."""
        if self.state.running:
            return False
        stale = self._task
        if stale is not None and not stale.done():
            # A continuation of the previous run may still be parked in a wait.
            stale.cancel()
        self._drain_inbox()
        self.reset_session()
        self.state.begin_session(self._clock())
        self.timeline.add(self.name, "transition", "start")
        self._task = asyncio.get_running_loop().create_task(self._guarded_run())
        return True

    def stop(self, reason: Optional[str] = None) -> bool:
        """End the current run. Returns False when nothing was running."""
        if not self.state.running:
            return False
        self.state.running = False
        msg = reason or "Stopped"
        self.set_status(msg)
        self.logger.info("%s. %s", msg, self.summary())
        self.timeline.add(self.name, "stop", msg)
        self._inbox.put_nowait(_WAKE)
        return True

    def toggle(self) -> bool:
        """Stop when running, start when stopped. Returns the new running flag."""
        if self.state.running:
            self.stop("Stopped by user")
        else:
            self.start()
        return self.state.running

    @property
    def running(self) -> bool:
        return self.state.running

    async def wait_finished(self) -> None:
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _guarded_run(self) -> None:
        try:
            await self.run()
        except asyncio.CancelledError:
            if self._owns_session():
                self.stop("Cancelled")
            raise
        except Exception:
            self.logger.exception("%s sequencer crashed", self.name)
            if self._owns_session():
                self.stop("Error")

    def _owns_session(self) -> bool:
        """False for a superseded task, whose outcome must not end the current run."""
        return self._task is asyncio.current_task()

    # Events ----------------------------------------------------------------
    def handle_event(self, event: ServerEvent) -> None:
        """Observer callback: fold the event into state, queue it if it drives the run."""
        self.apply_event(event)
        if self.state.running and self.wants(event):
            self._inbox.put_nowait(event)

    def apply_event(self, event: ServerEvent) -> None:
        """Update state from an event; runs whether or not the mode is active."""
        return None

    def wants(self, event: ServerEvent) -> bool:
        """True for events the sequencer waits on."""
        return False

    async def receive(self, timeout: Optional[float] = None) -> Optional[ServerEvent]:
        """Next queued event, or None once stopped or after ``timeout`` seconds."""
        while self.state.running:
            try:
                if timeout is None:
                    item = await self._inbox.get()
                else:
                    item = await asyncio.wait_for(self._inbox.get(), timeout)
            except asyncio.TimeoutError:
                return None
            if item is _WAKE:
                continue
            return item
        return None

    def _drain_inbox(self) -> None:
        while not self._inbox.empty():
            self._inbox.get_nowait()

    # Helpers for sequencers ------------------------------------------------
    async def pause(self, delay: Union[TimingRange, int, float]) -> bool:
        """Sleep ``delay`` (a range is sampled) and report whether to continue."""
        ms = delay.sample(self.rng) if isinstance(delay, TimingRange) else int(delay)
        await self._sleep(ms / 1000.0)
        if not self.state.running:
            return False
        return self.check_time_limit()

    def check_time_limit(self) -> bool:
        if self.max_session_minutes is None:
            return True
        elapsed = self.state.elapsed_seconds(self._clock())
        if elapsed >= self.max_session_minutes * 60:
            self.stop(f"Reached max session time ({self.max_session_minutes:g} min)")
            return False
        return True

    async def click_target(self, label: str, coord: Optional[Coordinate]) -> bool:
        if coord is None:
            self.logger.error("unknown click target %r", label)
            return False
        if coord.is_unmapped:
            self.logger.warning("%r not mapped; map it with coord_mode first", label)
            return False
        self.logger.info("Click %s %s", label, coord)
        self.timeline.add(self.name, "click", label, x=coord.x, y=coord.y)
        return await self.inputs.click_at(coord)

    async def press_escape(self, label: str = "escape") -> None:
        self.logger.info("Press Escape (%s)", label)
        self.timeline.add(self.name, "key", label, key="Escape")
        await self.inputs.press_escape()

    def set_status(self, label: str) -> None:
        self.state.status_label = label

    def elapsed_minutes(self) -> int:
        return int(round(self.state.elapsed_seconds(self._clock()) / 60))

    # Reporting -------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        return {
            "mode": self.name,
            "running": self.state.running,
            "status": self.state.status_label or ("Running" if self.state.running else "Ready"),
            "elapsed_min": self.elapsed_minutes(),
            "coord_mode": self.coord_mode,
        }

    def status(self) -> Dict[str, Any]:
        snap = self.snapshot()
        self.logger.info("Status: %s", snap)
        return snap

    def summary(self) -> str:
        return ""

    # Mode specifics --------------------------------------------------------
    def reset_session(self) -> None:
        """Reset per-run counters before the running flag is raised."""
        return None

    @abstractmethod
    async def run(self) -> None:
        """The sequencer body; returns when the run ends."""
        raise NotImplementedError
