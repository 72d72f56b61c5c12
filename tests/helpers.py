import asyncio
from typing import Any, List

from hwbot.core.timeline import Timeline


class FakeInputs:
    """Records what a controller asked the input simulator to do."""

    def __init__(self) -> None:
        self.actions: List[Any] = []

    async def click_at(self, coord) -> bool:
        self.actions.append(("click", coord))
        return True

    async def press_escape(self) -> None:
        self.actions.append(("escape", None))


class FakeSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


async def settle(rounds: int = 200) -> None:
    """Let pending sequencer tasks run until they block on their inbox."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def labels(timeline: Timeline, type_: str, mode: str) -> List[str]:
    return [e["label"] for e in timeline.last(1000, mode=mode) if e["type"] == type_]


def clicks(timeline: Timeline, mode: str) -> List[str]:
    return labels(timeline, "click", mode)


class GatedSleep:
    """Sleep that parks every caller until ``release()``."""

    def __init__(self) -> None:
        self.calls: List[float] = []
        self._gate = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await self._gate.wait()

    def release(self) -> None:
        self._gate.set()
