"""Value types shared by the mode controllers: click targets and delays."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence


@dataclass(frozen=True)
class Coordinate:
    """Fractional (0..1) position inside the game canvas.

    ``Coordinate(0, 0)`` marks a target that has not been mapped yet.
    """

    x: float
    y: float

    def __post_init__(self) -> None:
        for axis, value in (("x", self.x), ("y", self.y)):
            if not 0.0 <= float(value) <= 1.0:
                raise ValueError(f"Coordinate {axis}={value} outside [0, 1]")

    @property
    def is_unmapped(self) -> bool:
        return self.x == 0 and self.y == 0

    @classmethod
    def parse(cls, value: Any) -> "Coordinate":
        """Build from ``[x, y]``, ``(x, y)`` or ``{"x": .., "y": ..}``."""
        if isinstance(value, Coordinate):
            return value
        if isinstance(value, Mapping):
            return cls(float(value["x"]), float(value["y"]))
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
            return cls(float(value[0]), float(value[1]))
        raise ValueError(f"Invalid coordinate: {value!r}")

    def __str__(self) -> str:
        return f"({self.x:.3f}, {self.y:.3f})"


UNMAPPED = Coordinate(0.0, 0.0)


@dataclass(frozen=True)
class TimingRange:
    """Inclusive (min, max) delay in milliseconds."""

    min_ms: int
    max_ms: int

    def __post_init__(self) -> None:
        if self.min_ms < 0 or self.min_ms > self.max_ms:
            raise ValueError(f"Invalid timing range: {self.min_ms}..{self.max_ms}")

    def sample(self, rng: Optional[random.Random] = None) -> int:
        return (rng or random).randint(self.min_ms, self.max_ms)

    @classmethod
    def parse(cls, value: Any) -> "TimingRange":
        """Build from ``[min, max]``, ``{"min": .., "max": ..}`` or a single number."""
        if isinstance(value, TimingRange):
            return value
        if isinstance(value, Mapping):
            return cls(int(value["min"]), int(value["max"]))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls(int(value), int(value))
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
            return cls(int(value[0]), int(value[1]))
        raise ValueError(f"Invalid timing range: {value!r}")


def parse_coordinate_table(raw: Any) -> Dict[str, Coordinate]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(name): Coordinate.parse(value) for name, value in raw.items()}


def parse_timing_table(raw: Any, defaults: Mapping[str, Any]) -> Dict[str, TimingRange]:
    """Merge configured timings over ``defaults``; unknown keys are kept."""
    merged: Dict[str, Any] = dict(defaults)
    if isinstance(raw, Mapping):
        merged.update(raw)
    return {str(name): TimingRange.parse(value) for name, value in merged.items()}
