"""Daily chore checklist: step type, guard predicates and the YAML loader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from hwbot.core.models import Coordinate, TimingRange

SECTION = "section"
CLICK = "click"
ESCAPE = "escape"

Guard = Callable[[Any], bool]

GUARDS: Dict[str, Guard] = {
    "expedition_rewards_available": lambda state: state.expedition_rewards_available is True,
    "expedition_status_unknown": lambda state: state.expedition_rewards_available is None,
}


@dataclass(frozen=True)
class AutomationStep:
    kind: str
    label: str
    coord: Optional[Coordinate] = None
    wait: Optional[TimingRange] = None
    guard: Optional[Guard] = None
    guard_name: Optional[str] = None

    def applies(self, state: Any) -> bool:
        return self.guard is None or bool(self.guard(state))


def parse_step(raw: Dict[str, Any]) -> AutomationStep:
    """Build a step from one checklist entry.

    Entries look like ``{section: "Mail"}``, ``{click: [x, y], label: ..,
    wait: [min, max], when: guard_name}`` or ``{escape: true, label: ..}``.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid daily step: {raw!r}")
    if SECTION in raw:
        return AutomationStep(kind=SECTION, label=str(raw[SECTION]))

    guard_name = raw.get("when")
    guard = None
    if guard_name is not None:
        if guard_name not in GUARDS:
            raise ValueError(f"Unknown daily step guard: {guard_name!r}")
        guard = GUARDS[guard_name]
    wait = TimingRange.parse(raw["wait"]) if raw.get("wait") is not None else None

    if CLICK in raw:
        coord = Coordinate.parse(raw[CLICK])
        return AutomationStep(
            kind=CLICK,
            label=str(raw.get("label") or f"click {coord}"),
            coord=coord,
            wait=wait,
            guard=guard,
            guard_name=guard_name,
        )
    if raw.get(ESCAPE):
        return AutomationStep(
            kind=ESCAPE,
            label=str(raw.get("label") or "Escape"),
            wait=wait,
            guard=guard,
            guard_name=guard_name,
        )
    raise ValueError(f"Daily step needs one of section/click/escape: {raw!r}")


def parse_steps(raw: Iterable[Dict[str, Any]]) -> List[AutomationStep]:
    return [parse_step(entry) for entry in raw or []]
