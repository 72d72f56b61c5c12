from __future__ import annotations

import logging
import random
from typing import Any, Dict, Optional, Tuple

from hwbot.core.models import Coordinate

# Order matters: the game listens to pointer events, older widgets to mouse events.
CLICK_SEQUENCE = ("pointerdown", "mousedown", "pointerup", "mouseup", "click")

ESCAPE_INIT: Dict[str, Any] = {
    "key": "Escape",
    "code": "Escape",
    "keyCode": 27,
    "which": 27,
    "bubbles": True,
    "cancelable": True,
}

logger = logging.getLogger("hwbot.input")


def jittered_point(
    box: Dict[str, float],
    coord: Coordinate,
    jitter_px: int = 10,
    rng: Optional[random.Random] = None,
) -> Tuple[float, float]:
    """Project ``coord`` onto ``box`` (x, y, width, height) and add +/- jitter.

    The jitter is a whole number of pixels drawn independently per axis.
    """
    r = rng or random
    jx = r.randint(-jitter_px, jitter_px) if jitter_px else 0
    jy = r.randint(-jitter_px, jitter_px) if jitter_px else 0
    x = box["x"] + coord.x * box["width"] + jx
    y = box["y"] + coord.y * box["height"] + jy
    return x, y


class InputSimulator:
    """Dispatches synthetic clicks and key presses on the game canvas.

    The simulator is created before the browser exists and bound to the page
    later; until then every click reports a missing surface.
    """

    def __init__(
        self,
        page: Any = None,
        *,
        selector: str = "canvas",
        jitter_px: int = 10,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.page = page
        self.selector = selector
        self.jitter_px = int(jitter_px)
        self._rng = rng or random.Random()

    def bind(self, page: Any) -> None:
        self.page = page

    async def surface_box(self) -> Optional[Dict[str, float]]:
        if self.page is None:
            return None
        locator = self.page.locator(self.selector)
        if await locator.count() == 0:
            return None
        return await locator.first.bounding_box()

    async def click_at(self, coord: Coordinate) -> bool:
        """Click ``coord`` on the canvas. Returns False when the click could not be sent.

        Never raises: a closed page or a detached canvas only skips the click.
        """
        try:
            box = await self.surface_box()
            if not box:
                logger.warning("click skipped | surface %r not found", self.selector)
                return False

            x, y = jittered_point(box, coord, self.jitter_px, self._rng)
            target = self.page.locator(self.selector).first
            init = {"clientX": x, "clientY": y, "bubbles": True, "cancelable": True}
            for event_type in CLICK_SEQUENCE:
                await target.dispatch_event(event_type, init)
        except Exception as exc:
            logger.warning("click skipped | rel=%s error=%s", coord, exc)
            return False
        logger.debug("click | rel=%s x=%.1f y=%.1f", coord, x, y)
        return True

    async def press_escape(self) -> None:
        """Dispatch an Escape keydown/keyup pair at document level."""
        if self.page is None:
            logger.warning("escape skipped | no page bound")
            return
        try:
            root = self.page.locator("html")
            for event_type in ("keydown", "keyup"):
                await root.dispatch_event(event_type, ESCAPE_INIT)
        except Exception as exc:
            logger.warning("escape skipped | error=%s", exc)
            return
        logger.debug("keypress | key=Escape")


__all__ = ["InputSimulator", "jittered_point", "CLICK_SEQUENCE"]
