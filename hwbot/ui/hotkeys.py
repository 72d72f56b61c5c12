from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger("hwbot.hotkeys")

DEFAULT_BINDINGS = {"dungeon": "f9", "tower": "f8", "daily": "f7"}


class HotkeyManager:
    """Global hotkeys toggling each mode, registered through the ``keyboard`` library."""

    def __init__(self, on_toggle: Callable[[str], None], bindings: Optional[Dict[str, str]] = None):
        self.on_toggle = on_toggle
        self.bindings = dict(bindings or DEFAULT_BINDINGS)
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker, name="hwbot-hotkeys", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        try:
            import keyboard  # type: ignore
            keyboard.unhook_all_hotkeys()
        except Exception:
            logger.debug("hotkey unhook skipped", exc_info=True)

    def _fire(self, mode: str) -> None:
        try:
            self.on_toggle(mode)
        except Exception:
            logger.exception("hotkey handler failed | mode=%s", mode)

    def _worker(self) -> None:
        try:
            # keyboard needs root on Linux and raises at import time without it.
            import keyboard  # type: ignore
        except Exception as exc:
            logger.warning("global hotkeys unavailable: %s", exc)
            return
        for mode, combo in self.bindings.items():
            keyboard.add_hotkey(combo, self._fire, args=(mode,))
        logger.info(
            "Keyboard shortcuts: %s",
            ", ".join(f"{combo.upper()} = {mode}" for mode, combo in self.bindings.items()),
        )
        self._stop.wait()
