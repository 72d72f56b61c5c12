from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import async_playwright

from hwbot.core.config import load_profile, save_coords
from hwbot.core.logging import init_logging
from hwbot.core.timeline import Timeline, timeline as default_timeline
from hwbot.modes import DailyController, DungeonController, ModeController, TowerController
from hwbot.network.observer import DEFAULT_HOST_MARKER, NetworkObserver
from hwbot.platform.browser import BrowserSettings, open_game_page
from hwbot.platform.input import InputSimulator

# Reports fractional positions of real (trusted) clicks on the canvas.
COORD_FINDER_JS = """
(selector) => {
    const canvas = document.querySelector(selector);
    if (!canvas) return false;
    if (canvas.dataset.hwbotCoords) return true;
    canvas.dataset.hwbotCoords = '1';
    canvas.addEventListener('click', (e) => {
        if (!e.isTrusted) return;
        const r = canvas.getBoundingClientRect();
        window.hwbotCoord((e.clientX - r.left) / r.width, (e.clientY - r.top) / r.height);
    });
    return true;
}
"""


@dataclass
class RuntimeStatus:
    browser_ready: bool = False
    game_url: str = ""
    surface_selector: str = "canvas"
    host_marker: str = DEFAULT_HOST_MARKER
    last_error: Optional[str] = None
    started_at: Optional[str] = None


class AutomationRuntime:
    """Owns the browser session and the three mode controllers.

    Playwright, the network observer and every sequencer live on one asyncio
    loop running on a background thread. The public methods are safe to call
    from any thread (Flask handlers, hotkey callbacks).
    """

    def __init__(self, profile: Optional[Dict[str, Any]] = None, *, timeline: Optional[Timeline] = None) -> None:
        profile = load_profile() if profile is None else profile
        self._app_logger = init_logging(level=os.environ.get("LOG_LEVEL", str(profile.get("log_level", "INFO"))))
        self.logger = logging.getLogger("hwbot.runtime")
        self.profile = profile
        self.settings = BrowserSettings.from_profile(profile)
        self.status = RuntimeStatus(
            game_url=self.settings.game_url,
            surface_selector=str(profile.get("surface_selector") or "canvas"),
            host_marker=str(profile.get("api_host_marker") or DEFAULT_HOST_MARKER),
        )
        self.timeline = timeline or default_timeline
        self.inputs = InputSimulator(
            selector=self.status.surface_selector,
            jitter_px=int(profile.get("click_jitter_px", 10)),
        )
        self.observer = NetworkObserver(self.status.host_marker)
        self._modes: Dict[str, ModeController] = {}
        self._unsubscribe: Dict[str, Callable[[], None]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closing: Optional[asyncio.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._coord_task: Optional[asyncio.Task] = None
        self._coord_records: List[Dict[str, Any]] = []
        self._records_path = Path(os.environ.get("HWBOT_COORD_RECORDS", "logs/coord_records.json"))
        self._load_coord_records()
        self._register_default_modes()

    # Modes -----------------------------------------------------------------
    def _register_default_modes(self) -> None:
        self.register_mode(DungeonController(self.inputs, timeline=self.timeline))
        self.register_mode(TowerController(self.inputs, timeline=self.timeline))
        self.register_mode(DailyController(self.inputs, timeline=self.timeline))

    def register_mode(self, controller: ModeController) -> None:
        old = self._unsubscribe.pop(controller.name, None)
        if old is not None:
            old()
        self._modes[controller.name] = controller
        self._unsubscribe[controller.name] = self.observer.subscribe(controller.handle_event)

    def mode_names(self) -> List[str]:
        return list(self._modes)

    def get_mode(self, name: str) -> ModeController:
        if name not in self._modes:
            raise ValueError(f"Unknown mode: {name}")
        return self._modes[name]

    def start_mode(self, name: str) -> bool:
        controller = self.get_mode(name)
        return bool(self._call(controller.start))

    def stop_mode(self, name: str, reason: str = "Stopped by user") -> bool:
        controller = self.get_mode(name)
        return bool(self._call(controller.stop, reason))

    def toggle_mode(self, name: str) -> bool:
        controller = self.get_mode(name)
        running = bool(self._call(controller.toggle))
        self.logger.info("toggle | mode=%s running=%s", name, running)
        return running

    def mode_status(self, name: str) -> Dict[str, Any]:
        controller = self.get_mode(name)
        if self._loop_alive():
            return self._call(controller.status)
        return controller.status()

    def snapshot(self) -> Dict[str, Any]:
        modes: Dict[str, Any] = {}
        for name, controller in self._modes.items():
            modes[name] = self._call(controller.snapshot) if self._loop_alive() else controller.snapshot()
        with self._lock:
            return {
                "browser_ready": self.status.browser_ready,
                "game_url": self.status.game_url,
                "last_error": self.status.last_error,
                "started_at": self.status.started_at,
                "exchanges_seen": self.observer.exchanges_seen,
                "modes": modes,
            }

    # Loop plumbing ---------------------------------------------------------
    def _loop_alive(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def _call(self, fn: Callable[..., Any], *args: Any, timeout: float = 5.0) -> Any:
        """Run ``fn(*args)`` on the runtime loop and return its result."""
        if not self._loop_alive():
            raise RuntimeError("Browser session is not running")
        if threading.current_thread() is self._thread:
            return fn(*args)

        async def invoke() -> Any:
            return fn(*args)

        return asyncio.run_coroutine_threadsafe(invoke(), self._loop).result(timeout)

    def launch(self, wait: bool = True, timeout: float = 120.0) -> bool:
        """Start the browser thread. Returns True once the game page is open."""
        if self._thread and self._thread.is_alive():
            return self.status.browser_ready
        self._ready.clear()
        self._roll_run_log()
        self._thread = threading.Thread(target=self._thread_main, name="hwbot-runtime", daemon=True)
        self._thread.start()
        if wait:
            self._ready.wait(timeout)
        return self.status.browser_ready

    def shutdown(self, timeout: float = 10.0) -> None:
        loop, closing = self._loop, self._closing
        if loop is not None and closing is not None and loop.is_running():
            loop.call_soon_threadsafe(closing.set)
        if self._thread is not None:
            self._thread.join(timeout)
        for unsubscribe in self._unsubscribe.values():
            unsubscribe()
        self._unsubscribe.clear()

    def _thread_main(self) -> None:
        try:
            asyncio.run(self._main())
        except Exception:
            self.logger.exception("runtime loop crashed")
        finally:
            self._ready.set()

    async def _main(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._closing = asyncio.Event()
        try:
            async with async_playwright() as p:
                context, page = await open_game_page(p, self.settings)
                self.inputs.bind(page)
                self.observer.attach(page)
                if any(m.coord_mode for m in self._modes.values()):
                    await self._install_coord_finder(page)
                with self._lock:
                    self.status.browser_ready = True
                    self.status.last_error = None
                    self.status.started_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
                self.logger.info(
                    "Runtime ready | url=%s modes=%s",
                    self.settings.game_url,
                    ",".join(self._modes),
                )
                self._ready.set()

                await self._closing.wait()

                for controller in self._modes.values():
                    controller.stop("Shutting down")
                if self._coord_task is not None:
                    self._coord_task.cancel()
                self.observer.detach()
                if not self.settings.cdp_url:
                    await context.close()
        except Exception as exc:
            with self._lock:
                self.status.last_error = str(exc)
            self.logger.exception("browser session failed")
        finally:
            with self._lock:
                self.status.browser_ready = False
            self.inputs.bind(None)
            self._ready.set()

    def _roll_run_log(self) -> None:
        for handler in getattr(self._app_logger, "handlers", []):
            if isinstance(handler, RotatingFileHandler):
                try:
                    handler.doRollover()
                except Exception:
                    self.logger.exception("Failed to rollover log handler")

    # Coordinate finder -----------------------------------------------------
    async def _install_coord_finder(self, page: Any) -> None:
        await page.expose_function("hwbotCoord", self._on_coord_click)
        self._coord_task = asyncio.get_running_loop().create_task(self._wait_for_canvas(page))
        modes = [m.name for m in self._modes.values() if m.coord_mode]
        for name in modes:
            self._modes[name].set_status("Coord Mode")
        self.logger.info("COORD MODE active for %s; click targets in the game", ",".join(modes))

    async def _wait_for_canvas(self, page: Any) -> None:
        while not await page.evaluate(COORD_FINDER_JS, self.status.surface_selector):
            await asyncio.sleep(0.5)
        self.logger.info("coord finder attached to %s", self.status.surface_selector)

    def _on_coord_click(self, x: float, y: float) -> None:
        self.logger.info("-> x: %.4f,  y: %.4f", x, y)
        self.record_coord((float(x), float(y)))

    def _load_coord_records(self) -> None:
        path = self._records_path
        try:
            if path.exists():
                with path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                if isinstance(data, list):
                    self._coord_records = [r for r in data if isinstance(r, dict)]
        except Exception:
            self.logger.exception("Failed to load coordinate records")
            self._coord_records = []

    def _persist_coord_records(self) -> None:
        path = self._records_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as fh:
                json.dump(self._coord_records, fh, indent=2)
        except Exception:
            self.logger.exception("Failed to persist coordinate records")

    def record_coord(self, coords: Tuple[float, float], notes: Optional[str] = None) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "x": round(coords[0], 4),
            "y": round(coords[1], 4),
        }
        if notes:
            entry["notes"] = notes
        with self._lock:
            self._coord_records.append(entry)
            self._coord_records = self._coord_records[-200:]
            self._persist_coord_records()
        self.timeline.add("coords", "info", "coord", x=entry["x"], y=entry["y"])
        return entry

    def list_coord_records(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(r) for r in self._coord_records]

    def save_coords(
        self,
        mode: str,
        name: str,
        *,
        coords: Tuple[float, float],
        table: str = "buttons",
        index: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Persist a mapped coordinate; takes effect the next time the mode is built."""
        self.get_mode(mode)
        return save_coords(mode, name, coords=coords, table=table, index=index)
