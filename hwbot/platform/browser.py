"""Open the game page in a Playwright-controlled Chromium."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("hwbot.browser")


@dataclass
class BrowserSettings:
    game_url: str = "https://www.hero-wars.com/"
    channel: str = "chromium"
    headless: bool = False
    user_data_dir: Optional[str] = ".browser-profile"
    cdp_url: Optional[str] = None
    viewport: Optional[Tuple[int, int]] = None

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "BrowserSettings":
        browser_cfg = profile.get("browser") or {}
        settings = cls()
        settings.game_url = str(profile.get("game_url") or settings.game_url)
        if isinstance(browser_cfg, dict):
            settings.channel = str(browser_cfg.get("channel") or settings.channel)
            settings.headless = bool(browser_cfg.get("headless", settings.headless))
            if "user_data_dir" in browser_cfg:
                settings.user_data_dir = browser_cfg.get("user_data_dir") or None
            settings.cdp_url = browser_cfg.get("cdp_url") or None
            viewport = browser_cfg.get("viewport")
            if isinstance(viewport, dict) and "width" in viewport and "height" in viewport:
                settings.viewport = (int(viewport["width"]), int(viewport["height"]))
            elif isinstance(viewport, (list, tuple)) and len(viewport) == 2:
                settings.viewport = (int(viewport[0]), int(viewport[1]))
        return settings

    def launch_kwargs(self, channel: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"headless": self.headless}
        if channel != "chromium":
            kwargs["channel"] = channel
        return kwargs


async def attach_over_cdp(p, settings: BrowserSettings) -> Tuple[Any, Any, Any]:
    """Reuse an already running browser started with --remote-debugging-port."""
    browser = await p.chromium.connect_over_cdp(settings.cdp_url)
    context = browser.contexts[0] if browser.contexts else await browser.new_context()
    for page in context.pages:
        if settings.game_url and page.url.startswith(settings.game_url.rstrip("/")):
            return browser, context, page
    page = await context.new_page()
    await page.goto(settings.game_url, wait_until="domcontentloaded")
    return browser, context, page


async def launch_context_with_fallback(p, settings: BrowserSettings) -> Tuple[Any, Any]:
    """Launch a (persistent when configured) context, falling back to plain chromium."""
    channel_order = [settings.channel]
    if settings.channel != "chromium":
        channel_order.append("chromium")

    context_kwargs: Dict[str, Any] = {}
    if settings.viewport:
        context_kwargs["viewport"] = {"width": settings.viewport[0], "height": settings.viewport[1]}

    last_error: Optional[Exception] = None
    for channel in channel_order:
        launch_kwargs = settings.launch_kwargs(channel)
        if settings.user_data_dir:
            try:
                context = await p.chromium.launch_persistent_context(
                    user_data_dir=settings.user_data_dir,
                    **launch_kwargs,
                    **context_kwargs,
                )
                page = context.pages[0] if context.pages else await context.new_page()
                logger.info("browser | channel=%s persistent=on", channel)
                return context, page
            except Exception as exc:
                last_error = exc
                logger.warning("persistent context failed | channel=%s error=%s", channel, exc)

        try:
            browser = await p.chromium.launch(**launch_kwargs)
            context = await browser.new_context(**context_kwargs)
            page = await context.new_page()
            logger.info("browser | channel=%s persistent=off", channel)
            return context, page
        except Exception as exc:
            last_error = exc
            logger.warning("browser launch failed | channel=%s error=%s", channel, exc)

    if last_error is not None:
        raise last_error
    raise RuntimeError("Unable to launch a browser with any configured channel")


async def open_game_page(p, settings: BrowserSettings) -> Tuple[Any, Any]:
    """Return ``(context, page)`` with the game loaded."""
    if settings.cdp_url:
        _browser, context, page = await attach_over_cdp(p, settings)
        return context, page
    context, page = await launch_context_with_fallback(p, settings)
    await page.goto(settings.game_url, wait_until="domcontentloaded")
    return context, page
