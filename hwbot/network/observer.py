from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from hwbot.network.envelope import Body, decode_exchange
from hwbot.network.events import ServerEvent

logger = logging.getLogger("hwbot.network")

Subscriber = Callable[[ServerEvent], None]

DEFAULT_HOST_MARKER = "nextersglobal.com/api/"


class NetworkObserver:
    """Read-only tap on the game's API traffic.

    Listens to completed responses of a page, decodes the ones sent to the
    game API and publishes typed events. Requests are never modified or
    replayed.
    """

    def __init__(self, host_marker: str = DEFAULT_HOST_MARKER) -> None:
        self.host_marker = host_marker
        self._subscribers: List[Subscriber] = []
        self._page: Any = None
        self.exchanges_seen = 0

    def attach(self, page: Any) -> None:
        if self._page is page:
            return
        if self._page is not None:
            self._page.remove_listener("response", self._on_response)
        self._page = page
        page.on("response", self._on_response)
        logger.info("network observer active | marker=%s", self.host_marker)

    def detach(self) -> None:
        if self._page is not None:
            self._page.remove_listener("response", self._on_response)
            self._page = None

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def matches(self, url: Optional[str]) -> bool:
        return bool(url) and self.host_marker in url

    async def _on_response(self, response: Any) -> None:
        url = response.url
        if not self.matches(url):
            return
        request = response.request
        try:
            body: Body = request.post_data_buffer
            text = await response.text()
        except Exception as exc:
            # Bodies of redirected or aborted exchanges are unavailable.
            logger.debug("exchange unreadable | url=%s error=%s", url, exc)
            return
        self.handle_exchange(url, body, text)

    def handle_exchange(self, url: str, request_body: Body, response_text: str) -> List[ServerEvent]:
        """Decode one exchange and publish its events; returns what was published."""
        if not self.matches(url):
            return []
        events = decode_exchange(request_body, response_text)
        if events:
            self.exchanges_seen += 1
        for event in events:
            self.publish(event)
        return events

    def publish(self, event: ServerEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("subscriber failed | event=%s", event.name)
