from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional


@dataclass
class Event:
    ts: str
    mode: str
    type: str  # click|key|wait|transition|event|stop|info
    label: str
    data: Dict[str, Any]


class Timeline:
    def __init__(self, maxlen: int = 200) -> None:
        self._buf: Deque[Event] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def add(self, mode: str, type_: str, label: str, **data: Any) -> None:
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        evt = Event(ts=ts, mode=mode, type=type_, label=label, data=data)
        with self._lock:
            self._buf.append(evt)

    def last(self, n: int = 50, mode: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._buf)
        if mode is not None:
            items = [e for e in items if e.mode == mode]
        return [asdict(e) for e in items[-n:]]

    def clear(self) -> None:
        with self._lock:
            self._buf.clear()


# Singleton timeline used by runtime and UI
timeline = Timeline()
