from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Union

from hwbot.network.events import DungeonFloorObserved, ServerEvent, classify_call, scan_floor_number

logger = logging.getLogger("hwbot.network")

# Call-name prefix whose results are scanned for a floor number regardless of the call.
DUNGEON_PREFIX = "dungeon"

Body = Union[str, bytes, bytearray, memoryview, None]


def parse_calls(request_body: Body) -> List[Dict[str, Any]]:
    """Return the ``calls`` list of a request envelope, or [] when absent or malformed."""
    if request_body is None:
        return []
    if isinstance(request_body, (bytes, bytearray, memoryview)):
        text = bytes(request_body).decode("utf-8")
    else:
        text = request_body
    payload = json.loads(text)
    calls = payload.get("calls") if isinstance(payload, dict) else None
    if not isinstance(calls, list):
        return []
    return [c for c in calls if isinstance(c, dict) and isinstance(c.get("name"), str)]


def parse_results(response_text: str) -> List[Dict[str, Any]]:
    payload = json.loads(response_text)
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, dict)]


def _response_of(result: Optional[Dict[str, Any]]) -> Any:
    if not result:
        return None
    inner = result.get("result")
    return inner.get("response") if isinstance(inner, dict) else None


def decode_exchange(request_body: Body, response_text: str) -> List[ServerEvent]:
    """Decode one request/response pair into server events.

    Results are paired with their calls by ``ident``. Anything that cannot be
    parsed yields an empty list; malformed traffic is never an error.
    """
    try:
        return _decode(request_body, response_text)
    except (ValueError, TypeError, AttributeError) as exc:
        logger.debug("exchange dropped | %s", exc)
        return []


def _decode(request_body: Body, response_text: str) -> List[ServerEvent]:
    calls = parse_calls(request_body)
    if not calls:
        return []
    results = parse_results(response_text)

    result_by_ident: Dict[Any, Dict[str, Any]] = {}
    for result in results:
        ident = result.get("ident")
        if ident is not None and ident not in result_by_ident:
            result_by_ident[ident] = result
    name_by_ident = {c.get("ident"): c["name"] for c in calls}

    events: List[ServerEvent] = []
    for result in results:
        action = name_by_ident.get(result.get("ident"), "")
        if not action.startswith(DUNGEON_PREFIX):
            continue
        number = scan_floor_number(_response_of(result))
        if number:
            events.append(DungeonFloorObserved(name=action, floor_number=number))

    for call in calls:
        result = result_by_ident.get(call.get("ident"))
        events.append(classify_call(call["name"], call.get("args"), _response_of(result)))
    return events
