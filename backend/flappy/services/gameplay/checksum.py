import hashlib
import json
from typing import Any, Iterable, Mapping


EVENT_SEPARATOR = '|'
_MISSING = object()


def _render_scalar(value: Any) -> str:
    # Same text a browser client gets from string interpolation
    if value is _MISSING:
        return 'undefined'
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _render_payload(event: Mapping[str, Any]) -> str:
    if 'data' not in event:
        return 'undefined'
    return json.dumps(event['data'], separators=(',', ':'), ensure_ascii=False)


def canonical_event(event: Mapping[str, Any]) -> str:
    """``"<timestamp>-<type>-<json(data)>"`` for one event."""
    timestamp = _render_scalar(event.get('timestamp', _MISSING))
    event_type = _render_scalar(event.get('type', _MISSING))
    return f"{timestamp}-{event_type}-{_render_payload(event)}"


def events_checksum(events: Iterable[Mapping[str, Any]]) -> str:
    """SHA-256 hex digest over the ordered event log.

    Payload keys keep their submitted order, so a client must hash exactly
    what it sends.
    """
    joined = EVENT_SEPARATOR.join(canonical_event(e) for e in events)
    return hashlib.sha256(joined.encode('utf-8')).hexdigest()
