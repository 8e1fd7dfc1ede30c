import time
from collections import deque
from functools import wraps
from typing import Deque, Dict, Tuple

from flask import current_app, request

from flappy.errors import RateLimitError


# Per-process sliding windows keyed by (bucket, client address)
_hits: Dict[Tuple[str, str], Deque[float]] = {}
# Sweep idle clients once the table grows past this many keys
SWEEP_THRESHOLD = 1024


def reset() -> None:
    _hits.clear()


def _trim(hits: Deque[float], now: float, window: float) -> None:
    while hits and now - hits[0] >= window:
        hits.popleft()


def _sweep(bucket: str, now: float, window: float) -> None:
    for key in [k for k in _hits if k[0] == bucket]:
        _trim(_hits[key], now, window)
        if not _hits[key]:
            del _hits[key]


def rate_limited(bucket: str, limit_key: str, window_key: str, message: str):
    """Refuse more than ``config[limit_key]`` calls per ``config[window_key]`` seconds per client."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                limit = int(current_app.config.get(limit_key, 0))
                window = float(current_app.config.get(window_key, 60))
            except (TypeError, ValueError):
                limit = 0
            if limit > 0:
                now = time.time()
                if len(_hits) > SWEEP_THRESHOLD:
                    _sweep(bucket, now, window)
                key = (bucket, request.remote_addr or 'unknown')
                hits = _hits.get(key)
                if hits is not None:
                    _trim(hits, now, window)
                    if not hits:
                        del _hits[key]
                        hits = None
                if hits is not None and len(hits) >= limit:
                    current_app.logger.info(f"[rate-limit] bucket={bucket} client={request.remote_addr}")
                    raise RateLimitError(message)
                _hits.setdefault(key, deque()).append(now)
            return view(*args, **kwargs)
        return wrapper
    return decorator
