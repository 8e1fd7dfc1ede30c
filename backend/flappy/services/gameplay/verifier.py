"""Plausibility checks for a submitted event log.

A cheap heuristic layer, not a physics replay: it rejects logs that are
too short, out of order, have long silent gaps, or whose scoring events
do not add up to the claimed score.
"""

from dataclasses import dataclass, field
import math
from datetime import datetime, timezone
from typing import Any, FrozenSet, Mapping, Optional, Sequence


NO_EVENTS = 'no events'
DURATION_TOO_SHORT = 'duration too short'
INVALID_SEQUENCE = 'invalid event sequence'
SUSPICIOUS_GAP = 'suspicious time gap'
SCORE_MISMATCH = 'score mismatch'


@dataclass(frozen=True)
class GameplayPolicy:
    min_duration_sec: float = 5.0
    max_gap_sec: float = 10.0
    score_tolerance: int = 1
    scoring_event_types: FrozenSet[str] = field(default_factory=lambda: frozenset({'PASS_PIPE'}))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'GameplayPolicy':
        types = config.get('SCORING_EVENT_TYPES', 'PASS_PIPE')
        if isinstance(types, str):
            types = [t.strip() for t in types.split(',') if t.strip()]
        return cls(
            min_duration_sec=float(config.get('MIN_GAME_DURATION_SEC', 5)),
            max_gap_sec=float(config.get('MAX_EVENT_GAP_SEC', 10)),
            score_tolerance=int(config.get('SCORE_TOLERANCE', 1)),
            scoring_event_types=frozenset(types),
        )


@dataclass(frozen=True)
class Verdict:
    valid: bool
    reason: Optional[str] = None

    def to_dict(self):
        if self.valid:
            return {'valid': True}
        return {'valid': False, 'reason': self.reason}


def _finite(ms: float) -> float:
    if not math.isfinite(ms):
        raise ValueError(f"not a finite timestamp: {ms!r}")
    return ms


def parse_timestamp_ms(value: Any) -> float:
    """Milliseconds since epoch from a number or an ISO-8601 string.

    Raises ValueError (or OverflowError for huge integers) for anything
    else, including NaN and infinities.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return _finite(float(value))
    if isinstance(value, str):
        text = value.strip()
        try:
            return _finite(float(text))
        except ValueError:
            # Not numeric or not finite; only an ISO date is left
            pass
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp() * 1000.0
    raise ValueError(f"not a timestamp: {value!r}")


def verify_gameplay(events: Sequence[Mapping[str, Any]], claimed_score: int,
                    policy: Optional[GameplayPolicy] = None) -> Verdict:
    policy = policy or GameplayPolicy()
    if not events:
        return Verdict(False, NO_EVENTS)

    try:
        times = [parse_timestamp_ms(e.get('timestamp')) for e in events]
    except (TypeError, ValueError, OverflowError):
        return Verdict(False, INVALID_SEQUENCE)

    duration = (times[-1] - times[0]) / 1000.0
    # Positive comparisons so a stray NaN fails closed
    if not duration >= policy.min_duration_sec:
        return Verdict(False, DURATION_TOO_SHORT)

    calculated_score = 0
    last_event_time = times[0]
    for event, event_time in zip(events, times):
        if not event_time >= last_event_time:
            return Verdict(False, INVALID_SEQUENCE)
        if not (event_time - last_event_time) / 1000.0 <= policy.max_gap_sec:
            return Verdict(False, SUSPICIOUS_GAP)
        kind = event.get('type')
        if isinstance(kind, str) and kind in policy.scoring_event_types:
            calculated_score += 1
        last_event_time = event_time

    if not abs(calculated_score - claimed_score) <= policy.score_tolerance:
        return Verdict(False, SCORE_MISMATCH)

    return Verdict(True)
