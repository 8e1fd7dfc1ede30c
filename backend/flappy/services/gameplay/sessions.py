from typing import Any, Mapping, Optional, Sequence, Tuple

from flask import current_app
from sqlalchemy import update

from flappy.errors import ConflictError, IntegrityError, NotFoundError, PlausibilityError, ValidationError
from flappy.models import GameEvent, GameSession, from_epoch_ms, utcnow
from .checksum import events_checksum
from .tokens import start_session_token
from .verifier import GameplayPolicy, parse_timestamp_ms, verify_gameplay


DEVICE_INFO_KEYS = ('platform', 'browser', 'screenResolution')
MAX_EVENT_TYPE_LENGTH = 64
# Range of the BIGINT timestamp column
MIN_TIMESTAMP_MS = -2 ** 63
MAX_TIMESTAMP_MS = 2 ** 63 - 1


class GameSessionManager:
    """Session lifecycle: start (active) -> record events -> finalize.

    Every lookup is keyed by ``(user_id, session_id)`` and restricted to
    active sessions, so another user's session is simply not found.
    """

    def __init__(self, db_session, expected_client_version: Optional[str],
                 policy: Optional[GameplayPolicy] = None):
        self.session = db_session
        self.expected_client_version = expected_client_version
        self.policy = policy or GameplayPolicy()

    def start_session(self, user_id: int, client_version: Optional[str],
                      device_info: Optional[Mapping[str, Any]] = None) -> Tuple[GameSession, int]:
        if client_version != self.expected_client_version:
            raise ValidationError('client version mismatch', code='client_version_mismatch')

        session_id, timestamp = start_session_token(user_id)
        if isinstance(device_info, Mapping):
            device_info = {k: device_info[k] for k in DEVICE_INFO_KEYS if k in device_info}
        else:
            device_info = None
        game_session = GameSession(
            user_id=user_id,
            session_id=session_id,
            start_time=from_epoch_ms(timestamp),
            client_version=client_version,
            device_info=device_info,
        )
        self.session.add(game_session)
        self.session.commit()
        current_app.logger.info(f"[session-start] user={user_id} session={session_id[:12]}")
        return game_session, timestamp

    def get_active(self, user_id: int, session_id: str) -> GameSession:
        game_session = (
            self.session.query(GameSession)
            .filter(
                GameSession.user_id == user_id,
                GameSession.session_id == session_id,
                GameSession.end_time.is_(None),
            )
            .first()
        )
        if game_session is None:
            raise NotFoundError('session not found', code='session_not_found')
        return game_session

    def record_event(self, user_id: int, session_id: str, event_type: str,
                     event_data: Any = None, timestamp: Any = None) -> GameEvent:
        if not isinstance(event_type, str) or not event_type:
            raise ValidationError('eventType is required')
        if len(event_type) > MAX_EVENT_TYPE_LENGTH:
            raise ValidationError(f'eventType cannot be more than {MAX_EVENT_TYPE_LENGTH} characters')
        game_session = self.get_active(user_id, session_id)
        try:
            timestamp_ms = int(parse_timestamp_ms(timestamp))
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('invalid event timestamp', code='invalid_timestamp')
        if not MIN_TIMESTAMP_MS <= timestamp_ms <= MAX_TIMESTAMP_MS:
            raise ValidationError('invalid event timestamp', code='invalid_timestamp')
        event = GameEvent(game_session_id=game_session.id, timestamp=timestamp_ms,
                          type=event_type, data=event_data)
        self.session.add(event)
        self.session.commit()
        return event

    def check_submission(self, claimed_score: int, events: Sequence[Mapping[str, Any]], checksum: str) -> None:
        """Raise unless ``events`` match ``checksum`` and plausibly yield ``claimed_score``."""
        if events_checksum(events) != checksum:
            raise IntegrityError('data tampered')
        verdict = verify_gameplay(events, claimed_score, self.policy)
        if not verdict.valid:
            raise PlausibilityError(verdict.reason)

    def complete(self, game_session: GameSession, final_score: int, checksum: str) -> GameSession:
        # Single conditional update; a concurrent finalize matches zero rows
        result = self.session.execute(
            update(GameSession)
            .where(GameSession.id == game_session.id, GameSession.end_time.is_(None))
            .values(end_time=utcnow(), final_score=final_score, verified=True, checksum=checksum)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise ConflictError('already completed')
        self.session.commit()
        return game_session

    def finalize(self, user_id: int, session_id: str, claimed_score: int,
                 events: Sequence[Mapping[str, Any]], checksum: str) -> GameSession:
        game_session = self.get_active(user_id, session_id)
        self.check_submission(claimed_score, events, checksum)
        self.complete(game_session, claimed_score, checksum)
        current_app.logger.info(f"[session-final] user={user_id} session={session_id[:12]} score={claimed_score}")
        return game_session
