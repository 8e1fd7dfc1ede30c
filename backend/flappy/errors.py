"""Error kinds raised by the services and their HTTP mapping.

Services raise these; the handlers registered by ``register_error_handlers``
turn them into ``{"error": ..., "message": ...}`` JSON bodies.
"""

from typing import Optional

from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    code = 'internal_error'

    def __init__(self, message: str = '', code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class ValidationError(ApiError):
    status_code = 400
    code = 'validation_failed'

    def __init__(self, message: str = 'Validation failed', details=None, code: Optional[str] = None):
        super().__init__(message, code)
        self.details = details or []

    def to_dict(self):
        payload = super().to_dict()
        if self.details:
            payload['details'] = self.details
        return payload


class AuthError(ApiError):
    status_code = 401
    code = 'unauthorized'


class NotFoundError(ApiError):
    status_code = 404
    code = 'not_found'


class IntegrityError(ApiError):
    """Submitted event log does not match its checksum."""
    status_code = 400
    code = 'invalid_checksum'


class PlausibilityError(ApiError):
    """Event log cannot have produced the claimed score."""
    status_code = 400
    code = 'invalid_gameplay'

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ConflictError(ApiError):
    status_code = 400
    code = 'already_completed'


class RateLimitError(ApiError):
    status_code = 429
    code = 'rate_limited'


class InternalError(ApiError):
    status_code = 500
    code = 'internal_error'


class ReferralCodeExhausted(InternalError):
    code = 'referral_code_exhausted'


def register_error_handlers(flask_app) -> None:
    @flask_app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            current_app.logger.error(f"[error] {exc.code}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({'error': exc.name.lower().replace(' ', '_'), 'message': exc.description}), exc.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception(f"[error] unhandled {type(exc).__name__}")
        from flappy import db
        db.session.rollback()
        return jsonify(InternalError('Something went wrong').to_dict()), 500
