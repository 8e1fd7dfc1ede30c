import os
import sys
import pytest
from flask import g

# Ensure the backend root (containing the `flappy` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from flappy import create_app, db, socketio
from flappy import ratelimit


CLIENT_VERSION = '1.0.0'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    FRONTEND_URL = 'https://flappy.test'
    CURRENT_CLIENT_VERSION = CLIENT_VERSION
    AUTH_TOKEN_MAX_AGE_SEC = 3600
    MIN_GAME_DURATION_SEC = 5
    MAX_EVENT_GAP_SEC = 10
    SCORE_TOLERANCE = 1
    SCORING_EVENT_TYPES = 'PASS_PIPE'
    MAX_SCORE = 999999
    SCORE_LEDGER_PERMISSIVE = False
    # Rate limits off unless a test turns them on
    SESSION_START_LIMIT = 0
    SESSION_START_WINDOW_SEC = 60
    SCORE_SUBMIT_LIMIT = 0
    SCORE_SUBMIT_WINDOW_SEC = 300
    REFERRAL_CODE_ATTEMPTS = 5
    PAYMENT_AMOUNT = 10
    BKASH_MERCHANT_NUMBER = '01800000000'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    ratelimit.reset()

    @application.before_request
    def _fresh_principal():
        # The fixture's app context spans requests; drop the cached login
        g.pop('_login_user', None)

    with application.app_context():
        # Ensure models are imported so tables are created
        import flappy.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def make_user(flask_app):
    """Register a user; returns ``(user, auth_headers)``."""
    from flappy.services.accounts import issue_token, register_user
    counter = {'n': 0}

    def _make(name=None, mobile=None, password='secret123'):
        counter['n'] += 1
        user = register_user(
            name=name or f"Player {counter['n']}",
            mobile=mobile or f"0171000000{counter['n']}",
            password=password,
        )
        return user, {'Authorization': f'Bearer {issue_token(user)}'}

    return _make


@pytest.fixture()
def game_events():
    """Build a plausible event log: one PASS_PIPE every ``step_ms``, then GAME_END."""
    def _build(pipes=3, step_ms=2000, start=1_700_000_000_000):
        events = [
            {'timestamp': start + i * step_ms, 'type': 'PASS_PIPE', 'data': {'pipe': i + 1}}
            for i in range(pipes)
        ]
        end = start + max(pipes * step_ms, 6000)
        events.append({'timestamp': end, 'type': 'GAME_END', 'data': {'score': pipes}})
        return events

    return _build
