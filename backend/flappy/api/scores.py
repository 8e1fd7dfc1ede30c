from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from flappy import db, socketio
from flappy.errors import ApiError, ValidationError
from flappy.models import Score, User, utcnow
from flappy.ratelimit import rate_limited
from flappy.services.gameplay import GameplayPolicy, GameSessionManager, ScoreLedger


scores = Blueprint('scores', __name__)

LEADERBOARD_SIZE = 10


def _session_manager() -> GameSessionManager:
    cfg = current_app.config
    return GameSessionManager(
        db.session,
        expected_client_version=cfg.get('CURRENT_CLIENT_VERSION'),
        policy=GameplayPolicy.from_config(cfg),
    )


def _ledger() -> ScoreLedger:
    return ScoreLedger(db.session, permissive=bool(current_app.config.get('SCORE_LEDGER_PERMISSIVE')))


def _validate_submission(data: dict) -> None:
    details = []
    session_id = data.get('sessionId')
    if not isinstance(session_id, str) or not session_id.strip():
        details.append({'field': 'sessionId', 'message': 'Session ID is required'})
    score = data.get('score')
    max_score = int(current_app.config.get('MAX_SCORE', 999999))
    if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= max_score:
        details.append({'field': 'score', 'message': 'Invalid score'})
    events = data.get('gameEvents')
    if not isinstance(events, list) or not all(isinstance(e, dict) for e in events):
        details.append({'field': 'gameEvents', 'message': 'Game events are required'})
    checksum = data.get('checksum')
    if not isinstance(checksum, str) or not checksum:
        details.append({'field': 'checksum', 'message': 'Checksum is required'})
    if details:
        raise ValidationError('Validation failed', details=details)


@scores.route('/start-session', methods=['POST'])
@login_required
@rate_limited('start-session', 'SESSION_START_LIMIT', 'SESSION_START_WINDOW_SEC',
              'Too many game sessions created, please try again later')
def start_session():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    game_session, timestamp = _session_manager().start_session(
        current_user.id, data.get('clientVersion'), data.get('deviceInfo')
    )
    return jsonify({
        'success': True,
        'sessionId': game_session.session_id,
        'timestamp': timestamp,
    })


@scores.route('/record-event/<string:session_id>', methods=['POST'])
@login_required
def record_event(session_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    _session_manager().record_event(
        current_user.id, session_id, data.get('eventType'), data.get('eventData'), data.get('timestamp')
    )
    return jsonify({'success': True})


@scores.route('/submit', methods=['POST'])
@login_required
@rate_limited('submit', 'SCORE_SUBMIT_LIMIT', 'SCORE_SUBMIT_WINDOW_SEC',
              'Too many score submissions, please try again later')
def submit_score():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    _validate_submission(data)
    session_id = data['sessionId']
    score = data['score']

    try:
        _session_manager().finalize(current_user.id, session_id, score, data['gameEvents'], data['checksum'])
    except ApiError as exc:
        current_app.logger.info(f"[submit-reject] user={current_user.id} session={session_id[:12]} {exc.code}: {exc.message}")
        raise

    if _ledger().record_if_best(current_user.id, score, session_id):
        current_app.logger.info(f"[best-score] user={current_user.id} score={score}")
        socketio.emit('leaderboard_update', {'username': current_user.name, 'score': score},
                      to='leaderboard', namespace='/ws')

    return jsonify({
        'success': True,
        'message': 'Score verified and recorded',
        'finalScore': score,
    })


def _period(created_at, now) -> str:
    days = (now - created_at).days
    if days < 1:
        return 'today'
    if days < 7:
        return 'last7Days'
    if days < 30:
        return 'last30Days'
    return 'older'


@scores.route('/', methods=['GET'])
def leaderboard():
    rows = (
        db.session.query(User.name, Score.score, Score.created_at)
        .join(Score, Score.user_id == User.id)
        .order_by(Score.score.desc())
        .all()
    )
    by_period = {'today': [], 'last7Days': [], 'last30Days': []}
    now = utcnow()
    for name, score, created_at in rows:
        bucket = by_period.get(_period(created_at, now))
        if bucket is not None and len(bucket) < LEADERBOARD_SIZE:
            bucket.append({'username': name, 'score': score})
    return jsonify(by_period)


@scores.route('/personal', methods=['GET'])
@login_required
def personal_scores():
    best = _ledger().best_for(current_user.id)
    return jsonify({
        'success': True,
        'scores': [best.to_dict()] if best else [],
    })
