from flappy import db
from flask_login import UserMixin
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now; every timestamp column is stored naive in UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_epoch_ms(ms) -> datetime:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).replace(tzinfo=None)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    mobile = db.Column(db.String(16), unique=True, nullable=False, index=True)
    email = db.Column(db.String(100), nullable=True)
    password_hash = db.Column(db.String(128), nullable=False)
    referral_id = db.Column(db.String(16), unique=True, nullable=False, index=True)
    referral_count = db.Column(db.Integer, default=0, nullable=False)
    referred_by_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    # Subscription window, moved forward only by a completed payment
    valid_until = db.Column(db.DateTime, nullable=True)
    last_payment_date = db.Column(db.DateTime, nullable=True)

    best_score = db.relationship('Score', back_populates='user', uselist=False)

    def to_dict(self, referral_base_url=None):
        return {
            'id': self.id,
            'name': self.name,
            'mobile': self.mobile,
            'email': self.email,
            'referralId': self.referral_id,
            'referralLink': f"{referral_base_url}/invite?ref={self.referral_id}" if referral_base_url else None,
            'referralCount': self.referral_count,
            'highScore': self.best_score.score if self.best_score else 0,
            'isPaymentValid': self.valid_until is not None and self.valid_until > utcnow(),
            'paymentValidUntil': self.valid_until.isoformat() if self.valid_until else None,
        }


class GameSession(db.Model):
    __tablename__ = 'game_session'
    __table_args__ = (
        db.Index('ix_game_session_user_session', 'user_id', 'session_id'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    session_id = db.Column(db.String(64), unique=True, nullable=False)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=True)  # NULL while active
    final_score = db.Column(db.Integer, default=0, nullable=False)
    client_version = db.Column(db.String(32), nullable=True)
    device_info = db.Column(db.JSON, nullable=True)  # platform, browser, screenResolution
    verified = db.Column(db.Boolean, default=False, nullable=False)
    checksum = db.Column(db.String(64), nullable=True)

    events = db.relationship('GameEvent', back_populates='game_session', order_by='GameEvent.id', lazy='select')

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def to_dict(self, include_events=False):
        payload = {
            'sessionId': self.session_id,
            'startTime': self.start_time.isoformat() if self.start_time else None,
            'endTime': self.end_time.isoformat() if self.end_time else None,
            'finalScore': self.final_score,
            'clientVersion': self.client_version,
            'deviceInfo': self.device_info,
            'verified': self.verified,
        }
        if include_events:
            payload['gameEvents'] = [e.to_dict() for e in self.events]
        return payload


class GameEvent(db.Model):
    __tablename__ = 'game_event'
    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    timestamp = db.Column(db.BigInteger, nullable=False)  # ms since epoch
    type = db.Column(db.String(64), nullable=False)
    data = db.Column(db.JSON, nullable=True)

    game_session = db.relationship('GameSession', back_populates='events')

    def to_dict(self):
        return {'timestamp': self.timestamp, 'type': self.type, 'data': self.data}


class Score(db.Model):
    __tablename__ = 'score'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    score = db.Column(db.Integer, nullable=False)
    session_id = db.Column(db.String(64), nullable=False)
    verified = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    user = db.relationship('User', back_populates='best_score')

    def to_dict(self):
        return {
            'score': self.score,
            'sessionId': self.session_id,
            'verified': self.verified,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class Payment(db.Model):
    __tablename__ = 'payment'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, default=10, nullable=False)  # TK
    status = db.Column(db.String(16), default='PENDING', nullable=False)  # PENDING, COMPLETED, FAILED
    payment_method = db.Column(db.String(16), default='BKASH', nullable=False)
    transaction_id = db.Column(db.String(64), unique=True, nullable=True)
    bkash_number = db.Column(db.String(16), nullable=False)
    valid_until = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'status': self.status,
            'bkashNumber': self.bkash_number,
            'transactionId': self.transaction_id,
            'validUntil': self.valid_until.isoformat() if self.valid_until else None,
        }
