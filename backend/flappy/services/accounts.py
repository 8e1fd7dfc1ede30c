"""Accounts: registration, login, bearer tokens and referral codes.

Password hashing, referral code generation and the referrer's count bump
are explicit steps of ``register_user``; the models carry no save hooks.
"""

import re
import secrets
import string
import time
from typing import Optional

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import update

from flappy import bcrypt, db
from flappy.errors import AuthError, ReferralCodeExhausted, ValidationError
from flappy.models import User


MOBILE_PATTERN = re.compile(r'^\+8801[3-9][0-9]{8}$')
TOKEN_SALT = 'auth-token'
REFERRAL_ALPHABET = string.ascii_uppercase + string.digits


def _optional_str(value, field: str, max_length: int) -> Optional[str]:
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    if len(value) > max_length:
        raise ValidationError(f'{field} cannot be more than {max_length} characters')
    return value


def normalize_mobile(mobile: str) -> str:
    """Bangladeshi mobile number in ``+8801XXXXXXXXX`` form."""
    if mobile is not None and not isinstance(mobile, str):
        raise ValidationError('Mobile number must be a string', code='invalid_mobile')
    clean = re.sub(r'[- ]', '', mobile or '')
    if clean.startswith('+880'):
        formatted = clean
    elif clean.startswith('880'):
        formatted = f'+{clean}'
    else:
        formatted = '+880' + re.sub(r'^0', '', clean)
    if not MOBILE_PATTERN.match(formatted):
        raise ValidationError('Please enter a valid Bangladeshi number (e.g., 01712345678 or +8801712345678)',
                              code='invalid_mobile')
    return formatted


def _base36(n: int) -> str:
    digits = string.digits + string.ascii_uppercase
    out = ''
    while n:
        n, r = divmod(n, 36)
        out = digits[r] + out
    return out or '0'


def generate_referral_id(attempts: Optional[int] = None) -> str:
    """Unique referral id: base-36 time prefix plus 5 random characters."""
    if attempts is None:
        attempts = int(current_app.config.get('REFERRAL_CODE_ATTEMPTS', 5))
    for _ in range(attempts):
        code = _base36(int(time.time() * 1000)) + ''.join(secrets.choice(REFERRAL_ALPHABET) for _ in range(5))
        if not User.query.filter_by(referral_id=code).first():
            return code
    raise ReferralCodeExhausted(f'No unique referral id after {attempts} attempts')


def register_user(name: str, mobile: str, password: str, email: Optional[str] = None,
                  referral_id: Optional[str] = None) -> User:
    name = _optional_str(name.strip() if isinstance(name, str) else name, 'Name', 50)
    password = _optional_str(password, 'Password', 128)
    email = _optional_str(email, 'Email', 100)
    referral_id = _optional_str(referral_id, 'Referral code', 16)
    if not name or not password:
        raise ValidationError('Name and password are required')
    if len(password) < 6:
        raise ValidationError('Password must be at least 6 characters')
    formatted = normalize_mobile(mobile)
    if User.query.filter_by(mobile=formatted).first():
        raise ValidationError('User with this mobile number already exists', code='user_exists')

    referrer = None
    if referral_id:
        referrer = User.query.filter_by(referral_id=referral_id).first()
        if referrer is None:
            raise ValidationError('Invalid referral code', code='invalid_referral')

    user = User(
        name=name,
        mobile=formatted,
        email=email.strip().lower() if email else None,
        password_hash=bcrypt.generate_password_hash(password).decode('utf-8'),
        referral_id=generate_referral_id(),
        referred_by_id=referrer.id if referrer else None,
    )
    db.session.add(user)
    if referrer is not None:
        db.session.execute(
            update(User).where(User.id == referrer.id).values(referral_count=User.referral_count + 1)
        )
    db.session.commit()
    current_app.logger.info(f"[register] user={user.id} referred_by={user.referred_by_id}")
    return user


def authenticate(mobile: str, password: str) -> User:
    if not mobile or not password:
        raise ValidationError('Mobile number and password are required')
    if not isinstance(password, str):
        raise ValidationError('Password must be a string')
    user = User.query.filter_by(mobile=normalize_mobile(mobile)).first()
    if user is None or not bcrypt.check_password_hash(user.password_hash, password):
        raise AuthError('Invalid mobile number or password', code='authentication_failed')
    return user


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    return _serializer().dumps({'userId': user.id})


def resolve_token(token: str) -> Optional[User]:
    """User for a bearer token, or None when missing, forged or expired."""
    max_age = int(current_app.config.get('AUTH_TOKEN_MAX_AGE_SEC', 30 * 24 * 3600))
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None
    user_id = payload.get('userId') if isinstance(payload, dict) else None
    if user_id is None:
        return None
    return db.session.get(User, int(user_id))


def load_user_from_request(request) -> Optional[User]:
    header = request.headers.get('Authorization', '')
    token = header[7:] if header.startswith('Bearer ') else header
    if not token:
        return None
    return resolve_token(token.strip())
