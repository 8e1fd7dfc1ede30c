"""bKash subscription payments.

A payment is initiated PENDING, the player sends money to the merchant
number by hand, then verifies with the bKash transaction id.
``complete_payment`` is the one place that marks a payment COMPLETED and
extends the player's ``valid_until`` window.
"""

import re
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError as DBIntegrityError

from flappy import db
from flappy.errors import ConflictError, NotFoundError, ValidationError
from flappy.models import Payment, User, utcnow


PENDING = 'PENDING'
COMPLETED = 'COMPLETED'
FAILED = 'FAILED'

BKASH_NUMBER_PATTERN = re.compile(r'^(\+880|0)?1[0-9]{9}$')
MAX_TRANSACTION_ID_LENGTH = 64


def validity_end(now: datetime) -> datetime:
    """Through the end of next month: the first day of the month after next."""
    month = now.month + 2
    year = now.year + (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1)


def has_valid_payment(user: User, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return user.valid_until is not None and user.valid_until > now


def normalize_bkash_number(number) -> str:
    if not isinstance(number, str) or not BKASH_NUMBER_PATTERN.match(number):
        raise ValidationError('Invalid bKash number format', code='invalid_bkash_number')
    if number.startswith('+880'):
        return number
    return '+880' + re.sub(r'^0', '', number)


def initiate_payment(user: User, bkash_number) -> Payment:
    formatted = normalize_bkash_number(bkash_number)
    now = utcnow()
    if has_valid_payment(user, now):
        raise ValidationError(f'You already have a valid payment until {user.valid_until.date().isoformat()}',
                              code='payment_active')

    payment = Payment(
        user_id=user.id,
        amount=int(current_app.config.get('PAYMENT_AMOUNT', 10)),
        status=PENDING,
        bkash_number=formatted,
        valid_until=validity_end(now),
    )
    db.session.add(payment)
    db.session.commit()
    current_app.logger.info(f"[payment] initiated payment={payment.id} user={user.id}")
    return payment


def verify_payment(user: User, payment_id, transaction_id) -> Payment:
    if payment_id is None or not transaction_id:
        raise ValidationError('Payment ID and transaction ID are required')
    if not isinstance(transaction_id, str) or len(transaction_id) > MAX_TRANSACTION_ID_LENGTH:
        raise ValidationError('Invalid transaction ID', code='invalid_transaction_id')
    try:
        payment_id = int(payment_id)
    except (TypeError, ValueError):
        raise NotFoundError('Payment not found', code='payment_not_found')

    payment = Payment.query.filter_by(id=payment_id, user_id=user.id).first()
    if payment is None:
        raise NotFoundError('Payment not found', code='payment_not_found')
    if payment.status == COMPLETED:
        raise ConflictError('Payment already completed', code='payment_completed')
    if Payment.query.filter_by(transaction_id=transaction_id).first():
        raise ValidationError('Transaction ID already used', code='duplicate_transaction')

    return complete_payment(payment, transaction_id)


def complete_payment(payment: Payment, transaction_id: str, now: Optional[datetime] = None) -> Payment:
    """Mark ``payment`` COMPLETED and move the owner's window forward.

    The status flip is conditional so a payment completes at most once;
    the user's ``valid_until`` only ever grows.
    """
    now = now or utcnow()
    try:
        result = db.session.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status != COMPLETED)
            .values(status=COMPLETED, transaction_id=transaction_id, completed_at=now)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise ConflictError('Payment already completed', code='payment_completed')

        user = db.session.get(User, payment.user_id)
        if user.valid_until is None or user.valid_until < payment.valid_until:
            user.valid_until = payment.valid_until
        user.last_payment_date = now
        db.session.commit()
    except DBIntegrityError:
        db.session.rollback()
        raise ValidationError('Transaction ID already used', code='duplicate_transaction')

    db.session.refresh(payment)
    current_app.logger.info(f"[payment] completed payment={payment.id} user={payment.user_id}")
    return payment


def payment_status(user: User) -> dict:
    now = utcnow()
    valid = has_valid_payment(user, now)
    return {
        'isPaymentValid': valid,
        'lastPaymentDate': user.last_payment_date.isoformat() if user.last_payment_date else None,
        'validUntil': user.valid_until.isoformat() if user.valid_until else None,
        'needsPayment': not valid,
        'amount': int(current_app.config.get('PAYMENT_AMOUNT', 10)),
    }
