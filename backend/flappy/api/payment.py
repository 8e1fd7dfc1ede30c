from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from flappy.services.payments import initiate_payment, payment_status, verify_payment


payment = Blueprint('payment', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@payment.route('/initiate', methods=['POST'])
@login_required
def initiate():
    data = _json_body()
    record = initiate_payment(current_user, data.get('bkashNumber'))
    merchant = current_app.config.get('BKASH_MERCHANT_NUMBER')
    return jsonify({
        'success': True,
        'message': 'Payment initiated',
        'payment': {
            'id': record.id,
            'amount': record.amount,
            'bkashNumber': record.bkash_number,
            'instructions': f'Send {record.amount} TK to bKash number {merchant}, '
                            f'then submit the transaction ID to complete payment',
        },
    })


@payment.route('/verify', methods=['POST'])
@login_required
def verify():
    data = _json_body()
    record = verify_payment(current_user, data.get('paymentId'), data.get('transactionId'))
    return jsonify({
        'success': True,
        'message': 'Payment verified successfully',
        'payment': {
            'id': record.id,
            'status': record.status,
            'amount': record.amount,
            'validUntil': record.valid_until.isoformat(),
        },
    })


@payment.route('/status', methods=['GET'])
@login_required
def status():
    return jsonify({'success': True, **payment_status(current_user)})
