from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from flappy.services.accounts import authenticate, issue_token, register_user

auth = Blueprint('auth', __name__)


def _user_payload(user):
    return user.to_dict(referral_base_url=current_app.config.get('FRONTEND_URL'))


@auth.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    user = register_user(
        name=data.get('name'),
        mobile=data.get('mobile'),
        password=data.get('password'),
        email=data.get('email'),
        referral_id=data.get('referralId'),
    )
    return jsonify({
        'message': 'Registration successful',
        'token': issue_token(user),
        'user': _user_payload(user),
    }), 201


@auth.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    user = authenticate(data.get('mobile'), data.get('password'))
    return jsonify({
        'success': True,
        'message': 'Login successful',
        'token': issue_token(user),
        'user': _user_payload(user),
    })


@auth.route('/profile', methods=['GET'])
@login_required
def profile():
    return jsonify({'success': True, 'user': _user_payload(current_user)})
