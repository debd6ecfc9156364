import hmac
from functools import wraps
from flask import request, jsonify, current_app
import jwt
from roomkeeper.extensions import db
from roomkeeper.models.user import User

def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None

def _user_from_token(token):
    data = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=["HS256"])
    user = db.session.get(User, data['user_id'])
    if not user:
        raise jwt.InvalidTokenError("User not found")
    return user

def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({'message': 'Token is missing!'}), 401

        try:
            current_user = _user_from_token(token)
        except (jwt.InvalidTokenError, KeyError) as e:
            return jsonify({'message': 'Token is invalid!', 'error': str(e)}), 401

        return f(current_user, *args, **kwargs)

    return decorated

def token_optional(f):
    """Like token_required, but anonymous callers (kiosks) get ``None``."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        current_user = None
        if token:
            try:
                current_user = _user_from_token(token)
            except (jwt.InvalidTokenError, KeyError) as e:
                return jsonify({'message': 'Token is invalid!', 'error': str(e)}), 401
        return f(current_user, *args, **kwargs)

    return decorated

def privileged_required(f):
    # Must be stacked under @token_required, which passes current_user first
    @wraps(f)
    def decorated(*args, **kwargs):
        current_user = args[0]
        if not current_user.is_privileged:
            return jsonify({'message': 'Staff privilege required'}), 403
        return f(*args, **kwargs)
    return decorated

def cron_secret_required(f):
    """Scheduler endpoints: ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = current_app.config.get('CRON_SECRET')
        if secret:
            token = _bearer_token() or ''
            if not hmac.compare_digest(token, secret):
                return jsonify({'message': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated
