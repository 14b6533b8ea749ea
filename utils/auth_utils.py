# auth_utils.py
import datetime
import jwt
from flask import request, jsonify, current_app, g
from functools import wraps
from utils.errors import Unauthenticated

JWT_EXP_DELTA_SECONDS = 3600  # token 有效时间，单位：秒


def create_access_token(user_id, expires_in=JWT_EXP_DELTA_SECONDS):
    payload = {
        'user_id': user_id,
        'exp': datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=expires_in)
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm='HS256')


def _unauthorized(message):
    return jsonify(Unauthenticated(message).to_dict()), 401


def jwt_required(f):
    """Puts the token's user id into g.current_user_id."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # 从请求头获取 Authorization: Bearer <token>
        auth_header = request.headers.get('Authorization', None)
        if auth_header and auth_header.startswith('Bearer '):
            token = auth_header.split(' ')[1]
        else:
            return _unauthorized('Missing authorization token')

        try:
            payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            return _unauthorized('Authorization token expired')
        except jwt.InvalidTokenError:
            return _unauthorized('Invalid authorization token')

        user_id = payload.get('user_id')
        if not user_id:
            return _unauthorized('Token carries no user')

        g.current_user_id = str(user_id)
        return f(*args, **kwargs)
    return decorated_function
