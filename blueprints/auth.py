from flask import Blueprint, current_app, jsonify, make_response, request

import metrics
from decorators import AUTH_COOKIE, get_request_token
from extensions import LOGIN_LIMIT, limiter
from services import auth_service

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(LOGIN_LIMIT)
def login():
    """Exchange the admin credential pair for a 7-day token.

    The token is returned in the body for API clients and also set as the
    ``auth-token`` cookie for the browser front end.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get('username')
        password = data.get('password')
        if not username or not password:
            return jsonify({'error': 'username and password required'}), 400

        token = auth_service.login(username, password)
        if not token:
            metrics.track_login_attempt(success=False)
            current_app.logger.info('Failed admin login for %r', username)
            return jsonify({'error': 'Invalid credentials'}), 401

        metrics.track_login_attempt(success=True)
        user = auth_service.verify_token(token)
        response = make_response(jsonify({'token': token, 'user': user}))
        secure_flag = current_app.config.get('FLASK_ENV') == 'production'
        response.set_cookie(
            AUTH_COOKIE,
            token,
            max_age=int(auth_service.TOKEN_TTL.total_seconds()),
            path='/',
            samesite='Lax',
            secure=secure_flag,
            httponly=secure_flag,
        )
        return response
    except Exception:
        current_app.logger.exception('login: unexpected error')
        return jsonify({'error': 'Login failed'}), 500


@auth_bp.route('/verify', methods=['GET'])
def verify():
    token = get_request_token()
    if not token:
        return jsonify({'error': 'No token provided'}), 401

    user = auth_service.verify_token(token)
    if not user:
        return jsonify({'error': 'Invalid token'}), 401
    return jsonify(user), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    # Tokens are not revoked; this only clears the browser cookie.
    response = make_response(jsonify({'success': True}))
    response.delete_cookie(AUTH_COOKIE, path='/')
    return response
