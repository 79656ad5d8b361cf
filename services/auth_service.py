import hmac
from datetime import datetime, timezone, timedelta

import jwt
from flask import current_app

TOKEN_TTL = timedelta(days=7)
ALGORITHM = 'HS256'
ADMIN_ROLE = 'admin'


def _secret() -> str:
    return current_app.config.get('JWT_SECRET') or current_app.config['SECRET_KEY']


def _credentials_match(username: str, password: str) -> bool:
    expected_user = current_app.config.get('ADMIN_USERNAME') or ''
    expected_password = current_app.config.get('ADMIN_PASSWORD') or ''
    user_ok = hmac.compare_digest(username.encode('utf-8'), expected_user.encode('utf-8'))
    password_ok = hmac.compare_digest(password.encode('utf-8'), expected_password.encode('utf-8'))
    return user_ok and password_ok and bool(expected_password)


def login(username, password):
    """Return a signed 7-day token for the admin credential pair, else None."""
    if not isinstance(username, str) or not isinstance(password, str):
        return None
    if not _credentials_match(username, password):
        return None

    now = datetime.now(timezone.utc)
    payload = {
        'username': username,
        'role': ADMIN_ROLE,
        'loginTime': now.isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
        'iat': int(now.timestamp()),
        'exp': int((now + TOKEN_TTL).timestamp()),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def verify_token(token):
    """Decoded claims for a valid, unexpired token; None otherwise."""
    if not token:
        return None
    try:
        return jwt.decode(token, _secret(), algorithms=[ALGORITHM], options={'require': ['exp']})
    except jwt.PyJWTError:
        return None
