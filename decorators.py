from functools import wraps
from flask import g, jsonify, request
from services import auth_service

AUTH_COOKIE = 'auth-token'


def get_request_token():
  """Bearer token from the Authorization header, else the auth cookie."""
  auth = request.headers.get('Authorization', '')
  if auth.startswith('Bearer '):
    return auth.split(' ', 1)[1].strip() or None
  return request.cookies.get(AUTH_COOKIE)


def admin_token_required(f):
  @wraps(f)
  def decorated_function(*args, **kwargs):
    token = get_request_token()
    if not token:
      return jsonify({'error': 'Authentication required'}), 401

    claims = auth_service.verify_token(token)
    if not claims:
      return jsonify({'error': 'Invalid token'}), 401

    # Single implicit admin role
    if claims.get('role') != auth_service.ADMIN_ROLE:
      return jsonify({'error': 'Invalid token'}), 401

    g.auth_user = claims
    return f(*args, **kwargs)
  return decorated_function
