from flask import Blueprint, jsonify, current_app, request

from services.storage import get_storage

debug_bp = Blueprint('debug', __name__)


@debug_bp.route('', methods=['GET'])
def debug_info():
    """Report which credentials and backends are configured, never their values."""
    is_dev = current_app.config.get('FLASK_ENV') == 'development'
    if not is_dev and not current_app.config.get('ENABLE_DEBUG'):
        return jsonify({'error': 'Debug endpoint disabled'}), 403

    cfg = current_app.config
    info = {
        'flaskEnv': cfg.get('FLASK_ENV'),
        'adminUsernameSet': bool(cfg.get('ADMIN_USERNAME')),
        'adminPasswordSet': bool(cfg.get('ADMIN_PASSWORD')),
        'jwtSecretSet': bool(cfg.get('JWT_SECRET')),
        'storageBackend': get_storage().name,
        'githubRepo': f"{cfg.get('GITHUB_OWNER')}/{cfg.get('GITHUB_REPO')}" if cfg.get('GITHUB_REPO') else None,
        'githubTokenSet': bool(cfg.get('GITHUB_TOKEN')),
        'userAgent': request.headers.get('User-Agent'),
        'host': request.host,
        'protocol': request.scheme,
    }
    return jsonify(info), 200
