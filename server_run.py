import os

# Local development: keep content on disk unless told otherwise
os.environ.setdefault('FLASK_ENV', 'development')
os.environ.setdefault('STORAGE_BACKEND', 'filesystem')
os.environ.setdefault('SECRET_KEY', 'dev-secret-change-me')

from app import create_app

_app, _ = create_app()

if __name__ == '__main__':
    # Enable debug for local smoke tests to show stack traces in logs
    _app.run(host='127.0.0.1', port=int(os.environ.get('PORT', 5001)), debug=True)
