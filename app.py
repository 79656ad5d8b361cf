import os
import time
from datetime import datetime, timezone

from flask import Flask, Blueprint, jsonify
from extensions import limiter
from dotenv import load_dotenv
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from prometheus_flask_exporter import PrometheusMetrics

load_dotenv()

# Initialize Sentry for error tracking (production only)
sentry_dsn = os.environ.get('SENTRY_DSN')
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', 0.2)),
        environment=os.environ.get('FLASK_ENV', 'production'),
    )


def _env_flag(name, default='false'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(test_config=None):
    app = Flask(__name__)

    # --- Configuration ---
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('SECRET_KEY'),
        JWT_SECRET=os.environ.get('JWT_SECRET'),
        ADMIN_USERNAME=os.environ.get('ADMIN_USERNAME', 'admin'),
        ADMIN_PASSWORD=os.environ.get('ADMIN_PASSWORD', 'admin123!'),
        FLASK_ENV=os.environ.get('FLASK_ENV', 'production'),
        # Storage: "github" or "filesystem"; chosen automatically when unset
        STORAGE_BACKEND=os.environ.get('STORAGE_BACKEND'),
        STORAGE_ROOT=os.environ.get('STORAGE_ROOT'),
        GITHUB_OWNER=os.environ.get('GITHUB_OWNER'),
        GITHUB_REPO=os.environ.get('GITHUB_REPO'),
        GITHUB_TOKEN=os.environ.get('GITHUB_TOKEN'),
        GITHUB_BRANCH=os.environ.get('GITHUB_BRANCH', 'main'),
        GITHUB_CONTENT_PATH=os.environ.get('GITHUB_CONTENT_PATH', 'data/content.json'),
        GITHUB_TIMEOUT=os.environ.get('GITHUB_TIMEOUT', 10),
        MAX_CONTENT_LENGTH=int(os.environ.get('MAX_UPLOAD_MB', 50)) * 1024 * 1024,
        ENABLE_DEBUG=_env_flag('ENABLE_DEBUG'),
        METRICS_ENABLED=_env_flag('METRICS_ENABLED', 'true'),
    )

    # Allow tests to override config before extensions are initialized
    if test_config:
        app.config.update(test_config)

    # SECRET_KEY is required - no fallback for production
    if not app.config.get('SECRET_KEY'):
        raise ValueError("SECRET_KEY environment variable must be set")

    app.json.ensure_ascii = False

    # --- Initialization ---
    if app.config.get('METRICS_ENABLED'):
        metrics = PrometheusMetrics(app)
        metrics.info('app_info', 'Memorial society site backend', version='1.0.0')

    limiter.init_app(app)

    # Security headers
    @app.after_request
    def set_security_headers(response):
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        if app.config.get('FLASK_ENV') == 'production':
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # --- Blueprints (Routes) ---
    from blueprints import register_blueprints
    register_blueprints(app)

    main_bp = Blueprint('main', __name__)

    @main_bp.route('/health')
    def health_check():
        """
        Health check endpoint for monitoring system status.
        Returns JSON with storage reachability and configuration flags.
        """
        from services.storage import get_storage

        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'service': 'Memorial society site',
            'version': '1.0.0',
            'checks': {}
        }

        try:
            storage = get_storage()
            start_time = time.time()
            document = storage.load_content()
            health_status['checks']['storage'] = {
                'status': 'healthy',
                'backend': storage.name,
                'buckets': len(document.buckets),
                'response_time_ms': round((time.time() - start_time) * 1000, 2),
            }
        except Exception as e:
            app.logger.exception('Health check: storage unavailable')
            health_status['status'] = 'unhealthy'
            health_status['checks']['storage'] = {
                'status': 'unhealthy',
                'error': str(e),
                'message': 'Content storage unavailable'
            }

        health_status['checks']['sentry'] = {
            'status': 'enabled' if sentry_dsn else 'disabled',
        }

        http_status = 200 if health_status['status'] == 'healthy' else 503
        return jsonify(health_status), http_status

    app.register_blueprint(main_bp)

    return app, limiter


if __name__ == '__main__':
    app, limiter = create_app()
    app.run(debug=app.config.get('FLASK_ENV') == 'development')
