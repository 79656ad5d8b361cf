"""Extension instances shared by blueprints; bound to the app in ``create_app``."""
import os

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

DEFAULT_LIMITS = ["5000 per day", "600 per hour"]
LOGIN_LIMIT = "10 per minute"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=DEFAULT_LIMITS,
    storage_uri=os.environ.get('RATELIMIT_STORAGE_URI', 'memory://'),
)
