"""Service package exports.

This module re-exports service modules so callers can use
`from services import <service_name>` consistently across the
codebase (used by blueprints and tests).
"""

from . import errors
from . import storage
from . import sections
from . import markdown_utils
from . import file_utils
from . import auth_service
from . import content_service

__all__ = [
    'errors',
    'storage',
    'sections',
    'markdown_utils',
    'file_utils',
    'auth_service',
    'content_service',
]
