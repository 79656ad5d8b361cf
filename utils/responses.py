"""Map service exceptions to JSON error responses."""
from flask import current_app, jsonify

import metrics
from services.errors import BackingStoreError, NotFound, ValidationFailure, WriteConflict

CONFLICT_MESSAGE = 'Content was modified by another request, please reload and retry'


def error_response(exc, message, action=None):
    """Return ``(response, status)`` for an exception caught at a handler boundary.

    Handlers answer 400, 404 or 500. Store failures, write conflicts
    included, are 500s; ``message`` is shown for anything unexpected and the
    details stay in the log.
    """
    if isinstance(exc, ValidationFailure):
        return jsonify({'error': str(exc)}), 400
    if isinstance(exc, NotFound):
        return jsonify({'error': 'Content not found'}), 404
    if isinstance(exc, WriteConflict):
        if action:
            metrics.track_write_conflict(action)
        current_app.logger.warning('%s: %s', message, exc)
        return jsonify({'error': CONFLICT_MESSAGE}), 500
    if isinstance(exc, BackingStoreError):
        current_app.logger.error('%s: %s', message, exc)
        return jsonify({'error': message}), 500
    current_app.logger.exception(message)
    return jsonify({'error': message}), 500
