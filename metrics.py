"""
Custom Prometheus metrics for the memorial society site
Tracks logins, content mutations, file operations and document write conflicts
"""

from prometheus_client import Counter

# Login metrics
login_attempts = Counter(
    'site_login_attempts_total',
    'Total admin login attempts',
    ['status']  # success or failure
)

# Content metrics
content_mutations = Counter(
    'site_content_mutations_total',
    'Content document mutations',
    ['action']  # create, update, delete, view
)

# File metrics
file_operations = Counter(
    'site_file_operations_total',
    'Uploaded file operations',
    ['action', 'status']  # upload/delete, success/failure
)

# Rejected saves caused by a stale precondition token
write_conflicts = Counter(
    'site_content_write_conflicts_total',
    'Content saves rejected because the document changed underneath',
    ['action']
)


def track_login_attempt(success=True):
    """Track login attempt"""
    status = 'success' if success else 'failure'
    login_attempts.labels(status=status).inc()


def track_content_mutation(action):
    content_mutations.labels(action=action).inc()


def track_file_operation(action, success=True):
    status = 'success' if success else 'failure'
    file_operations.labels(action=action, status=status).inc()


def track_write_conflict(action):
    write_conflicts.labels(action=action).inc()
