"""Exceptions raised by the content services and translated to HTTP by the blueprints."""


class ContentError(Exception):
    """Base class for content and storage failures."""


class NotFound(ContentError, LookupError):
    pass


class ValidationFailure(ContentError, ValueError):
    pass


class BackingStoreError(ContentError):
    """The remote store rejected or failed a request."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class StoreUnavailable(BackingStoreError):
    """Transport or authentication failure talking to the store."""


class WriteConflict(BackingStoreError):
    """The precondition token was stale; another writer saved first."""
