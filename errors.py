"""
Error taxonomy

Managers raise these; the handlers registered in main.py turn them into
JSON error bodies with the matching HTTP status.
"""


class StoreError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        # Extra fields merged into the JSON error body.
        self.extra = extra


class ValidationError(StoreError):
    status_code = 400


class Unauthorized(StoreError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(StoreError):
    status_code = 404


class Conflict(StoreError):
    # Duplicates are reported as plain bad requests.
    status_code = 400


class DatabaseUnavailable(StoreError):
    status_code = 500

    def __init__(self, message: str = "Database not configured"):
        super().__init__(message)
