"""
Error taxonomy for catalog, membership and lifecycle operations.

Every error a caller is expected to show the user derives from StashError and
carries the HTTP status the JSON views answer with.
"""


class StashError(Exception):
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class Unauthenticated(StashError):
    """No valid session or bearer token."""
    status_code = 401


class Forbidden(StashError):
    """Authenticated, but the caller's role does not allow the action."""
    status_code = 403


class ValidationError(StashError):
    """Empty required field, malformed code, destination equal to source, etc."""
    status_code = 400


class NotFound(StashError):
    status_code = 404


class HasDependents(StashError):
    """Delete blocked because other rows still reference the target."""
    status_code = 409

    def __init__(self, message: str, count: int):
        super().__init__(message)
        self.count = count


class PersistenceFailure(StashError):
    """A row-level insert/update/delete did not complete."""
    status_code = 500


class StorageError(Exception):
    """
    Raised by the photo store when an object-storage call fails.

    Not a StashError: callers decide whether it becomes a warning
    (delete/replace paths) or a PersistenceFailure (create path).
    """
