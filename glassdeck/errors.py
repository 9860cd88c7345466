class GlassdeckError(Exception):
    """Base error; ``status_code`` is what the HTTP layer answers with."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(GlassdeckError):
    status_code = 401


class SessionNotFound(GlassdeckError):
    """Identity resolved but no live glasses session. The user must reconnect."""
    status_code = 404


class ResourceNotFound(GlassdeckError):
    status_code = 404


class ValidationFailure(GlassdeckError):
    status_code = 400


class StorageError(GlassdeckError):
    status_code = 500
