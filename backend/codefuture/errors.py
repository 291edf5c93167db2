"""Error kinds raised by services and repositories.

Every error carries the HTTP status it maps to; a single exception
handler in `main` turns them into `{"error": message}` responses so
handlers can simply raise the first problem they hit.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400


class AuthError(AppError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Unique constraint violated (duplicate email)."""
    status_code = 409


class UpstreamError(AppError):
    """The AI service or an OAuth provider failed."""
    status_code = 500


class StorageError(AppError):
    status_code = 500
