"""Failure kinds raised by the session lifecycle; each carries its HTTP status."""


class ApiError(Exception):
    """Base class for failures that carry their own HTTP status."""

    status_code = 500
    error = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details


class ValidationError(ApiError):
    status_code = 400
    error = "VALIDATION_ERROR"
    default_message = "Invalid input"


class ConflictError(ApiError):
    status_code = 409
    error = "CONFLICT"
    default_message = "User already exists"


class AuthenticationError(ApiError):
    status_code = 401
    error = "UNAUTHORIZED"
    default_message = "Unauthorized request"


class InvalidTokenError(ApiError):
    status_code = 401
    error = "INVALID_TOKEN"
    default_message = "Invalid token"


class ExpiredOrReusedTokenError(ApiError):
    status_code = 401
    error = "TOKEN_EXPIRED_OR_USED"
    default_message = "Refresh token is expired or used"


class NotFoundError(ApiError):
    status_code = 404
    error = "NOT_FOUND"
    default_message = "Resource not found"


class UploadError(ApiError):
    status_code = 500
    error = "UPLOAD_FAILED"
    default_message = "File upload failed"


class InternalError(ApiError):
    pass
