# storefront/errors.py
"""
Service-level exceptions. Each carries the HTTP status the API answers with;
the app-wide handler turns them into ``{"success": false, "error": ...}``.
"""


class ServiceError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(ServiceError):
    status_code = 400
    default_message = "Already exists"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class InsufficientStock(ServiceError):
    status_code = 400
    default_message = "Insufficient stock"


class InvalidOtp(ServiceError):
    status_code = 400
    default_message = "Invalid OTP"


class InvalidCredentials(ServiceError):
    status_code = 401
    default_message = "Invalid credentials"


class InvalidToken(ServiceError):
    status_code = 400
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    default_message = "Token expired"


class InvalidRefreshToken(InvalidToken):
    status_code = 403
    default_message = "Invalid refresh token"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access Denied"


class InvalidTransition(ServiceError):
    status_code = 400
    default_message = "Invalid status transition"
