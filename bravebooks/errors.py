# bravebooks/errors.py
"""
Error taxonomy shared by services and routers.

Services raise these; `bravebooks.main` turns any AppError into
{"success": false, "error": message} with the matching status code.
"""
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid input"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class InvalidToken(AuthError):
    default_message = "Invalid token"


class ExpiredToken(AuthError):
    default_message = "Token expired"


class PermissionDenied(AppError):
    status_code = 403
    default_message = "Permission denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many attempts. Please try again later."


class InternalError(AppError):
    status_code = 500
