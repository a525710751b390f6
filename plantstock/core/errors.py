from __future__ import annotations

from fastapi import HTTPException


class ApiError(HTTPException):
    """HTTPException carrying the envelope's ``error`` text as its detail."""

    status_code = 500
    default_detail = "Server internal error"

    def __init__(self, detail: str | None = None, headers: dict | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)


class BadRequest(ApiError):
    status_code = 400
    default_detail = "Bad request"


class NotFound(ApiError):
    status_code = 404
    default_detail = "Not found"


class Conflict(ApiError):
    status_code = 409
    default_detail = "Already exists"


class InvalidCredentials(ApiError):
    status_code = 401
    default_detail = "Invalid credentials"


class MissingToken(ApiError):
    status_code = 401
    default_detail = "Access token required"


class UserNotFound(ApiError):
    status_code = 401
    default_detail = "User not found"


class InvalidToken(ApiError):
    status_code = 403
    default_detail = "Invalid or expired token"


class Forbidden(ApiError):
    status_code = 403
    default_detail = "Insufficient permissions"
