"""
Error taxonomy shared by the gate, the services and the HTTP layer.
Every ApiError carries the status code it is rendered with.
"""
from __future__ import annotations


class ApiError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(ApiError):
    """Missing or malformed Authorization header."""


class UnauthorizedError(ApiError):
    """Credentials do not match, or the principal lacks the privilege."""

    status_code = 401


class ValidationError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class TransactionError(ApiError):
    pass
