"""
Domain error taxonomy.

Services raise these; the application maps each one to an HTTP status in
``saysense.main``. Routers never translate them by hand.
"""
from __future__ import annotations


class DomainError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404


class ForbiddenError(DomainError):
    status_code = 403


class UnauthorizedError(DomainError):
    status_code = 401


class InvalidRequestError(DomainError):
    status_code = 400


class ConflictError(DomainError):
    status_code = 409
