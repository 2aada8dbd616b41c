from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Base for every failure the service layer reports to callers."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(DomainError):
    kind = "invalid_input"
    status_code = 400


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404


class Conflict(DomainError):
    kind = "conflict"
    status_code = 409


class PermissionDenied(DomainError):
    kind = "permission_denied"
    status_code = 403


class Expired(DomainError):
    kind = "expired"
    status_code = 410


class IntegrityViolation(DomainError):
    kind = "integrity_violation"
    status_code = 500


async def domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "kind": exc.kind})
