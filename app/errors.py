"""Structured error helpers for API responses."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

MISSING_IDENTIFIER_MSG = "At least one of email or phoneNumber is required."


def build_error_payload(message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": message}
    if code is not None:
        payload["code"] = code
    if details is not None:
        payload["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = build_error_payload(message, code, details)


class ContactIntegrityError(AppError):
    """Stored contacts break the primary/secondary linkage rules."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, "contact_integrity_error", details)


class IdentityLockConflictError(AppError):
    """Concurrent reconciliations deadlocked; the request can be retried."""

    def __init__(self, message: str = "Concurrent update of the same contacts; retry the request."):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message, "identity_lock_conflict")


DEADLOCK_SQLSTATE = "40P01"


def is_deadlock(exc: Exception) -> bool:
    """True when a DBAPI error wraps a PostgreSQL deadlock abort."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code == DEADLOCK_SQLSTATE


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


def _validation_message(errors: list) -> str:
    for err in errors:
        if err.get("type") == "missing" and tuple(err.get("loc", ())) == ("body",):
            return MISSING_IDENTIFIER_MSG
        if MISSING_IDENTIFIER_MSG in str(err.get("msg", "")):
            return MISSING_IDENTIFIER_MSG
    if errors:
        return str(errors[0].get("msg", MISSING_IDENTIFIER_MSG))
    return MISSING_IDENTIFIER_MSG


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body validation failures as a flat 400 error."""
    message = _validation_message(exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=build_error_payload(message))


def raise_app_error(status_code: int, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
    """Raise an AppError with a standardized error shape."""
    raise AppError(status_code, message, code, details)
