from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

from prospector.context import get_correlation_id
from prospector.errors import (
    AuthorizationError,
    CommitFailure,
    CommitLimitExceeded,
    ProspectorError,
    RotationConflictError,
    ValidationError,
)


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


def prospector_error_response(request: Request, exc: ProspectorError, *, code_prefix: str) -> JSONResponse:
    if isinstance(exc, AuthorizationError):
        return error_response(
            request,
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="unauthorized",
            message=str(exc),
        )
    if isinstance(exc, ValidationError):
        return error_response(
            request,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code=f"{code_prefix}_validation_failed",
            message=str(exc),
            details=[item.to_dict() for item in exc.errors],
        )
    if isinstance(exc, CommitLimitExceeded):
        return error_response(
            request,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            code=f"{code_prefix}_too_large",
            message=str(exc),
            details={"limit": exc.limit, "attempted": exc.attempted},
        )
    if isinstance(exc, (CommitFailure, RotationConflictError)):
        return error_response(
            request,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code=f"{code_prefix}_commit_failed",
            message=str(exc),
        )
    return error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=f"{code_prefix}_failed",
        message=str(exc),
    )
