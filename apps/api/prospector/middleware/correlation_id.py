from __future__ import annotations

import uuid
from dataclasses import dataclass

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from prospector.context import reset_correlation_id, set_correlation_id

CORRELATION_HEADER = "x-correlation-id"
TENANT_HEADER = "x-tenant-id"


@dataclass
class RequestContext:
    correlation_id: str
    tenant_id: str | None
    user_id: str | None = None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation id to the request, its logs, its span and its response."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        request.state.context = RequestContext(
            correlation_id=correlation_id,
            tenant_id=request.headers.get(TENANT_HEADER),
        )

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("correlation_id", correlation_id)

        token = set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["x-request-id"] = correlation_id
        return response
