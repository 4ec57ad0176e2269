"""Request correlation ids for log grouping."""
from __future__ import annotations

from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from autoforge.logging import set_correlation_id

HEADER = "X-Correlation-ID"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's ``X-Correlation-ID`` or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            set_correlation_id(None)
        response.headers[HEADER] = correlation_id
        return response
