"""Custom FastAPI middleware."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from lets_habit.core.context import bind_request_id, reset_request_id

logger = logging.getLogger("lets_habit.access")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to every request and log one access line per response."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        start = perf_counter()

        try:
            response = await call_next(request)
            elapsed_ms = (perf_counter() - start) * 1000
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                "%s %s %d, elapsed: %.1fms",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
        finally:
            reset_request_id(token)

        response.headers["X-Request-Id"] = request_id
        return response
