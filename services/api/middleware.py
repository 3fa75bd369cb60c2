"""Request logging middleware."""

from __future__ import annotations

import time
from typing import Callable

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log one line per request and add basic hardening headers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        client_ip = request.client.host if request.client else "unknown"
        logger.info(
            "{method} {path} -> {status} in {elapsed:.1f} ms ({client})",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            elapsed=elapsed_ms,
            client=client_ip,
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response
