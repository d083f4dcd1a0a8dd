"""Service middleware — correlation IDs, bearer-token auth, per-IP rate limiting."""

from __future__ import annotations

import hmac
import logging
import threading
import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({"/api/ping"})


def _requires_auth(path: str) -> bool:
    return path.startswith("/api/") and path not in PUBLIC_PATHS


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Correlation-Id to every request/response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get("x-correlation-id") or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        response = await call_next(request)
        response.headers["X-Correlation-Id"] = correlation_id
        return response


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Require ``Authorization: Bearer <token>`` on /api/* (except ping).

    A single shared operator token; an empty token disables the check.
    """

    def __init__(self, app: ASGIApp, token: str) -> None:
        super().__init__(app)
        self._token = token.encode("utf-8")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._token and _requires_auth(request.url.path):
            auth = request.headers.get("authorization", "")
            scheme, _, presented = auth.partition(" ")
            if scheme.lower() != "bearer" or not hmac.compare_digest(
                presented.strip().encode("utf-8"), self._token
            ):
                logger.info("Rejected unauthenticated %s request", request.method)
                return JSONResponse({"error": "unauthorized"}, status_code=401)
        return await call_next(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow at most ``limit`` /api/* requests per client IP per wall-clock minute."""

    def __init__(self, app: ASGIApp, limit: int, clock=time.time) -> None:
        super().__init__(app)
        self._limit = limit
        self._clock = clock
        self._lock = threading.Lock()
        self._minute = 0
        self._counts: dict[str, int] = {}

    def _allow(self, ip: str) -> bool:
        minute = int(self._clock() // 60)
        with self._lock:
            if minute != self._minute:
                self._minute = minute
                self._counts.clear()
            count = self._counts.get(ip, 0) + 1
            self._counts[ip] = count
        return count <= self._limit

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._limit > 0 and request.url.path.startswith("/api/"):
            ip = request.client.host if request.client else "unknown"
            if not self._allow(ip):
                logger.warning("Rate limit exceeded for %s", ip)
                return JSONResponse({"error": "too many requests"}, status_code=429)
        return await call_next(request)
