"""HTTP middleware and the mapping from domain errors to status codes."""

from __future__ import annotations

import secrets
import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from vibeshift.config import get_settings
from vibeshift.errors import SessionStateError, TransportError, ValidationError, VibeShiftError

logger = structlog.get_logger(__name__)

_PLACEHOLDER_KEY = "change-me-to-a-random-secret"
_OPEN_PATHS = frozenset({"/", "/health", "/docs", "/openapi.json", "/redoc"})
_REQUEST_ID_HEADER = "X-Request-ID"

# Most specific class first.
_ERROR_STATUS: tuple[tuple[type[VibeShiftError], int], ...] = (
    (TransportError, 502),
    (ValidationError, 422),
    (SessionStateError, 409),
)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Require ``X-API-Key`` or a bearer token when a real key is configured."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        expected = get_settings().api_secret_key
        if expected in ("", _PLACEHOLDER_KEY) or request.url.path in _OPEN_PATHS:
            return await call_next(request)

        supplied = request.headers.get("X-API-Key") or _bearer_token(request.headers.get("Authorization", ""))
        if not secrets.compare_digest(supplied.encode(), expected.encode()):
            logger.warning("http.unauthorized", path=request.url.path)
            return JSONResponse(status_code=401, content={"detail": "Invalid or missing API key."})
        return await call_next(request)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id into the log context and log one line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(_REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.monotonic()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("http.unhandled_error", method=request.method, path=request.url.path)
                response = JSONResponse(status_code=500, content={"detail": "Internal server error."})

            response.headers[_REQUEST_ID_HEADER] = request_id
            if request.url.path != "/health":
                logger.info(
                    "http.request",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round((time.monotonic() - start) * 1000, 1),
                )
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


async def _domain_error(request: Request, exc: VibeShiftError) -> JSONResponse:
    status = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    content: dict = {"detail": str(exc)}
    if isinstance(exc, TransportError):
        content.update(operation=exc.operation, upstream_status=exc.status)
    if status >= 500:
        logger.warning("http.domain_error", path=request.url.path, status=status, error=str(exc))
    return JSONResponse(status_code=status, content=content)


def setup_middleware(app: FastAPI) -> None:
    """Install CORS, auth, request context and the domain error handler.

    Starlette wraps in reverse order of registration, so the request-context
    middleware added last is the outermost layer.
    """
    raw = get_settings().cors_origins.strip()
    origins = ["*"] if raw == "*" else [o.strip() for o in raw.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[_REQUEST_ID_HEADER],
    )
    app.add_middleware(APIKeyMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(VibeShiftError, _domain_error)


def _bearer_token(header: str) -> str:
    scheme, _, token = header.partition(" ")
    return token.strip() if scheme.lower() == "bearer" else ""
