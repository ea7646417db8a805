"""
API middleware stack.

- Request ID injection (X-Request-ID header)
- Structured request/response logging
- Error-taxonomy exception handlers
- CORS configuration
"""
from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from shared.config import get_settings
from shared.errors import MatchLogError, UpstreamUnavailable
from shared.utils.logging import get_logger

logger = get_logger(__name__)

_QUIET_PATHS = ("/health", "/healthz", "/metrics", "/ready")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Injects a unique X-Request-ID header into every request/response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured request/response information."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _QUIET_PATHS:
            return await call_next(request)

        start = time.monotonic()
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "http_request_error",
                method=request.method,
                path=path,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
                request_id=request_id,
                error=str(exc),
                exc_info=True,
            )
            raise

        logger.info(
            "http_request",
            method=request.method,
            path=path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            request_id=request_id,
            client=request.client.host if request.client else "unknown",
        )
        return response


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request."


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers mapping the error taxonomy to status codes."""

    @app.exception_handler(MatchLogError)
    async def domain_error_handler(request: Request, exc: MatchLogError) -> JSONResponse:
        content = exc.to_payload()
        if isinstance(exc, UpstreamUnavailable):
            logger.warning(
                "upstream_unavailable",
                path=request.url.path,
                upstream_status=exc.upstream_status,
                league=exc.league_id,
                error=exc.message,
            )
            if exc.upstream_status is not None:
                content["upstreamStatus"] = exc.upstream_status
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "message": _describe_validation_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        kind = "not_found" if exc.status_code == 404 else "http_error"
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Resource not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": kind, "message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            request_id=request_id,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
                "request_id": request_id,
            },
        )


def setup_cors(app: FastAPI) -> None:
    """Configure CORS middleware."""
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def setup_middleware(app: FastAPI) -> None:
    """Apply all middleware to the FastAPI app. The last one added runs outermost."""
    # 1. Request logging (reads the id set by the next layer out)
    app.add_middleware(RequestLoggingMiddleware)
    # 2. Request ID
    app.add_middleware(RequestIDMiddleware)
    # 3. CORS (must be outermost for preflight)
    setup_cors(app)
    # 4. Exception handlers
    setup_exception_handlers(app)
