"""Middleware for FastAPI application."""

import json
import sys
import time
import uuid
from http import HTTPStatus

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from questionbank.config import settings
from questionbank.services.audit import (
    AuditEntry,
    AuditRecorder,
    audit_recorder,
    serialize_body,
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests with request_id tracking."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with logging and request_id."""
        # Generate unique request ID
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        # Process request
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Request-ID"] = request_id

        return response


class AuditLogMiddleware(BaseHTTPMiddleware):
    """Record state-changing and sensitive-path requests to the audit log.

    Recording never delays or alters the response.
    """

    def __init__(self, app: ASGIApp, recorder: AuditRecorder | None = None) -> None:
        super().__init__(app)
        self.recorder = recorder or audit_recorder

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Capture request metadata and hand the entry off for persistence."""
        if not self.recorder.is_sensitive(request.method, request.url.path):
            return await call_next(request)

        body = await request.body()
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            self.recorder.record(
                self._build_entry(
                    request, body, start_time, 500, f"{type(exc).__name__}: {exc}"
                )
            )
            raise

        error = None
        if response.status_code >= 400:
            error = HTTPStatus(response.status_code).phrase
        self.recorder.record(
            self._build_entry(request, body, start_time, response.status_code, error)
        )
        return response

    @staticmethod
    def _build_entry(
        request: Request,
        body: bytes,
        start_time: float,
        status_code: int,
        error: str | None,
    ) -> AuditEntry:
        identity = getattr(request.state, "identity", None)
        path_params = request.scope.get("path_params") or {}
        return AuditEntry(
            user_id=identity.id if identity is not None else None,
            action=f"{request.method} {request.url.path}",
            method=request.method,
            path=request.url.path,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent", ""),
            params=json.dumps(path_params, default=str),
            query=json.dumps(dict(request.query_params)),
            request_body=serialize_body(body),
            status_code=status_code,
            response_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
            error=error,
        )


def configure_logging() -> None:
    """Configure loguru for structured logging."""
    logger.remove()  # Avoid duplicate logs
    logger.add(
        sink=sys.stdout,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "{extra} | "
            "<level>{message}</level>"
        ),
        level=settings.log_level,
        serialize=False,
    )


def register_middleware(app: FastAPI) -> None:
    """Register all middleware with the app."""
    if settings.audit_enabled:
        app.add_middleware(AuditLogMiddleware)
    # Added last so it runs outermost and request_id exists for audit entries
    app.add_middleware(RequestLoggingMiddleware)
