"""HTTP middleware and exception handler wiring for FastAPI apps."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from homeservices.api.errors import ApiErrorCode, to_error_payload
from homeservices.core.config import AppConfig
from homeservices.core.logging import set_actor_id, set_correlation_id

VALIDATION_MESSAGE = "بيانات الطلب غير صحيحة"
INTERNAL_ERROR_MESSAGE = "حدث خطأ غير متوقع. يرجى المحاولة مرة أخرى."
REQUEST_TOO_LARGE_MESSAGE = "حجم الطلب يتجاوز الحد المسموح به"


def register_http_middleware(app: FastAPI, *, config: AppConfig, logger: Any) -> None:
    """Attach common security and observability middleware to an app."""

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                parsed_length = int(content_length)
            except ValueError:
                parsed_length = 0
            if parsed_length > config.security.request_max_bytes:
                return JSONResponse(
                    status_code=413,
                    content=to_error_payload(
                        {
                            "error_code": ApiErrorCode.REQUEST_TOO_LARGE,
                            "message": REQUEST_TOO_LARGE_MESSAGE,
                        },
                        413,
                    ),
                )
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        correlation_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-correlation-id")
            or uuid.uuid4().hex
        )
        set_correlation_id(correlation_id)
        set_actor_id(None)
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        logger.info(
            "request_completed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
            },
        )
        return response


def register_exception_handlers(app: FastAPI, *, logger: Any) -> None:
    """Attach handlers that render every failure as ``{success: false, error}``."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        payload = to_error_payload(exc.detail, exc.status_code)
        logger.warning(
            "http_exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=payload,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning(
            "validation_exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": 400,
            },
        )
        return JSONResponse(
            status_code=400,
            content=to_error_payload(
                {"error_code": ApiErrorCode.VALIDATION_ERROR, "message": VALIDATION_MESSAGE},
                400,
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "unexpected_exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": 500,
            },
        )
        return JSONResponse(
            status_code=500,
            content=to_error_payload(
                {
                    "error_code": ApiErrorCode.INTERNAL_SERVER_ERROR,
                    "message": INTERNAL_ERROR_MESSAGE,
                },
                500,
            ),
        )


def client_ip(request: Request) -> str:
    """Best-effort caller address used for rate-limit keys."""
    forwarded = request.headers.get("cf-connecting-ip") or request.headers.get(
        "x-forwarded-for", ""
    )
    candidate = forwarded.split(",", 1)[0].strip()
    if candidate:
        return candidate
    return (request.client.host if request.client else "") or "unknown"
