from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import replace
from typing import Any, Awaitable, Coroutine, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import Response

from homeservices.api.http_setup import (
    REQUEST_TOO_LARGE_MESSAGE,
    client_ip,
    register_exception_handlers,
    register_http_middleware,
)
from tests.factories import make_config

LOGGER = logging.getLogger(__name__)


def _app() -> FastAPI:
    app = FastAPI()
    config = make_config()
    config = replace(config, security=replace(config.security, request_max_bytes=8))
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)
    return app


def _request(
    path: str,
    method: str = "GET",
    headers: list[tuple[bytes, bytes]] | None = None,
) -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "root_path": "",
        "headers": headers or [],
        "client": ("127.0.0.1", 1234),
        "server": ("testserver", 80),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, receive)


def _dispatch_by_name(app: FastAPI, name: str):
    for middleware in app.user_middleware:
        dispatch = middleware.kwargs.get("dispatch")
        if callable(dispatch) and getattr(dispatch, "__name__", "") == name:
            return dispatch
    raise AssertionError(f"Dispatch {name!r} not found")


def _resolve_response(result: Response | Awaitable[Response]) -> Response:
    if inspect.iscoroutine(result):
        return asyncio.run(cast(Coroutine[Any, Any, Response], result))
    return cast(Response, result)


async def _ok(_request: Request) -> Response:
    return Response(content="ok", status_code=200)


def test_http_setup_adds_security_headers_and_request_id() -> None:
    dispatch = _dispatch_by_name(_app(), "request_logging_middleware")
    request = _request("/ok", headers=[(b"x-request-id", b"req-123")])

    response = asyncio.run(dispatch(request, _ok))

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"


def test_http_setup_rejects_large_request_before_handler() -> None:
    dispatch = _dispatch_by_name(_app(), "request_size_limit_middleware")
    request = _request("/echo", method="POST", headers=[(b"content-length", b"20")])

    response = asyncio.run(dispatch(request, _ok))

    assert response.status_code == 413
    body = json.loads(response.body)
    assert body["error_code"] == "REQUEST_TOO_LARGE"
    assert body["error"] == REQUEST_TOO_LARGE_MESSAGE


def test_http_setup_serializes_http_exception_payload() -> None:
    app = _app()
    handler = app.exception_handlers[StarletteHTTPException]

    response: Response = _resolve_response(
        handler(
            _request("/missing"),
            StarletteHTTPException(
                status_code=404,
                detail={"error_code": "PROVIDER_NOT_FOUND", "message": "missing"},
            ),
        )
    )

    assert response.status_code == 404
    assert json.loads(response.body) == {
        "success": False,
        "error": "missing",
        "error_code": "PROVIDER_NOT_FOUND",
    }


def test_http_setup_hides_unexpected_exception_details() -> None:
    app = _app()
    handler = app.exception_handlers[Exception]

    response: Response = _resolve_response(
        handler(_request("/boom"), RuntimeError("db password leaked"))
    )

    assert response.status_code == 500
    assert b"INTERNAL_SERVER_ERROR" in response.body
    assert b"leaked" not in response.body


def test_http_setup_maps_validation_exception_to_400() -> None:
    app = _app()
    handler = app.exception_handlers[RequestValidationError]

    response: Response = _resolve_response(
        handler(_request("/validation"), RequestValidationError([]))
    )

    assert response.status_code == 400
    assert json.loads(response.body)["error_code"] == "VALIDATION_ERROR"


def test_client_ip_prefers_proxy_headers() -> None:
    assert client_ip(_request("/", headers=[(b"cf-connecting-ip", b"5.5.5.5")])) == "5.5.5.5"
    assert (
        client_ip(_request("/", headers=[(b"x-forwarded-for", b"9.9.9.9, 10.0.0.1")]))
        == "9.9.9.9"
    )
    assert client_ip(_request("/")) == "127.0.0.1"
