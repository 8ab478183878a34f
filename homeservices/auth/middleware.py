"""HTTP middleware that resolves the session on protected API routes."""

from __future__ import annotations

from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse

from homeservices.api.errors import ApiError, to_error_payload
from homeservices.auth.service import AuthService
from homeservices.core.logging import set_actor_id

PUBLIC_PATHS = frozenset(
    {
        "/api/health",
        "/api/login",
        "/api/logout",
        "/api/register",
        "/api/register/provider",
        "/api/categories",
        "/api/providers",
    }
)


def _extract_bearer_token(authorization: str) -> str:
    """Extract bearer token from authorization header value."""
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def extract_token(request: Request, cookie_name: str) -> str:
    """Return the session token; the ``Authorization`` header wins over the cookie."""
    token = _extract_bearer_token(request.headers.get("authorization", ""))
    if token:
        return token
    return (request.cookies.get(cookie_name) or "").strip()


def create_auth_middleware(service: AuthService, *, cookie_name: str) -> Callable:
    """Create middleware function that validates session tokens."""

    async def auth_middleware(request: Request, call_next: Callable):
        """Resolve identity for protected API paths and attach it to request state."""
        path = request.url.path
        if not path.startswith("/api/") or path in PUBLIC_PATHS:
            return await call_next(request)

        try:
            user = service.resolve_session(extract_token(request, cookie_name))
        except ApiError as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content=to_error_payload(exc.detail, exc.status_code),
            )

        request.state.user = user
        set_actor_id(user.id)
        return await call_next(request)

    return auth_middleware
