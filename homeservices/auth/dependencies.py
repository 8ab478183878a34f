"""FastAPI dependencies exposing the resolved identity to handlers."""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.auth.models import CurrentUser, UserType
from homeservices.auth.service import MISSING_TOKEN_MESSAGE


def current_user(request: Request) -> CurrentUser:
    user = getattr(request.state, "user", None)
    if not isinstance(user, CurrentUser):
        raise ApiError(
            status_code=401,
            error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
            message=MISSING_TOKEN_MESSAGE,
        )
    return user


def require_roles(*roles: UserType, message: str = "غير مصرح بالوصول") -> Callable:
    """Build a dependency that admits only the listed user types."""
    allowed = frozenset(roles)

    def dependency(request: Request) -> CurrentUser:
        user = current_user(request)
        if user.user_type not in allowed:
            raise ApiError(
                status_code=403,
                error_code=ApiErrorCode.AUTH_FORBIDDEN,
                message=message,
            )
        return user

    return dependency


require_admin = require_roles(UserType.ADMIN, message="غير مصرح بالوصول - إدارة فقط")
