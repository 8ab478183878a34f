"""Authentication API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from homeservices.api.contracts import (
    ApiErrorResponse,
    AuthResponse,
    MeResponse,
    MessageResponse,
)
from homeservices.api.http_setup import client_ip
from homeservices.auth.dependencies import current_user
from homeservices.auth.models import (
    AuthSession,
    CurrentUser,
    LoginRequest,
    ProviderRegisterRequest,
    RegisterRequest,
)
from homeservices.auth.rate_limiter import RateLimiter
from homeservices.auth.service import AuthService
from homeservices.core.config import AuthConfig, SecurityConfig

LOGIN_RATE_LIMIT_MESSAGE = (
    "تم تجاوز عدد محاولات تسجيل الدخول المسموح. حاول مرة أخرى خلال دقيقتين."
)
REGISTER_RATE_LIMIT_MESSAGE = "تم تجاوز عدد محاولات التسجيل المسموح. حاول مرة أخرى لاحقاً."


def _auth_response(session: AuthSession) -> AuthResponse:
    return AuthResponse(
        message=session.message,
        user=session.user.session_view(),
        token=session.token,
        provider_id=session.provider_id,
    )


def create_auth_router(
    service: AuthService,
    rate_limiter: RateLimiter,
    *,
    auth_config: AuthConfig,
    security_config: SecurityConfig,
) -> APIRouter:
    """Build authentication router with login/register/logout/me endpoints."""
    router = APIRouter(tags=["auth"])

    def set_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            auth_config.cookie_name,
            token,
            max_age=service.codec.ttl_seconds,
            path="/",
            secure=auth_config.cookie_secure,
            httponly=True,
            samesite="strict",
        )

    @router.post(
        "/api/login",
        response_model=AuthResponse,
        responses={
            400: {"model": ApiErrorResponse},
            401: {"model": ApiErrorResponse},
            429: {"model": ApiErrorResponse},
        },
    )
    def login(req: LoginRequest, request: Request, response: Response) -> AuthResponse:
        """Authenticate user, return the token and set the session cookie."""
        rate_limiter.assert_allowed(
            f"login:{client_ip(request)}",
            security_config.login_rate_limit,
            LOGIN_RATE_LIMIT_MESSAGE,
        )
        session = service.login(req.email, req.password)
        set_session_cookie(response, session.token)
        return _auth_response(session)

    @router.post(
        "/api/register",
        response_model=AuthResponse,
        responses={
            400: {"model": ApiErrorResponse},
            409: {"model": ApiErrorResponse},
            429: {"model": ApiErrorResponse},
        },
    )
    def register(
        req: RegisterRequest, request: Request, response: Response
    ) -> AuthResponse:
        """Register a customer account."""
        rate_limiter.assert_allowed(
            f"register:{client_ip(request)}",
            security_config.register_rate_limit,
            REGISTER_RATE_LIMIT_MESSAGE,
        )
        session = service.register_customer(req)
        set_session_cookie(response, session.token)
        return _auth_response(session)

    @router.post(
        "/api/register/provider",
        response_model=AuthResponse,
        responses={
            400: {"model": ApiErrorResponse},
            409: {"model": ApiErrorResponse},
            429: {"model": ApiErrorResponse},
        },
    )
    def register_provider(
        req: ProviderRegisterRequest, request: Request, response: Response
    ) -> AuthResponse:
        """Register a provider account awaiting admin verification."""
        rate_limiter.assert_allowed(
            f"register-provider:{client_ip(request)}",
            security_config.provider_register_rate_limit,
            REGISTER_RATE_LIMIT_MESSAGE,
        )
        session = service.register_provider(req)
        set_session_cookie(response, session.token)
        return _auth_response(session)

    @router.post("/api/logout", response_model=MessageResponse)
    def logout(response: Response) -> MessageResponse:
        """Clear the session cookie; tokens are stateless and simply expire."""
        response.delete_cookie(
            auth_config.cookie_name,
            path="/",
            secure=auth_config.cookie_secure,
            httponly=True,
            samesite="strict",
        )
        return MessageResponse(message="تم تسجيل الخروج بنجاح")

    @router.get(
        "/api/me",
        response_model=MeResponse,
        responses={401: {"model": ApiErrorResponse}, 403: {"model": ApiErrorResponse}},
    )
    def me(user: CurrentUser = Depends(current_user)) -> MeResponse:
        """Return the identity resolved by the auth middleware."""
        return MeResponse(user=user.session_view())

    return router
