from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from homeservices.admin.router import create_admin_router
from homeservices.admin.service import AdminService
from homeservices.api.contracts import HealthResponse
from homeservices.api.http_setup import register_exception_handlers, register_http_middleware
from homeservices.auth.middleware import create_auth_middleware
from homeservices.auth.rate_limiter import RateLimiter
from homeservices.auth.router import create_auth_router
from homeservices.auth.service import AuthService
from homeservices.auth.tokens import TokenCodec
from homeservices.core.config import AppConfig
from homeservices.core.logging import setup_logging
from homeservices.core.mongo_migrations import apply_mongo_migrations
from homeservices.profiles.router import create_profile_router
from homeservices.profiles.service import ProfileService
from homeservices.providers.router import create_providers_router
from homeservices.providers.service import ProviderVerificationService
from homeservices.service_requests.router import create_service_requests_router
from homeservices.service_requests.service import ServiceRequestService
from homeservices.storage.repository import MarketplaceRepository
from homeservices.storage.seed import DEFAULT_CATEGORIES

load_dotenv()
LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent


def create_app(config: AppConfig | None = None, *, app_root: Path | None = None) -> FastAPI:
    config = config or AppConfig.from_env()
    app_root = app_root or APP_ROOT
    setup_logging(config.logging.level)

    app = FastAPI(title="Jordan Home Services API", version="1.0.0")
    apply_mongo_migrations(config.storage)

    repo = MarketplaceRepository(app_root, config.storage)
    if config.storage.seed_demo_data:
        repo.seed_categories(DEFAULT_CATEGORIES)

    codec = TokenCodec(
        config.auth.secret_key, ttl_seconds=config.auth.token_ttl_seconds
    )
    auth_service = AuthService(repo, codec, config.auth)
    auth_service.bootstrap_admin_user()
    rate_limiter = RateLimiter(max_keys=config.security.rate_limit_max_keys)
    app.state.rate_limiter = rate_limiter
    app.state.repository = repo

    # Registered first so it runs inside the correlation-id middleware.
    app.middleware("http")(
        create_auth_middleware(auth_service, cookie_name=config.auth.cookie_name)
    )
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(
        create_auth_router(
            auth_service,
            rate_limiter,
            auth_config=config.auth,
            security_config=config.security,
        )
    )
    app.include_router(create_providers_router(ProviderVerificationService(repo)))
    app.include_router(create_admin_router(AdminService(repo)))
    app.include_router(create_profile_router(ProfileService(repo)))
    app.include_router(
        create_service_requests_router(ServiceRequestService(repo), repo)
    )

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    LOGGER.info("app_started storage_backend=%s", repo.backend)
    return app


app = create_app()
