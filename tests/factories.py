from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any

from homeservices.auth.models import AuthUser, UserType
from homeservices.core.config import (
    AppConfig,
    AuthConfig,
    LoggingConfig,
    RateLimitPolicy,
    SecurityConfig,
    StorageConfig,
)
from homeservices.core.security import hash_password
from homeservices.providers.models import VerificationStatus
from homeservices.storage.repository import MarketplaceRepository

TEST_SECRET = "test-secret"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"


def make_config(**auth_overrides: Any) -> AppConfig:
    auth = AuthConfig(
        secret_key=TEST_SECRET,
        token_ttl_seconds=86400,
        cookie_name="auth_token",
        cookie_secure=True,
        enforce_active_sessions=True,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_name="Admin",
    )
    return AppConfig(
        auth=replace(auth, **auth_overrides),
        security=SecurityConfig(
            cors_allowed_origins=["http://localhost:3000"],
            request_max_bytes=64 * 1024,
            rate_limit_max_keys=1000,
            login_rate_limit=RateLimitPolicy(max_requests=8, window_seconds=120),
            register_rate_limit=RateLimitPolicy(max_requests=5, window_seconds=120),
            provider_register_rate_limit=RateLimitPolicy(max_requests=3, window_seconds=600),
        ),
        storage=StorageConfig(
            runtime_dir="runtime",
            mongodb_uri="",
            mongodb_db="test",
            seed_demo_data=True,
        ),
        logging=LoggingConfig(level="WARNING"),
    )


def make_repo(tmp_path: Path) -> MarketplaceRepository:
    return MarketplaceRepository(tmp_path, make_config().storage)


def add_user(
    repo: MarketplaceRepository,
    email: str,
    *,
    user_type: UserType = UserType.CUSTOMER,
    password: str = "secret123",
    verified: bool = True,
    active: bool = True,
) -> AuthUser:
    return repo.create_user(
        email=email,
        password_hash=hash_password(password, salt=b"\x01" * 16),
        name=email.split("@", 1)[0],
        phone="0791234567",
        city="عمان",
        user_type=user_type,
        verified=verified,
        active=active,
    )


def add_provider(
    repo: MarketplaceRepository,
    email: str,
    *,
    status: VerificationStatus = VerificationStatus.PENDING,
    category_ids: list[int] | None = None,
):
    """Create a provider account plus profile; returns ``(user, profile)``."""
    user = add_user(
        repo,
        email,
        user_type=UserType.PROVIDER,
        verified=status == VerificationStatus.APPROVED,
    )
    profile = repo.create_provider_profile(
        user.id,
        business_name=f"{user.name} services",
        category_ids=category_ids or [1],
        available=True,
    )
    if status != VerificationStatus.PENDING:
        repo.apply_verification_decision(profile.id, status=status, notes=None)
        profile = repo.get_provider(profile.id)
    return user, profile
