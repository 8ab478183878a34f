"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AuthConfig:
    """Authentication-related configuration."""

    secret_key: str
    token_ttl_seconds: int
    cookie_name: str
    cookie_secure: bool
    enforce_active_sessions: bool
    admin_email: str
    admin_password: str
    admin_name: str


@dataclass(frozen=True)
class RateLimitPolicy:
    """Request ceiling for one family of caller keys."""

    max_requests: int
    window_seconds: int

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter security settings."""

    cors_allowed_origins: list[str]
    request_max_bytes: int
    rate_limit_max_keys: int
    login_rate_limit: RateLimitPolicy
    register_rate_limit: RateLimitPolicy
    provider_register_rate_limit: RateLimitPolicy


@dataclass(frozen=True)
class StorageConfig:
    """Marketplace storage settings."""

    runtime_dir: str
    mongodb_uri: str
    mongodb_db: str
    seed_demo_data: bool


@dataclass(frozen=True)
class LoggingConfig:
    """Structured logging configuration."""

    level: str


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    auth: AuthConfig
    security: SecurityConfig
    storage: StorageConfig
    logging: LoggingConfig

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        secret_key = (
            os.getenv("AUTH_SECRET_KEY", "").strip()
            or "dev-insecure-secret-change-me"
        )
        token_ttl = int(os.getenv("AUTH_TOKEN_TTL_SECONDS", "86400"))
        cookie_name = os.getenv("AUTH_COOKIE_NAME", "auth_token").strip() or "auth_token"
        admin_email = os.getenv("AUTH_ADMIN_EMAIL", "admin@example.com").strip().lower()
        admin_password = os.getenv("AUTH_ADMIN_PASSWORD", "admin123").strip()
        admin_name = os.getenv("AUTH_ADMIN_NAME", "مدير النظام").strip() or "admin"
        cors_allowed_origins = [
            origin.strip()
            for origin in os.getenv(
                "CORS_ALLOWED_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if origin.strip()
        ]
        request_max_bytes = int(os.getenv("REQUEST_MAX_BYTES", str(2 * 1024 * 1024)))
        log_level = os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"

        return AppConfig(
            auth=AuthConfig(
                secret_key=secret_key,
                token_ttl_seconds=token_ttl,
                cookie_name=cookie_name,
                cookie_secure=_env_flag("AUTH_COOKIE_SECURE", "1"),
                enforce_active_sessions=_env_flag("AUTH_ENFORCE_ACTIVE_SESSIONS", "1"),
                admin_email=admin_email,
                admin_password=admin_password,
                admin_name=admin_name,
            ),
            security=SecurityConfig(
                cors_allowed_origins=cors_allowed_origins,
                request_max_bytes=request_max_bytes,
                rate_limit_max_keys=int(os.getenv("RATE_LIMIT_MAX_KEYS", "10000")),
                login_rate_limit=RateLimitPolicy(
                    max_requests=int(os.getenv("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", "8")),
                    window_seconds=int(
                        os.getenv("LOGIN_RATE_LIMIT_WINDOW_SECONDS", "120")
                    ),
                ),
                register_rate_limit=RateLimitPolicy(
                    max_requests=int(os.getenv("REGISTER_RATE_LIMIT_MAX_ATTEMPTS", "5")),
                    window_seconds=int(
                        os.getenv("REGISTER_RATE_LIMIT_WINDOW_SECONDS", "120")
                    ),
                ),
                provider_register_rate_limit=RateLimitPolicy(
                    max_requests=int(
                        os.getenv("PROVIDER_REGISTER_RATE_LIMIT_MAX_ATTEMPTS", "3")
                    ),
                    window_seconds=int(
                        os.getenv("PROVIDER_REGISTER_RATE_LIMIT_WINDOW_SECONDS", "600")
                    ),
                ),
            ),
            storage=StorageConfig(
                runtime_dir=os.getenv("RUNTIME_DIR", "runtime").strip() or "runtime",
                mongodb_uri=os.getenv("MONGODB_URI", "").strip(),
                mongodb_db=os.getenv("MONGODB_DB", "home_services").strip()
                or "home_services",
                seed_demo_data=_env_flag("SEED_DEMO_DATA", "1"),
            ),
            logging=LoggingConfig(level=log_level),
        )
