"""Authentication service for login, registration and session resolution."""

from __future__ import annotations

import logging
import secrets
from typing import Any, Protocol

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.auth.models import (
    AuthSession,
    AuthUser,
    CurrentUser,
    ProviderRegisterRequest,
    RegisterRequest,
    UserType,
)
from homeservices.auth.tokens import TokenCodec
from homeservices.auth.validators import (
    normalize_email,
    password_problem,
    sanitize_input,
    validate_email,
    validate_jordanian_phone,
)
from homeservices.core.config import AuthConfig
from homeservices.core.security import hash_password, verify_password
from homeservices.storage.repository import DuplicateEmailError

LOGGER = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "البريد الإلكتروني أو كلمة المرور غير صحيحة"
MISSING_TOKEN_MESSAGE = "غير مصرح بالوصول"
INVALID_SESSION_MESSAGE = "الجلسة غير صالحة"
ACCOUNT_DISABLED_MESSAGE = "تم تعطيل حسابك. يرجى التواصل مع الإدارة"


class UserStore(Protocol):
    """Repository surface used by the auth service."""

    def get_user(self, user_id: int) -> AuthUser | None: ...

    def get_user_by_email(self, email: str) -> AuthUser | None: ...

    def create_user(self, **fields: Any) -> AuthUser: ...

    def list_users(self, *, user_type: str = "", search: str = "") -> list[AuthUser]: ...

    def create_provider_profile(self, user_id: int, **fields: Any) -> Any: ...

    def get_category(self, category_id: int) -> Any: ...

    def add_notification(self, **fields: Any) -> Any: ...


def _bad_request(message: str) -> ApiError:
    return ApiError(
        status_code=400,
        error_code=ApiErrorCode.VALIDATION_ERROR,
        message=message,
    )


class AuthService:
    """Authentication domain service."""

    def __init__(self, repo: UserStore, codec: TokenCodec, config: AuthConfig) -> None:
        self._repo = repo
        self._codec = codec
        self._config = config
        # Compared against when the email is unknown so both paths cost one PBKDF2 run.
        self._dummy_hash = hash_password(secrets.token_hex(16))

    @property
    def codec(self) -> TokenCodec:
        return self._codec

    def bootstrap_admin_user(self) -> None:
        """Ensure bootstrap admin user exists from environment values."""
        email = normalize_email(self._config.admin_email)
        if not email or self._repo.get_user_by_email(email) is not None:
            return
        self._repo.create_user(
            email=email,
            password_hash=hash_password(self._config.admin_password),
            name=self._config.admin_name,
            user_type=UserType.ADMIN,
            verified=True,
            active=True,
        )
        LOGGER.info("admin_bootstrapped")

    def login(self, email: str, password: str) -> AuthSession:
        """Authenticate credentials and issue a session token."""
        if not (email or "").strip() or not password:
            raise _bad_request("البريد الإلكتروني وكلمة المرور مطلوبان")
        if not validate_email(email):
            raise _bad_request("البريد الإلكتروني غير صحيح")

        user = self._repo.get_user_by_email(normalize_email(email))
        if user is None or not user.active:
            verify_password(password, self._dummy_hash)
            LOGGER.info("login_failed")
            raise self._invalid_credentials()
        if not verify_password(password, user.password_hash):
            LOGGER.info("login_failed", extra={"user_id": user.id})
            raise self._invalid_credentials()

        LOGGER.info("login_succeeded", extra={"user_id": user.id})
        return self._issue_session(user, "تم تسجيل الدخول بنجاح! مرحباً بك")

    def register_customer(self, req: RegisterRequest) -> AuthSession:
        """Create a customer account; ``user_type=provider`` also opens a pending profile."""
        self._validate_registration(req.email, req.password, req.name, req.phone)
        if req.user_type not in (UserType.CUSTOMER, UserType.PROVIDER):
            raise _bad_request("نوع المستخدم غير صحيح")

        user_type = UserType(req.user_type)
        user = self._create_user(
            email=req.email,
            password=req.password,
            name=req.name,
            phone=req.phone,
            city=req.city,
            address=req.address,
            user_type=user_type,
        )
        provider_id = None
        if user_type == UserType.PROVIDER:
            provider_id = self._repo.create_provider_profile(
                user.id, business_name=user.name, available=True
            ).id
        LOGGER.info("user_registered", extra={"user_id": user.id})
        return self._issue_session(
            user, "تم إنشاء الحساب بنجاح", provider_id=provider_id
        )

    def register_provider(self, req: ProviderRegisterRequest) -> AuthSession:
        """Create a provider account with a pending verification profile."""
        self._validate_registration(req.email, req.password, req.name, req.phone)
        if not req.business_name.strip():
            raise _bad_request("اسم النشاط التجاري مطلوب")
        if not req.categories:
            raise _bad_request("يجب اختيار فئة خدمة واحدة على الأقل")
        for category_id in req.categories:
            if self._repo.get_category(category_id) is None:
                raise _bad_request("فئة الخدمة غير موجودة")

        user = self._create_user(
            email=req.email,
            password=req.password,
            name=req.name,
            phone=req.phone,
            city=req.city,
            address=req.address,
            user_type=UserType.PROVIDER,
        )
        profile = self._repo.create_provider_profile(
            user.id,
            business_name=sanitize_input(req.business_name),
            national_id=sanitize_input(req.license_number),
            description=sanitize_input(req.bio),
            experience_years=req.experience_years,
            coverage_areas=[sanitize_input(area) for area in req.coverage_areas if area],
            minimum_charge=req.minimum_charge,
            category_ids=list(dict.fromkeys(req.categories)),
            available=True,
        )
        for admin in self._repo.list_users(user_type=UserType.ADMIN):
            self._repo.add_notification(
                user_id=admin.id,
                title="طلب تحقق جديد",
                message=f"مقدم خدمة جديد بانتظار المراجعة: {profile.business_name}",
                type="info",
                related_id=profile.id,
                related_type="provider",
            )
        LOGGER.info(
            "provider_registered",
            extra={"user_id": user.id, "provider_id": profile.id},
        )
        return self._issue_session(
            user,
            "تم تسجيل مقدم الخدمة بنجاح. سيتم مراجعة طلبك من قبل الإدارة",
            provider_id=profile.id,
        )

    def resolve_session(self, token: str) -> CurrentUser:
        """Turn a raw token into the request identity or raise 401/403."""
        if not token:
            raise ApiError(
                status_code=401,
                error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
                message=MISSING_TOKEN_MESSAGE,
            )
        claims = self._codec.parse(token)
        if claims is None:
            raise ApiError(
                status_code=401,
                error_code=ApiErrorCode.AUTH_TOKEN_INVALID,
                message=INVALID_SESSION_MESSAGE,
            )
        if not self._config.enforce_active_sessions:
            return CurrentUser(
                id=claims.id,
                email=claims.email,
                name=claims.name,
                user_type=claims.user_type,
                verified=claims.verified,
            )

        user = self._repo.get_user(claims.id)
        if user is None or not user.active:
            LOGGER.info("session_rejected_inactive", extra={"user_id": claims.id})
            raise ApiError(
                status_code=403,
                error_code=ApiErrorCode.AUTH_ACCOUNT_DISABLED,
                message=ACCOUNT_DISABLED_MESSAGE,
            )
        return CurrentUser(
            id=user.id,
            email=user.email,
            name=user.name,
            user_type=user.user_type,
            verified=user.verified,
            active=user.active,
        )

    def _validate_registration(
        self, email: str, password: str, name: str, phone: str
    ) -> None:
        if not all((value or "").strip() for value in (email, password, name, phone)):
            raise _bad_request("جميع الحقول المطلوبة يجب ملؤها")
        if not validate_email(email):
            raise _bad_request("البريد الإلكتروني غير صحيح")
        if not validate_jordanian_phone(phone):
            raise _bad_request("رقم الهاتف غير صحيح. يجب أن يكون رقم أردني صحيح")
        problem = password_problem(password)
        if problem:
            raise _bad_request(problem)

    def _create_user(
        self,
        *,
        email: str,
        password: str,
        name: str,
        phone: str,
        city: str,
        address: str,
        user_type: UserType,
    ) -> AuthUser:
        try:
            return self._repo.create_user(
                email=normalize_email(email),
                password_hash=hash_password(password),
                name=sanitize_input(name),
                phone=phone.replace(" ", ""),
                city=sanitize_input(city),
                address=sanitize_input(address),
                user_type=user_type,
                verified=user_type != UserType.PROVIDER,
                active=True,
            )
        except DuplicateEmailError as exc:
            raise ApiError(
                status_code=409,
                error_code=ApiErrorCode.EMAIL_ALREADY_REGISTERED,
                message="البريد الإلكتروني مستخدم مسبقاً",
            ) from exc

    def _issue_session(
        self, user: AuthUser, message: str, *, provider_id: int | None = None
    ) -> AuthSession:
        current = CurrentUser(
            id=user.id,
            email=user.email,
            name=user.name,
            user_type=user.user_type,
            verified=user.verified,
            active=user.active,
        )
        return AuthSession(
            message=message,
            token=self._codec.issue(current.session_view()),
            user=current,
            provider_id=provider_id,
        )

    @staticmethod
    def _invalid_credentials() -> ApiError:
        return ApiError(
            status_code=401,
            error_code=ApiErrorCode.AUTH_INVALID_CREDENTIALS,
            message=INVALID_CREDENTIALS_MESSAGE,
        )
