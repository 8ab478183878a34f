"""Pydantic models for authentication domain."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class UserType(StrEnum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


class AuthUser(BaseModel):
    """Persisted user with credential fields."""

    id: int
    email: str
    password_hash: str
    name: str
    phone: str = ""
    user_type: UserType = UserType.CUSTOMER
    city: str = ""
    address: str = ""
    birth_date: str | None = None
    marital_status: str | None = None
    verified: bool = False
    active: bool = True
    created_at: str = ""
    updated_at: str = ""

    def public_view(self) -> dict[str, object]:
        """Return the user without credential material."""
        return self.model_dump(mode="json", exclude={"password_hash"})


class SessionClaims(BaseModel):
    """Signed-token payload; ``iat``/``exp`` are unix seconds."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    email: str
    name: str
    user_type: UserType
    verified: bool
    issued_at: int = Field(alias="iat")
    expires_at: int = Field(alias="exp")


class CurrentUser(BaseModel):
    """Identity attached to ``request.state.user`` for downstream handlers."""

    id: int
    email: str
    name: str
    user_type: UserType
    verified: bool
    active: bool = True

    def session_view(self) -> dict[str, object]:
        return self.model_dump(mode="json", exclude={"active"})


# Request payloads keep every field optional so the service can answer
# missing or malformed input with the localized 400 message instead of a
# schema error.
class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    email: str = ""
    password: str = ""
    name: str = ""
    phone: str = ""
    user_type: str = "customer"
    city: str = ""
    address: str = ""


class ProviderRegisterRequest(BaseModel):
    email: str = ""
    password: str = ""
    name: str = ""
    phone: str = ""
    city: str = ""
    address: str = ""
    business_name: str = ""
    bio: str = ""
    experience_years: int = Field(default=0, ge=0, le=80)
    license_number: str = ""
    categories: list[int] = Field(default_factory=list)
    minimum_charge: float = Field(default=25.0, ge=0)
    coverage_areas: list[str] = Field(default_factory=list)


class AuthSession(BaseModel):
    """Result of a successful login or registration."""

    message: str
    token: str
    user: CurrentUser
    provider_id: int | None = None
