"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class ApiErrorResponse(BaseModel):
    """Stable error envelope for API responses."""

    success: bool = False
    error: str = Field(description="Localized human-readable error message")
    error_code: str = Field(description="Machine-readable error code")


class HealthResponse(BaseModel):
    """Health check response payload."""

    status: Literal["ok"]


class SessionUserResponse(BaseModel):
    """Identity fields exposed to the signed-in user."""

    id: int
    email: str
    name: str
    user_type: str
    verified: bool


class AuthResponse(BaseModel):
    """Login and registration response payload."""

    success: bool = True
    message: str
    user: SessionUserResponse
    token: str
    provider_id: int | None = None


class MeResponse(BaseModel):
    """Current user endpoint response payload."""

    success: bool = True
    user: SessionUserResponse


class MessageResponse(BaseModel):
    """Acknowledgement for state-changing actions."""

    success: bool = True
    message: str


class PaginationResponse(BaseModel):
    """Page window metadata for admin listings."""

    page: int
    limit: int
    total: int
    pages: int


class UsersPageResponse(BaseModel):
    users: list[dict[str, Any]]
    pagination: PaginationResponse


class RequestsPageResponse(BaseModel):
    requests: list[dict[str, Any]]
    pagination: PaginationResponse


class PendingDocumentsResponse(BaseModel):
    pending_documents: list[dict[str, Any]] | int
    count: int | None = None


class DataResponse(BaseModel):
    """Generic successful payload wrapper used by listing endpoints."""

    success: bool = True
    data: Any = Field(default_factory=dict)
