"""Public API response contracts."""

from homeservices.api.contracts.models import (
    ApiErrorResponse,
    AuthResponse,
    DataResponse,
    HealthResponse,
    MeResponse,
    MessageResponse,
    PaginationResponse,
    PendingDocumentsResponse,
    RequestsPageResponse,
    SessionUserResponse,
    UsersPageResponse,
)

__all__ = [
    "ApiErrorResponse",
    "AuthResponse",
    "DataResponse",
    "HealthResponse",
    "MeResponse",
    "MessageResponse",
    "PaginationResponse",
    "PendingDocumentsResponse",
    "RequestsPageResponse",
    "SessionUserResponse",
    "UsersPageResponse",
]
