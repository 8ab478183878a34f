"""Pydantic models for customer service requests."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class RequestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


OPEN_STATUSES = frozenset(
    {RequestStatus.PENDING, RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS}
)


class ServiceRequest(BaseModel):
    """A customer's request for a home service."""

    id: int
    customer_id: int
    assigned_provider_id: int | None = None
    category_id: int
    title: str
    description: str = ""
    location_address: str = ""
    preferred_date: str | None = None
    emergency: bool = False
    budget_min: float | None = None
    budget_max: float | None = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: str = ""
    updated_at: str = ""


class CreateServiceRequest(BaseModel):
    category_id: int
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=4000)
    location_address: str = Field(default="", max_length=500)
    preferred_date: str | None = None
    emergency: bool = False
    budget_min: float | None = Field(default=None, ge=0)
    budget_max: float | None = Field(default=None, ge=0)
    provider_id: int | None = None


class UpdateRequestStatus(BaseModel):
    status: RequestStatus
