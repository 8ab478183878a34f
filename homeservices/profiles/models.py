"""Pydantic models for the signed-in user's own profile."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field

_HOUR_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class MaritalStatus(StrEnum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"


class WorkDay(StrEnum):
    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"


class ProfileUpdateRequest(BaseModel):
    """Partial update; fields left out keep their stored values.

    Business fields apply to providers only.
    """

    phone: str | None = None
    city: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    birth_date: date | None = None
    marital_status: MaritalStatus | None = None

    business_name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    experience_years: int | None = Field(default=None, ge=0, le=80)
    business_license: str | None = Field(default=None, max_length=100)
    national_id: str | None = Field(default=None, max_length=50)
    minimum_charge: float | None = Field(default=None, ge=0)
    coverage_areas: list[str] | None = None
    specialization: str | None = Field(default=None, max_length=200)
    work_hours_start: str | None = Field(default=None, pattern=_HOUR_PATTERN)
    work_hours_end: str | None = Field(default=None, pattern=_HOUR_PATTERN)
    work_days: list[WorkDay] | None = None
    category_ids: list[int] | None = None
