"""Pydantic models for the admin panel and catalog records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class Category(BaseModel):
    """Service category shown on the public browsing page."""

    id: int
    name_ar: str
    name_en: str
    description_ar: str = ""
    description_en: str = ""
    icon: str = ""
    sort_order: int = 0
    active: bool = True
    created_at: str = ""
    updated_at: str = ""


class Notification(BaseModel):
    """In-app notification addressed to one user."""

    id: int
    user_id: int
    title: str
    message: str
    type: str = "info"
    related_id: int | None = None
    related_type: str = ""
    read_at: str | None = None
    created_at: str = ""


class ActiveToggleRequest(BaseModel):
    """Body of user and category status toggles; ``active`` must be a real bool."""

    active: Any = None
