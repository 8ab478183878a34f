"""Pydantic models for provider profiles and verification documents."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class VerificationStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DeletionStatus(StrEnum):
    """State of a provider's request to remove one of their documents."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(StrEnum):
    NATIONAL_ID = "national_id"
    BUSINESS_LICENSE = "business_license"
    PORTFOLIO = "portfolio"


class ProviderProfile(BaseModel):
    """Provider business profile carrying the verification state."""

    id: int
    user_id: int
    business_name: str = ""
    national_id: str = ""
    business_license: str = ""
    description: str = ""
    specialization: str = ""
    experience_years: int = 0
    coverage_areas: list[str] = Field(default_factory=list)
    minimum_charge: float = 25.0
    category_ids: list[int] = Field(default_factory=list)
    work_hours_start: str | None = None
    work_hours_end: str | None = None
    work_days: list[str] = Field(default_factory=list)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verification_notes: str | None = None
    verification_date: str | None = None
    available: bool = True
    documents_uploaded: bool = False
    created_at: str = ""
    updated_at: str = ""


class ProviderDocument(BaseModel):
    """Metadata of a document submitted for provider verification."""

    id: int
    provider_id: int
    document_type: DocumentType
    document_name: str
    file_size: int = 0
    mime_type: str = ""
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verification_notes: str | None = None
    uploaded_at: str = ""
    verified_at: str | None = None
    deletion_status: DeletionStatus | None = None
    deletion_reason: str | None = None
    deletion_requested_at: str | None = None


class VerifyProviderRequest(BaseModel):
    provider_id: int | None = None
    action: str = ""
    notes: str | None = None


class VerifyDocumentRequest(BaseModel):
    document_id: int | None = None
    status: str = ""
    notes: str | None = None


class DocumentUpload(BaseModel):
    """One uploaded file described by its metadata."""

    document_type: DocumentType
    document_name: str = Field(min_length=1, max_length=255)
    file_size: int = Field(default=0, ge=0)
    mime_type: str = ""


class UploadDocumentsRequest(BaseModel):
    documents: list[DocumentUpload] = Field(default_factory=list)


class DeletionRequestBody(BaseModel):
    reason: str = ""
