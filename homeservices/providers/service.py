"""Provider verification service: admin review, documents and public listing."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.auth.models import CurrentUser, UserType
from homeservices.auth.validators import sanitize_input
from homeservices.providers.models import (
    DeletionStatus,
    ProviderDocument,
    ProviderProfile,
    UploadDocumentsRequest,
    VerificationStatus,
    VerifyDocumentRequest,
    VerifyProviderRequest,
)
from homeservices.providers.workflow import (
    counts_by_status,
    ensure_deletion_transition,
    parse_decision,
)
from homeservices.storage.repository import MarketplaceRepository

LOGGER = logging.getLogger(__name__)

_PROVIDER_DECISION_MESSAGES = {
    VerificationStatus.APPROVED: "تم قبول مقدم الخدمة بنجاح",
    VerificationStatus.REJECTED: "تم رفض مقدم الخدمة",
}
_DOCUMENT_DECISION_MESSAGES = {
    VerificationStatus.APPROVED: "تم قبول الوثيقة",
    VerificationStatus.REJECTED: "تم رفض الوثيقة",
}


def _provider_not_found() -> ApiError:
    return ApiError(
        status_code=404,
        error_code=ApiErrorCode.PROVIDER_NOT_FOUND,
        message="مقدم الخدمة غير موجود",
    )


def _document_not_found() -> ApiError:
    return ApiError(
        status_code=404,
        error_code=ApiErrorCode.DOCUMENT_NOT_FOUND,
        message="الوثيقة غير موجودة",
    )


def _document_changed() -> ApiError:
    return ApiError(
        status_code=400,
        error_code=ApiErrorCode.INVALID_STATUS_TRANSITION,
        message="تغيرت حالة الوثيقة، يرجى تحديث الصفحة والمحاولة مرة أخرى",
    )


class ProviderVerificationService:
    """Drives provider profiles through the verification workflow."""

    def __init__(self, repo: MarketplaceRepository) -> None:
        self._repo = repo

    def verify_provider(self, req: VerifyProviderRequest, *, admin: CurrentUser) -> str:
        """Approve or reject a provider; status and ``verified`` move together.

        Unknown providers and unsupported actions are rejected before anything
        is written.
        """
        if req.provider_id is None:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="معرف مقدم الخدمة والإجراء مطلوبان",
            )
        status = parse_decision(req.action, message="الإجراء غير صحيح")
        profile = self._repo.get_provider(req.provider_id)
        if profile is None:
            raise _provider_not_found()

        notes = (req.notes or "").strip() or None
        result = self._repo.apply_verification_decision(
            profile.id, status=status, notes=notes
        )
        if result is None:
            raise _provider_not_found()
        updated, owner = result

        if status == VerificationStatus.APPROVED:
            title, kind = "تم قبول طلب التحقق", "success"
            text = "تهانينا! تم قبول طلب التحقق الخاص بك ويمكنك الآن استقبال الطلبات"
        else:
            title, kind = "تم رفض طلب التحقق", "warning"
            text = "نأسف، تم رفض طلب التحقق الخاص بك"
            if notes:
                text = f"{text}. السبب: {notes}"
        if owner is not None:
            self._repo.add_notification(
                user_id=owner.id,
                title=title,
                message=text,
                type=kind,
                related_id=updated.id,
                related_type="provider",
            )

        LOGGER.info(
            "provider_verification_decided",
            extra={
                "provider_id": updated.id,
                "user_id": admin.id,
                "verification_status": str(status),
            },
        )
        return _PROVIDER_DECISION_MESSAGES[status]

    def verify_document(self, req: VerifyDocumentRequest, *, admin: CurrentUser) -> str:
        """Decide one document; the provider-level status is left untouched.

        A decided document may be decided again; the latest decision wins.
        """
        if req.document_id is None:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="معرف الوثيقة والحالة مطلوبان",
            )
        status = parse_decision(req.status, message="حالة الوثيقة غير صحيحة")
        document = self._document_or_404(req.document_id)
        self._repo.update_document(
            document.id,
            {
                "verification_status": status,
                "verification_notes": (req.notes or "").strip() or None,
                "verified_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        LOGGER.info(
            "document_verification_decided",
            extra={
                "document_id": document.id,
                "provider_id": document.provider_id,
                "user_id": admin.id,
                "verification_status": str(status),
            },
        )
        return _DOCUMENT_DECISION_MESSAGES[status]

    def list_pending_providers(self) -> list[dict[str, Any]]:
        """Review queue: pending profiles with owner details and document tallies."""
        rows: list[dict[str, Any]] = []
        for profile in self._repo.list_providers(status=VerificationStatus.PENDING):
            owner = self._repo.get_user(profile.user_id)
            documents = self._repo.list_documents(provider_id=profile.id)
            counts = counts_by_status([doc.verification_status for doc in documents])
            rows.append(
                {
                    **profile.model_dump(mode="json"),
                    "name": owner.name if owner else "",
                    "email": owner.email if owner else "",
                    "phone": owner.phone if owner else "",
                    "city": owner.city if owner else "",
                    "total_documents": len(documents),
                    "pending_documents": counts[VerificationStatus.PENDING],
                    "approved_documents": counts[VerificationStatus.APPROVED],
                    "rejected_documents": counts[VerificationStatus.REJECTED],
                }
            )
        return sorted(rows, key=lambda row: row["created_at"])

    def provider_documents(self, provider_id: int) -> list[ProviderDocument]:
        if self._repo.get_provider(provider_id) is None:
            raise _provider_not_found()
        return self._repo.list_documents(provider_id=provider_id)

    def pending_documents_count(self) -> int:
        return len(self._repo.list_documents(status=VerificationStatus.PENDING))

    def pending_documents(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for document in self._repo.list_documents(status=VerificationStatus.PENDING):
            profile = self._repo.get_provider(document.provider_id)
            rows.append(
                {
                    **document.model_dump(mode="json"),
                    "business_name": profile.business_name if profile else "",
                }
            )
        return sorted(rows, key=lambda row: row["uploaded_at"])

    def upload_documents(
        self, user: CurrentUser, req: UploadDocumentsRequest
    ) -> list[ProviderDocument]:
        """Register uploaded document metadata for the caller's profile."""
        profile = self._profile_for(user)
        if not req.documents:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="لم يتم رفع أي وثائق",
            )
        created = [self._repo.create_document(profile.id, upload) for upload in req.documents]
        self._repo.update_provider(profile.id, {"documents_uploaded": True})
        for admin in self._repo.list_users(user_type=UserType.ADMIN):
            self._repo.add_notification(
                user_id=admin.id,
                title="وثائق جديدة للمراجعة",
                message=f"قام {profile.business_name} برفع {len(created)} وثيقة للمراجعة",
                type="info",
                related_id=profile.id,
                related_type="provider",
            )
        LOGGER.info(
            "documents_uploaded",
            extra={"provider_id": profile.id, "user_id": user.id},
        )
        return created

    def my_documents(self, user: CurrentUser) -> list[ProviderDocument]:
        return self._repo.list_documents(provider_id=self._profile_for(user).id)

    def profile_documents(self, user: CurrentUser) -> list[ProviderDocument]:
        """Caller's documents newest first; empty until a profile exists."""
        profile = self._repo.get_provider_by_user(user.id)
        if profile is None:
            return []
        documents = self._repo.list_documents(provider_id=profile.id)
        return sorted(documents, key=lambda doc: (doc.uploaded_at, doc.id), reverse=True)

    def request_document_deletion(
        self, user: CurrentUser, document_id: int, reason: str
    ) -> str:
        """File a deletion request for one of the caller's own documents.

        The document stays in place until an admin approves the request.
        """
        reason = sanitize_input(reason)
        if len(reason) < 3:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="يرجى إدخال سبب مقنع للحذف",
            )
        document = self._repo.get_document(document_id)
        profile = self._repo.get_provider_by_user(user.id)
        if document is None or profile is None or document.provider_id != profile.id:
            raise ApiError(
                status_code=403,
                error_code=ApiErrorCode.AUTH_FORBIDDEN,
                message="لا تملك صلاحية على هذه الوثيقة",
            )
        ensure_deletion_transition(document.deletion_status, DeletionStatus.PENDING)
        updated = self._repo.update_document_where(
            document.id,
            {"deletion_status": document.deletion_status},
            {
                "deletion_status": DeletionStatus.PENDING,
                "deletion_reason": reason,
                "deletion_requested_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        if updated is None:
            raise _document_changed()

        for admin in self._repo.list_users(user_type=UserType.ADMIN):
            self._repo.add_notification(
                user_id=admin.id,
                title="طلب حذف وثيقة",
                message=f'طلب {profile.business_name} حذف الوثيقة "{document.document_name}"',
                type="warning",
                related_id=document.id,
                related_type="document",
            )
        LOGGER.info(
            "document_deletion_requested",
            extra={"document_id": document.id, "provider_id": profile.id, "user_id": user.id},
        )
        return "تم إرسال طلب الحذف إلى الإدارة"

    def pending_deletion_requests(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for document in self._repo.list_documents(deletion_status=DeletionStatus.PENDING):
            profile = self._repo.get_provider(document.provider_id)
            owner = self._repo.get_user(profile.user_id) if profile else None
            rows.append(
                {
                    "document_id": document.id,
                    "document_name": document.document_name,
                    "document_type": str(document.document_type),
                    "file_size": document.file_size,
                    "mime_type": document.mime_type,
                    "deletion_reason": document.deletion_reason,
                    "requested_at": document.deletion_requested_at,
                    "provider_id": document.provider_id,
                    "business_name": profile.business_name if profile else "",
                    "user_id": owner.id if owner else None,
                    "provider_name": owner.name if owner else "",
                    "provider_email": owner.email if owner else "",
                    "provider_phone": owner.phone if owner else "",
                }
            )
        return sorted(rows, key=lambda row: row["requested_at"] or "", reverse=True)

    def approve_document_deletion(self, document_id: int, *, admin: CurrentUser) -> str:
        """Delete a document whose removal was requested by its provider."""
        document = self._document_or_404(document_id)
        ensure_deletion_transition(document.deletion_status, DeletionStatus.APPROVED)
        removed = self._repo.delete_document(
            document.id, expected={"deletion_status": DeletionStatus.PENDING}
        )
        if removed is None:
            raise _document_changed()
        if not self._repo.list_documents(provider_id=removed.provider_id):
            self._repo.update_provider(removed.provider_id, {"documents_uploaded": False})

        self._notify_document_owner(
            removed,
            title="تمت الموافقة على حذف الوثيقة",
            message=f'تم حذف الوثيقة "{removed.document_name}" بناءً على طلبك',
            type="success",
        )
        LOGGER.info(
            "document_deletion_approved",
            extra={
                "document_id": removed.id,
                "provider_id": removed.provider_id,
                "user_id": admin.id,
            },
        )
        return "تمت الموافقة وحذف المستند"

    def reject_document_deletion(self, document_id: int, *, admin: CurrentUser) -> str:
        document = self._document_or_404(document_id)
        ensure_deletion_transition(document.deletion_status, DeletionStatus.REJECTED)
        updated = self._repo.update_document_where(
            document.id,
            {"deletion_status": DeletionStatus.PENDING},
            {"deletion_status": DeletionStatus.REJECTED},
        )
        if updated is None:
            raise _document_changed()

        self._notify_document_owner(
            updated,
            title="تم رفض طلب حذف الوثيقة",
            message=f'تم رفض طلب حذف الوثيقة "{updated.document_name}"',
            type="warning",
        )
        LOGGER.info(
            "document_deletion_rejected",
            extra={
                "document_id": updated.id,
                "provider_id": updated.provider_id,
                "user_id": admin.id,
            },
        )
        return "تم رفض طلب حذف المستند"

    def list_public_providers(
        self, *, category_id: int | None = None, city: str = ""
    ) -> list[dict[str, Any]]:
        """Approved, available providers whose accounts are active."""
        city = city.strip()
        rows: list[dict[str, Any]] = []
        for profile in self._repo.list_providers(
            status=VerificationStatus.APPROVED, available=True
        ):
            owner = self._repo.get_user(profile.user_id)
            if owner is None or not owner.active:
                continue
            if category_id is not None and category_id not in profile.category_ids:
                continue
            if city and owner.city != city and city not in profile.coverage_areas:
                continue
            rows.append(
                {
                    "id": profile.id,
                    "user_id": owner.id,
                    "name": owner.name,
                    "city": owner.city,
                    "business_name": profile.business_name,
                    "description": profile.description,
                    "experience_years": profile.experience_years,
                    "coverage_areas": profile.coverage_areas,
                    "minimum_charge": profile.minimum_charge,
                    "category_ids": profile.category_ids,
                }
            )
        return sorted(rows, key=lambda row: (-row["experience_years"], row["business_name"]))

    def _profile_for(self, user: CurrentUser) -> ProviderProfile:
        profile = self._repo.get_provider_by_user(user.id)
        if profile is None:
            raise _provider_not_found()
        return profile

    def _document_or_404(self, document_id: int) -> ProviderDocument:
        document = self._repo.get_document(document_id)
        if document is None:
            raise _document_not_found()
        return document

    def _notify_document_owner(
        self, document: ProviderDocument, *, title: str, message: str, type: str
    ) -> None:
        profile = self._repo.get_provider(document.provider_id)
        if profile is None:
            return
        self._repo.add_notification(
            user_id=profile.user_id,
            title=title,
            message=message,
            type=type,
            related_id=profile.id,
            related_type="provider",
        )
