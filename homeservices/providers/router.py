"""FastAPI router for provider verification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from homeservices.api.contracts import (
    ApiErrorResponse,
    DataResponse,
    MessageResponse,
    PendingDocumentsResponse,
)
from homeservices.auth.dependencies import require_admin, require_roles
from homeservices.auth.models import CurrentUser, UserType
from homeservices.providers.models import (
    DeletionRequestBody,
    UploadDocumentsRequest,
    VerifyDocumentRequest,
    VerifyProviderRequest,
)
from homeservices.providers.service import ProviderVerificationService

_ADMIN_ERRORS = {
    400: {"model": ApiErrorResponse},
    401: {"model": ApiErrorResponse},
    403: {"model": ApiErrorResponse},
    404: {"model": ApiErrorResponse},
}

require_provider = require_roles(
    UserType.PROVIDER, message="هذا الإجراء متاح لمقدمي الخدمات فقط"
)


class ProvidersRouter:
    """Factory wrapper that builds provider API router from a service."""

    def __init__(self, service: ProviderVerificationService) -> None:
        self._service = service

    def build(self) -> APIRouter:
        router = APIRouter(tags=["providers"])

        @router.post(
            "/api/admin/verify-provider",
            response_model=MessageResponse,
            responses=_ADMIN_ERRORS,
        )
        def verify_provider(
            req: VerifyProviderRequest,
            admin: CurrentUser = Depends(require_admin),
        ) -> MessageResponse:
            """Approve or reject a provider awaiting verification."""
            return MessageResponse(message=self._service.verify_provider(req, admin=admin))

        @router.post(
            "/api/admin/verify-document",
            response_model=MessageResponse,
            responses=_ADMIN_ERRORS,
        )
        def verify_document(
            req: VerifyDocumentRequest,
            admin: CurrentUser = Depends(require_admin),
        ) -> MessageResponse:
            """Approve or reject a single verification document."""
            return MessageResponse(message=self._service.verify_document(req, admin=admin))

        @router.get(
            "/api/admin/pending-providers",
            response_model=DataResponse,
            responses=_ADMIN_ERRORS,
        )
        def pending_providers(
            _: CurrentUser = Depends(require_admin),
        ) -> DataResponse:
            return DataResponse(data=self._service.list_pending_providers())

        @router.get(
            "/api/admin/provider/{provider_id}/documents",
            response_model=DataResponse,
            responses=_ADMIN_ERRORS,
        )
        def provider_documents(
            provider_id: int,
            _: CurrentUser = Depends(require_admin),
        ) -> DataResponse:
            documents = self._service.provider_documents(provider_id)
            return DataResponse(data=[doc.model_dump(mode="json") for doc in documents])

        @router.get(
            "/api/admin/documents/pending-count",
            response_model=PendingDocumentsResponse,
            responses=_ADMIN_ERRORS,
        )
        def pending_documents_count(
            _: CurrentUser = Depends(require_admin),
        ) -> PendingDocumentsResponse:
            return PendingDocumentsResponse(
                pending_documents=self._service.pending_documents_count()
            )

        @router.get(
            "/api/admin/documents/pending-list",
            response_model=PendingDocumentsResponse,
            responses=_ADMIN_ERRORS,
        )
        def pending_documents_list(
            _: CurrentUser = Depends(require_admin),
        ) -> PendingDocumentsResponse:
            rows = self._service.pending_documents()
            return PendingDocumentsResponse(pending_documents=rows, count=len(rows))

        @router.post(
            "/api/provider/documents",
            response_model=DataResponse,
            responses=_ADMIN_ERRORS,
        )
        def upload_documents(
            req: UploadDocumentsRequest,
            user: CurrentUser = Depends(require_provider),
        ) -> DataResponse:
            """Register metadata of documents submitted for verification."""
            created = self._service.upload_documents(user, req)
            return DataResponse(data=[doc.model_dump(mode="json") for doc in created])

        @router.get(
            "/api/provider/documents",
            response_model=DataResponse,
            responses=_ADMIN_ERRORS,
        )
        def my_documents(user: CurrentUser = Depends(require_provider)) -> DataResponse:
            documents = self._service.my_documents(user)
            return DataResponse(data=[doc.model_dump(mode="json") for doc in documents])

        @router.get(
            "/api/profile/documents",
            response_model=DataResponse,
            responses=_ADMIN_ERRORS,
        )
        def profile_documents(user: CurrentUser = Depends(require_provider)) -> DataResponse:
            """Own documents including the state of any deletion request."""
            documents = self._service.profile_documents(user)
            return DataResponse(data=[doc.model_dump(mode="json") for doc in documents])

        @router.post(
            "/api/profile/documents/{document_id}/request-deletion",
            response_model=MessageResponse,
            responses=_ADMIN_ERRORS,
        )
        def request_document_deletion(
            document_id: int,
            req: DeletionRequestBody,
            user: CurrentUser = Depends(require_provider),
        ) -> MessageResponse:
            return MessageResponse(
                message=self._service.request_document_deletion(
                    user, document_id, req.reason
                )
            )

        @router.get(
            "/api/admin/document-deletions/pending",
            response_model=DataResponse,
            responses=_ADMIN_ERRORS,
        )
        def pending_deletions(_: CurrentUser = Depends(require_admin)) -> DataResponse:
            rows = self._service.pending_deletion_requests()
            return DataResponse(data={"requests": rows, "count": len(rows)})

        @router.post(
            "/api/admin/documents/{document_id}/deletion/approve",
            response_model=MessageResponse,
            responses=_ADMIN_ERRORS,
        )
        def approve_deletion(
            document_id: int,
            admin: CurrentUser = Depends(require_admin),
        ) -> MessageResponse:
            """Delete the document and close its pending deletion request."""
            return MessageResponse(
                message=self._service.approve_document_deletion(document_id, admin=admin)
            )

        @router.post(
            "/api/admin/documents/{document_id}/deletion/reject",
            response_model=MessageResponse,
            responses=_ADMIN_ERRORS,
        )
        def reject_deletion(
            document_id: int,
            admin: CurrentUser = Depends(require_admin),
        ) -> MessageResponse:
            return MessageResponse(
                message=self._service.reject_document_deletion(document_id, admin=admin)
            )

        @router.get("/api/providers", response_model=DataResponse)
        def public_providers(
            category_id: int | None = Query(default=None, alias="category_id"),
            city: str = Query(default="", alias="city"),
        ) -> DataResponse:
            """List verified providers for public browsing."""
            return DataResponse(
                data=self._service.list_public_providers(category_id=category_id, city=city)
            )

        return router


def create_providers_router(service: ProviderVerificationService) -> APIRouter:
    """Create provider router using provided verification service."""
    return ProvidersRouter(service=service).build()
