"""FastAPI router for service requests and the public category catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from homeservices.api.contracts import ApiErrorResponse, DataResponse
from homeservices.auth.dependencies import current_user, require_roles
from homeservices.auth.models import CurrentUser, UserType
from homeservices.service_requests.models import CreateServiceRequest, UpdateRequestStatus
from homeservices.service_requests.service import ServiceRequestService
from homeservices.storage.repository import MarketplaceRepository

_ERRORS = {
    400: {"model": ApiErrorResponse},
    401: {"model": ApiErrorResponse},
    403: {"model": ApiErrorResponse},
    404: {"model": ApiErrorResponse},
}

require_customer = require_roles(UserType.CUSTOMER)
require_provider = require_roles(UserType.PROVIDER)


def create_service_requests_router(
    service: ServiceRequestService, repo: MarketplaceRepository
) -> APIRouter:
    """Build router for request lifecycle endpoints."""
    router = APIRouter(tags=["requests"])

    @router.get("/api/categories", response_model=DataResponse)
    def list_categories() -> DataResponse:
        """Active service categories for browsing."""
        categories = repo.list_categories(active_only=True)
        return DataResponse(data=[item.model_dump(mode="json") for item in categories])

    @router.post("/api/requests", response_model=DataResponse, responses=_ERRORS)
    def create_request(
        req: CreateServiceRequest,
        user: CurrentUser = Depends(require_customer),
    ) -> DataResponse:
        created = service.create(user, req)
        return DataResponse(data=created.model_dump(mode="json"))

    @router.get("/api/requests", response_model=DataResponse, responses=_ERRORS)
    def list_requests(user: CurrentUser = Depends(current_user)) -> DataResponse:
        items = service.list_for(user)
        return DataResponse(data=[item.model_dump(mode="json") for item in items])

    @router.get("/api/requests/available", response_model=DataResponse, responses=_ERRORS)
    def available_requests(
        user: CurrentUser = Depends(
            require_roles(
                UserType.PROVIDER,
                message="يمكن لمقدمي الخدمات فقط عرض الطلبات المتاحة",
            )
        ),
    ) -> DataResponse:
        """Open requests in the provider's categories."""
        return DataResponse(data=service.available_for(user))

    @router.get("/api/dashboard/customer", response_model=DataResponse, responses=_ERRORS)
    def customer_dashboard(user: CurrentUser = Depends(require_customer)) -> DataResponse:
        return DataResponse(data=service.customer_dashboard(user))

    @router.get("/api/dashboard/provider", response_model=DataResponse, responses=_ERRORS)
    def provider_dashboard(user: CurrentUser = Depends(require_provider)) -> DataResponse:
        return DataResponse(data=service.provider_dashboard(user))

    @router.post(
        "/api/requests/{request_id}/status", response_model=DataResponse, responses=_ERRORS
    )
    def update_status(
        request_id: int,
        req: UpdateRequestStatus,
        user: CurrentUser = Depends(current_user),
    ) -> DataResponse:
        """Move a request to its next lifecycle status."""
        updated = service.update_status(user, request_id, req.status)
        return DataResponse(data=updated.model_dump(mode="json"))

    return router
