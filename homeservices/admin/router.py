"""FastAPI routers for the admin panel and the public catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from homeservices.admin.models import ActiveToggleRequest
from homeservices.admin.service import AdminService
from homeservices.api.contracts import (
    ApiErrorResponse,
    DataResponse,
    MessageResponse,
    RequestsPageResponse,
    UsersPageResponse,
)
from homeservices.auth.dependencies import require_admin
from homeservices.auth.models import CurrentUser

_ADMIN_ERRORS = {
    400: {"model": ApiErrorResponse},
    401: {"model": ApiErrorResponse},
    403: {"model": ApiErrorResponse},
    404: {"model": ApiErrorResponse},
}


def create_admin_router(service: AdminService) -> APIRouter:
    """Build admin router; every route requires the admin role."""
    router = APIRouter(tags=["admin"])

    @router.get("/api/admin/users", response_model=UsersPageResponse, responses=_ADMIN_ERRORS)
    def list_users(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=100),
        user_type: str = Query(default=""),
        search: str = Query(default="", max_length=100),
        _: CurrentUser = Depends(require_admin),
    ) -> UsersPageResponse:
        users, pagination = service.list_users(
            page=page, limit=limit, user_type=user_type, search=search
        )
        return UsersPageResponse(users=users, pagination=pagination)

    @router.post(
        "/api/admin/users/{user_id}/status",
        response_model=MessageResponse,
        responses=_ADMIN_ERRORS,
    )
    def set_user_status(
        user_id: int,
        req: ActiveToggleRequest,
        admin: CurrentUser = Depends(require_admin),
    ) -> MessageResponse:
        """Activate or deactivate an account, cascading provider deactivation."""
        return MessageResponse(
            message=service.set_user_active(user_id, req.active, admin=admin)
        )

    @router.get(
        "/api/admin/users/{user_id}/details",
        response_model=DataResponse,
        responses=_ADMIN_ERRORS,
    )
    def user_details(user_id: int, _: CurrentUser = Depends(require_admin)) -> DataResponse:
        """Account drill-down for the admin panel."""
        return DataResponse(data=service.user_details(user_id))

    @router.get(
        "/api/admin/users/{user_id}/documents",
        response_model=DataResponse,
        responses=_ADMIN_ERRORS,
    )
    def user_documents(user_id: int, _: CurrentUser = Depends(require_admin)) -> DataResponse:
        return DataResponse(data=service.user_documents(user_id))

    @router.get(
        "/api/admin/requests", response_model=RequestsPageResponse, responses=_ADMIN_ERRORS
    )
    def list_requests(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=100),
        status: str = Query(default=""),
        _: CurrentUser = Depends(require_admin),
    ) -> RequestsPageResponse:
        requests, pagination = service.list_requests(page=page, limit=limit, status=status)
        return RequestsPageResponse(requests=requests, pagination=pagination)

    @router.get("/api/admin/categories", response_model=DataResponse, responses=_ADMIN_ERRORS)
    def list_categories(_: CurrentUser = Depends(require_admin)) -> DataResponse:
        return DataResponse(data=service.list_categories())

    @router.post(
        "/api/admin/categories/{category_id}/status",
        response_model=MessageResponse,
        responses=_ADMIN_ERRORS,
    )
    def set_category_status(
        category_id: int,
        req: ActiveToggleRequest,
        _: CurrentUser = Depends(require_admin),
    ) -> MessageResponse:
        return MessageResponse(message=service.set_category_active(category_id, req.active))

    @router.get("/api/admin/statistics", response_model=DataResponse, responses=_ADMIN_ERRORS)
    def statistics(_: CurrentUser = Depends(require_admin)) -> DataResponse:
        """Dashboard counters."""
        return DataResponse(data=service.statistics())

    return router
