"""FastAPI router for the signed-in user's profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from homeservices.api.contracts import ApiErrorResponse, DataResponse, MessageResponse
from homeservices.auth.dependencies import current_user
from homeservices.auth.models import CurrentUser
from homeservices.profiles.models import ProfileUpdateRequest
from homeservices.profiles.service import ProfileService

_ERRORS = {
    400: {"model": ApiErrorResponse},
    401: {"model": ApiErrorResponse},
    404: {"model": ApiErrorResponse},
}


def create_profile_router(service: ProfileService) -> APIRouter:
    router = APIRouter(tags=["profile"])

    @router.get("/api/profile", response_model=DataResponse, responses=_ERRORS)
    def get_profile(user: CurrentUser = Depends(current_user)) -> DataResponse:
        """Own account, business profile and counters."""
        return DataResponse(data=service.get_profile(user))

    @router.post("/api/profile/update", response_model=MessageResponse, responses=_ERRORS)
    def update_profile(
        req: ProfileUpdateRequest,
        user: CurrentUser = Depends(current_user),
    ) -> MessageResponse:
        return MessageResponse(message=service.update_profile(user, req))

    return router
