"""Service request lifecycle between customers and providers."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.auth.models import CurrentUser, UserType
from homeservices.providers.models import ProviderProfile, VerificationStatus
from homeservices.service_requests.models import (
    CreateServiceRequest,
    RequestStatus,
    ServiceRequest,
)
from homeservices.storage.repository import MarketplaceRepository

LOGGER = logging.getLogger(__name__)

REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.CANCELLED}),
    RequestStatus.ACCEPTED: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED}),
    RequestStatus.COMPLETED: frozenset({RequestStatus.DISPUTED}),
    RequestStatus.CANCELLED: frozenset(),
    RequestStatus.DISPUTED: frozenset(),
}

_STATUS_TITLES = {
    RequestStatus.ACCEPTED: "تم قبول طلبك",
    RequestStatus.IN_PROGRESS: "بدأ العمل على طلبك",
    RequestStatus.COMPLETED: "تم إكمال طلبك",
    RequestStatus.CANCELLED: "تم إلغاء الطلب",
    RequestStatus.DISPUTED: "تم فتح نزاع على الطلب",
}


def _forbidden(message: str = "غير مصرح لك بتنفيذ هذا الإجراء") -> ApiError:
    return ApiError(status_code=403, error_code=ApiErrorCode.AUTH_FORBIDDEN, message=message)


def count_statuses(items: Iterable[ServiceRequest]) -> dict[str, int]:
    counts = {str(status): 0 for status in RequestStatus}
    for item in items:
        counts[str(item.status)] += 1
    return counts


def describe_request(repo: MarketplaceRepository, item: ServiceRequest) -> dict[str, Any]:
    """Request fields plus the category and party names shown in listings."""
    category = repo.get_category(item.category_id)
    customer = repo.get_user(item.customer_id)
    provider = profile = None
    if item.assigned_provider_id is not None:
        provider = repo.get_user(item.assigned_provider_id)
        profile = repo.get_provider_by_user(item.assigned_provider_id)
    return {
        **item.model_dump(mode="json"),
        "category_name": category.name_ar if category else "",
        "customer_name": customer.name if customer else "",
        "customer_city": customer.city if customer else "",
        "provider_name": provider.name if provider else "",
        "provider_business_name": profile.business_name if profile else "",
    }


def _urgent_first(items: Iterable[ServiceRequest]) -> list[ServiceRequest]:
    newest = sorted(items, key=lambda item: item.created_at, reverse=True)
    return sorted(newest, key=lambda item: item.emergency, reverse=True)


class ServiceRequestService:
    """Create service requests and move them through their lifecycle."""

    def __init__(self, repo: MarketplaceRepository) -> None:
        self._repo = repo

    def create(self, user: CurrentUser, req: CreateServiceRequest) -> ServiceRequest:
        category = self._repo.get_category(req.category_id)
        if category is None or not category.active:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.CATEGORY_NOT_FOUND,
                message="فئة الخدمة غير موجودة",
            )
        if (
            req.budget_min is not None
            and req.budget_max is not None
            and req.budget_min > req.budget_max
        ):
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="الحد الأدنى للميزانية أكبر من الحد الأعلى",
            )

        assigned_user_id = None
        if req.provider_id is not None:
            profile = self._repo.get_provider(req.provider_id)
            if (
                profile is None
                or profile.verification_status != VerificationStatus.APPROVED
                or not profile.available
            ):
                raise ApiError(
                    status_code=404,
                    error_code=ApiErrorCode.PROVIDER_NOT_FOUND,
                    message="مقدم الخدمة غير متاح",
                )
            assigned_user_id = profile.user_id

        created = self._repo.create_service_request(
            customer_id=user.id,
            assigned_provider_id=assigned_user_id,
            category_id=category.id,
            title=req.title.strip(),
            description=req.description.strip(),
            location_address=req.location_address.strip(),
            preferred_date=req.preferred_date,
            emergency=req.emergency,
            budget_min=req.budget_min,
            budget_max=req.budget_max,
        )
        if assigned_user_id is not None:
            self._repo.add_notification(
                user_id=assigned_user_id,
                title="طلب خدمة جديد",
                message=f"لديك طلب خدمة جديد: {created.title}",
                type="info",
                related_id=created.id,
                related_type="service_request",
            )
        LOGGER.info(
            "service_request_created",
            extra={"service_request_id": created.id, "user_id": user.id},
        )
        return created

    def list_for(self, user: CurrentUser) -> list[ServiceRequest]:
        """Requests visible to ``user``.

        Providers also see unassigned pending requests in their categories.
        """
        if user.user_type == UserType.ADMIN:
            return self._repo.list_service_requests()
        if user.user_type == UserType.CUSTOMER:
            return self._repo.list_service_requests(customer_id=user.id)

        own = self._repo.list_service_requests(provider_id=user.id)
        profile = self._repo.get_provider_by_user(user.id)
        if profile is None or profile.verification_status != VerificationStatus.APPROVED:
            return own
        seen = {item.id for item in own}
        open_market = [item for item in self._open_market(user.id, profile) if item.id not in seen]
        return sorted(own + open_market, key=lambda item: item.created_at, reverse=True)

    def available_for(self, user: CurrentUser) -> list[dict[str, Any]]:
        """Pending requests a verified provider can pick up, emergencies first."""
        profile = self._repo.get_provider_by_user(user.id)
        if profile is None or profile.verification_status != VerificationStatus.APPROVED:
            raise _forbidden("يجب التحقق من حسابك أولاً لعرض الطلبات")
        return [
            describe_request(self._repo, item)
            for item in _urgent_first(self._open_market(user.id, profile))
        ]

    def customer_dashboard(self, user: CurrentUser) -> dict[str, Any]:
        requests = self._repo.list_service_requests(customer_id=user.id)
        counts = count_statuses(requests)
        return {
            "stats": {
                "total_requests": len(requests),
                **{f"{status}_requests": count for status, count in counts.items()},
            },
            "recent_requests": [describe_request(self._repo, item) for item in requests[:10]],
        }

    def provider_dashboard(self, user: CurrentUser) -> dict[str, Any]:
        """Job counters, recent open requests and recent completed jobs."""
        profile = self._repo.get_provider_by_user(user.id)
        if profile is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.PROVIDER_NOT_FOUND,
                message="الملف الشخصي لمقدم الخدمة غير موجود",
            )
        jobs = self._repo.list_service_requests(provider_id=user.id)
        counts = count_statuses(jobs)
        available: list[ServiceRequest] = []
        if profile.verification_status == VerificationStatus.APPROVED:
            available = _urgent_first(self._open_market(user.id, profile))
        completed = [item for item in jobs if item.status == RequestStatus.COMPLETED]
        return {
            "profile": {
                "id": profile.id,
                "business_name": profile.business_name,
                "verification_status": str(profile.verification_status),
                "available": profile.available,
            },
            "stats": {
                "total_jobs": len(jobs),
                **{f"{status}_jobs": count for status, count in counts.items()},
                "available_requests": len(available),
            },
            "recent_requests": [describe_request(self._repo, item) for item in available[:10]],
            "recent_jobs": [describe_request(self._repo, item) for item in completed[:5]],
        }

    def _open_market(self, user_id: int, profile: ProviderProfile) -> list[ServiceRequest]:
        """Pending requests in the provider's categories, unassigned or addressed to them."""
        if not profile.category_ids:
            return []
        return [
            item
            for item in self._repo.list_service_requests(statuses=[RequestStatus.PENDING])
            if item.category_id in profile.category_ids
            and item.assigned_provider_id in (None, user_id)
            and item.customer_id != user_id
        ]

    def update_status(
        self, user: CurrentUser, request_id: int, target: RequestStatus
    ) -> ServiceRequest:
        item = self._repo.get_service_request(request_id)
        if item is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.SERVICE_REQUEST_NOT_FOUND,
                message="الطلب غير موجود",
            )
        if target not in REQUEST_TRANSITIONS[item.status]:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.INVALID_STATUS_TRANSITION,
                message="لا يمكن تغيير حالة الطلب بهذا الشكل",
            )

        changes: dict[str, object] = {"status": target}
        if target == RequestStatus.ACCEPTED:
            self._ensure_can_accept(user, item)
            changes["assigned_provider_id"] = user.id
        elif target in (RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED):
            if user.id != item.assigned_provider_id:
                raise _forbidden()
        elif target == RequestStatus.DISPUTED:
            if user.id != item.customer_id:
                raise _forbidden()
        elif target == RequestStatus.CANCELLED:
            parties = {item.customer_id, item.assigned_provider_id}
            if user.id not in parties and user.user_type != UserType.ADMIN:
                raise _forbidden()

        updated = self._repo.update_service_request(item.id, changes)
        if updated is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.SERVICE_REQUEST_NOT_FOUND,
                message="الطلب غير موجود",
            )
        self._notify_counterpart(user, updated)
        LOGGER.info(
            "service_request_status_changed",
            extra={"service_request_id": updated.id, "user_id": user.id},
        )
        return updated

    def _ensure_can_accept(self, user: CurrentUser, item: ServiceRequest) -> None:
        if user.user_type != UserType.PROVIDER:
            raise _forbidden()
        if item.assigned_provider_id not in (None, user.id):
            raise _forbidden("هذا الطلب مسند لمقدم خدمة آخر")
        owner = self._repo.get_user(user.id)
        profile = self._repo.get_provider_by_user(user.id)
        if (
            owner is None
            or not owner.active
            or not owner.verified
            or profile is None
            or not profile.available
        ):
            raise _forbidden("يجب التحقق من حسابك قبل قبول الطلبات")

    def _notify_counterpart(self, actor: CurrentUser, item: ServiceRequest) -> None:
        recipient = (
            item.assigned_provider_id if actor.id == item.customer_id else item.customer_id
        )
        if recipient is None or recipient == actor.id:
            return
        self._repo.add_notification(
            user_id=recipient,
            title=_STATUS_TITLES.get(item.status, "تحديث على الطلب"),
            message=f"تم تحديث حالة الطلب \"{item.title}\"",
            type="info",
            related_id=item.id,
            related_type="service_request",
        )
