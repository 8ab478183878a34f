"""Admin panel service: accounts, requests, catalog and dashboard counters."""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Sequence, TypeVar

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.auth.models import CurrentUser, UserType
from homeservices.providers.models import VerificationStatus
from homeservices.service_requests.models import RequestStatus
from homeservices.service_requests.service import count_statuses, describe_request
from homeservices.storage.repository import MarketplaceRepository

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def paginate(items: Sequence[T], *, page: int, limit: int) -> tuple[list[T], dict[str, int]]:
    """Slice one page out of ``items`` and describe the window."""
    total = len(items)
    start = (page - 1) * limit
    window = list(items[start : start + limit])
    return window, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def _require_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ApiError(
            status_code=400,
            error_code=ApiErrorCode.VALIDATION_ERROR,
            message="حالة التفعيل يجب أن تكون true أو false",
        )
    return value


class AdminService:
    """Administrative operations over the marketplace repository."""

    def __init__(self, repo: MarketplaceRepository) -> None:
        self._repo = repo

    def list_users(
        self, *, page: int, limit: int, user_type: str = "", search: str = ""
    ) -> tuple[list[dict[str, Any]], dict[str, int]]:
        if user_type and user_type not in {str(item) for item in UserType}:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="نوع المستخدم غير صحيح",
            )
        users = self._repo.list_users(user_type=user_type, search=search)
        window, pagination = paginate(users, page=page, limit=limit)
        return [user.public_view() for user in window], pagination

    def set_user_active(self, user_id: int, active: Any, *, admin: CurrentUser) -> str:
        """Toggle an account; deactivating a provider cascades to its open work.

        The cascade marks the provider profile unavailable, cancels and
        unassigns its pending, accepted and in-progress requests, and tells
        each affected customer.
        """
        active = _require_bool(active)
        if user_id == admin.id and not active:
            raise ApiError(
                status_code=400,
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="لا يمكنك إلغاء تفعيل حسابك الخاص",
            )
        user = self._repo.get_user(user_id)
        if user is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.USER_NOT_FOUND,
                message="المستخدم غير موجود",
            )

        self._repo.update_user(user_id, {"active": active})
        verb = "تفعيل" if active else "إلغاء تفعيل"
        message = f"تم {verb} المستخدم {user.name} بنجاح"
        LOGGER.info(
            "user_activated" if active else "user_deactivated",
            extra={"user_id": user_id},
        )

        if active or user.user_type != UserType.PROVIDER:
            return message

        self._repo.update_provider_by_user(user_id, {"available": False})
        cancelled = self._repo.cancel_open_requests_for_provider(user_id)
        for item in cancelled:
            self._repo.add_notification(
                user_id=item.customer_id,
                title="تم إلغاء طلبك",
                message=(
                    f'تم إلغاء طلب "{item.title}" بسبب إيقاف مقدم الخدمة. '
                    "يمكنك إعادة نشر الطلب لمقدم خدمة آخر"
                ),
                type="warning",
                related_id=item.id,
                related_type="service_request",
            )
        LOGGER.info(
            "provider_deactivation_cascade",
            extra={"user_id": user_id, "cancelled_requests": len(cancelled)},
        )
        return f"{message}. تم إلغاء {len(cancelled)} طلب مفتوح لمقدم الخدمة"

    def list_requests(
        self, *, page: int, limit: int, status: str = ""
    ) -> tuple[list[dict[str, Any]], dict[str, int]]:
        statuses = None
        if status:
            try:
                statuses = [RequestStatus(status)]
            except ValueError as exc:
                raise ApiError(
                    status_code=400,
                    error_code=ApiErrorCode.VALIDATION_ERROR,
                    message="حالة الطلب غير صحيحة",
                ) from exc
        requests = self._repo.list_service_requests(statuses=statuses)
        window, pagination = paginate(requests, page=page, limit=limit)
        return [describe_request(self._repo, item) for item in window], pagination

    def user_details(self, user_id: int) -> dict[str, Any]:
        """One account with its provider profile, requests, documents and counters."""
        user = self._repo.get_user(user_id)
        if user is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.USER_NOT_FOUND,
                message="المستخدم غير موجود",
            )
        details: dict[str, Any] = {
            "user": user.public_view(),
            "provider_profile": None,
            "categories": [],
            "requests": [],
            "documents": [],
            "statistics": {},
        }

        if user.user_type == UserType.PROVIDER:
            profile = self._repo.get_provider_by_user(user.id)
            if profile is None:
                return details
            jobs = self._repo.list_service_requests(provider_id=user.id)
            documents = self._repo.list_documents(provider_id=profile.id)
            counts = count_statuses(jobs)
            details.update(
                provider_profile=profile.model_dump(mode="json"),
                categories=[
                    {"id": category.id, "name_ar": category.name_ar, "icon": category.icon}
                    for category in map(self._repo.get_category, profile.category_ids)
                    if category is not None
                ],
                requests=[describe_request(self._repo, item) for item in jobs[:10]],
                documents=[
                    doc.model_dump(mode="json")
                    for doc in sorted(documents, key=lambda d: (d.uploaded_at, d.id), reverse=True)
                ],
                statistics={
                    "total_jobs": len(jobs),
                    "completed_jobs": counts[RequestStatus.COMPLETED],
                    "active_jobs": counts[RequestStatus.ACCEPTED]
                    + counts[RequestStatus.IN_PROGRESS],
                    "cancelled_jobs": counts[RequestStatus.CANCELLED],
                    "total_documents": len(documents),
                },
            )
        elif user.user_type == UserType.CUSTOMER:
            requests = self._repo.list_service_requests(customer_id=user.id)
            counts = count_statuses(requests)
            details.update(
                requests=[describe_request(self._repo, item) for item in requests[:20]],
                statistics={
                    "total_requests": len(requests),
                    "completed_requests": counts[RequestStatus.COMPLETED],
                    "pending_requests": counts[RequestStatus.PENDING],
                    "cancelled_requests": counts[RequestStatus.CANCELLED],
                },
            )
        return details

    def user_documents(self, user_id: int) -> list[dict[str, Any]]:
        profile = self._repo.get_provider_by_user(user_id)
        if profile is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.PROVIDER_NOT_FOUND,
                message="المستخدم ليس مقدم خدمة أو لا يوجد ملف شخصي",
            )
        documents = self._repo.list_documents(provider_id=profile.id)
        return [
            doc.model_dump(mode="json")
            for doc in sorted(documents, key=lambda d: (d.uploaded_at, d.id), reverse=True)
        ]

    def list_categories(self) -> list[dict[str, Any]]:
        return [category.model_dump(mode="json") for category in self._repo.list_categories()]

    def set_category_active(self, category_id: int, active: Any) -> str:
        active = _require_bool(active)
        category = self._repo.update_category(category_id, {"active": active})
        if category is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.CATEGORY_NOT_FOUND,
                message="الفئة غير موجودة",
            )
        verb = "تفعيل" if active else "إلغاء تفعيل"
        return f"تم {verb} الفئة {category.name_ar} بنجاح"

    def statistics(self) -> dict[str, Any]:
        users = self._repo.list_users()
        providers = self._repo.list_providers()
        requests = self._repo.list_service_requests()
        user_types = Counter(str(user.user_type) for user in users)
        provider_statuses = Counter(str(p.verification_status) for p in providers)
        request_statuses = Counter(str(item.status) for item in requests)
        return {
            "users": {
                "total": len(users),
                "active": sum(1 for user in users if user.active),
                **{str(kind): user_types.get(str(kind), 0) for kind in UserType},
            },
            "providers": {
                "total": len(providers),
                **{
                    str(status): provider_statuses.get(str(status), 0)
                    for status in VerificationStatus
                },
            },
            "requests": {
                "total": len(requests),
                **{
                    str(status): request_statuses.get(str(status), 0)
                    for status in RequestStatus
                },
            },
            "pending_documents": len(
                self._repo.list_documents(status=VerificationStatus.PENDING)
            ),
            "active_categories": len(self._repo.list_categories(active_only=True)),
        }
