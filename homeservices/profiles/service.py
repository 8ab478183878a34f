"""Own-profile view and update for customers and providers."""

from __future__ import annotations

import logging
import re
from typing import Any

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.auth.models import AuthUser, CurrentUser, UserType
from homeservices.auth.validators import sanitize_input, validate_jordanian_phone
from homeservices.profiles.models import ProfileUpdateRequest
from homeservices.service_requests.service import count_statuses
from homeservices.storage.repository import MarketplaceRepository

LOGGER = logging.getLogger(__name__)

DEFAULT_BUSINESS_NAME = "خدمات منزلية"

_PROVIDER_TEXT_FIELDS = (
    "business_name",
    "description",
    "business_license",
    "national_id",
    "specialization",
)


def _bad_request(message: str) -> ApiError:
    return ApiError(
        status_code=400,
        error_code=ApiErrorCode.VALIDATION_ERROR,
        message=message,
    )


class ProfileService:
    """Reads and edits the signed-in user's own account and business profile."""

    def __init__(self, repo: MarketplaceRepository) -> None:
        self._repo = repo

    def get_profile(self, user: CurrentUser) -> dict[str, Any]:
        record = self._user_or_404(user.id)
        if record.user_type == UserType.CUSTOMER:
            requests = self._repo.list_service_requests(customer_id=record.id)
            counts = count_statuses(requests)
            return {
                "profile": record.public_view(),
                "statistics": {
                    "total_requests": len(requests),
                    "completed_requests": counts["completed"],
                    "pending_requests": counts["pending"],
                },
            }
        if record.user_type == UserType.PROVIDER:
            profile = self._repo.get_provider_by_user(record.id)
            jobs = self._repo.list_service_requests(provider_id=record.id)
            counts = count_statuses(jobs)
            services = []
            for category_id in profile.category_ids if profile else []:
                category = self._repo.get_category(category_id)
                if category is not None:
                    services.append(
                        {"id": category.id, "name_ar": category.name_ar, "icon": category.icon}
                    )
            return {
                "profile": record.public_view(),
                "provider_profile": profile.model_dump(mode="json") if profile else None,
                "services": services,
                "statistics": {
                    "total_orders": len(jobs),
                    "completed_orders": counts["completed"],
                },
            }
        return {
            "profile": {
                "id": record.id,
                "name": record.name,
                "email": record.email,
                "user_type": str(record.user_type),
            }
        }

    def update_profile(self, user: CurrentUser, req: ProfileUpdateRequest) -> str:
        """Apply the fields present in ``req``; providers also get business fields.

        A provider without a business profile gets a pending one created.
        """
        record = self._user_or_404(user.id)
        if record.user_type not in (UserType.CUSTOMER, UserType.PROVIDER):
            raise _bad_request("نوع المستخدم غير مدعوم للتحديث")

        sent = req.model_dump(mode="json", exclude_unset=True)
        user_changes = self._user_changes(sent)
        provider_changes = (
            self._provider_changes(sent) if record.user_type == UserType.PROVIDER else {}
        )
        if not user_changes and not provider_changes:
            raise _bad_request("لا توجد بيانات للتحديث")

        if user_changes:
            self._repo.update_user(record.id, user_changes)
        if record.user_type == UserType.PROVIDER:
            profile = self._repo.get_provider_by_user(record.id)
            if profile is None:
                provider_changes.setdefault("business_name", DEFAULT_BUSINESS_NAME)
                self._repo.create_provider_profile(
                    record.id, **provider_changes, available=True
                )
            elif provider_changes:
                self._repo.update_provider(profile.id, provider_changes)

        LOGGER.info("profile_updated", extra={"user_id": record.id})
        return "تم تحديث البيانات بنجاح"

    def _user_changes(self, sent: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if sent.get("phone") is not None:
            phone = re.sub(r"\s", "", sent["phone"])
            if not validate_jordanian_phone(phone):
                raise _bad_request("رقم الهاتف غير صحيح")
            changes["phone"] = phone
        for field in ("city", "address"):
            if sent.get(field) is not None:
                changes[field] = sanitize_input(sent[field])
        for field in ("birth_date", "marital_status"):
            if field in sent:
                changes[field] = sent[field]
        return changes

    def _provider_changes(self, sent: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        for field in _PROVIDER_TEXT_FIELDS:
            if sent.get(field) is not None:
                changes[field] = sanitize_input(sent[field])
        if changes.get("business_name") == "":
            raise _bad_request("اسم النشاط التجاري مطلوب")
        for field in ("experience_years", "minimum_charge"):
            if sent.get(field) is not None:
                changes[field] = sent[field]
        for field in ("work_hours_start", "work_hours_end"):
            if field in sent:
                changes[field] = sent[field]
        if sent.get("coverage_areas") is not None:
            areas = [sanitize_input(area) for area in sent["coverage_areas"]]
            changes["coverage_areas"] = list(dict.fromkeys(area for area in areas if area))
        if sent.get("work_days") is not None:
            changes["work_days"] = list(dict.fromkeys(sent["work_days"]))
        if sent.get("category_ids") is not None:
            category_ids = list(dict.fromkeys(sent["category_ids"]))
            if not category_ids:
                raise _bad_request("يجب اختيار فئة خدمة واحدة على الأقل")
            for category_id in category_ids:
                category = self._repo.get_category(category_id)
                if category is None or not category.active:
                    raise _bad_request("فئة الخدمة غير موجودة")
            changes["category_ids"] = category_ids
        return changes

    def _user_or_404(self, user_id: int) -> AuthUser:
        record = self._repo.get_user(user_id)
        if record is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.USER_NOT_FOUND,
                message="المستخدم غير موجود",
            )
        return record
