from __future__ import annotations

from pathlib import Path

import pytest

from homeservices.admin.service import AdminService, paginate
from homeservices.api.errors import ApiError
from homeservices.auth.models import CurrentUser, UserType
from homeservices.providers.models import DocumentType, DocumentUpload, VerificationStatus
from homeservices.service_requests.models import RequestStatus
from homeservices.storage.repository import MarketplaceRepository
from tests.factories import add_provider, add_user, make_repo


def _admin(repo: MarketplaceRepository) -> CurrentUser:
    user = add_user(repo, "admin@example.com", user_type=UserType.ADMIN)
    return CurrentUser(
        id=user.id, email=user.email, name=user.name, user_type=user.user_type, verified=True
    )


def _request(repo: MarketplaceRepository, customer_id: int, provider_user_id: int | None, status):
    created = repo.create_service_request(
        customer_id=customer_id,
        assigned_provider_id=provider_user_id,
        category_id=1,
        title=f"job {status}",
    )
    return repo.update_service_request(created.id, {"status": status})


def test_deactivating_provider_cancels_and_unassigns_open_requests(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    admin = _admin(repo)
    customer = add_user(repo, "c@example.com")
    provider, profile = add_provider(repo, "p@example.com", status=VerificationStatus.APPROVED)
    pending = _request(repo, customer.id, provider.id, RequestStatus.PENDING)
    accepted = _request(repo, customer.id, provider.id, RequestStatus.ACCEPTED)
    running = _request(repo, customer.id, provider.id, RequestStatus.IN_PROGRESS)
    completed = _request(repo, customer.id, provider.id, RequestStatus.COMPLETED)

    message = AdminService(repo).set_user_active(provider.id, False, admin=admin)

    for item in (pending, accepted, running):
        stored = repo.get_service_request(item.id)
        assert stored.status == RequestStatus.CANCELLED
        assert stored.assigned_provider_id is None
    done = repo.get_service_request(completed.id)
    assert done.status == RequestStatus.COMPLETED
    assert done.assigned_provider_id == provider.id
    assert repo.get_user(provider.id).active is False
    assert repo.get_provider(profile.id).available is False
    assert len(repo.list_notifications(customer.id)) == 3
    assert "3" in message


def test_reactivation_flips_only_active(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    admin = _admin(repo)
    customer = add_user(repo, "c@example.com")
    provider, profile = add_provider(repo, "p@example.com", status=VerificationStatus.APPROVED)
    service = AdminService(repo)
    service.set_user_active(provider.id, False, admin=admin)
    cancelled = _request(repo, customer.id, None, RequestStatus.CANCELLED)

    service.set_user_active(provider.id, True, admin=admin)

    assert repo.get_user(provider.id).active is True
    assert repo.get_user(provider.id).verified is True
    assert repo.get_provider(profile.id).available is False
    assert repo.get_service_request(cancelled.id).status == RequestStatus.CANCELLED


def test_deactivating_customer_has_no_cascade(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    admin = _admin(repo)
    customer = add_user(repo, "c@example.com")
    provider, _ = add_provider(repo, "p@example.com", status=VerificationStatus.APPROVED)
    open_request = _request(repo, customer.id, provider.id, RequestStatus.ACCEPTED)

    message = AdminService(repo).set_user_active(customer.id, False, admin=admin)

    assert message == f"تم إلغاء تفعيل المستخدم {customer.name} بنجاح"
    assert repo.get_service_request(open_request.id).status == RequestStatus.ACCEPTED


def test_admin_cannot_deactivate_self(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    admin = _admin(repo)

    with pytest.raises(ApiError) as exc:
        AdminService(repo).set_user_active(admin.id, False, admin=admin)

    assert exc.value.status_code == 400
    assert repo.get_user(admin.id).active is True


@pytest.mark.parametrize("value", ["false", 0, None, 1])
def test_active_flag_must_be_boolean(tmp_path: Path, value) -> None:
    repo = make_repo(tmp_path)
    admin = _admin(repo)
    customer = add_user(repo, "c@example.com")

    with pytest.raises(ApiError) as exc:
        AdminService(repo).set_user_active(customer.id, value, admin=admin)

    assert exc.value.status_code == 400


def test_unknown_user_is_404(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    admin = _admin(repo)

    with pytest.raises(ApiError) as exc:
        AdminService(repo).set_user_active(404, False, admin=admin)

    assert exc.value.status_code == 404
    assert exc.value.error_code == "USER_NOT_FOUND"


def test_list_users_paginates_and_filters(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    _admin(repo)
    for index in range(5):
        add_user(repo, f"c{index}@example.com")

    users, pagination = AdminService(repo).list_users(page=2, limit=2, user_type="customer")

    assert pagination == {"page": 2, "limit": 2, "total": 5, "pages": 3}
    assert len(users) == 2
    assert all("password_hash" not in user for user in users)

    found, _ = AdminService(repo).list_users(page=1, limit=20, search="c3@")
    assert [user["email"] for user in found] == ["c3@example.com"]


def test_list_requests_rejects_unknown_status(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)

    with pytest.raises(ApiError) as exc:
        AdminService(repo).list_requests(page=1, limit=10, status="lost")

    assert exc.value.status_code == 400


def test_category_toggle_and_statistics(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    repo.seed_categories([{"name_ar": "السباكة", "name_en": "Plumbing", "sort_order": 1}])
    _admin(repo)
    add_provider(repo, "p@example.com")
    service = AdminService(repo)

    service.set_category_active(1, False)
    stats = service.statistics()

    assert repo.list_categories(active_only=True) == []
    assert stats["users"]["total"] == 2
    assert stats["users"]["provider"] == 1
    assert stats["providers"]["pending"] == 1
    assert stats["active_categories"] == 0
    with pytest.raises(ApiError):
        service.set_category_active(99, True)


def test_paginate_empty() -> None:
    assert paginate([], page=1, limit=10) == ([], {"page": 1, "limit": 10, "total": 0, "pages": 0})


def test_user_details_for_provider_counts_jobs_and_documents(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    repo.seed_categories([{"name_ar": "السباكة", "name_en": "Plumbing", "sort_order": 1}])
    customer = add_user(repo, "c@example.com")
    provider, profile = add_provider(repo, "p@example.com", status=VerificationStatus.APPROVED)
    _request(repo, customer.id, provider.id, RequestStatus.COMPLETED)
    _request(repo, customer.id, provider.id, RequestStatus.ACCEPTED)
    _request(repo, customer.id, provider.id, RequestStatus.IN_PROGRESS)
    repo.create_document(
        profile.id,
        DocumentUpload(document_type=DocumentType.NATIONAL_ID, document_name="id.pdf"),
    )

    details = AdminService(repo).user_details(provider.id)

    assert details["user"]["email"] == "p@example.com"
    assert "password_hash" not in details["user"]
    assert details["provider_profile"]["id"] == profile.id
    assert [category["name_ar"] for category in details["categories"]] == ["السباكة"]
    assert details["requests"][0]["customer_name"] == "c"
    assert details["statistics"] == {
        "total_jobs": 3,
        "completed_jobs": 1,
        "active_jobs": 2,
        "cancelled_jobs": 0,
        "total_documents": 1,
    }
    assert [doc["document_name"] for doc in details["documents"]] == ["id.pdf"]


def test_user_details_for_customer_and_unknown_user(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    customer = add_user(repo, "c@example.com")
    _request(repo, customer.id, None, RequestStatus.PENDING)
    _request(repo, customer.id, None, RequestStatus.CANCELLED)
    service = AdminService(repo)

    details = service.user_details(customer.id)

    assert details["provider_profile"] is None
    assert len(details["requests"]) == 2
    assert details["statistics"] == {
        "total_requests": 2,
        "completed_requests": 0,
        "pending_requests": 1,
        "cancelled_requests": 1,
    }
    with pytest.raises(ApiError) as exc:
        service.user_details(404)
    assert exc.value.error_code == "USER_NOT_FOUND"


def test_user_documents_requires_provider_profile(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    customer = add_user(repo, "c@example.com")
    _, profile = add_provider(repo, "p@example.com")
    repo.create_document(
        profile.id,
        DocumentUpload(document_type=DocumentType.PORTFOLIO, document_name="work.jpg"),
    )
    service = AdminService(repo)

    (document,) = service.user_documents(profile.user_id)
    assert document["document_name"] == "work.jpg"
    with pytest.raises(ApiError) as exc:
        service.user_documents(customer.id)
    assert exc.value.status_code == 404
    assert exc.value.error_code == "PROVIDER_NOT_FOUND"
