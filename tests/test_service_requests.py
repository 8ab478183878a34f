from __future__ import annotations

from pathlib import Path

import pytest

from homeservices.api.errors import ApiError
from homeservices.auth.models import CurrentUser, UserType
from homeservices.providers.models import VerificationStatus
from homeservices.service_requests.models import CreateServiceRequest, RequestStatus
from homeservices.service_requests.service import ServiceRequestService
from homeservices.storage.repository import MarketplaceRepository
from homeservices.storage.seed import DEFAULT_CATEGORIES
from tests.factories import add_provider, add_user, make_repo


def _current(user) -> CurrentUser:
    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.name,
        user_type=user.user_type,
        verified=user.verified,
    )


def _setup(tmp_path: Path) -> tuple[MarketplaceRepository, ServiceRequestService]:
    repo = make_repo(tmp_path)
    repo.seed_categories(DEFAULT_CATEGORIES)
    return repo, ServiceRequestService(repo)


def test_full_lifecycle_by_verified_provider(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    provider_user, _ = add_provider(repo, "p@example.com", status=VerificationStatus.APPROVED)
    provider = _current(provider_user)

    created = service.create(customer, CreateServiceRequest(category_id=1, title="تسريب مياه"))
    assert created.status == RequestStatus.PENDING
    assert [item.id for item in service.list_for(provider)] == [created.id]

    accepted = service.update_status(provider, created.id, RequestStatus.ACCEPTED)
    assert accepted.assigned_provider_id == provider.id
    service.update_status(provider, created.id, RequestStatus.IN_PROGRESS)
    done = service.update_status(provider, created.id, RequestStatus.COMPLETED)

    assert done.status == RequestStatus.COMPLETED
    assert len(repo.list_notifications(customer.id)) == 3


def test_unverified_provider_cannot_accept(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    provider_user, _ = add_provider(repo, "p@example.com")
    created = service.create(customer, CreateServiceRequest(category_id=1, title="مكيف معطل"))

    with pytest.raises(ApiError) as exc:
        service.update_status(_current(provider_user), created.id, RequestStatus.ACCEPTED)

    assert exc.value.status_code == 403
    assert repo.get_service_request(created.id).status == RequestStatus.PENDING


def test_invalid_transition_is_rejected(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    created = service.create(customer, CreateServiceRequest(category_id=1, title="دهان غرفة"))

    with pytest.raises(ApiError) as exc:
        service.update_status(customer, created.id, RequestStatus.COMPLETED)

    assert exc.value.status_code == 400
    assert exc.value.error_code == "INVALID_STATUS_TRANSITION"


def test_customer_can_cancel_own_request_only(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    owner = _current(add_user(repo, "c@example.com"))
    stranger = _current(add_user(repo, "s@example.com"))
    created = service.create(owner, CreateServiceRequest(category_id=1, title="تنظيف شقة"))

    with pytest.raises(ApiError) as exc:
        service.update_status(stranger, created.id, RequestStatus.CANCELLED)
    cancelled = service.update_status(owner, created.id, RequestStatus.CANCELLED)

    assert exc.value.status_code == 403
    assert cancelled.status == RequestStatus.CANCELLED


def test_create_validates_category_provider_and_budget(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    _, pending_profile = add_provider(repo, "p@example.com")

    with pytest.raises(ApiError) as missing_category:
        service.create(customer, CreateServiceRequest(category_id=99, title="abc"))
    with pytest.raises(ApiError) as pending_provider:
        service.create(
            customer,
            CreateServiceRequest(category_id=1, title="abc", provider_id=pending_profile.id),
        )
    with pytest.raises(ApiError) as budget:
        service.create(
            customer,
            CreateServiceRequest(category_id=1, title="abc", budget_min=50, budget_max=10),
        )

    assert missing_category.value.status_code == 404
    assert pending_provider.value.status_code == 404
    assert budget.value.status_code == 400


def test_direct_request_is_assigned_and_hidden_from_other_providers(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    chosen, chosen_profile = add_provider(
        repo, "a@example.com", status=VerificationStatus.APPROVED
    )
    other, _ = add_provider(repo, "b@example.com", status=VerificationStatus.APPROVED)

    created = service.create(
        customer,
        CreateServiceRequest(category_id=1, title="سباكة", provider_id=chosen_profile.id),
    )

    assert created.assigned_provider_id == chosen.id
    assert service.list_for(_current(other)) == []
    with pytest.raises(ApiError):
        service.update_status(_current(other), created.id, RequestStatus.ACCEPTED)
    assert len(repo.list_notifications(chosen.id)) == 1


def test_available_requests_put_emergencies_first(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    provider, _ = add_provider(
        repo, "p@example.com", status=VerificationStatus.APPROVED, category_ids=[1]
    )
    _, other_profile = add_provider(repo, "o@example.com", status=VerificationStatus.APPROVED)
    routine = service.create(customer, CreateServiceRequest(category_id=1, title="صيانة دورية"))
    urgent = service.create(
        customer, CreateServiceRequest(category_id=1, title="تسريب غاز", emergency=True)
    )
    service.create(customer, CreateServiceRequest(category_id=2, title="فئة أخرى"))
    service.create(
        customer,
        CreateServiceRequest(category_id=1, title="لمقدم آخر", provider_id=other_profile.id),
    )

    rows = service.available_for(_current(provider))

    assert [row["id"] for row in rows] == [urgent.id, routine.id]
    assert rows[0]["customer_name"] == "c"
    assert rows[0]["category_name"]


def test_available_requests_require_verified_provider(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    pending, _ = add_provider(repo, "p@example.com")
    bare = add_user(repo, "bare@example.com", user_type=UserType.PROVIDER)

    for user in (pending, bare):
        with pytest.raises(ApiError) as exc:
            service.available_for(_current(user))
        assert exc.value.status_code == 403


def test_customer_dashboard_counts_every_status(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    first = service.create(customer, CreateServiceRequest(category_id=1, title="طلب أول"))
    service.create(customer, CreateServiceRequest(category_id=1, title="طلب ثان"))
    service.update_status(customer, first.id, RequestStatus.CANCELLED)

    dashboard = service.customer_dashboard(customer)

    assert dashboard["stats"]["total_requests"] == 2
    assert dashboard["stats"]["pending_requests"] == 1
    assert dashboard["stats"]["cancelled_requests"] == 1
    assert dashboard["stats"]["disputed_requests"] == 0
    assert len(dashboard["recent_requests"]) == 2


def test_provider_dashboard_counts_jobs_and_open_requests(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    provider_user, profile = add_provider(
        repo, "p@example.com", status=VerificationStatus.APPROVED
    )
    provider = _current(provider_user)
    job = service.create(customer, CreateServiceRequest(category_id=1, title="تركيب مغسلة"))
    service.update_status(provider, job.id, RequestStatus.ACCEPTED)
    service.update_status(provider, job.id, RequestStatus.IN_PROGRESS)
    service.update_status(provider, job.id, RequestStatus.COMPLETED)
    open_request = service.create(customer, CreateServiceRequest(category_id=1, title="تسليك"))

    dashboard = service.provider_dashboard(provider)

    assert dashboard["profile"]["id"] == profile.id
    assert dashboard["profile"]["verification_status"] == "approved"
    assert dashboard["stats"]["total_jobs"] == 1
    assert dashboard["stats"]["completed_jobs"] == 1
    assert dashboard["stats"]["available_requests"] == 1
    assert [row["id"] for row in dashboard["recent_requests"]] == [open_request.id]
    assert [row["id"] for row in dashboard["recent_jobs"]] == [job.id]


def test_provider_dashboard_hides_open_requests_until_verified(tmp_path: Path) -> None:
    repo, service = _setup(tmp_path)
    customer = _current(add_user(repo, "c@example.com"))
    provider_user, _ = add_provider(repo, "p@example.com")
    service.create(customer, CreateServiceRequest(category_id=1, title="تسليك"))
    bare = add_user(repo, "bare@example.com", user_type=UserType.PROVIDER)

    dashboard = service.provider_dashboard(_current(provider_user))

    assert dashboard["stats"]["available_requests"] == 0
    assert dashboard["recent_requests"] == []
    with pytest.raises(ApiError) as exc:
        service.provider_dashboard(_current(bare))
    assert exc.value.error_code == "PROVIDER_NOT_FOUND"
