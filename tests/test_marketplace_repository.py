from __future__ import annotations

import json
from pathlib import Path

import pytest

from homeservices.auth.models import UserType
from homeservices.providers.models import VerificationStatus
from homeservices.service_requests.models import OPEN_STATUSES, RequestStatus
from homeservices.storage.repository import DuplicateEmailError, StoreCorruptedError
from homeservices.storage.seed import DEFAULT_CATEGORIES
from tests.factories import add_provider, add_user, make_repo


def test_repository_uses_file_backend_without_mongo(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)

    assert repo.backend == "file"
    add_user(repo, "a@example.com")
    assert (tmp_path / "runtime" / "marketplace_store" / "users.json").exists()


def test_users_persist_across_instances_and_keep_arabic_text(tmp_path: Path) -> None:
    user = make_repo(tmp_path).create_user(
        email="Ahmad@Example.com",
        password_hash="x",
        name="أحمد",
        user_type=UserType.CUSTOMER,
    )

    reloaded = make_repo(tmp_path).get_user_by_email("ahmad@example.com")

    assert reloaded is not None
    assert reloaded.id == user.id
    assert reloaded.name == "أحمد"
    raw = (tmp_path / "runtime" / "marketplace_store" / "users.json").read_text("utf-8")
    assert "أحمد" in raw
    assert json.loads(raw)[0]["user_type"] == "customer"


def test_create_user_rejects_duplicate_email(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    add_user(repo, "a@example.com")

    with pytest.raises(DuplicateEmailError):
        repo.create_user(email="A@EXAMPLE.COM", password_hash="x", name="dup")


def test_ids_are_sequential_per_collection(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)

    first = add_user(repo, "a@example.com")
    second = add_user(repo, "b@example.com")

    assert (first.id, second.id) == (1, 2)


def test_verification_decision_returns_profile_and_owner(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    owner, profile = add_provider(repo, "p@example.com")

    result = repo.apply_verification_decision(
        profile.id, status=VerificationStatus.APPROVED, notes="ok"
    )

    assert result is not None
    updated, stored_owner = result
    assert updated.verification_status == VerificationStatus.APPROVED
    assert stored_owner is not None and stored_owner.id == owner.id
    assert stored_owner.verified is True
    assert repo.apply_verification_decision(999, status=VerificationStatus.APPROVED, notes=None) is None


def test_list_service_requests_filters_by_status_set(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    for status in RequestStatus:
        created = repo.create_service_request(
            customer_id=1, assigned_provider_id=2, category_id=1, title=str(status)
        )
        repo.update_service_request(created.id, {"status": status})

    open_items = repo.list_service_requests(provider_id=2, statuses=OPEN_STATUSES)

    assert {item.status for item in open_items} == set(OPEN_STATUSES)


def test_seed_categories_only_fills_empty_catalog(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)

    assert repo.seed_categories(DEFAULT_CATEGORIES) == len(DEFAULT_CATEGORIES)
    assert repo.seed_categories(DEFAULT_CATEGORIES) == 0
    assert [item.name_en for item in repo.list_categories()][:2] == ["Plumbing", "Electrical"]


def test_unreadable_store_file_reads_as_empty(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    (tmp_path / "runtime" / "marketplace_store" / "users.json").write_text("{broken", "utf-8")

    assert repo.list_users() == []


def test_truncated_store_file_raises_and_keeps_existing_rows(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    add_user(repo, "a@example.com")
    add_user(repo, "b@example.com")
    path = tmp_path / "runtime" / "marketplace_store" / "users.json"
    truncated = path.read_bytes()[:-5]
    path.write_bytes(truncated)

    with pytest.raises(StoreCorruptedError):
        add_user(repo, "c@example.com")
    with pytest.raises(StoreCorruptedError):
        repo.list_users()

    assert path.read_bytes() == truncated


def test_store_writes_leave_no_temp_files(tmp_path: Path) -> None:
    repo = make_repo(tmp_path)
    add_user(repo, "a@example.com")
    add_user(repo, "b@example.com")

    store_dir = tmp_path / "runtime" / "marketplace_store"
    assert sorted(p.name for p in store_dir.iterdir()) == ["users.json"]
    assert len(json.loads((store_dir / "users.json").read_text("utf-8"))) == 2
