"""Marketplace repository with MongoDB primary and JSON file fallback."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Iterable

import pymongo
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from homeservices.admin.models import Category, Notification
from homeservices.auth.models import AuthUser
from homeservices.core.config import StorageConfig
from homeservices.providers.models import (
    DeletionStatus,
    DocumentUpload,
    ProviderDocument,
    ProviderProfile,
    VerificationStatus,
)
from homeservices.service_requests.models import (
    OPEN_STATUSES,
    RequestStatus,
    ServiceRequest,
)

LOGGER = logging.getLogger(__name__)

USERS = "users"
PROVIDERS = "provider_profiles"
DOCUMENTS = "provider_documents"
SERVICE_REQUESTS = "service_requests"
CATEGORIES = "categories"
NOTIFICATIONS = "notifications"


class DuplicateEmailError(ValueError):
    """Raised when a user with the same email already exists."""


class StoreCorruptedError(RuntimeError):
    """Raised when a collection file exists but cannot be parsed."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(row: dict[str, Any], query: dict[str, Any]) -> bool:
    """Evaluate the equality / ``$in`` subset of Mongo filters on a plain row."""
    for key, condition in query.items():
        value = row.get(key)
        if isinstance(condition, dict) and "$in" in condition:
            if value not in condition["$in"]:
                return False
        elif value != condition:
            return False
    return True


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, str):
        # StrEnum members serialize as their plain value.
        return str(value)
    return value


class MarketplaceRepository:
    """Storage for users, providers, documents, requests, categories and notifications."""

    def __init__(self, app_root: Path, config: StorageConfig) -> None:
        self._fallback_dir = app_root / config.runtime_dir / "marketplace_store"
        self._fallback_dir.mkdir(parents=True, exist_ok=True)
        self._lock = RLock()
        self._db: Any | None = None

        if config.mongodb_uri:
            try:
                client: Any = pymongo.MongoClient(
                    config.mongodb_uri, serverSelectionTimeoutMS=3000
                )
                client.admin.command("ping")
                self._db = client[config.mongodb_db]
            except PyMongoError:
                LOGGER.warning("mongo_unavailable_using_file_store")
                self._db = None

    @property
    def backend(self) -> str:
        return "mongo" if self._db is not None else "file"

    # -- low level -------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self._fallback_dir / f"{name}.json"

    def _read_rows(self, name: str) -> list[dict[str, Any]]:
        """Read list payload from JSON file; only a missing file reads as empty."""
        path = self._path(name)
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.error("store_file_unreadable", extra={"path": str(path)})
            raise StoreCorruptedError(str(path)) from exc
        if not isinstance(payload, list):
            LOGGER.error("store_file_unreadable", extra={"path": str(path)})
            raise StoreCorruptedError(str(path))
        return payload

    def _write_rows(self, name: str, rows: list[dict[str, Any]]) -> None:
        """Replace the collection file atomically via a sibling temp file."""
        path = self._path(name)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(rows, fh, ensure_ascii=False, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _find(self, name: str, query: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        query = _jsonable(query or {})
        if self._db is not None:
            return list(self._db[name].find(query, {"_id": 0}).sort("id", 1))
        with self._lock:
            rows = [row for row in self._read_rows(name) if _matches(row, query)]
        return sorted(rows, key=lambda row: int(row.get("id") or 0))

    def _find_one(self, name: str, query: dict[str, Any]) -> dict[str, Any] | None:
        query = _jsonable(query)
        if self._db is not None:
            return self._db[name].find_one(query, {"_id": 0})
        with self._lock:
            for row in self._read_rows(name):
                if _matches(row, query):
                    return row
        return None

    def _next_id(self, name: str) -> int:
        if self._db is not None:
            counter = self._db["counters"].find_one_and_update(
                {"_id": name},
                {"$inc": {"seq": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
            return int(counter["seq"])
        rows = self._read_rows(name)
        return max((int(row.get("id") or 0) for row in rows), default=0) + 1

    def _insert(self, name: str, doc: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            row = _jsonable({**doc, "id": self._next_id(name)})
            if self._db is not None:
                self._db[name].insert_one(dict(row))
                return row
            rows = self._read_rows(name)
            rows.append(row)
            self._write_rows(name, rows)
            return row

    def _update(self, name: str, query: dict[str, Any], changes: dict[str, Any]) -> int:
        query = _jsonable(query)
        changes = _jsonable(changes)
        if self._db is not None:
            return int(self._db[name].update_many(query, {"$set": changes}).modified_count)
        with self._lock:
            rows = self._read_rows(name)
            updated = 0
            for row in rows:
                if _matches(row, query):
                    row.update(changes)
                    updated += 1
            if updated:
                self._write_rows(name, rows)
            return updated

    def _delete(self, name: str, query: dict[str, Any]) -> int:
        query = _jsonable(query)
        if self._db is not None:
            return int(self._db[name].delete_many(query).deleted_count)
        with self._lock:
            rows = self._read_rows(name)
            kept = [row for row in rows if not _matches(row, query)]
            if len(kept) != len(rows):
                self._write_rows(name, kept)
            return len(rows) - len(kept)

    # -- users -----------------------------------------------------------

    def get_user(self, user_id: int) -> AuthUser | None:
        doc = self._find_one(USERS, {"id": user_id})
        return AuthUser.model_validate(doc) if doc else None

    def get_user_by_email(self, email: str) -> AuthUser | None:
        doc = self._find_one(USERS, {"email": email.strip().lower()})
        return AuthUser.model_validate(doc) if doc else None

    def create_user(self, **fields: Any) -> AuthUser:
        """Insert a user; ``email`` is stored lower-cased and must be unique."""
        email = str(fields.pop("email")).strip().lower()
        now = _now_iso()
        with self._lock:
            if self._find_one(USERS, {"email": email}) is not None:
                raise DuplicateEmailError(email)
            try:
                doc = self._insert(
                    USERS, {**fields, "email": email, "created_at": now, "updated_at": now}
                )
            except DuplicateKeyError as exc:
                raise DuplicateEmailError(email) from exc
        return AuthUser.model_validate(doc)

    def update_user(self, user_id: int, changes: dict[str, Any]) -> AuthUser | None:
        self._update(USERS, {"id": user_id}, {**changes, "updated_at": _now_iso()})
        return self.get_user(user_id)

    def list_users(self, *, user_type: str = "", search: str = "") -> list[AuthUser]:
        query: dict[str, Any] = {"user_type": user_type} if user_type else {}
        users = [AuthUser.model_validate(doc) for doc in self._find(USERS, query)]
        needle = search.strip().lower()
        if needle:
            users = [
                user
                for user in users
                if needle in user.name.lower()
                or needle in user.email.lower()
                or needle in user.phone
            ]
        return sorted(users, key=lambda user: user.created_at, reverse=True)

    # -- providers -------------------------------------------------------

    def create_provider_profile(self, user_id: int, **fields: Any) -> ProviderProfile:
        now = _now_iso()
        doc = self._insert(
            PROVIDERS,
            {
                **fields,
                "user_id": user_id,
                "verification_status": VerificationStatus.PENDING,
                "created_at": now,
                "updated_at": now,
            },
        )
        return ProviderProfile.model_validate(doc)

    def get_provider(self, provider_id: int) -> ProviderProfile | None:
        doc = self._find_one(PROVIDERS, {"id": provider_id})
        return ProviderProfile.model_validate(doc) if doc else None

    def get_provider_by_user(self, user_id: int) -> ProviderProfile | None:
        doc = self._find_one(PROVIDERS, {"user_id": user_id})
        return ProviderProfile.model_validate(doc) if doc else None

    def update_provider(
        self, provider_id: int, changes: dict[str, Any]
    ) -> ProviderProfile | None:
        self._update(PROVIDERS, {"id": provider_id}, {**changes, "updated_at": _now_iso()})
        return self.get_provider(provider_id)

    def update_provider_by_user(self, user_id: int, changes: dict[str, Any]) -> int:
        return self._update(
            PROVIDERS, {"user_id": user_id}, {**changes, "updated_at": _now_iso()}
        )

    def list_providers(
        self,
        *,
        status: VerificationStatus | None = None,
        available: bool | None = None,
    ) -> list[ProviderProfile]:
        query: dict[str, Any] = {}
        if status is not None:
            query["verification_status"] = status
        if available is not None:
            query["available"] = available
        return [ProviderProfile.model_validate(doc) for doc in self._find(PROVIDERS, query)]

    def apply_verification_decision(
        self,
        provider_id: int,
        *,
        status: VerificationStatus,
        notes: str | None,
    ) -> tuple[ProviderProfile, AuthUser | None] | None:
        """Write provider status and the owner's ``verified`` flag as one step."""
        now = _now_iso()
        with self._lock:
            profile = self.get_provider(provider_id)
            if profile is None:
                return None
            self._update(
                PROVIDERS,
                {"id": provider_id},
                {
                    "verification_status": status,
                    "verification_notes": notes,
                    "verification_date": now,
                    "updated_at": now,
                },
            )
            self._update(
                USERS,
                {"id": profile.user_id},
                {"verified": status == VerificationStatus.APPROVED, "updated_at": now},
            )
            updated = self.get_provider(provider_id)
            owner = self.get_user(profile.user_id)
        return (updated or profile), owner

    # -- documents -------------------------------------------------------

    def create_document(self, provider_id: int, upload: DocumentUpload) -> ProviderDocument:
        doc = self._insert(
            DOCUMENTS,
            {
                **upload.model_dump(),
                "provider_id": provider_id,
                "verification_status": VerificationStatus.PENDING,
                "verification_notes": None,
                "uploaded_at": _now_iso(),
                "verified_at": None,
            },
        )
        return ProviderDocument.model_validate(doc)

    def get_document(self, document_id: int) -> ProviderDocument | None:
        doc = self._find_one(DOCUMENTS, {"id": document_id})
        return ProviderDocument.model_validate(doc) if doc else None

    def update_document(
        self, document_id: int, changes: dict[str, Any]
    ) -> ProviderDocument | None:
        self._update(DOCUMENTS, {"id": document_id}, changes)
        return self.get_document(document_id)

    def update_document_where(
        self, document_id: int, expected: dict[str, Any], changes: dict[str, Any]
    ) -> ProviderDocument | None:
        """Apply ``changes`` only while the document still matches ``expected``."""
        with self._lock:
            if not self._update(DOCUMENTS, {**expected, "id": document_id}, changes):
                return None
            return self.get_document(document_id)

    def delete_document(
        self, document_id: int, *, expected: dict[str, Any] | None = None
    ) -> ProviderDocument | None:
        """Remove a document (guarded by ``expected``) and return the removed record."""
        query = {**(expected or {}), "id": document_id}
        with self._lock:
            doc = self._find_one(DOCUMENTS, query)
            if doc is None or not self._delete(DOCUMENTS, query):
                return None
        return ProviderDocument.model_validate(doc)

    def list_documents(
        self,
        *,
        provider_id: int | None = None,
        status: VerificationStatus | None = None,
        deletion_status: DeletionStatus | None = None,
    ) -> list[ProviderDocument]:
        query: dict[str, Any] = {}
        if provider_id is not None:
            query["provider_id"] = provider_id
        if status is not None:
            query["verification_status"] = status
        if deletion_status is not None:
            query["deletion_status"] = deletion_status
        return [ProviderDocument.model_validate(doc) for doc in self._find(DOCUMENTS, query)]

    # -- service requests ------------------------------------------------

    def create_service_request(self, **fields: Any) -> ServiceRequest:
        now = _now_iso()
        doc = self._insert(
            SERVICE_REQUESTS,
            {**fields, "status": RequestStatus.PENDING, "created_at": now, "updated_at": now},
        )
        return ServiceRequest.model_validate(doc)

    def get_service_request(self, request_id: int) -> ServiceRequest | None:
        doc = self._find_one(SERVICE_REQUESTS, {"id": request_id})
        return ServiceRequest.model_validate(doc) if doc else None

    def update_service_request(
        self, request_id: int, changes: dict[str, Any]
    ) -> ServiceRequest | None:
        self._update(
            SERVICE_REQUESTS, {"id": request_id}, {**changes, "updated_at": _now_iso()}
        )
        return self.get_service_request(request_id)

    def list_service_requests(
        self,
        *,
        customer_id: int | None = None,
        provider_id: int | None = None,
        statuses: Iterable[RequestStatus] | None = None,
    ) -> list[ServiceRequest]:
        query: dict[str, Any] = {}
        if customer_id is not None:
            query["customer_id"] = customer_id
        if provider_id is not None:
            query["assigned_provider_id"] = provider_id
        if statuses is not None:
            query["status"] = {"$in": list(statuses)}
        rows = self._find(SERVICE_REQUESTS, query)
        return sorted(
            (ServiceRequest.model_validate(doc) for doc in rows),
            key=lambda item: item.created_at,
            reverse=True,
        )

    def cancel_open_requests_for_provider(self, provider_user_id: int) -> list[ServiceRequest]:
        """Cancel and unassign every open request of a provider; return the affected ones."""
        now = _now_iso()
        with self._lock:
            affected = self.list_service_requests(
                provider_id=provider_user_id, statuses=OPEN_STATUSES
            )
            for item in affected:
                self._update(
                    SERVICE_REQUESTS,
                    {"id": item.id},
                    {
                        "status": RequestStatus.CANCELLED,
                        "assigned_provider_id": None,
                        "updated_at": now,
                    },
                )
        return affected

    # -- categories ------------------------------------------------------

    def list_categories(self, *, active_only: bool = False) -> list[Category]:
        query: dict[str, Any] = {"active": True} if active_only else {}
        categories = [Category.model_validate(doc) for doc in self._find(CATEGORIES, query)]
        return sorted(categories, key=lambda item: (item.sort_order, item.name_ar))

    def get_category(self, category_id: int) -> Category | None:
        doc = self._find_one(CATEGORIES, {"id": category_id})
        return Category.model_validate(doc) if doc else None

    def update_category(self, category_id: int, changes: dict[str, Any]) -> Category | None:
        self._update(CATEGORIES, {"id": category_id}, {**changes, "updated_at": _now_iso()})
        return self.get_category(category_id)

    def seed_categories(self, categories: list[dict[str, Any]]) -> int:
        """Insert default categories when the catalog is empty."""
        with self._lock:
            if self._find(CATEGORIES):
                return 0
            now = _now_iso()
            for item in categories:
                self._insert(CATEGORIES, {**item, "created_at": now, "updated_at": now})
        return len(categories)

    # -- notifications ---------------------------------------------------

    def add_notification(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        type: str = "info",
        related_id: int | None = None,
        related_type: str = "",
    ) -> Notification:
        doc = self._insert(
            NOTIFICATIONS,
            {
                "user_id": user_id,
                "title": title,
                "message": message,
                "type": type,
                "related_id": related_id,
                "related_type": related_type,
                "read_at": None,
                "created_at": _now_iso(),
            },
        )
        return Notification.model_validate(doc)

    def list_notifications(self, user_id: int) -> list[Notification]:
        return [
            Notification.model_validate(doc)
            for doc in self._find(NOTIFICATIONS, {"user_id": user_id})
        ]
