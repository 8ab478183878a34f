"""Versioned MongoDB index migrations for marketplace collections."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pymongo
from pymongo.errors import PyMongoError

from homeservices.core.config import StorageConfig
from homeservices.core.logging import CORRELATION_ID_CTX

LOGGER = logging.getLogger(__name__)

MigrationFn = Callable[[Any], None]


def _migration_0001_core_indexes(db: Any) -> None:
    db["users"].create_index("id", unique=True)
    db["users"].create_index("email", unique=True)
    db["provider_profiles"].create_index("id", unique=True)
    db["provider_profiles"].create_index("user_id", unique=True)
    db["provider_profiles"].create_index("verification_status")
    db["provider_documents"].create_index("id", unique=True)
    db["provider_documents"].create_index([("provider_id", 1), ("verification_status", 1)])
    db["service_requests"].create_index("id", unique=True)
    db["service_requests"].create_index([("assigned_provider_id", 1), ("status", 1)])
    db["categories"].create_index("id", unique=True)


def _migration_0002_notifications(db: Any) -> None:
    db["notifications"].create_index("id", unique=True)
    db["notifications"].create_index([("user_id", 1), ("created_at", -1)])


def _migration_0003_document_deletions(db: Any) -> None:
    db["provider_documents"].create_index("deletion_status", sparse=True)
    db["service_requests"].create_index([("customer_id", 1), ("status", 1)])


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("0001_core_indexes", _migration_0001_core_indexes),
    ("0002_notifications", _migration_0002_notifications),
    ("0003_document_deletions", _migration_0003_document_deletions),
]


def apply_mongo_migrations(config: StorageConfig) -> list[str]:
    """Apply pending migrations when MongoDB is configured; return applied ids."""
    if not config.mongodb_uri:
        return []

    applied: list[str] = []
    client: Any = pymongo.MongoClient(config.mongodb_uri, serverSelectionTimeoutMS=3000)
    try:
        try:
            client.admin.command("ping")
            db = client[config.mongodb_db]
            migration_collection = db["schema_migrations"]
            migration_collection.create_index("migration_id", unique=True)

            for migration_id, migration_fn in MIGRATIONS:
                if migration_collection.find_one({"migration_id": migration_id}):
                    continue
                migration_fn(db)
                migration_collection.insert_one(
                    {
                        "migration_id": migration_id,
                        "applied_at": datetime.now(timezone.utc),
                        "correlation_id": CORRELATION_ID_CTX.get(),
                    }
                )
                applied.append(migration_id)
        except PyMongoError:
            LOGGER.exception("mongo_migrations_failed")
            return applied
    finally:
        client.close()
    return applied
