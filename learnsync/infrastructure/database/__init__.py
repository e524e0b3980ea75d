# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the embedded local store.

This package provides:
- LocalDatabase: SQLAlchemy async engine and sessions over a SQLite file
- LocalStore: Kind-generic read/write contract used by every domain service

Example:
    from learnsync.infrastructure.database import EntityKind, LocalDatabase, LocalStore

    database = LocalDatabase(settings.local_store)
    await database.create_schema()
    store = LocalStore(database, event_bus)

    lessons = await store.get_all_where(EntityKind.LESSONS, "topic_id", "t-1")
"""

from learnsync.infrastructure.database.connection import LocalDatabase, StoreError
from learnsync.infrastructure.database.store import (
    INDEXES,
    EntityKind,
    LocalStore,
)

__all__ = [
    "LocalDatabase",
    "StoreError",
    "LocalStore",
    "EntityKind",
    "INDEXES",
]
