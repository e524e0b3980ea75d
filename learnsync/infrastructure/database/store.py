# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Local store: the sole authority for every curriculum read.

The store exposes a small, kind-generic contract over the four mirrored
record kinds:

- put / bulk_put: insert-or-replace by id
- get: single record by id, or None
- get_all_where: equality or in-set lookup on an indexed attribute
- clear / clear_all: wipe one kind or all four
- count: COUNT(*) on an indexed attribute, never loading rows

Every write is a single transaction. After it commits, a
``store.<kind>.changed`` event is published so subscribers know which
kind to re-query.

Lessons carry an ``is_offline`` flag that mirrors the presence of a
downloaded payload in ``lesson_media``. Callers can never set the flag
directly: every lesson write recomputes it in the same transaction, and a
payload is only kept while its source_url equals the lesson's media_url.

Example:
    >>> store = LocalStore(database, event_bus)
    >>> await store.bulk_put(EntityKind.SUBJECTS, subjects)
    >>> topics = await store.get_all_where(EntityKind.TOPICS, "subject_id", {"s-1", "s-2"})
"""

import json
import logging
from collections.abc import Collection, Iterable, Iterator, Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Table, delete, func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnsync.infrastructure.database.connection import LocalDatabase
from learnsync.infrastructure.database.models import (
    Assessment,
    Base,
    Lesson,
    LessonMedia,
    LocalState,
    Subject,
    Topic,
)
from learnsync.infrastructure.events import EventBus, EventTypes
from learnsync.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# SQLite caps bound parameters per statement; IN lists are split below it
IN_CHUNK_SIZE = 500

Record = BaseModel | Mapping[str, Any]


class EntityKind(str, Enum):
    """The four mirrored record kinds, named after their tables."""

    SUBJECTS = "subjects"
    TOPICS = "topics"
    LESSONS = "lessons"
    ASSESSMENTS = "assessments"


MODELS: dict[EntityKind, type[Base]] = {
    EntityKind.SUBJECTS: Subject,
    EntityKind.TOPICS: Topic,
    EntityKind.LESSONS: Lesson,
    EntityKind.ASSESSMENTS: Assessment,
}

INDEXES: dict[EntityKind, frozenset[str]] = {
    EntityKind.SUBJECTS: frozenset({"id", "grade_id"}),
    EntityKind.TOPICS: frozenset({"id", "subject_id"}),
    EntityKind.LESSONS: frozenset({"id", "topic_id", "is_offline"}),
    EntityKind.ASSESSMENTS: frozenset({"id", "lesson_id"}),
}

# Columns owned by the store, never taken from incoming records
_STORE_OWNED = frozenset({"is_offline", "synced_at"})

# Values substituted when a record omits a NOT NULL column
_FALLBACKS: dict[str, Any] = {"content": ""}


def _chunks(values: Sequence[Any], size: int = IN_CHUNK_SIZE) -> Iterator[Sequence[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


def _as_values(value: Any) -> list[Any] | None:
    """Return a list for in-set lookups, None for scalar equality."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Collection):
        return None
    return list(dict.fromkeys(value))


class LocalStore:
    """Kind-generic read/write contract over the local database.

    Attributes:
        _database: Owner of the engine and sessions.
        _event_bus: Optional bus receiving change events.
    """

    def __init__(self, database: LocalDatabase, event_bus: EventBus | None = None) -> None:
        """Initialize the store.

        Args:
            database: Local database wrapper.
            event_bus: Bus to publish change events on. No events when None.
        """
        self._database = database
        self._event_bus = event_bus

    @property
    def database(self) -> LocalDatabase:
        """The underlying local database."""
        return self._database

    # =========================================================================
    # Writes
    # =========================================================================

    async def put(self, kind: EntityKind, record: Record) -> None:
        """Insert or replace a single record by id."""
        await self.bulk_put(kind, [record])

    async def bulk_put(self, kind: EntityKind, records: Iterable[Record]) -> int:
        """Insert or replace many records by id in one transaction.

        Args:
            kind: Record kind.
            records: Pydantic records or mappings with at least an id.

        Returns:
            Number of rows written.
        """
        rows = [self._to_row(kind, record) for record in records]
        if not rows:
            return 0

        async with self._database.session() as session:
            await self._upsert_rows(session, kind, rows)
            if kind is EntityKind.LESSONS:
                await self._reconcile_offline_flags(session, [row["id"] for row in rows])

        await self._publish(kind, "bulk_put", [row["id"] for row in rows])
        return len(rows)

    async def replace_kind(self, kind: EntityKind, records: Iterable[Record]) -> list[str]:
        """Swap the full content of one kind for a new batch.

        Delete and insert happen in one transaction, so a concurrent reader
        sees either the previous set or the new one. For lessons, payloads
        whose lesson is gone or whose media reference changed are pruned and
        the offline flags recomputed in the same transaction.

        Args:
            kind: Record kind.
            records: The complete new batch.

        Returns:
            Ids of the stored records, in batch order.
        """
        rows = [self._to_row(kind, record) for record in records]
        ids = [row["id"] for row in rows]
        table = self._table(kind)

        async with self._database.session() as session:
            await session.execute(delete(table))
            if rows:
                await self._upsert_rows(session, kind, rows)
            if kind is EntityKind.LESSONS:
                await self._reconcile_offline_flags(session, None)

        logger.debug("Replaced %s with %d records", kind.value, len(rows))
        await self._publish(kind, "replace", ids)
        return ids

    async def clear(self, kind: EntityKind) -> None:
        """Delete every record of one kind.

        Lesson payloads are kept so a wipe followed by a repopulate does not
        lose downloads. Those whose lesson does not come back are dropped by
        the next lesson replace or by prune_lesson_payloads.
        """
        async with self._database.session() as session:
            await session.execute(delete(self._table(kind)))
        await self._publish(kind, "clear", [])

    async def clear_all(self) -> None:
        """Delete every record of all four kinds in one transaction."""
        async with self._database.session() as session:
            for kind in EntityKind:
                await session.execute(delete(self._table(kind)))
        for kind in EntityKind:
            await self._publish(kind, "clear", [])

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, kind: EntityKind, record_id: str) -> Any | None:
        """Get a record by id, or None when absent."""
        async with self._database.session() as session:
            return await session.get(MODELS[kind], record_id)

    async def get_all_where(self, kind: EntityKind, index: str, value: Any) -> list[Any]:
        """Get all records whose indexed attribute matches.

        Args:
            kind: Record kind.
            index: Indexed attribute name (see INDEXES).
            value: A scalar for equality, or a collection for in-set lookup.

        Returns:
            Matching records; empty when nothing matches or the set is empty.

        Raises:
            ValueError: If index is not an indexed attribute of kind.
        """
        model = MODELS[kind]
        column = self._index_column(kind, index)
        values = _as_values(value)

        async with self._database.session() as session:
            if values is None:
                result = await session.execute(select(model).where(column == value))
                return list(result.scalars().all())

            records: list[Any] = []
            for chunk in _chunks(values):
                result = await session.execute(select(model).where(column.in_(chunk)))
                records.extend(result.scalars().all())
            return records

    async def get_all(self, kind: EntityKind) -> list[Any]:
        """Get every record of one kind."""
        async with self._database.session() as session:
            result = await session.execute(select(MODELS[kind]))
            return list(result.scalars().all())

    async def count(self, kind: EntityKind, index: str, value: Any) -> int:
        """Count records whose indexed attribute matches, without loading rows."""
        table = self._table(kind)
        column = table.c[self._index_column(kind, index).key]
        values = _as_values(value)

        async with self._database.session() as session:
            if values is None:
                stmt = select(func.count()).select_from(table).where(column == value)
                return int((await session.execute(stmt)).scalar_one())

            total = 0
            for chunk in _chunks(values):
                stmt = select(func.count()).select_from(table).where(column.in_(chunk))
                total += int((await session.execute(stmt)).scalar_one())
            return total

    async def count_lessons_for_subject(self, subject_id: str) -> int:
        """Count lessons under a subject through the topic join."""
        lessons = self._table(EntityKind.LESSONS)
        topics = self._table(EntityKind.TOPICS)
        stmt = (
            select(func.count(lessons.c.id))
            .select_from(lessons.join(topics, topics.c.id == lessons.c.topic_id))
            .where(topics.c.subject_id == subject_id)
        )
        async with self._database.session() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def scan_titles(self, kind: EntityKind, needle: str, limit: int) -> list[Any]:
        """Linear scan for records whose title contains needle, case-insensitively.

        Matching uses str.casefold so non-ASCII titles compare correctly.
        The scan stops as soon as limit matches are collected.
        """
        folded = needle.casefold()
        matches: list[Any] = []
        async with self._database.session() as session:
            result = await session.execute(select(MODELS[kind]))
            for record in result.scalars():
                if folded in record.title.casefold():
                    matches.append(record)
                    if len(matches) >= limit:
                        break
        return matches

    # =========================================================================
    # Lesson payloads
    # =========================================================================

    async def get_lesson_payload(self, lesson_id: str) -> LessonMedia | None:
        """Get the downloaded media for a lesson, or None."""
        async with self._database.session() as session:
            return await session.get(LessonMedia, lesson_id)

    async def attach_lesson_payload(
        self,
        lesson_id: str,
        source_url: str,
        payload: bytes,
        content_type: str | None = None,
    ) -> bool:
        """Store a payload and set the lesson's offline flag atomically.

        Nothing is written when the lesson no longer exists or its media
        reference changed while the payload was downloading.

        Returns:
            True if the payload was stored.
        """
        media = LessonMedia.__table__
        async with self._database.session() as session:
            lesson = await session.get(Lesson, lesson_id)
            if lesson is None or lesson.media_url != source_url:
                return False

            stmt = sqlite_insert(media)
            stmt = stmt.on_conflict_do_update(
                index_elements=[media.c.lesson_id],
                set_={
                    "source_url": stmt.excluded.source_url,
                    "content_type": stmt.excluded.content_type,
                    "size_bytes": stmt.excluded.size_bytes,
                    "payload": stmt.excluded.payload,
                    "downloaded_at": stmt.excluded.downloaded_at,
                },
            )
            await session.execute(
                stmt,
                {
                    "lesson_id": lesson_id,
                    "source_url": source_url,
                    "content_type": content_type,
                    "size_bytes": len(payload),
                    "payload": payload,
                    "downloaded_at": utc_now(),
                },
            )
            await session.execute(
                update(Lesson.__table__)
                .where(Lesson.__table__.c.id == lesson_id)
                .values(is_offline=True)
            )

        await self._publish(EntityKind.LESSONS, "media", [lesson_id])
        return True

    async def prune_lesson_payloads(self) -> int:
        """Drop payloads whose lesson is gone or whose media reference changed.

        Returns:
            Number of payloads dropped.
        """
        async with self._database.session() as session:
            dropped = await self._reconcile_offline_flags(session, None)

        if dropped:
            logger.info("Pruned %d orphaned lesson payloads", dropped)
            await self._publish(EntityKind.LESSONS, "media", [])
        return dropped

    async def detach_lesson_payload(self, lesson_id: str) -> bool:
        """Remove a lesson's payload and clear its offline flag atomically.

        Returns:
            True if a payload existed.
        """
        media = LessonMedia.__table__
        async with self._database.session() as session:
            result = await session.execute(delete(media).where(media.c.lesson_id == lesson_id))
            await session.execute(
                update(Lesson.__table__)
                .where(Lesson.__table__.c.id == lesson_id)
                .values(is_offline=False)
            )
            removed = bool(result.rowcount)

        if removed:
            await self._publish(EntityKind.LESSONS, "media", [lesson_id])
        return removed

    # =========================================================================
    # Local state
    # =========================================================================

    async def get_state(self, key: str) -> str | None:
        """Get the raw JSON text stored under key, or None."""
        async with self._database.session() as session:
            row = await session.get(LocalState, key)
            return row.value if row is not None else None

    async def set_state(self, key: str, value: Any) -> None:
        """JSON-encode and store a value under key."""
        table = LocalState.__table__
        stmt = sqlite_insert(table)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        async with self._database.session() as session:
            await session.execute(
                stmt,
                {"key": key, "value": json.dumps(value), "updated_at": utc_now()},
            )
        await self._publish_state(key)

    async def delete_state(self, key: str) -> None:
        """Remove the value stored under key, if any."""
        table = LocalState.__table__
        async with self._database.session() as session:
            await session.execute(delete(table).where(table.c.key == key))
        await self._publish_state(key)

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _table(kind: EntityKind) -> Table:
        return MODELS[kind].__table__  # type: ignore[return-value]

    @staticmethod
    def _index_column(kind: EntityKind, index: str) -> Any:
        if index not in INDEXES[kind]:
            raise ValueError(f"'{index}' is not an indexed attribute of {kind.value}")
        return getattr(MODELS[kind], index)

    def _to_row(self, kind: EntityKind, record: Record) -> dict[str, Any]:
        """Project a record onto the writable columns of its table."""
        if isinstance(record, BaseModel):
            data = record.model_dump(mode="json")
        else:
            data = dict(record)

        if not data.get("id"):
            raise ValueError(f"{kind.value} record without an id: {data!r}")

        row: dict[str, Any] = {}
        for column in self._table(kind).columns:
            if column.name in _STORE_OWNED:
                continue
            value = data.get(column.name)
            if value is None and column.name in _FALLBACKS:
                value = _FALLBACKS[column.name]
            row[column.name] = value
        if kind is EntityKind.ASSESSMENTS and row.get("quiz_data") is None:
            row["quiz_data"] = {}
        row["synced_at"] = utc_now()
        if kind is EntityKind.LESSONS:
            row["is_offline"] = False
        return row

    async def _upsert_rows(
        self, session: AsyncSession, kind: EntityKind, rows: list[dict[str, Any]]
    ) -> None:
        table = self._table(kind)
        stmt = sqlite_insert(table)
        # is_offline is left out of the update set: it is recomputed afterwards
        updatable = [name for name in rows[0] if name not in ("id", "is_offline")]
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={name: stmt.excluded[name] for name in updatable},
        )
        await session.execute(stmt, rows)

    async def _reconcile_offline_flags(
        self, session: AsyncSession, lesson_ids: Sequence[str] | None
    ) -> int:
        """Drop stale payloads and recompute is_offline.

        With lesson_ids=None every payload and lesson is considered.

        Returns:
            Number of payloads dropped.
        """
        lessons = Lesson.__table__
        media = LessonMedia.__table__

        still_valid = (
            select(lessons.c.id)
            .where(
                lessons.c.id == media.c.lesson_id,
                lessons.c.media_url == media.c.source_url,
            )
            .correlate(media)
            .exists()
        )
        has_payload = (
            select(media.c.lesson_id)
            .where(media.c.lesson_id == lessons.c.id)
            .correlate(lessons)
            .exists()
        )

        if lesson_ids is None:
            result = await session.execute(delete(media).where(~still_valid))
            await session.execute(update(lessons).values(is_offline=has_payload))
            return result.rowcount or 0

        dropped = 0
        for chunk in _chunks(list(lesson_ids)):
            result = await session.execute(
                delete(media).where(media.c.lesson_id.in_(chunk), ~still_valid)
            )
            dropped += result.rowcount or 0
            await session.execute(
                update(lessons).where(lessons.c.id.in_(chunk)).values(is_offline=has_payload)
            )
        return dropped

    async def _publish(self, kind: EntityKind, operation: str, ids: list[str]) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(
            EventTypes.Store.changed(kind.value),
            {"kind": kind.value, "operation": operation, "ids": ids},
        )

    async def _publish_state(self, key: str) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(EventTypes.Store.STATE_CHANGED, {"key": key})
