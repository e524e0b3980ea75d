# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recently visited subjects.

Keeps a bounded, most-recent-first list of subject ids in local state. The
list survives restarts and is independent of reconciliation: ids whose
subject is no longer stored are skipped on read but stay persisted, so they
reappear if the subject comes back.
"""

import asyncio
import logging

from pydantic import TypeAdapter, ValidationError

from learnsync.domains.curriculum.schemas import SubjectRecord
from learnsync.infrastructure.database import EntityKind, LocalStore

logger = logging.getLogger(__name__)

RECENT_SUBJECTS_KEY = "recent_subjects"
DEFAULT_LIMIT = 6

_ID_LIST = TypeAdapter(list[str])


class RecencyTracker:
    """Bounded move-to-front list of visited subject ids."""

    def __init__(self, store: LocalStore, limit: int = DEFAULT_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._store = store
        self._limit = limit
        self._lock = asyncio.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    async def record(self, subject_id: str) -> list[str]:
        """Move a subject to the front of the list and persist it.

        Blank ids are ignored. Concurrent calls are applied one after
        another so none of them is lost.

        Returns:
            The updated id list.
        """
        subject_id = subject_id.strip() if subject_id else ""
        async with self._lock:
            current = await self.ids()
            if not subject_id:
                return current

            updated = [subject_id, *(i for i in current if i != subject_id)][: self._limit]
            await self._store.set_state(RECENT_SUBJECTS_KEY, updated)
        return updated

    async def clear(self) -> None:
        await self._store.set_state(RECENT_SUBJECTS_KEY, [])

    async def ids(self) -> list[str]:
        """Get the persisted ids, most recent first.

        A malformed persisted value is logged and reset to an empty list.
        """
        raw = await self._store.get_state(RECENT_SUBJECTS_KEY)
        if raw is None:
            return []

        try:
            ids = _ID_LIST.validate_json(raw)
        except ValidationError as e:
            logger.warning("Resetting malformed recent subjects list: %s", str(e))
            await self.clear()
            return []

        return list(dict.fromkeys(ids))[: self._limit]

    async def list(self) -> list[SubjectRecord]:
        """Resolve the persisted ids to stored subjects, keeping order.

        Ids without a stored subject are skipped.
        """
        ids = await self.ids()
        if not ids:
            return []

        rows = await self._store.get_all_where(EntityKind.SUBJECTS, "id", ids)
        by_id = {row.id: row for row in rows}
        return [SubjectRecord.model_validate(by_id[i]) for i in ids if i in by_id]
