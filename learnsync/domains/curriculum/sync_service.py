# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum reconciliation service.

This module mirrors one grade's curriculum from the remote source into the
local store.

The sync process (strict order):
1. Resolve the grade display name (best-effort, placeholder on failure)
2. Wipe the four content kinds on a full refresh or a grade change
3. Fetch subjects by grade and replace them locally
4. Fetch topics by subject ids and replace them
5. Fetch lessons by topic ids and replace them
6. Fetch assessments by lesson ids and replace them

Each replace step is one store transaction, so a failure in a later step
leaves the earlier steps committed. An empty batch ends the run early with
success: the remaining kinds are emptied and nothing more is fetched.

Data hierarchy:
- Subject (within grade)
- Topic (within subject)
- Lesson (within topic)
- Assessment (within lesson)

Example:
    >>> sync = CurriculumSyncService(store, gateway, session, event_bus)
    >>> result = await sync.reconcile("grade-4", on_progress=print)
    >>> result.status
    <SyncStatus.SUCCESS: 'success'>
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from learnsync.domains.session import LearnerSession, SyncState
from learnsync.infrastructure.database import EntityKind, LocalStore, StoreError
from learnsync.infrastructure.events import EventBus, EventTypes
from learnsync.infrastructure.remote import CurriculumGateway, GatewayError
from learnsync.utils.datetime import format_iso, seconds_to_human, utc_now
from learnsync.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

PLACEHOLDER_GRADE_NAME = "Grade Set"

ProgressCallback = Callable[[int], Awaitable[None] | None]


class SyncStatus(str, Enum):
    """Terminal status of a reconciliation run."""

    SUCCESS = "success"
    FAILED = "failed"
    CONFLICT = "conflict"


class SyncStep(str, Enum):
    """Protocol steps, in execution order."""

    GRADE = "grade"
    WIPE = "wipe"
    SUBJECTS = "subjects"
    TOPICS = "topics"
    LESSONS = "lessons"
    ASSESSMENTS = "assessments"


# Progress reported once each step has completed
STEP_PROGRESS: dict[SyncStep, int] = {
    SyncStep.GRADE: 5,
    SyncStep.WIPE: 20,
    SyncStep.SUBJECTS: 40,
    SyncStep.TOPICS: 60,
    SyncStep.LESSONS: 80,
    SyncStep.ASSESSMENTS: 95,
}

# Content kinds in replace order
_KIND_ORDER = [
    EntityKind.SUBJECTS,
    EntityKind.TOPICS,
    EntityKind.LESSONS,
    EntityKind.ASSESSMENTS,
]


@dataclass
class SyncResult:
    """Result of a reconciliation run.

    Attributes:
        status: Terminal status.
        grade_id: Grade the run targeted.
        grade_name: Resolved grade display name.
        subjects_synced: Number of subjects stored.
        topics_synced: Number of topics stored.
        lessons_synced: Number of lessons stored.
        assessments_synced: Number of assessments stored.
        progress: Last progress value reported.
        failed_step: Step that failed, if any.
        error: Error message if the run failed or was rejected.
        started_at: When the run started.
        completed_at: When the run ended.
    """

    status: SyncStatus
    grade_id: str | None = None
    grade_name: str | None = None
    subjects_synced: int = 0
    topics_synced: int = 0
    lessons_synced: int = 0
    assessments_synced: int = 0
    progress: int = 0
    failed_step: SyncStep | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def success(self) -> bool:
        """Check if the run completed successfully."""
        return self.status is SyncStatus.SUCCESS

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "status": self.status.value,
            "grade_id": self.grade_id,
            "grade_name": self.grade_name,
            "subjects_synced": self.subjects_synced,
            "topics_synced": self.topics_synced,
            "lessons_synced": self.lessons_synced,
            "assessments_synced": self.assessments_synced,
            "progress": self.progress,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.error,
            "started_at": format_iso(self.started_at),
            "completed_at": format_iso(self.completed_at),
            "duration_seconds": self.duration_seconds,
        }


class CurriculumSyncService:
    """Service reconciling the local mirror with the remote source.

    One run at a time: a call made while a run is in flight is rejected
    with status CONFLICT instead of being queued.

    Attributes:
        _store: Local store receiving the mirror.
        _gateway: Remote curriculum gateway.
        _session: Learner session holding the active grade and sync status.
        _event_bus: Optional bus receiving lifecycle events.
    """

    def __init__(
        self,
        store: LocalStore,
        gateway: CurriculumGateway,
        session: LearnerSession,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize the sync service.

        Args:
            store: Local store.
            gateway: Remote curriculum gateway.
            session: Learner session.
            event_bus: Optional event bus for sync.* events.
        """
        self._store = store
        self._gateway = gateway
        self._session = session
        self._event_bus = event_bus
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """Check if a run is in flight."""
        return self._lock.locked()

    async def reconcile(
        self,
        grade_id: str | None = None,
        *,
        full_refresh: bool = True,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Mirror one grade's curriculum into the local store.

        Never raises for remote or store failures: they are reported on
        the returned SyncResult.

        Args:
            grade_id: Grade to mirror. Defaults to the session's grade.
            full_refresh: Wipe all content before fetching. When False and
                the grade is unchanged, each kind is swapped in place.
            on_progress: Sync or async callable receiving progress values.

        Returns:
            SyncResult with counts and status.
        """
        if self._lock.locked():
            return self._rejected(grade_id)

        async with self._lock:
            return await self._run(grade_id, full_refresh, on_progress)

    async def change_grade(
        self,
        grade_id: str,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Switch the mirror to another grade.

        Wipes all content, mirrors the new grade and, on success, stores
        the new grade and its name on the learner profile.

        Args:
            grade_id: The new grade.
            on_progress: Sync or async callable receiving progress values.

        Returns:
            SyncResult with counts and status.
        """
        if self._lock.locked():
            return self._rejected(grade_id)

        async with self._lock:
            result = await self._run(grade_id, True, on_progress)
            if result.success and self._session.is_logged_in:
                try:
                    await self._session.set_grade(grade_id, result.grade_name)
                except StoreError as e:
                    logger.error("Could not persist grade %s on profile: %s", grade_id, str(e))
            return result

    # =========================================================================
    # Protocol
    # =========================================================================

    async def _run(
        self,
        grade_id: str | None,
        full_refresh: bool,
        on_progress: ProgressCallback | None,
    ) -> SyncResult:
        target = grade_id or self._session.grade_id
        result = SyncResult(status=SyncStatus.FAILED, grade_id=target, started_at=utc_now())

        if not target:
            result.error = "No grade selected"
            result.completed_at = utc_now()
            logger.warning("Curriculum sync skipped: no grade selected")
            return result

        self._session.sync_status = SyncState.DOWNLOADING
        await self._publish(EventTypes.Sync.STARTED, {"grade_id": target})
        logger.info("Curriculum sync started for grade %s", target)

        bind_context(grade_id=target)
        step = SyncStep.GRADE
        try:
            result.grade_name = await self._resolve_grade_name(target)
            await self._report(result, STEP_PROGRESS[step], on_progress)

            step = SyncStep.WIPE
            if full_refresh or target != self._session.grade_id:
                await self._store.clear_all()
            await self._report(result, STEP_PROGRESS[step], on_progress)

            step = SyncStep.SUBJECTS
            subjects = await self._gateway.fetch_subjects(target)
            if not subjects:
                return await self._finish_early(result, step, on_progress)
            subject_ids = await self._store.replace_kind(EntityKind.SUBJECTS, subjects)
            result.subjects_synced = len(subject_ids)
            await self._report(result, STEP_PROGRESS[step], on_progress)

            step = SyncStep.TOPICS
            topics = await self._gateway.fetch_topics(subject_ids)
            if not topics:
                return await self._finish_early(result, step, on_progress)
            topic_ids = await self._store.replace_kind(EntityKind.TOPICS, topics)
            result.topics_synced = len(topic_ids)
            await self._report(result, STEP_PROGRESS[step], on_progress)

            step = SyncStep.LESSONS
            lessons = await self._gateway.fetch_lessons(topic_ids)
            if not lessons:
                return await self._finish_early(result, step, on_progress)
            lesson_ids = await self._store.replace_kind(EntityKind.LESSONS, lessons)
            result.lessons_synced = len(lesson_ids)
            await self._report(result, STEP_PROGRESS[step], on_progress)

            step = SyncStep.ASSESSMENTS
            assessments = await self._gateway.fetch_assessments(lesson_ids)
            assessment_ids = await self._store.replace_kind(EntityKind.ASSESSMENTS, assessments)
            result.assessments_synced = len(assessment_ids)
            await self._report(result, STEP_PROGRESS[step], on_progress)

            return await self._succeed(result, on_progress)

        except (GatewayError, StoreError) as e:
            return await self._fail(result, step, e)
        except asyncio.CancelledError:
            self._session.sync_status = SyncState.ERROR
            logger.warning("Curriculum sync cancelled during %s step", step.value)
            raise
        except Exception as e:
            logger.exception("Unexpected error during %s step", step.value)
            return await self._fail(result, step, e)
        finally:
            clear_context()

    async def _resolve_grade_name(self, grade_id: str) -> str:
        """Resolve a grade's display name, falling back to a placeholder."""
        try:
            grade = await self._gateway.fetch_grade(grade_id)
        except GatewayError as e:
            logger.warning("Could not resolve name of grade %s: %s", grade_id, str(e))
            return PLACEHOLDER_GRADE_NAME

        if grade is None or not grade.name:
            logger.warning("Grade %s not found on remote, using placeholder name", grade_id)
            return PLACEHOLDER_GRADE_NAME
        return grade.name

    async def _finish_early(
        self,
        result: SyncResult,
        step: SyncStep,
        on_progress: ProgressCallback | None,
    ) -> SyncResult:
        """End a run whose batch for step came back empty."""
        remaining = _KIND_ORDER[_KIND_ORDER.index(EntityKind(step.value)) :]
        for kind in remaining:
            await self._store.replace_kind(kind, [])
        logger.info("No %s for grade %s, nothing further to sync", step.value, result.grade_id)
        return await self._succeed(result, on_progress)

    async def _succeed(
        self,
        result: SyncResult,
        on_progress: ProgressCallback | None,
    ) -> SyncResult:
        await self._report(result, 100, on_progress)
        result.status = SyncStatus.SUCCESS
        result.completed_at = utc_now()
        self._session.sync_status = SyncState.READY

        logger.info(
            "Curriculum sync completed in %s: grade=%s, subjects=%d, topics=%d, "
            "lessons=%d, assessments=%d",
            seconds_to_human(result.duration_seconds or 0.0),
            result.grade_id,
            result.subjects_synced,
            result.topics_synced,
            result.lessons_synced,
            result.assessments_synced,
        )
        await self._publish(EventTypes.Sync.COMPLETED, result.to_dict())
        return result

    async def _fail(self, result: SyncResult, step: SyncStep, error: Exception) -> SyncResult:
        result.status = SyncStatus.FAILED
        result.failed_step = step
        result.error = str(error)
        result.completed_at = utc_now()
        self._session.sync_status = SyncState.ERROR

        logger.error("Curriculum sync failed at %s step: %s", step.value, str(error))
        # A wipe without the lesson step leaves payloads with no lesson
        try:
            await self._store.prune_lesson_payloads()
        except StoreError as e:
            logger.warning("Could not prune lesson payloads after failed sync: %s", str(e))
        await self._publish(EventTypes.Sync.FAILED, result.to_dict())
        return result

    def _rejected(self, grade_id: str | None) -> SyncResult:
        now = utc_now()
        logger.warning("Curriculum sync rejected: a run is already in progress")
        return SyncResult(
            status=SyncStatus.CONFLICT,
            grade_id=grade_id,
            error="A sync is already in progress",
            started_at=now,
            completed_at=now,
        )

    async def _report(
        self,
        result: SyncResult,
        progress: int,
        on_progress: ProgressCallback | None,
    ) -> None:
        result.progress = progress
        await self._publish(
            EventTypes.Sync.PROGRESS,
            {"grade_id": result.grade_id, "progress": progress},
        )
        if on_progress is None:
            return
        try:
            outcome = on_progress(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning("Progress callback failed at %d: %s", progress, str(e))

    async def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event_type, payload)
