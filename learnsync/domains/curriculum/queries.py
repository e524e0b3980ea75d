# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only curriculum queries served from the local store.

Every read goes to the local store, never to the remote source, so all of
these work offline. Navigation follows the parent-key indexes:

    grade_id -> subjects -> topics -> lessons -> assessments

Counts use SQL COUNT and never load rows.

Example:
    >>> queries = CurriculumQueries(store, settings.sync)
    >>> subjects = await queries.subjects_for_grade("grade-4")
    >>> results = await queries.search("fract")
"""

import asyncio
import logging
from urllib.parse import quote

from learnsync.core.config.settings import SyncSettings
from learnsync.domains.curriculum.schemas import (
    AssessmentOverview,
    AssessmentRecord,
    LessonRecord,
    SearchKind,
    SearchResult,
    SubjectRecord,
    SubjectSummary,
    TopicRecord,
)
from learnsync.infrastructure.database import EntityKind, LocalStore

logger = logging.getLogger(__name__)


def subject_href(subject_id: str) -> str:
    return f"/topics?id={quote(subject_id)}"


def topic_href(topic_id: str) -> str:
    return f"/lessons?topicId={quote(topic_id)}"


def lesson_href(lesson_id: str, topic_id: str) -> str:
    return f"/lessons/view?lessonId={quote(lesson_id)}&topicId={quote(topic_id)}"


class CurriculumQueries:
    """Read-only queries over the local curriculum mirror.

    Attributes:
        _store: Local store.
        _settings: Search and listing limits.
    """

    def __init__(self, store: LocalStore, settings: SyncSettings | None = None) -> None:
        self._store = store
        self._settings = settings or SyncSettings()

    @property
    def settings(self) -> SyncSettings:
        return self._settings

    # =========================================================================
    # Navigation
    # =========================================================================

    async def subjects_for_grade(self, grade_id: str) -> list[SubjectRecord]:
        rows = await self._store.get_all_where(EntityKind.SUBJECTS, "grade_id", grade_id)
        return [SubjectRecord.model_validate(row) for row in rows]

    async def topics_for_subject(self, subject_id: str) -> list[TopicRecord]:
        rows = await self._store.get_all_where(EntityKind.TOPICS, "subject_id", subject_id)
        return [TopicRecord.model_validate(row) for row in rows]

    async def lessons_for_topic(self, topic_id: str) -> list[LessonRecord]:
        rows = await self._store.get_all_where(EntityKind.LESSONS, "topic_id", topic_id)
        return [LessonRecord.model_validate(row) for row in rows]

    async def assessments_for_lesson(self, lesson_id: str) -> list[AssessmentRecord]:
        rows = await self._store.get_all_where(EntityKind.ASSESSMENTS, "lesson_id", lesson_id)
        return [AssessmentRecord.model_validate(row) for row in rows]

    async def assessments_for_subject(self, subject_id: str) -> list[AssessmentRecord]:
        """Get every assessment under a subject, through its topics and lessons."""
        topics = await self._store.get_all_where(EntityKind.TOPICS, "subject_id", subject_id)
        lessons = await self._store.get_all_where(
            EntityKind.LESSONS, "topic_id", [t.id for t in topics]
        )
        rows = await self._store.get_all_where(
            EntityKind.ASSESSMENTS, "lesson_id", [lesson.id for lesson in lessons]
        )
        return [AssessmentRecord.model_validate(row) for row in rows]

    async def assessments_for_grade(self, grade_id: str) -> list[AssessmentOverview]:
        """Get every assessment of a grade with its lesson, topic and subject titles.

        Ancestors missing from the store fall back to generic labels.
        """
        subjects = await self._store.get_all_where(EntityKind.SUBJECTS, "grade_id", grade_id)
        topics = await self._store.get_all_where(
            EntityKind.TOPICS, "subject_id", [s.id for s in subjects]
        )
        lessons = await self._store.get_all_where(
            EntityKind.LESSONS, "topic_id", [t.id for t in topics]
        )
        assessments = await self._store.get_all_where(
            EntityKind.ASSESSMENTS, "lesson_id", [lesson.id for lesson in lessons]
        )

        subjects_by_id = {s.id: s for s in subjects}
        topics_by_id = {t.id: t for t in topics}
        lessons_by_id = {lesson.id: lesson for lesson in lessons}

        overviews = []
        for row in assessments:
            lesson = lessons_by_id.get(row.lesson_id)
            topic = topics_by_id.get(lesson.topic_id) if lesson else None
            subject = subjects_by_id.get(topic.subject_id) if topic else None
            overviews.append(
                AssessmentOverview(
                    assessment=AssessmentRecord.model_validate(row),
                    lesson_title=lesson.title if lesson else "Lesson",
                    topic_title=topic.title if topic else "Topic",
                    subject_title=subject.title if subject else "Subject",
                )
            )
        return overviews

    async def offline_lessons(self) -> list[LessonRecord]:
        """Get lessons whose media is available offline."""
        rows = await self._store.get_all_where(EntityKind.LESSONS, "is_offline", True)
        return [LessonRecord.model_validate(row) for row in rows]

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_subject(self, subject_id: str) -> SubjectRecord | None:
        row = await self._store.get(EntityKind.SUBJECTS, subject_id)
        return SubjectRecord.model_validate(row) if row else None

    async def get_topic(self, topic_id: str) -> TopicRecord | None:
        row = await self._store.get(EntityKind.TOPICS, topic_id)
        return TopicRecord.model_validate(row) if row else None

    async def get_lesson(self, lesson_id: str) -> LessonRecord | None:
        row = await self._store.get(EntityKind.LESSONS, lesson_id)
        return LessonRecord.model_validate(row) if row else None

    async def get_assessment(self, assessment_id: str) -> AssessmentRecord | None:
        row = await self._store.get(EntityKind.ASSESSMENTS, assessment_id)
        return AssessmentRecord.model_validate(row) if row else None

    # =========================================================================
    # Counts
    # =========================================================================

    async def subject_summary(self, subject_id: str) -> SubjectSummary:
        """Count topics and lessons under a subject."""
        topic_count = await self._store.count(EntityKind.TOPICS, "subject_id", subject_id)
        lesson_count = await self._store.count_lessons_for_subject(subject_id)
        return SubjectSummary(
            subject_id=subject_id,
            topic_count=topic_count,
            lesson_count=lesson_count,
        )

    async def lesson_count_for_topic(self, topic_id: str) -> int:
        return await self._store.count(EntityKind.LESSONS, "topic_id", topic_id)

    # =========================================================================
    # Search
    # =========================================================================

    async def search(self, query: str) -> list[SearchResult]:
        """Case-insensitive title search across subjects, topics and lessons.

        Queries shorter than the configured minimum (after trimming) return
        nothing. Results are ordered subjects, then topics, then lessons,
        and capped at the configured limit.

        Args:
            query: Raw query text.

        Returns:
            Matching search results.
        """
        needle = query.strip()
        if len(needle) < self._settings.search_min_length:
            return []

        limit = self._settings.search_result_limit
        results: list[SearchResult] = []

        for row in await self._store.scan_titles(EntityKind.SUBJECTS, needle, limit):
            results.append(
                SearchResult(
                    kind=SearchKind.SUBJECT,
                    id=row.id,
                    title=row.title,
                    subtext="Subject",
                    href=subject_href(row.id),
                )
            )

        if len(results) < limit:
            remaining = limit - len(results)
            for row in await self._store.scan_titles(EntityKind.TOPICS, needle, remaining):
                results.append(
                    SearchResult(
                        kind=SearchKind.TOPIC,
                        id=row.id,
                        title=row.title,
                        subtext="Topic",
                        href=topic_href(row.id),
                    )
                )

        if len(results) < limit:
            remaining = limit - len(results)
            for row in await self._store.scan_titles(EntityKind.LESSONS, needle, remaining):
                results.append(
                    SearchResult(
                        kind=SearchKind.LESSON,
                        id=row.id,
                        title=row.title,
                        subtext="Lesson",
                        href=lesson_href(row.id, row.topic_id),
                    )
                )

        logger.debug("Search for %r returned %d results", needle, len(results))
        return results


class SearchDebouncer:
    """Delays interactive searches until typing pauses.

    Each submit() cancels the pending search, if any, and schedules a new
    one after the delay. Awaiting the returned task yields the results, or
    raises CancelledError when a later submit superseded it.

    Example:
        >>> debouncer = SearchDebouncer(queries)
        >>> debouncer.submit("fr")
        >>> task = debouncer.submit("fractions")
        >>> results = await task
    """

    def __init__(self, queries: CurriculumQueries, delay_ms: int | None = None) -> None:
        self._queries = queries
        if delay_ms is None:
            delay_ms = queries.settings.search_debounce_ms
        self._delay = delay_ms / 1000
        self._pending: asyncio.Task[list[SearchResult]] | None = None

    def submit(self, query: str) -> "asyncio.Task[list[SearchResult]]":
        """Schedule a search, superseding the pending one."""
        self.cancel()
        self._pending = asyncio.create_task(self._search_later(query))
        return self._pending

    def cancel(self) -> None:
        """Cancel the pending search, if any."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _search_later(self, query: str) -> list[SearchResult]:
        await asyncio.sleep(self._delay)
        return await self._queries.search(query)
