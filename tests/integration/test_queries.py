# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for curriculum queries over the local store."""

import asyncio

import pytest
import pytest_asyncio

from learnsync.core.config import SyncSettings
from learnsync.domains.curriculum import (
    CurriculumQueries,
    SearchDebouncer,
    SearchKind,
)
from learnsync.infrastructure.database import EntityKind, LocalStore

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def seeded(store: LocalStore, curriculum) -> LocalStore:
    """Store holding the full sample curriculum for every grade."""
    for kind in EntityKind:
        await store.bulk_put(kind, curriculum[kind.value])
    return store


class TestNavigation:
    """Tests for parent-to-child navigation."""

    @pytest.mark.asyncio
    async def test_subjects_for_grade(self, seeded, queries) -> None:
        subjects = await queries.subjects_for_grade("g-1")

        assert {s.id for s in subjects} == {"s-math", "s-sci"}
        assert all(s.grade_id == "g-1" for s in subjects)

    @pytest.mark.asyncio
    async def test_topics_and_lessons(self, seeded, queries) -> None:
        topics = await queries.topics_for_subject("s-math")
        lessons = await queries.lessons_for_topic("t-frac")

        assert {t.id for t in topics} == {"t-frac", "t-geo"}
        assert {lesson.id for lesson in lessons} == {"l-halves", "l-equiv"}

    @pytest.mark.asyncio
    async def test_unknown_parent_returns_empty(self, seeded, queries) -> None:
        assert await queries.subjects_for_grade("g-99") == []
        assert await queries.topics_for_subject("nope") == []

    @pytest.mark.asyncio
    async def test_assessments_for_lesson(self, seeded, queries) -> None:
        assessments = await queries.assessments_for_lesson("l-halves")

        assert [a.id for a in assessments] == ["a-frac"]
        assert len(assessments[0].quiz_data.questions) == 2

    @pytest.mark.asyncio
    async def test_assessments_for_subject(self, seeded, queries) -> None:
        """Test subject assessments are gathered through topics and lessons."""
        assessments = await queries.assessments_for_subject("s-math")

        assert {a.id for a in assessments} == {"a-frac", "a-shapes"}

    @pytest.mark.asyncio
    async def test_assessments_for_grade_carry_titles(self, seeded, queries) -> None:
        """Test grade assessments are enriched with ancestor titles."""
        overviews = await queries.assessments_for_grade("g-1")
        by_id = {o.assessment.id: o for o in overviews}

        assert set(by_id) == {"a-frac", "a-shapes"}
        assert by_id["a-frac"].lesson_title == "Halves and Quarters"
        assert by_id["a-frac"].topic_title == "Fractions"
        assert by_id["a-frac"].subject_title == "Mathematics"
        assert by_id["a-shapes"].topic_title == "Geometry"

    @pytest.mark.asyncio
    async def test_offline_lessons(self, seeded, queries) -> None:
        """Test only lessons with a stored payload are listed offline."""
        await seeded.attach_lesson_payload(
            "l-halves", "https://cdn.test/halves.mp4", b"video", "video/mp4"
        )

        offline = await queries.offline_lessons()

        assert [lesson.id for lesson in offline] == ["l-halves"]
        assert offline[0].is_offline is True


class TestLookups:
    """Tests for single record lookups and counts."""

    @pytest.mark.asyncio
    async def test_getters(self, seeded, queries) -> None:
        assert (await queries.get_subject("s-sci")).title == "Science"
        assert (await queries.get_topic("t-geo")).subtopic is None
        lesson = await queries.get_lesson("l-equiv")
        assert lesson.media_type == "document"
        assert lesson.has_media
        assert (await queries.get_assessment("a-forum")).lesson_id == "l-forum"

    @pytest.mark.asyncio
    async def test_missing_records(self, seeded, queries) -> None:
        assert await queries.get_subject("missing") is None
        assert await queries.get_lesson("missing") is None

    @pytest.mark.asyncio
    async def test_subject_summary(self, seeded, queries) -> None:
        summary = await queries.subject_summary("s-math")

        assert summary.subject_id == "s-math"
        assert summary.topic_count == 2
        assert summary.lesson_count == 3

    @pytest.mark.asyncio
    async def test_lesson_count_for_topic(self, seeded, queries) -> None:
        assert await queries.lesson_count_for_topic("t-frac") == 2
        assert await queries.lesson_count_for_topic("t-empty") == 0


class TestSearch:
    """Tests for title search."""

    @pytest.mark.asyncio
    async def test_short_query_returns_nothing(self, seeded, queries) -> None:
        assert await queries.search("m") == []
        assert await queries.search("   m  ") == []

    @pytest.mark.asyncio
    async def test_case_insensitive_substring(self, seeded, queries) -> None:
        results = await queries.search("  MATH ")

        assert [(r.kind, r.id) for r in results] == [(SearchKind.SUBJECT, "s-math")]
        assert results[0].subtext == "Subject"
        assert results[0].href == "/topics?id=s-math"

    @pytest.mark.asyncio
    async def test_results_ordered_by_kind(self, seeded, queries) -> None:
        """Test topics come before lessons in mixed results."""
        results = await queries.search("fract")

        assert [(r.kind, r.id) for r in results] == [
            (SearchKind.TOPIC, "t-frac"),
            (SearchKind.LESSON, "l-equiv"),
        ]
        assert results[0].href == "/lessons?topicId=t-frac"
        assert results[1].href == "/lessons/view?lessonId=l-equiv&topicId=t-frac"
        assert results[1].subtext == "Lesson"

    @pytest.mark.asyncio
    async def test_results_are_capped(self, store, queries) -> None:
        """Test search never returns more than the configured limit."""
        await store.bulk_put(
            EntityKind.SUBJECTS,
            [{"id": f"s-{i}", "grade_id": "g-1", "title": f"Drill {i}"} for i in range(4)],
        )
        await store.bulk_put(
            EntityKind.LESSONS,
            [{"id": f"l-{i}", "topic_id": "t-1", "title": f"Drill {i}"} for i in range(12)],
        )

        results = await queries.search("drill")

        assert len(results) == 10
        assert [r.kind for r in results[:4]] == [SearchKind.SUBJECT] * 4
        assert all(r.kind is SearchKind.LESSON for r in results[4:])

    @pytest.mark.asyncio
    async def test_custom_limits(self, seeded) -> None:
        queries = CurriculumQueries(seeded, SyncSettings(search_result_limit=1, search_min_length=1))

        results = await queries.search("r")

        assert len(results) == 1


class TestSearchDebouncer:
    """Tests for debounced interactive search."""

    @pytest.mark.asyncio
    async def test_latest_query_wins(self, seeded, queries) -> None:
        debouncer = SearchDebouncer(queries, delay_ms=20)

        first = debouncer.submit("fr")
        second = debouncer.submit("fract")

        with pytest.raises(asyncio.CancelledError):
            await first
        results = await second
        assert [r.id for r in results] == ["t-frac", "l-equiv"]

    @pytest.mark.asyncio
    async def test_cancel_pending(self, seeded, queries) -> None:
        debouncer = SearchDebouncer(queries, delay_ms=1000)

        task = debouncer.submit("math")
        debouncer.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()
