# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- A real local store on a temporary SQLite file
- An in-process fake of the remote curriculum source (httpx.MockTransport)
- Wired domain services
"""

import copy
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from learnsync.core.config import LocalStoreSettings, RemoteSourceSettings, SyncSettings
from learnsync.domains.curriculum.queries import CurriculumQueries
from learnsync.domains.curriculum.sync_service import CurriculumSyncService
from learnsync.domains.session import LearnerSession
from learnsync.infrastructure.database import LocalDatabase, LocalStore
from learnsync.infrastructure.events import EventBus, EventData
from learnsync.infrastructure.remote import CurriculumGateway

REMOTE_BASE_URL = "http://remote.test/rest/v1"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (real local store)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Sample Data
# =============================================================================


def _quiz(*answers: tuple[str, str]) -> dict[str, Any]:
    questions = []
    for index, (question, option) in enumerate(answers, start=1):
        questions.append(
            {
                "id": f"q{index}",
                "question_text": question,
                "options": [
                    {"id": f"q{index}-a", "text": option, "is_correct": True},
                    {"id": f"q{index}-b", "text": "Something else", "is_correct": False},
                ],
            }
        )
    return {"questions": questions}


SAMPLE_CURRICULUM: dict[str, list[dict[str, Any]]] = {
    "grades": [
        {"id": "g-1", "name": "Grade 1", "order_index": 1},
        {"id": "g-2", "name": "Grade 2", "order_index": 2},
    ],
    "subjects": [
        {"id": "s-math", "grade_id": "g-1", "title": "Mathematics", "subtext": "Numbers"},
        {"id": "s-sci", "grade_id": "g-1", "title": "Science", "subtext": "Nature"},
        {"id": "s-hist", "grade_id": "g-2", "title": "History", "subtext": "The past"},
    ],
    "topics": [
        {"id": "t-frac", "subject_id": "s-math", "title": "Fractions", "subtopic": "Parts"},
        {"id": "t-geo", "subject_id": "s-math", "title": "Geometry", "subtopic": None},
        {"id": "t-plants", "subject_id": "s-sci", "title": "Plants", "subtopic": "Growth"},
        {"id": "t-rome", "subject_id": "s-hist", "title": "Ancient Rome", "subtopic": None},
    ],
    "lessons": [
        {
            "id": "l-halves",
            "topic_id": "t-frac",
            "title": "Halves and Quarters",
            "content": "Cutting a cake in two.",
            "media_url": "https://cdn.test/halves.mp4",
            "media_type": "video",
        },
        {
            "id": "l-equiv",
            "topic_id": "t-frac",
            "title": "Equivalent Fractions",
            "content": "Two quarters make a half.",
            "media_url": "https://cdn.test/equiv.pdf",
            "media_type": "pdf",
        },
        {
            "id": "l-shapes",
            "topic_id": "t-geo",
            "title": "Shapes",
            "content": "Triangles and squares.",
            "media_url": None,
            "media_type": None,
        },
        {
            "id": "l-roots",
            "topic_id": "t-plants",
            "title": "Roots",
            "content": "Roots drink water.",
            "media_url": "https://cdn.test/roots.mp4",
            "media_type": "video",
        },
        {
            "id": "l-forum",
            "topic_id": "t-rome",
            "title": "The Forum",
            "content": "Markets and speeches.",
            "media_url": None,
            "media_type": None,
        },
    ],
    "assessments": [
        {
            "id": "a-frac",
            "lesson_id": "l-halves",
            "title": "Fractions Quiz",
            "quiz_data": _quiz(("Half of 4?", "2"), ("Quarter of 8?", "2")),
        },
        {
            "id": "a-shapes",
            "lesson_id": "l-shapes",
            "title": "Shapes Quiz",
            "quiz_data": _quiz(("Sides of a triangle?", "3")),
        },
        {
            "id": "a-forum",
            "lesson_id": "l-forum",
            "title": "Rome Quiz",
            "quiz_data": _quiz(("Where did Romans trade?", "The Forum")),
        },
    ],
}


# =============================================================================
# Fake Remote Source
# =============================================================================


class FakeCurriculumSource:
    """In-process stand-in for the PostgREST curriculum API.

    Supports the eq., in.() filters, limit and select used by the gateway.
    Collections listed in fail_on answer with HTTP 500.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        self.tables = tables
        self.fail_on: set[str] = set()
        self.requests: list[httpx.Request] = []

    @property
    def requested_tables(self) -> list[str]:
        return [r.url.path.rsplit("/", 1)[-1] for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        table = request.url.path.rsplit("/", 1)[-1]
        if table in self.fail_on:
            return httpx.Response(500, json={"message": f"{table} unavailable"})

        rows = list(self.tables.get(table, []))
        limit = None
        for key, value in request.url.params.multi_items():
            if key in ("select", "order"):
                continue
            if key == "limit":
                limit = int(value)
            elif value.startswith("eq."):
                rows = [r for r in rows if str(r.get(key)) == value[3:]]
            elif value.startswith("in.(") and value.endswith(")"):
                wanted = {v.strip('"') for v in value[4:-1].split(",") if v}
                rows = [r for r in rows if r.get(key) in wanted]

        if limit is not None:
            rows = rows[:limit]
        return httpx.Response(200, json=rows)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=REMOTE_BASE_URL,
            transport=httpx.MockTransport(self.handler),
        )


class EventRecorder:
    """Collects published events for assertions."""

    def __init__(self) -> None:
        self.events: list[EventData] = []

    async def __call__(self, event: EventData) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.event_type for e in self.events]


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def store_settings(tmp_path) -> LocalStoreSettings:
    """Local store settings pointing at a temporary SQLite file."""
    return LocalStoreSettings(path=str(tmp_path / "learnsync-test.db"))


@pytest_asyncio.fixture
async def database(store_settings: LocalStoreSettings) -> AsyncGenerator[LocalDatabase, None]:
    """Create a local database with the schema in place."""
    db = LocalDatabase(store_settings)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def event_recorder(event_bus: EventBus) -> EventRecorder:
    """Record every event published on the bus."""
    recorder = EventRecorder()
    event_bus.subscribe("*", recorder)
    return recorder


@pytest.fixture
def store(database: LocalDatabase, event_bus: EventBus) -> LocalStore:
    return LocalStore(database, event_bus)


# =============================================================================
# Remote Fixtures
# =============================================================================


@pytest.fixture
def curriculum() -> dict[str, list[dict[str, Any]]]:
    """A fresh, mutable copy of the sample curriculum."""
    return copy.deepcopy(SAMPLE_CURRICULUM)


@pytest.fixture
def remote(curriculum: dict[str, list[dict[str, Any]]]) -> FakeCurriculumSource:
    return FakeCurriculumSource(curriculum)


@pytest_asyncio.fixture
async def gateway(remote: FakeCurriculumSource):
    """Gateway bound to the fake remote source."""
    client = remote.client()
    yield CurriculumGateway(RemoteSourceSettings(base_url=REMOTE_BASE_URL), client=client)
    await client.aclose()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def session(store: LocalStore) -> LearnerSession:
    return await LearnerSession.restore(store)


@pytest.fixture
def sync_service(store, gateway, session, event_bus) -> CurriculumSyncService:
    return CurriculumSyncService(store, gateway, session, event_bus)


@pytest.fixture
def queries(store: LocalStore) -> CurriculumQueries:
    return CurriculumQueries(store, SyncSettings())
