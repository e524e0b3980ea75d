# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Remote curriculum gateway.

Read-only client for the remote curriculum source, a PostgREST-style HTTP
API. Every call is a single filtered collection read:

    GET /subjects?select=*&grade_id=eq.<id>
    GET /topics?select=*&subject_id=in.("a","b")
    GET /grades?select=*&order=order_index.asc

Rows are validated into curriculum record schemas. There is no caching and
no retry: a transport failure, a non-2xx status or an invalid payload
raises GatewayError and the caller decides what to do.

Example:
    >>> async with CurriculumGateway(settings.remote) as gateway:
    ...     subjects = await gateway.fetch_subjects("grade-2")
    ...     topics = await gateway.fetch_topics([s.id for s in subjects])
"""

import logging
from collections.abc import Iterable
from typing import Any, Self, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from learnsync.core.config.settings import RemoteSourceSettings
from learnsync.domains.curriculum.schemas import (
    AssessmentRecord,
    GradeRecord,
    LessonRecord,
    SubjectRecord,
    TopicRecord,
)

logger = logging.getLogger(__name__)

# Keeps in.(...) filters well inside common URL length limits
MAX_IDS_PER_REQUEST = 100

RecordT = TypeVar("RecordT", bound=BaseModel)


class GatewayError(Exception):
    """Exception raised when the remote source cannot be read.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying transport, status or validation error.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def in_filter(ids: Iterable[str]) -> str:
    """Build a PostgREST in-set filter value."""
    return "in.(" + ",".join(_quote(str(i)) for i in ids) + ")"


class CurriculumGateway:
    """Typed reads against the remote curriculum collections.

    Attributes:
        _settings: Remote source configuration.
        _client: HTTP client for API requests.
    """

    def __init__(
        self,
        settings: RemoteSourceSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            settings: Remote source configuration.
            client: Optional preconfigured client. When given, the caller
                keeps ownership and close() leaves it open.
        """
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            headers={"Accept": "application/json", **settings.auth_headers},
            timeout=settings.timeout,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if the gateway created it."""
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # Collections
    # =========================================================================

    async def fetch_subjects(self, grade_id: str) -> list[SubjectRecord]:
        """Fetch all subjects of a grade."""
        return await self._fetch_rows(
            "/subjects",
            {"grade_id": f"eq.{grade_id}"},
            SubjectRecord,
        )

    async def fetch_topics(self, subject_ids: Iterable[str]) -> list[TopicRecord]:
        """Fetch all topics whose subject_id is in subject_ids."""
        return await self._fetch_children("/topics", "subject_id", subject_ids, TopicRecord)

    async def fetch_lessons(self, topic_ids: Iterable[str]) -> list[LessonRecord]:
        """Fetch all lessons whose topic_id is in topic_ids."""
        return await self._fetch_children("/lessons", "topic_id", topic_ids, LessonRecord)

    async def fetch_assessments(self, lesson_ids: Iterable[str]) -> list[AssessmentRecord]:
        """Fetch all assessments whose lesson_id is in lesson_ids."""
        return await self._fetch_children(
            "/assessments", "lesson_id", lesson_ids, AssessmentRecord
        )

    async def fetch_grade(self, grade_id: str) -> GradeRecord | None:
        """Fetch a single grade, or None when the remote has no such row."""
        rows = await self._fetch_rows(
            "/grades",
            {"id": f"eq.{grade_id}", "limit": "1"},
            GradeRecord,
        )
        return rows[0] if rows else None

    async def list_grades(self) -> list[GradeRecord]:
        """List every grade in display order."""
        return await self._fetch_rows(
            "/grades",
            {"order": "order_index.asc"},
            GradeRecord,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _fetch_children(
        self,
        path: str,
        parent_key: str,
        parent_ids: Iterable[str],
        model: type[RecordT],
    ) -> list[RecordT]:
        ids = list(dict.fromkeys(parent_ids))
        if not ids:
            return []

        records: list[RecordT] = []
        for start in range(0, len(ids), MAX_IDS_PER_REQUEST):
            chunk = ids[start : start + MAX_IDS_PER_REQUEST]
            records.extend(
                await self._fetch_rows(path, {parent_key: in_filter(chunk)}, model)
            )
        return records

    async def _fetch_rows(
        self,
        path: str,
        params: dict[str, str],
        model: type[RecordT],
    ) -> list[RecordT]:
        """GET a collection and validate every row.

        Raises:
            GatewayError: On transport errors, non-2xx responses or rows
                that do not validate.
        """
        try:
            response = await self._client.get(path, params={"select": "*", **params})
            response.raise_for_status()
            data: Any = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Remote read %s failed with status %d", path, e.response.status_code
            )
            raise GatewayError(
                f"GET {path} returned {e.response.status_code}", e
            ) from e
        except httpx.HTTPError as e:
            logger.error("Remote read %s failed: %s", path, str(e))
            raise GatewayError(f"GET {path} failed", e) from e
        except ValueError as e:
            raise GatewayError(f"GET {path} returned invalid JSON", e) from e

        if not isinstance(data, list):
            raise GatewayError(f"GET {path} did not return a list of rows")

        try:
            records = TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
        except ValidationError as e:
            raise GatewayError(f"GET {path} returned invalid rows", e) from e

        logger.debug("Fetched %d rows from %s", len(records), path)
        return records
