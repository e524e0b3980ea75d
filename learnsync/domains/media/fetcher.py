# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-lesson media downloads for offline use.

A lesson's media (video or PDF) is fetched from its media_url and stored in
the local store together with the lesson's offline flag, in one
transaction. Downloads are independent of reconciliation and never raise:
every outcome is reported as a MediaResult.

Rules:
- A lesson that is missing or has no media is skipped.
- A lesson whose media is already offline is skipped unless forced.
- A failed download writes nothing, so the prior state is kept.
- Concurrent downloads of the same lesson share one transfer.

Example:
    >>> fetcher = MediaFetcher(store, settings.media, event_bus)
    >>> result = await fetcher.download("lesson-7")
    >>> result.status
    <MediaStatus.DOWNLOADED: 'downloaded'>
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from learnsync.core.config.settings import MediaSettings
from learnsync.infrastructure.database import EntityKind, LocalStore, StoreError
from learnsync.infrastructure.events import EventBus, EventTypes

logger = logging.getLogger(__name__)


class MediaStatus(str, Enum):
    """Outcome of a media download."""

    DOWNLOADED = "downloaded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class MediaResult:
    """Result of a media download.

    Attributes:
        lesson_id: Lesson the download was for.
        status: Outcome.
        size_bytes: Stored payload size when downloaded.
        content_type: Content type reported by the media host.
        reason: Why the download was skipped.
        error: Error message if the download failed.
    """

    lesson_id: str
    status: MediaStatus
    size_bytes: int = 0
    content_type: str | None = None
    reason: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the call completed without error."""
        return self.status is not MediaStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "lesson_id": self.lesson_id,
            "status": self.status.value,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
            "reason": self.reason,
            "error": self.error,
        }


class MediaDownloadError(Exception):
    """Exception raised when a media payload cannot be accepted."""

    pass


class MediaFetcher:
    """Downloads lesson media into the local store.

    Attributes:
        _store: Local store receiving payloads.
        _settings: Download limits.
        _event_bus: Optional bus receiving media.* events.
        _client: HTTP client used for downloads.
        _inflight: Running download task per lesson id.
    """

    def __init__(
        self,
        store: LocalStore,
        settings: MediaSettings,
        event_bus: EventBus | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            store: Local store.
            settings: Media download settings.
            event_bus: Optional event bus.
            client: Optional preconfigured client. When given, the caller
                keeps ownership and close() leaves it open.
        """
        self._store = store
        self._settings = settings
        self._event_bus = event_bus
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.timeout,
            follow_redirects=settings.follow_redirects,
        )
        self._inflight: dict[str, asyncio.Task[MediaResult]] = {}

    async def close(self) -> None:
        """Cancel running downloads and close the HTTP client if owned."""
        for task in list(self._inflight.values()):
            task.cancel()
        self._inflight.clear()
        if self._owns_client:
            await self._client.aclose()

    def is_downloading(self, lesson_id: str) -> bool:
        return lesson_id in self._inflight

    async def download(self, lesson_id: str, *, force: bool = False) -> MediaResult:
        """Download a lesson's media for offline use.

        A call for a lesson that is already downloading joins the running
        transfer instead of starting another one.

        Args:
            lesson_id: Lesson to download.
            force: Download again even if the media is already offline.

        Returns:
            MediaResult describing the outcome.
        """
        task = self._inflight.get(lesson_id)
        if task is None:
            task = asyncio.create_task(self._download(lesson_id, force))
            self._inflight[lesson_id] = task
            task.add_done_callback(lambda done: self._forget(lesson_id, done))
        else:
            logger.debug("Joining running download for lesson %s", lesson_id)
        return await asyncio.shield(task)

    async def remove(self, lesson_id: str) -> bool:
        """Drop a lesson's offline media and clear its offline flag.

        Returns:
            True if a payload was removed.
        """
        removed = await self._store.detach_lesson_payload(lesson_id)
        if removed:
            logger.info("Removed offline media for lesson %s", lesson_id)
            await self._publish(EventTypes.Media.REMOVED, {"lesson_id": lesson_id})
        return removed

    # =========================================================================
    # Internals
    # =========================================================================

    def _forget(self, lesson_id: str, task: asyncio.Task[MediaResult]) -> None:
        if self._inflight.get(lesson_id) is task:
            del self._inflight[lesson_id]

    async def _download(self, lesson_id: str, force: bool) -> MediaResult:
        try:
            lesson = await self._store.get(EntityKind.LESSONS, lesson_id)
        except StoreError as e:
            return await self._failed(lesson_id, e)

        if lesson is None:
            return self._skipped(lesson_id, "lesson not found")
        if not lesson.media_url:
            return self._skipped(lesson_id, "lesson has no media")
        if lesson.is_offline and not force:
            return self._skipped(lesson_id, "media already available offline")

        source_url = lesson.media_url
        try:
            payload, content_type = await self._fetch(source_url)
            stored = await self._store.attach_lesson_payload(
                lesson_id, source_url, payload, content_type
            )
        except (httpx.HTTPError, httpx.InvalidURL, MediaDownloadError, StoreError) as e:
            return await self._failed(lesson_id, e)

        if not stored:
            return await self._failed(
                lesson_id,
                MediaDownloadError("lesson media changed during download"),
            )

        result = MediaResult(
            lesson_id=lesson_id,
            status=MediaStatus.DOWNLOADED,
            size_bytes=len(payload),
            content_type=content_type,
        )
        logger.info("Downloaded %d bytes of media for lesson %s", len(payload), lesson_id)
        await self._publish(EventTypes.Media.DOWNLOADED, result.to_dict())
        return result

    async def _fetch(self, url: str) -> tuple[bytes, str | None]:
        """Stream a payload into memory, enforcing the size limit.

        Raises:
            httpx.HTTPError: On transport errors and non-2xx responses.
            MediaDownloadError: If the payload exceeds max_bytes.
        """
        max_bytes = self._settings.max_bytes
        async with self._client.stream("GET", url) as response:
            response.raise_for_status()

            declared = response.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise MediaDownloadError(
                    f"payload of {declared} bytes exceeds limit of {max_bytes}"
                )

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise MediaDownloadError(f"payload exceeds limit of {max_bytes} bytes")

            return bytes(buffer), response.headers.get("Content-Type")

    def _skipped(self, lesson_id: str, reason: str) -> MediaResult:
        logger.debug("Skipping media download for lesson %s: %s", lesson_id, reason)
        return MediaResult(lesson_id=lesson_id, status=MediaStatus.SKIPPED, reason=reason)

    async def _failed(self, lesson_id: str, error: Exception) -> MediaResult:
        logger.error("Media download failed for lesson %s: %s", lesson_id, str(error))
        result = MediaResult(lesson_id=lesson_id, status=MediaStatus.FAILED, error=str(error))
        await self._publish(EventTypes.Media.FAILED, result.to_dict())
        return result

    async def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event_type, payload)
