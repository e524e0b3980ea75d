# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Offline engine facade.

Wires configuration, the local store, the remote gateway and the domain
services into one object with an explicit lifecycle.

Example:
    >>> async with await OfflineEngine.open() as engine:
    ...     await engine.session.login(LearnerProfile(full_name="Ada", grade_id="g-4"))
    ...     result = await engine.sync.reconcile()
    ...     subjects = await engine.queries.subjects_for_grade("g-4")
"""

import logging
from typing import Self

from learnsync.core.config import Settings, get_settings
from learnsync.domains.curriculum.queries import CurriculumQueries
from learnsync.domains.curriculum.sync_service import CurriculumSyncService
from learnsync.domains.media import MediaFetcher
from learnsync.domains.recency import RecencyTracker
from learnsync.domains.session import LearnerSession
from learnsync.infrastructure.database import LocalDatabase, LocalStore
from learnsync.infrastructure.events import EventBus
from learnsync.infrastructure.remote import CurriculumGateway
from learnsync.utils.logging import setup_logging

logger = logging.getLogger(__name__)


class OfflineEngine:
    """All learnsync components bound to one local store.

    Attributes:
        settings: Application settings.
        event_bus: Bus carrying store, sync and media events.
        database: Local database.
        store: Local store.
        gateway: Remote curriculum gateway.
        session: Learner session.
        sync: Reconciliation service.
        media: Media fetcher.
        recency: Recently visited subjects.
        queries: Read-only curriculum queries.
    """

    def __init__(
        self,
        settings: Settings,
        event_bus: EventBus,
        database: LocalDatabase,
        store: LocalStore,
        gateway: CurriculumGateway,
        session: LearnerSession,
    ) -> None:
        self.settings = settings
        self.event_bus = event_bus
        self.database = database
        self.store = store
        self.gateway = gateway
        self.session = session
        self.sync = CurriculumSyncService(store, gateway, session, event_bus)
        self.media = MediaFetcher(store, settings.media, event_bus)
        self.recency = RecencyTracker(store, limit=settings.sync.recent_subjects_limit)
        self.queries = CurriculumQueries(store, settings.sync)

    @classmethod
    async def open(
        cls,
        settings: Settings | None = None,
        gateway: CurriculumGateway | None = None,
        *,
        configure_logging: bool = False,
    ) -> Self:
        """Open the local store and build every component.

        Args:
            settings: Settings to use. Defaults to get_settings().
            gateway: Optional gateway, e.g. one bound to a test transport.
            configure_logging: Install the structlog configuration first.

        Returns:
            A ready engine. Call close() when done.

        Raises:
            StoreError: If the local store cannot be opened.
        """
        settings = settings or get_settings()
        if configure_logging:
            setup_logging(settings)

        event_bus = EventBus()
        database = LocalDatabase(settings.local_store)
        try:
            await database.create_schema()
            store = LocalStore(database, event_bus)
            session = await LearnerSession.restore(store)
        except BaseException:
            await database.dispose()
            raise

        gateway = gateway or CurriculumGateway(settings.remote)
        logger.info("Offline engine opened on %s", settings.local_store.path)
        return cls(settings, event_bus, database, store, gateway, session)

    async def close(self) -> None:
        """Release HTTP clients and database connections."""
        await self.media.close()
        await self.gateway.close()
        self.event_bus.clear()
        await self.database.dispose()
        logger.info("Offline engine closed")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
