# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner session context.

The learner session is an explicit object passed to the services that need
it. It holds the learner profile, which carries the active grade, and the
in-memory sync status. The profile is persisted in local state on every
mutation and restored when the engine opens.

Example:
    >>> session = await LearnerSession.restore(store)
    >>> if not session.is_logged_in:
    ...     await session.login(LearnerProfile(full_name="Ada", age=9, grade_id="g-4"))
    >>> session.grade_id
    'g-4'
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from learnsync.infrastructure.database import LocalStore

logger = logging.getLogger(__name__)

PROFILE_STATE_KEY = "learner_profile"


class SyncState(str, Enum):
    """Sync status shown to the learner."""

    IDLE = "idle"
    DOWNLOADING = "downloading"
    ERROR = "error"
    READY = "ready"


class LearnerProfile(BaseModel):
    """Locally persisted learner profile.

    Attributes:
        full_name: Display name.
        age: Age in years.
        grade_id: Active grade scoping the local mirror.
        grade_name: Display name of the active grade.
    """

    full_name: str = Field(min_length=1)
    age: int | None = Field(default=None, ge=0, le=150)
    grade_id: str | None = None
    grade_name: str | None = None

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("full_name must not be blank")
        return stripped


class LearnerSession:
    """Learner profile plus sync status, persisted through the local store.

    Attributes:
        sync_status: Current sync state. Not persisted.
    """

    def __init__(self, store: LocalStore, profile: LearnerProfile | None = None) -> None:
        self._store = store
        self._profile = profile
        self.sync_status = SyncState.IDLE

    @classmethod
    async def restore(cls, store: LocalStore) -> "LearnerSession":
        """Load the persisted profile, if any.

        A malformed persisted profile is logged and discarded.
        """
        raw = await store.get_state(PROFILE_STATE_KEY)
        if raw is None:
            return cls(store)

        try:
            profile = LearnerProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed learner profile: %s", str(e))
            await store.delete_state(PROFILE_STATE_KEY)
            return cls(store)

        return cls(store, profile)

    @property
    def profile(self) -> LearnerProfile | None:
        return self._profile

    @property
    def is_logged_in(self) -> bool:
        return self._profile is not None

    @property
    def grade_id(self) -> str | None:
        return self._profile.grade_id if self._profile else None

    @property
    def grade_name(self) -> str | None:
        return self._profile.grade_name if self._profile else None

    async def login(self, profile: LearnerProfile) -> None:
        """Replace the current profile and persist it."""
        self._profile = profile
        await self._persist()
        logger.info("Learner logged in with grade %s", profile.grade_id)

    async def update_profile(self, **changes: Any) -> LearnerProfile:
        """Apply field changes to the profile, validate and persist.

        Raises:
            RuntimeError: If no learner is logged in.
            ValidationError: If the changed profile is invalid.
        """
        if self._profile is None:
            raise RuntimeError("No learner is logged in")

        updated = LearnerProfile.model_validate({**self._profile.model_dump(), **changes})
        self._profile = updated
        await self._persist()
        return updated

    async def set_grade(self, grade_id: str, grade_name: str | None) -> None:
        """Record a new active grade on the profile.

        Raises:
            RuntimeError: If no learner is logged in.
        """
        await self.update_profile(grade_id=grade_id, grade_name=grade_name)

    async def _persist(self) -> None:
        assert self._profile is not None
        await self._store.set_state(PROFILE_STATE_KEY, self._profile.model_dump(mode="json"))
