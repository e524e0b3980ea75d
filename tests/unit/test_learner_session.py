# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the learner session."""

import json
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from learnsync.domains.session import (
    PROFILE_STATE_KEY,
    LearnerProfile,
    LearnerSession,
    SyncState,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_store() -> AsyncMock:
    """Create a mock local store with no persisted state."""
    store = AsyncMock()
    store.get_state.return_value = None
    return store


class TestLearnerProfile:
    """Tests for profile validation."""

    def test_name_is_stripped(self) -> None:
        assert LearnerProfile(full_name="  Ada  ").full_name == "Ada"

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LearnerProfile(full_name="   ")

    def test_age_bounds(self) -> None:
        with pytest.raises(ValidationError):
            LearnerProfile(full_name="Ada", age=-1)


class TestRestore:
    """Tests for LearnerSession.restore."""

    @pytest.mark.asyncio
    async def test_no_persisted_profile(self, mock_store) -> None:
        session = await LearnerSession.restore(mock_store)

        assert not session.is_logged_in
        assert session.grade_id is None
        assert session.sync_status is SyncState.IDLE
        mock_store.get_state.assert_awaited_once_with(PROFILE_STATE_KEY)

    @pytest.mark.asyncio
    async def test_persisted_profile(self, mock_store) -> None:
        mock_store.get_state.return_value = json.dumps(
            {"full_name": "Ada", "age": 9, "grade_id": "g-4", "grade_name": "Grade 4"}
        )

        session = await LearnerSession.restore(mock_store)

        assert session.is_logged_in
        assert session.grade_id == "g-4"
        assert session.grade_name == "Grade 4"

    @pytest.mark.asyncio
    async def test_malformed_profile_discarded(self, mock_store) -> None:
        """Test a corrupt profile is dropped instead of raising."""
        mock_store.get_state.return_value = '{"full_name": '

        session = await LearnerSession.restore(mock_store)

        assert not session.is_logged_in
        mock_store.delete_state.assert_awaited_once_with(PROFILE_STATE_KEY)


class TestProfileChanges:
    """Tests for login and profile updates."""

    @pytest.mark.asyncio
    async def test_login_persists(self, mock_store) -> None:
        session = LearnerSession(mock_store)

        await session.login(LearnerProfile(full_name="Ada", grade_id="g-1"))

        assert session.grade_id == "g-1"
        mock_store.set_state.assert_awaited_once_with(
            PROFILE_STATE_KEY,
            {"full_name": "Ada", "age": None, "grade_id": "g-1", "grade_name": None},
        )

    @pytest.mark.asyncio
    async def test_set_grade(self, mock_store) -> None:
        session = LearnerSession(mock_store, LearnerProfile(full_name="Ada", grade_id="g-1"))

        await session.set_grade("g-2", "Grade 2")

        assert session.grade_id == "g-2"
        assert session.grade_name == "Grade 2"
        assert session.profile.full_name == "Ada"
        mock_store.set_state.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_validates(self, mock_store) -> None:
        session = LearnerSession(mock_store, LearnerProfile(full_name="Ada"))

        with pytest.raises(ValidationError):
            await session.update_profile(age=200)

        assert session.profile.age is None
        mock_store.set_state.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_requires_login(self, mock_store) -> None:
        session = LearnerSession(mock_store)

        with pytest.raises(RuntimeError, match="No learner"):
            await session.set_grade("g-1", None)
