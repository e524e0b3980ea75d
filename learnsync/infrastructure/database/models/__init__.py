# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Local store models."""

from learnsync.infrastructure.database.models.base import Base, TimestampMixin, UTCDateTime
from learnsync.infrastructure.database.models.curriculum import (
    Assessment,
    Lesson,
    LessonMedia,
    Subject,
    Topic,
)
from learnsync.infrastructure.database.models.local_state import LocalState

__all__ = [
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "Subject",
    "Topic",
    "Lesson",
    "Assessment",
    "LessonMedia",
    "LocalState",
]
