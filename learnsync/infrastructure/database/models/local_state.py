# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Small persisted values that live beside the curriculum mirror.

Used for the recency list and the learner profile. Values are stored as
JSON text and validated by their owners on read, so a corrupt value can be
detected and reset instead of breaking the caller.
"""

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnsync.infrastructure.database.models.base import Base, UTCDateTime
from learnsync.utils.datetime import utc_now


class LocalState(Base):
    """Key/value row holding one JSON-encoded value."""

    __tablename__ = "local_state"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return f"<LocalState(key={self.key})>"
