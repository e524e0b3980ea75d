# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum mirror tables.

Four record kinds form a strict tree keyed by remote-assigned ids:

    Subject (grade_id) -> Topic (subject_id) -> Lesson (topic_id)
        -> Assessment (lesson_id)

There are no foreign-key constraints. A child whose parent is
missing is kept as-is and is simply unreachable by traversal.

Downloaded lesson media lives in ``lesson_media``, keyed by lesson id, so
that wiping and repopulating lesson metadata does not discard payloads.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnsync.infrastructure.database.models.base import Base, TimestampMixin, UTCDateTime
from learnsync.utils.datetime import utc_now


class Subject(TimestampMixin, Base):
    """Top-level subject within a grade."""

    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    grade_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subtext: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, title='{self.title}')>"


class Topic(TimestampMixin, Base):
    """Topic within a subject."""

    __tablename__ = "topics"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subtopic: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Topic(id={self.id}, title='{self.title}')>"


class Lesson(TimestampMixin, Base):
    """Lesson within a topic.

    Attributes:
        media_url: Optional remote media reference.
        media_type: "video", "document" or another lower-cased kind.
        is_offline: True iff a matching row exists in lesson_media.
    """

    __tablename__ = "lessons"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    topic_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_offline: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, title='{self.title}', offline={self.is_offline})>"


class Assessment(TimestampMixin, Base):
    """Quiz attached to a lesson."""

    __tablename__ = "assessments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    lesson_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    quiz_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Assessment(id={self.id}, title='{self.title}')>"


class LessonMedia(Base):
    """Downloaded media payload for one lesson.

    source_url records the reference the payload was fetched from; a
    payload is only valid while it equals the lesson's current media_url.
    """

    __tablename__ = "lesson_media"

    lesson_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    downloaded_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )

    def __repr__(self) -> str:
        return f"<LessonMedia(lesson_id={self.lesson_id}, size={self.size_bytes})>"
