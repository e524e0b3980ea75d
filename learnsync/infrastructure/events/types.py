# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions for learnsync.

Subscribers use these constants instead of string literals. Store change
events are named per entity kind so a subscriber can decide whether a
re-query is needed:

    store.subjects.changed
    store.topics.changed
    store.lessons.changed
    store.assessments.changed
"""


class EventTypes:
    """All event types in learnsync organized by component."""

    class Store:
        """Local store change events, one per entity kind."""

        SUBJECTS_CHANGED = "store.subjects.changed"
        TOPICS_CHANGED = "store.topics.changed"
        LESSONS_CHANGED = "store.lessons.changed"
        ASSESSMENTS_CHANGED = "store.assessments.changed"
        STATE_CHANGED = "store.state.changed"

        @staticmethod
        def changed(kind: str) -> str:
            """Build the change event type for an entity kind or table."""
            return f"store.{kind}.changed"

    class Sync:
        """Reconciliation lifecycle events."""

        STARTED = "sync.started"
        PROGRESS = "sync.progress"
        COMPLETED = "sync.completed"
        FAILED = "sync.failed"

    class Media:
        """Lesson media download events."""

        DOWNLOADED = "media.downloaded"
        FAILED = "media.failed"
        REMOVED = "media.removed"


class EventPatterns:
    """Wildcard patterns for subscribing to groups of events."""

    ALL_STORE = "store.*"
    ALL_SYNC = "sync.*"
    ALL_MEDIA = "media.*"

    # Global wildcard
    ALL = "*"
