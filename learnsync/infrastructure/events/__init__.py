# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure for learnsync.

Components:
- EventBus: In-memory pub/sub with pattern matching
- EventTypes: Centralized event type constants
"""

from learnsync.infrastructure.events.bus import EventBus, EventData, EventHandler
from learnsync.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    "EventBus",
    "EventData",
    "EventHandler",
    "EventTypes",
    "EventPatterns",
]
