# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner session domain."""

from learnsync.domains.session.learner import (
    PROFILE_STATE_KEY,
    LearnerProfile,
    LearnerSession,
    SyncState,
)

__all__ = [
    "LearnerProfile",
    "LearnerSession",
    "SyncState",
    "PROFILE_STATE_KEY",
]
