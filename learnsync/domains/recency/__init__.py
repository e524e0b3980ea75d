# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recently visited subjects."""

from learnsync.domains.recency.tracker import RECENT_SUBJECTS_KEY, RecencyTracker

__all__ = [
    "RecencyTracker",
    "RECENT_SUBJECTS_KEY",
]
