# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson media downloads for offline use."""

from learnsync.domains.media.fetcher import (
    MediaDownloadError,
    MediaFetcher,
    MediaResult,
    MediaStatus,
)

__all__ = [
    "MediaFetcher",
    "MediaResult",
    "MediaStatus",
    "MediaDownloadError",
]
