# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for learnsync.

Domains:
    curriculum: Reconciliation of the local mirror and read-only queries.
    media: Per-lesson media downloads for offline use.
    recency: Recently visited subjects.
    session: Learner profile and sync status.
"""
