"""learnsync.

Offline-first curriculum mirror: keeps a local embedded copy of one grade's
subjects, topics, lessons and assessments, downloads lesson media for
offline use, and serves every read from the local store.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
