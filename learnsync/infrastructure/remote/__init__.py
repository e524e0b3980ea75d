# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Remote curriculum source client."""

from learnsync.infrastructure.remote.gateway import (
    MAX_IDS_PER_REQUEST,
    CurriculumGateway,
    GatewayError,
    in_filter,
)

__all__ = [
    "MAX_IDS_PER_REQUEST",
    "CurriculumGateway",
    "GatewayError",
    "in_filter",
]
