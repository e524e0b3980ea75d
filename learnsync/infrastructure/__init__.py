# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for storage and external service integrations.

This package contains clients and managers for:
- Local store (embedded SQLite via SQLAlchemy async)
- Remote curriculum source (HTTP)
- In-process event bus
"""
