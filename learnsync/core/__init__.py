# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for learnsync.

This package contains shared building blocks:
- config: Application configuration and settings
"""
