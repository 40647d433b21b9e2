# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the campus onboarding service.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from src.utils.datetime import (
    current_academic_year,
    ensure_utc,
    format_iso,
    parse_iso,
    utc_now,
    utc_now_iso,
)
from src.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "utc_now_iso",
    "ensure_utc",
    "format_iso",
    "parse_iso",
    "current_academic_year",
]
