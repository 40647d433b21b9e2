# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package places activated students into class rosters:
- Class name derivation from niveau, filiere and group
- Class lookup by name and academic year
- Idempotent roster updates with the outcome recorded on the student
"""

from src.domains.enrollment.service import (
    ClassAssignmentStatus,
    ClassMatch,
    ClassNotFoundError,
    EnrollmentOutcome,
    EnrollmentResolver,
    EnrollmentServiceError,
)

__all__ = [
    "EnrollmentResolver",
    "EnrollmentOutcome",
    "ClassMatch",
    "ClassAssignmentStatus",
    "EnrollmentServiceError",
    "ClassNotFoundError",
]
