"""Campus Onboarding Backend.

Account activation for pre-registered students, teachers and
administrators: pending record matching, external student validation
and class roster enrollment.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
