# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

This package contains domain services that encapsulate business logic.
Each domain module provides services that orchestrate operations
across the document store and external services.

Domains:
    auth: Identity provider, tokens, passwords and admin verification.
    activation: Pending record matching, validation and activation.
    enrollment: Class resolution and roster enrollment.
    admin: Secure administrative mutations.
"""
