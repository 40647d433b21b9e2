# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for the campus onboarding service.

This package contains shared building blocks:
- config: Application configuration and settings
"""
