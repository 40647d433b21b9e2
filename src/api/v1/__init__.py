# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    auth: Authentication endpoints (signup, login, refresh, register).
    activation: Pending account claim and student self-registration.
    admin: Secure document mutations for administrators.
    users: Authentication principal deletion.
"""

from fastapi import APIRouter

from src.api.v1 import activation, admin, auth, users

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(activation.router, prefix="/activation", tags=["Activation"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
router.include_router(users.router, prefix="/users", tags=["Users"])

__all__ = ["router"]
