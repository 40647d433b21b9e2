# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin domain package.

This package provides administrator-only mutations:
- Pre-registration of pending users
- Class and subject management
- Deletion of authentication principals
"""

from src.domains.admin.schemas import ClassCreate, MutationResponse, PendingUserCreate
from src.domains.admin.service import (
    CREATABLE_COLLECTIONS,
    MUTABLE_COLLECTIONS,
    AdminService,
    AdminServiceError,
    CollectionNotAllowedError,
    InvalidDocumentError,
    MutationFailedError,
    PermissionDeniedError,
    RecordNotFoundError,
)

__all__ = [
    "AdminService",
    "AdminServiceError",
    "PermissionDeniedError",
    "CollectionNotAllowedError",
    "InvalidDocumentError",
    "RecordNotFoundError",
    "MutationFailedError",
    "CREATABLE_COLLECTIONS",
    "MUTABLE_COLLECTIONS",
    "PendingUserCreate",
    "ClassCreate",
    "MutationResponse",
]
