# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User management API endpoints.

This module provides endpoints for authentication principals:
- DELETE /{uid} - Delete a principal (admin only)

Deleting the principal does not touch the user's profile document,
which is removed separately through the admin mutation endpoints.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_admin_service, require_auth
from src.api.middleware.auth import CurrentUser
from src.domains.admin import AdminService, MutationFailedError, MutationResponse, PermissionDeniedError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.delete(
    "/{uid}",
    response_model=MutationResponse,
    response_model_exclude_none=True,
    summary="Delete authentication principal",
    description="Delete a principal. A principal that no longer exists is reported as success.",
)
async def delete_principal(
    uid: str,
    current_user: CurrentUser = Depends(require_auth),
    admin_service: AdminService = Depends(get_admin_service),
) -> MutationResponse:
    """Delete an authentication principal.

    Raises:
        HTTPException: 403 if the caller is not an admin, 500 if deletion fails.
    """
    try:
        existed = await admin_service.delete_principal(uid, current_user.id, current_user.claims)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except MutationFailedError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if not existed:
        return MutationResponse(id=uid, message="User not found, nothing to delete.")
    return MutationResponse(id=uid, message="User deleted.")
