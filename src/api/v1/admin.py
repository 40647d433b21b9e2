# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Administrative mutation API endpoints.

The caller is always the principal of the bearer token. Admin rights
are re-verified by the service on every call.

Endpoints:
- POST /{collection} - Create a pending user, class or subject
- PUT /{collection}/{doc_id} - Merge fields into a user, class or subject
- DELETE /{collection}/{doc_id} - Delete a user, class or subject document
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from src.api.dependencies import get_admin_service, require_auth
from src.api.middleware.auth import CurrentUser
from src.domains.admin import (
    AdminService,
    AdminServiceError,
    CollectionNotAllowedError,
    InvalidDocumentError,
    MutationResponse,
    PermissionDeniedError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_STATUS: dict[type[AdminServiceError], int] = {
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    CollectionNotAllowedError: status.HTTP_400_BAD_REQUEST,
    InvalidDocumentError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RecordNotFoundError: status.HTTP_404_NOT_FOUND,
}


def _to_http_error(error: AdminServiceError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=str(error))


@router.post(
    "/{collection}",
    response_model=MutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
    description="Create a document in pending_users, classes or subjects.",
)
async def create_document(
    collection: str,
    data: dict[str, Any] = Body(...),
    current_user: CurrentUser = Depends(require_auth),
    admin_service: AdminService = Depends(get_admin_service),
) -> MutationResponse:
    """Create a document as the authenticated admin."""
    try:
        doc_id = await admin_service.create_document(
            collection, data, current_user.id, current_user.claims
        )
    except AdminServiceError as e:
        raise _to_http_error(e)

    return MutationResponse(id=doc_id)


@router.put(
    "/{collection}/{doc_id}",
    response_model=MutationResponse,
    summary="Update a document",
    description="Merge fields into a document in users, classes or subjects.",
)
async def update_document(
    collection: str,
    doc_id: str,
    data: dict[str, Any] = Body(...),
    current_user: CurrentUser = Depends(require_auth),
    admin_service: AdminService = Depends(get_admin_service),
) -> MutationResponse:
    """Update a document as the authenticated admin."""
    try:
        await admin_service.update_document(
            collection, doc_id, data, current_user.id, current_user.claims
        )
    except AdminServiceError as e:
        raise _to_http_error(e)

    return MutationResponse(id=doc_id)


@router.delete(
    "/{collection}/{doc_id}",
    response_model=MutationResponse,
    summary="Delete a document",
    description="Delete a document in users, classes or subjects.",
)
async def delete_document(
    collection: str,
    doc_id: str,
    current_user: CurrentUser = Depends(require_auth),
    admin_service: AdminService = Depends(get_admin_service),
) -> MutationResponse:
    """Delete a document as the authenticated admin."""
    try:
        await admin_service.delete_document(
            collection, doc_id, current_user.id, current_user.claims
        )
    except AdminServiceError as e:
        raise _to_http_error(e)

    return MutationResponse(id=doc_id)
