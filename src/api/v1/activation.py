# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account activation API endpoints.

Both endpoints act on the principal named in the request body, which
must be the authenticated caller:
- POST /claim - Activate a pre-registered account (claim path)
- POST /register - Student self-registration with external validation

Every activation outcome, including failures, is returned in the body
with a 200 status. Only authentication and body validation errors use
HTTP error codes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.api.dependencies import get_orchestrator, require_auth
from src.api.middleware.auth import CurrentUser
from src.api.middleware.rate_limit import activation_limit, get_ip_only, limiter
from src.domains.activation import (
    ActivationOrchestrator,
    ActivationRequest,
    ClaimResult,
    RegistrationRequest,
    RegistrationResult,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_caller(request_uid: str, current_user: CurrentUser) -> None:
    if request_uid != current_user.id:
        logger.warning(
            "Activation for %s rejected: caller is %s",
            request_uid,
            current_user.id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="newAuthUserId does not match the authenticated principal",
        )


@router.post(
    "/claim",
    response_model=ClaimResult,
    response_model_exclude_none=True,
    response_model_by_alias=True,
    summary="Claim a pre-registered account",
    description="Match the identity proof against pending accounts and activate the caller.",
)
@limiter.limit(activation_limit, key_func=get_ip_only)
async def claim_pending_account(
    request: Request,
    data: ActivationRequest,
    current_user: CurrentUser = Depends(require_auth),
    orchestrator: ActivationOrchestrator = Depends(get_orchestrator),
) -> ClaimResult:
    """Activate the caller from their pending record.

    Raises:
        HTTPException: 401 if not authenticated, 403 for another principal.
    """
    _ensure_caller(data.new_auth_user_id, current_user)
    outcome = await orchestrator.claim_pending_account(data)
    return outcome.to_claim_result()


@router.post(
    "/register",
    response_model=RegistrationResult,
    response_model_exclude_none=True,
    response_model_by_alias=True,
    summary="Student self-registration",
    description="Validate a student with the external service and enroll them in a class.",
)
@limiter.limit(activation_limit, key_func=get_ip_only)
async def register_student(
    request: Request,
    data: RegistrationRequest,
    current_user: CurrentUser = Depends(require_auth),
    orchestrator: ActivationOrchestrator = Depends(get_orchestrator),
) -> RegistrationResult:
    """Validate, activate and enroll the calling student.

    Raises:
        HTTPException: 401 if not authenticated, 403 for another principal.
    """
    _ensure_caller(data.new_auth_user_id, current_user)
    outcome = await orchestrator.register_student(data)
    return outcome.to_registration_result()
