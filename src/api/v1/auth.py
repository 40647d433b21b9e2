# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for principals:
- POST /signup - Create an authentication principal
- POST /login - Password sign-in, returns a token pair
- POST /refresh - Refresh access token
- POST /register - Create a principal and claim the matching pending account

Example:
    POST /api/v1/auth/register
    Body:
        {
            "email": "jean.dupont@campus.test",
            "password": "motdepasse",
            "matricule": "E123",
            "firstName": "Jean",
            "lastName": "DUPONT"
        }
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field

from src.api.dependencies import get_auth_service, get_registrar
from src.api.middleware.rate_limit import activation_limit, get_ip_only, limiter
from src.domains.activation import AccountRegistrar, IdentityProof
from src.domains.activation.models import CamelModel
from src.domains.auth import AuthService, PrincipalExistsError, TokenPair, TokenRefreshError
from src.domains.auth.identity import InvalidCredentialsError

logger = logging.getLogger(__name__)

router = APIRouter()


class SignupRequest(BaseModel):
    """Principal creation request."""

    email: EmailStr
    password: str = Field(min_length=1)


class SignupResponse(BaseModel):
    """Created principal."""

    uid: str
    email: str


class LoginRequest(BaseModel):
    """Password sign-in request."""

    email: EmailStr
    password: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str


class RegisterAccountRequest(IdentityProof):
    """Registration with the details of a pre-registered account."""

    email: EmailStr
    password: str = Field(min_length=1)


class RegisterAccountResponse(CamelModel):
    """Outcome of account registration.

    Tokens are only issued when the account was activated, so that an
    admin claim set during activation is already part of them.
    """

    success: bool
    error: str | None = None
    user_profile: dict[str, Any] | None = None
    uid: str | None = None
    tokens: TokenPair | None = None


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an authentication principal",
)
@limiter.limit(activation_limit, key_func=get_ip_only)
async def signup(
    request: Request,
    data: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> SignupResponse:
    """Create a principal without a user profile.

    Raises:
        HTTPException: 409 if the email is taken, 400 if the password is too short.
    """
    try:
        principal = await auth_service.sign_up(data.email, data.password)
    except PrincipalExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return SignupResponse(uid=principal.uid, email=principal.email)


@router.post(
    "/login",
    response_model=TokenPair,
    summary="Sign in with email and password",
)
@limiter.limit(activation_limit, key_func=get_ip_only)
async def login(
    request: Request,
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    """Sign in and receive tokens carrying the role and admin claims.

    Raises:
        HTTPException: 401 if the credentials are invalid.
    """
    try:
        return await auth_service.sign_in(data.email, data.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
)
async def refresh_token(
    data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    """Exchange a refresh token for a new token pair.

    Raises:
        HTTPException: 401 if refresh fails.
    """
    try:
        return await auth_service.refresh_tokens(data.refresh_token)
    except TokenRefreshError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post(
    "/register",
    response_model=RegisterAccountResponse,
    response_model_exclude_none=True,
    response_model_by_alias=True,
    summary="Register and claim a pre-registered account",
)
@limiter.limit(activation_limit, key_func=get_ip_only)
async def register_account(
    request: Request,
    data: RegisterAccountRequest,
    registrar: AccountRegistrar = Depends(get_registrar),
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterAccountResponse:
    """Create a principal, claim the matching pending account and sign in.

    A hard failure removes the principal again and reports the error in
    the body.

    Raises:
        HTTPException: 409 if the email is taken, 400 if the password is too short.
    """
    proof = IdentityProof(
        matricule=data.matricule,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    try:
        uid, outcome = await registrar.register(data.email, data.password, proof)
    except PrincipalExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    result = outcome.to_claim_result()
    if not result.success:
        return RegisterAccountResponse(success=False, error=result.error)

    tokens = await auth_service.sign_in(data.email, data.password)
    return RegisterAccountResponse(
        success=True,
        user_profile=result.user_profile,
        uid=uid,
        tokens=tokens,
    )
