# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

This module provides authentication and authorization services:
- Identity provider for authentication principals and custom claims
- JWT token creation and validation
- Password hashing for principals
- Admin permission verification (token claim, then user document)

Exports:
    IdentityProvider: Principal registry interface.
    DocumentIdentityProvider: Principal registry over the document store.
    JWTManager: JWT token creation and validation.
    PasswordHasher: bcrypt password hashing.
    PermissionVerifier: Admin rights check.
    AuthService: Sign-up, sign-in and token refresh.
"""

from src.domains.auth.identity import (
    AuthPrincipal,
    DocumentIdentityProvider,
    IdentityError,
    IdentityProvider,
    InvalidCredentialsError,
    PrincipalExistsError,
    PrincipalNotFoundError,
)
from src.domains.auth.jwt import JWTManager, TokenPair, TokenPayload
from src.domains.auth.password import PasswordHasher
from src.domains.auth.permissions import PermissionVerifier
from src.domains.auth.service import AuthService, TokenRefreshError

__all__ = [
    "AuthPrincipal",
    "IdentityProvider",
    "DocumentIdentityProvider",
    "IdentityError",
    "PrincipalExistsError",
    "PrincipalNotFoundError",
    "InvalidCredentialsError",
    "JWTManager",
    "TokenPair",
    "TokenPayload",
    "PasswordHasher",
    "PermissionVerifier",
    "AuthService",
    "TokenRefreshError",
]
