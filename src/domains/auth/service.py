# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service for sign-up and sign-in.

This module provides the AuthService that combines the identity provider
with JWT issuance:
- Sign-up creates a bare authentication principal
- Sign-in verifies credentials and issues a token pair
- Refresh re-issues tokens with the principal's current claims

Tokens always reflect the principal's claims at issue time, so a
principal promoted to admin must sign in (or refresh) again before the
claim shows up in its token.

Example:
    >>> auth_service = AuthService(identity_provider, jwt_manager, store)
    >>> principal = await auth_service.sign_up("jean.dupont@campus.test", "secret1")
    >>> tokens = await auth_service.sign_in("jean.dupont@campus.test", "secret1")
"""

import logging

from src.domains.auth.identity import (
    AuthPrincipal,
    IdentityProvider,
    InvalidCredentialsError,
)
from src.domains.auth.jwt import JWTError, JWTManager, TokenPair
from src.infrastructure.database import DocumentStore

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Base exception for authentication errors."""

    pass


class TokenRefreshError(AuthenticationError):
    """Raised when token refresh fails."""

    pass


class AuthService:
    """Authentication service.

    Attributes:
        _identity: Identity provider holding principals.
        _jwt: JWT manager for token operations.
        _store: Document store, used to read the user's role.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        jwt_manager: JWTManager,
        store: DocumentStore,
    ) -> None:
        self._identity = identity
        self._jwt = jwt_manager
        self._store = store

    async def sign_up(self, email: str, password: str) -> AuthPrincipal:
        """Create a new authentication principal.

        The principal has no user document yet; it becomes usable once
        a pending account is claimed or a registration completes.

        Raises:
            PrincipalExistsError: If the email is already registered.
            ValueError: If the password is too short.
        """
        return await self._identity.create_principal(email, password)

    async def sign_in(self, email: str, password: str) -> TokenPair:
        """Verify credentials and issue a token pair.

        Args:
            email: Principal email.
            password: Plain text password.

        Returns:
            Token pair carrying the principal's role and admin claim.

        Raises:
            InvalidCredentialsError: If the credentials are wrong.
        """
        principal = await self._identity.authenticate(email, password)
        tokens = await self._issue_tokens(principal)
        logger.info("Principal signed in: uid=%s", principal.uid)
        return tokens

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """Issue a new token pair from a refresh token.

        Raises:
            TokenRefreshError: If the token is invalid or the principal is gone.
        """
        try:
            payload = self._jwt.decode_token(refresh_token, expected_type="refresh")
        except JWTError as e:
            raise TokenRefreshError(str(e)) from e

        principal = await self._identity.get_principal(payload.sub)
        if principal is None or principal.disabled:
            raise TokenRefreshError("Principal no longer exists")

        return await self._issue_tokens(principal)

    async def _issue_tokens(self, principal: AuthPrincipal) -> TokenPair:
        user = await self._store.get("users", principal.uid)
        role = principal.custom_claims.get("role") or (user.get("role") if user else None)

        return self._jwt.create_token_pair(
            principal_id=principal.uid,
            email=principal.email,
            role=role,
            admin=principal.is_admin,
        )


__all__ = [
    "AuthService",
    "AuthenticationError",
    "TokenRefreshError",
    "InvalidCredentialsError",
]
