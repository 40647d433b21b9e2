# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides JWT token creation and validation using python-jose.
Access tokens embed the principal's custom claims (``admin``, ``role``)
so that permission checks can skip the document lookup when the claim
is present.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> tokens = jwt_manager.create_token_pair(principal_id="uid-123", admin=True)
    >>> claims = jwt_manager.decode_token(tokens.access_token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, ValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (authentication principal ID).
        type: Token type (access or refresh).
        email: Principal email address.
        role: Role custom claim, if any.
        admin: Admin custom claim.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access", "refresh"]
    email: str | None = None
    role: str | None = None
    admin: bool = False
    exp: int
    iat: int
    jti: str

    @property
    def claims(self) -> dict[str, Any]:
        """Custom claims carried by the token."""
        claims: dict[str, Any] = {"admin": self.admin}
        if self.role:
            claims["role"] = self.role
        return claims


class TokenPair(BaseModel):
    """Access and refresh token pair.

    Attributes:
        access_token: JWT access token string.
        refresh_token: JWT refresh token string.
        token_type: Token type (always "Bearer").
        expires_in: Access token expiration in seconds.
        refresh_expires_in: Refresh token expiration in seconds.
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """Issues and decodes the service's signed tokens.

    Access tokens are short lived and carry the principal's custom claims.
    Refresh tokens carry only the subject, so claims are re-read from the
    principal on every refresh.

    Example:
        >>> jwt_manager = JWTManager(settings)
        >>> tokens = jwt_manager.create_token_pair(
        ...     principal_id="uid-123",
        ...     email="jean.dupont@campus.test",
        ...     role="student",
        ... )
        >>> jwt_manager.decode_token(tokens.access_token).claims
        {'admin': False, 'role': 'student'}
    """

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    @property
    def access_lifetime(self) -> timedelta:
        return timedelta(minutes=self._settings.access_token_expire_minutes)

    @property
    def refresh_lifetime(self) -> timedelta:
        return timedelta(days=self._settings.refresh_token_expire_days)

    def _encode(self, claims: dict[str, Any], lifetime: timedelta) -> str:
        issued_at = datetime.now(timezone.utc)
        return jwt.encode(
            {
                **claims,
                "iat": int(issued_at.timestamp()),
                "exp": int((issued_at + lifetime).timestamp()),
                "jti": secrets.token_urlsafe(16),
            },
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def create_access_token(
        self,
        principal_id: str,
        email: str | None = None,
        role: str | None = None,
        admin: bool = False,
    ) -> str:
        """Sign an access token for a principal.

        Args:
            principal_id: Authentication principal identifier.
            email: Principal email address.
            role: Role custom claim.
            admin: Admin custom claim.

        Returns:
            Encoded JWT.
        """
        claims = {
            "sub": principal_id,
            "type": "access",
            "email": email,
            "role": role,
            "admin": admin,
        }
        return self._encode(claims, self.access_lifetime)

    def create_token_pair(
        self,
        principal_id: str,
        email: str | None = None,
        role: str | None = None,
        admin: bool = False,
    ) -> TokenPair:
        """Sign an access token and its matching refresh token."""
        access_token = self.create_access_token(principal_id, email, role, admin)
        refresh_token = self._encode(
            {"sub": principal_id, "type": "refresh"}, self.refresh_lifetime
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_lifetime.total_seconds()),
            refresh_expires_in=int(self.refresh_lifetime.total_seconds()),
        )

    def decode_token(
        self,
        token: str,
        expected_type: Literal["access", "refresh"] | None = None,
    ) -> TokenPayload:
        """Verify a token's signature and expiry and return its claims.

        Args:
            token: Encoded JWT.
            expected_type: Token type the caller requires, if any.

        Returns:
            Decoded payload. ``admin`` is True only when the claim is
            literally true.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the signature, type or payload is wrong.
        """
        try:
            claims = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", e)
            raise InvalidTokenError(f"Invalid token: {e}")

        if expected_type and claims.get("type") != expected_type:
            raise InvalidTokenError(
                f"Expected {expected_type} token, got {claims.get('type')}"
            )

        claims["admin"] = claims.get("admin") is True
        try:
            return TokenPayload.model_validate(claims)
        except ValidationError as e:
            logger.warning("Token payload malformed: %s", e)
            raise InvalidTokenError(f"Invalid token: {e}")
