# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity provider for authentication principals.

An authentication principal is the login identity (email + password)
that an ActiveUser document is keyed by. Principals carry custom claims
such as ``admin`` which are embedded in their access tokens.

DocumentIdentityProvider keeps principals in the document store:
``auth_principals/{uid}`` holds the principal and
``auth_principal_emails/{email}`` reserves the email address so that
two principals can never share one.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from src.domains.auth.password import PasswordHasher
from src.infrastructure.database import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStore,
)
from src.utils.datetime import format_iso, parse_iso, utc_now

logger = logging.getLogger(__name__)

PRINCIPALS_COLLECTION = "auth_principals"
PRINCIPAL_EMAILS_COLLECTION = "auth_principal_emails"


class IdentityError(Exception):
    """Base exception for identity provider operations."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PrincipalExistsError(IdentityError):
    """Raised when the email is already used by another principal."""


class PrincipalNotFoundError(IdentityError):
    """Raised when a principal does not exist."""


class InvalidCredentialsError(IdentityError):
    """Raised when sign-in fails."""


class AuthPrincipal(BaseModel):
    """An authentication principal.

    Attributes:
        uid: Principal identifier.
        email: Lowercased email address.
        custom_claims: Claims embedded in issued tokens.
        disabled: Whether sign-in is blocked.
        created_at: Creation timestamp.
    """

    uid: str
    email: str
    custom_claims: dict[str, Any] = Field(default_factory=dict)
    disabled: bool = False
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        """Whether the principal carries the admin claim."""
        return self.custom_claims.get("admin") is True


def normalize_email(email: str) -> str:
    """Lowercase and trim an email address."""
    return email.strip().lower()


class IdentityProvider(ABC):
    """Interface to the authentication principal registry."""

    @abstractmethod
    async def create_principal(self, email: str, password: str) -> AuthPrincipal:
        """Create a principal.

        Raises:
            PrincipalExistsError: If the email is already registered.
            ValueError: If the password is too weak.
        """

    @abstractmethod
    async def get_principal(self, uid: str) -> AuthPrincipal | None:
        """Fetch a principal by id."""

    @abstractmethod
    async def delete_principal(self, uid: str) -> bool:
        """Delete a principal. Returns False when it did not exist."""

    @abstractmethod
    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        """Replace the custom claims of a principal.

        Raises:
            PrincipalNotFoundError: If the principal does not exist.
        """

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> AuthPrincipal:
        """Verify credentials and return the principal.

        Raises:
            InvalidCredentialsError: If the email or password is wrong.
        """

    async def get_custom_claims(self, uid: str) -> dict[str, Any]:
        """Return the custom claims of a principal, empty if unknown."""
        principal = await self.get_principal(uid)
        return dict(principal.custom_claims) if principal else {}


class DocumentIdentityProvider(IdentityProvider):
    """Identity provider storing principals in the document store.

    Attributes:
        _store: Document store.
        _hasher: Password hasher.
    """

    def __init__(self, store: DocumentStore, hasher: PasswordHasher | None = None) -> None:
        """Initialize the provider.

        Args:
            store: Document store holding the principal collections.
            hasher: Password hasher, bcrypt with default cost if omitted.
        """
        self._store = store
        self._hasher = hasher or PasswordHasher()

    async def create_principal(self, email: str, password: str) -> AuthPrincipal:
        email = normalize_email(email)
        password_hash = self._hasher.hash(password)
        uid = uuid4().hex
        now = utc_now()

        batch = self._store.batch()
        batch.create(PRINCIPAL_EMAILS_COLLECTION, email, {"uid": uid})
        batch.create(
            PRINCIPALS_COLLECTION,
            uid,
            {
                "email": email,
                "passwordHash": password_hash,
                "customClaims": {},
                "disabled": False,
                "createdAt": format_iso(now),
            },
        )
        try:
            await batch.commit()
        except DocumentExistsError as e:
            raise PrincipalExistsError(f"Email already registered: {email}") from e

        logger.info("Created auth principal: uid=%s", uid)
        return AuthPrincipal(uid=uid, email=email, created_at=now)

    async def get_principal(self, uid: str) -> AuthPrincipal | None:
        if not uid:
            return None
        snapshot = await self._store.get(PRINCIPALS_COLLECTION, uid)
        return self._to_principal(snapshot) if snapshot else None

    async def delete_principal(self, uid: str) -> bool:
        snapshot = await self._store.get(PRINCIPALS_COLLECTION, uid)
        if snapshot is None:
            logger.info("Auth principal already absent: uid=%s", uid)
            return False

        batch = self._store.batch()
        batch.delete(PRINCIPALS_COLLECTION, uid)
        batch.delete(PRINCIPAL_EMAILS_COLLECTION, snapshot.get("email", ""))
        await batch.commit()

        logger.info("Deleted auth principal: uid=%s", uid)
        return True

    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        try:
            await self._store.update(PRINCIPALS_COLLECTION, uid, {"customClaims": dict(claims)})
        except DocumentNotFoundError as e:
            raise PrincipalNotFoundError(f"Auth principal not found: {uid}") from e

        logger.info("Updated custom claims: uid=%s, claims=%s", uid, sorted(claims))

    async def authenticate(self, email: str, password: str) -> AuthPrincipal:
        email = normalize_email(email)
        reservation = await self._store.get(PRINCIPAL_EMAILS_COLLECTION, email)
        snapshot = (
            await self._store.get(PRINCIPALS_COLLECTION, reservation.get("uid"))
            if reservation
            else None
        )

        if snapshot is None or not self._hasher.verify(
            password, snapshot.get("passwordHash", "")
        ):
            raise InvalidCredentialsError("Invalid email or password")

        principal = self._to_principal(snapshot)
        if principal.disabled:
            raise InvalidCredentialsError("Account is disabled")
        return principal

    @staticmethod
    def _to_principal(snapshot: DocumentSnapshot) -> AuthPrincipal:
        created_at = snapshot.get("createdAt")
        return AuthPrincipal(
            uid=snapshot.id,
            email=snapshot.get("email", ""),
            custom_claims=snapshot.get("customClaims") or {},
            disabled=bool(snapshot.get("disabled", False)),
            created_at=parse_iso(created_at) if created_at else None,
        )
