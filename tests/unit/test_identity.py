# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the document-backed identity provider."""

import pytest

from src.domains.auth import (
    DocumentIdentityProvider,
    InvalidCredentialsError,
    PrincipalExistsError,
    PrincipalNotFoundError,
)
from src.infrastructure.database import SqlDocumentStore


class TestCreatePrincipal:
    """Tests for principal creation."""

    @pytest.mark.asyncio
    async def test_create_principal(self, identity: DocumentIdentityProvider) -> None:
        """Test that a principal is created with a normalized email."""
        principal = await identity.create_principal(" Jean.Dupont@Campus.test ", "motdepasse")

        assert principal.uid
        assert principal.email == "jean.dupont@campus.test"
        assert principal.custom_claims == {}
        assert principal.is_admin is False

        stored = await identity.get_principal(principal.uid)
        assert stored is not None
        assert stored.email == "jean.dupont@campus.test"
        assert stored.created_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, identity: DocumentIdentityProvider) -> None:
        """Test that an email can only be registered once, case-insensitively."""
        await identity.create_principal("jean@campus.test", "motdepasse")

        with pytest.raises(PrincipalExistsError):
            await identity.create_principal("JEAN@campus.test", "autrepasse")

    @pytest.mark.asyncio
    async def test_password_not_stored_in_clear(
        self,
        identity: DocumentIdentityProvider,
        store: SqlDocumentStore,
    ) -> None:
        """Test that only the bcrypt hash is persisted."""
        principal = await identity.create_principal("jean@campus.test", "motdepasse")

        snapshot = await store.get("auth_principals", principal.uid)

        assert snapshot is not None
        assert "motdepasse" not in str(snapshot.data)
        assert snapshot.get("passwordHash", "").startswith("$2")

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, identity: DocumentIdentityProvider) -> None:
        """Test that weak passwords fail before anything is written."""
        with pytest.raises(ValueError):
            await identity.create_principal("jean@campus.test", "123")

        principal = await identity.create_principal("jean@campus.test", "motdepasse")
        assert principal.email == "jean@campus.test"


class TestAuthenticate:
    """Tests for credential checks."""

    @pytest.mark.asyncio
    async def test_authenticate(self, identity: DocumentIdentityProvider) -> None:
        """Test sign-in with the right password."""
        created = await identity.create_principal("jean@campus.test", "motdepasse")

        principal = await identity.authenticate("Jean@Campus.test", "motdepasse")

        assert principal.uid == created.uid

    @pytest.mark.asyncio
    async def test_wrong_password(self, identity: DocumentIdentityProvider) -> None:
        """Test that a wrong password is refused."""
        await identity.create_principal("jean@campus.test", "motdepasse")

        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("jean@campus.test", "mauvais-passe")

    @pytest.mark.asyncio
    async def test_unknown_email(self, identity: DocumentIdentityProvider) -> None:
        """Test that an unknown email is refused with the same error."""
        with pytest.raises(InvalidCredentialsError, match="Invalid email or password"):
            await identity.authenticate("nobody@campus.test", "motdepasse")

    @pytest.mark.asyncio
    async def test_disabled_principal(
        self,
        identity: DocumentIdentityProvider,
        store: SqlDocumentStore,
    ) -> None:
        """Test that disabled principals cannot sign in."""
        principal = await identity.create_principal("jean@campus.test", "motdepasse")
        await store.update("auth_principals", principal.uid, {"disabled": True})

        with pytest.raises(InvalidCredentialsError, match="disabled"):
            await identity.authenticate("jean@campus.test", "motdepasse")


class TestClaimsAndDeletion:
    """Tests for custom claims and deletion."""

    @pytest.mark.asyncio
    async def test_set_custom_claims(self, identity: DocumentIdentityProvider) -> None:
        """Test that claims are stored and read back."""
        principal = await identity.create_principal("admin@campus.test", "motdepasse")

        await identity.set_custom_claims(principal.uid, {"admin": True})

        assert await identity.get_custom_claims(principal.uid) == {"admin": True}
        stored = await identity.get_principal(principal.uid)
        assert stored is not None
        assert stored.is_admin is True

    @pytest.mark.asyncio
    async def test_set_claims_on_missing_principal(
        self,
        identity: DocumentIdentityProvider,
    ) -> None:
        """Test that claims cannot be set on an unknown principal."""
        with pytest.raises(PrincipalNotFoundError):
            await identity.set_custom_claims("ghost", {"admin": True})

    @pytest.mark.asyncio
    async def test_claims_of_unknown_principal_are_empty(
        self,
        identity: DocumentIdentityProvider,
    ) -> None:
        """Test get_custom_claims for a missing principal."""
        assert await identity.get_custom_claims("ghost") == {}

    @pytest.mark.asyncio
    async def test_delete_principal_frees_email(
        self,
        identity: DocumentIdentityProvider,
    ) -> None:
        """Test that deletion removes the principal and its email reservation."""
        principal = await identity.create_principal("jean@campus.test", "motdepasse")

        assert await identity.delete_principal(principal.uid) is True
        assert await identity.get_principal(principal.uid) is None
        assert await identity.delete_principal(principal.uid) is False

        again = await identity.create_principal("jean@campus.test", "motdepasse")
        assert again.uid != principal.uid
