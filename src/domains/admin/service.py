# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Administrative secure mutations.

This module provides the AdminService class for:
- Creating pending users, classes and subjects
- Updating and deleting users, classes and subjects
- Deleting authentication principals

Every call re-verifies that the caller holds admin rights. The caller's
role is never taken from the request body.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from src.domains.admin.schemas import ClassCreate, PendingUserCreate
from src.domains.auth.identity import IdentityProvider
from src.domains.auth.permissions import PermissionVerifier
from src.domains.enrollment import EnrollmentResolver
from src.infrastructure.database import DatabaseError, DocumentNotFoundError, DocumentStore
from src.utils.datetime import current_academic_year, utc_now_iso

logger = logging.getLogger(__name__)

CREATABLE_COLLECTIONS = frozenset({"pending_users", "classes", "subjects"})
MUTABLE_COLLECTIONS = frozenset({"users", "classes", "subjects"})

# Server-managed fields a mutation cannot overwrite
_PROTECTED_FIELDS = frozenset({"id", "creatorId", "createdAt"})


class AdminServiceError(Exception):
    """Base exception for admin service errors."""

    pass


class PermissionDeniedError(AdminServiceError):
    """Raised when the caller is not an administrator."""

    pass


class CollectionNotAllowedError(AdminServiceError):
    """Raised when a collection is not open to the requested mutation."""

    pass


class InvalidDocumentError(AdminServiceError):
    """Raised when document data fails validation."""

    pass


class RecordNotFoundError(AdminServiceError):
    """Raised when the document to update does not exist."""

    pass


class MutationFailedError(AdminServiceError):
    """Raised when the store rejects the mutation."""

    pass


class AdminService:
    """Service for administrative document and principal mutations.

    Attributes:
        store: Document store.
        identity: Identity provider.
        verifier: Admin permission verifier.
        enrollment: Enrollment resolver, used to derive class names.
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        verifier: PermissionVerifier,
        enrollment: EnrollmentResolver,
    ) -> None:
        self.store = store
        self.identity = identity
        self.verifier = verifier
        self.enrollment = enrollment

    async def create_document(
        self,
        collection: str,
        data: Mapping[str, Any],
        caller_id: str,
        caller_claims: Mapping[str, Any] | None = None,
    ) -> str:
        """Create a document in an allow-listed collection.

        Args:
            collection: Target collection.
            data: Document fields.
            caller_id: Principal id of the caller.
            caller_claims: Custom claims from the caller's token.

        Returns:
            The generated document id.

        Raises:
            PermissionDeniedError: If the caller is not an admin.
            CollectionNotAllowedError: If creation is not allowed there.
            InvalidDocumentError: If the data is invalid.
            MutationFailedError: If the write fails.
        """
        await self._require_admin(caller_id, caller_claims)
        self._require_collection(collection, CREATABLE_COLLECTIONS, "create")

        document = self._prepare_new_document(collection, data)
        document.update({"creatorId": caller_id, "createdAt": utc_now_iso()})

        try:
            doc_id = await self.store.add(collection, document)
        except DatabaseError as e:
            logger.error("Create in %s failed: %s", collection, e)
            raise MutationFailedError(f"Could not create document: {e.message}") from e

        logger.info("Document created: %s/%s by %s", collection, doc_id, caller_id)
        return doc_id

    async def update_document(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        caller_id: str,
        caller_claims: Mapping[str, Any] | None = None,
    ) -> None:
        """Merge fields into an existing document.

        Raises:
            PermissionDeniedError: If the caller is not an admin.
            CollectionNotAllowedError: If updates are not allowed there.
            RecordNotFoundError: If the document does not exist.
            MutationFailedError: If the write fails.
        """
        await self._require_admin(caller_id, caller_claims)
        self._require_collection(collection, MUTABLE_COLLECTIONS, "update")

        fields = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
        if not fields:
            raise InvalidDocumentError("No updatable fields supplied")

        try:
            await self.store.update(collection, doc_id, fields)
        except DocumentNotFoundError as e:
            raise RecordNotFoundError(f"Document {collection}/{doc_id} not found") from e
        except DatabaseError as e:
            logger.error("Update of %s/%s failed: %s", collection, doc_id, e)
            raise MutationFailedError(f"Could not update document: {e.message}") from e

        logger.info("Document updated: %s/%s by %s", collection, doc_id, caller_id)

    async def delete_document(
        self,
        collection: str,
        doc_id: str,
        caller_id: str,
        caller_claims: Mapping[str, Any] | None = None,
    ) -> None:
        """Delete a document. Deleting a missing document succeeds.

        Raises:
            PermissionDeniedError: If the caller is not an admin.
            CollectionNotAllowedError: If deletes are not allowed there.
            MutationFailedError: If the write fails.
        """
        await self._require_admin(caller_id, caller_claims)
        self._require_collection(collection, MUTABLE_COLLECTIONS, "delete")

        try:
            await self.store.delete(collection, doc_id)
        except DatabaseError as e:
            logger.error("Delete of %s/%s failed: %s", collection, doc_id, e)
            raise MutationFailedError(f"Could not delete document: {e.message}") from e

        logger.info("Document deleted: %s/%s by %s", collection, doc_id, caller_id)

    async def delete_principal(
        self,
        uid: str,
        caller_id: str,
        caller_claims: Mapping[str, Any] | None = None,
    ) -> bool:
        """Delete an authentication principal.

        Returns:
            True if it existed, False if it was already gone.

        Raises:
            PermissionDeniedError: If the caller is not an admin.
            MutationFailedError: If the deletion fails.
        """
        await self._require_admin(caller_id, caller_claims)

        try:
            existed = await self.identity.delete_principal(uid)
        except DatabaseError as e:
            logger.error("Deleting principal %s failed: %s", uid, e)
            raise MutationFailedError(f"The user could not be deleted: {e.message}") from e

        logger.info("Principal deletion by %s: uid=%s, existed=%s", caller_id, uid, existed)
        return existed

    async def _require_admin(
        self,
        caller_id: str,
        caller_claims: Mapping[str, Any] | None,
    ) -> None:
        if not await self.verifier.is_admin(caller_id, caller_claims):
            logger.warning("Admin mutation refused for principal %s", caller_id)
            raise PermissionDeniedError("Permission denied: User is not an admin.")

    @staticmethod
    def _require_collection(collection: str, allowed: frozenset[str], action: str) -> None:
        if collection not in allowed:
            raise CollectionNotAllowedError(
                f"Cannot {action} documents in collection '{collection}'"
            )

    def _prepare_new_document(
        self,
        collection: str,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        try:
            if collection == "pending_users":
                return PendingUserCreate.model_validate(data).to_document()
            if collection == "classes":
                new_class = ClassCreate.model_validate(data)
                name = self.enrollment.class_name_for(
                    new_class.niveau, new_class.filiere, new_class.groupe
                )
                return new_class.to_document(name, current_academic_year())
        except ValidationError as e:
            raise InvalidDocumentError(f"Invalid {collection} document: {e}") from e

        return {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
