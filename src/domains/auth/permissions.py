# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Administrative permission checks.

Admin rights come from two places: the ``admin`` custom claim embedded
in the principal's token, and the ``role`` field of the principal's user
document. The claim is checked first since it needs no I/O; the
document covers accounts promoted before a new token was issued.
"""

import logging
from collections.abc import Mapping
from typing import Any

from src.infrastructure.database import DatabaseError, DocumentStore

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class PermissionVerifier:
    """Decides whether a principal holds administrative rights.

    Example:
        >>> verifier = PermissionVerifier(store)
        >>> await verifier.is_admin(user.id, claims={"admin": True})
        True
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def is_admin(
        self,
        principal_id: str | None,
        claims: Mapping[str, Any] | None = None,
    ) -> bool:
        """Check admin rights for a principal.

        Never raises: a failed lookup counts as "not admin".

        Args:
            principal_id: Authentication principal id.
            claims: Custom claims from the principal's already decoded token.

        Returns:
            True if the claim or the user document grants admin rights.
        """
        if not principal_id:
            return False

        if claims and claims.get("admin") is True:
            return True

        try:
            snapshot = await self._store.get(USERS_COLLECTION, principal_id)
        except DatabaseError as e:
            logger.error("Admin lookup failed for %s: %s", principal_id, str(e))
            return False
        except Exception as e:
            logger.exception("Unexpected error during admin lookup for %s: %s", principal_id, e)
            return False

        return snapshot is not None and snapshot.get("role") == "admin"
