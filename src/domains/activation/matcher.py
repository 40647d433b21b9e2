# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pending-record matching.

Finds the pre-registered account that an identity proof refers to.
Matricules compare uppercased and trimmed, names lowercased and trimmed,
on both sides.
"""

import logging
from typing import Literal

from pydantic import ValidationError

from src.domains.activation.exceptions import AmbiguousMatchError, NoMatchingRecordError
from src.domains.activation.models import IdentityProof, PendingIdentity, normalize_matricule
from src.infrastructure.database import DocumentStore

logger = logging.getLogger(__name__)

PENDING_COLLECTION = "pending_users"

AmbiguousMatchPolicy = Literal["reject", "first"]


class PendingRecordMatcher:
    """Locates the pending record matching an identity proof.

    Read-only: the matcher never writes to the store.

    Attributes:
        store: Document store holding ``pending_users``.
        ambiguous_match_policy: "reject" raises AmbiguousMatchError when
            several records match; "first" takes the oldest one.
    """

    def __init__(
        self,
        store: DocumentStore,
        ambiguous_match_policy: AmbiguousMatchPolicy = "reject",
    ) -> None:
        self.store = store
        self.ambiguous_match_policy = ambiguous_match_policy

    async def find_pending_match(
        self,
        proof: IdentityProof,
        prefilter_matricule: bool = False,
    ) -> PendingIdentity:
        """Find the pending record matching a proof.

        Args:
            proof: Matricule, first name and last name.
            prefilter_matricule: Also filter on the matricule in the store
                query instead of only in memory. Requires matricules to be
                stored normalized.

        Returns:
            The matching pending identity.

        Raises:
            NoMatchingRecordError: If nothing matches.
            AmbiguousMatchError: If several records match under the
                "reject" policy.
            DatabaseError: If the query fails.
        """
        where: dict[str, str] = {"status": "inactive"}
        if prefilter_matricule:
            where["matricule"] = normalize_matricule(proof.matricule)

        snapshots = await self.store.query(PENDING_COLLECTION, where)

        matches: list[PendingIdentity] = []
        for snapshot in snapshots:
            try:
                candidate = PendingIdentity.from_snapshot(snapshot)
            except ValidationError as e:
                logger.warning("Skipping malformed pending record %s: %s", snapshot.id, e)
                continue
            if candidate.matches(proof):
                matches.append(candidate)

        if not matches:
            raise NoMatchingRecordError(
                "No pending account matches the provided matricule and name"
            )

        if len(matches) > 1:
            logger.warning(
                "Ambiguous pending match: matricule=%s, matches=%d, policy=%s",
                normalize_matricule(proof.matricule),
                len(matches),
                self.ambiguous_match_policy,
            )
            if self.ambiguous_match_policy == "reject":
                raise AmbiguousMatchError(
                    "Several pending accounts match the provided details; "
                    "contact an administrator",
                    match_count=len(matches),
                )

        return matches[0]
