# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account registration: principal creation plus pending-account claim.

A person registering with a matricule gets a new authentication
principal, which then claims the matching pending account. When the
claim fails hard the principal is deleted again, so no login is left
without a user profile.
"""

import logging

from src.domains.activation.models import ActivationOutcome, ActivationRequest, IdentityProof
from src.domains.activation.service import ActivationOrchestrator
from src.domains.auth.identity import IdentityProvider

logger = logging.getLogger(__name__)


class AccountRegistrar:
    """Creates a principal and claims the pending account for it."""

    def __init__(self, identity: IdentityProvider, orchestrator: ActivationOrchestrator) -> None:
        self._identity = identity
        self._orchestrator = orchestrator

    async def register(
        self,
        email: str,
        password: str,
        proof: IdentityProof,
    ) -> tuple[str | None, ActivationOutcome]:
        """Register a new login and activate the matching pending account.

        Args:
            email: Login email.
            password: Login password.
            proof: Matricule and names of the pending account.

        Returns:
            The principal id (None if it was removed) and the activation outcome.

        Raises:
            PrincipalExistsError: If the email is already registered.
            ValueError: If the password is too short.
        """
        principal = await self._identity.create_principal(email, password)

        request = ActivationRequest(
            matricule=proof.matricule,
            first_name=proof.first_name,
            last_name=proof.last_name,
            email=principal.email,
            new_auth_user_id=principal.uid,
        )
        outcome = await self._orchestrator.claim_pending_account(request)
        if outcome.succeeded:
            return principal.uid, outcome

        logger.info("Removing principal %s after failed claim", principal.uid)
        try:
            await self._identity.delete_principal(principal.uid)
        except Exception as e:
            logger.error("Could not remove orphaned principal %s: %s", principal.uid, e)
            return principal.uid, outcome

        return None, outcome
