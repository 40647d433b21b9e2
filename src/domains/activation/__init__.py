# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account activation domain package.

This package reconciles pre-registered identities with new logins:
- Pending-record matching on matricule and names
- External student validation with timeout and bounded retry
- The activation state machine for claim and self-registration
- Composite registration that cleans up orphaned principals
"""

from src.domains.activation.exceptions import (
    ActivationServiceError,
    AmbiguousMatchError,
    ExternalValidationError,
    NoMatchingRecordError,
    PermissionDeniedError,
    PersistenceError,
    UnknownError,
)
from src.domains.activation.matcher import PendingRecordMatcher
from src.domains.activation.models import (
    ActivationOutcome,
    ActivationRequest,
    ActivationState,
    ClaimResult,
    Filiere,
    IdentityProof,
    Niveau,
    OutcomeStatus,
    PendingIdentity,
    RegistrationRequest,
    RegistrationResult,
    Role,
    UserStatus,
)
from src.domains.activation.registration import AccountRegistrar
from src.domains.activation.service import ActivationOrchestrator
from src.domains.activation.validation import (
    ExternalValidation,
    NoValidation,
    StudentValidatorClient,
    ValidationOutcome,
    ValidationStrategy,
)

__all__ = [
    # Services
    "ActivationOrchestrator",
    "AccountRegistrar",
    "PendingRecordMatcher",
    "StudentValidatorClient",
    # Strategies
    "ValidationStrategy",
    "NoValidation",
    "ExternalValidation",
    "ValidationOutcome",
    # Models
    "ActivationOutcome",
    "ActivationRequest",
    "ActivationState",
    "ClaimResult",
    "Filiere",
    "IdentityProof",
    "Niveau",
    "OutcomeStatus",
    "PendingIdentity",
    "RegistrationRequest",
    "RegistrationResult",
    "Role",
    "UserStatus",
    # Errors
    "ActivationServiceError",
    "PermissionDeniedError",
    "NoMatchingRecordError",
    "AmbiguousMatchError",
    "ExternalValidationError",
    "PersistenceError",
    "UnknownError",
]
