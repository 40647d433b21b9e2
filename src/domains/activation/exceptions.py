# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions for the account activation pipeline.

This module defines the exception hierarchy for activation:
- ActivationServiceError: Base exception for all activation errors
- PermissionDeniedError: Caller lacks the rights for the operation
- NoMatchingRecordError: No pending record matches the identity proof
- AmbiguousMatchError: Several pending records match the identity proof
- ExternalValidationError: The external authority rejected the student
- PersistenceError: A store read, write or batch failed
- UnknownError: Anything else, wrapped at the public boundary
"""


class ActivationServiceError(Exception):
    """Base exception for activation errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize activation error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return the message; details are kept for logging only."""
        return self.message


class PermissionDeniedError(ActivationServiceError):
    """Raised when the caller is not allowed to perform the operation."""

    pass


class NoMatchingRecordError(ActivationServiceError):
    """Raised when no pending record matches the supplied identity proof.

    Also raised when an activation has already completed, since the
    pending record is gone by then.
    """

    pass


class AmbiguousMatchError(ActivationServiceError):
    """Raised when more than one pending record matches the identity proof.

    Attributes:
        match_count: Number of matching pending records.
    """

    def __init__(self, message: str, match_count: int):
        super().__init__(message, {"match_count": match_count})
        self.match_count = match_count


class ExternalValidationError(ActivationServiceError):
    """Raised when the external authority does not confirm the student.

    Attributes:
        reason: Rejection reason reported by the validator.
    """

    def __init__(self, reason: str):
        super().__init__(f"Student validation failed: {reason}", {"reason": reason})
        self.reason = reason


class PersistenceError(ActivationServiceError):
    """Raised when reading or writing documents fails."""

    pass


class UnknownError(ActivationServiceError):
    """Raised for unexpected failures caught at the public boundary."""

    pass
