# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the activation domain.

This module defines Pydantic models and enums for:
- Roles, study levels and programmes
- Pending identities and the identity proof used to match them
- Activation requests for the claim and self-registration paths
- Activation outcomes and the two result shapes returned to callers

Request and result models use camelCase aliases on the wire
(``firstName``, ``newAuthUserId``, ``classId``) and snake_case in
Python.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from src.infrastructure.database import DocumentSnapshot


class Role(str, Enum):
    """User roles."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class Niveau(str, Enum):
    """Study levels."""

    L1 = "L1"
    L2 = "L2"
    L3 = "L3"
    M1 = "M1"
    M2 = "M2"


class Filiere(str, Enum):
    """Programmes."""

    IG = "IG"
    GB = "GB"
    ASR = "ASR"
    GID = "GID"
    OCC = "OCC"


class UserStatus(str, Enum):
    """Lifecycle status of an ActiveUser document."""

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class ActivationState(str, Enum):
    """States of the activation state machine.

    START -> MATCHED -> (VALIDATED | VALIDATION_FAILED)
          -> (ENROLLED | ENROLLMENT_DEGRADED) -> DONE, with ERROR
    reachable from any step.
    """

    START = "start"
    MATCHED = "matched"
    VALIDATED = "validated"
    VALIDATION_FAILED = "validation_failed"
    ENROLLED = "enrolled"
    ENROLLMENT_DEGRADED = "enrollment_degraded"
    DONE = "done"
    ERROR = "error"


class OutcomeStatus(str, Enum):
    """User-visible outcome of an activation."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def normalize_matricule(value: str) -> str:
    """Uppercase and trim a matricule."""
    return value.strip().upper()


def normalize_name(value: str) -> str:
    """Lowercase and trim a first or last name."""
    return value.strip().lower()


def _text(value: Any) -> str:
    # A stored null never matches a proof
    return "" if value is None else str(value)


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class IdentityProof(CamelModel):
    """Fields a person supplies to prove they own a pending record."""

    matricule: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)

    @field_validator("matricule", "first_name", "last_name")
    @classmethod
    def strip_not_blank(cls, v: str) -> str:
        """Reject values made only of whitespace."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class PendingIdentity(BaseModel):
    """A pre-registered account awaiting activation.

    Attributes:
        id: Document id in ``pending_users``.
        matricule: Institutional identifier.
        first_name: First name as entered by the administrator.
        last_name: Last name as entered by the administrator.
        role: Role the account will receive.
        status: Always "inactive" while pending.
        niveau: Study level (students).
        filiere: Programme (students).
        groupe: Group number within the programme (students).
        data: Raw document fields, copied onto the user document.
    """

    id: str
    matricule: str
    first_name: str
    last_name: str
    role: Role
    status: str = "inactive"
    niveau: str | None = None
    filiere: str | None = None
    groupe: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> "PendingIdentity":
        """Build from a ``pending_users`` document."""
        groupe = snapshot.get("groupe")
        return cls(
            id=snapshot.id,
            matricule=_text(snapshot.get("matricule")),
            first_name=_text(snapshot.get("firstName")),
            last_name=_text(snapshot.get("lastName")),
            role=snapshot.get("role", Role.STUDENT.value),
            status=snapshot.get("status", "inactive"),
            niveau=snapshot.get("niveau"),
            filiere=snapshot.get("filiere"),
            groupe=None if groupe == "" else groupe,
            data=dict(snapshot.data),
        )

    def matches(self, proof: IdentityProof) -> bool:
        """Compare normalized matricule and names with a proof."""
        return (
            normalize_matricule(self.matricule) == normalize_matricule(proof.matricule)
            and normalize_name(self.first_name) == normalize_name(proof.first_name)
            and normalize_name(self.last_name) == normalize_name(proof.last_name)
        )


class ActivationRequest(IdentityProof):
    """Inbound activation request.

    Used as-is by the claim path; the self-registration path extends it
    with niveau and filiere.
    """

    email: EmailStr
    new_auth_user_id: str = Field(min_length=1)

    @property
    def proof(self) -> IdentityProof:
        """The identity proof carried by this request."""
        return IdentityProof(
            matricule=self.matricule,
            first_name=self.first_name,
            last_name=self.last_name,
        )


class RegistrationRequest(ActivationRequest):
    """Inbound self-registration request for students."""

    niveau: Niveau
    filiere: Filiere
    groupe: int | None = Field(default=None, ge=1)


class RegistrationResult(CamelModel):
    """Result returned by the self-registration path."""

    status: OutcomeStatus
    message: str
    class_id: str | None = None


class ClaimResult(CamelModel):
    """Result returned by the claim path."""

    success: bool
    error: str | None = None
    user_profile: dict[str, Any] | None = None


class ActivationOutcome(BaseModel):
    """Internal result of one activation run.

    Attributes:
        state: Final state reached by the state machine.
        status: success, warning or error.
        message: Human-readable description.
        class_id: Class the student was enrolled in.
        user_profile: User document after activation.
    """

    state: ActivationState
    status: OutcomeStatus
    message: str
    class_id: str | None = None
    user_profile: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the account ended up active."""
        return self.status != OutcomeStatus.ERROR

    def to_registration_result(self) -> RegistrationResult:
        """Render as ``{status, message, classId?}``."""
        return RegistrationResult(
            status=self.status,
            message=self.message,
            class_id=self.class_id,
        )

    def to_claim_result(self) -> ClaimResult:
        """Render as ``{success, error?, userProfile?}``."""
        if not self.succeeded:
            return ClaimResult(success=False, error=self.message)
        return ClaimResult(success=True, user_profile=self.user_profile)
