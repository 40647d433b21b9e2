# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin API schemas.

This module defines the request/response schemas for the administrative
secure-mutation endpoints. Documents other than pending users are
free-form JSON objects; pending users are validated so that the
activation matcher can rely on their shape.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domains.activation.models import (
    CamelModel,
    Filiere,
    Niveau,
    Role,
    normalize_matricule,
)


class PendingUserCreate(CamelModel):
    """A person pre-registered by an administrator.

    The matricule is stored uppercased and trimmed. Students must carry
    a niveau and a filiere so that they can be placed into a class.
    """

    matricule: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: Role
    niveau: Niveau | None = None
    filiere: Filiere | None = None
    groupe: int | None = Field(default=None, ge=1)

    @field_validator("matricule")
    @classmethod
    def normalize(cls, v: str) -> str:
        """Store matricules in canonical form."""
        v = normalize_matricule(v)
        if not v:
            raise ValueError("matricule must not be blank")
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        """Trim surrounding whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def require_student_fields(self) -> "PendingUserCreate":
        """Students need niveau and filiere."""
        if self.role == Role.STUDENT and (self.niveau is None or self.filiere is None):
            raise ValueError("students require niveau and filiere")
        return self

    def to_document(self) -> dict[str, Any]:
        """Document fields for ``pending_users``."""
        document = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        document["status"] = "inactive"
        return document


class ClassCreate(CamelModel):
    """A class created by an administrator.

    The class name is derived from niveau, filiere and groupe by the
    service, the same way the enrollment lookup derives it.
    """

    niveau: Niveau
    filiere: Filiere
    groupe: int = Field(default=1, ge=1)
    annee_scolaire: str | None = Field(default=None, pattern=r"^\d{4}-\d{4}$")
    teacher_ids: list[str] = Field(default_factory=list)

    def to_document(self, name: str, academic_year: str) -> dict[str, Any]:
        """Document fields for ``classes``."""
        document = self.model_dump(by_alias=True, mode="json")
        document.update(
            {
                "name": name,
                "anneeScolaire": self.annee_scolaire or academic_year,
                "studentIds": [],
            }
        )
        return document


class MutationResponse(BaseModel):
    """Result of a secure mutation."""

    success: bool = True
    id: str | None = None
    message: str | None = None
