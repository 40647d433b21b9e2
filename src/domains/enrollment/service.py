# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment resolver for placing activated students into classes.

This module provides the EnrollmentResolver class for:
- Deriving a class name from niveau, filiere and group number
- Looking up the class, optionally restricted to one academic year
- Adding the student to the class roster and recording the outcome
  on the student's user document

A missing class never fails an activation. The student document gets
``classAssignmentStatus = failed_class_not_found`` (or
``failed_db_error`` when the lookup itself failed) so that an
administrator can fix the assignment later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from src.infrastructure.database import DatabaseError, DocumentStore

logger = logging.getLogger(__name__)

CLASSES_COLLECTION = "classes"
USERS_COLLECTION = "users"
ROSTER_FIELD = "studentIds"


class ClassAssignmentStatus(str, Enum):
    """Outcome of placing a student into a class."""

    ASSIGNED = "assigned"
    FAILED_CLASS_NOT_FOUND = "failed_class_not_found"
    FAILED_DB_ERROR = "failed_db_error"
    NOT_APPLICABLE = "not_applicable"


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class ClassNotFoundError(EnrollmentServiceError):
    """Raised when no class carries the derived name."""

    def __init__(self, class_name: str, academic_year: str | None = None) -> None:
        message = f"Class {class_name} not found"
        if academic_year:
            message = f"{message} for academic year {academic_year}"
        super().__init__(message)
        self.class_name = class_name
        self.academic_year = academic_year


@dataclass(frozen=True)
class ClassMatch:
    """A class found by name lookup."""

    class_id: str
    name: str
    academic_year: str | None = None


@dataclass(frozen=True)
class EnrollmentOutcome:
    """Result of resolve_and_enroll().

    Attributes:
        status: Assignment status recorded on the student document.
        class_name: Derived class name that was looked up.
        class_id: Class identifier when the student was enrolled.
    """

    status: ClassAssignmentStatus
    class_name: str
    class_id: str | None = None

    @property
    def class_found(self) -> bool:
        """Whether the student is now on a class roster."""
        return self.status == ClassAssignmentStatus.ASSIGNED


def _text(value: object) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class EnrollmentResolver:
    """Resolves the class of a student and updates its roster.

    Attributes:
        store: Document store holding classes and users.
        default_group_number: Group used when the caller has none.
    """

    def __init__(self, store: DocumentStore, default_group_number: int = 1) -> None:
        """Initialize the resolver.

        Args:
            store: Document store.
            default_group_number: Group number for students without one.
        """
        self.store = store
        self.default_group_number = default_group_number

    def class_name_for(
        self,
        niveau: str,
        filiere: str,
        group_number: int | None = None,
    ) -> str:
        """Derive the class name, e.g. ``L1-IG-G1``.

        Args:
            niveau: Study level.
            filiere: Programme code.
            group_number: Group within the programme, default group if None.

        Returns:
            Uppercased class name.
        """
        group = group_number if group_number is not None else self.default_group_number
        return f"{_text(niveau).strip()}-{_text(filiere).strip()}-G{group}".upper()

    async def find_class(
        self,
        niveau: str,
        filiere: str,
        group_number: int | None = None,
        academic_year: str | None = None,
    ) -> ClassMatch:
        """Look up the class for a niveau/filiere/group combination.

        Args:
            niveau: Study level.
            filiere: Programme code.
            group_number: Group within the programme.
            academic_year: Restrict to this academic year when given.

        Returns:
            The first matching class.

        Raises:
            ClassNotFoundError: If no class matches.
            DatabaseError: If the lookup fails.
        """
        class_name = self.class_name_for(niveau, filiere, group_number)
        where: dict[str, str] = {"name": class_name}
        if academic_year:
            where["anneeScolaire"] = academic_year

        matches = await self.store.query(CLASSES_COLLECTION, where, limit=1)
        if not matches:
            raise ClassNotFoundError(class_name, academic_year)

        found = matches[0]
        return ClassMatch(
            class_id=found.id,
            name=class_name,
            academic_year=found.get("anneeScolaire"),
        )

    async def resolve_and_enroll(
        self,
        student_id: str,
        niveau: str,
        filiere: str,
        group_number: int | None = None,
        academic_year: str | None = None,
    ) -> EnrollmentOutcome:
        """Find the student's class, add the student to it and record the result.

        Never raises for lookup or write failures; they are reported
        through the returned status.

        Args:
            student_id: Principal id of the student.
            niveau: Study level.
            filiere: Programme code.
            group_number: Group within the programme.
            academic_year: Restrict the lookup to this academic year.

        Returns:
            EnrollmentOutcome describing what was recorded.
        """
        class_name = self.class_name_for(niveau, filiere, group_number)

        try:
            match = await self.find_class(niveau, filiere, group_number, academic_year)
        except ClassNotFoundError as e:
            logger.warning("Enrollment skipped for %s: %s", student_id, e)
            return await self._record_failure(
                student_id, class_name, ClassAssignmentStatus.FAILED_CLASS_NOT_FOUND
            )
        except DatabaseError as e:
            logger.error("Class lookup failed for %s: %s", student_id, e)
            return await self._record_failure(
                student_id, class_name, ClassAssignmentStatus.FAILED_DB_ERROR
            )

        batch = self.store.batch()
        batch.array_union(CLASSES_COLLECTION, match.class_id, ROSTER_FIELD, [student_id])
        batch.update(
            USERS_COLLECTION,
            student_id,
            {
                "classAssignmentStatus": ClassAssignmentStatus.ASSIGNED.value,
                "classId": match.class_id,
            },
        )
        try:
            await batch.commit()
        except DatabaseError as e:
            logger.error(
                "Roster update failed: student=%s, class=%s: %s",
                student_id,
                match.class_id,
                e,
            )
            return await self._record_failure(
                student_id, class_name, ClassAssignmentStatus.FAILED_DB_ERROR
            )

        logger.info(
            "Student enrolled: student=%s, class=%s (%s)",
            student_id,
            match.class_id,
            class_name,
        )
        return EnrollmentOutcome(
            status=ClassAssignmentStatus.ASSIGNED,
            class_name=class_name,
            class_id=match.class_id,
        )

    async def _record_failure(
        self,
        student_id: str,
        class_name: str,
        status: ClassAssignmentStatus,
    ) -> EnrollmentOutcome:
        try:
            await self.store.update(
                USERS_COLLECTION,
                student_id,
                {"classAssignmentStatus": status.value},
            )
        except DatabaseError as e:
            logger.error(
                "Could not record %s for student %s: %s", status.value, student_id, e
            )

        return EnrollmentOutcome(status=status, class_name=class_name)
