# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the enrollment resolver."""

from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.domains.activation.models import Filiere, Niveau
from src.domains.enrollment import (
    ClassAssignmentStatus,
    ClassNotFoundError,
    EnrollmentResolver,
)
from src.infrastructure.database import DatabaseError, SqlDocumentStore
from src.utils.datetime import current_academic_year


class TestClassName:
    """Tests for class name derivation."""

    @pytest.fixture
    def resolver(self) -> EnrollmentResolver:
        """Resolver whose store is never touched."""
        return EnrollmentResolver(AsyncMock())

    def test_default_group(self, resolver: EnrollmentResolver) -> None:
        """Test that a missing group falls back to group 1."""
        assert resolver.class_name_for("L1", "IG") == "L1-IG-G1"

    def test_explicit_group_and_case(self, resolver: EnrollmentResolver) -> None:
        """Test that the name is uppercased and trimmed."""
        assert resolver.class_name_for(" m2", "asr ", 3) == "M2-ASR-G3"

    def test_accepts_enums(self, resolver: EnrollmentResolver) -> None:
        """Test that niveau and filiere enums render by value."""
        assert resolver.class_name_for(Niveau.L3, Filiere.GB, 2) == "L3-GB-G2"

    def test_configured_default_group(self) -> None:
        """Test that the default group is configurable."""
        configured = EnrollmentResolver(AsyncMock(), default_group_number=2)

        assert configured.class_name_for("L1", "IG") == "L1-IG-G2"

    def test_academic_year_label(self) -> None:
        """Test that the label starts at the calendar year."""
        assert current_academic_year(date(2025, 10, 3)) == "2025-2026"
        assert current_academic_year(date(2026, 1, 15)) == "2026-2027"


class TestFindClass:
    """Tests for class lookup."""

    @pytest.mark.asyncio
    async def test_find_by_name(
        self,
        enrollment: EnrollmentResolver,
        store: SqlDocumentStore,
        sample_class: dict[str, Any],
    ) -> None:
        """Test lookup on the derived name."""
        await store.create("classes", "class-1", sample_class)

        match = await enrollment.find_class("L1", "IG")

        assert match.class_id == "class-1"
        assert match.name == "L1-IG-G1"

    @pytest.mark.asyncio
    async def test_find_restricted_to_academic_year(
        self,
        enrollment: EnrollmentResolver,
        store: SqlDocumentStore,
        sample_class: dict[str, Any],
    ) -> None:
        """Test that the academic year filter skips other years."""
        await store.create("classes", "old", {**sample_class, "anneeScolaire": "2001-2002"})
        await store.create("classes", "current", sample_class)

        match = await enrollment.find_class(
            "L1", "IG", academic_year=sample_class["anneeScolaire"]
        )

        assert match.class_id == "current"

    @pytest.mark.asyncio
    async def test_not_found(self, enrollment: EnrollmentResolver) -> None:
        """Test that a missing class raises ClassNotFoundError."""
        with pytest.raises(ClassNotFoundError) as exc_info:
            await enrollment.find_class("M1", "OCC", 2, academic_year="2025-2026")

        assert exc_info.value.class_name == "M1-OCC-G2"
        assert "2025-2026" in str(exc_info.value)


class TestResolveAndEnroll:
    """Tests for resolve_and_enroll."""

    @pytest.mark.asyncio
    async def test_enrolls_student(
        self,
        enrollment: EnrollmentResolver,
        store: SqlDocumentStore,
        sample_class: dict[str, Any],
    ) -> None:
        """Test roster update and status recording."""
        await store.create("classes", "class-1", sample_class)
        await store.create("users", "stu-1", {"role": "student", "status": "active"})

        outcome = await enrollment.resolve_and_enroll("stu-1", "L1", "IG")

        assert outcome.class_found is True
        assert outcome.class_id == "class-1"
        roster = await store.get("classes", "class-1")
        user = await store.get("users", "stu-1")
        assert roster is not None and roster.get("studentIds") == ["stu-1"]
        assert user is not None
        assert user.get("classAssignmentStatus") == "assigned"
        assert user.get("classId") == "class-1"

    @pytest.mark.asyncio
    async def test_enrolling_twice_keeps_one_entry(
        self,
        enrollment: EnrollmentResolver,
        store: SqlDocumentStore,
        sample_class: dict[str, Any],
    ) -> None:
        """Test that the roster append is idempotent."""
        await store.create("classes", "class-1", sample_class)
        await store.create("users", "stu-1", {"role": "student"})

        await enrollment.resolve_and_enroll("stu-1", "L1", "IG")
        await enrollment.resolve_and_enroll("stu-1", "L1", "IG")

        roster = await store.get("classes", "class-1")
        assert roster is not None
        assert roster.get("studentIds") == ["stu-1"]

    @pytest.mark.asyncio
    async def test_missing_class_is_recorded(
        self,
        enrollment: EnrollmentResolver,
        store: SqlDocumentStore,
    ) -> None:
        """Test that a missing class marks the student instead of failing."""
        await store.create("users", "stu-1", {"role": "student"})

        outcome = await enrollment.resolve_and_enroll("stu-1", "L2", "GB")

        assert outcome.status == ClassAssignmentStatus.FAILED_CLASS_NOT_FOUND
        assert outcome.class_found is False
        assert outcome.class_name == "L2-GB-G1"
        user = await store.get("users", "stu-1")
        assert user is not None
        assert user.get("classAssignmentStatus") == "failed_class_not_found"

    @pytest.mark.asyncio
    async def test_lookup_failure_is_recorded(self) -> None:
        """Test that a failing lookup is reported as failed_db_error."""
        store = AsyncMock()
        store.query.side_effect = DatabaseError("connection lost")
        resolver = EnrollmentResolver(store)

        outcome = await resolver.resolve_and_enroll("stu-1", "L1", "IG")

        assert outcome.status == ClassAssignmentStatus.FAILED_DB_ERROR
        store.update.assert_awaited_once_with(
            "users", "stu-1", {"classAssignmentStatus": "failed_db_error"}
        )

    @pytest.mark.asyncio
    async def test_recording_failure_does_not_raise(self) -> None:
        """Test that a failure to record the status is only logged."""
        store = AsyncMock()
        store.query.return_value = []
        store.update.side_effect = DatabaseError("read-only")
        resolver = EnrollmentResolver(store)

        outcome = await resolver.resolve_and_enroll("stu-1", "L1", "IG")

        assert outcome.status == ClassAssignmentStatus.FAILED_CLASS_NOT_FOUND

    @pytest.mark.asyncio
    async def test_roster_failure_for_missing_student(
        self,
        enrollment: EnrollmentResolver,
        store: SqlDocumentStore,
        sample_class: dict[str, Any],
    ) -> None:
        """Test that a failed batch leaves the roster untouched."""
        await store.create("classes", "class-1", sample_class)

        outcome = await enrollment.resolve_and_enroll("ghost", "L1", "IG")

        assert outcome.status == ClassAssignmentStatus.FAILED_DB_ERROR
        roster = await store.get("classes", "class-1")
        assert roster is not None
        assert roster.get("studentIds") == []
