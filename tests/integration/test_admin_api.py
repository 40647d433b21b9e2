# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the admin mutation and user management endpoints."""

from typing import Any

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def admin_headers(sign_up, seed_document) -> dict[str, str]:
    """Authorization header of a principal whose user document is admin."""
    uid, headers = sign_up("admin@campus.test")
    seed_document("users", uid, {"role": "admin", "status": "active", "email": "admin@campus.test"})
    return headers


@pytest.fixture
def student_headers(sign_up, seed_document) -> dict[str, str]:
    """Authorization header of an active student."""
    uid, headers = sign_up("jean@campus.test")
    seed_document("users", uid, {"role": "student", "status": "active"})
    return headers


class TestAdminMutations:
    """Tests for /admin/{collection} endpoints."""

    def test_requires_authentication(self, client: TestClient) -> None:
        """Test that anonymous callers are refused."""
        response = client.post("/api/v1/admin/subjects", json={"name": "Algo"})

        assert response.status_code == 401

    def test_student_is_forbidden(
        self,
        client: TestClient,
        student_headers: dict[str, str],
    ) -> None:
        """Test that a non-admin caller cannot mutate."""
        response = client.post(
            "/api/v1/admin/subjects", json={"name": "Algo"}, headers=student_headers
        )

        assert response.status_code == 403
        assert "not an admin" in response.json()["detail"]

    def test_create_pending_user(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        fetch_document,
    ) -> None:
        """Test pre-registration of a student."""
        response = client.post(
            "/api/v1/admin/pending_users",
            json={
                "matricule": "e456",
                "firstName": "Marie",
                "lastName": "CURIE",
                "role": "student",
                "niveau": "L2",
                "filiere": "GB",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        doc_id = response.json()["id"]
        pending = fetch_document("pending_users", doc_id)
        assert pending["matricule"] == "E456"
        assert pending["status"] == "inactive"

    def test_create_class(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        fetch_document,
        academic_year: str,
    ) -> None:
        """Test that a class gets its derived name."""
        response = client.post(
            "/api/v1/admin/classes",
            json={"niveau": "L1", "filiere": "IG"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        created = fetch_document("classes", response.json()["id"])
        assert created["name"] == "L1-IG-G1"
        assert created["anneeScolaire"] == academic_year

    def test_invalid_document(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        """Test that a student without filiere is refused."""
        response = client.post(
            "/api/v1/admin/pending_users",
            json={"matricule": "E1", "firstName": "A", "lastName": "B", "role": "student"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_collection_not_allowed(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        """Test that principals cannot be written through document mutations."""
        response = client.post(
            "/api/v1/admin/auth_principals", json={"email": "x@y.z"}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_update_and_delete(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        seed_document,
        fetch_document,
        sample_class: dict[str, Any],
    ) -> None:
        """Test merge update followed by deletion."""
        seed_document("classes", "class-1", sample_class)

        updated = client.put(
            "/api/v1/admin/classes/class-1",
            json={"teacherIds": ["t-1"]},
            headers=admin_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["id"] == "class-1"
        assert fetch_document("classes", "class-1")["teacherIds"] == ["t-1"]
        assert fetch_document("classes", "class-1")["name"] == "L1-IG-G1"

        deleted = client.delete("/api/v1/admin/classes/class-1", headers=admin_headers)
        assert deleted.status_code == 200
        assert fetch_document("classes", "class-1") is None

    def test_update_missing_document(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        """Test that updating a missing document returns 404."""
        response = client.put(
            "/api/v1/admin/subjects/ghost", json={"name": "x"}, headers=admin_headers
        )

        assert response.status_code == 404


class TestDeletePrincipal:
    """Tests for DELETE /users/{uid}."""

    def test_delete_principal(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
    ) -> None:
        """Test deletion, then deletion of the now missing principal."""
        created = client.post(
            "/api/v1/auth/signup",
            json={"email": "leaving@campus.test", "password": "motdepasse"},
        )
        uid = created.json()["uid"]

        first = client.delete(f"/api/v1/users/{uid}", headers=admin_headers)
        assert first.status_code == 200
        assert first.json() == {"success": True, "id": uid, "message": "User deleted."}

        second = client.delete(f"/api/v1/users/{uid}", headers=admin_headers)
        assert second.status_code == 200
        assert second.json()["message"] == "User not found, nothing to delete."

        login = client.post(
            "/api/v1/auth/login",
            json={"email": "leaving@campus.test", "password": "motdepasse"},
        )
        assert login.status_code == 401

    def test_student_cannot_delete_principal(
        self,
        client: TestClient,
        student_headers: dict[str, str],
    ) -> None:
        """Test that only admins can delete principals."""
        response = client.delete("/api/v1/users/anyone", headers=student_headers)

        assert response.status_code == 403
