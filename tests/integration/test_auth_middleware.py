# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the authentication middleware.

Tests the middleware in isolation from the document store.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import SecretStr

from src.api.middleware.auth import AuthMiddleware, get_current_user
from src.domains.auth.jwt import JWTManager


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    settings.refresh_token_expire_days = 7
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


@pytest.fixture
def middleware_client(jwt_manager: JWTManager) -> TestClient:
    """App echoing the principal seen by the middleware."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware, jwt_manager=jwt_manager)

    @app.get("/health")
    async def health(request: Request) -> dict:
        user = get_current_user(request)
        return {"user_id": user.id if user else None}

    @app.get("/api/v1/whoami")
    async def whoami(request: Request) -> dict:
        user = get_current_user(request)
        if user is None:
            return {"user_id": None}
        return {"user_id": user.id, "email": user.email, "claims": user.claims}

    return TestClient(app)


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_public_path_skips_token(
        self,
        middleware_client: TestClient,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that public paths are not authenticated even with a token."""
        token = jwt_manager.create_access_token(principal_id="uid-1")

        response = middleware_client.get(
            "/health", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    def test_valid_token_sets_user(
        self,
        middleware_client: TestClient,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that a valid token populates the current principal."""
        token = jwt_manager.create_access_token(
            principal_id="uid-1",
            email="root@campus.test",
            role="admin",
            admin=True,
        )

        response = middleware_client.get(
            "/api/v1/whoami", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.json() == {
            "user_id": "uid-1",
            "email": "root@campus.test",
            "claims": {"admin": True, "role": "admin"},
        }

    def test_no_token_sets_user_none(self, middleware_client: TestClient) -> None:
        """Test that a missing token leaves the principal unset."""
        response = middleware_client.get("/api/v1/whoami")

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    def test_invalid_token_sets_user_none(self, middleware_client: TestClient) -> None:
        """Test that a forged token is ignored."""
        response = middleware_client.get(
            "/api/v1/whoami", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.json()["user_id"] is None

    def test_refresh_token_is_not_accepted(
        self,
        middleware_client: TestClient,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that only access tokens authenticate requests."""
        pair = jwt_manager.create_token_pair(principal_id="uid-1")

        response = middleware_client.get(
            "/api/v1/whoami", headers={"Authorization": f"Bearer {pair.refresh_token}"}
        )

        assert response.json()["user_id"] is None

    def test_non_bearer_scheme(
        self,
        middleware_client: TestClient,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that other authorization schemes are ignored."""
        token = jwt_manager.create_access_token(principal_id="uid-1")

        response = middleware_client.get(
            "/api/v1/whoami", headers={"Authorization": f"Token {token}"}
        )

        assert response.json()["user_id"] is None
