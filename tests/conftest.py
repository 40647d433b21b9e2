# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (services over an in-memory SQLite document store)
- Integration tests (the FastAPI app through TestClient)
"""

from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.middleware.rate_limit import limiter
from src.core.config import Settings, clear_settings_cache
from src.domains.activation import PendingRecordMatcher
from src.domains.auth import DocumentIdentityProvider, PasswordHasher, PermissionVerifier
from src.domains.enrollment import EnrollmentResolver
from src.infrastructure.database import SqlDocumentStore, create_document_engine
from src.utils.datetime import current_academic_year


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DOCDB_URL": "sqlite+aiosqlite:///:memory:",
        "JWT_SECRET_KEY": "test-secret-key-for-testing-only",
        "JWT_ALGORITHM": "HS256",
        "AUTH_BCRYPT_ROUNDS": "4",
        "VALIDATION_URL": "https://validator.test/api/validate-student",
        "VALIDATION_MAX_ATTEMPTS": "3",
        "VALIDATION_BACKOFF_MIN": "0",
        "VALIDATION_BACKOFF_MAX": "0",
        "ACTIVATION_BOOTSTRAP_ADMIN_EMAIL": "root@campus.test",
    }


@pytest.fixture
def test_settings(
    monkeypatch: pytest.MonkeyPatch,
    test_environment: dict[str, str],
) -> Generator[Settings, None, None]:
    """Settings built from the test environment."""
    for key, value in test_environment.items():
        monkeypatch.setenv(key, value)
    clear_settings_cache()
    yield Settings()
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> Generator[None, None, None]:
    """Start every test with empty rate limit counters."""
    limiter.reset()
    yield
    limiter.reset()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Store and Service Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def store(test_settings: Settings) -> AsyncGenerator[SqlDocumentStore, None]:
    """In-memory SQLite document store with the schema created."""
    document_store = SqlDocumentStore(create_document_engine(test_settings))
    await document_store.create_schema()
    yield document_store
    await document_store.close()


@pytest.fixture
def identity(store: SqlDocumentStore) -> DocumentIdentityProvider:
    """Identity provider with a fast bcrypt cost."""
    return DocumentIdentityProvider(store, PasswordHasher(rounds=4))


@pytest.fixture
def verifier(store: SqlDocumentStore) -> PermissionVerifier:
    """Admin permission verifier."""
    return PermissionVerifier(store)


@pytest.fixture
def enrollment(store: SqlDocumentStore) -> EnrollmentResolver:
    """Enrollment resolver with the default group."""
    return EnrollmentResolver(store)


@pytest.fixture
def matcher(store: SqlDocumentStore) -> PendingRecordMatcher:
    """Pending record matcher rejecting ambiguous matches."""
    return PendingRecordMatcher(store)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def academic_year() -> str:
    """Academic year the claim path looks classes up in."""
    return current_academic_year()


@pytest.fixture
def sample_pending_student() -> dict[str, Any]:
    """Pending student as an administrator would register them."""
    return {
        "matricule": "E123",
        "firstName": "Jean",
        "lastName": "DUPONT",
        "role": "student",
        "status": "inactive",
        "niveau": "L1",
        "filiere": "IG",
    }


@pytest.fixture
def sample_class(academic_year: str) -> dict[str, Any]:
    """Class matching the sample pending student."""
    return {
        "name": "L1-IG-G1",
        "niveau": "L1",
        "filiere": "IG",
        "groupe": 1,
        "anneeScolaire": academic_year,
        "studentIds": [],
    }


# =============================================================================
# API Fixtures
# =============================================================================


class StubValidator:
    """Student validation endpoint served through httpx.MockTransport.

    Returns the queued responses in order, repeating the last one, and
    records every request it receives.
    """

    def __init__(self) -> None:
        self.responses: list[httpx.Response] = [httpx.Response(200, json={"valid": True})]
        self.requests: list[httpx.Request] = []

    def respond_with(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )


@pytest.fixture
def validator() -> StubValidator:
    """Stub for the external student validation service."""
    return StubValidator()


@pytest.fixture
def app(test_settings: Settings, validator: StubValidator) -> FastAPI:
    """Application wired to an in-memory store and the stub validator."""
    return create_app(test_settings, validation_transport=httpx.MockTransport(validator))


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seed_document(client: TestClient) -> Callable[[str, str, dict[str, Any]], None]:
    """Create documents in the running application's store."""

    def _seed(collection: str, doc_id: str, data: dict[str, Any]) -> None:
        client.portal.call(app_store_of(client).create, collection, doc_id, data)

    return _seed


@pytest.fixture
def sign_in(client: TestClient) -> Callable[..., dict[str, str]]:
    """Sign in through the API and return an Authorization header."""

    def _sign_in(email: str, password: str = "motdepasse") -> dict[str, str]:
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _sign_in


@pytest.fixture
def sign_up(
    client: TestClient,
    sign_in: Callable[..., dict[str, str]],
) -> Callable[..., tuple[str, dict[str, str]]]:
    """Create a principal, sign in, and return its id and auth header."""

    def _sign_up(email: str, password: str = "motdepasse") -> tuple[str, dict[str, str]]:
        response = client.post(
            "/api/v1/auth/signup", json={"email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        return response.json()["uid"], sign_in(email, password)

    return _sign_up


def app_store_of(client: TestClient) -> SqlDocumentStore:
    """Document store of the application behind a test client."""
    return client.app.state.services.store


@pytest.fixture
def fetch_document(client: TestClient) -> Callable[[str, str], dict[str, Any] | None]:
    """Read a document from the running application's store."""

    def _fetch(collection: str, doc_id: str) -> dict[str, Any] | None:
        snapshot = client.portal.call(app_store_of(client).get, collection, doc_id)
        return snapshot.to_dict() if snapshot else None

    return _fetch
