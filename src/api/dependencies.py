# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

The application lifespan builds every collaborator once through
build_services() and keeps the resulting Services on ``app.state``.
Dependencies below hand those instances to the endpoints; nothing is
created lazily on first use.

Example:
    @router.post("/claim")
    async def claim(
        body: ActivationRequest,
        orchestrator: ActivationOrchestrator = Depends(get_orchestrator),
    ):
        ...
"""

import logging
from dataclasses import dataclass

import httpx
from fastapi import HTTPException, Request, status

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import Settings
from src.domains.activation import (
    AccountRegistrar,
    ActivationOrchestrator,
    ExternalValidation,
    NoValidation,
    PendingRecordMatcher,
    StudentValidatorClient,
)
from src.domains.admin import AdminService
from src.domains.auth import (
    AuthService,
    DocumentIdentityProvider,
    IdentityProvider,
    JWTManager,
    PasswordHasher,
    PermissionVerifier,
)
from src.domains.enrollment import EnrollmentResolver
from src.infrastructure.database import DocumentStore, SqlDocumentStore, create_document_engine

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Collaborators shared by all requests of one application."""

    store: DocumentStore
    identity: IdentityProvider
    jwt: JWTManager
    auth: AuthService
    verifier: PermissionVerifier
    enrollment: EnrollmentResolver
    orchestrator: ActivationOrchestrator
    registrar: AccountRegistrar
    admin: AdminService
    http_client: httpx.AsyncClient


async def build_services(
    settings: Settings,
    validation_transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    """Construct the store, identity provider, validator and services.

    Args:
        settings: Application settings.
        validation_transport: Optional transport for the validation HTTP
            client, used to point it at a stub.

    Returns:
        Fully wired Services.
    """
    store = SqlDocumentStore(create_document_engine(settings))
    if settings.docdb.create_schema:
        await store.create_schema()

    identity = DocumentIdentityProvider(store, PasswordHasher(rounds=settings.auth.bcrypt_rounds))
    jwt_manager = JWTManager(settings.jwt)
    verifier = PermissionVerifier(store)
    enrollment = EnrollmentResolver(
        store,
        default_group_number=settings.activation.default_group_number,
    )

    http_client = httpx.AsyncClient(transport=validation_transport)
    external = ExternalValidation(StudentValidatorClient(http_client, settings.validation))

    orchestrator = ActivationOrchestrator(
        store=store,
        identity=identity,
        matcher=PendingRecordMatcher(
            store,
            ambiguous_match_policy=settings.activation.ambiguous_match_policy,
        ),
        enrollment=enrollment,
        claim_strategy=external if settings.activation.validate_claimed_students else NoValidation(),
        registration_strategy=external if settings.validation.enabled else NoValidation(),
        bootstrap_admin_email=settings.activation.bootstrap_admin_email,
    )

    return Services(
        store=store,
        identity=identity,
        jwt=jwt_manager,
        auth=AuthService(identity, jwt_manager, store),
        verifier=verifier,
        enrollment=enrollment,
        orchestrator=orchestrator,
        registrar=AccountRegistrar(identity, orchestrator),
        admin=AdminService(store, identity, verifier, enrollment),
        http_client=http_client,
    )


async def close_services(services: Services) -> None:
    """Release the HTTP client and database connections."""
    await services.http_client.aclose()
    await services.store.close()


# =========================================================================
# Service Dependencies
# =========================================================================


def get_services(request: Request) -> Services:
    """Get the services built by the application lifespan.

    Raises:
        HTTPException: If the application has not finished starting.
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return services


def get_orchestrator(request: Request) -> ActivationOrchestrator:
    """Get the activation orchestrator."""
    return get_services(request).orchestrator


def get_registrar(request: Request) -> AccountRegistrar:
    """Get the account registrar."""
    return get_services(request).registrar


def get_auth_service(request: Request) -> AuthService:
    """Get the authentication service."""
    return get_services(request).auth


def get_admin_service(request: Request) -> AdminService:
    """Get the admin service."""
    return get_services(request).admin


def get_store(request: Request) -> DocumentStore:
    """Get the document store."""
    return get_services(request).store


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated principal.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
