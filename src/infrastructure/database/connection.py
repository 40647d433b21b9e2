# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document database connection management using SQLAlchemy async.

This module builds the async engine and sessionmaker backing the
document store. Engines are created explicitly by the application
lifespan and handed to the store; nothing is initialized on first use.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production and
aiosqlite for local runs and tests.

Example:
    from src.infrastructure.database.connection import (
        create_document_engine,
        create_sessionmaker,
    )

    engine = create_document_engine(settings)
    sessionmaker = create_sessionmaker(engine)
    async with sessionmaker() as session:
        ...
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from src.core.config.settings import Settings


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def create_document_engine(settings: "Settings") -> AsyncEngine:
    """Create the async engine for the document database.

    SQLite URLs get a single shared connection so that in-memory
    databases survive across sessions.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        Configured AsyncEngine.

    Raises:
        DatabaseError: If engine creation fails.
    """
    url = settings.docdb.url

    try:
        if url.startswith("sqlite"):
            return create_async_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=False,
            )

        return create_async_engine(
            url,
            pool_size=settings.docdb.pool_size,
            max_overflow=settings.docdb.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize document database connection", e) from e


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the sessionmaker bound to a document database engine.

    Args:
        engine: Async engine returned by create_document_engine().

    Returns:
        Sessionmaker producing AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if the document database is reachable.

    Performs a simple query to verify database connectivity.

    Args:
        engine: Engine to probe.

    Returns:
        True if the database is reachable, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError):
        return False
