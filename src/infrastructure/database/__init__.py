# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document database infrastructure.

This package provides:
- connection: Engine and sessionmaker construction, DatabaseError
- store: The DocumentStore interface and atomic WriteBatch
- sql_store: SQLAlchemy implementation over a JSON documents table

Example:
    from src.infrastructure.database import (
        SqlDocumentStore,
        create_document_engine,
    )

    store = SqlDocumentStore(create_document_engine(settings))
    await store.create_schema()
    pending = await store.query("pending_users", {"status": "inactive"})
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    create_document_engine,
    create_sessionmaker,
)
from src.infrastructure.database.sql_store import SqlDocumentStore
from src.infrastructure.database.store import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStore,
    DocumentStoreError,
    PreconditionFailedError,
    WriteBatch,
    WriteOperation,
)

__all__ = [
    # Connection
    "DatabaseError",
    "check_database_connection",
    "create_document_engine",
    "create_sessionmaker",
    # Store
    "DocumentStore",
    "DocumentSnapshot",
    "WriteBatch",
    "WriteOperation",
    "SqlDocumentStore",
    # Errors
    "DocumentStoreError",
    "DocumentNotFoundError",
    "DocumentExistsError",
    "PreconditionFailedError",
]
