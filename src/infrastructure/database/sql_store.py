# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the document store.

Every collection shares a single ``documents`` table holding one JSON
payload per (collection, doc_id). Equality filters compile to the
dialect's JSON extraction operators (``->>`` on PostgreSQL,
``JSON_EXTRACT`` on SQLite).

Write batches run inside one transaction. Rows touched by a batch are
selected FOR UPDATE on databases that support it, so two concurrent
batches deleting the same pending document cannot both succeed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    create_sessionmaker,
)
from src.infrastructure.database.store import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStore,
    DocumentStoreError,
    PreconditionFailedError,
    WriteOperation,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for document store tables."""


class DocumentRecord(Base):
    """A stored JSON document."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(64), index=True)
    doc_id: Mapped[str] = mapped_column(String(128))
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
    )


def _field_equals(field_name: str, value: Any):
    """Build an equality clause on a JSON field."""
    element = DocumentRecord.data[field_name]
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    raise ValueError(f"Unsupported filter value type for '{field_name}': {type(value).__name__}")


class SqlDocumentStore(DocumentStore):
    """Document store backed by a SQLAlchemy async engine.

    Attributes:
        engine: Async engine owned by this store.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize the store.

        Args:
            engine: Async engine created by create_document_engine().
        """
        self.engine = engine
        self._sessionmaker: async_sessionmaker[AsyncSession] = create_sessionmaker(engine)

    async def create_schema(self) -> None:
        """Create the documents table if it does not exist."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to create document schema", e) from e

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        try:
            async with self._sessionmaker() as session:
                record = await self._load(session, collection, doc_id, lock=False)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to read {collection}/{doc_id}", e) from e

        return self._snapshot(record) if record else None

    async def query(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        stmt = select(DocumentRecord).where(DocumentRecord.collection == collection)
        for field_name, value in (where or {}).items():
            stmt = stmt.where(_field_equals(field_name, value))
        stmt = stmt.order_by(DocumentRecord.seq)
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to query {collection}", e) from e

        return [self._snapshot(record) for record in records]

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid4().hex
        await self.create(collection, doc_id, data)
        return doc_id

    async def commit_batch(self, operations: list[WriteOperation]) -> None:
        applying: WriteOperation | None = None
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    for applying in operations:
                        await self._apply(session, applying)
        except DocumentStoreError:
            raise
        except IntegrityError as e:
            # Concurrent insert of the same (collection, doc_id)
            if applying is None:
                raise DatabaseError("Write batch failed", e) from e
            raise DocumentExistsError(applying.collection, applying.doc_id) from e
        except SQLAlchemyError as e:
            raise DatabaseError("Write batch failed", e) from e

        logger.debug("Committed write batch: operations=%d", len(operations))

    async def ping(self) -> bool:
        return await check_database_connection(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    async def _apply(self, session: AsyncSession, operation: WriteOperation) -> None:
        """Apply one queued operation inside an open transaction."""
        record = await self._load(session, operation.collection, operation.doc_id)

        if operation.kind == "create":
            if record is not None:
                raise DocumentExistsError(operation.collection, operation.doc_id)
            session.add(
                DocumentRecord(
                    collection=operation.collection,
                    doc_id=operation.doc_id,
                    data=dict(operation.data),
                )
            )
            await session.flush()
            return

        if operation.kind == "set":
            if record is None:
                session.add(
                    DocumentRecord(
                        collection=operation.collection,
                        doc_id=operation.doc_id,
                        data=dict(operation.data),
                    )
                )
                await session.flush()
            else:
                record.data = dict(operation.data)
            return

        if operation.kind == "delete":
            if record is None:
                if operation.must_exist:
                    raise DocumentNotFoundError(operation.collection, operation.doc_id)
                return
            await session.delete(record)
            await session.flush()
            return

        if record is None:
            raise DocumentNotFoundError(operation.collection, operation.doc_id)

        if operation.kind == "update":
            for field_name, expected_value in (operation.expected or {}).items():
                if record.data.get(field_name) != expected_value:
                    raise PreconditionFailedError(
                        operation.collection, operation.doc_id, field_name
                    )
            record.data = {**record.data, **operation.data}
            return

        if operation.kind == "array_union":
            current = list(record.data.get(operation.field_name) or [])
            for value in operation.values:
                if value not in current:
                    current.append(value)
            record.data = {**record.data, operation.field_name: current}
            return

        raise ValueError(f"Unknown write operation: {operation.kind}")

    async def _load(
        self,
        session: AsyncSession,
        collection: str,
        doc_id: str,
        lock: bool = True,
    ) -> DocumentRecord | None:
        stmt = select(DocumentRecord).where(
            DocumentRecord.collection == collection,
            DocumentRecord.doc_id == doc_id,
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _snapshot(record: DocumentRecord) -> DocumentSnapshot:
        return DocumentSnapshot(
            collection=record.collection,
            id=record.doc_id,
            data=dict(record.data or {}),
        )
