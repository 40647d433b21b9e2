# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document store interface.

This module defines the storage contract used by the domain services:
collections of JSON documents addressed by id, equality queries,
set-semantics array union, and atomic multi-document write batches.

A WriteBatch collects operations and applies them in a single
transaction on commit: either every operation is visible afterwards
or none is.

Example:
    batch = store.batch()
    batch.create("users", uid, profile)
    batch.delete("pending_users", pending_id, must_exist=True)
    batch.array_union("classes", class_id, "studentIds", [uid])
    await batch.commit()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from src.infrastructure.database.connection import DatabaseError


class DocumentStoreError(DatabaseError):
    """Base exception for document level failures."""


class DocumentNotFoundError(DocumentStoreError):
    """Raised when an operation requires a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class DocumentExistsError(DocumentStoreError):
    """Raised when creating a document whose id is already taken."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {collection}/{doc_id} already exists")
        self.collection = collection
        self.doc_id = doc_id


class PreconditionFailedError(DocumentStoreError):
    """Raised when a conditional update finds unexpected field values."""

    def __init__(self, collection: str, doc_id: str, field_name: str) -> None:
        super().__init__(
            f"Precondition on {collection}/{doc_id} failed for field '{field_name}'"
        )
        self.collection = collection
        self.doc_id = doc_id
        self.field_name = field_name


@dataclass(frozen=True)
class DocumentSnapshot:
    """Read-only view of a stored document.

    Attributes:
        collection: Collection name.
        id: Document identifier.
        data: Document fields.
    """

    collection: str
    id: str
    data: dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        """Get a single field value."""
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Return the fields with the document id included."""
        return {**self.data, "id": self.id}


WriteKind = Literal["create", "set", "update", "delete", "array_union"]


@dataclass
class WriteOperation:
    """A single operation queued in a WriteBatch."""

    kind: WriteKind
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    expected: dict[str, Any] | None = None
    field_name: str | None = None
    values: list[Any] = field(default_factory=list)
    must_exist: bool = False


class WriteBatch:
    """Collects write operations and commits them atomically.

    A batch can only be committed once.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._operations: list[WriteOperation] = []
        self._committed = False

    @property
    def operations(self) -> list[WriteOperation]:
        """Queued operations in commit order."""
        return list(self._operations)

    def create(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> WriteBatch:
        """Queue creation of a document that must not exist yet."""
        self._operations.append(WriteOperation("create", collection, doc_id, dict(data)))
        return self

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> WriteBatch:
        """Queue a full overwrite (or creation) of a document."""
        self._operations.append(WriteOperation("set", collection, doc_id, dict(data)))
        return self

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> WriteBatch:
        """Queue a partial update of an existing document."""
        self._operations.append(
            WriteOperation(
                "update",
                collection,
                doc_id,
                dict(fields),
                expected=dict(expected) if expected else None,
            )
        )
        return self

    def delete(self, collection: str, doc_id: str, must_exist: bool = False) -> WriteBatch:
        """Queue deletion of a document."""
        self._operations.append(
            WriteOperation("delete", collection, doc_id, must_exist=must_exist)
        )
        return self

    def array_union(
        self,
        collection: str,
        doc_id: str,
        field_name: str,
        values: Iterable[Any],
    ) -> WriteBatch:
        """Queue a set-semantics append to an array field."""
        self._operations.append(
            WriteOperation(
                "array_union",
                collection,
                doc_id,
                field_name=field_name,
                values=list(values),
            )
        )
        return self

    async def commit(self) -> None:
        """Apply all queued operations in one transaction.

        Raises:
            RuntimeError: If the batch was already committed.
            DocumentStoreError: If an operation precondition fails.
            DatabaseError: If the underlying transaction fails.
        """
        if self._committed:
            raise RuntimeError("Write batch already committed")
        self._committed = True
        if self._operations:
            await self._store.commit_batch(self._operations)


class DocumentStore(ABC):
    """Abstract document store.

    Queries only support equality filters combined with AND, and results
    come back in insertion order.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        """Fetch a document by id, or None if missing."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Return documents whose fields equal every value in ``where``."""

    @abstractmethod
    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert a document under a generated id and return the id."""

    @abstractmethod
    async def commit_batch(self, operations: list[WriteOperation]) -> None:
        """Apply operations atomically. Used by WriteBatch.commit()."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the backing database is reachable."""

    @abstractmethod
    async def close(self) -> None:
        """Release database resources."""

    def batch(self) -> WriteBatch:
        """Start a new atomic write batch."""
        return WriteBatch(self)

    async def create(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create a document that must not exist yet."""
        await self.batch().create(collection, doc_id, data).commit()

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Overwrite or create a document."""
        await self.batch().set(collection, doc_id, data).commit()

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        """Merge fields into an existing document.

        Args:
            collection: Collection name.
            doc_id: Document identifier.
            fields: Fields to merge.
            expected: Optional field values that must hold before the write.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            PreconditionFailedError: If an expected value does not match.
        """
        await self.batch().update(collection, doc_id, fields, expected).commit()

    async def delete(self, collection: str, doc_id: str, must_exist: bool = False) -> None:
        """Delete a document, optionally failing when it is missing."""
        await self.batch().delete(collection, doc_id, must_exist).commit()

    async def array_union(
        self,
        collection: str,
        doc_id: str,
        field_name: str,
        values: Iterable[Any],
    ) -> None:
        """Append values to an array field, skipping those already present."""
        await self.batch().array_union(collection, doc_id, field_name, values).commit()
