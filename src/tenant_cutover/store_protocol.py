"""Document store protocol.

Every backend (DynamoDB, in-memory) implements ``DocumentStore`` so the live
write/read path and the offline tools never depend on a concrete client.
The protocol uses ``typing.Protocol`` with ``@runtime_checkable``, enabling
duck typing and isinstance() checks at runtime.

Semantics shared by all backends:

- ``set(path, data, merge=True)`` overwrites the given top-level fields and
  preserves the rest; ``merge=False`` replaces the whole document.
- ``list_documents`` returns the documents of one collection ordered by id.
- A ``WriteBatch`` commits all of its writes or none of them, and holds at most
  ``max_batch_size`` writes totalling at most ``max_batch_bytes``.
- A ``Transaction`` reads with strong consistency and commits its writes
  atomically. ``create`` fails the commit with ``PreconditionFailedError`` if
  the document already exists.
"""

import json
from typing import Any, Protocol, runtime_checkable

from .exceptions import ValidationError
from .models import Document

RESERVED_FIELDS = frozenset({"PK", "SK", "_path"})


def check_fields(data: dict[str, Any]) -> None:
    """
    Reject field names the backends use for bookkeeping.

    Raises:
        ValidationError: If a reserved field name is present
    """
    clash = RESERVED_FIELDS.intersection(data)
    if clash:
        raise ValidationError("field name", ", ".join(sorted(clash)), "reserved by the store")


def write_size(path: str, data: dict[str, Any] | None = None) -> int:
    """
    Approximate request size of one write, in bytes.

    The JSON encoding of the field map plus the path. It overestimates the
    size DynamoDB charges against the transaction limit.
    """
    size = len(path.encode())
    if data is not None:
        size += len(json.dumps(data, default=str, separators=(",", ":")).encode())
    return size


@runtime_checkable
class WriteBatch(Protocol):
    """An atomic group of writes with no reads."""

    def set(self, path: str, data: dict[str, Any], *, merge: bool = True) -> None:
        """Queue a set (merge by default)."""
        ...

    def delete(self, path: str) -> None:
        """Queue a delete."""
        ...

    def __len__(self) -> int:
        """Number of queued writes."""
        ...

    @property
    def size_bytes(self) -> int:
        """Approximate size of the queued writes (see ``write_size``)."""
        ...

    async def commit(self) -> None:
        """Apply all queued writes atomically."""
        ...


@runtime_checkable
class Transaction(Protocol):
    """Read-then-write unit committed atomically."""

    async def get(self, path: str) -> dict[str, Any] | None:
        """Strongly consistent read of one document."""
        ...

    def set(
        self,
        path: str,
        data: dict[str, Any],
        *,
        merge: bool = True,
        initial: dict[str, Any] | None = None,
    ) -> None:
        """
        Queue a set.

        Args:
            path: Document path
            data: Fields to write
            merge: Preserve fields not present in data
            initial: Fields written only where the stored document lacks them
        """
        ...

    def create(self, path: str, data: dict[str, Any]) -> None:
        """Queue a create that fails the commit if the document exists."""
        ...

    async def commit(self) -> None:
        """
        Apply all queued writes atomically.

        Raises:
            PreconditionFailedError: If a queued create found its document present
        """
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for document store backends.

    Example:
        store = InMemoryDocumentStore()
        assert isinstance(store, DocumentStore)  # True at runtime
    """

    @property
    def name(self) -> str:
        """Identifier of the backing store (table name for DynamoDB)."""
        ...

    @property
    def max_batch_size(self) -> int:
        """Maximum number of writes in one batch or transaction."""
        ...

    @property
    def max_batch_bytes(self) -> int:
        """Maximum approximate size of one batch or transaction."""
        ...

    async def get(self, path: str) -> dict[str, Any] | None:
        """Read one document, None if absent."""
        ...

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        """Write one document."""
        ...

    async def delete(self, path: str) -> None:
        """Delete one document (no error if absent)."""
        ...

    async def list_documents(self, collection_path: str) -> list[Document]:
        """All documents of a collection, ordered by id."""
        ...

    def batch(self) -> WriteBatch:
        """Start a new write batch."""
        ...

    def transaction(self) -> Transaction:
        """Start a new transaction."""
        ...

    async def close(self) -> None:
        """Release client resources."""
        ...
