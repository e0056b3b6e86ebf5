"""In-memory document store.

Implements ``DocumentStore`` in process. Used by the unit tests and for
rehearsing a migration locally without DynamoDB.
"""

import asyncio
import copy
from typing import Any

from .exceptions import PreconditionFailedError
from .models import Document
from .paths import split_document_path
from .store_protocol import check_fields, write_size

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_MAX_BATCH_BYTES = 4 * 1024 * 1024

# Queued write: (kind, path, data, initial)
_Write = tuple[str, str, dict[str, Any] | None, dict[str, Any] | None]


class InMemoryDocumentStore:
    """
    Document store backed by a dict of path -> field map.

    Args:
        documents: Optional initial documents keyed by full document path
        max_batch_size: Cap on writes per batch or transaction
        max_batch_bytes: Cap on the approximate size of a batch or transaction
        name: Store identifier reported in tool output
    """

    def __init__(
        self,
        documents: dict[str, dict[str, Any]] | None = None,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        name: str = "in-memory",
        max_batch_bytes: int = DEFAULT_MAX_BATCH_BYTES,
    ) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._max_batch_size = max_batch_size
        self._max_batch_bytes = max_batch_bytes
        self._name = name
        self.commit_count = 0
        for path, data in (documents or {}).items():
            split_document_path(path)
            check_fields(data)
            self._documents[path] = copy.deepcopy(data)

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    @property
    def max_batch_bytes(self) -> int:
        return self._max_batch_bytes

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep copy of every stored document, keyed by path."""
        return copy.deepcopy(self._documents)

    async def get(self, path: str) -> dict[str, Any] | None:
        split_document_path(path)
        data = self._documents.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        batch = self.batch()
        batch.set(path, data, merge=merge)
        await batch.commit()

    async def delete(self, path: str) -> None:
        batch = self.batch()
        batch.delete(path)
        await batch.commit()

    async def list_documents(self, collection_path: str) -> list[Document]:
        prefix = collection_path + "/"
        documents = []
        for path in sorted(self._documents):
            if not path.startswith(prefix):
                continue
            doc_id = path[len(prefix) :]
            if "/" in doc_id:
                continue
            documents.append(Document(doc_id, path, copy.deepcopy(self._documents[path])))
        return documents

    def batch(self) -> "InMemoryWriteBatch":
        return InMemoryWriteBatch(self)

    def transaction(self) -> "InMemoryTransaction":
        return InMemoryTransaction(self)

    async def close(self) -> None:
        pass

    async def _apply(self, writes: list[_Write]) -> None:
        """Validate every write, then apply them all under the lock."""
        if len(writes) > self._max_batch_size:
            raise ValueError(
                f"Batch of {len(writes)} writes exceeds the maximum of {self._max_batch_size}"
            )
        size = sum(write_size(path, data) for _, path, data, _ in writes)
        if size > self._max_batch_bytes:
            raise ValueError(
                f"Batch of {size} bytes exceeds the maximum of {self._max_batch_bytes}"
            )

        async with self._lock:
            for kind, path, _, _ in writes:
                if kind == "create" and path in self._documents:
                    raise PreconditionFailedError(path)

            for kind, path, data, initial in writes:
                if kind == "delete":
                    self._documents.pop(path, None)
                    continue

                if kind == "merge" and path in self._documents:
                    current = self._documents[path]
                else:
                    current = {}
                for key, value in (initial or {}).items():
                    current.setdefault(key, copy.deepcopy(value))
                current.update(copy.deepcopy(data or {}))
                self._documents[path] = current

            self.commit_count += 1


class InMemoryWriteBatch:
    """Write batch for ``InMemoryDocumentStore``."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._writes: list[_Write] = []

    def set(self, path: str, data: dict[str, Any], *, merge: bool = True) -> None:
        split_document_path(path)
        check_fields(data)
        self._writes.append(("merge" if merge else "put", path, data, None))

    def delete(self, path: str) -> None:
        split_document_path(path)
        self._writes.append(("delete", path, None, None))

    def __len__(self) -> int:
        return len(self._writes)

    @property
    def size_bytes(self) -> int:
        return sum(write_size(path, data) for _, path, data, _ in self._writes)

    async def commit(self) -> None:
        if not self._writes:
            return
        await self._store._apply(self._writes)
        self._writes = []


class InMemoryTransaction:
    """Transaction for ``InMemoryDocumentStore``."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._writes: list[_Write] = []

    async def get(self, path: str) -> dict[str, Any] | None:
        return await self._store.get(path)

    def set(
        self,
        path: str,
        data: dict[str, Any],
        *,
        merge: bool = True,
        initial: dict[str, Any] | None = None,
    ) -> None:
        split_document_path(path)
        check_fields(data)
        check_fields(initial or {})
        self._writes.append(("merge" if merge else "put", path, data, initial))

    def create(self, path: str, data: dict[str, Any]) -> None:
        split_document_path(path)
        check_fields(data)
        self._writes.append(("create", path, data, None))

    async def commit(self) -> None:
        if not self._writes:
            return
        await self._store._apply(self._writes)
        self._writes = []
