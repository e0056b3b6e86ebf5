"""
Module migration framework.

A ``ModuleMigration`` describes how one module's tenant collections move from
the legacy layout into the module namespace: which collections, in what
order, with which filters, and which version tags stamp the backfill, parity
and retirement runs. The offline tools look plans up by module id.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from ..exceptions import BatchCommitError, ConfigurationError
from ..paths import ORGANISATIONS, validate_identifier

if TYPE_CHECKING:
    from ..store_protocol import DocumentStore, WriteBatch

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocumentFilter = Callable[[dict[str, Any]], bool]


@dataclass(frozen=True)
class CollectionPlan:
    """One legacy collection to relocate, with an optional document filter."""

    name: str
    filter: DocumentFilter | None = None

    def __post_init__(self) -> None:
        validate_identifier(self.name, "collection")

    def selects(self, data: dict[str, Any]) -> bool:
        return self.filter is None or bool(self.filter(data))


@dataclass(frozen=True)
class ModuleMigration:
    """Relocation plan for one module."""

    module_id: str
    migration_version: str  # Stamped into migrationMeta by backfill
    report_version: str  # Tag of the parity report
    retirement_version: str  # Stamped into retirementMeta by retirement
    collections: tuple[CollectionPlan, ...]
    parity_collection: str
    stable_fields: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_identifier(self.module_id, "module_id")
        names = [plan.name for plan in self.collections]
        if len(set(names)) != len(names):
            raise ConfigurationError(self.module_id, "collections must be unique")
        if self.parity_collection not in names:
            raise ConfigurationError(
                self.module_id,
                f"parity collection {self.parity_collection!r} is not a migrated collection",
            )

    def collection(self, name: str) -> CollectionPlan:
        for plan in self.collections:
            if plan.name == name:
                return plan
        raise ConfigurationError(self.module_id, f"unknown collection {name!r}")


# Registry of module migrations, keyed by module id
_MODULE_MIGRATIONS: dict[str, ModuleMigration] = {}


def register_module_migration(migration: ModuleMigration) -> None:
    """Register a module migration in the global registry."""
    _MODULE_MIGRATIONS[migration.module_id] = migration


def get_module_migration(module_id: str) -> ModuleMigration:
    """
    Look up the plan for a module.

    Raises:
        ConfigurationError: If no plan is registered for the module
    """
    try:
        return _MODULE_MIGRATIONS[module_id]
    except KeyError:
        known = ", ".join(sorted(_MODULE_MIGRATIONS)) or "none"
        raise ConfigurationError(
            "module", f"no migration registered for {module_id!r} (known: {known})"
        ) from None


def get_module_migrations() -> list[ModuleMigration]:
    """Get all registered module migrations, ordered by module id."""
    return [_MODULE_MIGRATIONS[key] for key in sorted(_MODULE_MIGRATIONS)]


async def list_tenant_ids(store: DocumentStore, org_id: str | None = None) -> list[str]:
    """
    Tenants to process: the given one, or every document of ``organisations``.
    """
    if org_id is not None:
        return [validate_identifier(org_id, "org_id")]
    return [doc.id for doc in await store.list_documents(ORGANISATIONS)]


async def run_per_tenant(
    tenant_ids: Sequence[str],
    func: Callable[[str], Awaitable[T]],
    concurrency: int = 1,
) -> list[T]:
    """
    Run ``func`` for every tenant, at most ``concurrency`` at once.

    Results keep the order of ``tenant_ids``. The first failure propagates.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    if concurrency == 1:
        return [await func(tenant_id) for tenant_id in tenant_ids]

    semaphore = asyncio.Semaphore(concurrency)

    async def bounded(tenant_id: str) -> T:
        async with semaphore:
            return await func(tenant_id)

    return list(await asyncio.gather(*(bounded(t) for t in tenant_ids)))


def batch_has_room(store: DocumentStore, batch: WriteBatch, ops: int, size: int) -> bool:
    """
    True if ``ops`` more writes of ``size`` bytes fit in ``batch``.

    An empty batch always has room, so a single oversized document still
    reaches the store and fails there with its own error.
    """
    if len(batch) == 0:
        return True
    return (
        len(batch) + ops <= store.max_batch_size
        and batch.size_bytes + size <= store.max_batch_bytes
    )


async def commit_batch(
    batch: WriteBatch, collection_path: str, batch_number: int, committed_count: int
) -> int:
    """
    Commit one batch of a collection pass.

    Returns:
        Number of writes committed

    Raises:
        BatchCommitError: If the commit fails (chained to the store error)
    """
    size = len(batch)
    try:
        await batch.commit()
    except Exception as e:
        raise BatchCommitError(collection_path, batch_number, committed_count) from e
    logger.debug(
        "Committed batch",
        extra={"collection_path": collection_path, "batch_number": batch_number, "size": size},
    )
    return size


# Import built-in module migrations to register them
from . import training_track as _training_track  # noqa: F401, E402
