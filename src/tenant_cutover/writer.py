"""Idempotent upsert path used by live traffic."""

import logging
from typing import Any

from .exceptions import PreconditionFailedError
from .models import MigrationOperation, StorageMode, TelemetryEvent, WriteResult, utc_now
from .paths import PathResolver, migration_ops_path, validate_identifier
from .store_protocol import DocumentStore
from .telemetry import TelemetryEmitter

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "trainingRecords"
DEFAULT_SOURCE = "unknown"


class IdempotentWriter:
    """
    Writes a record to every target the current phase requires, atomically.

    With an idempotency key, the ledger entry at
    ``.../_migrationOps/{key}`` is created in the same transaction as the
    record writes. A retry that finds the entry writes nothing; a concurrent
    retry that loses the race to create it fails its commit precondition and
    is reported the same way.

    Args:
        store: Document store
        resolver: Phase-aware path resolver
        telemetry: Telemetry sink (defaults to one writing to the same store)
        collection: Collection the writer upserts into
    """

    def __init__(
        self,
        store: DocumentStore,
        resolver: PathResolver,
        telemetry: TelemetryEmitter | None = None,
        collection: str = DEFAULT_COLLECTION,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.telemetry = (
            telemetry if telemetry is not None else TelemetryEmitter(store, resolver.module_id)
        )
        self.collection = validate_identifier(collection, "collection")

    @property
    def operation_type(self) -> str:
        return f"{self.collection}Upsert"

    async def upsert(
        self,
        org_id: str,
        record_id: str,
        payload: dict[str, Any],
        idempotency_key: str | None = None,
        source: str | None = None,
    ) -> WriteResult:
        """
        Merge ``payload`` into the record at every resolved write target.

        ``createdAt`` is stamped only on documents that did not exist;
        ``updatedAt`` is stamped on every write. Fields missing from the
        payload are preserved. An empty ``idempotency_key`` is treated as no key.

        Raises:
            InvalidIdentifierError: If an id or the key is not a valid path segment
            StoreError: If the store rejects the transaction
        """
        read_mode = self.resolver.resolve_read_mode()
        targets = self.resolver.resolve_write_targets()
        source = source or DEFAULT_SOURCE
        target_paths = [
            self.resolver.document_path(org_id, self.collection, record_id, mode)
            for mode in targets
        ]
        ops_path = (
            migration_ops_path(org_id, self.resolver.module_id, idempotency_key)
            if idempotency_key
            else None
        )

        skipped = await self._write(
            ops_path, target_paths, payload, read_mode, targets, record_id, source
        )

        if skipped:
            logger.info(
                "Upsert skipped by idempotency",
                extra={
                    "org_id": org_id,
                    "record_id": record_id,
                    "idempotency_key": idempotency_key,
                },
            )

        await self.telemetry.emit(
            org_id,
            TelemetryEvent(
                type=self.operation_type,
                record_id=record_id,
                read_mode=read_mode,
                write_targets=targets,
                skipped_by_idempotency=skipped,
                source=source,
                created_at=utc_now(),
            ),
        )

        return WriteResult(
            record_id=record_id,
            read_mode=read_mode,
            write_targets=targets,
            skipped_by_idempotency=skipped,
        )

    async def _write(
        self,
        ops_path: str | None,
        target_paths: list[str],
        payload: dict[str, Any],
        read_mode: StorageMode,
        targets: tuple[StorageMode, ...],
        record_id: str,
        source: str,
    ) -> bool:
        """Run the upsert transaction. Returns True if it was skipped."""
        tx = self.store.transaction()

        if ops_path is not None and await tx.get(ops_path) is not None:
            return True

        now = utc_now()
        for path in target_paths:
            # createdAt is applied only where the stored document lacks it,
            # which the store evaluates at commit time
            tx.set(path, {**payload, "updatedAt": now}, merge=True, initial={"createdAt": now})

        if ops_path is not None:
            tx.create(
                ops_path,
                MigrationOperation(
                    type=self.operation_type,
                    record_id=record_id,
                    read_mode=read_mode,
                    write_targets=targets,
                    source=source,
                    completed_at=now,
                ).to_document(),
            )

        try:
            await tx.commit()
        except PreconditionFailedError:
            if ops_path is None:
                raise
            return True
        return False
