"""Bulk backfill of legacy collections into the module namespace."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..models import (
    BackfillReport,
    CollectionBackfillResult,
    MigrationMeta,
    TenantBackfillReport,
    utc_now,
)
from ..paths import join, legacy_collection_path, module_collection_path
from ..verification import pick_sample, source_subset_matches_target
from ..store_protocol import write_size
from . import (
    DocumentFilter,
    ModuleMigration,
    batch_has_room,
    commit_batch,
    list_tenant_ids,
    run_per_tenant,
)

if TYPE_CHECKING:
    from ..store_protocol import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 10


class BackfillRunner:
    """
    Copies legacy documents into the module layout and verifies the copy.

    Every write is an id-keyed merge, so re-running over the same tenant is
    safe and converges. Verification counts are advisory: they are reported,
    never raised.

    Args:
        store: Document store
        migration: Plan of the module being migrated
    """

    def __init__(self, store: DocumentStore, migration: ModuleMigration) -> None:
        self.store = store
        self.migration = migration

    async def migrate_collection(
        self,
        org_id: str,
        collection: str,
        *,
        dry_run: bool = False,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        limit: int | None = None,
        filter_predicate: DocumentFilter | None = None,
    ) -> CollectionBackfillResult:
        """
        Backfill one legacy collection for one tenant.

        Args:
            org_id: Tenant id
            collection: Legacy collection name
            dry_run: Skip all writes; verification still runs
            sample_size: Number of source documents to deep-compare (0 skips it)
            limit: Cap on the number of selected source documents
            filter_predicate: Keep only source documents it accepts

        Raises:
            BatchCommitError: If a batch fails; earlier batches stay committed
        """
        if sample_size < 0:
            raise ValueError("sample_size must be >= 0")
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")

        source_path = legacy_collection_path(org_id, collection)
        target_path = module_collection_path(org_id, self.migration.module_id, collection)

        source_docs = await self.store.list_documents(source_path)
        if filter_predicate is not None:
            source_docs = [doc for doc in source_docs if filter_predicate(doc.data)]
        if limit is not None:
            source_docs = source_docs[:limit]

        write_count = 0
        if not dry_run:
            migrated_at = utc_now()
            batch = self.store.batch()
            batch_number = 1
            for doc in source_docs:
                meta = MigrationMeta(
                    version=self.migration.migration_version,
                    source_path=doc.path,
                    migrated_at=migrated_at,
                )
                path = join(target_path, doc.id)
                data = {**doc.data, "migrationMeta": meta.to_dict()}
                if not batch_has_room(self.store, batch, 1, write_size(path, data)):
                    write_count += await commit_batch(batch, target_path, batch_number, write_count)
                    batch = self.store.batch()
                    batch_number += 1
                batch.set(path, data, merge=True)

            if len(batch) > 0:
                write_count += await commit_batch(batch, target_path, batch_number, write_count)

        target_docs = await self.store.list_documents(target_path)
        target_by_id = {doc.id: doc.data for doc in target_docs}

        missing_target_count = sum(1 for doc in source_docs if doc.id not in target_by_id)

        sample = pick_sample(source_docs, sample_size)
        sample_mismatch_count = sum(
            1
            for doc in sample
            if not source_subset_matches_target(doc.data, target_by_id.get(doc.id))
        )

        result = CollectionBackfillResult(
            collection=collection,
            source_path=source_path,
            target_path=target_path,
            source_count=len(source_docs),
            target_count=len(target_docs),
            write_count=write_count,
            missing_target_count=missing_target_count,
            sample_checked=len(sample),
            sample_mismatch_count=sample_mismatch_count,
        )
        logger.info(
            "Backfilled collection",
            extra={
                "org_id": org_id,
                "collection": collection,
                "dry_run": dry_run,
                "source_count": result.source_count,
                "write_count": result.write_count,
                "missing_target_count": result.missing_target_count,
                "sample_mismatch_count": result.sample_mismatch_count,
            },
        )
        return result

    async def backfill_tenant(
        self,
        org_id: str,
        *,
        dry_run: bool = False,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        limit: int | None = None,
    ) -> TenantBackfillReport:
        """Backfill every planned collection of one tenant, in plan order."""
        report = TenantBackfillReport(org_id=org_id)
        for plan in self.migration.collections:
            report.collections.append(
                await self.migrate_collection(
                    org_id,
                    plan.name,
                    dry_run=dry_run,
                    sample_size=sample_size,
                    limit=limit,
                    filter_predicate=plan.filter,
                )
            )
        return report

    async def run(
        self,
        org_id: str | None = None,
        *,
        dry_run: bool = False,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        limit: int | None = None,
        concurrency: int = 1,
    ) -> BackfillReport:
        """
        Backfill one tenant, or every tenant when ``org_id`` is None.

        Returns:
            The report; ``has_parity_issues`` tells the caller whether any
            tenant ended with missing targets or sample mismatches
        """
        report = BackfillReport(
            migration_version=self.migration.migration_version,
            module_id=self.migration.module_id,
            table_name=self.store.name,
            dry_run=dry_run,
            started_at=utc_now(),
        )

        tenant_ids = await list_tenant_ids(self.store, org_id)

        async def one(tenant_id: str) -> TenantBackfillReport:
            return await self.backfill_tenant(
                tenant_id, dry_run=dry_run, sample_size=sample_size, limit=limit
            )

        report.orgs = await run_per_tenant(tenant_ids, one, concurrency)
        report.finished_at = utc_now()
        return report
