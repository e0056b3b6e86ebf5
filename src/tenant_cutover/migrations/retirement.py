"""Archive-and-retire workflow for legacy collections."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import UnsafeRetirementError
from ..models import (
    CollectionRetirementResult,
    RetirementMeta,
    RetirementOptions,
    RetirementReport,
    TenantRetirementReport,
    utc_now,
)
from ..paths import archive_collection_path, archive_document_path, legacy_collection_path
from ..store_protocol import write_size
from . import (
    CollectionPlan,
    ModuleMigration,
    batch_has_room,
    commit_batch,
    list_tenant_ids,
    run_per_tenant,
)

if TYPE_CHECKING:
    from ..store_protocol import DocumentStore

logger = logging.getLogger(__name__)


class RetirementArchiver:
    """
    Copies legacy documents into the module's ``_legacyArchive`` and, when
    forced, deletes the originals.

    A delete is always queued in the same batch as the archive write of its
    document, so no original disappears without its archive copy.
    """

    def __init__(self, store: DocumentStore, migration: ModuleMigration) -> None:
        self.store = store
        self.migration = migration

    async def retire_collection(
        self, org_id: str, plan: CollectionPlan, options: RetirementOptions
    ) -> CollectionRetirementResult:
        """Retire one legacy collection for one tenant."""
        source_path = legacy_collection_path(org_id, plan.name)
        docs = await self.store.list_documents(source_path)
        docs = [doc for doc in docs if plan.selects(doc.data)]
        if options.limit is not None:
            docs = docs[: options.limit]

        archived_count = 0
        deleted_count = 0

        if not options.dry_run:
            archive_path = archive_collection_path(org_id, self.migration.module_id, plan.name)
            ops_per_doc = 2 if options.force_delete else 1
            if self.store.max_batch_size < ops_per_doc:
                raise ValueError("store batch size cannot hold an archive write and its delete")

            archived_at = utc_now()
            batch = self.store.batch()
            batch_number = 1
            # counted in documents; a forced document is two writes
            committed = 0

            for doc in docs:
                meta = RetirementMeta(
                    version=self.migration.retirement_version,
                    source_path=doc.path,
                    archived_at=archived_at,
                )
                path = archive_document_path(org_id, self.migration.module_id, plan.name, doc.id)
                data = {**doc.data, "retirementMeta": meta.to_dict()}
                size = write_size(path, data)
                if options.force_delete:
                    size += write_size(doc.path)

                if not batch_has_room(self.store, batch, ops_per_doc, size):
                    written = await commit_batch(batch, archive_path, batch_number, committed)
                    committed += written // ops_per_doc
                    batch = self.store.batch()
                    batch_number += 1

                batch.set(path, data, merge=True)
                archived_count += 1
                if options.force_delete:
                    batch.delete(doc.path)
                    deleted_count += 1

            if len(batch) > 0:
                await commit_batch(batch, archive_path, batch_number, committed)

        result = CollectionRetirementResult(
            collection=plan.name,
            source_count=len(docs),
            archived_count=archived_count,
            deleted_count=deleted_count,
        )
        logger.info(
            "Retired collection",
            extra={
                "org_id": org_id,
                "collection": plan.name,
                "dry_run": options.dry_run,
                "archived_count": archived_count,
                "deleted_count": deleted_count,
            },
        )
        return result

    async def retire_legacy(
        self,
        org_id: str,
        *,
        dry_run: bool = False,
        archive_only: bool = False,
        force: bool = False,
        limit: int | None = None,
    ) -> TenantRetirementReport:
        """
        Retire every planned legacy collection of one tenant.

        Raises:
            UnsafeRetirementError: If none of dry_run, archive_only, force is set
        """
        options = RetirementOptions(
            dry_run=dry_run, archive_only=archive_only, force=force, limit=limit
        )
        self.check_authorized(options)
        return await self._retire_tenant(org_id, options)

    async def run(
        self,
        options: RetirementOptions,
        org_id: str | None = None,
        concurrency: int = 1,
    ) -> RetirementReport:
        """
        Retire one tenant, or every tenant when ``org_id`` is None.

        The safety gate is checked before the tenant listing, so a refused
        invocation performs no store I/O at all.
        """
        self.check_authorized(options)

        report = RetirementReport(
            version=self.migration.retirement_version,
            module_id=self.migration.module_id,
            table_name=self.store.name,
            options=options,
            started_at=utc_now(),
        )
        tenant_ids = await list_tenant_ids(self.store, org_id)

        async def one(tenant_id: str) -> TenantRetirementReport:
            return await self._retire_tenant(tenant_id, options)

        report.orgs = await run_per_tenant(tenant_ids, one, concurrency)
        report.finished_at = utc_now()
        return report

    @staticmethod
    def check_authorized(options: RetirementOptions) -> None:
        if not options.is_authorized:
            raise UnsafeRetirementError()
        if options.limit is not None and options.limit < 0:
            raise ValueError("limit must be >= 0")

    async def _retire_tenant(
        self, org_id: str, options: RetirementOptions
    ) -> TenantRetirementReport:
        report = TenantRetirementReport(org_id=org_id)
        for plan in self.migration.collections:
            report.collections.append(await self.retire_collection(org_id, plan, options))
        return report
