"""Core models for tenant-cutover.

Ledger entries, telemetry events and reports are explicit records that
serialize to the camelCase field names stored in (and printed from) the
document store.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with second precision."""
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class StorageMode(Enum):
    """Which path layout a read or write is resolved against."""

    LEGACY = "legacy"
    MODULE = "module"


@dataclass(frozen=True)
class Document:
    """A stored document: its id, full path and field map."""

    id: str
    path: str
    data: dict[str, Any]


# ---------------------------------------------------------------------------
# Live-traffic records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MigrationOperation:
    """
    Idempotency ledger entry.

    Written once, in the same transaction as the upsert it records, and never
    mutated afterwards.
    """

    type: str
    record_id: str
    read_mode: StorageMode
    write_targets: tuple[StorageMode, ...]
    source: str
    completed_at: str

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored field map."""
        return {
            "type": self.type,
            "recordId": self.record_id,
            "readMode": self.read_mode.value,
            "writeTargets": [t.value for t in self.write_targets],
            "source": self.source,
            "completedAt": self.completed_at,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "MigrationOperation":
        """Deserialize from a stored field map."""
        return cls(
            type=data["type"],
            record_id=data["recordId"],
            read_mode=StorageMode(data["readMode"]),
            write_targets=tuple(StorageMode(t) for t in data.get("writeTargets", [])),
            source=data.get("source", "unknown"),
            completed_at=data.get("completedAt", ""),
        )


@dataclass(frozen=True)
class TelemetryEvent:
    """Outcome of one write attempt, appended to the telemetry log."""

    type: str
    record_id: str
    read_mode: StorageMode
    write_targets: tuple[StorageMode, ...]
    skipped_by_idempotency: bool
    source: str
    created_at: str

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored field map."""
        return {
            "type": self.type,
            "recordId": self.record_id,
            "readMode": self.read_mode.value,
            "writeTargets": [t.value for t in self.write_targets],
            "skippedByIdempotency": self.skipped_by_idempotency,
            "source": self.source,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class WriteResult:
    """Result of an idempotent upsert."""

    record_id: str
    read_mode: StorageMode
    write_targets: tuple[StorageMode, ...]
    skipped_by_idempotency: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordId": self.record_id,
            "readMode": self.read_mode.value,
            "writeTargets": [t.value for t in self.write_targets],
            "skippedByIdempotency": self.skipped_by_idempotency,
        }


@dataclass(frozen=True)
class ReadResult:
    """Result of a single-source read."""

    record_id: str
    mode: StorageMode
    exists: bool
    data: dict[str, Any] | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordId": self.record_id,
            "mode": self.mode.value,
            "exists": self.exists,
            "data": self.data,
        }


# ---------------------------------------------------------------------------
# Document stamps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MigrationMeta:
    """Stamp merged into every backfilled module document."""

    version: str
    source_path: str
    migrated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "sourcePath": self.source_path,
            "migratedAt": self.migrated_at,
        }


@dataclass(frozen=True)
class RetirementMeta:
    """Stamp merged into every archive document."""

    version: str
    source_path: str
    archived_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "sourcePath": self.source_path,
            "archivedAt": self.archived_at,
        }


# ---------------------------------------------------------------------------
# Backfill reports
# ---------------------------------------------------------------------------


@dataclass
class CollectionBackfillResult:
    """Outcome of backfilling one legacy collection for one tenant."""

    collection: str
    source_path: str
    target_path: str
    source_count: int
    target_count: int
    write_count: int
    missing_target_count: int
    sample_checked: int
    sample_mismatch_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "sourcePath": self.source_path,
            "targetPath": self.target_path,
            "sourceCount": self.source_count,
            "targetCount": self.target_count,
            "writeCount": self.write_count,
            "missingTargetCount": self.missing_target_count,
            "sampleChecked": self.sample_checked,
            "sampleMismatchCount": self.sample_mismatch_count,
        }


@dataclass
class BackfillTotals:
    """Summed backfill counters."""

    source_count: int = 0
    write_count: int = 0
    missing_target_count: int = 0
    sample_mismatch_count: int = 0

    def add(self, other: "CollectionBackfillResult | BackfillTotals") -> None:
        self.source_count += other.source_count
        self.write_count += other.write_count
        self.missing_target_count += other.missing_target_count
        self.sample_mismatch_count += other.sample_mismatch_count

    @property
    def has_parity_issues(self) -> bool:
        return self.missing_target_count > 0 or self.sample_mismatch_count > 0

    def to_dict(self) -> dict[str, int]:
        return {
            "sourceCount": self.source_count,
            "writeCount": self.write_count,
            "missingTargetCount": self.missing_target_count,
            "sampleMismatchCount": self.sample_mismatch_count,
        }


@dataclass
class TenantBackfillReport:
    """Backfill outcome for every collection of one tenant."""

    org_id: str
    collections: list[CollectionBackfillResult] = field(default_factory=list)

    @property
    def totals(self) -> BackfillTotals:
        totals = BackfillTotals()
        for result in self.collections:
            totals.add(result)
        return totals

    def to_dict(self) -> dict[str, Any]:
        return {
            "orgId": self.org_id,
            "collections": [c.to_dict() for c in self.collections],
            "totals": self.totals.to_dict(),
        }


@dataclass
class BackfillReport:
    """Report printed by a backfill invocation."""

    migration_version: str
    module_id: str
    table_name: str
    dry_run: bool
    started_at: str
    orgs: list[TenantBackfillReport] = field(default_factory=list)
    finished_at: str | None = None

    @property
    def totals(self) -> BackfillTotals:
        totals = BackfillTotals()
        for org in self.orgs:
            totals.add(org.totals)
        return totals

    @property
    def has_parity_issues(self) -> bool:
        """True if any tenant has missing targets or sample mismatches."""
        return any(org.totals.has_parity_issues for org in self.orgs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "migrationVersion": self.migration_version,
            "moduleId": self.module_id,
            "tableName": self.table_name,
            "dryRun": self.dry_run,
            "orgCount": len(self.orgs),
            "orgs": [org.to_dict() for org in self.orgs],
            "totals": self.totals.to_dict(),
            "hasParityIssues": self.has_parity_issues,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
        }


# ---------------------------------------------------------------------------
# Parity reports
# ---------------------------------------------------------------------------


@dataclass
class TenantParity:
    """Legacy/module comparison for one tenant."""

    org_id: str
    legacy_count: int
    module_count: int
    missing_in_module_count: int
    module_only_count: int
    sample_checked: int
    sample_mismatch_count: int

    @property
    def has_issues(self) -> bool:
        return self.missing_in_module_count > 0 or self.sample_mismatch_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "orgId": self.org_id,
            "legacyCount": self.legacy_count,
            "moduleCount": self.module_count,
            "missingInModuleCount": self.missing_in_module_count,
            "moduleOnlyCount": self.module_only_count,
            "sampleChecked": self.sample_checked,
            "sampleMismatchCount": self.sample_mismatch_count,
        }


@dataclass
class ParityReport:
    """Report gating the read-cutover flag."""

    report_version: str
    module_id: str
    collection: str
    table_name: str
    started_at: str
    orgs: list[TenantParity] = field(default_factory=list)
    finished_at: str | None = None

    @property
    def has_issues(self) -> bool:
        return any(org.has_issues for org in self.orgs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reportVersion": self.report_version,
            "moduleId": self.module_id,
            "collection": self.collection,
            "tableName": self.table_name,
            "orgCount": len(self.orgs),
            "orgs": [org.to_dict() for org in self.orgs],
            "totals": {
                "legacyCount": sum(o.legacy_count for o in self.orgs),
                "moduleCount": sum(o.module_count for o in self.orgs),
                "missingInModuleCount": sum(o.missing_in_module_count for o in self.orgs),
                "moduleOnlyCount": sum(o.module_only_count for o in self.orgs),
                "sampleChecked": sum(o.sample_checked for o in self.orgs),
                "sampleMismatchCount": sum(o.sample_mismatch_count for o in self.orgs),
            },
            "hasIssues": self.has_issues,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
        }


# ---------------------------------------------------------------------------
# Retirement reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetirementOptions:
    """
    Flags for a retirement run.

    Attributes:
        dry_run: List and count only, write nothing
        archive_only: Write archive copies, never delete
        force: Delete legacy originals after archiving (ignored with archive_only)
        limit: Cap on documents processed per collection
    """

    dry_run: bool = False
    archive_only: bool = False
    force: bool = False
    limit: int | None = None

    @property
    def is_authorized(self) -> bool:
        """True if at least one of dry_run, archive_only or force was set."""
        return self.dry_run or self.archive_only or self.force

    @property
    def force_delete(self) -> bool:
        """True if legacy originals will be deleted."""
        return self.force and not self.archive_only


@dataclass
class CollectionRetirementResult:
    """Outcome of retiring one legacy collection for one tenant."""

    collection: str
    source_count: int
    archived_count: int
    deleted_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "sourceCount": self.source_count,
            "archivedCount": self.archived_count,
            "deletedCount": self.deleted_count,
        }


@dataclass
class RetirementTotals:
    """Summed retirement counters."""

    source_count: int = 0
    archived_count: int = 0
    deleted_count: int = 0

    def add(self, other: "CollectionRetirementResult | RetirementTotals") -> None:
        self.source_count += other.source_count
        self.archived_count += other.archived_count
        self.deleted_count += other.deleted_count

    def to_dict(self) -> dict[str, int]:
        return {
            "sourceCount": self.source_count,
            "archivedCount": self.archived_count,
            "deletedCount": self.deleted_count,
        }


@dataclass
class TenantRetirementReport:
    """Retirement outcome for every legacy collection of one tenant."""

    org_id: str
    collections: list[CollectionRetirementResult] = field(default_factory=list)

    @property
    def totals(self) -> RetirementTotals:
        totals = RetirementTotals()
        for result in self.collections:
            totals.add(result)
        return totals

    def to_dict(self) -> dict[str, Any]:
        return {
            "orgId": self.org_id,
            "collections": [c.to_dict() for c in self.collections],
            "totals": self.totals.to_dict(),
        }


@dataclass
class RetirementReport:
    """Report printed by a retirement invocation."""

    version: str
    module_id: str
    table_name: str
    options: RetirementOptions
    started_at: str
    orgs: list[TenantRetirementReport] = field(default_factory=list)
    finished_at: str | None = None

    @property
    def totals(self) -> RetirementTotals:
        totals = RetirementTotals()
        for org in self.orgs:
            totals.add(org.totals)
        return totals

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "moduleId": self.module_id,
            "tableName": self.table_name,
            "dryRun": self.options.dry_run,
            "archiveOnly": self.options.archive_only,
            "forceDelete": self.options.force_delete,
            "orgCount": len(self.orgs),
            "orgs": [org.to_dict() for org in self.orgs],
            "totals": self.totals.to_dict(),
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
        }
