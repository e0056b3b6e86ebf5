"""Tests for models."""

import re

from tenant_cutover.models import (
    BackfillTotals,
    CollectionBackfillResult,
    MigrationOperation,
    RetirementOptions,
    StorageMode,
    TelemetryEvent,
    TenantParity,
    utc_now,
)


def test_utc_now_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", utc_now())


class TestMigrationOperation:
    """Ledger entries."""

    def test_document_round_trip(self):
        op = MigrationOperation(
            type="trainingRecordsUpsert",
            record_id="r1",
            read_mode=StorageMode.LEGACY,
            write_targets=(StorageMode.LEGACY, StorageMode.MODULE),
            source="ui",
            completed_at="2026-02-01T00:00:00Z",
        )

        data = op.to_document()

        assert data == {
            "type": "trainingRecordsUpsert",
            "recordId": "r1",
            "readMode": "legacy",
            "writeTargets": ["legacy", "module"],
            "source": "ui",
            "completedAt": "2026-02-01T00:00:00Z",
        }
        assert MigrationOperation.from_document(data) == op


class TestTelemetryEvent:
    """Telemetry events."""

    def test_to_document(self):
        event = TelemetryEvent(
            type="trainingRecordsUpsert",
            record_id="r1",
            read_mode=StorageMode.MODULE,
            write_targets=(StorageMode.MODULE,),
            skipped_by_idempotency=True,
            source="unknown",
            created_at="t",
        )
        assert event.to_document()["skippedByIdempotency"] is True
        assert event.to_document()["writeTargets"] == ["module"]


class TestTotals:
    """Report aggregation."""

    def test_backfill_totals(self):
        totals = BackfillTotals()
        totals.add(CollectionBackfillResult("a", "s", "t", 3, 3, 3, 0, 3, 0))
        totals.add(CollectionBackfillResult("b", "s", "t", 2, 1, 2, 1, 2, 1))

        assert totals.to_dict() == {
            "sourceCount": 5,
            "writeCount": 5,
            "missingTargetCount": 1,
            "sampleMismatchCount": 1,
        }
        assert totals.has_parity_issues is True

    def test_module_only_does_not_raise_parity_issue(self):
        parity = TenantParity("orgA", 2, 3, 0, 1, 2, 0)
        assert parity.has_issues is False


class TestRetirementOptions:
    """Retirement authorization."""

    def test_unauthorized_by_default(self):
        assert RetirementOptions().is_authorized is False

    def test_each_flag_authorizes(self):
        assert RetirementOptions(dry_run=True).is_authorized
        assert RetirementOptions(archive_only=True).is_authorized
        assert RetirementOptions(force=True).is_authorized

    def test_force_delete(self):
        assert RetirementOptions(force=True).force_delete is True
        assert RetirementOptions(force=True, archive_only=True).force_delete is False
