"""Tests for CLI commands."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from tenant_cutover.cli import cli
from tenant_cutover.in_memory import InMemoryDocumentStore

MODULE_RECORDS = "organisations/orgA/modules/trainingTrack/trainingRecords"
ARCHIVE_RECORDS = "organisations/orgA/modules/trainingTrack/_legacyArchive/trainingRecords/items"


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


def _invoke(runner, store, args):
    with patch("tenant_cutover.cli._open_store", return_value=store):
        return runner.invoke(cli, [*args, "--log-level", "ERROR"])


class TestCLI:
    """Test CLI help."""

    def test_cli_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("backfill", "parity-report", "retire", "phase", "create-table"):
            assert command in result.output

    def test_backfill_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["backfill", "--help"])
        assert result.exit_code == 0
        for option in ("--org", "--dry-run", "--sample-size", "--limit", "--table-name"):
            assert option in result.output

    def test_exit_code_two_is_documented(self, runner: CliRunner) -> None:
        for command in ("backfill", "parity-report"):
            result = runner.invoke(cli, [command, "--help"])
            text = " ".join(result.output.split())
            assert result.exit_code == 0
            assert "Usage errors also exit 2 but print no report to stdout" in text

    def test_retire_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["retire", "--help"])
        assert result.exit_code == 0
        assert "--archive-only" in result.output
        assert "--force" in result.output


class TestBackfillCommand:
    """tenant-cutover backfill."""

    def test_success(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=12))

        result = _invoke(runner, store, ["backfill"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["migrationVersion"] == "2026-02-trainingtrack-modules-v1"
        assert report["totals"]["writeCount"] == 12
        assert report["hasParityIssues"] is False
        assert len(store.snapshot()) > 13

    def test_single_org_with_limit(self, runner, seed):
        store = InMemoryDocumentStore({**seed("orgA", records=5), **seed("orgB", records=5)})

        result = _invoke(runner, store, ["backfill", "--org", "orgA", "--limit", "2"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert [org["orgId"] for org in report["orgs"]] == ["orgA"]
        assert report["totals"]["sourceCount"] == 2

    def test_dry_run_with_issues_exits_zero(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=3))

        result = _invoke(runner, store, ["backfill", "--dry-run"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["dryRun"] is True
        assert report["hasParityIssues"] is True

    def test_parity_issues_exit_two(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=3))

        with patch(
            "tenant_cutover.migrations.backfill.source_subset_matches_target",
            return_value=False,
        ):
            result = _invoke(runner, store, ["backfill"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)["totals"]["sampleMismatchCount"] == 3

    def test_store_failure_exits_one(self, runner):
        store = InMemoryDocumentStore()
        store.list_documents = AsyncMock(side_effect=RuntimeError("boom"))

        result = _invoke(runner, store, ["backfill"])

        assert result.exit_code == 1
        assert "✗ backfill failed: boom" in result.stderr

    def test_unknown_module_exits_one(self, runner):
        result = _invoke(runner, InMemoryDocumentStore(), ["backfill", "--module", "nope"])

        assert result.exit_code == 1
        assert "no migration registered" in result.stderr

    def test_invalid_sample_size(self, runner):
        result = _invoke(runner, InMemoryDocumentStore(), ["backfill", "--sample-size", "0"])
        assert result.exit_code == 2
        assert result.stdout == ""


class TestParityReportCommand:
    """tenant-cutover parity-report."""

    def test_clean_report(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=4))
        _invoke(runner, store, ["backfill"])

        result = _invoke(runner, store, ["parity-report", "--fail-on-issues"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["reportVersion"] == "2026-02-trainingtrack-read-cutover-v1"
        assert report["hasIssues"] is False

    def test_issues_are_advisory_by_default(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=4))

        result = _invoke(runner, store, ["parity-report"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["hasIssues"] is True

    def test_fail_on_issues(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=4))

        result = _invoke(runner, store, ["parity-report", "--fail-on-issues"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)["hasIssues"] is True

    def test_usage_error_has_no_report(self, runner):
        """Exit 2 from click comes without a report, unlike parity issues."""
        result = _invoke(runner, InMemoryDocumentStore(), ["parity-report", "--bogus"])

        assert result.exit_code == 2
        assert result.stdout == ""

    def test_single_org(self, runner, seed):
        store = InMemoryDocumentStore({**seed("orgA", records=1), **seed("orgB", records=1)})

        result = _invoke(runner, store, ["parity-report", "--org", "orgB"])

        assert [org["orgId"] for org in json.loads(result.stdout)["orgs"]] == ["orgB"]


class TestRetireCommand:
    """tenant-cutover retire."""

    def test_refuses_without_flags(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=5))
        before = store.snapshot()

        with patch("tenant_cutover.cli._open_store") as open_store:
            result = runner.invoke(cli, ["retire"])

        assert result.exit_code == 1
        assert "Refusing to delete legacy docs without --force" in result.stderr
        open_store.assert_not_called()
        assert store.snapshot() == before

    def test_archive_only(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=5))

        result = _invoke(runner, store, ["retire", "--archive-only"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["archiveOnly"] is True
        assert report["forceDelete"] is False
        assert report["totals"] == {"sourceCount": 5, "archivedCount": 5, "deletedCount": 0}
        assert len([p for p in store.snapshot() if p.startswith(ARCHIVE_RECORDS)]) == 5

    def test_force(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=2))

        result = _invoke(runner, store, ["retire", "--force"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["totals"]["deletedCount"] == 2
        assert not any(
            p.startswith("organisations/orgA/trainingRecords/") for p in store.snapshot()
        )

    def test_dry_run(self, runner, seed):
        store = InMemoryDocumentStore(seed(records=2))
        before = store.snapshot()

        result = _invoke(runner, store, ["retire", "--dry-run"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["dryRun"] is True
        assert store.snapshot() == before


class TestPhaseCommand:
    """tenant-cutover phase."""

    def test_defaults(self, runner):
        result = runner.invoke(cli, ["phase"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["readMode"] == "module"
        assert report["writeTargets"] == ["module"]

    def test_dual_write(self, runner, monkeypatch):
        monkeypatch.setenv("FF_TRAININGTRACK_DUAL_WRITE", "true")
        monkeypatch.setenv("FF_TRAININGTRACK_READ_FROM_MODULES", "false")
        monkeypatch.setenv("FF_TRAININGTRACK_LEGACY_WRITE_DISABLED", "false")

        result = runner.invoke(cli, ["phase"])

        report = json.loads(result.stdout)
        assert report["readMode"] == "legacy"
        assert report["writeTargets"] == ["legacy", "module"]

    def test_invalid_flags(self, runner, monkeypatch):
        monkeypatch.setenv("FF_TRAININGTRACK_DUAL_WRITE", "yes")

        result = runner.invoke(cli, ["phase"])

        assert result.exit_code == 1
        assert "FF_TRAININGTRACK_DUAL_WRITE" in result.stderr


class TestCreateTableCommand:
    """tenant-cutover create-table."""

    def test_create_table(self, runner):
        with patch("tenant_cutover.cli.Repository") as repository_cls:
            repository = repository_cls.return_value
            repository.create_table = AsyncMock()
            repository.close = AsyncMock()

            result = runner.invoke(cli, ["create-table", "--table-name", "local-cutover"])

        assert result.exit_code == 0
        assert "✓ Table 'local-cutover' is ready" in result.output
        repository.create_table.assert_awaited_once()
        assert repository_cls.call_args.args[0].table_name == "local-cutover"

    def test_invalid_table_name(self, runner):
        result = runner.invoke(cli, ["create-table", "--table-name", "x"])
        assert result.exit_code == 1
        assert "✗ create-table failed" in result.stderr
