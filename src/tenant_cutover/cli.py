"""Command-line interface for tenant-cutover migrations."""

import asyncio
import json
import logging
import sys
from collections.abc import Callable
from typing import Any, TypeVar

import click

from .config import PhaseFlags, StoreConfig, module_id_from_environment
from .migrations import ModuleMigration, get_module_migration
from .migrations.backfill import DEFAULT_SAMPLE_SIZE, BackfillRunner
from .migrations.parity import ParityReporter
from .migrations.retirement import RetirementArchiver
from .models import RetirementOptions
from .paths import PathResolver
from .repository import Repository
from .store_protocol import DocumentStore
from .structured_logging import configure_logging

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

EXIT_PARITY_ISSUES = 2


def _open_store(config: StoreConfig) -> DocumentStore:
    """Build the document store for a command."""
    return Repository(config)


def _store_config(
    table_name: str | None, region: str | None, endpoint_url: str | None
) -> StoreConfig:
    """Environment settings, overridden by whatever was passed on the command line."""
    env = StoreConfig.from_environment()
    return StoreConfig(
        table_name=table_name or env.table_name,
        region=region or env.region,
        endpoint_url=endpoint_url or env.endpoint_url,
        profile_name=env.profile_name,
    )


def _echo_report(report: dict[str, Any]) -> None:
    click.echo(json.dumps(report, indent=2))


def store_options(func: F) -> F:
    """Options shared by every command that talks to the store."""
    options = [
        click.option(
            "--table-name",
            help="DynamoDB table name (default: $CUTOVER_TABLE_NAME or tenant-cutover)",
        ),
        click.option(
            "--region",
            help="AWS region (default: use boto3 defaults)",
        ),
        click.option(
            "--endpoint-url",
            help=(
                "AWS endpoint URL "
                "(e.g., http://localhost:4566 for LocalStack, or other AWS-compatible services)"
            ),
        ),
        click.option(
            "--log-level",
            default="INFO",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
            help="Log level for the JSON logs written to stderr",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def tenant_options(func: F) -> F:
    """Options shared by the per-tenant migration tools."""
    options = [
        click.option(
            "--module",
            "module_id",
            help="Module to migrate (default: $CUTOVER_MODULE or trainingTrack)",
        ),
        click.option(
            "--org",
            "org_id",
            help="Process a single tenant (default: every tenant)",
        ),
        click.option(
            "--dry-run",
            is_flag=True,
            help="Report without writing anything",
        ),
        click.option(
            "--limit",
            type=click.IntRange(min=1),
            default=None,
            help="Cap on documents processed per collection",
        ),
        click.option(
            "--concurrency",
            type=click.IntRange(min=1),
            default=1,
            help="Tenants processed at once (default: 1)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _migration(module_id: str | None) -> ModuleMigration:
    return get_module_migration(module_id or module_id_from_environment())


@click.group()
@click.version_option(package_name="tenant-cutover")
def cli() -> None:
    """tenant-cutover: relocate tenant collections into module namespaces."""
    pass


@cli.command()
@tenant_options
@click.option(
    "--sample-size",
    type=click.IntRange(min=1),
    default=DEFAULT_SAMPLE_SIZE,
    help=f"Documents deep-compared per collection (default: {DEFAULT_SAMPLE_SIZE})",
)
@store_options
def backfill(
    module_id: str | None,
    org_id: str | None,
    dry_run: bool,
    limit: int | None,
    concurrency: int,
    sample_size: int,
    table_name: str | None,
    region: str | None,
    endpoint_url: str | None,
    log_level: str,
) -> None:
    """Copy legacy collections into the module namespace and verify the copy.

    Exits 2 when a non-dry run finishes with missing or mismatched documents.
    Usage errors also exit 2 but print no report to stdout.
    """
    configure_logging(log_level)

    async def _backfill(config: StoreConfig, migration: ModuleMigration) -> Any:
        store = _open_store(config)
        try:
            runner = BackfillRunner(store, migration)
            return await runner.run(
                org_id,
                dry_run=dry_run,
                sample_size=sample_size,
                limit=limit,
                concurrency=concurrency,
            )
        finally:
            await store.close()

    try:
        config = _store_config(table_name, region, endpoint_url)
        report = asyncio.run(_backfill(config, _migration(module_id)))
    except Exception as e:
        logger.debug("backfill failed", exc_info=True)
        click.echo(f"✗ backfill failed: {e}", err=True)
        sys.exit(1)

    _echo_report(report.to_dict())
    if not dry_run and report.has_parity_issues:
        sys.exit(EXIT_PARITY_ISSUES)


@cli.command("parity-report")
@click.option(
    "--module",
    "module_id",
    help="Module to report on (default: $CUTOVER_MODULE or trainingTrack)",
)
@click.option(
    "--org",
    "org_id",
    help="Report on a single tenant (default: every tenant)",
)
@click.option(
    "--sample-size",
    type=click.IntRange(min=1),
    default=DEFAULT_SAMPLE_SIZE,
    help=f"Common documents compared per tenant (default: {DEFAULT_SAMPLE_SIZE})",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=1,
    help="Tenants processed at once (default: 1)",
)
@click.option(
    "--fail-on-issues",
    is_flag=True,
    help="Exit 2 when the report has issues",
)
@store_options
def parity_report(
    module_id: str | None,
    org_id: str | None,
    sample_size: int,
    concurrency: int,
    fail_on_issues: bool,
    table_name: str | None,
    region: str | None,
    endpoint_url: str | None,
    log_level: str,
) -> None:
    """Compare legacy and module copies before flipping reads to modules.

    With --fail-on-issues, exits 2 when the report has issues. Usage errors
    also exit 2 but print no report to stdout.
    """
    configure_logging(log_level)

    async def _report(config: StoreConfig, migration: ModuleMigration) -> Any:
        store = _open_store(config)
        try:
            reporter = ParityReporter(store, migration)
            tenant_ids = [org_id] if org_id else None
            return await reporter.read_cutover_report(tenant_ids, sample_size, concurrency)
        finally:
            await store.close()

    try:
        config = _store_config(table_name, region, endpoint_url)
        report = asyncio.run(_report(config, _migration(module_id)))
    except Exception as e:
        logger.debug("parity-report failed", exc_info=True)
        click.echo(f"✗ parity-report failed: {e}", err=True)
        sys.exit(1)

    _echo_report(report.to_dict())
    if fail_on_issues and report.has_issues:
        sys.exit(EXIT_PARITY_ISSUES)


@cli.command()
@tenant_options
@click.option(
    "--archive-only",
    is_flag=True,
    help="Write archive copies and keep the legacy originals",
)
@click.option(
    "--force",
    is_flag=True,
    help="Delete legacy originals after archiving them",
)
@store_options
def retire(
    module_id: str | None,
    org_id: str | None,
    dry_run: bool,
    limit: int | None,
    concurrency: int,
    archive_only: bool,
    force: bool,
    table_name: str | None,
    region: str | None,
    endpoint_url: str | None,
    log_level: str,
) -> None:
    """Archive legacy collections and, with --force, delete the originals."""
    configure_logging(log_level)
    options = RetirementOptions(
        dry_run=dry_run, archive_only=archive_only, force=force, limit=limit
    )

    async def _retire(config: StoreConfig, migration: ModuleMigration) -> Any:
        store = _open_store(config)
        try:
            archiver = RetirementArchiver(store, migration)
            return await archiver.run(options, org_id, concurrency)
        finally:
            await store.close()

    try:
        RetirementArchiver.check_authorized(options)
        config = _store_config(table_name, region, endpoint_url)
        report = asyncio.run(_retire(config, _migration(module_id)))
    except Exception as e:
        logger.debug("retire failed", exc_info=True)
        click.echo(f"✗ retire failed: {e}", err=True)
        sys.exit(1)

    _echo_report(report.to_dict())


@cli.command()
@click.option(
    "--module",
    "module_id",
    help="Module whose flags to resolve (default: $CUTOVER_MODULE or trainingTrack)",
)
def phase(module_id: str | None) -> None:
    """Show the read mode and write targets for the current phase flags."""
    module_id = module_id or module_id_from_environment()
    try:
        flags = PhaseFlags.from_environment(module_id)
        resolver = PathResolver(module_id, flags)
    except Exception as e:
        click.echo(f"✗ phase failed: {e}", err=True)
        sys.exit(1)

    _echo_report(
        {
            "moduleId": module_id,
            "envPrefix": PhaseFlags.env_prefix(module_id),
            "flags": {
                "dualWrite": flags.dual_write,
                "readFromModules": flags.read_from_modules,
                "legacyWriteDisabled": flags.legacy_write_disabled,
            },
            "readMode": resolver.resolve_read_mode().value,
            "writeTargets": [mode.value for mode in resolver.resolve_write_targets()],
        }
    )


@cli.command("create-table")
@store_options
def create_table(
    table_name: str | None,
    region: str | None,
    endpoint_url: str | None,
    log_level: str,
) -> None:
    """Create the DynamoDB table (for LocalStack or local development)."""
    configure_logging(log_level)

    async def _create(config: StoreConfig) -> None:
        repository = Repository(config)
        try:
            await repository.create_table()
        finally:
            await repository.close()

    try:
        config = _store_config(table_name, region, endpoint_url)
        click.echo(f"Creating table: {config.table_name}")
        asyncio.run(_create(config))
    except Exception as e:
        click.echo(f"✗ create-table failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Table '{config.table_name}' is ready")


if __name__ == "__main__":
    cli()
