"""Unit test fixtures."""

import pytest

from tenant_cutover.config import PhaseFlags
from tenant_cutover.in_memory import InMemoryDocumentStore
from tenant_cutover.migrations.training_track import TRAINING_TRACK
from tenant_cutover.paths import PathResolver

# Phase flag sets for the three migration phases
PRE_MIGRATION = PhaseFlags(dual_write=False, read_from_modules=False, legacy_write_disabled=False)
DUAL_WRITE = PhaseFlags(dual_write=True, read_from_modules=False, legacy_write_disabled=False)
TERMINAL = PhaseFlags()


def training_record(n: int, **overrides) -> dict:
    """A legacy training record as the live application writes it."""
    record = {
        "staffId": f"staff-{n}",
        "schoolId": "school-1",
        "trainingTypeId": "fire-safety",
        "status": "valid",
        "provider": "Acme Training",
        "notes": None,
        "issuedAt": "2025-09-01",
        "expiresAt": "2026-09-01",
        "daysToExpiry": 180 + n,
        "createdBy": "admin-1",
    }
    record.update(overrides)
    return record


def seed_documents(org_id: str = "orgA", records: int = 0, types: int = 0, audit=()) -> dict:
    """Build the initial documents of a tenant, keyed by path."""
    docs: dict[str, dict] = {f"organisations/{org_id}": {"name": org_id}}
    for n in range(records):
        docs[f"organisations/{org_id}/trainingRecords/r{n:02d}"] = training_record(n)
    for n in range(types):
        docs[f"organisations/{org_id}/trainingTypes/t{n:02d}"] = {"name": f"Type {n}"}
    for doc_id, entity_type in audit:
        docs[f"organisations/{org_id}/auditLogs/{doc_id}"] = {
            "entityType": entity_type,
            "action": "update",
        }
    return docs


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Empty in-memory store."""
    return InMemoryDocumentStore()


@pytest.fixture
def migration():
    """The built-in trainingTrack plan."""
    return TRAINING_TRACK


@pytest.fixture
def terminal_resolver() -> PathResolver:
    return PathResolver("trainingTrack", TERMINAL)


@pytest.fixture
def dual_write_resolver() -> PathResolver:
    return PathResolver("trainingTrack", DUAL_WRITE)


@pytest.fixture
def pre_migration_resolver() -> PathResolver:
    return PathResolver("trainingTrack", PRE_MIGRATION)


@pytest.fixture
def make_record():
    """Factory for legacy training records."""
    return training_record


@pytest.fixture
def seed():
    """Factory for a tenant's initial documents."""
    return seed_documents
