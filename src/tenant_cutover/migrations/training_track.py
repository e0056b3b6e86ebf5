"""
Module migration: trainingTrack (2026-02)

Moves the training-compliance collections into
``organisations/{orgId}/modules/trainingTrack``:

- trainingTypes
- trainingRecords
- auditLogs, restricted to entries about training records and types

Parity is certified on trainingRecords over the business fields that are
stable across the move; timestamps and migration stamps are excluded.
"""

from __future__ import annotations

from typing import Any

from . import CollectionPlan, ModuleMigration, register_module_migration

MODULE_ID = "trainingTrack"

MIGRATION_VERSION = "2026-02-trainingtrack-modules-v1"
REPORT_VERSION = "2026-02-trainingtrack-read-cutover-v1"
RETIREMENT_VERSION = "2026-02-trainingtrack-legacy-retirement-v1"

TRAINING_AUDIT_ENTITY_TYPES = frozenset({"trainingRecord", "trainingType"})

STABLE_RECORD_FIELDS = (
    "staffId",
    "schoolId",
    "trainingTypeId",
    "status",
    "provider",
    "notes",
    "issuedAt",
    "expiresAt",
    "daysToExpiry",
    "createdBy",
)


def is_training_audit_log(data: dict[str, Any]) -> bool:
    """Audit entries belong to the module only if they describe training entities."""
    if not isinstance(data, dict):
        return False
    return data.get("entityType") in TRAINING_AUDIT_ENTITY_TYPES


TRAINING_TRACK = ModuleMigration(
    module_id=MODULE_ID,
    migration_version=MIGRATION_VERSION,
    report_version=REPORT_VERSION,
    retirement_version=RETIREMENT_VERSION,
    collections=(
        CollectionPlan("trainingTypes"),
        CollectionPlan("trainingRecords"),
        CollectionPlan("auditLogs", filter=is_training_audit_log),
    ),
    parity_collection="trainingRecords",
    stable_fields=STABLE_RECORD_FIELDS,
)

register_module_migration(TRAINING_TRACK)
