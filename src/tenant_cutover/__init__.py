"""
tenant-cutover: zero-downtime relocation of tenant collections into module
namespaces.

Live traffic goes through the phase-aware writer and reader:

    from tenant_cutover import (
        IdempotentWriter, PathResolver, PhaseFlags, Repository, StoreConfig
    )

    store = Repository(StoreConfig.from_environment())
    resolver = PathResolver("trainingTrack", PhaseFlags.from_environment("trainingTrack"))
    writer = IdempotentWriter(store, resolver)

    result = await writer.upsert("orgA", "r1", {"status": "valid"}, idempotency_key="k1")

Historical data is moved and certified by the offline tools (``tenant-cutover
backfill``, ``parity-report`` and ``retire``), see ``tenant_cutover.cli``.
"""

from .config import PhaseFlags, StoreConfig
from .exceptions import (
    BatchCommitError,
    ConfigurationError,
    CutoverError,
    InvalidIdentifierError,
    PreconditionFailedError,
    StoreError,
    UnsafeRetirementError,
    ValidationError,
)
from .in_memory import InMemoryDocumentStore
from .migrations import (
    CollectionPlan,
    ModuleMigration,
    get_module_migration,
    get_module_migrations,
    register_module_migration,
)
from .migrations.backfill import BackfillRunner
from .migrations.parity import ParityReporter
from .migrations.retirement import RetirementArchiver
from .models import (
    BackfillReport,
    MigrationOperation,
    ParityReport,
    ReadResult,
    RetirementOptions,
    RetirementReport,
    StorageMode,
    TelemetryEvent,
    WriteResult,
)
from .paths import PathResolver
from .reader import Reader
from .repository import Repository
from .store_protocol import DocumentStore, Transaction, WriteBatch
from .telemetry import TelemetryEmitter
from .writer import IdempotentWriter

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Live path
    "PathResolver",
    "IdempotentWriter",
    "Reader",
    "TelemetryEmitter",
    # Offline tools
    "BackfillRunner",
    "ParityReporter",
    "RetirementArchiver",
    # Migration plans
    "CollectionPlan",
    "ModuleMigration",
    "get_module_migration",
    "get_module_migrations",
    "register_module_migration",
    # Stores
    "DocumentStore",
    "WriteBatch",
    "Transaction",
    "Repository",
    "InMemoryDocumentStore",
    # Config
    "PhaseFlags",
    "StoreConfig",
    # Models
    "StorageMode",
    "MigrationOperation",
    "TelemetryEvent",
    "WriteResult",
    "ReadResult",
    "BackfillReport",
    "ParityReport",
    "RetirementOptions",
    "RetirementReport",
    # Exceptions
    "CutoverError",
    "ConfigurationError",
    "ValidationError",
    "InvalidIdentifierError",
    "StoreError",
    "PreconditionFailedError",
    "BatchCommitError",
    "UnsafeRetirementError",
]
