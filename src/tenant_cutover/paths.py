"""Storage path contract and the phase-aware path resolver.

Path layout (must not change, the live application reads the same paths):

    organisations/{orgId}/{collection}                          legacy
    organisations/{orgId}/modules/{moduleId}/{collection}       module
    .../modules/{moduleId}/_legacyArchive/{collection}/items/{docId}
    .../modules/{moduleId}/_migrationOps/{idempotencyKey}
    .../modules/{moduleId}/_migrationTelemetry/{autoId}
"""

from .config import PhaseFlags
from .exceptions import InvalidIdentifierError
from .models import StorageMode

ORGANISATIONS = "organisations"
MODULES = "modules"
LEGACY_ARCHIVE = "_legacyArchive"
ARCHIVE_ITEMS = "items"
MIGRATION_OPS = "_migrationOps"
MIGRATION_TELEMETRY = "_migrationTelemetry"


def validate_identifier(value: str, field: str) -> str:
    """
    Validate a single path segment.

    Raises:
        InvalidIdentifierError: If the value is empty or contains '/'
    """
    if not isinstance(value, str) or not value:
        raise InvalidIdentifierError(field, str(value), "must be a non-empty string")
    if "/" in value:
        raise InvalidIdentifierError(field, value, "must not contain '/'")
    return value


def join(*segments: str) -> str:
    return "/".join(segments)


def split_document_path(path: str) -> tuple[str, str]:
    """
    Split a document path into (collection path, document id).

    Raises:
        InvalidIdentifierError: If the path does not name a document
    """
    segments = path.split("/")
    if len(segments) < 2 or len(segments) % 2 != 0 or not all(segments):
        raise InvalidIdentifierError("document path", path, "must alternate collection/document")
    return "/".join(segments[:-1]), segments[-1]


def org_base_path(org_id: str) -> str:
    return join(ORGANISATIONS, validate_identifier(org_id, "org_id"))


def module_base_path(org_id: str, module_id: str) -> str:
    return join(org_base_path(org_id), MODULES, validate_identifier(module_id, "module_id"))


def legacy_collection_path(org_id: str, collection: str) -> str:
    return join(org_base_path(org_id), validate_identifier(collection, "collection"))


def module_collection_path(org_id: str, module_id: str, collection: str) -> str:
    return join(module_base_path(org_id, module_id), validate_identifier(collection, "collection"))


def archive_collection_path(org_id: str, module_id: str, collection: str) -> str:
    return join(
        module_base_path(org_id, module_id),
        LEGACY_ARCHIVE,
        validate_identifier(collection, "collection"),
        ARCHIVE_ITEMS,
    )


def archive_document_path(org_id: str, module_id: str, collection: str, doc_id: str) -> str:
    return join(
        archive_collection_path(org_id, module_id, collection),
        validate_identifier(doc_id, "doc_id"),
    )


def migration_ops_path(org_id: str, module_id: str, idempotency_key: str) -> str:
    return join(
        module_base_path(org_id, module_id),
        MIGRATION_OPS,
        validate_identifier(idempotency_key, "idempotency_key"),
    )


def migration_telemetry_collection_path(org_id: str, module_id: str) -> str:
    return join(module_base_path(org_id, module_id), MIGRATION_TELEMETRY)


class PathResolver:
    """
    Maps (tenant, collection, mode) to concrete paths for the active phase.

    Pure: the outcome depends only on the phase flags and module id it was
    built with.

    Example:
        resolver = PathResolver("trainingTrack", PhaseFlags())
        resolver.resolve_write_targets()  # (StorageMode.MODULE,)
        resolver.resolve_read_mode()      # StorageMode.MODULE
    """

    def __init__(self, module_id: str, flags: PhaseFlags | None = None) -> None:
        self.module_id = validate_identifier(module_id, "module_id")
        self.flags = flags if flags is not None else PhaseFlags()

    def resolve_write_targets(self) -> tuple[StorageMode, ...]:
        """Write targets in a stable order (legacy first)."""
        flags = self.flags
        targets: list[StorageMode] = []
        if not flags.legacy_write_disabled:
            targets.append(StorageMode.LEGACY)
        if flags.dual_write or flags.read_from_modules or flags.legacy_write_disabled:
            targets.append(StorageMode.MODULE)
        return tuple(targets)

    def resolve_read_mode(self) -> StorageMode:
        return StorageMode.MODULE if self.flags.read_from_modules else StorageMode.LEGACY

    def collection_path(self, org_id: str, collection: str, mode: StorageMode) -> str:
        if mode is StorageMode.LEGACY:
            return legacy_collection_path(org_id, collection)
        return module_collection_path(org_id, self.module_id, collection)

    def document_path(self, org_id: str, collection: str, doc_id: str, mode: StorageMode) -> str:
        return join(
            self.collection_path(org_id, collection, mode),
            validate_identifier(doc_id, "doc_id"),
        )
