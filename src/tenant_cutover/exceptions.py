"""Exceptions for tenant-cutover."""

# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class CutoverError(Exception):
    """
    Base exception for all tenant-cutover errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Configuration Exceptions
# ---------------------------------------------------------------------------


class ConfigurationError(CutoverError):
    """
    Raised when store settings or migration-phase flags are missing or invalid.

    Always raised before any store I/O takes place.
    """

    def __init__(self, setting: str, reason: str) -> None:
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid configuration for {setting}: {reason}")


class ValidationError(CutoverError):
    """Raised when a caller-supplied value fails validation."""

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}: {value!r}: {reason}")


class InvalidIdentifierError(ValidationError):
    """Raised when a path segment (tenant, collection, document id, key) is invalid."""

    pass


# ---------------------------------------------------------------------------
# Store Exceptions
# ---------------------------------------------------------------------------


class StoreError(CutoverError):
    """Base exception for document store failures surfaced by the core."""

    pass


class PreconditionFailedError(StoreError):
    """
    Raised when a create-only write finds its document already present.

    The whole batch or transaction carrying the write was rejected.
    """

    def __init__(self, path: str | None = None) -> None:
        self.path = path
        msg = "Precondition failed"
        if path:
            msg += f": document already exists at {path}"
        super().__init__(msg)


class BatchCommitError(StoreError):
    """
    Raised when a batch commit fails part way through a collection.

    Batches committed before the failing one stay durable; re-running the
    tool re-applies the same id-keyed merges.

    Attributes:
        collection_path: Collection being processed when the commit failed
        batch_number: 1-based number of the failing batch
        committed_count: Documents already committed in earlier batches
    """

    def __init__(self, collection_path: str, batch_number: int, committed_count: int) -> None:
        self.collection_path = collection_path
        self.batch_number = batch_number
        self.committed_count = committed_count
        super().__init__(
            f"Batch {batch_number} failed for {collection_path} "
            f"after {committed_count} documents were committed"
        )


# ---------------------------------------------------------------------------
# Retirement Exceptions
# ---------------------------------------------------------------------------


class UnsafeRetirementError(CutoverError):
    """Raised when retirement is invoked without dry_run, archive_only or force."""

    def __init__(self) -> None:
        super().__init__(
            "Refusing to delete legacy docs without --force. Use --archive-only or --force."
        )
