"""Best-effort migration telemetry."""

import logging

from ulid import ULID

from .models import TelemetryEvent
from .paths import join, migration_telemetry_collection_path
from .store_protocol import DocumentStore

logger = logging.getLogger(__name__)


class TelemetryEmitter:
    """
    Appends TelemetryEvents under the module's ``_migrationTelemetry``
    collection.

    Emission never raises: a failed write is logged with its traceback and
    dropped. Events get ULID ids so the log sorts by creation time.
    """

    def __init__(self, store: DocumentStore, module_id: str) -> None:
        self.store = store
        self.module_id = module_id

    async def emit(self, org_id: str, event: TelemetryEvent) -> str | None:
        """
        Write one event.

        Returns:
            The event id, or None if the write failed
        """
        try:
            event_id = str(ULID())
            path = join(migration_telemetry_collection_path(org_id, self.module_id), event_id)
            await self.store.set(path, event.to_document())
            return event_id
        except Exception:
            logger.warning(
                "Failed to emit migration telemetry",
                exc_info=True,
                extra={"org_id": org_id, "record_id": event.record_id},
            )
            return None
