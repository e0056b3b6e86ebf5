"""Single-source read path used by live traffic."""

from .models import ReadResult
from .paths import PathResolver, validate_identifier
from .store_protocol import DocumentStore
from .writer import DEFAULT_COLLECTION


class Reader:
    """Reads a record from the path of the current read mode only."""

    def __init__(
        self,
        store: DocumentStore,
        resolver: PathResolver,
        collection: str = DEFAULT_COLLECTION,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.collection = validate_identifier(collection, "collection")

    async def get(self, org_id: str, record_id: str) -> ReadResult:
        """Read one record; never falls back to the other layout."""
        mode = self.resolver.resolve_read_mode()
        path = self.resolver.document_path(org_id, self.collection, record_id, mode)
        data = await self.store.get(path)
        return ReadResult(record_id=record_id, mode=mode, exists=data is not None, data=data)
