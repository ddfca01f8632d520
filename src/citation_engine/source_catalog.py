"""Document-scoped view of the source catalog.

Sources are shared between documents through an association table. Removing
a source from a document only drops the association; deleting a source
removes the record itself. Neither touches citation marks already embedded
in any document: those marks keep their cached label and render as dangling.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from .cached_view import CachedCatalogView
from .catalog_client import CatalogClient
from .config import Config
from .models import Source
from .utils.inflight import InFlightTracker
from .utils.logging_setup import log_operation

logger = logging.getLogger(__name__)

# fields the catalog assigns itself
_SERVER_FIELDS = ("id", "user_id", "created_at", "updated_at")


def normalize_source_rows(rows: Any) -> List[Source]:
    """Turn raw association/source rows into Source records.

    Rows may wrap the record under ``source``. Anything that is not a
    mapping, or lacks an ``id`` or ``title``, is dropped.
    """
    if not isinstance(rows, (list, tuple)):
        if rows is not None:
            logger.warning(f"Expected a list of source rows, got {type(rows).__name__}")
        return []

    sources = []
    seen = set()
    for row in rows:
        if isinstance(row, Source):
            row = row.to_dict()
        record = row.get("source", row) if isinstance(row, Mapping) and "source" in row else row
        if not isinstance(record, Mapping):
            logger.warning(f"Dropping malformed source row: {row!r}")
            continue
        if record.get("id") in (None, "") or record.get("title") is None:
            logger.warning(f"Dropping source row without id or title: {record!r}")
            continue
        try:
            source = Source.from_dict(record)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping unreadable source row {record.get('id')!r}: {e}")
            continue
        if source.id in seen:
            continue
        seen.add(source.id)
        sources.append(source)
    return sources


class SourceCatalog(CachedCatalogView):
    """Sources associated with one document."""

    kind = "sources"

    def __init__(self, document_id: str, client: Optional[CatalogClient] = None,
                 stale_after: Optional[float] = Config.SOURCES_STALE_SECONDS,
                 user_id: Optional[str] = None):
        super().__init__(document_id, client, stale_after)
        self.user_id = user_id
        self._sources: List[Source] = []
        self._by_id: Dict[str, Source] = {}
        self._inflight = InFlightTracker("source")

    @property
    def document_id(self) -> str:
        return self.scope_id

    async def _fetch(self) -> List[Any]:
        return await self.client.fetch_document_sources(self.document_id)

    def _apply(self, rows: List[Any]) -> None:
        self._sources = normalize_source_rows(rows)
        self._by_id = {source.id: source for source in self._sources}

    def replace_snapshot(self, rows: Any) -> None:
        """Install rows obtained elsewhere as the current snapshot."""
        self._apply(rows)
        self._notify()

    def list(self) -> List[Source]:
        return list(self._sources)

    def get_by_id(self, source_id: Optional[str]) -> Optional[Source]:
        if not source_id:
            return None
        return self._by_id.get(source_id)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._by_id

    def __len__(self) -> int:
        return len(self._sources)

    @staticmethod
    def _payload(data: Mapping[str, Any]) -> Dict[str, Any]:
        if isinstance(data, Source):
            data = data.to_dict()
        return {k: v for k, v in dict(data).items() if k not in _SERVER_FIELDS}

    async def create(self, data: Mapping[str, Any]) -> Source:
        """Create a source and associate it with this document.

        Raises:
            CatalogError: If either catalog call fails
            ValueError: If no title is given
        """
        payload = self._payload(data)
        if not payload.get("title"):
            raise ValueError("a source needs a title")
        if self.user_id:
            payload["user_id"] = self.user_id

        row = await self.client.create_source(payload)
        source = Source.from_dict(row)
        if source.id:
            await self.client.add_source_to_document(self.document_id, source.id)
        log_operation("Source created", f"{source.id} in document {self.document_id}")
        self.invalidate()
        return source

    async def update(self, source_id: str, data: Mapping[str, Any]) -> Source:
        """Update fields of a source record.

        Raises:
            CatalogError: If the catalog call fails
        """
        with self._inflight.track(source_id, "update"):
            row = await self.client.update_source(source_id, self._payload(data))
        log_operation("Source updated", source_id)
        self.invalidate()
        return Source.from_dict(row)

    async def delete(self, source_id: str) -> None:
        """Delete the source record; citation marks are left as they are.

        Raises:
            CatalogError: If the catalog call fails
        """
        with self._inflight.track(source_id, "delete"):
            await self.client.delete_source(source_id)
        log_operation("Source deleted", source_id)
        self.invalidate()

    async def add_to_document(self, source_id: str) -> None:
        """Associate an existing source with this document."""
        with self._inflight.track(source_id, "add to document"):
            await self.client.add_source_to_document(self.document_id, source_id)
        log_operation("Source added to document", f"{source_id} -> {self.document_id}")
        self.invalidate()

    async def remove_from_document(self, source_id: str) -> None:
        """Drop the association only; the source record survives."""
        with self._inflight.track(source_id, "remove from document"):
            await self.client.remove_source_from_document(self.document_id, source_id)
        log_operation("Source removed from document", f"{source_id} <- {self.document_id}")
        self.invalidate()
