"""Paper-scoped view of highlight records."""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from .cached_view import CachedCatalogView
from .catalog_client import CatalogClient
from .models import HighlightRecord, NewHighlight
from .serialization import to_plain
from .utils.inflight import InFlightTracker
from .utils.logging_setup import log_operation

logger = logging.getLogger(__name__)


class AnnotationStore(CachedCatalogView):
    """Highlights of one paper.

    Every row read passes through ``HighlightRecord.from_storage``; every
    payload written passes through ``to_plain``.
    """

    kind = "highlights"

    def __init__(self, paper_id: str, client: Optional[CatalogClient] = None,
                 stale_after: Optional[float] = None):
        super().__init__(paper_id, client, stale_after)
        self._records: List[HighlightRecord] = []
        self._by_id: Dict[str, HighlightRecord] = {}
        self._inflight = InFlightTracker("highlight")

    @property
    def paper_id(self) -> str:
        return self.scope_id

    async def _fetch(self) -> List[Any]:
        return await self.client.fetch_highlights(self.paper_id)

    def _apply(self, rows: List[Any]) -> None:
        records = []
        for row in rows if isinstance(rows, list) else []:
            if not isinstance(row, Mapping) or not row.get("id"):
                logger.warning(f"Dropping malformed highlight row: {row!r}")
                continue
            records.append(HighlightRecord.from_storage(row))
        self._records = records
        self._by_id = {record.id: record for record in records}

    def list(self) -> List[HighlightRecord]:
        return list(self._records)

    def get_by_id(self, highlight_id: str) -> Optional[HighlightRecord]:
        return self._by_id.get(highlight_id)

    async def create(self, highlight: Union[NewHighlight, Mapping[str, Any]]) -> None:
        """Persist a new highlight for this paper.

        Raises:
            CatalogError: If the catalog call fails
        """
        payload = to_plain(highlight)
        payload.pop("id", None)
        payload.pop("paper_id", None)
        row = await self.client.create_highlight(self.paper_id, payload)
        log_operation("Highlight created", f"{row.get('id') if row else '?'} on paper {self.paper_id}")
        self.invalidate()

    async def update(self, highlight_id: str, changes: Mapping[str, Any]) -> None:
        """Persist changed fields (position, content, comment) of a highlight.

        Raises:
            CatalogError: If the catalog call fails
        """
        payload = to_plain(changes)
        with self._inflight.track(highlight_id, "update"):
            await self.client.update_highlight(highlight_id, payload)
        log_operation("Highlight updated", highlight_id)
        self.invalidate()

    async def delete(self, highlight_id: str) -> None:
        """Raises CatalogError if the catalog call fails."""
        with self._inflight.track(highlight_id, "delete"):
            await self.client.delete_highlight(highlight_id)
        log_operation("Highlight deleted", highlight_id)
        self.invalidate()
