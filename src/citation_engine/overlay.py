"""Highlight overlay for a mounted PDF viewer.

The overlay projects stored highlights onto the pages as they are currently
drawn and converts user drags back into the stored coordinate frame. It
holds no geometry of its own: every render recomputes from the store and the
latest scale contexts.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .annotation_store import AnnotationStore
from .coordinates import ScaleContext, ViewportPosition, scaled_to_viewport, viewport_to_scaled
from .errors import OverlayUnmountedError
from .models import HighlightComment, HighlightContent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewportHighlight:
    """A highlight ready to be drawn."""
    id: str
    position: ViewportPosition
    content: HighlightContent
    comment: Optional[HighlightComment] = None


class HighlightOverlay:
    def __init__(self, store: AnnotationStore):
        self.store = store
        self._contexts: Dict[int, ScaleContext] = {}
        self._mounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self, contexts: Optional[Mapping[int, ScaleContext]] = None) -> None:
        """Attach to a viewer; ``contexts`` maps page numbers to how they are drawn."""
        self._contexts = dict(contexts or {})
        self._mounted = True

    def update_context(self, page_number: int, context: ScaleContext) -> None:
        """Record a zoom or scroll change for one page."""
        if not self._mounted:
            logger.debug(f"Ignoring scale change for page {page_number}: overlay unmounted")
            return
        self._contexts[page_number] = context

    def render(self) -> List[ViewportHighlight]:
        """Viewport geometry for every highlight on a page with a known context."""
        if not self._mounted:
            return []
        drawn = []
        for record in self.store.list():
            if record.position is None:
                continue
            context = self._contexts.get(record.position.page_number)
            if context is None:
                continue
            try:
                position = scaled_to_viewport(record.position, context)
            except ValueError as e:
                logger.error(f"Cannot draw highlight {record.id}: {e}")
                continue
            drawn.append(ViewportHighlight(record.id, position, record.content, record.comment))
        return drawn

    async def move(self, highlight_id: str, position: ViewportPosition) -> None:
        """Persist a dragged or resized highlight.

        The new geometry is stored in the highlight's own reference frame,
        so moving a highlight back and forth does not drift.

        Raises:
            OverlayUnmountedError: If the viewer has gone away
            CatalogError: If persisting fails
            ValueError: If the page has no known scale context
        """
        if not self._mounted:
            raise OverlayUnmountedError(f"highlight {highlight_id} moved after the viewer closed")
        context = self._contexts.get(position.page_number)
        if context is None:
            raise ValueError(f"no scale context for page {position.page_number}")

        record = self.store.get_by_id(highlight_id)
        reference = record.position.reference if record is not None and record.position else None
        scaled = viewport_to_scaled(position, context, reference)
        await self.store.update(highlight_id, {"position": scaled})

    def unmount(self) -> None:
        self._mounted = False
        self._contexts.clear()
