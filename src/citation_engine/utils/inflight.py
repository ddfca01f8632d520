"""Bookkeeping for catalog mutations that are still awaiting a response."""
import logging
from contextlib import contextmanager
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


class InFlightTracker:
    """Counts in-flight mutations per entity id.

    Overlapping mutations of the same id are logged, never blocked or
    reordered; the catalog service's own write ordering decides the outcome.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._pending: Dict[str, int] = {}

    def pending(self, entity_id: str) -> int:
        return self._pending.get(entity_id, 0)

    @contextmanager
    def track(self, entity_id: str, operation: str) -> Iterator[None]:
        if self._pending.get(entity_id):
            logger.warning(
                f"Overlapping {operation} on {self.kind} {entity_id}: "
                f"{self._pending[entity_id]} operation(s) still in flight"
            )
        self._pending[entity_id] = self._pending.get(entity_id, 0) + 1
        try:
            yield
        finally:
            remaining = self._pending[entity_id] - 1
            if remaining:
                self._pending[entity_id] = remaining
            else:
                del self._pending[entity_id]
