"""Shared caching behaviour for the catalog-backed collections."""
import asyncio
import logging
import time
from typing import Any, Callable, List, Optional

from .catalog_client import CatalogClient
from .errors import CatalogError

logger = logging.getLogger(__name__)


class CachedCatalogView:
    """A snapshot of catalog rows for one scope (a document or a paper).

    Reads are served from the last fetched snapshot. After a mutation the
    view is invalidated and a refetch runs as a background task; the local
    snapshot is never patched optimistically.
    """

    kind = "rows"

    def __init__(self, scope_id: str, client: Optional[CatalogClient],
                 stale_after: Optional[float] = None):
        self.scope_id = scope_id
        self._client = client
        self._stale_after = stale_after
        self._fetched_at: Optional[float] = None
        self._invalidated = True
        self._refresh_task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[Any], None]] = []
        self._closed = False
        self.last_error: Optional[CatalogError] = None

    @property
    def client(self) -> CatalogClient:
        if self._client is None:
            raise CatalogError(f"fetch {self.kind}", "no catalog client configured", self.scope_id)
        return self._client

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_stale(self) -> bool:
        if self._invalidated or self._fetched_at is None:
            return True
        if self._stale_after is None:
            return False
        return time.monotonic() - self._fetched_at >= self._stale_after

    async def _fetch(self) -> List[Any]:
        raise NotImplementedError

    def _apply(self, rows: List[Any]) -> None:
        raise NotImplementedError

    async def refresh(self) -> None:
        """Fetch the scope's rows and replace the snapshot."""
        rows = await self._fetch()
        self._apply(rows)
        self._fetched_at = time.monotonic()
        self._invalidated = False
        self.last_error = None
        self._notify()

    async def load(self) -> None:
        """Refresh only when the snapshot is missing, stale or invalidated."""
        if self.is_stale:
            await self.refresh()

    def invalidate(self) -> Optional[asyncio.Task]:
        """Mark the snapshot stale and schedule a background refetch."""
        self._invalidated = True
        if self._closed:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = loop.create_task(self._background_refresh())
        return self._refresh_task

    async def _background_refresh(self) -> None:
        try:
            await self.refresh()
        except CatalogError as e:
            self.last_error = e
            logger.error(f"Background refresh of {self.kind} for {self.scope_id} failed: {e}")

    async def settle(self) -> None:
        """Wait for a scheduled refetch, if any, to finish."""
        task = self._refresh_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Call ``callback(view)`` after every refresh."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception as e:
                logger.error(f"{self.kind} listener {callback!r} failed: {e}")

    def close(self) -> None:
        """Stop background work for this scope."""
        self._closed = True
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._listeners.clear()
