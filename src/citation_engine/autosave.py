"""Debounced persistence of document content."""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from .config import Config

logger = logging.getLogger(__name__)


def _fingerprint(content: Any) -> str:
    return json.dumps(content, sort_keys=True, default=str)


class DocumentAutosaver:
    """Coalesces edits and saves once the document has been quiet for ``delay``.

    ``save_now`` skips the quiet window (the explicit save command).
    """

    def __init__(self, save: Callable[[Any], Awaitable[Any]],
                 delay: float = Config.AUTOSAVE_DELAY_SECONDS,
                 saved_content: Any = None,
                 on_error: Optional[Callable[[Exception], None]] = None):
        self._save = save
        self._on_error = on_error
        self.delay = delay
        self.enabled = True
        self._timer: Optional[asyncio.Task] = None
        self._saving: Optional[asyncio.Task] = None
        self._last_saved: Optional[str] = _fingerprint(saved_content) if saved_content is not None else None
        self.last_error: Optional[Exception] = None
        self.save_count = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def mark_saved(self, content: Any) -> None:
        self._last_saved = _fingerprint(content)

    def is_dirty(self, content: Any) -> bool:
        return _fingerprint(content) != self._last_saved

    def schedule(self, content: Any) -> None:
        """Restart the quiet window with the latest content."""
        if not self.enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; change left for an explicit save")
            return
        self.cancel()
        self._timer = loop.create_task(self._save_later(content))

    async def _save_later(self, content: Any) -> None:
        await asyncio.sleep(self.delay)
        await self._wait_for_save_in_flight()
        if not self.is_dirty(content):
            return
        self._saving = asyncio.current_task()
        try:
            await self._persist(content)
        except Exception as e:
            self.last_error = e
            logger.error(f"Auto-save failed: {e}")
            if self._on_error is not None:
                self._on_error(e)
        finally:
            if self._saving is asyncio.current_task():
                self._saving = None

    async def _wait_for_save_in_flight(self) -> None:
        saving = self._saving
        if saving is not None and not saving.done() and saving is not asyncio.current_task():
            await asyncio.wait({saving})

    async def _persist(self, content: Any) -> None:
        await self._save(content)
        self.mark_saved(content)
        self.save_count += 1
        self.last_error = None

    async def save_now(self, content: Any) -> None:
        """Persist immediately; failures propagate to the caller."""
        self.cancel()
        await self._wait_for_save_in_flight()
        await self._persist(content)

    def cancel(self) -> None:
        """Drop a save still waiting out its quiet window; a save already writing runs to completion."""
        if self._timer is not None and not self._timer.done() and self._timer is not self._saving:
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Wait for a scheduled save, if any."""
        timer = self._timer
        if timer is not None:
            await asyncio.gather(timer, return_exceptions=True)
