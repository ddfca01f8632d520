"""Editing sessions tying the stores, the editor and user feedback together.

Session methods are what the UI calls. Engine errors raised underneath are
logged and turned into error notifications; the method then returns None.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from .annotation_store import AnnotationStore
from .autosave import DocumentAutosaver
from .binder import InlineMarkBinder, RenderedCitation
from .catalog_client import CatalogClient
from .config import Config
from .coordinates import ScaleContext, ViewportPosition
from .document import DocumentEditor, DocumentTree, InlineCitationMark
from .errors import CitationEngineError, SessionClosedError
from .export import cited_sources, export_bibliography
from .feedback import Notifier
from .models import NewHighlight, Source
from .overlay import HighlightOverlay, ViewportHighlight
from .source_catalog import SourceCatalog
from .utils.error_handling import reports_failure

logger = logging.getLogger(__name__)


class NotebookSession:
    """One open notebook: its content tree, sources and citations."""

    def __init__(self, notebook_id: str, client: CatalogClient,
                 notifier: Optional[Notifier] = None,
                 citation_format: str = Config.DEFAULT_CITATION_FORMAT,
                 autosave_delay: float = Config.AUTOSAVE_DELAY_SECONDS,
                 content: Any = None, user_id: Optional[str] = None):
        self.notebook_id = notebook_id
        self.client = client
        self.notifier = notifier or Notifier()
        self.catalog = SourceCatalog(notebook_id, client, user_id=user_id)
        self.binder = InlineMarkBinder(self.catalog, citation_format)
        self.tree = DocumentTree(content)
        self.editor = DocumentEditor(self.tree)
        self.autosaver = DocumentAutosaver(
            self._persist_content,
            delay=autosave_delay,
            saved_content=self.tree.to_json(),
            on_error=self._autosave_failed,
        )
        self._unsubscribe = self.tree.subscribe(self._content_changed)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"notebook {self.notebook_id} is closed")

    async def _persist_content(self, content: Any) -> None:
        await self.client.update_document_content(self.notebook_id, content)

    def _autosave_failed(self, error: Exception) -> None:
        self.notifier.error(f"Failed to auto-save document: {error}")

    def _content_changed(self, tree: DocumentTree) -> None:
        self.autosaver.schedule(tree.to_json())

    @reports_failure("Failed to open notebook")
    async def open(self) -> None:
        """Load the stored content and the notebook's sources."""
        self._ensure_open()
        row = await self.client.fetch_document(self.notebook_id)
        content = row.get("content") if isinstance(row, Mapping) else None
        if content is not None:
            self._unsubscribe()
            self.tree = DocumentTree(content)
            self.editor = DocumentEditor(self.tree)
            self._unsubscribe = self.tree.subscribe(self._content_changed)
            self.autosaver.mark_saved(self.tree.to_json())
        await self.catalog.refresh()

    @reports_failure("Failed to update document")
    def edit(self, content: Any) -> None:
        """Replace the content with the editor's latest tree."""
        self._ensure_open()
        try:
            self.tree.replace(content)
        except ValueError as e:
            raise CitationEngineError(str(e)) from e

    def set_citation_format(self, fmt: str) -> None:
        self.binder.citation_format = fmt

    @reports_failure("Failed to insert citation")
    def insert_citation(self, source_id: str) -> Optional[InlineCitationMark]:
        self._ensure_open()
        return self.binder.insert(self.editor, source_id)

    def render_citations(self) -> List[RenderedCitation]:
        if self._closed:
            return []
        return self.binder.render_document(self.tree)

    @reports_failure("Failed to save document", "Document saved")
    async def save(self) -> None:
        self._ensure_open()
        await self.autosaver.save_now(self.tree.to_json())

    @reports_failure("Failed to create source", "Source created")
    async def create_source(self, data: Mapping[str, Any]) -> Optional[Source]:
        self._ensure_open()
        try:
            return await self.catalog.create(data)
        except ValueError as e:
            raise CitationEngineError(str(e)) from e

    @reports_failure("Failed to update source", "Source updated")
    async def update_source(self, source_id: str, data: Mapping[str, Any]) -> Optional[Source]:
        self._ensure_open()
        return await self.catalog.update(source_id, data)

    @reports_failure("Failed to delete source", "Source deleted")
    async def delete_source(self, source_id: str) -> None:
        self._ensure_open()
        await self.catalog.delete(source_id)

    @reports_failure("Failed to add source", "Source added to notebook")
    async def add_source(self, source_id: str) -> None:
        self._ensure_open()
        await self.catalog.add_to_document(source_id)

    @reports_failure("Failed to remove source", "Source removed from notebook")
    async def remove_source(self, source_id: str) -> None:
        self._ensure_open()
        await self.catalog.remove_from_document(source_id)

    @reports_failure("Failed to export bibliography", "Bibliography exported")
    def export_bibliography(self, path: Optional[str] = None) -> Optional[str]:
        """Write the sources cited in this notebook to a Word file."""
        self._ensure_open()
        sources = cited_sources(self.tree, self.catalog)
        try:
            return export_bibliography(sources, path, citation_format=self.binder.citation_format)
        except OSError as e:
            raise CitationEngineError(f"could not write {path or Config.get_export_path()}: {e}") from e

    async def close(self) -> None:
        """Stop autosave and catalog work; later actions report failure."""
        if self._closed:
            return
        self._closed = True
        self.autosaver.cancel()
        self._unsubscribe()
        self.catalog.close()
        logger.info(f"Notebook session {self.notebook_id} closed")


class PaperSession:
    """One open PDF: its highlights and the viewer overlay."""

    def __init__(self, paper_id: str, client: CatalogClient,
                 notifier: Optional[Notifier] = None):
        self.paper_id = paper_id
        self.notifier = notifier or Notifier()
        self.store = AnnotationStore(paper_id, client)
        self.overlay = HighlightOverlay(self.store)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"paper {self.paper_id} is closed")

    @reports_failure("Failed to load highlights")
    async def open(self, contexts: Optional[Dict[int, ScaleContext]] = None) -> None:
        self._ensure_open()
        await self.store.refresh()
        self.overlay.mount(contexts)

    def highlights(self) -> List[ViewportHighlight]:
        return self.overlay.render()

    @reports_failure("Failed to save highlight", "Highlight saved")
    async def add_highlight(self, highlight: NewHighlight) -> None:
        self._ensure_open()
        await self.store.create(highlight)

    @reports_failure("Failed to update highlight", "Highlight updated")
    async def update_highlight(self, highlight_id: str, changes: Mapping[str, Any]) -> None:
        self._ensure_open()
        await self.store.update(highlight_id, changes)

    @reports_failure("Failed to move highlight")
    async def move_highlight(self, highlight_id: str, position: ViewportPosition) -> None:
        self._ensure_open()
        try:
            await self.overlay.move(highlight_id, position)
        except ValueError as e:
            raise CitationEngineError(str(e)) from e

    @reports_failure("Failed to delete highlight", "Highlight deleted")
    async def delete_highlight(self, highlight_id: str) -> None:
        self._ensure_open()
        await self.store.delete(highlight_id)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.overlay.unmount()
        self.store.close()
        logger.info(f"Paper session {self.paper_id} closed")
