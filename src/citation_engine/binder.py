"""Binding between citation marks in a document and the source catalog."""
import logging
from dataclasses import dataclass
from typing import List

from .config import Config
from .document import DocumentTree, InlineCitationMark
from .errors import CitationInsertError, SourceNotFoundError
from .formatting import FULL_PLACEHOLDER, SHORT_PLACEHOLDER, format_full, format_short, is_citation_format
from .source_catalog import SourceCatalog

logger = logging.getLogger(__name__)

BOUND = "bound"
DANGLING = "dangling"
ERROR = "error"

CITATION_ERROR_TEXT = "[Citation Error]"


@dataclass(frozen=True)
class RenderedCitation:
    """What the editor shows for one mark."""
    source_id: str
    text: str
    tooltip: str
    state: str


class InlineMarkBinder:
    """Creates citation marks and renders them against the live catalog."""

    def __init__(self, catalog: SourceCatalog, citation_format: str = Config.DEFAULT_CITATION_FORMAT):
        self.catalog = catalog
        if not is_citation_format(citation_format):
            logger.warning(f"Unknown citation format {citation_format!r}; using '{Config.FORMAT_SIMPLE}'")
            citation_format = Config.FORMAT_SIMPLE
        self._citation_format = citation_format

    @property
    def citation_format(self) -> str:
        return self._citation_format

    @citation_format.setter
    def citation_format(self, fmt: str) -> None:
        """Only marks inserted after the change use the new format."""
        if not is_citation_format(fmt):
            raise ValueError(f"Unknown citation format: {fmt}")
        self._citation_format = fmt

    def insert(self, editor, source_id: str) -> InlineCitationMark:
        """Insert a citation to ``source_id`` at the editor's selection.

        Raises:
            SourceNotFoundError: If the catalog has no such source
            CitationInsertError: If the editor cannot take the mark
        """
        source = self.catalog.get_by_id(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)

        mark = InlineCitationMark(
            source_id=source.id,
            source_type=source.type,
            label=format_short(source, self._citation_format),
        )
        try:
            editor.set_citation(mark)
        except ValueError as e:
            raise CitationInsertError(str(e)) from e
        logger.info(f"Citation to {source_id} inserted as {mark.label!r}")
        return mark

    def render(self, mark: InlineCitationMark) -> RenderedCitation:
        """Render one mark; resolution is redone on every call."""
        try:
            source = self.catalog.get_by_id(mark.source_id)
            if source is None:
                return RenderedCitation(mark.source_id, mark.label or SHORT_PLACEHOLDER,
                                        FULL_PLACEHOLDER, DANGLING)
            return RenderedCitation(
                mark.source_id,
                format_short(source, self._citation_format),
                format_full(source),
                BOUND,
            )
        except Exception as e:
            logger.error(f"Citation {getattr(mark, 'source_id', '?')} failed to render: {e}")
            return RenderedCitation(str(getattr(mark, "source_id", "")), CITATION_ERROR_TEXT,
                                    FULL_PLACEHOLDER, ERROR)

    def render_document(self, tree: DocumentTree) -> List[RenderedCitation]:
        """Render every citation in document order."""
        return [self.render(mark) for mark, _ in tree.citations()]
