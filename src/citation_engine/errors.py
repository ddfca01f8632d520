"""Exception types raised by the citation engine."""
from typing import Optional


class CitationEngineError(Exception):
    """Base class for engine errors."""


class CatalogError(CitationEngineError):
    """Raised when a call against the catalog service fails."""

    def __init__(self, operation: str, message: str, entity_id: Optional[str] = None,
                 status: Optional[int] = None):
        self.operation = operation
        self.entity_id = entity_id
        self.status = status
        target = f" ({entity_id})" if entity_id else ""
        super().__init__(f"{operation}{target} failed: {message}")


class SourceNotFoundError(CitationEngineError):
    """Raised when a citation is requested for a source the catalog does not hold."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Source '{source_id}' not found")


class OverlayUnmountedError(CitationEngineError):
    """Raised when a highlight edit arrives after the viewer overlay was unmounted."""


class SessionClosedError(CitationEngineError):
    """Raised when a closed session is asked to do more work."""


class CitationInsertError(CitationEngineError):
    """Raised when the editor cannot place a citation at the current selection."""
