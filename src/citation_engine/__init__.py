"""Annotation and citation consistency engine."""
from .binder import InlineMarkBinder, RenderedCitation
from .config import Config
from .formatting import format_full, format_short
from .session import NotebookSession, PaperSession

__version__ = "1.0.0"
__all__ = [
    "Config",
    "InlineMarkBinder",
    "NotebookSession",
    "PaperSession",
    "RenderedCitation",
    "format_full",
    "format_short",
]
