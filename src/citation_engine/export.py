"""Bibliography export to Word."""
import logging
import os
from datetime import datetime
from typing import Iterable, List, Optional

from docx import Document

from .config import Config
from .document import DocumentTree
from .formatting import format_bibliography
from .models import Source
from .source_catalog import SourceCatalog

logger = logging.getLogger(__name__)


def cited_sources(tree: DocumentTree, catalog: SourceCatalog) -> List[Source]:
    """Sources cited in ``tree`` that the catalog still holds, first citation first."""
    sources = []
    seen = set()
    for mark, _ in tree.citations():
        if mark.source_id in seen:
            continue
        seen.add(mark.source_id)
        source = catalog.get_by_id(mark.source_id)
        if source is None:
            logger.info(f"Skipping dangling citation {mark.source_id} in bibliography")
            continue
        sources.append(source)
    return sources


def export_bibliography(sources: Iterable[Source], path: Optional[str] = None,
                        title: str = "References", citation_format: Optional[str] = None) -> str:
    """Write an alphabetised reference list to a .docx file and return its path."""
    path = path or Config.get_export_path()
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)

    entries = format_bibliography(sources)
    style = (citation_format or Config.DEFAULT_CITATION_FORMAT).upper()

    doc = Document()
    doc.add_heading(title, level=1)
    doc.add_paragraph(
        f"Generated {datetime.now():%Y-%m-%d %H:%M}. "
        f"Inline style: {style}. "
        f"{len(entries)} source(s)."
    )
    doc.add_paragraph("")
    for entry in entries:
        doc.add_paragraph(entry)
    doc.save(path)

    logger.info(f"Bibliography with {len(entries)} entries saved to {path}")
    return path
