"""Citation formatting.

Short (inline) citations come in four styles that differ only in brackets,
whether the year is shown, how it is separated from the surname, and how
long a title may get before it is truncated. The styles live in one table
and a single routine renders them all, so fallback behaviour is the same for
every style. The full (reference) citation has one canonical form.

Both entry points are total: any error is logged and mapped to a fixed
placeholder.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .config import Config
from .models import Source
from .utils.error_handling import fallback_on_error

logger = logging.getLogger(__name__)

SHORT_PLACEHOLDER = "[?]"
FULL_PLACEHOLDER = "Unknown source"
TRUNCATION_MARKER = "..."

SourceLike = Union[Source, Mapping]


@dataclass(frozen=True)
class CitationTemplate:
    """How one style writes a short citation."""
    open: str
    close: str
    include_year: bool
    year_separator: str
    title_max_length: int
    quote_title: bool

    @property
    def placeholder(self) -> str:
        return f"{self.open}?{self.close}"


CITATION_TEMPLATES: Dict[str, CitationTemplate] = {
    Config.FORMAT_SIMPLE: CitationTemplate("[", "]", True, ", ", 20, False),
    Config.FORMAT_APA: CitationTemplate("(", ")", True, ", ", 25, True),
    Config.FORMAT_MLA: CitationTemplate("(", ")", False, "", 25, True),
    Config.FORMAT_CHICAGO: CitationTemplate("(", ")", True, " ", 25, True),
}

CITATION_FORMATS: Dict[str, Dict[str, str]] = {
    Config.FORMAT_SIMPLE: {"name": "Simple", "description": "[Author, Year]"},
    Config.FORMAT_APA: {"name": "APA", "description": "American Psychological Association"},
    Config.FORMAT_MLA: {"name": "MLA", "description": "Modern Language Association"},
    Config.FORMAT_CHICAGO: {"name": "Chicago", "description": "Chicago Manual of Style"},
}


def is_citation_format(fmt: str) -> bool:
    return fmt in CITATION_TEMPLATES


def _as_source(source: SourceLike) -> Source:
    if isinstance(source, Source):
        return source
    return Source.from_dict(source)


def _surname(authors: Optional[List[str]]) -> Optional[str]:
    if not authors:
        return None
    first = authors[0]
    if not first or not first.strip():
        return None
    return first.strip().split()[-1]


def _truncate(title: str, max_length: int) -> str:
    if len(title) > max_length:
        return title[:max_length] + TRUNCATION_MARKER
    return title


def format_authors(authors: Optional[Iterable[str]]) -> str:
    """Author clause of a full citation."""
    valid = [a.strip() for a in (authors or []) if isinstance(a, str) and a.strip()]
    if not valid:
        return ""
    if len(valid) == 1:
        return valid[0]
    if len(valid) == 2:
        return f"{valid[0]} & {valid[1]}"
    return f"{valid[0]} et al."


@fallback_on_error(SHORT_PLACEHOLDER)
def format_short(source: Optional[SourceLike], fmt: str = Config.FORMAT_SIMPLE) -> str:
    """Short inline citation, e.g. ``[Lovelace, 1843]`` or ``(Lovelace 1843)``."""
    if source is None:
        return SHORT_PLACEHOLDER
    source = _as_source(source)

    template = CITATION_TEMPLATES.get(fmt)
    if template is None:
        logger.warning(f"Unknown citation format {fmt!r}; using '{Config.FORMAT_SIMPLE}'")
        template = CITATION_TEMPLATES[Config.FORMAT_SIMPLE]

    surname = _surname(source.authors)
    if surname:
        year = source.year if template.include_year else None
        body = f"{surname}{template.year_separator}{year}" if year else surname
        return f"{template.open}{body}{template.close}"

    if source.title:
        title = _truncate(source.title, template.title_max_length)
        if template.quote_title:
            title = f'"{title}"'
        return f"{template.open}{title}{template.close}"

    return template.placeholder


@fallback_on_error(FULL_PLACEHOLDER)
def format_full(source: Optional[SourceLike]) -> str:
    """Full reference-style citation used in tooltips and bibliographies."""
    if source is None:
        return FULL_PLACEHOLDER
    source = _as_source(source)

    parts = []
    author_clause = format_authors(source.authors)
    if author_clause:
        parts.append(f"{author_clause}.")
    if source.year:
        parts.append(f"({source.year}).")
    if source.title:
        parts.append(f"{source.title}.")
    if source.publication:
        parts.append(f"{source.publication}.")
    if source.doi:
        parts.append(f"https://doi.org/{source.doi}")
    elif source.url:
        parts.append(source.url)

    return " ".join(parts) or FULL_PLACEHOLDER


def bibliography_sort_key(source: Source):
    """Alphabetical by first author's surname, then title."""
    surname = _surname(source.authors) or ""
    return (surname.lower() or (source.title or "").lower(), (source.title or "").lower())


def format_bibliography(sources: Iterable[SourceLike]) -> List[str]:
    """Full citations for a reference list, alphabetised."""
    records = [_as_source(s) for s in sources if s is not None]
    return [format_full(s) for s in sorted(records, key=bibliography_sort_key)]
