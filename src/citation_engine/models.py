"""Data models for catalog records."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .coordinates import ScaledPosition
from .serialization import parse_if_string

logger = logging.getLogger(__name__)

SOURCE_TYPES = ("book", "website", "article", "video", "podcast", "paper", "other")
DEFAULT_SOURCE_TYPE = "other"

# storage column -> accepted camelCase alias
_SOURCE_ALIASES = {
    "publication_date": "publicationDate",
    "paper_id": "paperId",
    "user_id": "userId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def _pick(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    alias = _SOURCE_ALIASES.get(key)
    return data.get(alias) if alias else None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


@dataclass
class Source:
    """A bibliographic record owned by the catalog."""
    id: str = ""
    title: str = ""
    authors: Optional[List[str]] = None
    type: str = DEFAULT_SOURCE_TYPE
    publication: Optional[str] = None
    publication_date: Optional[str] = None
    url: Optional[str] = None
    doi: Optional[str] = None
    paper_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def year(self) -> Optional[str]:
        """Publication year, taken from the date before the first dash."""
        if not self.publication_date:
            return None
        year = str(self.publication_date).split("-")[0].strip()
        return year or None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Source":
        """Create a Source from a stored row (snake_case or camelCase)."""
        source_type = _pick(data, "type") or DEFAULT_SOURCE_TYPE
        if source_type not in SOURCE_TYPES:
            logger.warning(f"Unknown source type {source_type!r}; using '{DEFAULT_SOURCE_TYPE}'")
            source_type = DEFAULT_SOURCE_TYPE

        authors = _pick(data, "authors")
        if isinstance(authors, str):
            authors = [authors]
        elif isinstance(authors, (list, tuple)):
            authors = [a for a in authors if isinstance(a, str)]
        elif authors is not None:
            logger.warning(f"Ignoring malformed authors {authors!r} on source {_pick(data, 'id')!r}")
            authors = None

        return cls(
            id=_optional_str(_pick(data, "id")) or "",
            title=_optional_str(_pick(data, "title")) or "",
            authors=authors,
            type=source_type,
            publication=_optional_str(_pick(data, "publication")),
            publication_date=_optional_str(_pick(data, "publication_date")),
            url=_optional_str(_pick(data, "url")),
            doi=_optional_str(_pick(data, "doi")),
            paper_id=_optional_str(_pick(data, "paper_id")),
            user_id=_optional_str(_pick(data, "user_id")),
            created_at=_optional_str(_pick(data, "created_at")),
            updated_at=_optional_str(_pick(data, "updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored row shape."""
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors) if self.authors is not None else None,
            "type": self.type,
            "publication": self.publication,
            "publication_date": self.publication_date,
            "url": self.url,
            "doi": self.doi,
            "paper_id": self.paper_id,
            "user_id": self.user_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class HighlightContent:
    """What was highlighted: selected text or an area screenshot, never both."""
    text: Optional[str] = None
    image: Optional[str] = None

    def __post_init__(self):
        if self.text is not None and self.image is not None:
            raise ValueError("highlight content is either text or image, not both")

    @classmethod
    def from_dict(cls, data: Any) -> "HighlightContent":
        if not isinstance(data, Mapping):
            return cls()
        image = data.get("image")
        text = data.get("text")
        if image:
            if text:
                logger.warning("Highlight content has both text and image; keeping image")
            return cls(image=str(image))
        if text is not None:
            return cls(text=str(text))
        return cls()

    def to_dict(self) -> Dict[str, str]:
        if self.image is not None:
            return {"image": self.image}
        if self.text is not None:
            return {"text": self.text}
        return {}


@dataclass(frozen=True)
class HighlightComment:
    text: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HighlightComment"]:
        if not isinstance(data, Mapping):
            return None
        text = data.get("text")
        return cls(text="" if text is None else str(text))

    def to_dict(self) -> Dict[str, str]:
        return {"text": self.text}


@dataclass
class NewHighlight:
    """Payload of a highlight the user just made."""
    content: HighlightContent
    position: ScaledPosition
    comment: Optional[HighlightComment] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content.to_dict(),
            "position": self.position.to_dict(),
            "comment": self.comment.to_dict() if self.comment is not None else None,
        }


@dataclass
class HighlightRecord:
    """A persisted PDF annotation."""
    id: str
    paper_id: Optional[str] = None
    content: HighlightContent = field(default_factory=HighlightContent)
    position: Optional[ScaledPosition] = None
    comment: Optional[HighlightComment] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_storage(cls, row: Mapping[str, Any]) -> "HighlightRecord":
        """Build a record from a stored row.

        Position, content and comment may arrive JSON-encoded; each goes
        through ``parse_if_string``. A position that cannot be normalised is
        logged and left as None so the record is still listed.
        """
        record_id = _optional_str(row.get("id")) or ""

        raw_position = parse_if_string(row.get("position"), {}, field_name="position")
        position = None
        if raw_position:
            try:
                position = ScaledPosition.from_dict(raw_position)
            except ValueError as e:
                logger.error(f"Error normalising position of highlight {record_id}: {e}")

        raw_content = parse_if_string(row.get("content"), {}, field_name="content")
        raw_comment = parse_if_string(row.get("comment"), None, field_name="comment")

        return cls(
            id=record_id,
            paper_id=_optional_str(row.get("paper_id", row.get("paperId"))),
            content=HighlightContent.from_dict(raw_content),
            position=position,
            comment=HighlightComment.from_dict(raw_comment),
            created_at=_optional_str(row.get("created_at")),
            updated_at=_optional_str(row.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "paper_id": self.paper_id,
            "content": self.content.to_dict(),
            "position": self.position.to_dict() if self.position is not None else None,
            "comment": self.comment.to_dict() if self.comment is not None else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
