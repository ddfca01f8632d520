"""Rich-text document tree and inline citation marks.

The tree is the editor's JSON shape::

    {"type": "doc", "content": [
        {"type": "paragraph", "content": [
            {"type": "text", "text": "as shown ", "marks": []},
            {"type": "text", "text": "[Lovelace, 1843]",
             "marks": [{"type": "citation",
                        "attrs": {"sourceId": "s1", "sourceType": "book",
                                  "label": "[Lovelace, 1843]"}}]}]}]}

Offsets used by ``apply_citation`` / ``insert_citation`` count the
characters of text nodes in document order; block boundaries add nothing.
"""
import copy
import html
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .serialization import parse_if_string

logger = logging.getLogger(__name__)

CITATION_MARK = "citation"
DEFAULT_MARK_SOURCE_TYPE = "website"
TEXTBLOCK_TYPES = ("paragraph", "heading")


def empty_document() -> Dict[str, Any]:
    return {"type": "doc", "content": [{"type": "paragraph"}]}


@dataclass(frozen=True)
class InlineCitationMark:
    """Citation span attributes.

    ``source_id`` is a weak reference: it is looked up in the catalog on
    every render and may stop resolving. ``source_type`` and ``label`` are
    copies taken when the mark was inserted.
    """
    source_id: str
    source_type: str = DEFAULT_MARK_SOURCE_TYPE
    label: Optional[str] = None

    def to_attrs(self) -> Dict[str, Any]:
        return {"sourceId": self.source_id, "sourceType": self.source_type, "label": self.label}

    def to_mark(self) -> Dict[str, Any]:
        return {"type": CITATION_MARK, "attrs": self.to_attrs()}

    @classmethod
    def from_attrs(cls, attrs: Any) -> Optional["InlineCitationMark"]:
        """Read mark attributes; None when there is no source id."""
        if not isinstance(attrs, dict):
            return None
        source_id = attrs.get("sourceId", attrs.get("id"))
        if not source_id:
            return None
        source_type = attrs.get("sourceType", attrs.get("type")) or DEFAULT_MARK_SOURCE_TYPE
        label = attrs.get("label")
        return cls(
            source_id=str(source_id),
            source_type=str(source_type),
            label=None if label is None else str(label),
        )


def mark_to_html_attrs(mark: InlineCitationMark) -> Dict[str, str]:
    attrs = {"data-citation-id": mark.source_id}
    if mark.source_type:
        attrs["data-citation-type"] = mark.source_type
    if mark.label:
        attrs["data-citation-label"] = mark.label
    return attrs


def mark_from_html_attrs(attrs: Dict[str, str]) -> Optional[InlineCitationMark]:
    source_id = attrs.get("data-citation-id")
    if not source_id:
        return None
    return InlineCitationMark(
        source_id=source_id,
        source_type=attrs.get("data-citation-type") or DEFAULT_MARK_SOURCE_TYPE,
        label=attrs.get("data-citation-label"),
    )


def render_citation_html(mark: InlineCitationMark, text: str) -> str:
    attrs = " ".join(
        f'{name}="{html.escape(value, quote=True)}"'
        for name, value in mark_to_html_attrs(mark).items()
    )
    return f'<span class="citation" {attrs}>{html.escape(text)}</span>'


def _citation_of(node: Dict[str, Any]) -> Optional[InlineCitationMark]:
    for mark in node.get("marks") or []:
        if isinstance(mark, dict) and mark.get("type") == CITATION_MARK:
            return InlineCitationMark.from_attrs(mark.get("attrs"))
    return None


def _with_citation(node: Dict[str, Any], text: str, mark: InlineCitationMark) -> Dict[str, Any]:
    new_node = copy.deepcopy(node)
    new_node["text"] = text
    marks = [m for m in new_node.get("marks") or []
             if not (isinstance(m, dict) and m.get("type") == CITATION_MARK)]
    marks.append(mark.to_mark())
    new_node["marks"] = marks
    return new_node


def _with_text(node: Dict[str, Any], text: str) -> Dict[str, Any]:
    new_node = copy.deepcopy(node)
    new_node["text"] = text
    return new_node


class DocumentTree:
    """A notebook's content tree."""

    def __init__(self, content: Any = None):
        parsed = parse_if_string(content, None, field_name="document content")
        if not isinstance(parsed, dict) or "type" not in parsed:
            if content is not None:
                logger.warning("Document content is not a document tree; starting empty")
            parsed = empty_document()
        self._root: Dict[str, Any] = copy.deepcopy(parsed)
        self._listeners: List[Callable[["DocumentTree"], None]] = []

    def to_json(self) -> Dict[str, Any]:
        return copy.deepcopy(self._root)

    def subscribe(self, callback: Callable[["DocumentTree"], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def replace(self, content: Any) -> None:
        """Replace the whole tree (editor update)."""
        parsed = parse_if_string(content, None, field_name="document content")
        if not isinstance(parsed, dict) or "type" not in parsed:
            raise ValueError("content is not a document tree")
        self._root = copy.deepcopy(parsed)
        self._changed()

    def _changed(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    def _text_nodes(self) -> Iterator[Tuple[List[Dict[str, Any]], int, Dict[str, Any]]]:
        """Yield ``(siblings, index, node)`` for every text node, in order."""
        def walk(node: Dict[str, Any]):
            children = node.get("content")
            if not isinstance(children, list):
                return
            for index, child in enumerate(children):
                if not isinstance(child, dict):
                    continue
                if child.get("type") == "text":
                    yield children, index, child
                else:
                    yield from walk(child)
        yield from walk(self._root)

    def plain_text(self) -> str:
        return "".join(str(node.get("text", "")) for _, _, node in self._text_nodes())

    def citations(self) -> List[Tuple[InlineCitationMark, str]]:
        """Every citation mark in document order, with the text it covers."""
        found = []
        for _, _, node in self._text_nodes():
            mark = _citation_of(node)
            if mark is not None:
                found.append((mark, str(node.get("text", ""))))
        return found

    def apply_citation(self, mark: InlineCitationMark, start: int, end: int) -> None:
        """Mark the text between two offsets as a citation."""
        if start > end:
            start, end = end, start
        if start == end:
            raise ValueError("cannot mark an empty range")

        offset = 0
        pending = []
        for siblings, index, node in self._text_nodes():
            text = str(node.get("text", ""))
            node_start, node_end = offset, offset + len(text)
            offset = node_end
            lo, hi = max(start, node_start), min(end, node_end)
            if lo >= hi:
                continue
            pieces = []
            if lo > node_start:
                pieces.append(_with_text(node, text[:lo - node_start]))
            pieces.append(_with_citation(node, text[lo - node_start:hi - node_start], mark))
            if hi < node_end:
                pieces.append(_with_text(node, text[hi - node_start:]))
            pending.append((siblings, index, pieces))

        if not pending:
            raise ValueError(f"range {start}-{end} is outside the document text")

        # splice from the back so earlier indices stay valid
        for siblings, index, pieces in reversed(pending):
            siblings[index:index + 1] = pieces
        self._changed()

    def insert_citation(self, mark: InlineCitationMark, offset: int) -> None:
        """Insert the mark's label as new citation text at ``offset``."""
        text = mark.label or mark.source_id
        new_node = {"type": "text", "text": text, "marks": [mark.to_mark()]}

        offset = max(0, offset)
        position = 0
        last = None
        for siblings, index, node in self._text_nodes():
            node_text = str(node.get("text", ""))
            node_end = position + len(node_text)
            if position <= offset <= node_end:
                split = offset - position
                if split == 0:
                    siblings.insert(index, new_node)
                elif split == len(node_text):
                    siblings.insert(index + 1, new_node)
                else:
                    siblings[index:index + 1] = [
                        _with_text(node, node_text[:split]),
                        new_node,
                        _with_text(node, node_text[split:]),
                    ]
                self._changed()
                return
            last = (siblings, index)
            position = node_end

        if last is not None:
            siblings, index = last
            siblings.insert(index + 1, new_node)
        else:
            self._first_textblock().setdefault("content", []).append(new_node)
        self._changed()

    def _first_textblock(self) -> Dict[str, Any]:
        def find(node: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            if node.get("type") in TEXTBLOCK_TYPES:
                return node
            for child in node.get("content") or []:
                if isinstance(child, dict):
                    found = find(child)
                    if found is not None:
                        return found
            return None

        block = find(self._root)
        if block is None:
            block = {"type": "paragraph"}
            self._root.setdefault("content", []).append(block)
        return block


class DocumentEditor:
    """Editor handle: a tree plus the current selection."""

    def __init__(self, tree: DocumentTree, selection: Tuple[int, int] = (0, 0)):
        self.tree = tree
        self.selection = selection

    def select(self, start: int, end: Optional[int] = None) -> None:
        self.selection = (start, start if end is None else end)

    def set_citation(self, mark: InlineCitationMark) -> None:
        """Apply the citation to the selection, or insert it at the cursor."""
        start, end = self.selection
        if start == end:
            self.tree.insert_citation(mark, start)
            inserted = len(mark.label or mark.source_id)
            self.selection = (start + inserted, start + inserted)
        else:
            self.tree.apply_citation(mark, start, end)
