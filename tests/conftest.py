"""Pytest configuration and fixtures."""
import copy
import itertools
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add the src directory to the Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from citation_engine.catalog_client import CatalogClient  # noqa: E402
from citation_engine.errors import CatalogError  # noqa: E402


class FakeCatalogClient(CatalogClient):
    """In-memory catalog service.

    Operation names listed in ``fail`` raise CatalogError instead of running.
    """

    def __init__(self):
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.links: List[Dict[str, str]] = []
        self.highlights: Dict[str, Dict[str, Any]] = {}
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.fail = set()
        self.calls: List[tuple] = []
        self._ids = itertools.count(1)

    def _call(self, operation: str, *args) -> None:
        self.calls.append((operation,) + args)
        if operation in self.fail:
            raise CatalogError(operation, "injected failure")

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def add_source(self, document_id: str, **fields) -> Dict[str, Any]:
        """Seed a source linked to ``document_id``."""
        row = {"id": f"src-{next(self._ids)}", "type": "article"}
        row.update(fields)
        self.sources[row["id"]] = row
        self.links.append({"notebook_id": document_id, "source_id": row["id"]})
        return row

    def add_highlight_row(self, paper_id: str, **fields) -> Dict[str, Any]:
        row = {"id": f"hl-{next(self._ids)}", "paper_id": paper_id}
        row.update(fields)
        self.highlights[row["id"]] = row
        return row

    async def fetch_document_sources(self, document_id):
        self._call("fetch_document_sources", document_id)
        return [
            {"notebook_id": link["notebook_id"], "source_id": link["source_id"],
             "source": copy.deepcopy(self.sources.get(link["source_id"]))}
            for link in self.links if link["notebook_id"] == document_id
        ]

    async def create_source(self, data):
        self._call("create_source", data)
        row = dict(data, id=f"src-{next(self._ids)}")
        self.sources[row["id"]] = row
        return copy.deepcopy(row)

    async def update_source(self, source_id, data):
        self._call("update_source", source_id, data)
        if source_id not in self.sources:
            raise CatalogError("update source", "no row returned", source_id)
        self.sources[source_id].update(data)
        return copy.deepcopy(self.sources[source_id])

    async def delete_source(self, source_id):
        self._call("delete_source", source_id)
        self.sources.pop(source_id, None)
        self.links = [link for link in self.links if link["source_id"] != source_id]

    async def add_source_to_document(self, document_id, source_id):
        self._call("add_source_to_document", document_id, source_id)
        link = {"notebook_id": document_id, "source_id": source_id}
        self.links.append(link)
        return dict(link)

    async def remove_source_from_document(self, document_id, source_id):
        self._call("remove_source_from_document", document_id, source_id)
        self.links = [link for link in self.links
                      if not (link["notebook_id"] == document_id and link["source_id"] == source_id)]

    async def fetch_highlights(self, paper_id):
        self._call("fetch_highlights", paper_id)
        return [copy.deepcopy(row) for row in self.highlights.values() if row.get("paper_id") == paper_id]

    async def create_highlight(self, paper_id, data):
        self._call("create_highlight", paper_id, data)
        row = dict(data, id=f"hl-{next(self._ids)}", paper_id=paper_id)
        self.highlights[row["id"]] = row
        return copy.deepcopy(row)

    async def update_highlight(self, highlight_id, data):
        self._call("update_highlight", highlight_id, data)
        if highlight_id not in self.highlights:
            raise CatalogError("update highlight", "no row returned", highlight_id)
        self.highlights[highlight_id].update(data)
        return copy.deepcopy(self.highlights[highlight_id])

    async def delete_highlight(self, highlight_id):
        self._call("delete_highlight", highlight_id)
        self.highlights.pop(highlight_id, None)

    async def fetch_document(self, document_id):
        self._call("fetch_document", document_id)
        return copy.deepcopy(self.documents.get(document_id, {"id": document_id, "content": None}))

    async def update_document_content(self, document_id, content):
        self._call("update_document_content", document_id, content)
        row = self.documents.setdefault(document_id, {"id": document_id})
        row["content"] = copy.deepcopy(content)
        return copy.deepcopy(row)


@pytest.fixture
def fake_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def sample_source() -> Dict[str, Any]:
    """Return a sample source row for testing."""
    return {
        "id": "s1",
        "title": "Sketch of the Analytical Engine",
        "authors": ["Ada Lovelace", "Luigi Menabrea"],
        "type": "article",
        "publication": "Scientific Memoirs",
        "publication_date": "1843-09-01",
        "url": "https://example.org/sketch",
        "doi": "10.1000/ae.1843",
    }


@pytest.fixture
def untitled_author_source() -> Dict[str, Any]:
    return {"id": "s2", "title": "On Computable Numbers, with an Application", "authors": []}


def paragraph_doc(*nodes) -> Dict[str, Any]:
    """A document with one paragraph holding the given text nodes."""
    return {"type": "doc", "content": [{"type": "paragraph", "content": list(nodes)}]}


def text_node(text: str, *marks) -> Dict[str, Any]:
    node = {"type": "text", "text": text}
    if marks:
        node["marks"] = list(marks)
    return node


@pytest.fixture(autouse=True)
def mock_environment_vars() -> None:
    """Set up test environment variables."""
    os.environ.update({
        "LOG_LEVEL": "WARNING",
    })
