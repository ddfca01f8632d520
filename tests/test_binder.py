"""Tests for inserting and rendering citation marks."""
import pytest

from citation_engine.binder import BOUND, CITATION_ERROR_TEXT, DANGLING, ERROR, InlineMarkBinder
from citation_engine.document import DocumentEditor, DocumentTree, InlineCitationMark
from citation_engine.errors import CitationInsertError, SourceNotFoundError
from citation_engine.source_catalog import SourceCatalog

from conftest import paragraph_doc, text_node


@pytest.fixture
def catalog(sample_source):
    catalog = SourceCatalog("n1")
    catalog.replace_snapshot([sample_source])
    return catalog


@pytest.fixture
def editor():
    return DocumentEditor(DocumentTree(paragraph_doc(text_node("As shown "))), (9, 9))


class BrokenEditor:
    def set_citation(self, mark):
        raise ValueError("no selection")


class TestInsert:
    def test_inserts_mark_with_current_label(self, catalog, editor):
        binder = InlineMarkBinder(catalog, "apa")
        mark = binder.insert(editor, "s1")
        assert mark == InlineCitationMark("s1", "article", "(Lovelace, 1843)")
        assert editor.tree.plain_text() == "As shown (Lovelace, 1843)"

    def test_unknown_source(self, catalog, editor):
        binder = InlineMarkBinder(catalog)
        with pytest.raises(SourceNotFoundError):
            binder.insert(editor, "nope")
        assert editor.tree.citations() == []

    def test_editor_failure(self, catalog):
        with pytest.raises(CitationInsertError):
            InlineMarkBinder(catalog).insert(BrokenEditor(), "s1")

    def test_format_change_only_affects_new_marks(self, catalog, editor):
        binder = InlineMarkBinder(catalog, "simple")
        first = binder.insert(editor, "s1")
        binder.citation_format = "chicago"
        second = binder.insert(editor, "s1")
        assert first.label == "[Lovelace, 1843]"
        assert second.label == "(Lovelace 1843)"

    def test_rejects_unknown_format(self, catalog):
        binder = InlineMarkBinder(catalog)
        with pytest.raises(ValueError):
            binder.citation_format = "harvard"

    def test_unknown_initial_format_falls_back(self, catalog):
        assert InlineMarkBinder(catalog, "harvard").citation_format == "simple"


class TestRender:
    def test_bound_mark_reflects_live_source(self, catalog, sample_source):
        binder = InlineMarkBinder(catalog)
        mark = InlineCitationMark("s1", "article", "[Stale, 1900]")
        rendered = binder.render(mark)
        assert rendered.state == BOUND
        assert rendered.text == "[Lovelace, 1843]"
        assert rendered.tooltip.startswith("Ada Lovelace & Luigi Menabrea.")

        catalog.replace_snapshot([dict(sample_source, authors=["Charles Babbage"])])
        assert binder.render(mark).text == "[Babbage, 1843]"

    def test_dangling_mark_keeps_label(self, catalog):
        rendered = InlineMarkBinder(catalog).render(InlineCitationMark("gone", "book", "[Old, 2001]"))
        assert rendered.state == DANGLING
        assert rendered.text == "[Old, 2001]"
        assert rendered.tooltip == "Unknown source"

    def test_dangling_mark_without_label(self, catalog):
        rendered = InlineMarkBinder(catalog).render(InlineCitationMark("gone"))
        assert rendered.text == "[?]"

    def test_render_failure_is_isolated(self, catalog):
        binder = InlineMarkBinder(catalog)
        tree = DocumentTree(paragraph_doc(
            text_node("a", InlineCitationMark("s1").to_mark()),
            text_node("b", InlineCitationMark("boom").to_mark()),
            text_node("c", InlineCitationMark("gone", label="[G]").to_mark()),
        ))
        real_lookup = catalog.get_by_id

        def lookup(source_id):
            if source_id == "boom":
                raise RuntimeError("lookup exploded")
            return real_lookup(source_id)

        catalog.get_by_id = lookup
        rendered = binder.render_document(tree)
        assert [r.state for r in rendered] == [BOUND, ERROR, DANGLING]
        assert rendered[1].text == CITATION_ERROR_TEXT
