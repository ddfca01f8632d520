"""Tests for notebook and paper sessions."""
import asyncio

import pytest

from citation_engine.binder import BOUND, DANGLING
from citation_engine.coordinates import Rect, ScaleContext, ScaledPosition, scaled_to_viewport
from citation_engine.feedback import ERROR, SUCCESS, Notifier
from citation_engine.models import HighlightContent, NewHighlight
from citation_engine.session import NotebookSession, PaperSession

from conftest import paragraph_doc, text_node


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def notebook(fake_client, sample_source):
    fake_client.sources["s1"] = dict(sample_source)
    fake_client.links.append({"notebook_id": "n1", "source_id": "s1"})
    fake_client.documents["n1"] = {"id": "n1", "content": paragraph_doc(text_node("As shown "))}
    session = NotebookSession("n1", fake_client, autosave_delay=0.01)
    run(session.open())
    return session


class TestNotebookSession:
    def test_open_loads_content_and_sources(self, notebook):
        assert notebook.tree.plain_text() == "As shown "
        assert "s1" in notebook.catalog

    def test_insert_and_render(self, notebook):
        notebook.editor.select(9)
        mark = notebook.insert_citation("s1")

        assert mark.label == "[Lovelace, 1843]"
        rendered = notebook.render_citations()
        assert [(r.text, r.state) for r in rendered] == [("[Lovelace, 1843]", BOUND)]

    def test_insert_unknown_source_notifies(self, notebook):
        assert notebook.insert_citation("missing") is None
        assert notebook.notifier.last.level == ERROR
        assert "Source 'missing' not found" in notebook.notifier.last.message
        assert notebook.tree.citations() == []

    def test_source_edit_updates_rendered_citations(self, notebook):
        notebook.editor.select(9)
        notebook.insert_citation("s1")

        async def scenario():
            await notebook.update_source("s1", {"authors": ["Charles Babbage"]})
            await notebook.catalog.settle()

        run(scenario())
        assert notebook.render_citations()[0].text == "[Babbage, 1843]"
        assert notebook.notifier.last.message == "Source updated"

    def test_deleted_source_leaves_dangling_mark(self, notebook, fake_client):
        notebook.editor.select(9)
        notebook.insert_citation("s1")

        async def scenario():
            await notebook.delete_source("s1")
            await notebook.catalog.settle()

        run(scenario())
        rendered = notebook.render_citations()[0]
        assert rendered.state == DANGLING
        assert rendered.text == "[Lovelace, 1843]"
        assert notebook.tree.citations()[0][0].source_id == "s1"

    def test_failed_mutation_notifies_and_returns_none(self, notebook, fake_client):
        fake_client.fail.add("create_source")
        result = run(notebook.create_source({"title": "New"}))
        assert result is None
        assert notebook.notifier.last.level == ERROR
        assert notebook.notifier.last.message.startswith("Failed to create source")

    def test_create_without_title_notifies(self, notebook):
        assert run(notebook.create_source({"title": ""})) is None
        assert notebook.notifier.last.level == ERROR

    def test_create_and_remove_source(self, notebook, fake_client):
        async def scenario():
            source = await notebook.create_source({"title": "New"})
            await notebook.catalog.settle()
            present = source.id in notebook.catalog
            await notebook.remove_source(source.id)
            await notebook.catalog.settle()
            return source, present

        source, present = run(scenario())
        assert present
        assert source.id not in notebook.catalog
        assert source.id in fake_client.sources
        levels = [n.level for n in notebook.notifier.history]
        assert levels == [SUCCESS, SUCCESS]

    def test_explicit_save(self, notebook, fake_client):
        notebook.edit(paragraph_doc(text_node("Changed")))
        run(notebook.save())
        assert fake_client.documents["n1"]["content"] == paragraph_doc(text_node("Changed"))
        assert notebook.notifier.last.message == "Document saved"

    def test_edit_schedules_autosave(self, notebook, fake_client):
        async def scenario():
            notebook.edit(paragraph_doc(text_node("one")))
            notebook.edit(paragraph_doc(text_node("two")))
            await notebook.autosaver.flush()

        run(scenario())
        assert fake_client.count("update_document_content") == 1
        assert fake_client.documents["n1"]["content"] == paragraph_doc(text_node("two"))

    def test_autosave_failure_notifies(self, notebook, fake_client):
        fake_client.fail.add("update_document_content")

        async def scenario():
            notebook.edit(paragraph_doc(text_node("one")))
            await notebook.autosaver.flush()

        run(scenario())
        assert notebook.notifier.last.level == ERROR
        assert "auto-save" in notebook.notifier.last.message

    def test_export_bibliography(self, notebook, tmp_path):
        notebook.editor.select(9)
        notebook.insert_citation("s1")
        path = notebook.export_bibliography(str(tmp_path / "refs.docx"))
        assert path.endswith("refs.docx")
        assert notebook.notifier.last.message == "Bibliography exported"

    def test_close(self, notebook):
        run(notebook.close())
        assert notebook.render_citations() == []
        assert notebook.insert_citation("s1") is None
        assert notebook.notifier.last.level == ERROR

    def test_edit_after_close_notifies(self, notebook):
        run(notebook.close())
        assert notebook.edit(paragraph_doc(text_node("late"))) is None
        assert notebook.notifier.last.level == ERROR
        assert notebook.notifier.last.message.startswith("Failed to update document")

    def test_edit_with_invalid_content_notifies(self, notebook):
        assert notebook.edit({"no": "type"}) is None
        assert notebook.notifier.last.level == ERROR
        assert notebook.tree.plain_text() == "As shown "

    def test_open_skips_source_with_malformed_authors(self, fake_client, sample_source):
        fake_client.sources["s1"] = dict(sample_source)
        fake_client.links.append({"notebook_id": "n1", "source_id": "s1"})
        bad = fake_client.add_source("n1", title="Bad authors", authors=5)
        fake_client.documents["n1"] = {"id": "n1", "content": paragraph_doc(text_node("x"))}
        session = NotebookSession("n1", fake_client)

        run(session.open())

        assert "s1" in session.catalog
        assert session.catalog.get_by_id(bad["id"]).authors is None
        assert session.notifier.last is None or session.notifier.last.level != ERROR

    def test_notifier_listener(self, fake_client):
        seen = []
        session = NotebookSession("n1", fake_client, notifier=Notifier(seen.append))
        session.insert_citation("missing")
        assert [n.level for n in seen] == [ERROR]


class TestPaperSession:
    def test_highlight_lifecycle(self, fake_client):
        session = PaperSession("p1", fake_client)
        rect = Rect(10, 20, 110, 40, 600, 800)
        context = ScaleContext(600, 800)

        async def scenario():
            await session.open({1: context})
            await session.add_highlight(NewHighlight(HighlightContent(text="q"), ScaledPosition(rect, [rect])))
            await session.store.settle()
            drawn = session.highlights()
            highlight_id = drawn[0].id
            await session.update_highlight(highlight_id, {"comment": {"text": "note"}})
            await session.store.settle()
            await session.delete_highlight(highlight_id)
            await session.store.settle()
            return drawn

        drawn = run(scenario())
        assert drawn[0].position.bounding_rect.x1 == 10
        assert session.store.list() == []
        assert [n.message for n in session.notifier.history] == [
            "Highlight saved", "Highlight updated", "Highlight deleted"
        ]

    def test_move_after_close_notifies(self, fake_client):
        row = fake_client.add_highlight_row("p1", position=ScaledPosition(Rect(1, 1, 2, 2, 10, 10)).to_dict())
        session = PaperSession("p1", fake_client)
        context = ScaleContext(10, 10)

        async def scenario():
            await session.open({1: context})
            viewport = scaled_to_viewport(session.store.get_by_id(row["id"]).position, context)
            await session.close()
            await session.move_highlight(row["id"], viewport)

        run(scenario())
        assert session.highlights() == []
        assert session.notifier.last.level == ERROR

    def test_failed_delete_notifies(self, fake_client):
        fake_client.fail.add("delete_highlight")
        session = PaperSession("p1", fake_client)
        run(session.delete_highlight("h1"))
        assert session.notifier.last.message.startswith("Failed to delete highlight")
