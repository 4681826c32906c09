import asyncio
from pathlib import Path
from typing import Optional

from bloom.file_storage.doc_store import DocStore
from bloom.lifecycle.doc_manager import DocumentManager, SaveStatus
from bloom.model.doc_tree import Doc, node_from_dict
from bloom.model.documents_model import Document, UNTITLED
from bloom.prefs.kv_store import MemoryKeyValueStore, YamlKeyValueStore
from bloom.prefs.last_viewed import LastViewed
from bloom.util.time_utils import parse_iso


def _content(heading: str, body: str = "Some text.") -> Doc:
    content = node_from_dict(
        {
            "type": "doc",
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": heading}]},
                {"type": "paragraph", "content": [{"type": "text", "text": body}]},
            ],
        }
    )
    assert isinstance(content, Doc)
    return content


def _manager(base_dir: Path, last_viewed_id: Optional[str] = None, delay: float = 0.05):
    kv_store = MemoryKeyValueStore({"lastViewedDocId": last_viewed_id} if last_viewed_id else {})
    store = DocStore(base_dir)
    return DocumentManager(store, LastViewed(kv_store), autosave_delay=delay), store


async def _seed(store: DocStore) -> None:
    await store.save(
        "alpha",
        Document(content=_content("Alpha"), title="Alpha", modified_at="2025-01-01T00:00:00.000Z", tags=["work"]),
    )
    await store.save(
        "beta",
        Document(content=_content("Beta"), title="Beta", modified_at="2025-02-01T00:00:00.000Z", tags=["home"]),
    )


def test_empty_store_creates_document(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs")

    async def run():
        doc_id = await manager.init()
        assert doc_id
        assert manager.active_document_id == doc_id
        assert manager.save_status == SaveStatus.saved
        assert [m.id for m in await store.list_docs()] == [doc_id]
        assert [item.id for item in manager.sidebar_items] == [doc_id]
        assert manager.sidebar_items[0].title == UNTITLED
        assert manager.sidebar_items[0].modified_at_label == "just now"
        assert manager.last_viewed.get() == doc_id

    asyncio.run(run())


def test_missing_last_viewed_falls_back(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="deleted-long-ago")

    async def run():
        await _seed(store)
        assert await manager.init() == "beta"
        assert manager.title == "Beta"
        assert manager.last_viewed.get() == "beta"

    asyncio.run(run())


def test_last_viewed_is_reopened(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha")

    async def run():
        await _seed(store)
        assert await manager.init() == "alpha"
        assert manager.content == _content("Alpha")
        assert manager.active_document_tags == ["work"]
        assert manager.all_tags == ["home", "work"]

    asyncio.run(run())


def test_content_edits_are_debounced(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=0.2)

    async def run():
        await _seed(store)
        await manager.init()

        manager.update_content(_content("Alpha", "First draft."))
        assert manager.content_version == 1
        assert manager.save_status == SaveStatus.unsaved

        await asyncio.sleep(0.1)
        manager.update_content(_content("Alpha", "Second draft."))
        assert manager.content_version == 2

        await asyncio.sleep(0.15)
        assert manager.save_status == SaveStatus.unsaved
        stored = await store.load(store.path_for("alpha"))
        assert stored.content == _content("Alpha")

        await asyncio.sleep(0.3)
        assert manager.save_status == SaveStatus.saved
        stored = await store.load(store.path_for("alpha"))
        assert stored.content == _content("Alpha", "Second draft.")
        assert stored.tags == ["work"]
        assert stored.created_at == manager.active.created_at
        modified = parse_iso(stored.modified_at)
        assert modified and modified > parse_iso("2025-01-01T00:00:00.000Z")

        # The saved document is now the most recent in the sidebar.
        assert [item.id for item in manager.sidebar_items] == ["alpha", "beta"]

    asyncio.run(run())


def test_title_derived_from_content(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs")

    async def run():
        doc_id = await manager.init()
        manager.update_content(_content("A Heading"))
        await manager.flush()
        assert manager.save_status == SaveStatus.saved
        stored = await store.load(store.path_for(doc_id))
        assert stored.title == "A Heading"
        assert manager.sidebar_items[0].title == "A Heading"

    asyncio.run(run())


def test_title_edit_updates_sidebar_immediately(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=10)

    async def run():
        await _seed(store)
        await manager.init()

        manager.update_title("Alpha, Revised")
        titles = {item.id: item.title for item in manager.sidebar_items}
        assert titles["alpha"] == "Alpha, Revised"
        assert manager.save_status == SaveStatus.unsaved
        assert manager.autosave_pending

        manager.update_subtitle("Now with a subtitle")
        await manager.flush()
        stored = await store.load(store.path_for("alpha"))
        assert stored.title == "Alpha, Revised"
        assert stored.subtitle == "Now with a subtitle"
        assert manager.save_status == SaveStatus.saved

    asyncio.run(run())


def test_tags_written_through(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=10)

    async def run():
        await _seed(store)
        await manager.init()

        await manager.update_tags(["work", "draft", "work"])
        assert manager.active_document_tags == ["work", "draft"]
        assert manager.save_status == SaveStatus.saved
        assert not manager.autosave_pending

        stored = await store.load(store.path_for("alpha"))
        assert stored.tags == ["work", "draft"]
        assert stored.modified_at == "2025-01-01T00:00:00.000Z"
        assert manager.all_tags == ["draft", "home", "work"]

        manager.active_tag_filter = "draft"
        assert [item.id for item in manager.sidebar_items] == ["alpha"]
        manager.active_tag_filter = None
        manager.search_query = "BET"
        assert [item.id for item in manager.sidebar_items] == ["beta"]

    asyncio.run(run())


def test_delete_documents(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha")

    async def run():
        await _seed(store)
        await manager.init()

        assert await manager.delete_document("alpha") == "beta"
        assert manager.active_document_id == "beta"
        assert [m.id for m in await store.list_docs()] == ["beta"]

        new_id = await manager.delete_document("beta")
        assert new_id and new_id not in ("alpha", "beta")
        assert [s.id for s in manager.summaries] == [new_id]

    asyncio.run(run())


def test_switch_flushes_pending_edits(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=10)

    async def run():
        await _seed(store)
        await manager.init()

        manager.update_content(_content("Alpha", "Unsaved words."))
        assert manager.autosave_pending

        assert await manager.select_document("beta")
        assert manager.active_document_id == "beta"
        assert manager.save_status == SaveStatus.saved
        assert manager.content == _content("Beta")
        assert not manager.autosave_pending

        await manager.flush()
        stored = await store.load(store.path_for("alpha"))
        assert stored.content == _content("Alpha", "Unsaved words.")
        stored_beta = await store.load(store.path_for("beta"))
        assert stored_beta.content == _content("Beta")
        assert manager.last_viewed.get() == "beta"

    asyncio.run(run())


def test_new_document_flushes_pending_edits(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="beta", delay=10)

    async def run():
        await _seed(store)
        await manager.init()

        manager.update_title("Beta Prime")
        new_id = await manager.create_new_document()
        assert manager.active_document_id == new_id
        assert manager.title == ""
        await manager.aclose()

        stored = await store.load(store.path_for("beta"))
        assert stored.title == "Beta Prime"
        assert len(await store.list_docs()) == 3

    asyncio.run(run())


def test_unavailable_storage_keeps_edits_in_memory(tmp_path: Path):
    not_a_dir = tmp_path / "docs"
    not_a_dir.write_text("this is a file, not a directory")
    manager, store = _manager(not_a_dir)

    async def run():
        doc_id = await manager.init()
        assert doc_id

        manager.update_content(_content("Offline"))
        await manager.flush()
        assert manager.save_status == SaveStatus.unsaved
        assert manager.content == _content("Offline")

        await manager.update_tags(["t"])
        assert manager.active_document_tags == ["t"]

    asyncio.run(run())


def test_corrupt_document_listed_as_placeholder(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs")

    async def run():
        await _seed(store)
        store.path_for("broken").write_text("{not json")

        summaries = await manager.refresh_summaries()
        broken = [s for s in summaries if s.id == "broken"]
        assert broken and broken[0].title == UNTITLED and broken[0].tags == []

        # The broken document can't be opened, so start-up skips it.
        assert await manager.init() == "beta"
        assert not await manager.select_document("broken")
        assert manager.active_document_id == "beta"

    asyncio.run(run())


def test_edits_need_an_open_document(tmp_path: Path):
    from bloom.errors import InvalidState

    manager, _store = _manager(tmp_path / "docs")
    try:
        manager.update_content(_content("Nowhere"))
        assert False
    except InvalidState:
        pass
    assert manager.content_version == 0


def test_word_count(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=10)

    async def run():
        await _seed(store)
        await manager.init()
        assert manager.word_count == 3
        manager.update_content(_content("Alpha", "Now five words of text."))
        assert manager.word_count == 6
        await manager.aclose()

    asyncio.run(run())


def test_oddly_named_files_are_skipped(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs")

    async def run():
        await _seed(store)
        (store.base_dir / "my notes.bloom").write_text('{"title": "Renamed by hand"}')

        summaries = await manager.refresh_summaries()
        assert [s.id for s in summaries] == ["alpha", "beta"]
        assert await manager.init() == "beta"
        assert not await manager.select_document("my notes")
        assert manager.active_document_id == "beta"

    asyncio.run(run())


def test_delete_after_switch_stays_deleted(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=10)

    async def run():
        await _seed(store)
        await manager.init()

        manager.update_content(_content("Alpha", "Edited, then deleted."))
        assert await manager.select_document("beta")
        assert await manager.delete_document("alpha") == "beta"
        await manager.flush()

        assert [m.id for m in await store.list_docs()] == ["beta"]
        assert [s.id for s in manager.summaries] == ["beta"]

    asyncio.run(run())


def test_delete_active_during_autosave(tmp_path: Path):
    manager, store = _manager(tmp_path / "docs", last_viewed_id="alpha", delay=0.01)

    async def run():
        await _seed(store)
        await manager.init()

        manager.update_content(_content("Alpha", "Saving soon."))
        await asyncio.sleep(0.02)
        assert await manager.delete_document("alpha") == "beta"
        await manager.flush()

        assert [m.id for m in await store.list_docs()] == ["beta"]
        assert [s.id for s in manager.summaries] == ["beta"]

    asyncio.run(run())


def test_corrupt_prefs_file_does_not_block_startup(tmp_path: Path):
    prefs_file = tmp_path / "prefs.yml"
    prefs_file.write_text("lastViewedDocId: [unclosed\n")
    store = DocStore(tmp_path / "docs")
    manager = DocumentManager(store, LastViewed(YamlKeyValueStore(prefs_file)), autosave_delay=10)

    async def run():
        await _seed(store)
        assert await manager.init() == "beta"
        assert YamlKeyValueStore(prefs_file).get("lastViewedDocId") == "beta"

    asyncio.run(run())
