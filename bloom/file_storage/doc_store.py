import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import regex
from strif import atomic_output_file, new_timestamped_uid

from bloom.config.logger import get_logger
from bloom.config.text_styles import EMOJI_SAVED
from bloom.errors import InvalidDocumentId
from bloom.file_storage.bloom_file_format import BLOOM_EXT, deserialize_document, serialize_document
from bloom.model.documents_model import Document
from bloom.util.format_utils import fmt_path, format_duration

log = get_logger(__name__)

_valid_doc_id_re = regex.compile(r"^[\w-][\w.-]*$")


def new_doc_id() -> str:
    """
    A new unique document id, which is also a safe filename stem.
    """
    return new_timestamped_uid()


def check_doc_id(doc_id: str) -> str:
    if not isinstance(doc_id, str) or not _valid_doc_id_re.match(doc_id):
        raise InvalidDocumentId(doc_id)
    return doc_id


@dataclass(frozen=True)
class DocMeta:
    """
    A document file found in the store.
    """

    id: str
    file_name: str
    path: Path


class DocStore:
    """
    One file per document in a single directory, keyed by document id, as
    `{id}.bloom`. Operations are async and run the file I/O in a worker thread.
    Writes are atomic. Filesystem problems surface as `OSError`.
    """

    def __init__(self, base_dir: Path, file_ext: str = BLOOM_EXT):
        self.base_dir = Path(base_dir).expanduser()
        self.file_ext = file_ext

    def __str__(self):
        return f"DocStore({fmt_path(self.base_dir, resolve=False)})"

    def path_for(self, doc_id: str) -> Path:
        return self.base_dir / f"{check_doc_id(doc_id)}{self.file_ext}"

    def _save_sync(self, doc_id: str, doc: Document) -> Path:
        path = self.path_for(doc_id)
        contents = serialize_document(doc)
        with atomic_output_file(path, make_parents=True) as tmp_path:
            Path(tmp_path).write_text(contents, encoding="utf-8")
        return path

    async def save(self, doc_id: str, doc: Document) -> None:
        path = await asyncio.to_thread(self._save_sync, doc_id, doc)
        log.info("%s Saved document: %s", EMOJI_SAVED, fmt_path(path, resolve=False))

    def _load_sync(self, path: Path) -> Document:
        contents = Path(path).read_text(encoding="utf-8")
        return deserialize_document(contents, doc_id=self._id_from_name(Path(path).name))

    async def load(self, path: Path) -> Document:
        """
        Read a document file. Raises `FileFormatError` if the file is corrupt.
        """
        return await asyncio.to_thread(self._load_sync, path)

    def _id_from_name(self, file_name: str) -> Optional[str]:
        if file_name.endswith(self.file_ext):
            return file_name[: -len(self.file_ext)]
        return None

    def _list_sync(self) -> List[DocMeta]:
        if not self.base_dir.exists():
            return []
        results: List[DocMeta] = []
        for entry in sorted(self.base_dir.iterdir()):
            doc_id = self._id_from_name(entry.name)
            if not doc_id or not entry.is_file():
                continue
            if not _valid_doc_id_re.match(doc_id):
                log.warning("Skipping file with an invalid document id: %s", fmt_path(entry))
                continue
            results.append(DocMeta(id=doc_id, file_name=entry.name, path=entry))
        return results

    async def list_docs(self) -> List[DocMeta]:
        """
        All document files in the store, ordered by file name. Empty if the storage
        directory doesn't exist yet. Files whose names aren't valid ids are skipped.
        """
        start_time = time.time()
        metas = await asyncio.to_thread(self._list_sync)
        log.debug("Listed %s documents in %s", len(metas), format_duration(time.time() - start_time))
        return metas

    async def find(self, doc_id: str) -> Optional[DocMeta]:
        for meta in await self.list_docs():
            if meta.id == doc_id:
                return meta
        return None

    def _delete_sync(self, doc_id: str) -> None:
        self.path_for(doc_id).unlink(missing_ok=True)

    async def delete(self, doc_id: str) -> None:
        """
        Remove a document file. Deleting a document that isn't there does nothing.
        """
        await asyncio.to_thread(self._delete_sync, doc_id)
        log.info("Deleted document: %s", doc_id)


## Tests


def test_doc_store(tmp_path: Path):
    from bloom.errors import FileFormatError

    store = DocStore(tmp_path / "Bloom")

    async def run():
        assert await store.list_docs() == []

        doc = Document(title="First", tags=["x"])
        await store.save("doc-1", doc)
        await store.save("doc-2", Document(title="Second"))
        (store.base_dir / "notes.txt").write_text("not a document")
        (store.base_dir / "my notes.bloom").write_text("{}")

        metas = await store.list_docs()
        assert [m.id for m in metas] == ["doc-1", "doc-2"]
        assert metas[0].file_name == "doc-1.bloom"

        loaded = await store.load(metas[0].path)
        assert loaded.id == "doc-1"
        assert loaded.title == "First"
        assert loaded.tags == ["x"]

        found = await store.find("doc-2")
        assert found and found.path == store.path_for("doc-2")
        assert await store.find("nope") is None

        await store.delete("doc-1")
        await store.delete("doc-1")
        assert [m.id for m in await store.list_docs()] == ["doc-2"]

        store.path_for("broken").write_text("{oops")
        try:
            await store.load(store.path_for("broken"))
            assert False
        except FileFormatError:
            pass

    asyncio.run(run())


def test_doc_ids():
    doc_id = new_doc_id()
    assert check_doc_id(doc_id) == doc_id
    for bad in ["", "../escape", "a/b", ".hidden"]:
        try:
            check_doc_id(bad)
            assert False
        except InvalidDocumentId:
            pass
