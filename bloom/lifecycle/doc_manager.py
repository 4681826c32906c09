"""
The document lifecycle: which document is open, its live edits, autosave, and the
sidebar list of all documents.

Content, title and subtitle edits mark the active document unsaved and schedule a
debounced save. Tag edits are written through to storage right away. Switching to
another document never waits on storage: any unsaved edits of the outgoing
document are captured and saved in the background under that document's own id.

If storage is unavailable, edits keep working in memory and failures are logged.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from bloom.config.logger import get_logger
from bloom.config.settings import AUTOSAVE_DELAY_SEC
from bloom.errors import FileFormatError, InvalidDocumentId, InvalidState
from bloom.file_storage.doc_store import DocMeta, DocStore, new_doc_id
from bloom.lifecycle.debounce import Debouncer, run_in_background
from bloom.listing.doc_filters import collect_tags, process_summaries
from bloom.model.doc_tree import Doc, empty_doc
from bloom.model.documents_model import (
    dedupe_tags,
    DocStatus,
    Document,
    ProcessedSidebarItem,
    SidebarSummary,
    UNTITLED,
)
from bloom.prefs.last_viewed import LastViewed
from bloom.text_formatting.text_stats import doc_word_count
from bloom.text_formatting.title_extractor import extract_title
from bloom.util.format_utils import format_relative_time
from bloom.util.time_utils import iso_format_z, parse_iso

log = get_logger(__name__)


class SaveStatus(Enum):
    saved = "saved"
    unsaved = "unsaved"


@dataclass
class ActiveDocRef:
    """
    Stored fields of the active document that edits don't touch.
    """

    id: str
    created_at: str
    tags: List[str] = field(default_factory=list)
    status: DocStatus = DocStatus.draft
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SaveSnapshot:
    """
    A document as it stood at one point in the edit sequence, ready to write.
    """

    doc_id: str
    edit_seq: int
    document: Document


def resolve_title(title: str, content: Doc) -> str:
    """
    An explicit title if there is one, else one derived from the content.
    """
    if title.strip():
        return title
    return extract_title(content).strip() or UNTITLED


class DocumentManager:
    """
    Owns the single active editing session. All methods must be called from the
    event loop thread.
    """

    def __init__(
        self,
        store: DocStore,
        last_viewed: LastViewed,
        autosave_delay: float = AUTOSAVE_DELAY_SEC,
    ):
        self.store = store
        self.last_viewed = last_viewed

        self.summaries: List[SidebarSummary] = []
        self.active: Optional[ActiveDocRef] = None
        self.content: Doc = empty_doc()
        self.title: str = ""
        self.subtitle: str = ""
        self.save_status: SaveStatus = SaveStatus.saved
        self.content_version: int = 0

        self.search_query: str = ""
        self.active_tag_filter: Optional[str] = None

        self._edit_seq = 0
        self._last_modified: Optional[datetime] = None
        self._autosave = Debouncer(self.perform_save, autosave_delay)
        self._background: Dict[str, Set[asyncio.Task]] = {}
        """Background saves in flight, by document id."""

    @property
    def active_document_id(self) -> Optional[str]:
        return self.active.id if self.active else None

    @property
    def active_document_tags(self) -> List[str]:
        return list(self.active.tags) if self.active else []

    @property
    def all_tags(self) -> List[str]:
        return collect_tags(self.summaries)

    @property
    def sidebar_items(self) -> List[ProcessedSidebarItem]:
        now = datetime.now(timezone.utc)
        items = []
        for summary in process_summaries(self.summaries, self.active_tag_filter, self.search_query):
            modified = parse_iso(summary.modified_at)
            items.append(
                ProcessedSidebarItem(
                    id=summary.id,
                    title=summary.title,
                    modified_at_label=format_relative_time(modified, now) if modified else "",
                    tags=list(summary.tags),
                )
            )
        return items

    @property
    def word_count(self) -> int:
        return doc_word_count(self.content)

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    # Loading and listing.

    async def _load_summary(self, meta: DocMeta) -> SidebarSummary:
        try:
            doc = await self.store.load(meta.path)
        except (OSError, FileFormatError) as e:
            log.warning("Could not read document %s, listing it as untitled: %s", meta.id, e)
            return SidebarSummary.placeholder(meta.id)
        return doc.summary(meta.id)

    async def refresh_summaries(self) -> List[SidebarSummary]:
        """
        Re-read every document in storage for the sidebar. A document that can't be
        read is listed as an untitled placeholder.
        """
        try:
            metas = await self.store.list_docs()
        except OSError as e:
            log.info("Storage unavailable, not listing documents: %s", e)
            return self.summaries

        self.summaries = [await self._load_summary(meta) for meta in metas]
        return self.summaries

    async def init(self) -> str:
        """
        Open the last viewed document if it still exists, else the most recently
        modified one, else a new one. Returns the id of the active document.
        """
        await self.refresh_summaries()
        ids = [summary.id for summary in self.summaries]

        last_id = self.last_viewed.get()
        if last_id and last_id in ids and await self.select_document(last_id):
            return last_id
        if last_id and last_id not in ids:
            log.info("Last viewed document %s no longer exists", last_id)

        for summary in process_summaries(self.summaries, None, ""):
            if await self.select_document(summary.id):
                return summary.id

        return await self.create_new_document()

    def _set_active(self, doc: Document, doc_id: str) -> None:
        self.active = ActiveDocRef(
            id=doc_id,
            created_at=doc.created_at,
            tags=list(doc.tags),
            status=doc.status,
            extra=dict(doc.extra),
        )
        self.content = doc.content
        self.title = "" if doc.title == UNTITLED else doc.title
        self.subtitle = doc.subtitle
        self.save_status = SaveStatus.saved
        self._edit_seq += 1
        self.last_viewed.set(doc_id)

    async def select_document(self, doc_id: str) -> bool:
        """
        Make a stored document the active one. Returns False, leaving the current
        document open, if it can't be read.
        """
        if doc_id == self.active_document_id:
            return True
        try:
            doc = await self.store.load(self.store.path_for(doc_id))
        except (OSError, FileFormatError, InvalidDocumentId) as e:
            log.warning("Could not open document %s: %s", doc_id, e)
            return False

        self._flush_in_background()
        self._set_active(doc, doc_id)
        log.info("Opened document: %s", doc_id)
        return True

    async def create_new_document(self) -> str:
        """
        Start a new empty document, store it, and make it active.
        """
        self._flush_in_background()

        doc_id = new_doc_id()
        doc = Document(title="", id=doc_id)
        self._set_active(doc, doc_id)
        self._put_summary(doc.summary(doc_id), to_front=True)

        try:
            await self.store.save(doc_id, doc)
        except OSError as e:
            log.info("Storage unavailable, new document is in memory only: %s", e)
        return doc_id

    async def delete_document(self, doc_id: str) -> Optional[str]:
        """
        Delete a document. If it was the active one, open the most recent remaining
        document, or a new one if none are left. Returns the active id afterwards.
        """
        if doc_id == self.active_document_id:
            # Pending edits to a deleted document are dropped, not saved.
            self._autosave.cancel()
            self.active = None
            await self._autosave.flush()
        # A save started before the delete must not re-create the file.
        await self._wait_for_saves(doc_id)

        try:
            await self.store.delete(doc_id)
        except OSError as e:
            log.info("Storage unavailable, could not delete %s: %s", doc_id, e)
        self.summaries = [s for s in self.summaries if s.id != doc_id]

        if self.active is None:
            for summary in process_summaries(self.summaries, None, ""):
                if await self.select_document(summary.id):
                    return summary.id
            return await self.create_new_document()
        return self.active_document_id

    # Edits.

    def _check_active(self) -> ActiveDocRef:
        if not self.active:
            raise InvalidState("No document is open")
        return self.active

    def _mark_edited(self) -> None:
        self._edit_seq += 1
        self.save_status = SaveStatus.unsaved
        self._autosave.trigger()

    def update_content(self, content: Doc) -> None:
        self._check_active()
        self.content = content
        self.content_version += 1
        self._mark_edited()

    def update_title(self, title: str) -> None:
        self._check_active()
        self.title = title
        self._put_summary(self._summary_now(resolve_title(title, self.content)))
        self._mark_edited()

    def update_subtitle(self, subtitle: str) -> None:
        self._check_active()
        self.subtitle = subtitle
        self._mark_edited()

    async def update_tags(self, tags: Iterable[str]) -> None:
        """
        Set the active document's tags and write them straight to its stored file,
        leaving the rest of the stored document as it is.
        """
        if not self.active:
            return
        doc_id = self.active.id
        new_tags = dedupe_tags(tags)
        self.active.tags = new_tags
        existing = self._find_summary(doc_id)
        if existing:
            self._put_summary(
                SidebarSummary(
                    id=doc_id, title=existing.title, modified_at=existing.modified_at, tags=new_tags
                )
            )

        try:
            try:
                stored = await self.store.load(self.store.path_for(doc_id))
            except FileNotFoundError:
                stored = self._snapshot().document
            await self.store.save(doc_id, stored.with_tags(new_tags))
        except (OSError, FileFormatError) as e:
            log.warning("Could not save tags for %s: %s", doc_id, e)

    # Saving.

    def _next_modified(self) -> str:
        """
        The current time, nudged forward if needed so save times never go backwards.
        """
        now = datetime.now(timezone.utc)
        if self._last_modified and now <= self._last_modified:
            now = self._last_modified + timedelta(milliseconds=1)
        self._last_modified = now
        return iso_format_z(now)

    def _snapshot(self) -> SaveSnapshot:
        assert self.active
        doc = Document(
            content=self.content,
            title=resolve_title(self.title, self.content),
            subtitle=self.subtitle,
            created_at=self.active.created_at,
            modified_at=self._next_modified(),
            tags=list(self.active.tags),
            status=self.active.status,
            extra=dict(self.active.extra),
            id=self.active.id,
        )
        return SaveSnapshot(doc_id=self.active.id, edit_seq=self._edit_seq, document=doc)

    async def perform_save(self, snapshot: Optional[SaveSnapshot] = None) -> bool:
        """
        Write a snapshot (by default, of the active document as it is now). The active
        document is only marked saved if nothing was edited since the snapshot.
        Returns False if storage is unavailable.
        """
        if snapshot is None:
            if not self.active:
                return False
            snapshot = self._snapshot()

        try:
            await self.store.save(snapshot.doc_id, snapshot.document)
        except OSError as e:
            log.info("Storage unavailable, edits to %s kept in memory: %s", snapshot.doc_id, e)
            return False

        is_active = snapshot.doc_id == self.active_document_id
        if is_active and snapshot.edit_seq == self._edit_seq:
            self.save_status = SaveStatus.saved

        summary = snapshot.document.summary(snapshot.doc_id)
        if is_active:
            # Tags may have been written through since the snapshot was taken.
            summary = SidebarSummary(
                id=summary.id,
                title=summary.title,
                modified_at=summary.modified_at,
                tags=self.active_document_tags,
            )
            self.last_viewed.set(snapshot.doc_id)
        self._put_summary(summary, to_front=True)
        return True

    def _flush_in_background(self) -> None:
        """
        Capture the active document's unsaved edits and save them without waiting,
        so the active document can change immediately.
        """
        had_pending = self._autosave.cancel()
        if self.active and (had_pending or self.save_status == SaveStatus.unsaved):
            snapshot = self._snapshot()
            log.info("Saving %s in the background before switching", snapshot.doc_id)
            tasks = self._background.setdefault(snapshot.doc_id, set())
            run_in_background(self.perform_save(snapshot), tasks)

    async def _wait_for_saves(self, doc_id: Optional[str] = None) -> None:
        """
        Wait for background saves in flight, of one document or of all of them.
        """
        doc_ids = list(self._background) if doc_id is None else [doc_id]
        tasks = [task for key in doc_ids for task in self._background.pop(key, set())]
        if tasks:
            await asyncio.wait(tasks)

    async def flush(self) -> None:
        """
        Save any pending edits now and wait for all saves in flight.
        """
        if self._autosave.cancel() or (self.active and self.save_status == SaveStatus.unsaved):
            await self.perform_save()
        await self._autosave.flush()
        await self._wait_for_saves()

    async def aclose(self) -> None:
        await self.flush()

    # Sidebar summaries.

    def _find_summary(self, doc_id: str) -> Optional[SidebarSummary]:
        for summary in self.summaries:
            if summary.id == doc_id:
                return summary
        return None

    def _summary_now(self, title: str) -> SidebarSummary:
        assert self.active
        existing = self._find_summary(self.active.id)
        return SidebarSummary(
            id=self.active.id,
            title=title,
            modified_at=existing.modified_at if existing else iso_format_z(datetime.now(timezone.utc)),
            tags=self.active_document_tags,
        )

    def _put_summary(self, summary: SidebarSummary, to_front: bool = False) -> None:
        """
        Replace the summary with the same id, or add it at the front.
        """
        for i, existing in enumerate(self.summaries):
            if existing.id == summary.id:
                if to_front:
                    del self.summaries[i]
                    break
                self.summaries[i] = summary
                return
        self.summaries.insert(0, summary)
