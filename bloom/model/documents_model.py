"""
The data model for documents and their lightweight sidebar projections.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from bloom.model.doc_tree import Doc, empty_doc
from bloom.util.time_utils import now_iso


UNTITLED = "Untitled"


class DocStatus(Enum):
    """Publication state of a document. Draft is default."""

    draft = "draft"
    published = "published"


def dedupe_tags(tags: Iterable[Any]) -> List[str]:
    """
    Drop duplicates and non-string values from a tag list, keeping first occurrences.
    """
    return list(dict.fromkeys(tag for tag in tags if isinstance(tag, str)))


@dataclass
class Document:
    """
    A document is the persisted writing unit: the content tree plus its metadata.
    `id` is the storage key and is not written inside the file. Fields we don't know
    about are kept in `extra` so they survive a load and save.
    """

    content: Doc = field(default_factory=empty_doc)
    title: str = UNTITLED
    subtitle: str = ""
    created_at: str = field(default_factory=now_iso)
    modified_at: str = field(default_factory=now_iso)
    tags: List[str] = field(default_factory=list)
    status: DocStatus = DocStatus.draft
    extra: Dict[str, Any] = field(default_factory=dict)

    id: Optional[str] = None

    def __post_init__(self):
        assert isinstance(self.content, Doc)
        assert type(self.status) == DocStatus
        self.tags = dedupe_tags(self.tags)

    def with_tags(self, tags: Iterable[str]) -> "Document":
        return replace(self, tags=dedupe_tags(tags))

    def summary(self, doc_id: Optional[str] = None) -> "SidebarSummary":
        summary_id = doc_id or self.id
        if not summary_id:
            raise ValueError(f"Document has no id: {self!r}")
        return SidebarSummary(
            id=summary_id,
            title=self.title or UNTITLED,
            modified_at=self.modified_at or now_iso(),
            tags=list(self.tags),
        )

    def __str__(self):
        return f"Document({self.id}, {self.title!r})"


@dataclass(frozen=True)
class SidebarSummary:
    """
    What the sidebar needs to list, filter and sort a document without its content.
    """

    id: str
    title: str
    modified_at: str
    tags: List[str] = field(default_factory=list)

    @classmethod
    def placeholder(cls, doc_id: str) -> "SidebarSummary":
        """For a document that couldn't be read."""
        return cls(id=doc_id, title=UNTITLED, modified_at=now_iso(), tags=[])


@dataclass(frozen=True)
class ProcessedSidebarItem:
    """
    A summary ready for display, with the modified time as a relative label.
    """

    id: str
    title: str
    modified_at_label: str
    tags: List[str]


## Tests


def test_document_tags_deduped():
    doc = Document(tags=["a", "b", "a", 3, "c", "b"])  # type: ignore
    assert doc.tags == ["a", "b", "c"]
    assert doc.with_tags(["x", "x"]).tags == ["x"]


def test_summary():
    doc = Document(title="", tags=["t"], id="abc")
    summary = doc.summary()
    assert summary.id == "abc"
    assert summary.title == UNTITLED
    assert summary.tags == ["t"]

    placeholder = SidebarSummary.placeholder("broken")
    assert placeholder.title == UNTITLED and placeholder.tags == []
    assert placeholder.modified_at
