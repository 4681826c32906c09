"""
Filtering and sorting for sidebar summaries. All functions are pure and keep the
relative order of the documents they return.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from bloom.model.documents_model import SidebarSummary
from bloom.util.time_utils import parse_iso

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def filter_by_tag(docs: Sequence[SidebarSummary], tag: Optional[str]) -> List[SidebarSummary]:
    """
    Documents carrying `tag`, or all documents when no tag is given.
    """
    if not tag:
        return list(docs)
    return [doc for doc in docs if tag in doc.tags]


def search_by_title(docs: Sequence[SidebarSummary], query: str) -> List[SidebarSummary]:
    """
    Documents whose title contains `query`, ignoring case. The query is literal text.
    An empty or blank query matches everything.
    """
    if not query or not query.strip():
        return list(docs)
    needle = query.casefold()
    return [doc for doc in docs if needle in doc.title.casefold()]


def _modified_key(doc: SidebarSummary) -> datetime:
    # Unreadable timestamps sort as oldest.
    return parse_iso(doc.modified_at) or _OLDEST


def sort_by_modified(docs: Sequence[SidebarSummary]) -> List[SidebarSummary]:
    """
    Most recently modified first. Ties keep their input order.
    """
    return sorted(docs, key=_modified_key, reverse=True)


def collect_tags(docs: Sequence[SidebarSummary]) -> List[str]:
    """
    Every tag used by any document, sorted and without duplicates.
    """
    return sorted({tag for doc in docs for tag in doc.tags})


def process_summaries(
    docs: Sequence[SidebarSummary], tag: Optional[str], query: str
) -> List[SidebarSummary]:
    """
    The sidebar pipeline: filter by tag, then search titles, then sort by recency.
    """
    return sort_by_modified(search_by_title(filter_by_tag(docs, tag), query))


## Tests


def _docs() -> List[SidebarSummary]:
    return [
        SidebarSummary("1", "Morning Pages", "2026-01-01T08:00:00.000Z", ["journal"]),
        SidebarSummary("2", "Draft (v2) notes", "2026-01-03T08:00:00.000Z", ["work", "draft"]),
        SidebarSummary("3", "Grocery list", "2026-01-02T08:00:00.000Z", []),
        SidebarSummary("4", "Work Journal", "2026-01-03T08:00:00.000Z", ["journal", "work"]),
    ]


def test_filter_by_tag():
    docs = _docs()
    assert filter_by_tag(docs, None) == docs
    assert filter_by_tag(docs, "") == docs
    assert [d.id for d in filter_by_tag(docs, "journal")] == ["1", "4"]
    assert [d.id for d in filter_by_tag(docs, "work")] == ["2", "4"]
    assert filter_by_tag(docs, "missing") == []


def test_search_by_title():
    docs = _docs()
    assert search_by_title(docs, "") == docs
    assert search_by_title(docs, "   ") == docs
    assert [d.id for d in search_by_title(docs, "JOURNAL")] == ["4"]
    assert [d.id for d in search_by_title(docs, "(v2")] == ["2"]
    assert search_by_title(docs, "(") == [docs[1]]
    assert search_by_title(docs, ".*") == []
    assert search_by_title(docs, "[") == []


def test_sort_by_modified():
    docs = _docs()
    assert [d.id for d in sort_by_modified(docs)] == ["2", "4", "3", "1"]
    assert [d.id for d in docs] == ["1", "2", "3", "4"]

    bad = SidebarSummary("5", "Bad", "not a date", [])
    assert sort_by_modified([bad] + docs)[-1] == bad


def test_collect_tags():
    assert collect_tags(_docs()) == ["draft", "journal", "work"]
    assert collect_tags([]) == []


def test_process_summaries():
    assert [d.id for d in process_summaries(_docs(), "work", "")] == ["2", "4"]
    assert [d.id for d in process_summaries(_docs(), "journal", "work")] == ["4"]
