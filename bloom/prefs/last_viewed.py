from typing import Optional

from bloom.config.logger import get_logger
from bloom.prefs.kv_store import KeyValueStore

log = get_logger(__name__)

LAST_VIEWED_KEY = "lastViewedDocId"


class LastViewed:
    """
    The id of the document most recently opened or saved, so it can be reopened on
    the next start. Falls back to an in-memory value if preferences can't be stored.
    """

    def __init__(self, kv_store: KeyValueStore):
        self.kv_store = kv_store
        self._cached: Optional[str] = None

    def set(self, doc_id: str) -> None:
        self._cached = doc_id
        try:
            self.kv_store.set(LAST_VIEWED_KEY, doc_id)
        except OSError as e:
            log.info("Could not store last viewed document: %s", e)

    def get(self) -> Optional[str]:
        if self._cached is not None:
            return self._cached
        try:
            value = self.kv_store.get(LAST_VIEWED_KEY)
        except OSError as e:
            log.info("Could not read last viewed document: %s", e)
            return None
        return value if isinstance(value, str) else None

    def clear(self) -> None:
        self._cached = None
        try:
            self.kv_store.remove(LAST_VIEWED_KEY)
        except OSError as e:
            log.info("Could not clear last viewed document: %s", e)


## Tests


def test_last_viewed():
    from bloom.prefs.kv_store import MemoryKeyValueStore, UnavailableKeyValueStore

    kv_store = MemoryKeyValueStore()
    last_viewed = LastViewed(kv_store)
    assert last_viewed.get() is None

    last_viewed.set("doc-1")
    assert last_viewed.get() == "doc-1"
    assert LastViewed(kv_store).get() == "doc-1"

    last_viewed.clear()
    assert last_viewed.get() is None
    assert LastViewed(MemoryKeyValueStore({LAST_VIEWED_KEY: 42})).get() is None

    offline = LastViewed(UnavailableKeyValueStore())
    assert offline.get() is None
    offline.set("doc-2")
    assert offline.get() == "doc-2"
