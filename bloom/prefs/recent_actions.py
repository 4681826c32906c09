from typing import List, Optional

from bloom.config.logger import get_logger
from bloom.config.settings import RECENT_ACTIONS_MAX
from bloom.prefs.kv_store import KeyValueStore

log = get_logger(__name__)

RECENT_ACTIONS_KEY = "recentActions"


class RecentActions:
    """
    Ids of recently run commands, most recent first, without duplicates.
    """

    def __init__(self, kv_store: KeyValueStore, max_recent: int = RECENT_ACTIONS_MAX):
        self.kv_store = kv_store
        self.max_recent = max_recent
        self._cached: Optional[List[str]] = None

    def _read(self) -> List[str]:
        if self._cached is not None:
            return self._cached
        try:
            stored = self.kv_store.get(RECENT_ACTIONS_KEY)
        except OSError as e:
            log.info("Could not read recent actions: %s", e)
            return []
        if isinstance(stored, list):
            self._cached = [action for action in stored if isinstance(action, str)]
            return self._cached
        return []

    def _write(self, actions: List[str]) -> None:
        self._cached = actions
        try:
            self.kv_store.set(RECENT_ACTIONS_KEY, actions)
        except OSError as e:
            log.info("Could not store recent actions: %s", e)

    def get(self) -> List[str]:
        return list(self._read())

    def record(self, action_id: str) -> None:
        deduplicated = [action for action in self._read() if action != action_id]
        self._write([action_id, *deduplicated][: self.max_recent])

    def clear(self) -> None:
        self._cached = None
        try:
            self.kv_store.remove(RECENT_ACTIONS_KEY)
        except OSError as e:
            log.info("Could not clear recent actions: %s", e)


## Tests


def test_recent_actions():
    from bloom.prefs.kv_store import MemoryKeyValueStore

    kv_store = MemoryKeyValueStore()
    recent = RecentActions(kv_store, max_recent=3)
    assert recent.get() == []

    for action in ["new", "export", "zen", "new"]:
        recent.record(action)
    assert recent.get() == ["new", "zen", "export"]

    recent.record("theme")
    assert recent.get() == ["theme", "new", "zen"]
    assert RecentActions(kv_store).get() == ["theme", "new", "zen"]

    recent.clear()
    assert recent.get() == []
