from enum import Enum
from typing import Optional

from bloom.config.logger import get_logger
from bloom.prefs.kv_store import KeyValueStore

log = get_logger(__name__)

THEME_KEY = "themePreference"


class Theme(Enum):
    light = "light"
    dark = "dark"


class ThemePreference:
    """
    The user's explicit light or dark choice, or None to follow the system.
    """

    def __init__(self, kv_store: KeyValueStore):
        self.kv_store = kv_store
        self._cached: Optional[Theme] = None

    def get(self) -> Optional[Theme]:
        if self._cached is not None:
            return self._cached
        try:
            stored = self.kv_store.get(THEME_KEY)
        except OSError as e:
            log.info("Could not read theme preference: %s", e)
            return None
        if stored in (Theme.light.value, Theme.dark.value):
            self._cached = Theme(stored)
        return self._cached

    def set(self, theme: Theme) -> None:
        self._cached = theme
        try:
            self.kv_store.set(THEME_KEY, theme.value)
        except OSError as e:
            log.info("Could not store theme preference: %s", e)

    def clear(self) -> None:
        self._cached = None
        try:
            self.kv_store.remove(THEME_KEY)
        except OSError as e:
            log.info("Could not clear theme preference: %s", e)


## Tests


def test_theme_preference():
    from bloom.prefs.kv_store import MemoryKeyValueStore

    kv_store = MemoryKeyValueStore({THEME_KEY: "sepia"})
    pref = ThemePreference(kv_store)
    assert pref.get() is None

    pref.set(Theme.dark)
    assert pref.get() == Theme.dark
    assert ThemePreference(kv_store).get() == Theme.dark

    pref.clear()
    assert pref.get() is None
    assert kv_store.get(THEME_KEY) is None
