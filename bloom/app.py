"""
Root composition: builds the store, preferences, export registry and document
manager from settings. Everything stateful is owned here rather than held in
module globals.
"""

from dataclasses import dataclass
from typing import Optional

from bloom.config.settings import global_settings, Settings
from bloom.exports.export_formats import ExportRegistry
from bloom.file_storage.doc_store import DocStore
from bloom.lifecycle.doc_manager import DocumentManager
from bloom.prefs.kv_store import KeyValueStore, YamlKeyValueStore
from bloom.prefs.last_viewed import LastViewed
from bloom.prefs.recent_actions import RecentActions
from bloom.prefs.theme_preference import ThemePreference


@dataclass
class BloomApp:
    settings: Settings
    store: DocStore
    prefs: KeyValueStore
    last_viewed: LastViewed
    recent_actions: RecentActions
    theme: ThemePreference
    exports: ExportRegistry
    manager: DocumentManager

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        prefs: Optional[KeyValueStore] = None,
        exports: Optional[ExportRegistry] = None,
    ) -> "BloomApp":
        settings = settings or global_settings()
        store = DocStore(settings.storage_dir)
        prefs = prefs or YamlKeyValueStore(settings.prefs_file)
        last_viewed = LastViewed(prefs)
        return cls(
            settings=settings,
            store=store,
            prefs=prefs,
            last_viewed=last_viewed,
            recent_actions=RecentActions(prefs, max_recent=settings.recent_actions_max),
            theme=ThemePreference(prefs),
            exports=exports or ExportRegistry(),
            manager=DocumentManager(store, last_viewed, autosave_delay=settings.autosave_delay),
        )

    async def start(self) -> str:
        return await self.manager.init()

    async def close(self) -> None:
        await self.manager.aclose()


## Tests


def test_create_app(tmp_path):
    import asyncio
    from dataclasses import replace

    from bloom.prefs.kv_store import MemoryKeyValueStore
    from bloom.prefs.theme_preference import Theme

    settings = replace(global_settings(), storage_dir=tmp_path / "docs", recent_actions_max=2)
    app = BloomApp.create(settings, prefs=MemoryKeyValueStore())
    assert app.store.base_dir == tmp_path / "docs"
    assert app.manager.last_viewed is app.last_viewed

    app.recent_actions.record("export")
    app.recent_actions.record("new")
    app.recent_actions.record("delete")
    assert app.recent_actions.get() == ["delete", "new"]

    app.theme.set(Theme.dark)
    assert app.theme.get() == Theme.dark

    async def run():
        doc_id = await app.start()
        assert app.last_viewed.get() == doc_id
        await app.close()

    asyncio.run(run())
    assert len(list((tmp_path / "docs").iterdir())) == 1
