"""
A small key-value port for persisting preferences, with an in-memory implementation
for tests and a YAML-file implementation for real use.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from frontmatter_format import read_yaml_file, write_yaml_file
from ruamel.yaml.error import YAMLError

from bloom.config.logger import get_logger
from bloom.util.format_utils import fmt_path

log = get_logger(__name__)


class KeyValueStore(Protocol):
    """
    Read/write access to simple values by key. Implementations may raise `OSError`
    when the backing store is unavailable.
    """

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, init_values: Optional[Dict[str, Any]] = None):
        self.values: Dict[str, Any] = dict(init_values or {})

    def get(self, key: str) -> Optional[Any]:
        return self.values.get(key)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


class YamlKeyValueStore:
    """
    Maintain a dictionary of values as a YAML file. File writes are atomic but do not lock.
    """

    def __init__(self, filename: str | Path):
        self.filename = Path(filename)

    def _read_all(self) -> Dict[str, Any]:
        if not self.filename.exists():
            return {}
        try:
            values = read_yaml_file(str(self.filename))
        except YAMLError as e:
            log.warning("Ignoring unreadable preferences file %s: %s", fmt_path(self.filename), e)
            return {}
        return dict(values) if isinstance(values, dict) else {}

    def _write_all(self, values: Dict[str, Any]) -> None:
        self.filename.parent.mkdir(parents=True, exist_ok=True)
        write_yaml_file(values, str(self.filename))

    def get(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        values = self._read_all()
        values[key] = value
        self._write_all(values)

    def remove(self, key: str) -> None:
        values = self._read_all()
        if key in values:
            del values[key]
            self._write_all(values)


class UnavailableKeyValueStore:
    """
    Stands in for a backing store that can't be reached. Every call raises `OSError`.
    """

    def get(self, key: str) -> Optional[Any]:
        raise OSError("Preference storage is unavailable")

    def set(self, key: str, value: Any) -> None:
        raise OSError("Preference storage is unavailable")

    def remove(self, key: str) -> None:
        raise OSError("Preference storage is unavailable")


## Tests


def test_yaml_key_value_store(tmp_path: Path):
    store = YamlKeyValueStore(tmp_path / "prefs" / "prefs.yml")
    assert store.get("missing") is None

    store.set("theme", "dark")
    store.set("recent", ["a", "b"])
    assert store.get("theme") == "dark"
    assert store.get("recent") == ["a", "b"]

    reopened = YamlKeyValueStore(tmp_path / "prefs" / "prefs.yml")
    assert reopened.get("recent") == ["a", "b"]

    reopened.remove("theme")
    reopened.remove("theme")
    assert store.get("theme") is None


def test_memory_key_value_store():
    store = MemoryKeyValueStore({"a": 1})
    assert store.get("a") == 1
    store.remove("a")
    assert store.get("a") is None


def test_corrupt_yaml_file_reads_as_empty(tmp_path: Path):
    prefs_file = tmp_path / "prefs.yml"
    prefs_file.write_text("lastViewedDocId: [unclosed\n")

    store = YamlKeyValueStore(prefs_file)
    assert store.get("lastViewedDocId") is None

    store.set("theme", "dark")
    assert store.get("theme") == "dark"
