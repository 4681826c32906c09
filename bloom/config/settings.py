import os
import threading
from contextlib import contextmanager
from enum import Enum
from logging import DEBUG, ERROR, INFO, WARNING
from pathlib import Path

from pydantic.dataclasses import dataclass


APP_NAME = "bloom"

STORAGE_FOLDER = "~/Documents/Bloom"

PREFS_FILE_PATH = "~/.local/bloom/prefs.yml"

LOG_DIR_PATH = "~/.local/bloom/logs"

AUTOSAVE_DELAY_SEC = 1.5

RECENT_ACTIONS_MAX = 10


def resolve_and_create_dirs(path: Path | str, is_dir: bool = False) -> Path:
    """
    Resolve a path to an absolute path, handling ~ for the home directory
    and creating any missing parent directories.
    """
    full_path = Path(path).expanduser().resolve()
    if not full_path.exists():
        if is_dir:
            os.makedirs(full_path, exist_ok=True)
        else:
            os.makedirs(full_path.parent, exist_ok=True)
    return full_path


class LogLevel(Enum):
    debug = DEBUG
    info = INFO
    warning = WARNING
    message = WARNING  # Same as warning, just for important console messages.
    error = ERROR

    @classmethod
    def parse(cls, level_str: str):
        canon_name = level_str.strip().lower()
        if canon_name == "warn":
            canon_name = "warning"
        try:
            return cls[canon_name]
        except KeyError:
            raise ValueError(
                f"Invalid log level: `{level_str}`. Valid options are: {', '.join(f'`{name}`' for name in cls.__members__)}"
            )

    def __str__(self):
        return self.name


@dataclass
class Settings:
    storage_dir: Path
    """The directory holding one `.bloom` file per document."""

    prefs_file: Path
    """YAML file for small preferences (last viewed document, recent actions, theme)."""

    log_dir: Path
    """Directory for the log file."""

    autosave_delay: float
    """Quiet period in seconds after the last edit before an autosave fires."""

    recent_actions_max: int
    """How many recent command palette actions to remember."""

    console_log_level: LogLevel
    """The log level for console-based logging."""

    file_log_level: LogLevel
    """The log level for file-based logging."""


# Initial default settings.
_settings = Settings(
    storage_dir=Path(STORAGE_FOLDER).expanduser(),
    prefs_file=Path(PREFS_FILE_PATH).expanduser(),
    log_dir=Path(LOG_DIR_PATH).expanduser(),
    autosave_delay=AUTOSAVE_DELAY_SEC,
    recent_actions_max=RECENT_ACTIONS_MAX,
    console_log_level=LogLevel.warning,
    file_log_level=LogLevel.info,
)


def global_settings() -> Settings:
    """
    Read access to global settings.
    """
    return _settings


_settings_lock = threading.RLock()


@contextmanager
def update_global_settings():
    """
    Context manager for thread-safe updates to global settings.
    """
    with _settings_lock:
        yield _settings


## Tests


def test_log_level_parse():
    assert LogLevel.parse("WARN") == LogLevel.warning
    assert LogLevel.parse(" debug ") == LogLevel.debug
    try:
        LogLevel.parse("loud")
        assert False
    except ValueError as e:
        assert "loud" in str(e)
