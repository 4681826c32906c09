import logging
from functools import cache
from logging import Formatter
from pathlib import Path
from typing import Optional

import rich
from rich import reconfigure
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from bloom.config.settings import global_settings, LogLevel, resolve_and_create_dirs
from bloom.config.text_styles import BloomHighlighter, EMOJI_ERROR, EMOJI_WARN, RICH_STYLES

LOG_FILE_NAME = "bloom.log"

_file_handler: Optional[logging.FileHandler] = None

_console_handler: Optional[RichHandler] = None


def log_dir() -> Path:
    return global_settings().log_dir


def log_file_path() -> Path:
    return log_dir() / LOG_FILE_NAME


@cache
def get_highlighter():
    return BloomHighlighter()


@cache
def get_theme():
    return Theme(RICH_STYLES)


reconfigure(theme=get_theme(), highlighter=get_highlighter())


def get_console() -> Console:
    return rich.get_console()


def logging_setup():
    """
    Set up or reset logging setup. Call at initial run and again if the log directory
    or levels change. Replaces all previous handlers.
    """
    global _file_handler, _console_handler

    resolve_and_create_dirs(log_dir(), is_dir=True)

    # Verbose logging to file, important logging to console.
    _file_handler = logging.FileHandler(log_file_path())
    _file_handler.setLevel(global_settings().file_log_level.value)
    _file_handler.setFormatter(Formatter("%(asctime)s %(levelname).1s %(name)s - %(message)s"))

    _console_handler = RichHandler(
        console=rich.get_console(),
        level=global_settings().console_log_level.value,
        show_time=False,
        show_path=False,
        show_level=False,
        highlighter=get_highlighter(),
        markup=False,
    )
    _console_handler.setLevel(global_settings().console_log_level.value)
    _console_handler.setFormatter(Formatter("%(message)s"))

    root = logging.getLogger()
    root.setLevel(min(global_settings().file_log_level.value, global_settings().console_log_level.value))
    # Remove any existing handlers.
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(_console_handler)
    root.addHandler(_file_handler)


def prefix(line, emoji: str = "", warn_emoji: str = ""):
    emojis = f"{warn_emoji}{emoji}".strip()
    return " ".join(filter(None, [emojis, line]))


def prefix_args(args, emoji: str = "", warn_emoji: str = ""):
    if len(args) > 0:
        args = (prefix(args[0], emoji, warn_emoji),) + args[1:]
    return args


class CustomLogger:
    """
    Custom logger to be clearer about user-facing messages.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, *args, **kwargs):
        self.logger.debug(*prefix_args(args), **kwargs)

    def info(self, *args, **kwargs):
        self.logger.info(*prefix_args(args), **kwargs)

    def message(self, *args, **kwargs):
        self.logger.warning(*prefix_args(args), **kwargs)

    def warning(self, *args, **kwargs):
        self.logger.warning(*prefix_args(args, warn_emoji=EMOJI_WARN), **kwargs)

    def error(self, *args, **kwargs):
        self.logger.error(*prefix_args(args, warn_emoji=EMOJI_ERROR), **kwargs)

    def log(self, level: LogLevel, *args, **kwargs):
        getattr(self, level.name)(*args, **kwargs)

    # Fallback for other attributes/methods.
    def __getattr__(self, attr):
        return getattr(self.logger, attr)


def get_logger(name: str):
    return CustomLogger(name)


## Tests


def test_prefix_args():
    assert prefix_args(("Saved %s", "doc")) == ("Saved %s", "doc")
    assert prefix_args(("Oops",), warn_emoji=EMOJI_WARN) == (f"{EMOJI_WARN} Oops",)
    assert prefix_args(()) == ()
