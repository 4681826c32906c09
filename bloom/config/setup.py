import os
from pathlib import Path

from cachetools import cached
from dotenv import find_dotenv, load_dotenv

from bloom.config.logger import logging_setup
from bloom.config.settings import LogLevel, update_global_settings


@cached(cache={})
def setup():
    """
    One-time setup of environment overrides and logging. Idempotent.
    """

    env_setup()

    logging_setup()


def env_setup() -> str | None:
    """
    Load a `.env` file if there is one and apply any `BLOOM_*` overrides to the
    global settings.
    """
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)

    with update_global_settings() as settings:
        storage_dir = os.environ.get("BLOOM_STORAGE_DIR")
        if storage_dir:
            settings.storage_dir = Path(storage_dir).expanduser()

        autosave_delay = os.environ.get("BLOOM_AUTOSAVE_DELAY")
        if autosave_delay:
            settings.autosave_delay = float(autosave_delay)

        log_level = os.environ.get("BLOOM_LOG_LEVEL")
        if log_level:
            settings.console_log_level = LogLevel.parse(log_level)

    return dotenv_path
