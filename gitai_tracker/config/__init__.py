"""Configuration management.

Configuration is read lazily through a `ConfigStore`, which re-parses the YAML
file only when its modification time changes:

    store = ConfigStore.from_env()
    cfg = store.get()
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from instrukt_ai_logging import get_logger

from gitai_tracker.config.loader import load_config
from gitai_tracker.config.schema import TrackerConfig
from gitai_tracker.constants import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, ENV_PATH_ENV

logger = get_logger(__name__)

__all__ = ["ConfigStore", "TrackerConfig", "default_config_path", "load_config"]


def _load_env_file() -> None:
    env_path = os.getenv(ENV_PATH_ENV)
    if env_path:
        load_dotenv(Path(env_path).expanduser())
    else:
        load_dotenv()


def default_config_path() -> Path:
    """Return the config path, honouring `GITAI_TRACKER_CONFIG_PATH`."""
    override = os.getenv(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path(DEFAULT_CONFIG_PATH).expanduser()


class ConfigStore:
    """Lazily reloaded view of the tracker configuration.

    `get()` is called on every policy check and classifier run, so it only
    stats the file and re-parses when the mtime moved. A failed reload keeps
    the last good configuration.
    """

    def __init__(self, path: Optional[Path] = None, *, initial: Optional[TrackerConfig] = None) -> None:
        self._path = path
        self._config = initial if initial is not None else TrackerConfig()
        self._mtime_ns: Optional[int] = None
        if path is not None and initial is None:
            self._config = load_config(path)
            self._mtime_ns = self._stat_mtime()

    @classmethod
    def from_env(cls) -> "ConfigStore":
        _load_env_file()
        return cls(default_config_path())

    @classmethod
    def static(cls, config: TrackerConfig) -> "ConfigStore":
        """Build a store that never touches disk."""
        return cls(None, initial=config)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def _stat_mtime(self) -> Optional[int]:
        if self._path is None:
            return None
        try:
            return self._path.stat().st_mtime_ns
        except OSError:
            return None

    def get(self) -> TrackerConfig:
        """Return the current configuration, re-reading the file if it changed."""
        if self._path is None:
            return self._config

        mtime = self._stat_mtime()
        if mtime == self._mtime_ns:
            return self._config

        try:
            self._config = load_config(self._path)
        except ValueError as exc:
            logger.error("Invalid config at %s, keeping previous settings: %s", self._path, exc)
        else:
            logger.debug("Config reloaded from %s", self._path)
        self._mtime_ns = mtime
        return self._config
