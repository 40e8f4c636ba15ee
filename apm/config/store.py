"""
Persistent user configuration.

Configuration is a flat YAML mapping stored in apm.yaml inside the user's
configuration directory. Writes are atomic (temporary file + rename) and
guarded by a file lock, so a reader never sees a half-written file.

Known keys:
    sdk: API version of the installed SDK
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from filelock import FileLock, Timeout

from apm.core.directory import get_config_dir
from apm.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

FILE_NAME = "apm.yaml"
SDK_KEY = "sdk"


class Config:
    """
    Key/value configuration backed by a YAML file.

    Args:
        path: Configuration file. Defaults to <config dir>/apm.yaml.
        lock_timeout: Seconds to wait for the file lock when saving.

    Raises:
        ConfigError: If the existing file isn't a valid YAML mapping.

    Example:
        >>> config = Config()
        >>> config.set_installed_version(28)
        True
        >>> config.get_installed_version()
        28
    """

    def __init__(self, path: Optional[Path] = None, lock_timeout: float = 10.0):
        self.path = Path(path) if path else get_config_dir() / FILE_NAME
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.debug(f"Config file not found: {self.path}")
            return {}

        logger.debug(f"Loading configuration from {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                f'Failed to parse file "{self.path}" ({e}); delete or fix it'
            ) from e
        except OSError as e:
            raise ConfigError(f'Failed to read file "{self.path}": {e}') from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f'File "{self.path}" must contain a mapping; delete or fix it'
            )
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any, save: bool = True) -> bool:
        """
        Set a value. Returns False if saving failed.

        The in-memory value is updated even if saving fails.
        """
        self._data[key] = value
        if save:
            return self.save()
        return True

    def remove(self, key: str, save: bool = True) -> bool:
        if key not in self._data:
            return True
        del self._data[key]
        if save:
            return self.save()
        return True

    def save(self) -> bool:
        """
        Write configuration to disk.

        Returns:
            True on success, False if the file couldn't be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(self.lock_path, timeout=self.lock_timeout):
                fd, tmp_path = tempfile.mkstemp(
                    dir=self.path.parent, prefix=f".{self.path.name}."
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        yaml.safe_dump(self._data, f, default_flow_style=False)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    Path(tmp_path).unlink(missing_ok=True)
                    raise
        except Timeout:
            logger.error(
                f"Could not acquire config lock within {self.lock_timeout} seconds"
            )
            return False
        except OSError as e:
            logger.error(f"Failed to save configuration to {self.path}: {e}")
            return False

        logger.debug(f"Saved configuration to {self.path}")
        return True

    # ------------------------------------------------------------------
    # Installed SDK
    # ------------------------------------------------------------------

    def get_installed_version(self) -> Optional[int]:
        """Get API version of the installed SDK, None if SDK isn't installed."""
        value = self._data.get(SDK_KEY)
        if isinstance(value, bool):
            return None
        try:
            version = int(value)
        except (TypeError, ValueError):
            return None
        return version if version > 0 else None

    def set_installed_version(self, version: int) -> bool:
        return self.set(SDK_KEY, int(version))
