"""
Directory resolution for apm.

Resolves the per-user data and configuration directories following the
XDG Base Directory conventions:

    Data (SDK root):  $XDG_DATA_HOME/apm   or  ~/.local/share/apm
    Configuration:    $XDG_CONFIG_HOME     or  ~/.config
"""

import os
from pathlib import Path

from apm.core.exceptions import DirectoryError

ROOT_DIR_NAME = "apm"


def _get_home_dir() -> Path:
    home = os.environ.get("HOME")
    if not home:
        raise DirectoryError(
            "HOME environment variable is not set. "
            "Cannot determine user directories."
        )
    return Path(home)


def get_data_dir() -> Path:
    """
    Get the SDK root directory path.

    The directory isn't created.

    Returns:
        Path: $XDG_DATA_HOME/apm if XDG_DATA_HOME is set,
            ~/.local/share/apm otherwise.

    Raises:
        DirectoryError: If neither XDG_DATA_HOME nor HOME is set.

    Example:
        >>> get_data_dir()
        PosixPath('/home/user/.local/share/apm')
    """
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / ROOT_DIR_NAME
    return _get_home_dir() / ".local" / "share" / ROOT_DIR_NAME


def get_config_dir() -> Path:
    """
    Get the directory that holds the configuration file.

    Returns:
        Path: $XDG_CONFIG_HOME if set, ~/.config otherwise.

    Raises:
        DirectoryError: If neither XDG_CONFIG_HOME nor HOME is set.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home)
    return _get_home_dir() / ".config"
