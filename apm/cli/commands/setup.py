"""
Setup command implementation.

Installs the SDK, or overrides an installed one.
"""

import logging

from apm.config.store import Config
from apm.sdk.installer import SdkInstaller

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the setup command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    config = Config()
    installed_api = config.get_installed_version()
    logger.debug(f"Installed API: {installed_api}")

    installer = SdkInstaller(config)
    return installer.install(installed_api or 0)
