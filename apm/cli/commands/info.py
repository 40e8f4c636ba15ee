"""
Info command implementation.

Shows the installed API version and where SDK files live.
"""

import logging

from apm.cli.utils import print_error, print_warning
from apm.config.store import Config
from apm.sdk.layout import SdkLayout

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the info command.

    Args:
        args: Parsed command-line arguments with:
            - check: Fail if any SDK file is missing

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    config = Config()
    installed_api = config.get_installed_version()

    if installed_api is None:
        print_error("SDK not installed. Use 'apm setup' to install it")
        return 1

    layout = SdkLayout()
    print(f"API of SDK: {installed_api}")
    print(f"SDK root: {layout.root}")
    print()

    missing = set(layout.missing_files())
    for path in layout.all_paths():
        status = "missing" if path in missing else "ok"
        print(f"  [{status:>7}] {path}")

    if missing:
        print()
        print_warning(
            f"{len(missing)} SDK file(s) missing. Run 'apm setup' to reinstall SDK"
        )
        if getattr(args, "check", False):
            return 1

    return 0
