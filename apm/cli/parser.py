"""
apm CLI argument parser.

This module implements the command-line interface for apm using argparse.
"""

import argparse
import logging
import sys
from typing import List, Optional

from apm.core.exceptions import ApmError

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("apm-sdk")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """apm command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="apm",
            description="apm - Android SDK provisioning tool",
            epilog='Use "apm COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument("--version", action="version", version=f"apm {__version__}")
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_setup_command(subparsers)
        self._add_info_command(subparsers)

        return parser

    def _add_setup_command(self, subparsers):
        """Add 'setup' subcommand."""
        subparsers.add_parser(
            "setup",
            help="Install or update SDK",
            description=(
                "Download and install SDK files for a chosen API version. "
                "If SDK is already installed, you will be asked to override it."
            ),
        )

    def _add_info_command(self, subparsers):
        """Add 'info' subcommand."""
        parser = subparsers.add_parser(
            "info",
            help="Show installed SDK",
            description="Show API version of the installed SDK and paths of its files",
        )
        parser.add_argument(
            "--check",
            action="store_true",
            help="Exit with non-zero status if any SDK file is missing",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except (KeyboardInterrupt, EOFError):
            print("\nOperation cancelled", file=sys.stderr)
            return 130  # Standard exit code for SIGINT
        except ApmError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "setup": "apm.cli.commands.setup",
            "info": "apm.cli.commands.info",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        import importlib

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
