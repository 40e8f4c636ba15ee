"""
Shared utilities for CLI commands.

Provides prompts and consistently formatted messages.
"""

import logging
import sys
from typing import Iterable, Optional, TextIO

logger = logging.getLogger(__name__)


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


def print_note(message: str):
    print(f"NOTE: {message}")


# ============================================================================
# Prompts
# ============================================================================


def _read_line(prompt: str, input_stream: TextIO) -> str:
    """
    Print prompt and read one line.

    Raises:
        EOFError: If input ended
    """
    print(prompt, end="", flush=True)
    line = input_stream.readline()
    if not line:
        # Keep the terminal tidy after ^D.
        print()
        raise EOFError("No more input")
    return line.strip()


def request_confirm(
    default: Optional[bool] = None, input_stream: Optional[TextIO] = None
) -> bool:
    """
    Ask the user a yes/no question until a valid answer is given.

    Args:
        default: Answer used for empty input. If None, an answer is required.
        input_stream: Source of answers (defaults to stdin)

    Returns:
        True if the user answered positively, False otherwise

    Raises:
        EOFError: If input ended before a valid answer
    """
    input_stream = input_stream or sys.stdin

    if default is None:
        prompt = "yes/no> "
    elif default:
        prompt = "yes*/no> "
    else:
        prompt = "yes/no*> "

    while True:
        answer = _read_line(prompt, input_stream).lower()

        if not answer and default is not None:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print_error('Wrong answer! Enter "yes" or "no"')


def request_number(
    choices: Iterable[int],
    prompt: str,
    input_stream: Optional[TextIO] = None,
    wrong_choice_message: str = "Wrong choice! Try again",
) -> int:
    """
    Read numbers until one of choices is entered.

    There's no retry limit, the loop ends only with a valid choice or
    when input ends.

    Raises:
        EOFError: If input ended before a valid choice
    """
    input_stream = input_stream or sys.stdin
    choices = set(choices)

    while True:
        answer = _read_line(prompt, input_stream)
        try:
            number = int(answer)
        except ValueError:
            print_error("Invalid input! Try again")
            continue

        if number in choices:
            return number
        print_error(wrong_choice_message)
