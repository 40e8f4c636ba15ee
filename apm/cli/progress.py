"""
Single-line terminal progress indicator.

One indicator is created per installation step. Its text and percentage
are updated in place, and finish() replaces the line with the final
success or failure message.
"""

import shutil
import sys
from typing import Optional, TextIO

MAX_WIDTH = 60
FALLBACK_WIDTH = 20
BAR_WIDTH = 20


def get_progress_width(
    max_width: int = MAX_WIDTH, fallback_width: int = FALLBACK_WIDTH
) -> int:
    """Get terminal width limited by max_width, or fallback_width if unknown."""
    columns = shutil.get_terminal_size(fallback=(0, 0)).columns
    if columns <= 0:
        return fallback_width
    return min(columns, max_width)


class Progress:
    """
    Progress indicator rendered on a single terminal line.

    Nothing is drawn until show() is called. When the stream isn't a
    terminal, intermediate states are skipped and only final messages are
    written.

    Args:
        text: Initial text
        determined: Whether percentage is known (a bar is drawn)
        width: Maximum line width (defaults to terminal width)
        stream: Output stream for the indicator and success messages
        error_stream: Output stream for failure messages
    """

    def __init__(
        self,
        text: str = "",
        determined: bool = False,
        width: Optional[int] = None,
        stream: Optional[TextIO] = None,
        error_stream: Optional[TextIO] = None,
    ):
        self._text = text
        self._determined = determined
        self._percentage = 0.0
        self.width = width or get_progress_width()
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr
        self.visible = False
        self._drawn_length = 0

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str):
        self._text = value
        self._redraw()

    @property
    def percentage(self) -> float:
        return self._percentage

    @percentage.setter
    def percentage(self, value: float):
        self._percentage = max(0.0, min(100.0, float(value)))
        self._redraw()

    @property
    def determined(self) -> bool:
        return self._determined

    def set_determined(self, determined: bool):
        self._determined = determined
        if not determined:
            self._percentage = 0.0
        self._redraw()

    def show(self):
        self.visible = True
        self._redraw()

    def hide(self):
        if self.visible and self._is_tty():
            self.stream.write("\r" + " " * self._drawn_length + "\r")
            self.stream.flush()
        self._drawn_length = 0
        self.visible = False

    def finish(self, success: bool, message: str):
        """Hide the indicator and print the final message."""
        self.hide()
        if success:
            print(f"  [OK] {message}", file=self.stream, flush=True)
        else:
            print(f"  [FAILED] {message}", file=self.error_stream, flush=True)

    def render(self) -> str:
        """Build the line shown for the current state."""
        if self._determined:
            filled = int(BAR_WIDTH * self._percentage / 100)
            prefix = f"[{'#' * filled}{'.' * (BAR_WIDTH - filled)}] {self._percentage:3.0f}% "
        else:
            prefix = "[...] "

        line = prefix + self._text
        if len(line) > self.width:
            line = line[: max(self.width - 3, 0)] + "..."
        return line

    def _is_tty(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def _redraw(self):
        if not self.visible or not self._is_tty():
            return
        line = self.render()
        padding = " " * max(self._drawn_length - len(line), 0)
        self.stream.write("\r" + line + padding)
        self.stream.flush()
        self._drawn_length = len(line)
