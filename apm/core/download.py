"""
Network download with throttled progress reporting.

Responses are streamed straight into an already opened binary file.
The download loop may receive chunks far more often than it makes sense
to redraw a terminal line, so progress updates go through a throttle
that allows at most one update per refresh interval.
"""

import logging
import time
from typing import BinaryIO, Callable, Optional

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
REFRESH_INTERVAL = 0.1  # seconds


def format_size_mb(size_bytes: int) -> str:
    """
    Format size in megabytes with one decimal.

    Example:
        >>> format_size_mb(1572864)
        '1.5'
    """
    return f"{size_bytes / 1024 / 1024:.1f}"


class ProgressThrottle:
    """
    Forward download progress to an indicator at a bounded rate.

    Args:
        progress: Progress indicator (text, percentage, determined)
        append_size: Whether to append downloaded/total size to the text
        interval: Minimum number of seconds between two updates
        clock: Monotonic clock, replaceable in tests
    """

    def __init__(
        self,
        progress,
        append_size: bool = True,
        interval: float = REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.progress = progress
        self.append_size = append_size
        self.interval = interval
        self.clock = clock
        self.original_text = progress.text
        self._last_refresh: Optional[float] = None
        self._size_postfix = ""

    def update(self, downloaded: int, total: int) -> bool:
        """
        Report progress. Returns True if the indicator was updated.

        Args:
            downloaded: Bytes written so far
            total: Total size in bytes, 0 if unknown
        """
        now = self.clock()
        if self._last_refresh is not None and now - self._last_refresh < self.interval:
            return False
        self._last_refresh = now

        if total > 0 and self.progress.determined:
            self.progress.percentage = downloaded * 100 / total

        if self.append_size:
            if total > 0:
                if not self._size_postfix:
                    self._size_postfix = f" / {format_size_mb(total)} MB)"
                self.progress.text = (
                    f"{self.original_text} ({format_size_mb(downloaded)}"
                    f"{self._size_postfix}"
                )
            else:
                self.progress.text = (
                    f"{self.original_text} ({format_size_mb(downloaded)} MB)"
                )
        return True

    def restore(self) -> None:
        """Restore the text the indicator had before downloading."""
        if self.append_size:
            self.progress.text = self.original_text


def download(
    output: BinaryIO,
    url: str,
    progress,
    append_size: bool = True,
) -> requests.Response:
    """
    Download a URL into an open binary file.

    Args:
        output: File opened in binary write mode
        url: URL to download
        progress: Progress indicator. Percentage is reported only if it's
            determined and the server sent Content-Length.
        append_size: Append "(downloaded / total MB)" to the indicator text
            while downloading; the original text is restored afterwards.

    Returns:
        The response. Its body isn't written if status isn't 200.

    Raises:
        requests.RequestException: On network errors

    Example:
        >>> with open("tools.zip", "wb") as f:
        ...     response = download(f, url, progress)
        >>> response.status_code
        200
    """
    logger.debug(f"Downloading from {url}")

    with requests.get(url, stream=True, allow_redirects=True) as response:
        if response.status_code != requests.codes.ok:
            logger.debug(f"Server responded with status {response.status_code}")
            return response

        content_length = response.headers.get("content-length")
        total = int(content_length) if content_length and content_length.isdigit() else 0

        throttle = ProgressThrottle(progress, append_size=append_size)
        downloaded = 0
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    output.write(chunk)
                    downloaded += len(chunk)
                    throttle.update(downloaded, total)
        finally:
            throttle.restore()

        logger.debug(f"Downloaded {downloaded} bytes from {url}")
        return response
