"""
Content hashing used to verify downloaded artifacts.
"""

import hashlib
import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def compute_sha256(file_path: Union[str, Path]) -> str:
    """
    Compute SHA256 hash of a file.

    Reads the file in chunks, so memory usage doesn't depend on file size.

    Args:
        file_path: Path to file

    Returns:
        Lowercase hex digest, or an empty string if the file can't be
        opened. An empty string means verification is impossible, it is
        never a valid digest.

    Example:
        >>> compute_sha256(Path('empty.txt'))
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    hasher = hashlib.sha256()

    try:
        with open(file_path, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                hasher.update(chunk)
    except OSError as e:
        logger.debug(f"Unable to hash {file_path}: {e}")
        return ""

    return hasher.hexdigest()
