"""
File system utilities for SDK installation.

This module provides:
- Extraction of single ZIP entries with path validation
- Adding execute permissions to extracted tools
- A reusable scratch file to stage downloaded archives
"""

import logging
import os
import shutil
import stat
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Optional, Union

from apm.core.exceptions import (
    ArchiveExtractionError,
    FilesystemError,
    InsecureArchiveError,
)

logger = logging.getLogger(__name__)

EXECUTE_PERMISSIONS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to parent.

    Args:
        path: Path to check
        parent: Potential parent path

    Returns:
        True if path is under parent
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _validate_entry_name(name: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    destination = destination.resolve()
    member_path = (destination / name).resolve()

    if not is_relative_to(member_path, destination):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


# ============================================================================
# Archive Extraction
# ============================================================================


def open_zip(archive_path: Union[str, Path], subject: str) -> zipfile.ZipFile:
    """
    Open a ZIP archive for reading.

    Args:
        archive_path: Path to the archive
        subject: What the archive contains, used in the error message

    Raises:
        ArchiveExtractionError: If the file isn't a readable ZIP archive
    """
    try:
        return zipfile.ZipFile(archive_path, "r")
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveExtractionError(
            f"Couldn't open archive with {subject} ({e})"
        ) from e


def get_zip_entry(archive: zipfile.ZipFile, name: str) -> Optional[zipfile.ZipInfo]:
    """Return entry info by its name, or None if the archive doesn't have it."""
    try:
        return archive.getinfo(name)
    except KeyError:
        return None


def extract_zip_entry(
    archive: zipfile.ZipFile,
    entry: Union[str, zipfile.ZipInfo],
    output_path: Path,
    progress,
    name: Optional[str] = None,
) -> Path:
    """
    Extract a single archive entry to the given path.

    The parent directory of output_path must already exist.

    Args:
        archive: Opened archive
        entry: Entry name or info
        output_path: Destination file (overwritten if exists)
        progress: Progress indicator, its text is set to "Extracting <name>"
        name: Friendly name for messages (defaults to the entry's base name)

    Returns:
        output_path

    Raises:
        InsecureArchiveError: If the entry name escapes the output directory
        FilesystemError: If the output file can't be opened
        ArchiveExtractionError: If decompression fails
    """
    info = entry if isinstance(entry, zipfile.ZipInfo) else archive.getinfo(entry)
    name = name or Path(info.filename).name
    output_path = Path(output_path)
    _validate_entry_name(info.filename, output_path.parent)

    try:
        output = open(output_path, "wb")
    except OSError as e:
        raise FilesystemError(
            f'Couldn\'t extract {name}: failed to open output file "{output_path}" '
            f"({e.strerror or e})"
        ) from e

    progress.text = f"Extracting {name}"
    logger.debug(f"Extracting {info.filename} to {output_path}")

    with output:
        try:
            with archive.open(info) as source:
                shutil.copyfileobj(source, output)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            raise ArchiveExtractionError(f"Couldn't extract {name}. Error: {e}") from e

    return output_path


def extract_all(
    archive: zipfile.ZipFile, destination: Path, progress
) -> list:
    """
    Extract every file entry of an archive into destination.

    Directory entries are created, entry names are validated against
    directory traversal before anything is written.

    Returns:
        List of extracted file paths
    """
    infos = archive.infolist()
    for info in infos:
        _validate_entry_name(info.filename, destination)

    extracted = []
    for info in infos:
        output_path = destination / info.filename
        if info.is_dir():
            output_path.mkdir(parents=True, exist_ok=True)
            continue

        output_path.parent.mkdir(parents=True, exist_ok=True)
        extracted.append(extract_zip_entry(archive, info, output_path, progress))

    return extracted


def add_executable_permissions(path: Path) -> None:
    """
    Add execute permission for owner, group and others.

    Raises:
        FilesystemError: With the OS error text if permissions can't be set
    """
    try:
        mode = os.stat(path).st_mode
        os.chmod(path, mode | EXECUTE_PERMISSIONS)
    except OSError as e:
        raise FilesystemError(
            f"Couldn't set permissions for {Path(path).name} ({e.strerror or e})"
        ) from e


# ============================================================================
# Scratch File
# ============================================================================


class ScratchFile:
    """
    Temporary file reused to stage every download of an installation run.

    The file is opened in binary write mode on creation. Close the stream
    before reading the file, reopen() it before the next download. The
    file is deleted when the context exits, whatever the outcome.

    Example:
        >>> with ScratchFile() as scratch:
        ...     scratch.stream.write(b"data")
        ...     scratch.close()
        ...     compute_sha256(scratch.path)
    """

    PREFIX = "apm-"

    def __init__(self):
        fd, path = tempfile.mkstemp(prefix=self.PREFIX)
        self.path = Path(path)
        self.stream: BinaryIO = os.fdopen(fd, "wb")
        logger.debug(f"Created scratch file: {self.path}")

    @property
    def closed(self) -> bool:
        return self.stream.closed

    def reopen(self) -> BinaryIO:
        """Truncate the file and open it for writing, if it's closed."""
        if self.stream.closed:
            self.stream = open(self.path, "wb")
        return self.stream

    def close(self) -> None:
        self.stream.close()

    def remove(self) -> None:
        self.stream.close()
        try:
            self.path.unlink()
            logger.debug(f"Removed scratch file: {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove scratch file {self.path}: {e}")

    def __enter__(self) -> "ScratchFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.remove()


__all__ = [
    "is_relative_to",
    "open_zip",
    "get_zip_entry",
    "extract_zip_entry",
    "extract_all",
    "add_executable_permissions",
    "ScratchFile",
]
