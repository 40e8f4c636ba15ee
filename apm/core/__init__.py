"""
Core functionality for apm.

This package contains the foundational modules that other components depend on.
"""

from .directory import get_config_dir, get_data_dir
from .exceptions import (
    ApmError,
    ArchiveExtractionError,
    ChecksumMismatchError,
    ChecksumMissingError,
    ConfigError,
    DirectoryError,
    FilesystemError,
    InsecureArchiveError,
    IntegrityError,
    ManifestStructureError,
    SdkInstallError,
    TransportError,
)
from .platform import detect_architecture
from .verification import compute_sha256

__all__ = [
    "get_config_dir",
    "get_data_dir",
    "detect_architecture",
    "compute_sha256",
    "ApmError",
    "ArchiveExtractionError",
    "ChecksumMismatchError",
    "ChecksumMissingError",
    "ConfigError",
    "DirectoryError",
    "FilesystemError",
    "InsecureArchiveError",
    "IntegrityError",
    "ManifestStructureError",
    "SdkInstallError",
    "TransportError",
]
