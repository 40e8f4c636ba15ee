"""
Centralized exception hierarchy for apm.

This module defines all custom exceptions used across the codebase
to provide clear exception semantics.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class ApmError(Exception):
    """Base exception for all apm errors."""

    pass


# ============================================================================
# Environment Exceptions
# ============================================================================


class DirectoryError(ApmError):
    """Raised when a data or configuration directory can't be determined."""

    pass


class ConfigError(ApmError):
    """Raised when the configuration file can't be loaded."""

    pass


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(ApmError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to open an archive or extract one of its entries."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# SDK Installation Exceptions
# ============================================================================


class SdkInstallError(ApmError):
    """Base exception for SDK installation errors."""

    pass


class TransportError(SdkInstallError):
    """Non-success HTTP status or network failure."""

    pass


class ManifestStructureError(SdkInstallError):
    """Required manifest node or attribute is absent."""

    pass


class IntegrityError(SdkInstallError):
    """Base exception for checksum related errors."""

    pass


class ChecksumMissingError(IntegrityError):
    """Manifest doesn't publish a checksum for an artifact."""

    pass


class ChecksumMismatchError(IntegrityError):
    """Downloaded bytes don't match the published checksum."""

    pass
