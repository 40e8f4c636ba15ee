"""
SDK installation and layout.
"""

from .installer import SdkInstaller
from .layout import File, Jar, SdkLayout, Tool
from .manifest import available_versions, download_manifest, select_version

__all__ = [
    "SdkInstaller",
    "SdkLayout",
    "Tool",
    "Jar",
    "File",
    "available_versions",
    "download_manifest",
    "select_version",
]
