"""
Configuration management for apm.
"""

from .store import Config, FILE_NAME, SDK_KEY

__all__ = ["Config", "FILE_NAME", "SDK_KEY"]
