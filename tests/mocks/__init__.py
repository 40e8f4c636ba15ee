"""
Mock implementations for testing apm components.
"""

from .progress import RecordingProgress, ProgressRecorder

__all__ = [
    "RecordingProgress",
    "ProgressRecorder",
]
