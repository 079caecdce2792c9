"""Domain layer definitions."""

from .imports import ImportJob, ImportStatus, SourceDescriptor, progress_of

__all__ = [
    "ImportJob",
    "ImportStatus",
    "SourceDescriptor",
    "progress_of",
]
