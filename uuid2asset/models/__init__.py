"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application: configuration, bundle
manifests, download tasks/results and session statistics.
"""

from .config import DEFAULT_FILE_EXTENSIONS, RunConfig
from .manifest import (
    GROUP_KINDS,
    DownloadResult,
    DownloadTask,
    IndexedEntry,
    Manifest,
    NamedEntry,
    Outcome,
    VersionEntry,
)
from .stats import BundleReport, BundleStatus, SessionStats

__all__ = [
    "DEFAULT_FILE_EXTENSIONS",
    "GROUP_KINDS",
    "BundleReport",
    "BundleStatus",
    "DownloadResult",
    "DownloadTask",
    "IndexedEntry",
    "Manifest",
    "NamedEntry",
    "Outcome",
    "RunConfig",
    "SessionStats",
    "VersionEntry",
]
