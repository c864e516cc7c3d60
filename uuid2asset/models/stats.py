"""
Dataclasses for tracking per-bundle and per-session download statistics.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class BundleStatus(Enum):
    """Final state of one processed bundle manifest."""

    WRITTEN = "written"
    EMPTY = "empty"  # Nothing found, no archive written
    MALFORMED = "malformed"
    ERROR = "error"


@dataclass
class BundleReport:
    """Summary of a single bundle run."""

    name: str
    status: BundleStatus = BundleStatus.ERROR
    tasks_total: int = 0
    found: int = 0
    not_found: int = 0
    failed: int = 0
    bytes_downloaded: int = 0
    archive_path: Path | None = None
    error: str | None = None


@dataclass
class SessionStats:
    """Tracks statistics for a whole run across all bundles."""

    bundles: list[BundleReport] = field(default_factory=list)
    external_files: int = 0
    retries: int = 0
    _start_time: float = field(default_factory=time.monotonic, repr=False)

    def add_report(self, report: BundleReport) -> None:
        self.bundles.append(report)

    def count(self, status: BundleStatus) -> int:
        return sum(1 for report in self.bundles if report.status is status)

    @property
    def files_found(self) -> int:
        return sum(report.found for report in self.bundles)

    @property
    def tasks_total(self) -> int:
        return sum(report.tasks_total for report in self.bundles)

    @property
    def bytes_downloaded(self) -> int:
        return sum(report.bytes_downloaded for report in self.bundles)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._start_time
