"""
Manages a Rich progress display for the batched download engine.
Shows one bar per running group with processed/total counts and throughput.
"""

import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from uuid2asset.utils.formatting import format_percentage

log = logging.getLogger("uuid2asset")


class ProgressManager:
    """
    Wraps a Rich Progress instance. The engine reports after every sub-batch,
    so updates arrive in coarse steps (default 50 items).
    """

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TextColumn("[magenta]{task.fields[rate]:.1f} items/s"),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._task_id: TaskID | None = None
        self._started = False
        self._stats = {
            "batches": 0,
            "processed": 0,
            "peak_rate": 0.0,
        }

    def start_batch(self, description: str, total: int) -> None:
        """Adds a progress bar for a new run of the download engine."""
        self._stats["batches"] += 1
        if self.quiet:
            return
        self._task_id = self.progress.add_task(description, total=total, rate=0.0)

    def update_batch(self, processed: int, total: int, items_per_second: float) -> None:
        """Progress callback for DownloadEngine.run."""
        self._stats["peak_rate"] = max(self._stats["peak_rate"], items_per_second)
        if self.quiet or self._task_id is None:
            log.debug(
                f"Progress: {processed}/{total} ({format_percentage(processed, total)})"
            )
            return
        self.progress.update(
            self._task_id, completed=processed, total=total, rate=items_per_second
        )

    def finish_batch(self) -> None:
        if self._task_id is not None:
            for task in self.progress.tasks:
                if task.id == self._task_id:
                    self._stats["processed"] += int(task.completed)
            self.progress.stop_task(self._task_id)
        self._task_id = None

    def get_statistics(self) -> dict:
        return self._stats.copy()

    async def __aenter__(self):
        if not self.quiet:
            self.progress.start()
            self._started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._started:
            self.progress.stop()
            self._started = False
