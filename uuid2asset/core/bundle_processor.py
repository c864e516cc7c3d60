"""
The main orchestrator: turns bundle manifests into download tasks, runs them
through the download engine and packs the results into one zip per bundle.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from rich.markup import escape

from uuid2asset.cli.progress_manager import ProgressManager
from uuid2asset.exceptions import (
    EmptyResultSetError,
    MalformedManifestError,
    Uuid2AssetError,
)
from uuid2asset.media import AssetFetcher
from uuid2asset.models.config import RunConfig
from uuid2asset.models.manifest import (
    GROUP_KINDS,
    DownloadResult,
    DownloadTask,
    Manifest,
    Outcome,
)
from uuid2asset.models.stats import BundleReport, BundleStatus, SessionStats
from uuid2asset.storage.archive import BundleArchive
from uuid2asset.storage.manifest_loader import load_manifest
from uuid2asset.utils.formatting import format_percentage

from .engine import DownloadEngine
from .resolver import resolve_group
from .retry import RetryPolicy

log = logging.getLogger(__name__)


def build_retry_policy(config: RunConfig) -> RetryPolicy:
    return RetryPolicy(
        delay=config.retry_delay,
        max_attempts=config.max_attempts,
        backoff_factor=config.backoff_factor,
        max_delay=config.max_retry_delay,
    )


def build_engine(config: RunConfig) -> DownloadEngine[DownloadTask, DownloadResult]:
    return DownloadEngine(
        concurrency_limit=config.concurrency_limit,
        sub_batch_size=config.sub_batch_size,
        task_timeout=config.task_timeout,
        retry_policy=build_retry_policy(config),
        is_success=lambda result: result.found,
    )


class BundleProcessor:
    """Orchestrates manifest → tasks → downloads → archive, one bundle at a time."""

    def __init__(
        self,
        config: RunConfig,
        fetcher: AssetFetcher | None = None,
        engine: DownloadEngine[DownloadTask, DownloadResult] | None = None,
        progress_manager: ProgressManager | None = None,
        stats: SessionStats | None = None,
    ):
        self.config = config
        self.fetcher = fetcher or AssetFetcher(max_connections=config.concurrency_limit)
        self.engine = engine or build_engine(config)
        self.progress_manager = progress_manager
        self.stats = stats or SessionStats()

    def output_path_for(self, manifest: Manifest) -> Path:
        return Path(self.config.output_dir) / f"{manifest.name}-bundle.zip"

    def _log_progress(self, processed: int, total: int, items_per_second: float):
        log.debug(
            f"Progress: {processed}/{total} ({format_percentage(processed, total)}) "
            f"[{items_per_second:.1f} items/s]"
        )

    async def _download_group(
        self,
        manifest: Manifest,
        kind: str,
        server_url: str,
        extensions: Sequence[str],
        archive: BundleArchive,
        report: BundleReport,
    ) -> None:
        tasks = resolve_group(manifest, kind, server_url, extensions)
        if not tasks:
            return

        log.info(f"Processing [cyan]{kind}[/cyan] base")
        log.info(f"Created {len(tasks)} download tasks for {kind} base")
        report.tasks_total += len(tasks)

        on_progress = self._log_progress
        if self.progress_manager:
            self.progress_manager.start_batch(
                f"{escape(manifest.name)}/{kind}", total=len(tasks)
            )
            on_progress = self.progress_manager.update_batch

        give_up = None if self.engine.retry_policy.is_unbounded else self.fetcher.give_up
        try:
            results = await self.engine.run(
                tasks, self.fetcher.fetch, on_progress=on_progress, on_give_up=give_up
            )
        finally:
            if self.progress_manager:
                self.progress_manager.finish_batch()
        self.stats.retries += self.engine.retries

        for result in results:
            if result.outcome is Outcome.FOUND:
                archive.add(result.archive_path, result.payload)
                report.found += 1
            elif result.outcome is Outcome.NOT_FOUND:
                report.not_found += 1
            else:
                report.failed += 1

    async def download_bundle(
        self,
        manifest: Manifest,
        server_url: str,
        extensions: Sequence[str] | None = None,
        report: BundleReport | None = None,
    ) -> BundleReport:
        """
        Downloads every asset of a manifest and writes the bundle archive.

        Raises:
            EmptyResultSetError: If no asset was found. No archive is written.
            MalformedManifestError: If the version table cannot be resolved.
        """
        extensions = extensions or self.config.extensions
        report = report or BundleReport(name=manifest.name)

        log.info(f"\n[bold]Bundle:[/bold] {escape(manifest.name)}")
        log.info(f"  Total UUIDs: {len(manifest.identifier_table)}")

        archive = BundleArchive(manifest.name)
        for kind in GROUP_KINDS:
            await self._download_group(
                manifest, kind, server_url, extensions, archive, report
            )

        if archive.found_count == 0:
            raise EmptyResultSetError(
                f"No files were found for bundle '{manifest.name}'. The bundle "
                "config probably uses a new way to define file names."
            )

        log.info("Operation completed, creating bundle...")
        report.bytes_downloaded = archive.total_size
        report.archive_path = await archive.flush(self.output_path_for(manifest))
        report.status = BundleStatus.WRITTEN
        log.info(
            f"[green]✓ Bundle created:[/green] {escape(str(report.archive_path))} "
            f"({report.found} files)"
        )
        return report

    async def process_manifest(
        self,
        manifest: Manifest,
        server_url: str,
        extensions: Sequence[str] | None = None,
    ) -> BundleReport:
        """
        Processes one manifest, converting bundle-level failures into a report
        so a batch can continue with the next manifest.
        """
        report = BundleReport(name=manifest.name)
        try:
            await self.download_bundle(manifest, server_url, extensions, report)
        except EmptyResultSetError as e:
            report.status = BundleStatus.EMPTY
            report.error = str(e)
            log.warning(f"[yellow]⚠ {escape(str(e))}[/yellow]")
        except MalformedManifestError as e:
            report.status = BundleStatus.MALFORMED
            report.error = str(e)
            log.error(f"[red]✗ {escape(str(e))}[/red]")
        except OSError as e:
            report.status = BundleStatus.ERROR
            report.error = f"Could not write archive: {e}"
            log.error(f"[red]✗ Could not write bundle archive: {e}[/red]")
        self.stats.add_report(report)
        return report

    async def process_manifest_file(
        self, path: Path, server_url: str, extensions: Sequence[str] | None = None
    ) -> BundleReport:
        """Loads a manifest file and processes it."""
        try:
            manifest = load_manifest(path)
        except MalformedManifestError as e:
            report = BundleReport(
                name=path.stem, status=BundleStatus.MALFORMED, error=str(e)
            )
            log.error(f"[red]✗ {escape(str(e))}[/red]")
            self.stats.add_report(report)
            return report
        return await self.process_manifest(manifest, server_url, extensions)

    async def process_all(
        self,
        sources: Sequence[Path | Manifest],
        server_url: str,
        extensions: Sequence[str] | None = None,
    ) -> list[BundleReport]:
        """
        Processes a batch of manifests best-effort: a failing bundle is reported
        and the run continues with the next one.
        """
        reports = []
        for source in sources:
            try:
                if isinstance(source, Manifest):
                    report = await self.process_manifest(source, server_url, extensions)
                else:
                    report = await self.process_manifest_file(
                        Path(source), server_url, extensions
                    )
            except Uuid2AssetError as e:
                name = source.name if isinstance(source, Manifest) else str(source)
                report = BundleReport(name=name, status=BundleStatus.ERROR, error=str(e))
                log.error(f"[red]✗ Error processing bundle {escape(name)}: {e}[/red]")
                self.stats.add_report(report)
            reports.append(report)
        return reports
