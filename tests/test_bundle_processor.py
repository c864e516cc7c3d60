"""Tests for the bundle orchestration: manifest to archive."""

import json
import zipfile
from unittest.mock import MagicMock

import pytest

from uuid2asset.core.bundle_processor import BundleProcessor
from uuid2asset.exceptions import EmptyResultSetError, TransientNetworkError
from uuid2asset.models.config import RunConfig
from uuid2asset.models.manifest import Manifest
from uuid2asset.models.stats import BundleStatus, SessionStats

from .conftest import ZERO_UUID, FakeFetcher

SERVER = "https://example.com/game"


@pytest.fixture
def config(tmp_path):
    return RunConfig(
        server_url=SERVER,
        extensions=[".png", ".json"],
        concurrency_limit=4,
        sub_batch_size=2,
        output_dir=str(tmp_path),
    )


def _url(path):
    return f"{SERVER}/assets/{path}"


class TestDownloadBundle:
    @pytest.mark.asyncio
    async def test_writes_zip_with_found_files(self, config, manifest, tmp_path):
        found_path = f"main/import/00/{ZERO_UUID}.h0.png"
        fetcher = FakeFetcher(
            {
                _url(found_path): b"image",
                _url("main/native/cu/custom/file.n9.json"): b"{}",
            }
        )
        processor = BundleProcessor(config, fetcher)

        report = await processor.download_bundle(manifest, SERVER)

        assert report.status is BundleStatus.WRITTEN
        assert report.found == 2
        assert report.not_found == 6
        assert report.tasks_total == 8
        assert report.archive_path == tmp_path / "main-bundle.zip"
        with zipfile.ZipFile(report.archive_path) as zf:
            assert sorted(zf.namelist()) == [
                found_path,
                "main/native/cu/custom/file.n9.json",
            ]
            assert zf.read(found_path) == b"image"
        assert len(fetcher.calls) == 8

    @pytest.mark.asyncio
    async def test_nothing_found_writes_no_archive(self, config, manifest, tmp_path):
        processor = BundleProcessor(config, FakeFetcher())
        with pytest.raises(EmptyResultSetError, match="new way to define file names"):
            await processor.download_bundle(manifest, SERVER)
        assert not (tmp_path / "main-bundle.zip").exists()

    @pytest.mark.asyncio
    async def test_progress_manager_receives_batches(self, config, manifest):
        progress = MagicMock()
        fetcher = FakeFetcher({_url("main/native/cu/custom/file.n9.png"): b"x"})
        processor = BundleProcessor(config, fetcher, progress_manager=progress)

        await processor.download_bundle(manifest, SERVER)

        assert progress.start_batch.call_count == 2
        assert progress.finish_batch.call_count == 2
        # 4 tasks per group in sub-batches of 2
        assert progress.update_batch.call_count == 4


class TestProcessAll:
    @pytest.mark.asyncio
    async def test_batch_continues_after_failures(self, config, manifest_data, tmp_path):
        good = tmp_path / "config.good.json"
        good.write_text(json.dumps(manifest_data), encoding="utf-8")
        broken = tmp_path / "config.broken.json"
        broken.write_text("{", encoding="utf-8")
        empty_data = dict(manifest_data, name="empty")
        empty = tmp_path / "config.empty.json"
        empty.write_text(json.dumps(empty_data), encoding="utf-8")

        fetcher = FakeFetcher({_url("main/native/cu/custom/file.n9.png"): b"x"})
        stats = SessionStats()
        processor = BundleProcessor(config, fetcher, stats=stats)

        reports = await processor.process_all([broken, empty, good], SERVER)

        assert [r.status for r in reports] == [
            BundleStatus.MALFORMED,
            BundleStatus.EMPTY,
            BundleStatus.WRITTEN,
        ]
        assert stats.count(BundleStatus.WRITTEN) == 1
        assert stats.files_found == 1
        assert (tmp_path / "main-bundle.zip").exists()
        assert not (tmp_path / "empty-bundle.zip").exists()

    @pytest.mark.asyncio
    async def test_unresolvable_manifest_is_reported(self, config, manifest_data):
        manifest_data["versions"]["import"] = [9, "h9"]
        manifest = Manifest.from_json_dict(manifest_data)
        processor = BundleProcessor(config, FakeFetcher())

        report = await processor.process_manifest(manifest, SERVER)

        assert report.status is BundleStatus.MALFORMED
        assert "#9" in report.error

    @pytest.mark.asyncio
    async def test_bounded_retries_record_failures(self, config, manifest):
        class FlakyFetcher(FakeFetcher):
            async def fetch_url(self, url):
                self.calls.append(url)
                if url.endswith(".json"):
                    raise TransientNetworkError(url, 503)
                return b"png"

        bounded = config.model_copy(update={"max_attempts": 2, "retry_delay": 0.0})
        processor = BundleProcessor(bounded, FlakyFetcher())

        report = await processor.process_manifest(manifest, SERVER)

        assert report.status is BundleStatus.WRITTEN
        assert report.found == 4
        assert report.failed == 4
        assert processor.stats.retries == 4

    @pytest.mark.asyncio
    async def test_connection_errors_do_not_abort_the_bundle(self, config, manifest):
        class ResettingFetcher(FakeFetcher):
            async def fetch_url(self, url):
                self.calls.append(url)
                if self.calls.count(url) == 1:
                    raise ConnectionResetError("Connection reset by peer")
                return b"data" if url.endswith(".png") else None

        no_delay = config.model_copy(update={"retry_delay": 0.0})
        processor = BundleProcessor(no_delay, ResettingFetcher())

        report = await processor.process_manifest(manifest, SERVER)

        assert report.status is BundleStatus.WRITTEN
        assert report.found == 4
        assert report.not_found == 4
        assert processor.stats.retries == 8
