"""
pytest configuration and shared fixtures for the uuid2asset tests.
"""

import pytest

from uuid2asset.models.manifest import DownloadResult, DownloadTask, Manifest, Outcome

ZERO_COMPACT = "00AAAAAAAAAAAAAAAAAAAA"
ZERO_UUID = "00000000-0000-0000-0000-000000000000"
FULL_COMPACT = "ab" + "//" * 10
FULL_UUID = "abffffff-ffff-ffff-ffff-ffffffffffff"


@pytest.fixture
def manifest_data():
    """A raw bundle config with both groups populated."""
    return {
        "name": "main",
        "importBase": "import",
        "nativeBase": "native",
        "uuids": [ZERO_COMPACT, FULL_COMPACT, "1a2b3c4d5"],
        "versions": {
            "import": [0, "h0", 2, "h2"],
            "native": [1, "n1", "custom/file", "n9"],
        },
    }


@pytest.fixture
def manifest(manifest_data):
    return Manifest.from_json_dict(manifest_data)


class FakeFetcher:
    """Serves payloads from a dict keyed by URL; everything else is a 404."""

    def __init__(self, payloads=None):
        self.payloads = payloads or {}
        self.calls = []

    async def fetch_url(self, url):
        self.calls.append(url)
        return self.payloads.get(url)

    async def fetch(self, task: DownloadTask) -> DownloadResult:
        data = await self.fetch_url(task.remote_url)
        if data is None:
            return DownloadResult(task.archive_path, None, Outcome.NOT_FOUND)
        return DownloadResult(task.archive_path, data, Outcome.FOUND)

    @staticmethod
    def give_up(task, error):
        return DownloadResult(task.archive_path, None, Outcome.FAILED)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()
