"""Tests for discovering bundles from an HTML entry point."""

import json

import pytest

from uuid2asset.core.engine import DownloadEngine
from uuid2asset.core.retry import RetryPolicy
from uuid2asset.exceptions import DiscoveryError
from uuid2asset.web.site_scraper import SiteScraper, base_url_of

from .conftest import FakeFetcher

BASE = "https://example.com/game/"
INDEX_URL = BASE + "index.html"

INDEX_HTML = b"""<!DOCTYPE html>
<html>
<head>
  <link rel="stylesheet" href="style.css">
  <link rel="icon" href="favicon.ico">
</head>
<body>
  <script src="src/settings.js"></script>
  <script src="main.js"></script>
  <script>
    window._CCSettings = {bundleVers: {main: 'abc'}, jsList: ['assets/lib.js']};
  </script>
</body>
</html>
"""

SETTINGS_JS = b"window._CCSettings = {platform: 'web', bundleVers: {resources: 'def'}};"


def _manifest_bytes(name):
    return json.dumps(
        {
            "name": name,
            "importBase": "import",
            "uuids": [],
            "versions": {"import": ["file", "h1"]},
        }
    ).encode()


@pytest.fixture
def scraper_factory():
    def make(payloads):
        fetcher = FakeFetcher(payloads)
        engine = DownloadEngine(
            concurrency_limit=4, sub_batch_size=2, retry_policy=RetryPolicy(delay=0)
        )
        return SiteScraper(fetcher, engine), fetcher

    return make


class TestSiteScraper:
    def test_base_url_of(self):
        assert base_url_of(INDEX_URL) == BASE

    @pytest.mark.asyncio
    async def test_discovers_bundles_and_static_files(self, scraper_factory):
        scraper, fetcher = scraper_factory(
            {
                INDEX_URL: INDEX_HTML,
                BASE + "style.css": b"body {}",
                BASE + "src/settings.js": SETTINGS_JS,
                BASE + "src/assets/lib.js": b"var lib;",
                BASE + "assets/main/config.abc.json": _manifest_bytes("main"),
                BASE + "assets/resources/config.def.json": _manifest_bytes(
                    "resources"
                ),
            }
        )

        result = await scraper.discover(INDEX_URL)

        assert result.base_url == BASE
        assert [bundle.name for bundle in result.bundles] == ["main", "resources"]
        assert [m.name for m in result.manifests] == ["main", "resources"]
        assert sorted(result.external_archive.paths()) == [
            "assets/main/config.abc.json",
            "assets/resources/config.def.json",
            "index.html",
            "src/assets/lib.js",
            "src/settings.js",
            "style.css",
        ]
        assert BASE + "main.js" in fetcher.calls
        assert BASE + "favicon.ico" in fetcher.calls

    @pytest.mark.asyncio
    async def test_files_are_fetched_once(self, scraper_factory):
        html = INDEX_HTML.replace(b"main.js", b"src/settings.js")
        scraper, fetcher = scraper_factory(
            {INDEX_URL: html, BASE + "src/settings.js": b"var x;"}
        )
        await scraper.discover(INDEX_URL)
        assert fetcher.calls.count(BASE + "src/settings.js") == 1

    @pytest.mark.asyncio
    async def test_malformed_bundle_config_is_skipped(self, scraper_factory):
        scraper, _ = scraper_factory(
            {INDEX_URL: INDEX_HTML, BASE + "assets/main/config.abc.json": b"[]"}
        )
        result = await scraper.discover(INDEX_URL)
        assert result.bundles == []
        assert "assets/main/config.abc.json" in result.external_archive

    @pytest.mark.asyncio
    async def test_missing_entry_page(self, scraper_factory):
        scraper, _ = scraper_factory({})
        with pytest.raises(DiscoveryError):
            await scraper.discover(INDEX_URL)
