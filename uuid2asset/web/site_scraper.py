"""
Discovers bundle manifests from a game's HTML entry point.

The page's stylesheets, icons and scripts are collected, inline and external
scripts are scanned for the engine settings object, and every bundle listed in
its `bundleVers` map has its `config.<hash>.json` manifest fetched.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from uuid2asset.core.engine import DownloadEngine
from uuid2asset.exceptions import DiscoveryError, MalformedManifestError
from uuid2asset.media import AssetFetcher
from uuid2asset.models.manifest import DownloadResult, DownloadTask, Manifest
from uuid2asset.storage.archive import BundleArchive
from uuid2asset.storage.manifest_loader import parse_manifest

from .settings_parser import extract_settings

log = logging.getLogger(__name__)

# Pre-compiled regex for performance
_ENGINE_SCRIPT_REGEX = re.compile(r"['\"]cocos2d-js(?:-min)?\.([a-zA-Z0-9]+)\.js['\"]")
_LOAD_SCRIPT_REGEX = re.compile(r"loadScript\([^)]+\)")
_QUOTED_REGEX = re.compile(r"['\"]([^'\"]+)['\"]")
_STATIC_SELECTOR = 'link[rel~="stylesheet"], link[rel~="icon"], script[src]'

EXTERNAL_ARCHIVE_NAME = "external-files.zip"


@dataclass
class QueuedFile:
    url: str
    path: str


@dataclass
class DiscoveredBundle:
    name: str
    hash: str
    manifest: Manifest


@dataclass
class DiscoveryResult:
    """Everything found behind an HTML entry point."""

    base_url: str
    files: list[QueuedFile] = field(default_factory=list)
    bundles: list[DiscoveredBundle] = field(default_factory=list)
    external_archive: BundleArchive = field(
        default_factory=lambda: BundleArchive("external-files")
    )

    @property
    def manifests(self) -> list[Manifest]:
        return [bundle.manifest for bundle in self.bundles]


def base_url_of(html_url: str) -> str:
    """Returns the directory of the page, with a trailing slash."""
    return html_url[: html_url.rfind("/") + 1]


class SiteScraper:
    """
    Crawls an HTML entry point for static files and bundle manifests.
    Every request goes through the download engine, so it is retried like
    any asset download.
    """

    def __init__(
        self,
        fetcher: AssetFetcher,
        engine: DownloadEngine[DownloadTask, DownloadResult],
    ):
        self.fetcher = fetcher
        self.engine = engine

    async def _download(self, url: str, path: str) -> bytes | None:
        """Fetches a single file with the engine's timeout and retry handling."""
        task = DownloadTask(remote_url=url, archive_path=path, group_kind="external")
        give_up = None if self.engine.retry_policy.is_unbounded else self.fetcher.give_up
        results = await self.engine.run(
            [task], self.fetcher.fetch, on_give_up=give_up
        )
        return results[0].payload

    def _queue_file(self, result: DiscoveryResult, path: str) -> None:
        """Adds a referenced file to the download queue unless already queued."""
        normalized = f"src/{path}" if path.startswith("assets/") else path
        if normalized.startswith("http"):
            full_url = normalized
            archive_path = urlparse(normalized).path.lstrip("/") or normalized
        else:
            full_url = urljoin(result.base_url, normalized)
            archive_path = normalized.lstrip("/")

        if not any(queued.path == archive_path for queued in result.files):
            result.files.append(QueuedFile(url=full_url, path=archive_path))

    def _queue_js_list(self, result: DiscoveryResult, settings: dict | None) -> None:
        if not settings:
            return
        js_list = settings.get("jsList")
        if isinstance(js_list, list):
            for path in js_list:
                if isinstance(path, str) and path:
                    self._queue_file(result, path)

    def _scan_html(self, result: DiscoveryResult, html: str) -> list[dict[str, Any]]:
        """Queues static references and returns settings found in inline scripts."""
        soup = BeautifulSoup(html, "html.parser")
        inline_settings = []

        for element in soup.select(_STATIC_SELECTOR):
            url = element.get("href") or element.get("src")
            if url:
                self._queue_file(result, url)

        for script in soup.find_all("script"):
            if script.get("src"):
                continue
            content = script.string or script.get_text() or ""

            if "_CCSettings" in content:
                settings = extract_settings(content)
                self._queue_js_list(result, settings)
                if settings:
                    inline_settings.append(settings)

            engine_match = _ENGINE_SCRIPT_REGEX.search(content)
            if engine_match:
                self._queue_file(result, engine_match.group(0).strip("'\""))

            for call in _LOAD_SCRIPT_REGEX.findall(content):
                file_match = _QUOTED_REGEX.search(call)
                if file_match:
                    self._queue_file(result, file_match.group(1))

        return inline_settings

    async def _process_bundle_config(
        self, result: DiscoveryResult, bundle_name: str, bundle_hash: str
    ) -> Manifest | None:
        """Fetches one bundle's manifest and main script."""
        config_path = f"assets/{bundle_name}/config.{bundle_hash}.json"
        main_js_path = f"assets/{bundle_name}/index.{bundle_hash}.js"

        config_data = await self._download(result.base_url + config_path, config_path)
        if not config_data:
            log.warning(f"[yellow]Bundle config not found: {config_path}[/yellow]")
            return None
        result.external_archive.add(config_path, config_data)

        main_js_data = await self._download(
            result.base_url + main_js_path, main_js_path
        )
        if main_js_data:
            result.external_archive.add(main_js_path, main_js_data)
            self._queue_js_list(
                result, extract_settings(main_js_data.decode("utf-8", "replace"))
            )

        try:
            return parse_manifest(config_data, source=config_path)
        except MalformedManifestError as e:
            log.error(f"[red]✗ Skipping bundle '{bundle_name}': {e}[/red]")
            return None

    async def _process_bundle_versions(
        self, result: DiscoveryResult, settings: dict[str, Any]
    ) -> None:
        bundle_vers = settings.get("bundleVers")
        if not isinstance(bundle_vers, dict):
            return
        for bundle_name, bundle_hash in bundle_vers.items():
            if any(bundle.name == bundle_name for bundle in result.bundles):
                continue
            manifest = await self._process_bundle_config(
                result, bundle_name, str(bundle_hash)
            )
            if manifest:
                result.bundles.append(
                    DiscoveredBundle(bundle_name, str(bundle_hash), manifest)
                )
                log.info(f"Found bundle [cyan]{bundle_name}[/cyan] ({bundle_hash})")

    async def discover(self, html_url: str) -> DiscoveryResult:
        """
        Crawls the entry page and everything it references.

        Raises:
            DiscoveryError: If the entry page itself cannot be downloaded.
        """
        result = DiscoveryResult(base_url=base_url_of(html_url))
        result.files.append(QueuedFile(url=html_url, path="index.html"))

        html_data = await self._download(html_url, "index.html")
        if html_data is None:
            raise DiscoveryError(f"Entry page not found: {html_url}")
        result.external_archive.add("index.html", html_data)

        for settings in self._scan_html(result, html_data.decode("utf-8", "replace")):
            await self._process_bundle_versions(result, settings)

        # The queue grows while scripts are scanned
        index = 1
        while index < len(result.files):
            queued = result.files[index]
            index += 1

            data = await self._download(queued.url, queued.path)
            if not data:
                log.debug(f"Skipping missing file {queued.url}")
                continue
            result.external_archive.add(queued.path, data)

            if queued.path.endswith(".js"):
                settings = extract_settings(data.decode("utf-8", "replace"))
                self._queue_js_list(result, settings)
                if settings:
                    await self._process_bundle_versions(result, settings)

        log.info(
            f"Discovered {len(result.external_archive)} external files and "
            f"{len(result.bundles)} bundles."
        )
        return result
