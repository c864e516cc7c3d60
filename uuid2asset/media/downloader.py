"""
Handles the low-level fetching of remote assets over HTTP using a shared
connection pool.
"""

import asyncio
import logging

import aiohttp

from uuid2asset.exceptions import TransientNetworkError
from uuid2asset.models.manifest import DownloadResult, DownloadTask, Outcome

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(max_connections: int = 400) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.

    Args:
        max_connections: Maximum concurrent connections (should match the
            engine's concurrency limit).
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections,
            limit_per_host=max_connections,
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
            force_close=False,
        )
        # The engine enforces the per-task timeout itself
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers={
                "Accept-Encoding": "gzip, deflate, br",
            },
        )
        log.debug(f"Created download pool with limit={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class AssetFetcher:
    """
    Performs a single GET attempt per call and classifies the response.
    Retrying and timeouts are left to the DownloadEngine.
    """

    def __init__(
        self,
        max_connections: int = 400,
        session: aiohttp.ClientSession | None = None,
    ):
        self.max_connections = max_connections
        self._session = session
        self.bytes_downloaded = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None:
            return self._session
        return await get_connection_pool(self.max_connections)

    async def fetch_url(self, url: str) -> bytes | None:
        """
        Fetches a URL once.

        Returns:
            The response body, or None if the server answered 404.

        Raises:
            TransientNetworkError: For any other non-2xx status.
            aiohttp.ClientError: For transport-level failures.
        """
        session = await self._get_session()
        async with session.get(url, allow_redirects=True) as response:
            if response.status == 404:
                return None
            if not 200 <= response.status < 300:
                raise TransientNetworkError(url, response.status)
            data = await response.read()

        self.bytes_downloaded += len(data)
        return data

    async def fetch(self, task: DownloadTask) -> DownloadResult:
        """Fetches the asset behind a task. Matches the engine's `fetch_one` contract."""
        data = await self.fetch_url(task.remote_url)
        if data is None:
            return DownloadResult(task.archive_path, None, Outcome.NOT_FOUND)
        return DownloadResult(task.archive_path, data, Outcome.FOUND)

    @staticmethod
    def give_up(task: DownloadTask, error: Exception) -> DownloadResult:
        """Result recorded when a bounded retry policy runs out of attempts."""
        return DownloadResult(task.archive_path, None, Outcome.FAILED)
