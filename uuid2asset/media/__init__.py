"""
Network Layer.

This package is responsible for fetching remote assets over HTTP through a
shared connection pool.
"""

from .downloader import AssetFetcher, close_connection_pool, get_connection_pool

__all__ = ["AssetFetcher", "close_connection_pool", "get_connection_pool"]
