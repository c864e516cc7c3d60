"""
Web Scraping Layer.

This package contains modules for discovering bundle manifests from a game's
HTML entry point, including a restricted parser for embedded settings objects.
"""

from .settings_parser import extract_settings, parse_object_literal
from .site_scraper import EXTERNAL_ARCHIVE_NAME, DiscoveryResult, SiteScraper

__all__ = [
    "EXTERNAL_ARCHIVE_NAME",
    "DiscoveryResult",
    "SiteScraper",
    "extract_settings",
    "parse_object_literal",
]
