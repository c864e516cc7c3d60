"""
Storage Layer.

This package handles all local data: the configuration file, reading bundle
manifests from disk, and the zip archives that collect downloaded assets.
"""

from .archive import BundleArchive
from .config_manager import ConfigManager
from .manifest_loader import load_manifest, parse_manifest

__all__ = ["BundleArchive", "ConfigManager", "load_manifest", "parse_manifest"]
