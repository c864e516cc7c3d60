"""
Loads bundle manifests from local JSON files.
"""

import json
import logging
from pathlib import Path

from uuid2asset.exceptions import MalformedManifestError
from uuid2asset.models.manifest import Manifest

log = logging.getLogger(__name__)


def parse_manifest(raw: str | bytes, source: str = "<memory>") -> Manifest:
    """
    Parses manifest JSON text.

    Raises:
        MalformedManifestError: If the text is not JSON or not a valid manifest.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedManifestError(f"'{source}' is not valid JSON: {e}") from e
    return Manifest.from_json_dict(data)


def load_manifest(path: Path) -> Manifest:
    """Reads and validates a manifest file."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MalformedManifestError(f"Could not read manifest '{path}': {e}") from e

    manifest = parse_manifest(raw, source=str(path))
    log.debug(f"Loaded manifest '{manifest.name}' from {path}")
    return manifest
