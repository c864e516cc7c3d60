"""
Expands a bundle manifest's version table into concrete download tasks.
"""

import logging
from collections.abc import Sequence

from uuid2asset.exceptions import InvalidIdentifierError, MalformedManifestError
from uuid2asset.models.manifest import (
    GROUP_KINDS,
    DownloadTask,
    IndexedEntry,
    Manifest,
    VersionEntry,
)

from .decoder import decode_uuid

log = logging.getLogger(__name__)


def _stem_for(manifest: Manifest, entry: VersionEntry) -> str:
    """Returns the file stem of an entry, decoding table references."""
    if isinstance(entry, IndexedEntry):
        try:
            compact = manifest.identifier_table[entry.table_index]
        except IndexError:
            raise MalformedManifestError(
                f"Version entry refers to uuid #{entry.table_index}, but bundle "
                f"'{manifest.name}' only has {len(manifest.identifier_table)}."
            ) from None
        try:
            return decode_uuid(compact)
        except InvalidIdentifierError as e:
            raise MalformedManifestError(str(e)) from e
    return entry.literal_name


def resolve_group(
    manifest: Manifest,
    group_kind: str,
    server_url: str,
    extensions: Sequence[str],
) -> list[DownloadTask]:
    """
    Builds the download tasks of one group, in version-list then extension order.
    Returns an empty list if the group has no base name or no versions.
    """
    base = manifest.base_for(group_kind)
    if not base:
        log.info(f"{group_kind} base not found in bundle data")
        return []
    entries = manifest.entries_for(group_kind)
    if not entries:
        log.info(f"No versions found for {group_kind} base")
        return []

    server = server_url.rstrip("/")
    tasks = []
    for entry in entries:
        stem = _stem_for(manifest, entry)
        prefix = stem[:2]
        relative = f"{manifest.name}/{base}/{prefix}/{stem}.{entry.hash_suffix}"
        for ext in extensions:
            archive_path = f"{relative}{ext}"
            tasks.append(
                DownloadTask(
                    remote_url=f"{server}/assets/{archive_path}",
                    archive_path=archive_path,
                    group_kind=group_kind,
                    hash_suffix=entry.hash_suffix,
                )
            )
    return tasks


def resolve_tasks(
    manifest: Manifest, server_url: str, extensions: Sequence[str]
) -> list[DownloadTask]:
    """Builds the tasks of all groups of a manifest (`import` first, then `native`)."""
    tasks = []
    for kind in GROUP_KINDS:
        tasks.extend(resolve_group(manifest, kind, server_url, extensions))
    return tasks
