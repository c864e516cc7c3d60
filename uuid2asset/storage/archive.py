"""
Collects downloaded assets in memory and writes them out as a single zip archive.
"""

import asyncio
import io
import logging
import zipfile
from pathlib import Path

import aiofiles

log = logging.getLogger(__name__)


class BundleArchive:
    """
    A path-keyed, in-memory archive of downloaded files.

    Entries are only added from completed results on the event loop thread, so
    no locking is needed; the archive must not be shared across threads.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: dict[str, bytes] = {}

    def add(self, path: str, payload: bytes) -> None:
        """Adds or replaces an entry. The last write for a path wins."""
        if path in self._entries:
            log.debug(f"Overwriting duplicate archive entry '{path}'.")
        self._entries[path] = payload

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    @property
    def found_count(self) -> int:
        return len(self._entries)

    @property
    def total_size(self) -> int:
        return sum(len(payload) for payload in self._entries.values())

    def paths(self) -> list[str]:
        return list(self._entries)

    def _build_zip_sync(self) -> bytes:
        """Synchronous implementation for compressing all entries into zip bytes."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path, payload in self._entries.items():
                zf.writestr(path, payload)
        return buffer.getvalue()

    async def flush(self, output_path: Path) -> Path:
        """
        Writes all entries to a zip file at `output_path`.

        Compression runs in a worker thread so the event loop stays responsive.
        """
        zip_bytes = await asyncio.to_thread(self._build_zip_sync)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(output_path, "wb") as f:
            await f.write(zip_bytes)
        log.debug(
            f"Wrote {len(self._entries)} entries ({len(zip_bytes)} bytes) "
            f"to '{output_path}'."
        )
        return output_path
