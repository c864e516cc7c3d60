"""Tests for the in-memory bundle archive."""

import zipfile

import pytest

from uuid2asset.storage.archive import BundleArchive


class TestBundleArchive:
    def test_add_and_count(self):
        archive = BundleArchive("main")
        archive.add("a/b.png", b"12")
        archive.add("a/c.json", b"{}")
        assert len(archive) == 2
        assert archive.found_count == 2
        assert "a/b.png" in archive
        assert archive.total_size == 4

    def test_last_write_wins(self):
        archive = BundleArchive("main")
        archive.add("a.png", b"old")
        archive.add("a.png", b"new")
        assert archive.paths() == ["a.png"]

    @pytest.mark.asyncio
    async def test_flush_writes_zip(self, tmp_path):
        archive = BundleArchive("main")
        archive.add("main/import/00/x.h.png", b"png-bytes")
        archive.add("main/native/ab/y.h.json", b'{"a": 1}')

        output = tmp_path / "out" / "main-bundle.zip"
        assert await archive.flush(output) == output

        with zipfile.ZipFile(output) as zf:
            assert sorted(zf.namelist()) == [
                "main/import/00/x.h.png",
                "main/native/ab/y.h.json",
            ]
            assert zf.read("main/import/00/x.h.png") == b"png-bytes"
