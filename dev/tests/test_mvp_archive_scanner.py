"""Tests for archive enumeration and interior inspection."""

from __future__ import annotations

from pathlib import Path

import pytest

from arcade_launcher.scanning.archive_scanner import (
    ArchiveIndex,
    contains_entry_named,
    count_archives,
    list_archive_entries,
    scan_directories,
)

from conftest import write_zip


class TestScanDirectories:
    def test_flat_listing_in_directory_order(self, tmp_path: Path) -> None:
        first = tmp_path / "a"
        second = tmp_path / "b"
        write_zip(first / "zzz.zip", ["zzz.1"])
        write_zip(first / "aaa.ZIP", ["aaa.1"])
        write_zip(second / "mmm.zip", ["mmm.1"])
        write_zip(first / "nested" / "deep.zip", ["deep.1"])
        (first / "readme.txt").write_text("not an archive", encoding="utf-8")

        entries = scan_directories([second, first])

        assert [e.stem for e in entries] == ["mmm", "aaa", "zzz"]
        assert entries[0].directory_origin == second
        assert entries[1].path == first / "aaa.ZIP"

    def test_missing_directory_is_skipped(self, tmp_path: Path) -> None:
        write_zip(tmp_path / "roms" / "pacman.zip", ["pacman.6e"])

        entries = scan_directories([tmp_path / "does_not_exist", tmp_path / "roms"])

        assert [e.stem for e in entries] == ["pacman"]

    def test_custom_extensions(self, tmp_path: Path) -> None:
        write_zip(tmp_path / "pacman.zip", ["pacman.6e"])
        (tmp_path / "galaga.7z").write_bytes(b"")

        assert [e.stem for e in scan_directories([tmp_path], extensions=(".zip",))] == ["pacman"]

    def test_count_archives(self, tmp_path: Path) -> None:
        write_zip(tmp_path / "one.zip", ["a"])
        write_zip(tmp_path / "two.zip", ["b"])

        assert count_archives(tmp_path) == 2
        assert count_archives(tmp_path / "missing") is None


class TestArchiveInterior:
    def test_directory_prefix_is_stripped(self, tmp_path: Path) -> None:
        archive = write_zip(tmp_path / "mario.zip", ["mario/mario.a", "shared.b", "bros/"])

        assert sorted(list_archive_entries(archive)) == ["mario.a", "shared.b"]

    def test_contains_entry_named_requires_dot(self, tmp_path: Path) -> None:
        archive = write_zip(tmp_path / "mario.zip", ["sub/bros.rom", "brosx.rom"])

        assert contains_entry_named(archive, "bros")
        assert contains_entry_named(archive, "brosx")
        assert not contains_entry_named(archive, "bro")

    def test_unreadable_archive_is_absent(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.zip"
        broken.write_bytes(b"this is not a zip file")

        assert list_archive_entries(broken) is None
        assert contains_entry_named(broken, "broken") is False

    def test_missing_archive_is_absent(self, tmp_path: Path) -> None:
        assert contains_entry_named(tmp_path / "nope.zip", "nope") is False

    def test_seven_zip_listing(self, tmp_path: Path) -> None:
        py7zr = pytest.importorskip("py7zr")
        source = tmp_path / "payload"
        source.mkdir()
        (source / "kof98.rom").write_bytes(b"\x00" * 16)
        archive = tmp_path / "kof98.7z"
        with py7zr.SevenZipFile(archive, "w") as handle:
            handle.write(source / "kof98.rom", "kof98.rom")

        assert list_archive_entries(archive) == ["kof98.rom"]
        assert contains_entry_named(archive, "kof98")


def test_archive_index_opens_each_archive_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    archive = write_zip(tmp_path / "mario.zip", ["mario.a", "bros.a"])
    calls = []

    from arcade_launcher.scanning import archive_scanner

    original = archive_scanner.list_archive_entries

    def counting(path):
        calls.append(path)
        return original(path)

    monkeypatch.setattr(archive_scanner, "list_archive_entries", counting)
    index = ArchiveIndex()

    assert index.contains_entry_named(archive, "bros")
    assert not index.contains_entry_named(archive, "luigi")
    assert index.entry_count(archive) == 2
    assert len(calls) == 1
