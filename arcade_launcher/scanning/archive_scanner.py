"""Archive Scanner - enumerate ROM archives and peek inside them.

Directories are listed flat (no recursion); ROM paths for the emulator are
always a list of directories, never a tree. Missing or unreadable
directories and archives are skipped with a log line, never raised.
"""

from __future__ import annotations

import logging
import os
import threading
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import py7zr
from py7zr.exceptions import ArchiveError, PasswordRequired

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSIONS: Tuple[str, ...] = (".zip", ".7z")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ArchiveEntry:
    stem: str
    path: Path
    directory_origin: Path


def _has_extension(name: str, extensions: Sequence[str]) -> bool:
    lower = name.lower()
    return any(lower.endswith(ext) for ext in extensions)


def iter_directory_archives(
    directory: PathLike,
    extensions: Sequence[str] = ARCHIVE_EXTENSIONS,
) -> List[ArchiveEntry]:
    """List archives directly inside ``directory`` in name order."""
    root = Path(directory)
    try:
        names = sorted(os.listdir(root))
    except OSError as exc:
        logger.warning("Skipping unreadable ROM directory %s: %s", root, exc)
        return []

    entries: List[ArchiveEntry] = []
    for name in names:
        if not _has_extension(name, extensions):
            continue
        path = root / name
        if not path.is_file():
            continue
        entries.append(ArchiveEntry(stem=Path(name).stem, path=path, directory_origin=root))
    return entries


def scan_directories(
    directories: Iterable[PathLike],
    extensions: Sequence[str] = ARCHIVE_EXTENSIONS,
) -> List[ArchiveEntry]:
    """Enumerate archives across directories, preserving directory order."""
    entries: List[ArchiveEntry] = []
    for directory in directories:
        entries.extend(iter_directory_archives(directory, extensions))
    logger.debug("Archive scan found %d archives", len(entries))
    return entries


def count_archives(directory: PathLike, extensions: Sequence[str] = ARCHIVE_EXTENSIONS) -> Optional[int]:
    """Number of archives in ``directory``, or None when it cannot be listed."""
    root = Path(directory)
    if not root.is_dir():
        return None
    return len(iter_directory_archives(root, extensions))


def _basename(member: str) -> str:
    return member.replace("\\", "/").rsplit("/", 1)[-1]


def list_archive_entries(archive_path: PathLike) -> Optional[List[str]]:
    """Interior file names with any directory prefix stripped.

    Returns None when the archive cannot be opened.
    """
    path = Path(archive_path)
    try:
        if path.suffix.lower() == ".7z":
            with py7zr.SevenZipFile(path, mode="r") as archive:
                members = [info.filename for info in archive.list() if not info.is_directory]
        else:
            with zipfile.ZipFile(path) as archive:
                members = archive.namelist()
    except (OSError, EOFError, zipfile.BadZipFile, ArchiveError, PasswordRequired) as exc:
        logger.debug("Cannot open archive %s: %s", path, exc)
        return None

    names = []
    for member in members:
        if member.endswith("/"):
            continue
        base = _basename(member)
        if base:
            names.append(base)
    return names


def contains_entry_named(archive_path: PathLike, candidate_stem: str) -> bool:
    """True when an interior file name starts with ``"{candidate_stem}."``."""
    names = list_archive_entries(archive_path)
    if names is None:
        return False
    prefix = f"{candidate_stem}."
    return any(name.startswith(prefix) for name in names)


class ArchiveIndex:
    """Per-reconciliation memo of interior listings.

    Each archive is opened at most once; the cache is thread-safe so the
    index can be shared with a worker pool.
    """

    def __init__(self) -> None:
        self._listings: Dict[Path, Optional[Tuple[str, ...]]] = {}
        self._lock = threading.Lock()

    def entries(self, archive_path: PathLike) -> Optional[Tuple[str, ...]]:
        path = Path(archive_path)
        with self._lock:
            if path in self._listings:
                return self._listings[path]
        names = list_archive_entries(path)
        listing = tuple(names) if names is not None else None
        with self._lock:
            self._listings[path] = listing
        return listing

    def contains_entry_named(self, archive_path: PathLike, candidate_stem: str) -> bool:
        names = self.entries(archive_path)
        if names is None:
            return False
        prefix = f"{candidate_stem}."
        return any(name.startswith(prefix) for name in names)

    def entry_count(self, archive_path: PathLike) -> int:
        names = self.entries(archive_path)
        return len(names) if names is not None else 0

    @property
    def opened(self) -> int:
        return len(self._listings)
