"""Arcade Launcher scanning package.

Flat archive listing and archive-interior inspection.
"""

from .archive_scanner import ArchiveEntry, ArchiveIndex, contains_entry_named, scan_directories

__all__ = [
    "ArchiveEntry",
    "ArchiveIndex",
    "contains_entry_named",
    "scan_directories",
]
