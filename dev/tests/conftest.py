from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

import pytest

from arcade_launcher.core.machine_catalog import MachineRecord


def write_zip(path: Path, members: Iterable[str]) -> Path:
    """Create a zip archive whose members hold a few placeholder bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for member in members:
            archive.writestr(member, b"\x00\x01\x02\x03")
    return path


def record(machine_id: str, title: str = "", parent: Optional[str] = None, **flags) -> MachineRecord:
    return MachineRecord(id=machine_id, display_name=title, parent_id=parent, **flags)


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str, members: Iterable[str], directory: Optional[Path] = None) -> Path:
        return write_zip((directory or tmp_path / "roms") / name, members)

    return _make


@pytest.fixture
def mario_records() -> Dict[str, MachineRecord]:
    """Parent ``mario`` with one clone ``bros``."""
    return {
        "mario": record("mario", "Mario Bros. (World)"),
        "bros": record("bros", "Mario Bros. (Japan, bootleg)", parent="mario"),
    }
