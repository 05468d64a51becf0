"""Audit Store - per-emulator availability snapshots.

The emulator's ``-verifyroms`` run writes an INI-style availability file.
That file is copied into the cache directory under an identity derived from
the emulator's name and version, so switching between emulator builds never
reuses a stale snapshot.

Cache format::

    [AVAILABLE]
    sf2 = 1
    sf2ce = 1

The section ends at the next ``[`` header or at end of file.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

AUDIT_FILE_PREFIX = "mame_avail_"
AUDIT_FILE_SUFFIX = ".ini"
EMULATOR_AVAIL_FILE = "mame_avail.ini"
AVAILABLE_SECTION = "[AVAILABLE]"
ROMPATH_SEPARATOR = ";"

LogCallback = Callable[[str], None]
Runner = Callable[..., "subprocess.CompletedProcess[str]"]
PathLike = Union[str, Path]


def sanitize_identity(name: str, version: str) -> str:
    """Cache key for an emulator build: ``name_version`` made filename-safe."""
    raw = f"{name}_{version}"
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in raw).lower()


@dataclass(frozen=True)
class AuditSnapshot:
    identity: str
    available: FrozenSet[str] = field(default_factory=frozenset)

    def __len__(self) -> int:
        return len(self.available)

    def __contains__(self, rom_id: object) -> bool:
        return rom_id in self.available


@dataclass(frozen=True)
class AuditSummary:
    total: int = 0
    good: int = 0
    bad: int = 0
    not_found: int = 0

    def describe(self) -> str:
        return (
            f"Audit complete: {self.total} ROMs scanned, {self.good} good, "
            f"{self.bad} bad, {self.not_found} not found"
        )


@dataclass(frozen=True)
class AuditBuildResult:
    ok: bool
    message: str
    summary: Optional[AuditSummary] = None
    snapshot: Optional[AuditSnapshot] = None
    source_path: Optional[Path] = None
    process_failed: bool = False


def parse_available_section(text: str) -> FrozenSet[str]:
    available = set()
    in_section = False
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line == AVAILABLE_SECTION:
            in_section = True
            continue
        if in_section and line.startswith("["):
            break
        if not in_section or "=" not in line:
            continue
        name, _, value = line.partition("=")
        name = name.strip()
        if name and value.strip() == "1":
            available.add(name)
    return frozenset(available)


def render_available_section(rom_ids: Iterable[str]) -> str:
    lines = [AVAILABLE_SECTION]
    lines.extend(f"{rom_id} = 1" for rom_id in sorted(set(rom_ids)))
    return "\n".join(lines) + "\n"


def parse_verify_report(text: str) -> AuditSummary:
    """Count the ``romset`` lines of a ``-verifyroms`` report."""
    total = good = bad = not_found = 0
    for line in text.splitlines():
        if "romset" not in line:
            continue
        total += 1
        if "is good" in line or "is best available" in line:
            good += 1
        elif "is bad" in line:
            bad += 1
        elif "NOT FOUND" in line:
            not_found += 1
    return AuditSummary(total=total, good=good, bad=bad, not_found=not_found)


def default_fallback_locations() -> List[Path]:
    return [
        Path(".mame") / "ui" / EMULATOR_AVAIL_FILE,
        Path.home() / ".mame" / "ui" / EMULATOR_AVAIL_FILE,
        Path("ui") / EMULATOR_AVAIL_FILE,
    ]


class AuditStore:
    """Availability snapshots on disk, one file per emulator identity."""

    def __init__(self, cache_dir: PathLike):
        self.cache_dir = Path(cache_dir)

    def path_for(self, identity: str) -> Path:
        return self.cache_dir / f"{AUDIT_FILE_PREFIX}{identity}{AUDIT_FILE_SUFFIX}"

    def exists(self, identity: str) -> bool:
        return self.path_for(identity).is_file()

    def load(self, identity: str) -> Optional[AuditSnapshot]:
        path = self.path_for(identity)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None
        snapshot = AuditSnapshot(identity=identity, available=parse_available_section(text))
        logger.debug("Loaded audit snapshot %s with %d entries", identity, len(snapshot))
        return snapshot

    def save(self, snapshot: AuditSnapshot) -> Path:
        """Write the snapshot, replacing any previous file for the identity."""
        path = self.path_for(snapshot.identity)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(render_available_section(snapshot.available), encoding="utf-8")
        tmp_path.replace(path)
        return path

    def remove(self, identity: str) -> bool:
        path = self.path_for(identity)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Removed audit file: %s", path)
        return True

    def list_identities(self) -> List[str]:
        if not self.cache_dir.is_dir():
            return []
        identities = []
        for path in sorted(self.cache_dir.iterdir()):
            name = path.name
            if name.startswith(AUDIT_FILE_PREFIX) and name.endswith(AUDIT_FILE_SUFFIX) and path.is_file():
                identities.append(name[len(AUDIT_FILE_PREFIX):-len(AUDIT_FILE_SUFFIX)])
        return identities

    def cleanup_orphans(self, valid_identities: Iterable[str]) -> List[str]:
        """Delete snapshots whose emulator is no longer configured."""
        keep = set(valid_identities)
        removed = []
        for identity in self.list_identities():
            if identity not in keep and self.remove(identity):
                removed.append(identity)
        return removed

    def build(
        self,
        identity: str,
        directories: Sequence[PathLike],
        executable: PathLike,
        *,
        progress: Optional[LogCallback] = None,
        runner: Optional[Runner] = None,
        settle_delay: float = 0.5,
        fallback_locations: Optional[Sequence[Path]] = None,
    ) -> AuditBuildResult:
        """Run the emulator's verification pass and cache its availability file.

        Args:
            identity: Sanitized emulator identity, see :func:`sanitize_identity`.
            directories: ROM directories passed as one ``-rompath`` value.
            executable: Emulator binary; it runs inside its own directory.
            progress: Optional callback for human-readable status lines.
            runner: ``subprocess.run`` compatible callable (tests inject fakes).
            settle_delay: Seconds to wait for the emulator to finish writing.
            fallback_locations: Extra places the emulator may have written to.

        Returns:
            :class:`AuditBuildResult`. A missing availability file is a soft
            failure (``ok=False``); only a process that cannot start sets
            ``process_failed``.
        """
        emit = progress or (lambda _message: None)
        run = runner or subprocess.run
        executable_path = Path(executable)
        emulator_dir = executable_path.parent

        emit("Preparing MAME audit...")
        rompath = ROMPATH_SEPARATOR.join(str(d) for d in directories)

        ui_dir = emulator_dir / "ui"
        primary = ui_dir / EMULATOR_AVAIL_FILE
        try:
            ui_dir.mkdir(parents=True, exist_ok=True)
            primary.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not prepare %s: %s", ui_dir, exc)

        emit("Running MAME audit (scanning inside all ROM archives)...")
        args = [str(executable_path), "-rompath", rompath, "-verifyroms"]
        try:
            completed = run(
                args,
                cwd=str(emulator_dir),
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            message = f"Failed to run MAME audit: {exc}"
            logger.error(message)
            emit(message)
            return AuditBuildResult(ok=False, message=message, process_failed=True)

        summary = parse_verify_report(completed.stdout or "")
        emit(summary.describe())

        if settle_delay > 0:
            time.sleep(settle_delay)

        candidates = [primary]
        candidates.extend(fallback_locations if fallback_locations is not None else default_fallback_locations())
        for candidate in candidates:
            if not candidate.is_file():
                continue
            target = self.path_for(identity)
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(candidate, target)
            except OSError as exc:
                logger.warning("Failed to copy audit file from %s: %s", candidate, exc)
                continue
            try:
                candidate.unlink()
            except OSError as exc:
                logger.debug("Could not remove %s: %s", candidate, exc)
            snapshot = self.load(identity)
            message = (
                "Audit file saved for this MAME version"
                if candidate == primary
                else f"Audit file found at {candidate} and saved"
            )
            emit(message)
            logger.info("Audit snapshot %s stored (%d available)", identity, len(snapshot or ()))
            return AuditBuildResult(
                ok=True,
                message=message,
                summary=summary,
                snapshot=snapshot,
                source_path=candidate,
            )

        message = "Could not find mame_avail.ini after audit; MAME may have written it to a different location"
        logger.warning(message)
        emit(f"Warning: {message}")
        return AuditBuildResult(ok=False, message=message, summary=summary)
