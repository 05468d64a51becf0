"""ROM-Set Reconciler - decide which logical games are playable.

Inputs are the machine catalog, the archives on disk and optionally a cached
audit snapshot. Everything here is a pure function of its inputs: a change of
directories, emulator or mode means a full recompute, never an in-place
update of a previous result.

Pipeline:
1. base inventory (audit snapshot, or archive stems on disk)
2. clone expansion for parent archives (scan-driven only)
3. virtual parents for clones whose parent archive is missing
4. display assembly (expansion state, filters, de-duplication)
5. archive layout classification (merged / split / non-merged)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..scanning.archive_scanner import (
    ARCHIVE_EXTENSIONS,
    ArchiveEntry,
    ArchiveIndex,
    iter_directory_archives,
    scan_directories,
)
from .audit_store import AuditSnapshot
from .machine_catalog import MachineRecord

logger = logging.getLogger(__name__)

VIRTUAL_PARENT_SUFFIX = " (Parent ROM)"

LogCallback = Callable[[str], None]
RomFilter = Callable[["ReconciledRom"], bool]
PathLike = Union[str, Path]


class RomSetClassification(str, Enum):
    MERGED = "merged"
    SPLIT = "split"
    NON_MERGED = "non_merged"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return {
            RomSetClassification.MERGED: "Merged",
            RomSetClassification.SPLIT: "Split",
            RomSetClassification.NON_MERGED: "Non-merged",
            RomSetClassification.UNKNOWN: "Unknown",
        }[self]

    @property
    def advice(self) -> str:
        if self is RomSetClassification.MERGED:
            return "Clones live inside parent archives; run an audit or enable fast mode to list them"
        if self is RomSetClassification.UNKNOWN:
            return "No archives found in the configured ROM directories"
        return "Clone archives exist as separate files; directory scanning is sufficient"


class ReconcileMode(str, Enum):
    ACCURATE = "accurate"
    FAST = "fast"


@dataclass(frozen=True)
class ReconcileSettings:
    """Empirical tuning for clone detection and classification."""

    merged_entry_threshold: int = 5
    classification_sample_limit: int = 50
    split_ratio_threshold: float = 0.3
    archive_extensions: Tuple[str, ...] = ARCHIVE_EXTENSIONS


@dataclass(frozen=True)
class ReconciledRom:
    display_name: str
    id: str
    is_clone: bool = False
    has_clones: bool = False
    is_virtual: bool = False


def _frozen_mapping(data: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class ParentClonePlan:
    """Read-only parent/clone maps; clone lists are ``(display_name, id)`` tuples."""

    parent_to_clones: Mapping[str, Tuple[Tuple[str, str], ...]] = field(default_factory=_frozen_mapping)
    clone_to_parent: Mapping[str, str] = field(default_factory=_frozen_mapping)
    virtual_parents: Mapping[str, str] = field(default_factory=_frozen_mapping)

    def clones_of(self, parent_id: str) -> List[Tuple[str, str]]:
        return list(self.parent_to_clones.get(parent_id, ()))

    def has_clones(self, rom_id: str) -> bool:
        return bool(self.parent_to_clones.get(rom_id))

    def with_virtual_parents(self, virtual_parents: Mapping[str, str]) -> "ParentClonePlan":
        return replace(self, virtual_parents=_frozen_mapping(virtual_parents))


@dataclass(frozen=True)
class ReconcileResult:
    roms: Tuple[ReconciledRom, ...]
    plan: ParentClonePlan
    source: str
    mode: ReconcileMode

    @property
    def ids(self) -> Set[str]:
        return {rom.id for rom in self.roms}

    @property
    def real_roms(self) -> List[ReconciledRom]:
        return [rom for rom in self.roms if not rom.is_virtual]

    @property
    def virtual_roms(self) -> List[ReconciledRom]:
        return [rom for rom in self.roms if rom.is_virtual]

    def get(self, rom_id: str) -> Optional[ReconciledRom]:
        for rom in self.roms:
            if rom.id == rom_id:
                return rom
        return None


def _sort_key(item: Tuple[str, str]) -> Tuple[str, str]:
    return item[0].lower(), item[1]


def _title(records: Mapping[str, MachineRecord], rom_id: str) -> str:
    record = records.get(rom_id)
    return record.display_name if record is not None and record.display_name else rom_id


def build_parent_clone_plan(
    records: Mapping[str, MachineRecord],
    entries: Optional[Iterable[Tuple[str, str]]] = None,
) -> ParentClonePlan:
    """Parent/clone maps, over the whole catalog or a subset of entries.

    Args:
        records: Full machine catalog.
        entries: ``(display_name, id)`` pairs to restrict the plan to. When
            omitted, every catalog record takes part.
    """
    if entries is None:
        entries = ((_title(records, machine_id), machine_id) for machine_id in records)

    parent_to_clones: Dict[str, List[Tuple[str, str]]] = {}
    clone_to_parent: Dict[str, str] = {}
    for display_name, rom_id in sorted(entries, key=_sort_key):
        record = records.get(rom_id)
        if record is None or not record.parent_id:
            continue
        clone_to_parent[rom_id] = record.parent_id
        parent_to_clones.setdefault(record.parent_id, []).append((display_name, rom_id))
    return ParentClonePlan(
        parent_to_clones=_frozen_mapping({parent: tuple(clones) for parent, clones in parent_to_clones.items()}),
        clone_to_parent=_frozen_mapping(clone_to_parent),
    )


def virtual_parent_title(
    parent_id: str,
    clones: Sequence[Tuple[str, str]],
    records: Mapping[str, MachineRecord],
) -> str:
    parent = records.get(parent_id)
    if parent is not None and parent.display_name:
        return parent.display_name
    if clones:
        clone = records.get(clones[0][1])
        if clone is not None and clone.display_name:
            return clone.display_name.split("(", 1)[0].strip() + VIRTUAL_PARENT_SUFFIX
    return parent_id.upper() + VIRTUAL_PARENT_SUFFIX


def _audit_inventory(
    snapshot: AuditSnapshot,
    records: Mapping[str, MachineRecord],
) -> Dict[str, str]:
    inventory: Dict[str, str] = {}
    for rom_id in snapshot.available:
        record = records.get(rom_id)
        if record is not None and not record.is_game:
            continue
        inventory[rom_id] = _title(records, rom_id)
    return inventory


def clone_present_in_archive(
    index: ArchiveIndex,
    archive_path: PathLike,
    clone_id: str,
    records: Mapping[str, MachineRecord],
    settings: Optional[ReconcileSettings] = None,
) -> bool:
    """Decide whether a parent archive carries a clone's data.

    True when an interior file is named after the clone, or when the clone is
    a known machine and the archive holds more than
    ``settings.merged_entry_threshold`` files (a merged set). An archive that
    cannot be opened never carries a clone.
    """
    settings = settings or ReconcileSettings()
    if index.contains_entry_named(archive_path, clone_id):
        return True
    return clone_id in records and index.entry_count(archive_path) > settings.merged_entry_threshold


def _scan_inventory(
    archives: Sequence[ArchiveEntry],
    records: Mapping[str, MachineRecord],
    catalog_plan: ParentClonePlan,
    mode: ReconcileMode,
    settings: ReconcileSettings,
    emit: LogCallback,
) -> Dict[str, str]:
    inventory: Dict[str, str] = {}
    for archive in archives:
        inventory.setdefault(archive.stem, _title(records, archive.stem))

    index = ArchiveIndex()
    seen_parents: Set[str] = set()
    for archive in archives:
        clones = catalog_plan.clones_of(archive.stem)
        if not clones or archive.stem in seen_parents:
            continue
        seen_parents.add(archive.stem)

        if mode is ReconcileMode.FAST:
            for clone_title, clone_id in clones:
                inventory.setdefault(clone_id, clone_title)
            continue

        for clone_title, clone_id in clones:
            if clone_id in inventory:
                continue
            if clone_present_in_archive(index, archive.path, clone_id, records, settings):
                inventory[clone_id] = clone_title

    if mode is ReconcileMode.ACCURATE:
        emit(f"Checked {index.opened} parent archives for clones")
    return inventory


def reconcile(
    records: Mapping[str, MachineRecord],
    directories: Sequence[PathLike],
    *,
    mode: ReconcileMode = ReconcileMode.ACCURATE,
    snapshot: Optional[AuditSnapshot] = None,
    settings: Optional[ReconcileSettings] = None,
    progress: Optional[LogCallback] = None,
) -> ReconcileResult:
    """Build the authoritative list of playable games.

    Args:
        records: Machine catalog for the selected emulator.
        directories: ROM directories, searched flat and in order.
        mode: ``FAST`` trusts parent archives to hold every clone.
        snapshot: Audit snapshot; used when present and non-empty.
        settings: Clone detection thresholds.
        progress: Optional callback receiving status lines.

    Returns:
        :class:`ReconcileResult` with real and virtual entries sorted by
        case-insensitive display name.
    """
    settings = settings or ReconcileSettings()
    emit = progress or (lambda _message: None)

    emit("Scanning ROM directories...")
    archives = scan_directories(directories, settings.archive_extensions)
    on_disk = {archive.stem for archive in archives}
    emit(f"Found {len(archives)} archives")

    if snapshot is not None and len(snapshot) > 0:
        source = "audit"
        inventory = _audit_inventory(snapshot, records)
        emit(f"Using audit data: {len(inventory)} available games")
    else:
        source = "scan"
        catalog_plan = build_parent_clone_plan(records)
        inventory = _scan_inventory(archives, records, catalog_plan, mode, settings, emit)

    plan = build_parent_clone_plan(records, ((title, rom_id) for rom_id, title in inventory.items()))
    plan = plan.with_virtual_parents({
        parent_id: virtual_parent_title(parent_id, clones, records)
        for parent_id, clones in plan.parent_to_clones.items()
        if parent_id not in inventory and parent_id not in on_disk
    })

    roms = [
        ReconciledRom(
            display_name=title,
            id=rom_id,
            is_clone=rom_id in plan.clone_to_parent,
            has_clones=plan.has_clones(rom_id),
        )
        for rom_id, title in inventory.items()
    ]
    roms.extend(
        ReconciledRom(display_name=title, id=parent_id, has_clones=True, is_virtual=True)
        for parent_id, title in plan.virtual_parents.items()
    )
    roms.sort(key=lambda rom: (rom.display_name.lower(), rom.id))

    logger.info(
        "Reconciled %d games (%d virtual parents) from %s in %s mode",
        len(roms), len(plan.virtual_parents), source, mode.value,
    )
    emit(f"Loaded {len(roms)} games")
    return ReconcileResult(roms=tuple(roms), plan=plan, source=source, mode=mode)


def _expanded_ids(expanded: Union[Mapping[str, bool], Collection[str], None]) -> Set[str]:
    if not expanded:
        return set()
    if isinstance(expanded, Mapping):
        return {rom_id for rom_id, is_open in expanded.items() if is_open}
    return set(expanded)


def assemble_display_list(
    result: ReconcileResult,
    expanded: Union[Mapping[str, bool], Collection[str], None] = None,
    *,
    show_all_clones: bool = False,
    rom_filter: Optional[RomFilter] = None,
) -> List[ReconciledRom]:
    """Walk the reconciled entries into the rows a list view shows.

    Clones of an expanded parent are placed directly beneath it. With
    ``show_all_clones`` the remaining clones appear at their sorted
    position. Virtual parents are never filtered. Each id is emitted once.
    """
    open_parents = _expanded_ids(expanded)
    plan = result.plan
    by_id = {rom.id: rom for rom in result.roms}

    def visible(rom: ReconciledRom) -> bool:
        return rom.is_virtual or rom_filter is None or rom_filter(rom)

    def shown(rom: ReconciledRom) -> bool:
        if rom.is_clone and not show_all_clones and plan.clone_to_parent.get(rom.id) not in open_parents:
            return False
        return visible(rom)

    # Parents that will be emitted with their clones directly beneath them.
    placed_parents = {
        rom.id for rom in result.roms
        if rom.id in open_parents and rom.has_clones and shown(rom)
    }

    rows: List[ReconciledRom] = []
    emitted: Set[str] = set()

    def emit(rom: ReconciledRom) -> None:
        rows.append(rom)
        emitted.add(rom.id)
        if rom.id not in placed_parents:
            return
        for _clone_title, clone_id in plan.clones_of(rom.id):
            clone = by_id.get(clone_id)
            if clone is None or clone_id in emitted or not visible(clone):
                continue
            emit(clone)

    for rom in result.roms:
        if rom.id in emitted:
            continue
        if rom.is_clone and plan.clone_to_parent.get(rom.id) in placed_parents:
            continue
        if shown(rom):
            emit(rom)

    return rows


def classify_rom_set(
    directories: Sequence[PathLike],
    records: Mapping[str, MachineRecord],
    settings: Optional[ReconcileSettings] = None,
) -> RomSetClassification:
    """Guess the archive layout from a bounded sample of archive stems."""
    settings = settings or ReconcileSettings()
    limit = max(settings.classification_sample_limit, 0)

    sampled = 0
    clone_archives = 0
    for directory in directories:
        if sampled >= limit:
            break
        for archive in iter_directory_archives(directory, settings.archive_extensions):
            if sampled >= limit:
                break
            sampled += 1
            record = records.get(archive.stem)
            if record is not None and record.is_clone:
                clone_archives += 1

    if sampled == 0:
        classification = RomSetClassification.UNKNOWN
    elif clone_archives:
        if clone_archives / sampled > settings.split_ratio_threshold:
            classification = RomSetClassification.SPLIT
        else:
            classification = RomSetClassification.NON_MERGED
    else:
        classification = RomSetClassification.MERGED

    logger.debug(
        "Classified ROM set as %s (%d clone archives in %d sampled)",
        classification.value, clone_archives, sampled,
    )
    return classification


def find_missing_parents(
    result: ReconcileResult,
    records: Mapping[str, MachineRecord],
) -> List[Tuple[str, str]]:
    """``(clone_id, parent_id)`` pairs whose parent is not a real entry."""
    real_ids = {rom.id for rom in result.roms if not rom.is_virtual}
    missing = []
    for rom in result.roms:
        if rom.is_virtual:
            continue
        record = records.get(rom.id)
        if record is not None and record.parent_id and record.parent_id not in real_ids:
            missing.append((rom.id, record.parent_id))
    return sorted(missing)
