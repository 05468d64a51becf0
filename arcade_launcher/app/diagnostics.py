"""Plain-text diagnostics explaining why games did or did not load."""

from __future__ import annotations

from typing import List, Mapping, Optional

from ..config.models import AppConfig
from ..core.audit_store import AuditStore
from ..core.machine_catalog import MachineRecord, catalog_stats
from ..core.reconciler import ReconcileResult, RomSetClassification, classify_rom_set, find_missing_parents
from ..scanning.archive_scanner import count_archives

MAX_MISSING_PARENTS_LISTED = 10


def build_diagnostics_report(
    config: AppConfig,
    records: Mapping[str, MachineRecord],
    result: Optional[ReconcileResult],
    store: Optional[AuditStore] = None,
    classification: Optional[RomSetClassification] = None,
) -> str:
    lines: List[str] = ["=== ROM Setup Diagnostics ===", ""]

    executable = config.selected_executable()
    lines.append("Emulator:")
    if executable is None:
        lines.append("  NOT CONFIGURED")
    else:
        lines.append(f"  {executable.name} ({executable.version}) - {executable.path}")
    lines.append("")

    lines.append("ROM Directories:")
    if not config.all_rom_dirs():
        lines.append("  (none configured)")
    for directory in config.all_rom_dirs():
        count = count_archives(directory, config.reconcile_settings().archive_extensions)
        if count is None:
            lines.append(f"  [missing] {directory} - DIRECTORY NOT FOUND")
        else:
            lines.append(f"  [ok] {directory} - {count} archives found")
    lines.append("")

    if classification is None:
        classification = classify_rom_set(config.all_rom_dirs(), records, config.reconcile_settings())
    lines.append("ROM Set Type Detection:")
    lines.append(f"  Detected: {classification.label}")
    lines.append(f"  {classification.advice}")
    lines.append("")

    lines.append("Audit Status:")
    identity = config.selected_identity()
    store = store or AuditStore(config.audit_cache_dir())
    if not config.use_mame_audit:
        lines.append("  Audit mode DISABLED")
        lines.append("  -> Enable audit data for merged ROM support")
    elif identity is None:
        lines.append("  Audit mode ENABLED, but no emulator is selected")
    else:
        lines.append("  Audit mode ENABLED")
        snapshot = store.load(identity)
        if snapshot is None:
            lines.append("  No audit file found!")
            lines.append("  -> Run a ROM audit for this emulator")
        else:
            lines.append(f"  Audit file exists: {len(snapshot)} games listed")
            audit_time = config.mame_audit_times.get(identity)
            if audit_time:
                lines.append(f"  Last audit: {audit_time}")
    lines.append(f"  Loading mode: {'Fast (assume merged sets)' if config.assume_merged_sets else 'Accurate'}")
    lines.append("")

    stats = catalog_stats(records)
    lines.append("Current ROM Loading:")
    lines.append(f"  Catalog: {stats.total_games} games, {stats.working_games} working, {stats.clones} clones")
    games_loaded = len(result.real_roms) if result is not None else 0
    lines.append(f"  Games loaded: {games_loaded}")
    if result is not None:
        lines.append(f"  Source: {result.source}")
        lines.append(f"  Virtual parents: {len(result.virtual_roms)}")
        missing = find_missing_parents(result, records)
        if missing:
            lines.append(f"  Clones without parent archive: {len(missing)}")
            for clone_id, parent_id in missing[:MAX_MISSING_PARENTS_LISTED]:
                lines.append(f"    {clone_id} -> {parent_id}")

    if games_loaded == 0 and config.all_rom_dirs():
        lines.extend([
            "",
            "TROUBLESHOOTING: No games loaded!",
            "Possible causes:",
            "  1. Using merged ROMs without running audit",
            "  2. ROM files not in ZIP or 7z format",
            "  3. Incorrect ROM directory path",
            "  4. All ROMs filtered out by current filter settings",
        ])

    return "\n".join(lines) + "\n"

