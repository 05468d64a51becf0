"""Command line entry point.

Subcommands:
- ``add-emulator PATH``  query an emulator build and register it
- ``scan``               reconcile and print the game list
- ``classify``           print the detected ROM-set layout
- ``audit``              run the emulator's verification pass and cache it
- ``launch-args ROM``    print the launch argument vector
- ``diagnose``           print the diagnostics report
"""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .app.diagnostics import build_diagnostics_report
from .app.jobs import AuditRequest, ReconcileOutcome, ReconcileRequest, start_audit_job, start_reconcile_job
from .app.progress_channel import EVENT_COMPLETE, ProgressChannel, ProgressEvent
from .config.io import load_config, save_config
from .config.models import AppConfig, EmulatorExecutable
from .core.audit_store import AuditStore
from .core.content_filters import make_rom_filter
from .core.machine_catalog import MachineRecord, catalog_stats, parse_machine_list
from .core.reconciler import ReconcileMode, assemble_display_list, classify_rom_set
from .emulator.launch_args import build_command, build_launch_args
from .emulator.mame_process import get_emulator_version, load_machine_list
from .exceptions import BaseError
from .logging_config import setup_logging
from .version import load_version

logger = logging.getLogger(__name__)


def _wait_for(channel: ProgressChannel) -> ProgressEvent:
    """Print progress lines until the terminal event arrives."""
    while True:
        event = channel.wait(timeout=0.1)
        if event is None:
            continue
        if event.is_terminal:
            return event
        print(event.message)


def _load_records(config: AppConfig, listxml: Optional[str]) -> Dict[str, MachineRecord]:
    if listxml:
        return parse_machine_list(Path(listxml).read_bytes())
    executable = config.selected_executable()
    if executable is None:
        raise BaseError("No emulator configured; run 'add-emulator' or pass --listxml", "NO_EMULATOR")
    return load_machine_list(executable.path)


def cmd_add_emulator(args: argparse.Namespace, config: AppConfig) -> int:
    path = Path(args.path)
    version = get_emulator_version(path)
    records = load_machine_list(path)
    stats = catalog_stats(records)
    entry = EmulatorExecutable(
        name=args.name or path.stem,
        path=str(path),
        version=version,
        total_games=stats.total_games,
        working_games=stats.working_games,
    )
    config.mame_executables.append(entry)
    config.selected_mame_index = len(config.mame_executables) - 1
    save_config(config, args.config)
    print(f"Added {entry.name} {entry.version}: {stats.total_games} games, {stats.working_games} working")
    return 0


def cmd_scan(args: argparse.Namespace, config: AppConfig) -> int:
    records = _load_records(config, args.listxml)
    mode = ReconcileMode.FAST if (args.fast or config.assume_merged_sets) else ReconcileMode.ACCURATE

    snapshot = None
    identity = config.selected_identity()
    if (args.use_audit or config.use_mame_audit) and identity:
        snapshot = AuditStore(config.audit_cache_dir()).load(identity)

    request = ReconcileRequest(
        records=records,
        directories=tuple(config.all_rom_dirs()),
        mode=mode,
        snapshot=snapshot,
        settings=config.reconcile_settings(),
    )
    event = _wait_for(start_reconcile_job(request))
    if event.kind != EVENT_COMPLETE:
        print(event.message, file=sys.stderr)
        return 1

    outcome: ReconcileOutcome = event.result
    rom_filter = make_rom_filter(config.filter_settings, records, config.favorite_games)
    rows = assemble_display_list(
        outcome.result,
        set(args.expand or ()),
        show_all_clones=args.show_clones or config.filter_settings.show_clones,
        rom_filter=rom_filter,
    )
    for rom in rows:
        marker = "*" if rom.is_virtual else ("  " if rom.is_clone else "")
        print(f"{marker}{rom.display_name} [{rom.id}]")
    print(f"{len(rows)} shown, {len(outcome.result.roms)} total ({outcome.classification.label} set)")
    return 0


def cmd_classify(args: argparse.Namespace, config: AppConfig) -> int:
    records = _load_records(config, args.listxml)
    classification = classify_rom_set(config.all_rom_dirs(), records, config.reconcile_settings())
    print(classification.label)
    print(classification.advice)
    return 0


def cmd_audit(args: argparse.Namespace, config: AppConfig) -> int:
    executable = config.selected_executable()
    if executable is None:
        print("No emulator configured", file=sys.stderr)
        return 1

    request = AuditRequest(
        identity=executable.identity,
        directories=tuple(config.all_rom_dirs()),
        executable=executable.path,
        cache_dir=str(config.audit_cache_dir()),
    )
    event = _wait_for(start_audit_job(request))
    if event.kind != EVENT_COMPLETE:
        print(event.message, file=sys.stderr)
        return 1

    if event.result is not None and event.result.ok:
        config.mame_audit_times[executable.identity] = datetime.now().isoformat(timespec="seconds")
        save_config(config, args.config)
        return 0
    print(event.message, file=sys.stderr)
    return 2


def cmd_launch_args(args: argparse.Namespace, config: AppConfig) -> int:
    kwargs = dict(
        video=config.video_settings,
        graphics=config.graphics_config.to_graphics_config(),
        data_dirs=args.data_dirs,
    )
    executable = config.selected_executable()
    if args.with_executable and executable is not None:
        argv = build_command(executable.path, args.rom, config.rom_dirs, extra_rom_dirs=config.extra_rom_dirs, **kwargs)
    else:
        argv = build_launch_args(args.rom, config.rom_dirs, extra_rom_dirs=config.extra_rom_dirs, **kwargs)
    print(shlex.join(argv))
    return 0


def cmd_diagnose(args: argparse.Namespace, config: AppConfig) -> int:
    records = _load_records(config, args.listxml)
    store = AuditStore(config.audit_cache_dir())
    snapshot = store.load(config.selected_identity()) if config.use_mame_audit and config.selected_identity() else None

    request = ReconcileRequest(
        records=records,
        directories=tuple(config.all_rom_dirs()),
        mode=config.reconcile_mode(),
        snapshot=snapshot,
        settings=config.reconcile_settings(),
    )
    event = _wait_for(start_reconcile_job(request))
    outcome = event.result if event.kind == EVENT_COMPLETE else None
    print(build_diagnostics_report(
        config,
        records,
        outcome.result if outcome else None,
        store,
        outcome.classification if outcome else None,
    ), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="arcade-launcher", description="Arcade Launcher - ROM-set reconciliation")
    parser.add_argument("--config", help="Path to config.json")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--listxml", help="Use a saved -listxml dump instead of running the emulator")
    parser.add_argument("--version", action="version", version=f"%(prog)s {load_version()}")

    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add-emulator", help="Register an emulator executable")
    add.add_argument("path")
    add.add_argument("--name")
    add.set_defaults(handler=cmd_add_emulator)

    scan = sub.add_parser("scan", help="Reconcile ROM directories and list games")
    scan.add_argument("--fast", action="store_true", help="Assume merged sets")
    scan.add_argument("--use-audit", action="store_true", help="Use the cached audit snapshot")
    scan.add_argument("--show-clones", action="store_true", help="Show all clones")
    scan.add_argument("--expand", action="append", metavar="PARENT", help="Expand a parent (repeatable)")
    scan.set_defaults(handler=cmd_scan)

    classify = sub.add_parser("classify", help="Detect merged/split/non-merged layout")
    classify.set_defaults(handler=cmd_classify)

    audit = sub.add_parser("audit", help="Run the emulator's ROM verification")
    audit.set_defaults(handler=cmd_audit)

    launch = sub.add_parser("launch-args", help="Print launch arguments for a game")
    launch.add_argument("rom")
    launch.add_argument("--data-dirs", action="store_true", help="Add nvram/cfg/state/snapshot directories")
    launch.add_argument("--with-executable", action="store_true", help="Prefix the emulator path")
    launch.set_defaults(handler=cmd_launch_args)

    diagnose = sub.add_parser("diagnose", help="Explain the current ROM setup")
    diagnose.set_defaults(handler=cmd_diagnose)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level)

    config = load_config(args.config)
    try:
        return int(args.handler(args, config))
    except BaseError as exc:
        logger.debug("Command failed: %s", exc.to_dict())
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
