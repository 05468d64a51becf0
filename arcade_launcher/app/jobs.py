"""Background jobs reporting through a :class:`ProgressChannel`.

Each ``start_*`` function spawns one daemon thread and returns the channel
immediately. There is no cancellation: a caller that loses interest simply
stops polling and drops the channel. Inputs are copied into the job so the
worker never shares mutable state with the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

from ..core.audit_store import AuditBuildResult, AuditSnapshot, AuditStore
from ..core.machine_catalog import CatalogStats, MachineRecord, catalog_stats
from ..core.reconciler import (
    ReconcileMode,
    ReconcileResult,
    ReconcileSettings,
    RomSetClassification,
    classify_rom_set,
    reconcile,
)
from ..emulator.mame_process import get_emulator_version, load_machine_list
from ..exceptions import BaseError
from .progress_channel import ProgressChannel

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ReconcileRequest:
    records: Mapping[str, MachineRecord]
    directories: Tuple[str, ...]
    mode: ReconcileMode = ReconcileMode.ACCURATE
    snapshot: Optional[AuditSnapshot] = None
    settings: ReconcileSettings = field(default_factory=ReconcileSettings)


@dataclass(frozen=True)
class ReconcileOutcome:
    result: ReconcileResult
    classification: RomSetClassification


@dataclass(frozen=True)
class AuditRequest:
    identity: str
    directories: Tuple[str, ...]
    executable: str
    cache_dir: str
    settle_delay: float = 0.5
    runner: Optional[Callable] = None


@dataclass(frozen=True)
class CatalogLoad:
    version: str
    records: Dict[str, MachineRecord]
    stats: CatalogStats


def _spawn(name: str, target: Callable[[ProgressChannel], None]) -> ProgressChannel:
    channel = ProgressChannel()
    thread = threading.Thread(target=target, args=(channel,), name=name, daemon=True)
    thread.start()
    return channel


def run_reconcile_job(request: ReconcileRequest, channel: ProgressChannel) -> None:
    records = dict(request.records)
    try:
        result = reconcile(
            records,
            list(request.directories),
            mode=request.mode,
            snapshot=request.snapshot,
            settings=request.settings,
            progress=channel.post,
        )
        classification = classify_rom_set(list(request.directories), records, request.settings)
    except Exception as exc:
        logger.exception("Reconcile job failed: %s", exc)
        channel.fail(f"ROM loading failed: {exc}")
        return
    channel.complete(ReconcileOutcome(result=result, classification=classification))


def start_reconcile_job(request: ReconcileRequest) -> ProgressChannel:
    return _spawn("reconcile", lambda channel: run_reconcile_job(request, channel))


def run_audit_job(request: AuditRequest, channel: ProgressChannel) -> None:
    store = AuditStore(request.cache_dir)
    try:
        outcome: AuditBuildResult = store.build(
            request.identity,
            list(request.directories),
            request.executable,
            progress=channel.post,
            runner=request.runner,
            settle_delay=request.settle_delay,
        )
    except Exception as exc:
        logger.exception("Audit job failed: %s", exc)
        channel.fail(f"Failed to run MAME audit: {exc}")
        return
    if outcome.process_failed:
        channel.fail(outcome.message, result=outcome)
    else:
        channel.complete(outcome, message=outcome.message)


def start_audit_job(request: AuditRequest) -> ProgressChannel:
    return _spawn("audit", lambda channel: run_audit_job(request, channel))


def run_catalog_job(executable: PathLike, channel: ProgressChannel, runner: Optional[Callable] = None) -> None:
    try:
        channel.post("Reading emulator version...")
        version = get_emulator_version(executable, runner=runner)
        channel.post("Loading machine list...")
        records = load_machine_list(executable, runner=runner)
        stats = catalog_stats(records)
    except BaseError as exc:
        logger.error("Machine list unavailable: %s", exc)
        channel.fail(str(exc), result=exc.to_dict())
        return
    except Exception as exc:
        logger.exception("Catalog job failed: %s", exc)
        channel.fail(f"Failed to load machine list: {exc}")
        return
    channel.post(f"Loaded {stats.total_games} games ({stats.working_games} working)")
    channel.complete(CatalogLoad(version=version, records=records, stats=stats))


def start_catalog_job(executable: PathLike, runner: Optional[Callable] = None) -> ProgressChannel:
    return _spawn("catalog", lambda channel: run_catalog_job(executable, channel, runner))
