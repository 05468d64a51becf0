"""Core reconciliation logic: machine catalog, audit cache and ROM-set reconciler."""

from .audit_store import AuditSnapshot, AuditStore, AuditSummary, sanitize_identity
from .machine_catalog import DriverStatus, MachineRecord, RomStatus, parse_machine_list
from .reconciler import (
    ParentClonePlan,
    ReconciledRom,
    ReconcileMode,
    ReconcileResult,
    ReconcileSettings,
    RomSetClassification,
    assemble_display_list,
    classify_rom_set,
    clone_present_in_archive,
    find_missing_parents,
    reconcile,
)

__all__ = [
    "AuditSnapshot",
    "AuditStore",
    "AuditSummary",
    "DriverStatus",
    "MachineRecord",
    "ParentClonePlan",
    "ReconcileMode",
    "ReconcileResult",
    "ReconcileSettings",
    "ReconciledRom",
    "RomSetClassification",
    "RomStatus",
    "assemble_display_list",
    "classify_rom_set",
    "clone_present_in_archive",
    "find_missing_parents",
    "parse_machine_list",
    "reconcile",
    "sanitize_identity",
]
