"""Holder for the current reconciled library.

Results are immutable snapshots. A recompute builds a new snapshot and swaps
it in wholesale; readers always see one consistent snapshot, never a
half-updated one.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

from ..core.machine_catalog import MachineRecord
from ..core.reconciler import ReconcileResult, RomSetClassification


@dataclass(frozen=True)
class LibrarySnapshot:
    identity: Optional[str] = None
    records: Mapping[str, MachineRecord] = field(default_factory=lambda: MappingProxyType({}))
    result: Optional[ReconcileResult] = None
    classification: RomSetClassification = RomSetClassification.UNKNOWN
    generation: int = 0

    @property
    def game_count(self) -> int:
        return len(self.result.roms) if self.result is not None else 0


class LibraryStateHolder:
    def __init__(self, initial: Optional[LibrarySnapshot] = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = initial or LibrarySnapshot()

    @property
    def current(self) -> LibrarySnapshot:
        with self._lock:
            return self._snapshot

    def _install(self, snapshot: LibrarySnapshot) -> LibrarySnapshot:
        self._snapshot = replace(
            snapshot,
            records=MappingProxyType(dict(snapshot.records)),
            generation=self._snapshot.generation + 1,
        )
        return self._snapshot

    def swap(self, snapshot: LibrarySnapshot) -> LibrarySnapshot:
        """Install ``snapshot`` and return the one it replaced."""
        with self._lock:
            previous = self._snapshot
            self._install(snapshot)
            return previous

    def with_result(
        self,
        result: ReconcileResult,
        classification: RomSetClassification,
    ) -> LibrarySnapshot:
        """Swap in a new reconcile result, keeping identity and records."""
        with self._lock:
            return self._install(replace(self._snapshot, result=result, classification=classification))
