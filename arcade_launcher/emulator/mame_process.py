"""Probing the emulator binary for its version and machine list."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from ..core.machine_catalog import MachineRecord, parse_machine_list
from ..exceptions import ExternalProcessError

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "Unknown"

Runner = Callable[..., "subprocess.CompletedProcess"]
PathLike = Union[str, Path]


def _run(executable: PathLike, argument: str, runner: Optional[Runner], text: bool):
    run = runner or subprocess.run
    args = [str(executable), argument]
    try:
        return run(args, capture_output=True, text=text, check=False)
    except OSError as exc:
        raise ExternalProcessError(
            f"Failed to start emulator: {exc}",
            executable=str(executable),
            arguments=args[1:],
        ) from exc


def get_emulator_version(executable: PathLike, runner: Optional[Runner] = None) -> str:
    """First line of ``-version`` output, or ``"Unknown"``."""
    try:
        completed = _run(executable, "-version", runner, text=True)
    except ExternalProcessError as exc:
        logger.warning("%s", exc)
        return UNKNOWN_VERSION
    lines = (completed.stdout or "").strip().splitlines()
    return lines[0].strip() if lines and lines[0].strip() else UNKNOWN_VERSION


def load_machine_list(executable: PathLike, runner: Optional[Runner] = None) -> Dict[str, MachineRecord]:
    """Run ``-listxml`` and parse the result into the machine catalog.

    Raises:
        ExternalProcessError: The executable could not be started.
        ParseError: The output holds no machine entries.
    """
    logger.info("Loading machine list from %s", executable)
    completed = _run(executable, "-listxml", runner, text=False)
    if completed.returncode not in (0, None):
        logger.warning("%s -listxml exited with code %s", executable, completed.returncode)
    return parse_machine_list(completed.stdout or b"")
