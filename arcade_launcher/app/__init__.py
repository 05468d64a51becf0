"""App-level services.

Background jobs, the progress channel they report through, the current
library snapshot and the diagnostics report. Intended to be called by a
GUI or the CLI.
"""

from .progress_channel import ProgressChannel, ProgressEvent

__all__ = ["ProgressChannel", "ProgressEvent"]
