"""Arcade Launcher - ROM-set reconciliation core for MAME-family emulators."""

from .version import load_version

__version__ = load_version()

__all__ = ["__version__"]
