"""Version utilities for Arcade Launcher."""

from __future__ import annotations

from importlib import metadata

DEFAULT_VERSION = "0.4.0"


def load_version() -> str:
    try:
        version = metadata.version("arcade-launcher").strip()
        return version or DEFAULT_VERSION
    except metadata.PackageNotFoundError:
        return DEFAULT_VERSION
