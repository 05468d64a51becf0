"""Config I/O utilities."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import AppConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ARCADE_LAUNCHER_CONFIG"

PathLike = Union[str, Path]


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "arcade-launcher" / "config.json"


def _migrate_config_data(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """Bring files written by older versions up to the current shape.

    Migration is additive: missing sections are filled with defaults and
    superseded keys are dropped, the file is never rejected for being old.
    """
    data = dict(config_data)

    legacy_audit_time = data.pop("last_audit_time", None)
    if not isinstance(data.get("mame_audit_times"), dict):
        data["mame_audit_times"] = {}
    if legacy_audit_time:
        logger.debug("Dropping legacy last_audit_time=%s", legacy_audit_time)

    for key in ("video_settings", "filter_settings", "graphics_config", "reconcile"):
        if not isinstance(data.get(key), dict):
            data.pop(key, None)

    filters = data.get("filter_settings")
    if isinstance(filters, dict):
        filters = dict(filters)
        if filters.pop("show_working_only", False) and "status_filter" not in filters:
            filters["status_filter"] = "working"
        filters.pop("selected_manufacturers", None)
        data["filter_settings"] = filters

    graphics = data.get("graphics_config")
    if isinstance(graphics, dict):
        graphics = dict(graphics)
        # Built-in presets are code, not configuration.
        graphics.pop("presets", None)
        data["graphics_config"] = graphics

    data.setdefault("assume_merged_sets", False)
    data.setdefault("use_mame_audit", False)
    return data


def parse_config(config_data: Dict[str, Any], source: Optional[str] = None) -> AppConfig:
    try:
        return AppConfig.model_validate(_migrate_config_data(config_data))
    except ValidationError as exc:
        raise ConfigurationError(
            "Invalid configuration",
            file_path=source,
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def load_config(config_path: Optional[PathLike] = None, *, strict: bool = False) -> AppConfig:
    """Load the configuration, falling back to defaults when unusable.

    Args:
        config_path: File to read; :func:`get_config_path` when omitted.
        strict: Raise :class:`ConfigurationError` instead of falling back.
    """
    path = Path(config_path) if config_path is not None else get_config_path()
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return AppConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ConfigurationError("Config root must be an object", file_path=str(path))
        return parse_config(data, source=str(path))
    except (OSError, ValueError, ConfigurationError) as exc:
        if strict:
            if isinstance(exc, ConfigurationError):
                raise
            raise ConfigurationError(f"Cannot read config: {exc}", file_path=str(path)) from exc
        logger.warning("Config %s unusable, using defaults: %s", path, exc)
        return AppConfig()


def save_config(config: AppConfig, config_path: Optional[PathLike] = None) -> bool:
    path = Path(config_path) if config_path is not None else get_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump(mode="json")
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(path)
        return True
    except OSError as exc:
        logger.warning("Failed to save config %s: %s", path, exc)
        return False
