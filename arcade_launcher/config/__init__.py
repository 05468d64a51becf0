"""Configuration models and persistence."""

from .io import get_config_path, load_config, parse_config, save_config
from .models import (
    AppConfig,
    EmulatorExecutable,
    FilterSettings,
    GameOverrideSettings,
    GraphicsSettings,
    ReconcileTuning,
    VideoSettings,
)

__all__ = [
    "AppConfig",
    "EmulatorExecutable",
    "FilterSettings",
    "GameOverrideSettings",
    "GraphicsSettings",
    "ReconcileTuning",
    "VideoSettings",
    "get_config_path",
    "load_config",
    "parse_config",
    "save_config",
]
