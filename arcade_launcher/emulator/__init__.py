"""Emulator integration: graphics presets, launch arguments and probing."""

from .graphics_presets import DEFAULT_PRESETS, GraphicsConfig, GraphicsPreset, VideoBackend
from .launch_args import VideoSettings, build_command, build_launch_args
from .mame_process import get_emulator_version, load_machine_list

__all__ = [
    "DEFAULT_PRESETS",
    "GraphicsConfig",
    "GraphicsPreset",
    "VideoBackend",
    "VideoSettings",
    "build_command",
    "build_launch_args",
    "get_emulator_version",
    "load_machine_list",
]
