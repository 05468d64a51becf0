"""Launch Argument Builder.

Turns one reconciled game id plus the user's directory, graphics and video
choices into the emulator's argument vector. Nothing here spawns a process;
callers own the process lifecycle.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from .graphics_presets import GraphicsConfig

# The emulator expects ';' between rompath entries on every platform.
ROMPATH_SEPARATOR = ";"

DATA_DIRECTORY_ARGS = (
    "-nvram_directory", "nvram",
    "-cfg_directory", "cfg",
    "-state_directory", "sta",
    "-snapshot_directory", "snap",
)

PathLike = Union[str, Path]


class VideoSettings(BaseModel):
    """User-level video options applied after the graphics preset."""

    model_config = ConfigDict(extra="allow")

    video_backend: str = "auto"
    window_mode: bool = True
    maximize: bool = False
    wait_vsync: bool = False
    sync_refresh: bool = False
    prescale: int = 0
    keep_aspect: bool = True
    filter: bool = True
    num_screens: int = 1
    custom_args: str = ""

    def to_args(self) -> List[str]:
        args: List[str] = []
        if self.video_backend and self.video_backend != "auto":
            args.extend(["-video", self.video_backend])
        if self.window_mode:
            args.append("-window")
        if self.maximize:
            args.append("-maximize")
        if self.wait_vsync:
            args.append("-waitvsync")
        if self.sync_refresh:
            args.append("-syncrefresh")
        if self.prescale > 0:
            args.extend(["-prescale", str(self.prescale)])
        if not self.keep_aspect:
            args.append("-nokeepaspect")
        if not self.filter:
            args.append("-nofilter")
        if self.num_screens > 1:
            args.extend(["-numscreens", str(self.num_screens)])
        args.extend(self.custom_args.split())
        return args


def build_rompath(rom_dirs: Sequence[PathLike], extra_rom_dirs: Sequence[PathLike] = ()) -> str:
    return ROMPATH_SEPARATOR.join(str(directory) for directory in (*rom_dirs, *extra_rom_dirs))


def build_launch_args(
    rom_id: str,
    rom_dirs: Sequence[PathLike],
    *,
    video: Optional[VideoSettings] = None,
    graphics: Optional[GraphicsConfig] = None,
    extra_rom_dirs: Sequence[PathLike] = (),
    data_dirs: bool = False,
) -> List[str]:
    """Build the argument vector for launching ``rom_id``.

    Args:
        rom_id: Reconciled game id; always the final argument.
        rom_dirs: ROM directories joined into one ``-rompath`` value.
        video: Video options; defaults apply when omitted.
        graphics: Preset configuration; the game's preset is looked up here.
        extra_rom_dirs: Additional directories appended to the rompath.
        data_dirs: Add relative nvram/cfg/state/snapshot directories for a
            launch whose working directory is the per-user data directory.

    Returns:
        Argument list without the executable.
    """
    if not rom_id:
        raise ValueError("rom_id must not be empty")

    video = video or VideoSettings()
    graphics = graphics or GraphicsConfig()

    args: List[str] = ["-rompath", build_rompath(rom_dirs, extra_rom_dirs)]
    if data_dirs:
        args.extend(DATA_DIRECTORY_ARGS)

    args.extend(graphics.game_args(rom_id))
    args.extend(video.to_args())
    args.append(rom_id)
    return args


def build_command(executable: PathLike, rom_id: str, rom_dirs: Sequence[PathLike], **kwargs) -> List[str]:
    """Full command line: the executable followed by :func:`build_launch_args`."""
    return [str(executable), *build_launch_args(rom_id, rom_dirs, **kwargs)]
