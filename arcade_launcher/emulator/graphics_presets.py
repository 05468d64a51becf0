"""Graphics presets translated into emulator video arguments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class VideoBackend(str, Enum):
    """Emulator video output modules."""

    DEFAULT = "default"
    OPENGL = "opengl"
    BGFX = "bgfx"
    SOFTWARE = "soft"
    D3D = "d3d"  # Windows only
    METAL = "metal"  # macOS only


# Spellings found in older configuration files.
_BACKEND_ALIASES = {"software": "soft", "auto": "default"}


@dataclass(frozen=True)
class GraphicsPreset:
    name: str
    description: str = ""
    video_backend: VideoBackend = VideoBackend.DEFAULT
    shader_chain: Optional[str] = None
    filter: bool = False
    prescale: int = 1
    scanlines: bool = False
    keep_aspect: bool = True
    custom_args: Tuple[str, ...] = ()

    def to_args(self) -> List[str]:
        args: List[str] = []

        if self.video_backend is not VideoBackend.DEFAULT:
            args.extend(["-video", self.video_backend.value])

        if self.shader_chain:
            if self.video_backend is VideoBackend.BGFX:
                args.extend(["-bgfx_screen_chains", self.shader_chain])
            elif self.video_backend is VideoBackend.OPENGL:
                args.extend(["-gl_glsl", "1", "-glsl_shader_mame0", self.shader_chain])

        args.append("-filter" if self.filter else "-nofilter")

        if self.prescale > 1:
            args.extend(["-prescale", str(self.prescale)])

        if self.keep_aspect:
            args.append("-keepaspect")

        args.extend(self.custom_args)
        return args

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GraphicsPreset":
        backend = str(data.get("video_backend") or VideoBackend.DEFAULT.value).lower()
        return cls(
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            video_backend=VideoBackend(_BACKEND_ALIASES.get(backend, backend)),
            shader_chain=data.get("shader_chain") or None,
            filter=bool(data.get("filter", False)),
            prescale=int(data.get("prescale", 1)),
            scanlines=bool(data.get("scanlines", False)),
            keep_aspect=bool(data.get("keep_aspect", True)),
            custom_args=tuple(str(arg) for arg in data.get("custom_args") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "video_backend": self.video_backend.value,
            "shader_chain": self.shader_chain,
            "filter": self.filter,
            "prescale": self.prescale,
            "scanlines": self.scanlines,
            "keep_aspect": self.keep_aspect,
            "custom_args": list(self.custom_args),
        }


DEFAULT_PRESETS: Tuple[GraphicsPreset, ...] = (
    GraphicsPreset(
        name="Original",
        description="Raw pixels, no enhancements",
    ),
    GraphicsPreset(
        name="CRT Classic",
        description="Arcade monitor with scanlines and curvature",
        video_backend=VideoBackend.BGFX,
        shader_chain="crt-geom",
        filter=True,
        scanlines=True,
    ),
    GraphicsPreset(
        name="CRT Deluxe",
        description="Enhanced CRT with bloom and halation",
        video_backend=VideoBackend.BGFX,
        shader_chain="crt-geom-deluxe",
        filter=True,
        scanlines=True,
        custom_args=("-bloom_lvl", "1.5"),
    ),
    GraphicsPreset(
        name="Sharp Pixels",
        description="Integer scaled, no filtering",
        video_backend=VideoBackend.OPENGL,
        prescale=3,
        custom_args=("-nounevenstretch",),
    ),
    GraphicsPreset(
        name="Smooth HD",
        description="Bilinear filtering for smooth appearance",
        video_backend=VideoBackend.OPENGL,
        filter=True,
        prescale=2,
    ),
    GraphicsPreset(
        name="LCD Grid",
        description="Modern LCD/LED display simulation",
        video_backend=VideoBackend.BGFX,
        shader_chain="lcd-grid",
        filter=True,
    ),
    GraphicsPreset(
        name="Arcade Phosphor",
        description="Phosphor glow and aperture grille",
        video_backend=VideoBackend.BGFX,
        shader_chain="crt-geom,aperture,bloom",
        filter=True,
        scanlines=True,
    ),
)


@dataclass(frozen=True)
class GameGraphicsOverride:
    preset_name: str
    custom_args: Tuple[str, ...] = ()


@dataclass
class GraphicsConfig:
    """Global preset choice plus per-game overrides."""

    presets: Tuple[GraphicsPreset, ...] = DEFAULT_PRESETS
    custom_presets: List[GraphicsPreset] = field(default_factory=list)
    game_overrides: Dict[str, GameGraphicsOverride] = field(default_factory=dict)
    global_preset: str = "Original"

    def get_preset(self, name: str) -> Optional[GraphicsPreset]:
        for preset in (*self.presets, *self.custom_presets):
            if preset.name == name:
                return preset
        return None

    def get_game_preset(self, rom_id: str) -> GraphicsPreset:
        override = self.game_overrides.get(rom_id)
        if override is not None:
            preset = self.get_preset(override.preset_name)
            if preset is not None:
                return preset
        return self.get_preset(self.global_preset) or self.presets[0]

    def game_args(self, rom_id: str) -> List[str]:
        preset = self.get_game_preset(rom_id)
        logger.debug("Using graphics preset %s for %s", preset.name, rom_id)
        args = preset.to_args()
        override = self.game_overrides.get(rom_id)
        if override is not None:
            args.extend(override.custom_args)
        return args

    def add_custom_preset(self, preset: GraphicsPreset) -> None:
        self.custom_presets.append(preset)

    def preset_names(self) -> List[str]:
        return [preset.name for preset in (*self.presets, *self.custom_presets)]
