from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.audit_store import sanitize_identity
from ..core.content_filters import StatusFilter
from ..core.reconciler import ReconcileMode, ReconcileSettings
from ..emulator.graphics_presets import GameGraphicsOverride, GraphicsConfig, GraphicsPreset
from ..emulator.launch_args import VideoSettings


class _BaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class EmulatorExecutable(_BaseConfigModel):
    name: str
    path: str
    version: str = "Unknown"
    total_games: int = 0
    working_games: int = 0

    @property
    def identity(self) -> str:
        return sanitize_identity(self.name, self.version)


class FilterSettings(_BaseConfigModel):
    search_text: str = ""
    year_from: str = ""
    year_to: str = ""
    manufacturer: str = ""
    show_clones: bool = False
    hide_non_games: bool = False
    hide_mahjong: bool = False
    hide_adult: bool = False
    hide_casino: bool = False
    show_favorites_only: bool = False
    status_filter: StatusFilter = StatusFilter.ALL

    @field_validator("status_filter", mode="before")
    @classmethod
    def _legacy_status_names(cls, value: Any) -> Any:
        legacy = {
            "All": "all",
            "WorkingOnly": "working",
            "ImperfectOnly": "imperfect",
            "NotWorkingOnly": "not_working",
        }
        if isinstance(value, str):
            return legacy.get(value, value)
        return value


class GameOverrideSettings(_BaseConfigModel):
    preset_name: str
    custom_args: List[str] = Field(default_factory=list)


class GraphicsSettings(_BaseConfigModel):
    global_preset: str = "Original"
    custom_presets: List[Dict[str, Any]] = Field(default_factory=list)
    game_overrides: Dict[str, GameOverrideSettings] = Field(default_factory=dict)

    def to_graphics_config(self) -> GraphicsConfig:
        return GraphicsConfig(
            custom_presets=[GraphicsPreset.from_dict(item) for item in self.custom_presets],
            game_overrides={
                rom_id: GameGraphicsOverride(
                    preset_name=override.preset_name,
                    custom_args=tuple(override.custom_args),
                )
                for rom_id, override in self.game_overrides.items()
            },
            global_preset=self.global_preset,
        )


class ReconcileTuning(_BaseConfigModel):
    merged_entry_threshold: int = 5
    classification_sample_limit: int = 50
    split_ratio_threshold: float = 0.3


class AppConfig(_BaseConfigModel):
    mame_executables: List[EmulatorExecutable] = Field(default_factory=list)
    selected_mame_index: int = 0
    rom_dirs: List[str] = Field(default_factory=list)
    extra_rom_dirs: List[str] = Field(default_factory=list)
    use_mame_audit: bool = False
    assume_merged_sets: bool = False
    mame_audit_times: Dict[str, str] = Field(default_factory=dict)
    favorite_games: List[str] = Field(default_factory=list)
    filter_settings: FilterSettings = Field(default_factory=FilterSettings)
    video_settings: VideoSettings = Field(default_factory=VideoSettings)
    graphics_config: GraphicsSettings = Field(default_factory=GraphicsSettings)
    reconcile: ReconcileTuning = Field(default_factory=ReconcileTuning)
    cache_dir: Optional[str] = None

    def selected_executable(self) -> Optional[EmulatorExecutable]:
        if 0 <= self.selected_mame_index < len(self.mame_executables):
            return self.mame_executables[self.selected_mame_index]
        return None

    def selected_identity(self) -> Optional[str]:
        executable = self.selected_executable()
        return executable.identity if executable is not None else None

    def all_rom_dirs(self) -> List[str]:
        return [*self.rom_dirs, *self.extra_rom_dirs]

    def reconcile_mode(self) -> ReconcileMode:
        return ReconcileMode.FAST if self.assume_merged_sets else ReconcileMode.ACCURATE

    def reconcile_settings(self) -> ReconcileSettings:
        return ReconcileSettings(
            merged_entry_threshold=self.reconcile.merged_entry_threshold,
            classification_sample_limit=self.reconcile.classification_sample_limit,
            split_ratio_threshold=self.reconcile.split_ratio_threshold,
        )

    def audit_cache_dir(self) -> Path:
        if self.cache_dir:
            return Path(self.cache_dir).expanduser()
        return Path.home() / ".local" / "share" / "arcade-launcher" / "ui"
