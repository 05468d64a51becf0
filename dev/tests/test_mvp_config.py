from __future__ import annotations

import json
from pathlib import Path

import pytest

from arcade_launcher.config.io import get_config_path, load_config, parse_config, save_config
from arcade_launcher.config.models import AppConfig, EmulatorExecutable
from arcade_launcher.core.content_filters import StatusFilter
from arcade_launcher.core.reconciler import ReconcileMode
from arcade_launcher.exceptions import ConfigurationError


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.json")

    assert config == AppConfig()
    assert config.reconcile_mode() is ReconcileMode.ACCURATE
    assert config.selected_executable() is None


def test_save_and_reload(tmp_path: Path) -> None:
    config = AppConfig(
        mame_executables=[EmulatorExecutable(name="MAME", path="/opt/mame/mame", version="0.261")],
        rom_dirs=["/roms"],
        favorite_games=["sf2"],
    )
    config.filter_settings.status_filter = StatusFilter.WORKING_ONLY
    path = tmp_path / "nested" / "config.json"

    assert save_config(config, path)
    reloaded = load_config(path)

    assert reloaded.rom_dirs == ["/roms"]
    assert reloaded.selected_identity() == "mame_0_261"
    assert reloaded.filter_settings.status_filter is StatusFilter.WORKING_ONLY
    assert not path.with_suffix(".json.tmp").exists()


def test_legacy_fields_are_migrated(tmp_path: Path) -> None:
    path = _write(tmp_path / "config.json", {
        "last_audit_time": "2023-01-01T00:00:00",
        "mame_audit_times": "not a dict",
        "video_settings": None,
        "filter_settings": {"show_working_only": True, "selected_manufacturers": ["Capcom"]},
        "graphics_config": {"presets": [{"name": "Original"}], "global_preset": "CRT Classic"},
        "window_geometry": "800x600",
    })

    config = load_config(path)

    assert config.mame_audit_times == {}
    assert config.filter_settings.status_filter is StatusFilter.WORKING_ONLY
    assert config.graphics_config.global_preset == "CRT Classic"
    assert config.video_settings.window_mode
    assert config.model_dump()["window_geometry"] == "800x600"
    assert "last_audit_time" not in config.model_dump()


def test_legacy_status_names() -> None:
    config = parse_config({"filter_settings": {"status_filter": "ImperfectOnly"}})

    assert config.filter_settings.status_filter is StatusFilter.IMPERFECT_ONLY


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", '{"rom_dirs": 5}'])
def test_unusable_file_falls_back(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    assert load_config(path) == AppConfig()
    with pytest.raises(ConfigurationError) as excinfo:
        load_config(path, strict=True)
    assert excinfo.value.details["file_path"] == str(path)


def test_validation_errors_are_reported(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({"selected_mame_index": "first"}, source="inline")

    assert excinfo.value.error_code == "CONFIG_ERROR"
    assert excinfo.value.details["errors"]


def test_config_path_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARCADE_LAUNCHER_CONFIG", str(tmp_path / "alt.json"))

    assert get_config_path() == tmp_path / "alt.json"


def test_derived_settings() -> None:
    config = parse_config({
        "rom_dirs": ["/a"],
        "extra_rom_dirs": ["/b"],
        "assume_merged_sets": True,
        "reconcile": {"merged_entry_threshold": 8},
        "cache_dir": "/tmp/cache",
        "graphics_config": {
            "custom_presets": [{"name": "Mine", "video_backend": "opengl"}],
            "game_overrides": {"sf2": {"preset_name": "Mine", "custom_args": ["-bench", "10"]}},
        },
    })

    assert config.all_rom_dirs() == ["/a", "/b"]
    assert config.reconcile_mode() is ReconcileMode.FAST
    assert config.reconcile_settings().merged_entry_threshold == 8
    assert config.audit_cache_dir() == Path("/tmp/cache")
    graphics = config.graphics_config.to_graphics_config()
    assert graphics.game_args("sf2")[:2] == ["-video", "opengl"]
    assert graphics.game_args("sf2")[-2:] == ["-bench", "10"]


def test_selected_index_out_of_range() -> None:
    config = AppConfig(
        mame_executables=[EmulatorExecutable(name="MAME", path="/opt/mame")],
        selected_mame_index=3,
    )

    assert config.selected_executable() is None
    assert config.selected_identity() is None
