from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import pytest

from arcade_launcher.emulator.graphics_presets import (
    DEFAULT_PRESETS,
    GameGraphicsOverride,
    GraphicsConfig,
    GraphicsPreset,
    VideoBackend,
)
from arcade_launcher.emulator.launch_args import VideoSettings, build_command, build_launch_args
from arcade_launcher.emulator.mame_process import get_emulator_version, load_machine_list
from arcade_launcher.exceptions import ExternalProcessError


class TestBuildLaunchArgs:
    def test_defaults(self) -> None:
        args = build_launch_args("pacman", ["/roms"])

        assert args == ["-rompath", "/roms", "-nofilter", "-keepaspect", "-window", "pacman"]

    def test_rompath_joins_all_directories(self) -> None:
        args = build_launch_args("sf2", ["/a", Path("/b")], extra_rom_dirs=["/c"])

        assert args[:2] == ["-rompath", f"/a;{Path('/b')};/c"]
        assert args[-1] == "sf2"

    def test_empty_rom_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_launch_args("", ["/roms"])

    def test_data_directories(self) -> None:
        args = build_launch_args("sf2", ["/roms"], data_dirs=True)

        assert args[2:4] == ["-nvram_directory", "nvram"]
        assert "-snapshot_directory" in args

    def test_graphics_preset_then_video(self) -> None:
        graphics = GraphicsConfig(global_preset="CRT Classic")
        video = VideoSettings(window_mode=False, maximize=True, custom_args="-skip_gameinfo -nosound")

        args = build_launch_args("sf2", ["/roms"], video=video, graphics=graphics)

        assert args == [
            "-rompath", "/roms",
            "-video", "bgfx", "-bgfx_screen_chains", "crt-geom", "-filter", "-keepaspect",
            "-maximize", "-skip_gameinfo", "-nosound",
            "sf2",
        ]

    def test_per_game_override(self) -> None:
        graphics = GraphicsConfig(
            game_overrides={"sf2": GameGraphicsOverride("Sharp Pixels", ("-artwork_crop",))}
        )

        sf2 = build_launch_args("sf2", ["/roms"], graphics=graphics)
        pacman = build_launch_args("pacman", ["/roms"], graphics=graphics)

        assert sf2[2:9] == ["-video", "opengl", "-nofilter", "-prescale", "3", "-keepaspect", "-nounevenstretch"]
        assert sf2[9] == "-artwork_crop"
        assert "-video" not in pacman

    def test_preset_resolved_once_and_logged(self, monkeypatch, caplog) -> None:
        graphics = GraphicsConfig(game_overrides={"sf2": GameGraphicsOverride("CRT Classic")})
        lookups = []
        original = GraphicsConfig.get_game_preset

        def counting(self, rom_id):
            lookups.append(rom_id)
            return original(self, rom_id)

        monkeypatch.setattr(GraphicsConfig, "get_game_preset", counting)
        with caplog.at_level(logging.DEBUG, logger="arcade_launcher.emulator.graphics_presets"):
            args = build_launch_args("sf2", ["/roms"], graphics=graphics)

        assert lookups == ["sf2"]
        assert "Using graphics preset CRT Classic for sf2" in caplog.messages
        assert args[2:-1] == graphics.get_preset("CRT Classic").to_args() + VideoSettings().to_args()

    def test_build_command(self) -> None:
        command = build_command("/opt/mame/mame", "galaga", ["/roms"])

        assert command[0] == "/opt/mame/mame"
        assert command[-1] == "galaga"


class TestVideoSettings:
    def test_all_options(self) -> None:
        video = VideoSettings(
            video_backend="opengl",
            window_mode=False,
            wait_vsync=True,
            sync_refresh=True,
            prescale=2,
            keep_aspect=False,
            filter=False,
            num_screens=2,
        )

        assert video.to_args() == [
            "-video", "opengl", "-waitvsync", "-syncrefresh", "-prescale", "2",
            "-nokeepaspect", "-nofilter", "-numscreens", "2",
        ]

    def test_unknown_fields_kept(self) -> None:
        video = VideoSettings.model_validate({"window_mode": False, "legacy_flag": 1})

        assert video.to_args() == []
        assert video.model_dump()["legacy_flag"] == 1


class TestGraphicsPresets:
    def test_seven_builtin_presets(self) -> None:
        assert [preset.name for preset in DEFAULT_PRESETS] == [
            "Original",
            "CRT Classic",
            "CRT Deluxe",
            "Sharp Pixels",
            "Smooth HD",
            "LCD Grid",
            "Arcade Phosphor",
        ]

    def test_opengl_shader(self) -> None:
        preset = GraphicsPreset("glsl", video_backend=VideoBackend.OPENGL, shader_chain="crt")

        assert preset.to_args()[:6] == ["-video", "opengl", "-gl_glsl", "1", "-glsl_shader_mame0", "crt"]

    def test_dict_round_trip_with_legacy_backend(self) -> None:
        preset = GraphicsPreset.from_dict({"name": "Mine", "video_backend": "Software", "prescale": "2"})

        assert preset.video_backend is VideoBackend.SOFTWARE
        assert preset.prescale == 2
        assert GraphicsPreset.from_dict(preset.to_dict()) == preset

    def test_unknown_override_preset_falls_back_to_global(self) -> None:
        graphics = GraphicsConfig(
            global_preset="Smooth HD",
            game_overrides={"sf2": GameGraphicsOverride("Deleted preset")},
        )

        assert graphics.get_game_preset("sf2").name == "Smooth HD"

    def test_unknown_global_falls_back_to_first(self) -> None:
        assert GraphicsConfig(global_preset="nope").get_game_preset("x").name == "Original"

    def test_custom_presets(self) -> None:
        graphics = GraphicsConfig()
        graphics.add_custom_preset(GraphicsPreset("Mine", custom_args=("-bench", "60")))

        assert graphics.preset_names()[-1] == "Mine"
        assert graphics.get_preset("Mine").to_args()[-2:] == ["-bench", "60"]


class TestEmulatorProcess:
    def test_version_first_line(self) -> None:
        def runner(args, **kwargs):
            return subprocess.CompletedProcess(args, 0, stdout="0.261 (mame0261)\nextra\n", stderr="")

        assert get_emulator_version("/opt/mame", runner=runner) == "0.261 (mame0261)"

    def test_version_unknown_when_start_fails(self) -> None:
        def runner(args, **kwargs):
            raise PermissionError(args[0])

        assert get_emulator_version("/opt/mame", runner=runner) == "Unknown"

    def test_machine_list_from_bytes(self) -> None:
        xml = b'<mame><machine name="pacman"><description>Pac-Man</description></machine></mame>'

        def runner(args, **kwargs):
            assert args[1] == "-listxml"
            assert kwargs["text"] is False
            return subprocess.CompletedProcess(args, 0, stdout=xml, stderr=b"")

        assert load_machine_list("/opt/mame", runner=runner)["pacman"].display_name == "Pac-Man"

    def test_machine_list_start_failure(self) -> None:
        def runner(args, **kwargs):
            raise FileNotFoundError(args[0])

        with pytest.raises(ExternalProcessError) as excinfo:
            load_machine_list("/missing/mame", runner=runner)

        assert excinfo.value.to_dict()["error_code"] == "EXTERNAL_PROCESS_ERROR"
