"""End-to-end checks for the command line and the diagnostics report."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from arcade_launcher import cli
from arcade_launcher.app.diagnostics import build_diagnostics_report
from arcade_launcher.config.io import load_config
from arcade_launcher.config.models import AppConfig, EmulatorExecutable
from arcade_launcher.core.audit_store import AuditSnapshot, AuditStore
from arcade_launcher.core.reconciler import reconcile
from arcade_launcher.logging_config import JsonFormatter, _parse_size_string, setup_logging

from conftest import write_zip

LISTXML = """<?xml version="1.0"?>
<mame build="0.261">
  <machine name="mario"><description>Mario Bros. (World)</description><year>1983</year>
    <manufacturer>Nintendo</manufacturer></machine>
  <machine name="bros" cloneof="mario" romof="mario"><description>Mario Bros. (Japan, bootleg)</description>
    <year>1983</year><manufacturer>bootleg</manufacturer></machine>
</mame>
"""


@pytest.fixture
def setup(tmp_path: Path):
    roms = tmp_path / "roms"
    write_zip(roms / "bros.zip", ["bros.a"])
    listxml = tmp_path / "listxml.xml"
    listxml.write_text(LISTXML, encoding="utf-8")
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"rom_dirs": [str(roms)], "cache_dir": str(tmp_path / "cache")}),
                           encoding="utf-8")
    yield {"roms": roms, "listxml": str(listxml), "config": str(config_path), "tmp": tmp_path}
    logging.getLogger().handlers.clear()


def _run(setup, *argv: str) -> int:
    return cli.main(["--config", setup["config"], "--listxml", setup["listxml"], *argv])


class TestCli:
    def test_scan_collapsed(self, setup, capsys) -> None:
        assert _run(setup, "scan") == 0

        out = capsys.readouterr().out.splitlines()
        assert "*Mario Bros. (World) [mario]" in out
        assert "  Mario Bros. (Japan, bootleg) [bros]" not in out
        assert out[-1] == "1 shown, 2 total (Split set)"

    def test_scan_expanded(self, setup, capsys) -> None:
        assert _run(setup, "scan", "--expand", "mario") == 0

        out = capsys.readouterr().out.splitlines()
        assert out[-3:-1] == ["*Mario Bros. (World) [mario]", "  Mario Bros. (Japan, bootleg) [bros]"]

    def test_classify(self, setup, capsys) -> None:
        assert _run(setup, "classify") == 0

        assert capsys.readouterr().out.splitlines()[0] == "Split"

    def test_launch_args(self, setup, capsys) -> None:
        assert _run(setup, "launch-args", "sf2") == 0

        out = capsys.readouterr().out.strip()
        assert out.startswith(f"-rompath {setup['roms']}")
        assert out.endswith(" sf2")

    def test_diagnose(self, setup, capsys) -> None:
        assert _run(setup, "diagnose") == 0

        out = capsys.readouterr().out
        assert "=== ROM Setup Diagnostics ===" in out
        assert "NOT CONFIGURED" in out
        assert "bros -> mario" in out

    def test_audit_without_emulator(self, setup, capsys) -> None:
        assert _run(setup, "audit") == 1
        assert "No emulator configured" in capsys.readouterr().err

    def test_scan_without_emulator_or_dump(self, setup, capsys) -> None:
        assert cli.main(["--config", setup["config"], "scan"]) == 1
        assert capsys.readouterr().err.startswith("Error: No emulator configured")

    def test_add_emulator(self, setup, monkeypatch, capsys) -> None:
        from arcade_launcher.core.machine_catalog import parse_machine_list

        monkeypatch.setattr(cli, "get_emulator_version", lambda path: "0.261 (mame0261)")
        monkeypatch.setattr(cli, "load_machine_list", lambda path: parse_machine_list(LISTXML))

        assert cli.main(["--config", setup["config"], "add-emulator", "/opt/mame/mame"]) == 0

        config = load_config(setup["config"])
        assert config.selected_executable().name == "mame"
        assert config.selected_executable().total_games == 2
        assert "Added mame 0.261 (mame0261)" in capsys.readouterr().out


class TestDiagnosticsReport:
    def test_directories_and_missing_parents(self, tmp_path: Path, mario_records) -> None:
        write_zip(tmp_path / "roms" / "bros.zip", ["bros.a"])
        config = AppConfig(rom_dirs=[str(tmp_path / "roms"), str(tmp_path / "gone")])
        result = reconcile(mario_records, config.all_rom_dirs())

        report = build_diagnostics_report(config, mario_records, result, AuditStore(tmp_path / "cache"))

        assert f"[ok] {tmp_path / 'roms'} - 1 archives found" in report
        assert f"[missing] {tmp_path / 'gone'} - DIRECTORY NOT FOUND" in report
        assert "Detected: Split" in report
        assert "Audit mode DISABLED" in report
        assert "Games loaded: 1" in report
        assert "TROUBLESHOOTING" not in report

    def test_audit_file_reported(self, tmp_path: Path, mario_records) -> None:
        store = AuditStore(tmp_path / "cache")
        store.save(AuditSnapshot("mame_0_261", frozenset({"mario", "bros"})))
        config = AppConfig(
            mame_executables=[EmulatorExecutable(name="MAME", path="/opt/mame", version="0.261")],
            use_mame_audit=True,
            mame_audit_times={"mame_0_261": "2024-05-01T10:00:00"},
        )

        report = build_diagnostics_report(config, mario_records, None, store)

        assert "Audit file exists: 2 games listed" in report
        assert "Last audit: 2024-05-01T10:00:00" in report

    def test_troubleshooting_when_nothing_loaded(self, tmp_path: Path, mario_records) -> None:
        (tmp_path / "roms").mkdir()
        config = AppConfig(rom_dirs=[str(tmp_path / "roms")], use_mame_audit=True,
                           mame_executables=[EmulatorExecutable(name="MAME", path="/opt/mame")])
        result = reconcile(mario_records, config.all_rom_dirs())

        report = build_diagnostics_report(config, mario_records, result, AuditStore(tmp_path / "cache"))

        assert "No audit file found!" in report
        assert "TROUBLESHOOTING: No games loaded!" in report


class TestLogging:
    def test_setup_replaces_handlers(self) -> None:
        try:
            first = setup_logging(log_level="DEBUG")
            second = setup_logging(log_level="WARNING")

            root = logging.getLogger()
            assert root.handlers == [second["handlers"]["console"]]
            assert first["handlers"]["console"] not in root.handlers
        finally:
            logging.getLogger().handlers.clear()

    def test_file_logging(self, tmp_path: Path) -> None:
        try:
            setup_logging(log_dir=str(tmp_path), enable_file_logging=True, enable_console_logging=False)
            logging.getLogger("arcade_launcher.test").error("disk full")
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert "disk full" in (tmp_path / "errors.log").read_text(encoding="utf-8")
        finally:
            for handler in logging.getLogger().handlers[:]:
                handler.close()
            logging.getLogger().handlers.clear()

    def test_json_formatter(self) -> None:
        record = logging.LogRecord("arcade_launcher.x", logging.INFO, __file__, 1, "hello %s", ("world",), None)

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"

    def test_size_strings(self) -> None:
        assert _parse_size_string("10MB") == 10 * 1024 * 1024
        assert _parse_size_string("512KB") == 512 * 1024
