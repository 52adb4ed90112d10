import json

import pytest

from simple_gcode.cli import main
from simple_gcode.token_store import load_tokens

PROGRAM = ["G21 G90", "G0 X1 Y2", "G1 X4 F100", "M30"]


@pytest.fixture
def settings_file(tmp_path):
    return str(tmp_path / "settings.json")


def test_summary_is_printed(write_program, settings_file, capsys):
    path = str(write_program(PROGRAM))
    assert main([path, "--settings", settings_file]) == 0
    out = capsys.readouterr().out
    assert "Job: program.nc" in out
    assert "Lines: 4" in out
    assert "X: 0.000 .. 4.000" in out
    assert "Y: 0.000 .. 2.000" in out
    assert "Feed: 100 .. 100" in out

    with open(settings_file, encoding="utf-8") as f:
        saved = json.load(f)
    assert saved["recent_files"] == [path]


def test_validate_only(write_program, settings_file, capsys):
    path = str(write_program(PROGRAM))
    assert main([path, "--validate", "--settings", settings_file]) == 0
    assert "No issues detected." in capsys.readouterr().out


def test_validate_reports_errors(write_program, settings_file, capsys):
    path = str(write_program(["G0 G1 X1", "M30"]))
    assert main([path, "--validate", "-v", "--settings", settings_file]) == 1
    out = capsys.readouterr().out
    assert "Lines with errors: 1" in out
    assert "Line 1:" in out


def test_export_tokens(write_program, settings_file, tmp_path):
    path = str(write_program(PROGRAM))
    out = tmp_path / "tokens.json"
    assert main([path, "--export-tokens", str(out), "--settings", settings_file]) == 0
    tokens = load_tokens(out)
    assert tokens
    assert tokens[-1].line_number == 4


def test_toolpath_bounds(write_program, settings_file, capsys):
    path = str(write_program(["G2 X10 Y0 I5 J0", "M2"]))
    assert main([path, "--toolpath", "--arc-resolution", "16", "--settings", settings_file]) == 0
    out = capsys.readouterr().out
    assert "Toolpath: X 0.000 .. 10.000  Y 0.000 .. 5.000" in out
    assert "(16 segments)" in out


def test_missing_file(tmp_path, settings_file, capsys):
    assert main([str(tmp_path / "missing.nc"), "--settings", settings_file]) == 1
    assert "Error:" in capsys.readouterr().err


def test_dialect_rejects_command(write_program, settings_file, capsys):
    path = str(write_program(["G81 X1 Y1 Z-1 R1", "G80", "M2"]))
    assert main([path, "--dialect", "embedded", "--settings", settings_file]) == 1
    assert "Error:" in capsys.readouterr().err
    assert main([path, "--settings", settings_file]) == 0


def test_continue_on_error(write_program, settings_file, capsys):
    path = str(write_program(["G0 X1", "G0 G1 X2", "M30"]))
    assert main([path, "--continue-on-error", "--settings", settings_file]) == 0
    assert "Skipped: 1" in capsys.readouterr().out


def test_invalid_axis_count(write_program, settings_file, capsys):
    path = str(write_program(PROGRAM))
    assert main([path, "--axis-count", "9", "--settings", settings_file]) == 2
    assert "out of range" in capsys.readouterr().err


def test_one_off_flags_are_not_saved(write_program, settings_file):
    path = str(write_program(["G0 X1", "G0 G1 X2", "M30"]))
    args = [path, "--continue-on-error", "--dialect", "embedded", "--axis-count", "4", "--settings", settings_file]
    assert main(args) == 0

    with open(settings_file, encoding="utf-8") as f:
        saved = json.load(f)
    assert saved["continue_on_error"] is False
    assert saved["dialect"] == "extended"
    assert saved["axis_count"] == 3
    assert saved["recent_files"] == [path]

    assert main([path, "--settings", settings_file]) == 1
