import pytest

from simple_gcode.gcode_parser import GcodeParser
from simple_gcode.utils.config import ParserConfig


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Keep settings and logs written during tests out of the user's config dir."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("SIMPLE_GCODE_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def run_program():
    """Parse lines with a fresh parser and return it."""

    def _run(lines, config=None, **kwargs):
        parser = GcodeParser(config or ParserConfig(), **kwargs)
        for line in lines:
            parser.parse_line(line)
        return parser

    return _run


@pytest.fixture
def write_program(tmp_path):
    def _write(lines, name="program.nc"):
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
