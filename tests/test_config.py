import json
import logging

import pytest

from simple_gcode.utils.config import (
    DEFAULT_SETTINGS,
    CommandIgnoreState,
    Dialect,
    ParserConfig,
    Settings,
    get_settings_path,
    parser_config_from_settings,
)
from simple_gcode.utils.exceptions import (
    InvalidParameterError,
    InvalidRangeError,
    SettingsLoadError,
    SettingsValidationError,
)
from simple_gcode.utils.logging_config import APP_LOGGER_NAME, set_console_level, setup_logging
from simple_gcode.utils.validation import (
    validate_arc_resolution,
    validate_axis_count,
    validate_choice,
    validate_line_index,
)


@pytest.fixture
def settings_path(tmp_path):
    return str(tmp_path / "settings.json")


def test_settings_path_honours_env(isolated_config_dir):
    assert get_settings_path().startswith(str(isolated_config_dir))


def test_missing_file_uses_defaults(settings_path):
    settings = Settings(settings_path)
    assert settings.load() is False
    assert settings.get_all() == DEFAULT_SETTINGS


def test_save_and_reload(settings_path):
    settings = Settings(settings_path)
    settings.set("dialect", "strict")
    settings.set("ui.theme", "dark")
    settings.save()

    reloaded = Settings(settings_path)
    assert reloaded.load() is True
    assert reloaded.get("dialect") == "strict"
    assert reloaded.get("ui.theme") == "dark"
    assert reloaded.get("axis_count") == DEFAULT_SETTINGS["axis_count"]


def test_save_keeps_backup(settings_path):
    settings = Settings(settings_path)
    settings.save()
    settings["axis_count"] = 4
    settings.save()
    with open(settings_path + ".backup", encoding="utf-8") as f:
        assert json.load(f)["axis_count"] == DEFAULT_SETTINGS["axis_count"]


def test_loaded_file_is_merged_with_defaults(settings_path):
    with open(settings_path, "w", encoding="utf-8") as f:
        json.dump({"axis_count": 5, "custom": 1}, f)
    settings = Settings(settings_path)
    settings.load()
    assert settings["axis_count"] == 5
    assert settings["custom"] == 1
    assert settings["ignore_m6"] == "execute"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_invalid_settings_file(settings_path, content):
    with open(settings_path, "w", encoding="utf-8") as f:
        f.write(content)
    with pytest.raises(SettingsLoadError):
        Settings(settings_path).load()


def test_get_missing_key_default(settings_path):
    settings = Settings(settings_path)
    assert settings.get("nope.deeper", 42) == 42


def test_recent_files(settings_path, tmp_path):
    settings = Settings(settings_path)
    settings.set("max_recent_files", 2)
    paths = []
    for name in ("a.nc", "b.nc", "c.nc"):
        path = tmp_path / name
        path.write_text("G0 X1\n")
        paths.append(str(path))
        settings.add_recent_file(str(path))
    assert settings.get_recent_files() == [paths[2], paths[1]]
    assert settings.get("last_gcode_dir") == str(tmp_path)


def test_parser_config_from_settings(settings_path):
    settings = Settings(settings_path)
    settings.set("dialect", "Embedded")
    settings.set("axis_count", 4)
    settings.set("ignore_m6", "strip")
    config = parser_config_from_settings(settings)
    assert config == ParserConfig(
        dialect=Dialect.EMBEDDED,
        axis_count=4,
        ignore_m6=CommandIgnoreState.STRIP,
    )
    assert config.ignore_state(6) is CommandIgnoreState.STRIP
    assert config.ignore_state(3) is CommandIgnoreState.EXECUTE


@pytest.mark.parametrize(
    "key,value",
    [
        ("dialect", "fanuc"),
        ("axis_count", 7),
        ("ignore_m7", "sometimes"),
        ("arc_resolution", 1),
        ("max_recent_files", -1),
    ],
)
def test_invalid_settings_are_rejected(settings_path, key, value):
    settings = Settings(settings_path)
    settings.set(key, value)
    with pytest.raises(SettingsValidationError):
        parser_config_from_settings(settings)


def test_parser_config_validates_axis_count():
    with pytest.raises(InvalidRangeError):
        ParserConfig(axis_count=2)


def test_validators():
    assert validate_axis_count("5") == 5
    assert validate_arc_resolution(64) == 64
    assert validate_choice("dialect", " STRICT ", {"strict"}) == "strict"
    assert validate_line_index(3, 3) == 3
    with pytest.raises(InvalidParameterError):
        validate_axis_count(True)
    with pytest.raises(InvalidParameterError):
        validate_line_index(-1)
    with pytest.raises(InvalidParameterError):
        validate_choice("dialect", 3, {"strict"})


def test_setup_logging_is_idempotent(tmp_path):
    logger = setup_logging(console_level=logging.WARNING, log_dir=tmp_path)
    count = len(logger.handlers)
    setup_logging(console_level=logging.WARNING, log_dir=tmp_path)
    try:
        assert logger.name == APP_LOGGER_NAME
        assert len(logger.handlers) == count
        names = {h.get_name() for h in logger.handlers}
        assert {"simple_gcode_console", "simple_gcode_app_file", "simple_gcode_error_file"} <= names
        parser_logger = logging.getLogger(f"{APP_LOGGER_NAME}.parser")
        assert any(h.get_name() == "simple_gcode_parser_file" for h in parser_logger.handlers)
    finally:
        for log in (logger, logging.getLogger(f"{APP_LOGGER_NAME}.parser")):
            for handler in list(log.handlers):
                log.removeHandler(handler)
                handler.close()
        logger.propagate = True


def test_console_level_can_be_changed(tmp_path):
    logger = setup_logging(console_level=logging.WARNING, log_dir=tmp_path)
    try:
        set_console_level(logging.DEBUG)
        (console,) = [h for h in logger.handlers if h.get_name() == "simple_gcode_console"]
        assert console.level == logging.DEBUG
        setup_logging(console_level=logging.ERROR, log_dir=tmp_path)
        assert console.level == logging.ERROR
    finally:
        for log in (logger, logging.getLogger(f"{APP_LOGGER_NAME}.parser")):
            for handler in list(log.handlers):
                log.removeHandler(handler)
                handler.close()
        logger.propagate = True
