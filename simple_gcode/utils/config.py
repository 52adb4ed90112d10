"""Settings and interpreter configuration.

User settings live in a JSON file under the config directory. They are
merged over ``DEFAULT_SETTINGS`` on load, written atomically with a
backup of the previous file, and turned into the frozen
``ParserConfig`` the interpreter is built from.
"""

import copy
import json
import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    ARC_RESOLUTION_DEFAULT,
    AXIS_COUNT_DEFAULT,
    MAX_RECENT_FILES_DEFAULT,
    SETTINGS_BACKUP_SUFFIX,
    SETTINGS_FILENAME,
)
from .exceptions import (
    InvalidParameterError,
    InvalidRangeError,
    SettingsLoadError,
    SettingsSaveError,
    SettingsValidationError,
)
from .files import write_text_atomic
from .validation import validate_arc_resolution, validate_axis_count, validate_choice

logger = logging.getLogger(__name__)


class Dialect(Enum):
    """Accepted G-code command set."""

    STRICT = "strict"
    EMBEDDED = "embedded"
    EXTENDED = "extended"


class CommandIgnoreState(Enum):
    """Handling of an M-code that may be stripped from the program."""

    EXECUTE = "execute"
    STRIP = "strip"
    PROMPT = "prompt"


@dataclass(frozen=True)
class ParserConfig:
    dialect: Dialect = Dialect.EXTENDED
    axis_count: int = AXIS_COUNT_DEFAULT
    ignore_m6: CommandIgnoreState = CommandIgnoreState.EXECUTE
    ignore_m7: CommandIgnoreState = CommandIgnoreState.EXECUTE
    ignore_m8: CommandIgnoreState = CommandIgnoreState.EXECUTE

    def __post_init__(self) -> None:
        validate_axis_count(self.axis_count)

    def ignore_state(self, mcode: int) -> CommandIgnoreState:
        return getattr(self, f"ignore_m{mcode}", CommandIgnoreState.EXECUTE)


DEFAULT_SETTINGS: Dict[str, Any] = {
    "dialect": Dialect.EXTENDED.value,
    "axis_count": AXIS_COUNT_DEFAULT,
    "ignore_m6": CommandIgnoreState.EXECUTE.value,
    "ignore_m7": CommandIgnoreState.EXECUTE.value,
    "ignore_m8": CommandIgnoreState.EXECUTE.value,
    "arc_resolution": ARC_RESOLUTION_DEFAULT,
    "continue_on_error": False,
    "last_gcode_dir": "",
    "max_recent_files": MAX_RECENT_FILES_DEFAULT,
    "recent_files": [],
}

IGNORE_KEYS = ("ignore_m6", "ignore_m7", "ignore_m8")

_DIALECT_CHOICES = {d.value for d in Dialect}
_IGNORE_CHOICES = {s.value for s in CommandIgnoreState}


def merge_settings(defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``loaded`` on ``defaults``; nested dicts merge key by key.

    Unknown keys from the file are kept so newer settings survive a
    round trip through an older version.
    """
    merged = copy.deepcopy(defaults)
    for key, value in loaded.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_settings(current, value)
        else:
            merged[key] = value
    return merged


def _config_base_dir() -> Path:
    override = os.getenv("SIMPLE_GCODE_CONFIG_DIR")
    if override:
        return Path(override)
    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA")
    else:
        base = os.getenv("XDG_CONFIG_HOME")
    return Path(base or Path.home()) / "SimpleGcode"


def get_settings_path() -> str:
    """Path of the settings file, creating its directory when missing.

    Falls back to ``~/.simple_gcode`` and then the working directory
    when the config directory cannot be created.
    """
    candidates = [_config_base_dir(), Path.home() / ".simple_gcode"]
    for directory in candidates:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot use settings directory {directory}: {e}")
            continue
        return str(directory / SETTINGS_FILENAME)
    return str(Path.cwd() / SETTINGS_FILENAME)


class Settings:
    """User settings backed by a JSON file.

    Keys may be dotted to reach nested sections (``"ui.theme"``).

    Example:
        settings = Settings()
        settings.load()
        settings.set("dialect", "embedded")
        settings.save()
    """

    def __init__(self, filepath: Optional[str] = None):
        self.filepath = filepath or get_settings_path()
        self.data: Dict[str, Any] = copy.deepcopy(DEFAULT_SETTINGS)
        logger.info(f"Settings file: {self.filepath}")

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Merge the settings file over the defaults.

        Returns:
            False when there is no settings file yet

        Raises:
            SettingsLoadError: If the file exists but cannot be used
        """
        path = Path(self.filepath)
        if not path.exists():
            logger.info("No settings file found, using defaults")
            return False
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in settings file: {e}")
            raise SettingsLoadError(f"Invalid JSON: {e}")
        except OSError as e:
            logger.error(f"Failed to read settings file: {e}")
            raise SettingsLoadError(f"Failed to read file: {e}")
        if not isinstance(loaded, dict):
            raise SettingsLoadError("Settings file must contain a JSON object")
        self.data = merge_settings(DEFAULT_SETTINGS, loaded)
        logger.info("Settings loaded")
        return True

    def save(self) -> None:
        """Write the settings atomically, keeping a backup of the old file.

        Raises:
            SettingsSaveError: If the file cannot be written
        """
        try:
            text = json.dumps(self.data, indent=2, sort_keys=True)
            write_text_atomic(self.filepath, text, backup_suffix=SETTINGS_BACKUP_SUFFIX)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write settings: {e}")
            raise SettingsSaveError(f"Failed to save: {e}")
        logger.info("Settings saved")

    def reset_to_defaults(self) -> None:
        self.data = copy.deepcopy(DEFAULT_SETTINGS)
        logger.info("Settings reset to defaults")

    # ------------------------------------------------------------------
    # access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        *parents, leaf = key.split(".")
        node = self.data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def get_all(self) -> Dict[str, Any]:
        return copy.deepcopy(self.data)

    def validate(self) -> bool:
        """Check the interpreter-related settings.

        Raises:
            SettingsValidationError: On the first invalid value
        """
        try:
            validate_choice("dialect", self.data.get("dialect"), _DIALECT_CHOICES)
            validate_axis_count(self.data.get("axis_count"))
            for key in IGNORE_KEYS:
                validate_choice(key, self.data.get(key), _IGNORE_CHOICES)
            validate_arc_resolution(self.data.get("arc_resolution"))
        except (InvalidParameterError, InvalidRangeError) as e:
            raise SettingsValidationError(str(e))

        max_recent = self.data.get("max_recent_files")
        if isinstance(max_recent, bool) or not isinstance(max_recent, int) or max_recent < 0:
            raise SettingsValidationError(f"Invalid max_recent_files: {max_recent}")
        return True

    # ------------------------------------------------------------------
    # recent files
    # ------------------------------------------------------------------

    def add_recent_file(self, filepath: str) -> None:
        """Move ``filepath`` to the front of the recent list and remember its folder."""
        limit = self.data.get("max_recent_files", MAX_RECENT_FILES_DEFAULT)
        recent = [f for f in self.data.get("recent_files", []) if f != filepath]
        self.data["recent_files"] = ([filepath] + recent)[:limit]
        self.data["last_gcode_dir"] = os.path.dirname(os.path.abspath(filepath))

    def get_recent_files(self) -> List[str]:
        """Recent files that still exist on disk."""
        return [f for f in self.data.get("recent_files", []) if os.path.exists(f)]


def parser_config_from_settings(settings: Settings) -> ParserConfig:
    """Build the frozen interpreter configuration from user settings.

    Raises:
        SettingsValidationError: If a parser setting is invalid
    """
    settings.validate()
    policies = {
        key: CommandIgnoreState(settings.get(key).strip().lower()) for key in IGNORE_KEYS
    }
    return ParserConfig(
        dialect=Dialect(settings.get("dialect").strip().lower()),
        axis_count=int(settings.get("axis_count")),
        **policies,
    )
