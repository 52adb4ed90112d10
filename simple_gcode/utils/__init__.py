"""Utility modules for Simple G-code."""

from .constants import *
from .exceptions import *
from .validation import *
from .config import (
    CommandIgnoreState,
    Dialect,
    ParserConfig,
    Settings,
    get_settings_path,
    parser_config_from_settings,
)

__all__ = [
    # Config
    "CommandIgnoreState",
    "Dialect",
    "ParserConfig",
    "Settings",
    "get_settings_path",
    "parser_config_from_settings",
]
