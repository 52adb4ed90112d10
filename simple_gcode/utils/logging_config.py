#!/usr/bin/env python3
# Simple G-code (G-code interpreter core)
# Copyright (C) 2026 Bob Kolbasowski
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Optional (not required by the license): If you make improvements, please consider
# contributing them back upstream (e.g., via a pull request) so others can benefit.
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Structured logging setup for Simple G-code.

The package logs under ``simple_gcode``. ``setup_logging`` installs:

- a console handler at the requested level
- ``simple_gcode.log``, everything from DEBUG up
- ``errors.log``, warnings and errors with source locations
- ``parser.log``, per-line parse failures from the ``simple_gcode.parser`` logger
"""

from __future__ import annotations

import logging
import logging.handlers
import tempfile
from pathlib import Path

from .config import get_settings_path

APP_LOGGER_NAME = "simple_gcode"
PARSER_LOGGER_NAME = f"{APP_LOGGER_NAME}.parser"
CONSOLE_HANDLER_NAME = "simple_gcode_console"
LOG_DIRNAME = "logs"

# (handler name, logger name, file name, level, max bytes, backups, format, datefmt)
_FILE_HANDLERS = (
    (
        "simple_gcode_app_file",
        APP_LOGGER_NAME,
        "simple_gcode.log",
        logging.DEBUG,
        10_000_000,
        5,
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        None,
    ),
    (
        "simple_gcode_error_file",
        APP_LOGGER_NAME,
        "errors.log",
        logging.WARNING,
        2_000_000,
        5,
        "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d\n%(message)s\n",
        None,
    ),
    (
        "simple_gcode_parser_file",
        PARSER_LOGGER_NAME,
        "parser.log",
        logging.DEBUG,
        5_000_000,
        3,
        "%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
)


def _find_handler(logger: logging.Logger, name: str) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.get_name() == name:
            return handler
    return None


def get_log_dir() -> Path:
    """Resolve the directory for log files (creates it if needed)."""
    log_dir = Path(get_settings_path()).parent / LOG_DIRNAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
    except OSError:
        fallback = Path(tempfile.gettempdir()) / "simple_gcode_logs"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


def set_console_level(level: int) -> None:
    """Change the console verbosity after ``setup_logging`` has run."""
    handler = _find_handler(logging.getLogger(APP_LOGGER_NAME), CONSOLE_HANDLER_NAME)
    if handler is not None:
        handler.setLevel(level)


def setup_logging(console_level: int = logging.INFO, log_dir: Path | None = None) -> logging.Logger:
    """Initialize logging with a console handler and rotating file handlers.

    Handlers are looked up by name, so calling this again only adjusts the
    console level.
    """
    if log_dir is None:
        log_dir = get_log_dir()
    log_dir = Path(log_dir)

    root = logging.getLogger(APP_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    if _find_handler(root, CONSOLE_HANDLER_NAME) is None:
        console = logging.StreamHandler()
        console.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
        )
        console.set_name(CONSOLE_HANDLER_NAME)
        root.addHandler(console)
    set_console_level(console_level)

    for name, logger_name, filename, level, max_bytes, backups, fmt, datefmt in _FILE_HANDLERS:
        target = logging.getLogger(logger_name)
        target.setLevel(logging.DEBUG)
        if _find_handler(target, name) is not None:
            continue
        handler = logging.handlers.RotatingFileHandler(
            log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backups,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
        handler.set_name(name)
        target.addHandler(handler)

    return root
