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

"""Constants and configuration values for Simple G-code.

This module centralizes the magic numbers, default values, and character
sets used by the tokenizer, interpreter, job aggregator and loader.
"""

# ============================================================================
# TOKENIZER CONSTANTS
# ============================================================================

PASS_THROUGH_CHARS = "$!~?"
"""Leading characters that mark a controller command line (not parsed)."""

COMMENT_CHAR = ";"
"""Start of an end-of-line comment."""

DEMARCATION_CHAR = "%"
"""Program demarcation marker; the second occurrence ends the program."""

VALUE_CHARS = "0123456789.+- "
"""Characters collected into a word value after its letter."""

MESSAGE_PREFIX = "MSG,"
"""Prefix of a parenthesized operator message comment."""

REMOVED_LINE_PLACEHOLDER = "(line removed)"
"""Replacement text for a line whose only word was stripped."""

# ============================================================================
# AXES AND UNITS
# ============================================================================

AXIS_LETTERS = ("X", "Y", "Z", "A", "B", "C")
"""Axis word letters in axis index order."""

MM_PER_INCH = 25.4
"""Conversion factor from inches to millimetres."""

AXIS_COUNT_MIN = 3
"""Minimum number of configured axes."""

AXIS_COUNT_MAX = 6
"""Maximum number of configured axes."""

AXIS_COUNT_DEFAULT = 3
"""Default number of configured axes."""

# ============================================================================
# COORDINATE SYSTEM SLOTS
# ============================================================================

COORD_SYSTEM_G54 = 0
"""Index of the first work coordinate system (G54)."""

COORD_SYSTEM_G59_3 = 8
"""Index of the last work coordinate system (G59.3)."""

COORD_SYSTEM_G92 = 10
"""Slot used for G92 offsets."""

COORD_SYSTEM_G28 = 11
"""Slot used for the G28.1 stored position."""

COORD_SYSTEM_G30 = 12
"""Slot used for the G30.1 stored position."""

# ============================================================================
# ARC GEOMETRY
# ============================================================================

ARC_RESOLUTION_DEFAULT = 32
"""Default number of interpolation steps per arc."""

ARC_RESOLUTION_MIN = 2
"""Minimum interpolation steps per arc."""

ARC_RESOLUTION_MAX = 10000
"""Maximum interpolation steps per arc."""

ARC_EPSILON = 1e-9
"""Tolerance used for coincident points and zero-length chords."""

# ============================================================================
# JOB LOADING
# ============================================================================

GCODE_LOAD_PROGRESS_INTERVAL = 0.25
"""Minimum seconds between load progress events."""

GCODE_LOAD_PROGRESS_LINES = 500
"""Lines between progress checks while bulk loading."""

MAX_RECENT_FILES_DEFAULT = 10
"""Default length of the recent files list."""

# ============================================================================
# VALIDATION REPORT
# ============================================================================

DETAIL_LINE_LIMIT = 200
"""Maximum number of offending lines kept in a validation report."""

DETAIL_LINE_TEXT_LIMIT = 160
"""Maximum characters of a line shown in a validation report."""

# ============================================================================
# FILE SETTINGS
# ============================================================================

SETTINGS_FILENAME = "simple_gcode_settings.json"
"""Name of the settings file."""

SETTINGS_BACKUP_SUFFIX = ".backup"
"""Suffix for settings backup file."""

TEMP_FILE_SUFFIX = ".tmp"
"""Suffix of the temporary file written before an atomic replace."""

TOKEN_STORE_FORMAT = "simple_gcode.tokens"
"""Format tag written into token documents."""

TOKEN_STORE_VERSION = 1
"""Token document schema version."""
