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

"""Custom exceptions for Simple G-code.

This module defines specific exception types for different error conditions,
enabling better error handling and debugging throughout the interpreter.
All G-code parse errors are line-scoped: the job loader decides whether a
failing line aborts the load or is skipped.
"""

from typing import Any, Optional


class SimpleGcodeException(Exception):
    """Base exception for all Simple G-code errors."""
    pass


# ============================================================================
# G-CODE EXCEPTIONS
# ============================================================================

class GcodeException(SimpleGcodeException):
    """Base exception for G-code related errors."""
    pass


class GcodeParseError(GcodeException):
    """Failed to parse a G-code line."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        word: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.line_content = line_content
        self.word = word

    def __str__(self) -> str:
        text = self.message
        if self.word:
            text = f"{text} ({self.word})"
        if self.line_number is not None:
            text = f"Line {self.line_number}: {text}"
        return text

    def with_line(self, line_number: Optional[int], line_content: Optional[str]) -> "GcodeParseError":
        """Attach job position information, keeping what is already known."""
        if self.line_number is None:
            self.line_number = line_number
        if self.line_content is None:
            self.line_content = line_content
        return self


class MalformedWordError(GcodeParseError):
    """A word value is not a valid number."""
    pass


class UnrecognizedWordError(GcodeParseError):
    """A word uses a letter the interpreter does not know."""
    pass


class RepeatedWordError(GcodeParseError):
    """The same word letter appears twice on one line."""
    pass


class ModalGroupViolationError(GcodeParseError):
    """Two commands from the same modal group on one line."""

    def __init__(self, message: str, group: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.group = group


class AxisCommandConflictError(GcodeParseError):
    """More than one command on the line wants to own the axis words."""
    pass


class MissingWordError(GcodeParseError):
    """A command is missing a required companion word."""
    pass


class DegenerateArcError(GcodeParseError):
    """Arc geometry cannot be resolved (e.g. radius shorter than half the chord)."""
    pass


class UnsupportedCommandError(GcodeParseError):
    """Command is not legal under the active dialect or axis configuration."""
    pass


class GcodeFileError(GcodeException):
    """Error reading or writing G-code file."""
    pass


class JobLoadCancelled(GcodeException):
    """A bulk job load was cancelled between lines."""

    def __init__(self, message: str, lines_loaded: int = 0):
        super().__init__(message)
        self.lines_loaded = lines_loaded


# ============================================================================
# TOKEN STORE EXCEPTIONS
# ============================================================================

class TokenStoreError(SimpleGcodeException):
    """Base exception for token persistence errors."""
    pass


class TokenStoreLoadError(TokenStoreError):
    """Failed to read a token document."""
    pass


class TokenStoreSaveError(TokenStoreError):
    """Failed to write a token document."""
    pass


# ============================================================================
# SETTINGS EXCEPTIONS
# ============================================================================

class SettingsException(SimpleGcodeException):
    """Base exception for settings errors."""
    pass


class SettingsLoadError(SettingsException):
    """Failed to load settings file."""
    pass


class SettingsSaveError(SettingsException):
    """Failed to save settings file."""
    pass


class SettingsValidationError(SettingsException):
    """Settings validation failed."""
    pass


# ============================================================================
# VALIDATION EXCEPTIONS
# ============================================================================

class ValidationException(SimpleGcodeException):
    """Base exception for validation errors."""
    pass


class InvalidParameterError(ValidationException):
    """A setting or argument has the wrong type or an unknown value."""

    def __init__(self, parameter_name: str, value: Any, reason: Optional[str] = None):
        self.parameter_name = parameter_name
        self.value = value
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"{parameter_name}={value!r} rejected{detail}")


class InvalidRangeError(ValidationException):
    """A numeric setting lies outside its inclusive bounds."""

    def __init__(self, value: Any, min_val: Any, max_val: Any, parameter_name: Optional[str] = None):
        self.parameter_name = parameter_name
        self.value = value
        self.min_val = min_val
        self.max_val = max_val
        subject = f"{parameter_name} {value}" if parameter_name else f"Value {value}"
        super().__init__(f"{subject} out of range [{min_val}, {max_val}]")
