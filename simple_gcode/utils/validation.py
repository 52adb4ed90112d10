"""Validation utilities for Simple G-code.

This module provides validation functions for configuration values,
ensuring the interpreter is never built from out-of-range settings.
"""

from typing import Optional

from .constants import (
    ARC_RESOLUTION_MAX,
    ARC_RESOLUTION_MIN,
    AXIS_COUNT_MAX,
    AXIS_COUNT_MIN,
)
from .exceptions import InvalidParameterError, InvalidRangeError


def validate_axis_count(count: int) -> int:
    """Validate the configured number of axes.

    Args:
        count: Number of machine axes

    Returns:
        The validated axis count

    Raises:
        InvalidParameterError: If count is not an integer
        InvalidRangeError: If count is outside 3..6
    """
    if isinstance(count, bool):
        raise InvalidParameterError("axis_count", count, "must be integer")
    try:
        count = int(count)
    except (TypeError, ValueError):
        raise InvalidParameterError("axis_count", count, "must be integer")

    if not (AXIS_COUNT_MIN <= count <= AXIS_COUNT_MAX):
        raise InvalidRangeError(count, AXIS_COUNT_MIN, AXIS_COUNT_MAX, "axis_count")

    return count


def validate_arc_resolution(resolution: int) -> int:
    """Validate arc interpolation resolution.

    Args:
        resolution: Number of interpolation steps per arc

    Returns:
        The validated resolution

    Raises:
        InvalidParameterError: If resolution is not an integer
        InvalidRangeError: If resolution is out of range
    """
    try:
        resolution = int(resolution)
    except (TypeError, ValueError):
        raise InvalidParameterError("arc_resolution", resolution, "must be integer")

    if not (ARC_RESOLUTION_MIN <= resolution <= ARC_RESOLUTION_MAX):
        raise InvalidRangeError(resolution, ARC_RESOLUTION_MIN, ARC_RESOLUTION_MAX, "arc_resolution")

    return resolution


def validate_choice(name: str, value: str, choices) -> str:
    """Validate a string setting against a fixed set of choices.

    Args:
        name: Setting name (for error messages)
        value: Value to check (case-insensitive)
        choices: Allowed lower-case values

    Returns:
        The lower-cased value

    Raises:
        InvalidParameterError: If value is not one of the choices
    """
    if not isinstance(value, str):
        raise InvalidParameterError(name, value, "must be a string")
    normalized = value.strip().lower()
    if normalized not in choices:
        raise InvalidParameterError(
            name,
            value,
            f"must be one of {sorted(choices)}"
        )
    return normalized


def validate_line_index(
    index: int,
    max_index: Optional[int] = None
) -> int:
    """Validate G-code line index.

    Args:
        index: Line index (0-based)
        max_index: Maximum valid index (optional)

    Returns:
        The validated index

    Raises:
        InvalidParameterError: If index is invalid
    """
    try:
        index = int(index)
    except (TypeError, ValueError):
        raise InvalidParameterError("line_index", index, "must be integer")

    if index < 0:
        raise InvalidParameterError("line_index", index, "must be non-negative")

    if max_index is not None and index > max_index:
        raise InvalidRangeError(index, 0, max_index, "line_index")

    return index
