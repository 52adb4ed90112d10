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
# SPDX-License-Identifier: GPL-3.0-or-later

"""Modal state carried by the interpreter from one line to the next.

Every modal group has exactly one active value. The state is immutable:
the interpreter builds a new state per successful line and the caller
swaps it in, so a failing line never leaves a half-applied change behind.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum, IntFlag
from typing import Iterable, Tuple

from simple_gcode.utils.constants import AXIS_LETTERS

AxisValues = Tuple[float, float, float, float, float, float]

ZERO_AXES: AxisValues = (0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
UNIT_SCALE: AxisValues = (1.0, 1.0, 1.0, 1.0, 1.0, 1.0)


class ModalGroup(IntFlag):
    """Modal groups; at most one member of each may appear on a line."""

    NON_MODAL = 1 << 0           # G4, G10, G28, G28.1, G30, G30.1, G53, G92, G92.x
    MOTION = 1 << 1              # G0-G3, G33, G38.x, G73, G76, G80-G89
    PLANE = 1 << 2               # G17, G18, G19
    DISTANCE = 1 << 3            # G90, G91
    ARC_DISTANCE = 1 << 4        # G90.1, G91.1
    FEED_MODE = 1 << 5           # G93, G94, G95
    UNITS = 1 << 6               # G20, G21
    CUTTER_COMP = 1 << 7         # G40
    TOOL_LENGTH = 1 << 8         # G43, G43.1, G43.2, G49
    RETURN_MODE = 1 << 9         # G98, G99
    SCALING = 1 << 10            # G50, G51
    COORD_SYSTEM = 1 << 11       # G54-G59, G59.1-G59.3
    PATH_CONTROL = 1 << 12       # G61, G61.1, G64
    SPINDLE_SPEED_MODE = 1 << 13  # G96, G97
    LATHE_MODE = 1 << 14         # G7, G8

    PROGRAM_FLOW = 1 << 15       # M0, M1, M2, M30
    TOOL_CHANGE = 1 << 16        # M6, M61
    SPINDLE = 1 << 17            # M3, M4, M5
    COOLANT = 1 << 18            # M7, M8, M9
    OVERRIDE = 1 << 19           # M48-M53, M56
    USER_M = 1 << 20             # anything else


class MotionMode(IntEnum):
    SEEK = 0
    LINEAR = 1
    CW_ARC = 2
    CCW_ARC = 3
    SPINDLE_SYNC = 33
    DRILL_CHIP_BREAK = 73
    THREADING = 76
    NONE = 80
    CANNED_81 = 81
    CANNED_82 = 82
    CANNED_83 = 83
    CANNED_85 = 85
    CANNED_86 = 86
    CANNED_89 = 89
    PROBE_TOWARD = 140
    PROBE_TOWARD_NO_ERROR = 141
    PROBE_AWAY = 142
    PROBE_AWAY_NO_ERROR = 143

    @property
    def is_arc(self) -> bool:
        return self in (MotionMode.CW_ARC, MotionMode.CCW_ARC)


class Plane(Enum):
    """Active arc plane. Axis indexes follow the right-hand rule per plane."""

    XY = "G17"
    ZX = "G18"
    YZ = "G19"

    @property
    def axes(self) -> Tuple[int, int, int]:
        """(first in-plane axis, second in-plane axis, helix axis)."""
        if self is Plane.XY:
            return 0, 1, 2
        if self is Plane.ZX:
            return 2, 0, 1
        return 1, 2, 0


class DistanceMode(Enum):
    ABSOLUTE = "absolute"
    INCREMENTAL = "incremental"


class Units(Enum):
    METRIC = "G21"
    IMPERIAL = "G20"


class LatheMode(Enum):
    DIAMETER = "G7"
    RADIUS = "G8"


class SpindleState(Enum):
    OFF = "off"
    CW = "cw"
    CCW = "ccw"


class CoolantState(IntFlag):
    OFF = 0
    MIST = 1
    FLOOD = 2


class FeedRateMode(Enum):
    INVERSE_TIME = "G93"
    UNITS_PER_MIN = "G94"
    UNITS_PER_REV = "G95"


class SpindleSpeedMode(Enum):
    CONSTANT_SURFACE = "G96"
    RPM = "G97"


class PathMode(Enum):
    EXACT_PATH = "G61"
    EXACT_STOP = "G61.1"
    CONTINUOUS = "G64"


class RetractMode(Enum):
    OLD_Z = "G98"
    R_PLANE = "G99"


class CutterComp(Enum):
    OFF = "G40"


class ToolLengthOffset(IntEnum):
    CANCEL = 0       # G49
    ENABLE = 1       # G43
    DYNAMIC = 2      # G43.1
    ADDITIONAL = 3   # G43.2


class AxisCommand(Enum):
    """Which command on the line owns the axis words."""

    NONE = "none"
    NON_MODAL = "non_modal"
    MOTION_MODE = "motion_mode"
    TOOL_LENGTH_OFFSET = "tool_length_offset"
    SCALING = "scaling"


def axes_indexes(axes: str) -> Iterable[int]:
    for letter in axes:
        yield AXIS_LETTERS.index(letter)


def advance_position(
    position: AxisValues,
    values: AxisValues,
    axes: str,
    distance_mode: DistanceMode,
) -> AxisValues:
    """Return the program position reached by a move programming ``axes``."""
    target = list(position)
    for idx in axes_indexes(axes):
        if distance_mode is DistanceMode.ABSOLUTE:
            target[idx] = values[idx]
        else:
            target[idx] = position[idx] + values[idx]
    return tuple(target)  # type: ignore[return-value]


@dataclass(frozen=True)
class ParserState:
    motion_mode: MotionMode = MotionMode.SEEK
    plane: Plane = Plane.XY
    distance_mode: DistanceMode = DistanceMode.ABSOLUTE
    ijk_mode: DistanceMode = DistanceMode.INCREMENTAL
    units: Units = Units.METRIC
    lathe_mode: LatheMode = LatheMode.RADIUS
    coord_system: int = 0
    tool_length_offset: ToolLengthOffset = ToolLengthOffset.CANCEL
    tool_offsets: AxisValues = ZERO_AXES
    scale_factors: AxisValues = UNIT_SCALE
    spindle_state: SpindleState = SpindleState.OFF
    coolant_state: CoolantState = CoolantState.OFF
    feed_rate_mode: FeedRateMode = FeedRateMode.UNITS_PER_MIN
    spindle_speed_mode: SpindleSpeedMode = SpindleSpeedMode.RPM
    path_mode: PathMode = PathMode.EXACT_PATH
    retract_mode: RetractMode = RetractMode.OLD_Z
    cutter_comp: CutterComp = CutterComp.OFF
    line_number: int = 0
    sequence_number: int = 0
    demarcation_count: int = 0
    program_end: bool = False
    axis_values: AxisValues = ZERO_AXES
    position: AxisValues = ZERO_AXES
    canned_r: float = 0.0
    tool: int = 0

    def evolve(self, **changes) -> "ParserState":
        return replace(self, **changes)


def default_state() -> ParserState:
    """State after a reset: G21 G90 G17 G91.1 G8 G94 G97 G49 G54, spindle and coolant off."""
    return ParserState()
