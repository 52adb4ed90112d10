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

"""Typed instruction tokens emitted by the interpreter.

Tokens are frozen dataclasses. Each carries the command it was produced
for and the interpreter line number. Axis-carrying tokens hold six axis
values (X, Y, Z, A, B, C) in millimetres with scaling applied, plus the
letters actually programmed on their line in ``axes``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from simple_gcode.modal_state import (
    ZERO_AXES,
    AxisValues,
    CoolantState,
    DistanceMode,
    LatheMode,
    Plane,
    SpindleState,
    Units,
)

OptionalOffsets = Tuple[Optional[float], Optional[float], Optional[float]]


class Command(Enum):
    G0 = "G0"
    G1 = "G1"
    G2 = "G2"
    G3 = "G3"
    G4 = "G4"
    G7 = "G7"
    G8 = "G8"
    G10 = "G10"
    G17 = "G17"
    G18 = "G18"
    G19 = "G19"
    G20 = "G20"
    G21 = "G21"
    G28 = "G28"
    G28_1 = "G28.1"
    G30 = "G30"
    G30_1 = "G30.1"
    G33 = "G33"
    G38_2 = "G38.2"
    G38_3 = "G38.3"
    G38_4 = "G38.4"
    G38_5 = "G38.5"
    G40 = "G40"
    G43 = "G43"
    G43_1 = "G43.1"
    G43_2 = "G43.2"
    G49 = "G49"
    G50 = "G50"
    G51 = "G51"
    G53 = "G53"
    G54 = "G54"
    G55 = "G55"
    G56 = "G56"
    G57 = "G57"
    G58 = "G58"
    G59 = "G59"
    G59_1 = "G59.1"
    G59_2 = "G59.2"
    G59_3 = "G59.3"
    G61 = "G61"
    G61_1 = "G61.1"
    G64 = "G64"
    G73 = "G73"
    G76 = "G76"
    G80 = "G80"
    G81 = "G81"
    G82 = "G82"
    G83 = "G83"
    G85 = "G85"
    G86 = "G86"
    G89 = "G89"
    G90 = "G90"
    G90_1 = "G90.1"
    G91 = "G91"
    G91_1 = "G91.1"
    G92 = "G92"
    G92_1 = "G92.1"
    G92_2 = "G92.2"
    G92_3 = "G92.3"
    G93 = "G93"
    G94 = "G94"
    G95 = "G95"
    G96 = "G96"
    G97 = "G97"
    G98 = "G98"
    G99 = "G99"
    M0 = "M0"
    M1 = "M1"
    M2 = "M2"
    M6 = "M6"
    M30 = "M30"
    M48 = "M48"
    M49 = "M49"
    M50 = "M50"
    M51 = "M51"
    M52 = "M52"
    M53 = "M53"
    M56 = "M56"
    M61 = "M61"
    FEEDRATE = "Feedrate"
    SPINDLE_RPM = "SpindleRPM"
    SPINDLE_STATE = "SpindleState"
    COOLANT_STATE = "CoolantState"
    TOOL_SELECT = "ToolSelect"
    COMMENT = "Comment"
    USER_M_COMMAND = "UserMCommand"


COORD_SYSTEM_COMMANDS = (
    Command.G54,
    Command.G55,
    Command.G56,
    Command.G57,
    Command.G58,
    Command.G59,
    Command.G59_1,
    Command.G59_2,
    Command.G59_3,
)


@dataclass(frozen=True)
class GcodeToken:
    command: Command
    line_number: int


@dataclass(frozen=True)
class AxisToken(GcodeToken):
    values: AxisValues = ZERO_AXES
    axes: str = ""

    @property
    def x(self) -> float:
        return self.values[0]

    @property
    def y(self) -> float:
        return self.values[1]

    @property
    def z(self) -> float:
        return self.values[2]


@dataclass(frozen=True)
class LinearMotion(AxisToken):
    pass


@dataclass(frozen=True)
class Arc(AxisToken):
    ijk: OptionalOffsets = (None, None, None)
    radius: Optional[float] = None
    ijk_mode: DistanceMode = DistanceMode.INCREMENTAL
    plane: Plane = Plane.XY

    @property
    def clockwise(self) -> bool:
        return self.command is Command.G2


@dataclass(frozen=True)
class CannedDrill(AxisToken):
    r: float = 0.0
    repeats: int = 1
    dwell: float = 0.0
    peck: float = 0.0


@dataclass(frozen=True)
class SpindleSyncMotion(AxisToken):
    pitch: float = 0.0


@dataclass(frozen=True)
class ThreadCycle(AxisToken):
    pitch: float = 0.0
    i: float = 0.0
    j: float = 0.0
    r: float = 1.0
    k: float = 0.0
    q: float = 0.0
    h: int = 0
    e: float = 0.0
    l: int = 0


@dataclass(frozen=True)
class CoordinateSystem(AxisToken):
    slot: int = 0


@dataclass(frozen=True)
class ToolTable(AxisToken):
    l: int = 1
    tool: int = 0
    radius: Optional[float] = None


@dataclass(frozen=True)
class ToolOffset(GcodeToken):
    h: int = 0


@dataclass(frozen=True)
class ToolOffsets(AxisToken):
    pass


@dataclass(frozen=True)
class Scaling(AxisToken):
    pass


@dataclass(frozen=True)
class ToolSelect(GcodeToken):
    tool: int = 0


@dataclass(frozen=True)
class Feedrate(GcodeToken):
    feed: float = 0.0


@dataclass(frozen=True)
class SpindleRPM(GcodeToken):
    rpm: float = 0.0


@dataclass(frozen=True)
class SpindleStateToken(GcodeToken):
    state: SpindleState = SpindleState.OFF


@dataclass(frozen=True)
class CoolantStateToken(GcodeToken):
    state: CoolantState = CoolantState.OFF


@dataclass(frozen=True)
class PlaneToken(GcodeToken):
    plane: Plane = Plane.XY


@dataclass(frozen=True)
class DistanceModeToken(GcodeToken):
    mode: DistanceMode = DistanceMode.ABSOLUTE


@dataclass(frozen=True)
class IJKModeToken(GcodeToken):
    mode: DistanceMode = DistanceMode.INCREMENTAL


@dataclass(frozen=True)
class UnitsToken(GcodeToken):
    units: Units = Units.METRIC


@dataclass(frozen=True)
class LatheModeToken(GcodeToken):
    mode: LatheMode = LatheMode.RADIUS


@dataclass(frozen=True)
class Dwell(GcodeToken):
    seconds: float = 0.0


@dataclass(frozen=True)
class Comment(GcodeToken):
    text: str = ""


@dataclass(frozen=True)
class UserMCommand(GcodeToken):
    code: int = 0
    parameters: str = ""


TOKEN_TYPES = (
    GcodeToken,
    LinearMotion,
    Arc,
    CannedDrill,
    SpindleSyncMotion,
    ThreadCycle,
    CoordinateSystem,
    ToolTable,
    ToolOffset,
    ToolOffsets,
    Scaling,
    ToolSelect,
    Feedrate,
    SpindleRPM,
    SpindleStateToken,
    CoolantStateToken,
    PlaneToken,
    DistanceModeToken,
    IJKModeToken,
    UnitsToken,
    LatheModeToken,
    Dwell,
    Comment,
    UserMCommand,
)

MOTION_TOKEN_TYPES = (LinearMotion, Arc, CannedDrill)
"""Token types whose endpoints contribute to a job bounding box."""
