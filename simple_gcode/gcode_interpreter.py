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

"""Modal G-code interpreter.

``parse_line`` is a pure transition from a ``ParserState`` and one
tokenized line to a new state plus the line's tokens. The input state is
never modified; on error nothing is returned, so a failing line leaves
no trace.

Processing follows the NIST RS274 order of execution: words are
classified into modal groups first, unit and scaling conversions are
applied next, and tokens are emitted in execution order (not source
order) last.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from simple_gcode.arc_geometry import center_from_radius
from simple_gcode.gcode_tokenizer import LineKind, TokenizedLine, Word, remove_words
from simple_gcode.gcode_tokens import (
    COORD_SYSTEM_COMMANDS,
    Arc,
    CannedDrill,
    Command,
    Comment,
    CoolantStateToken,
    CoordinateSystem,
    DistanceModeToken,
    Dwell,
    Feedrate,
    GcodeToken,
    IJKModeToken,
    LatheModeToken,
    LinearMotion,
    PlaneToken,
    Scaling,
    SpindleRPM,
    SpindleStateToken,
    SpindleSyncMotion,
    ThreadCycle,
    ToolOffset,
    ToolOffsets,
    ToolSelect,
    ToolTable,
    UnitsToken,
    UserMCommand,
)
from simple_gcode.modal_state import (
    UNIT_SCALE,
    ZERO_AXES,
    AxisCommand,
    CoolantState,
    CutterComp,
    DistanceMode,
    FeedRateMode,
    LatheMode,
    ModalGroup,
    MotionMode,
    ParserState,
    PathMode,
    Plane,
    RetractMode,
    SpindleSpeedMode,
    SpindleState,
    ToolLengthOffset,
    Units,
    advance_position,
)
from simple_gcode.utils.config import CommandIgnoreState, Dialect, ParserConfig
from simple_gcode.utils.constants import (
    AXIS_LETTERS,
    COORD_SYSTEM_G28,
    COORD_SYSTEM_G30,
    COORD_SYSTEM_G54,
    COORD_SYSTEM_G59_3,
    COORD_SYSTEM_G92,
    MM_PER_INCH,
)
from simple_gcode.utils.exceptions import (
    AxisCommandConflictError,
    GcodeParseError,
    MalformedWordError,
    MissingWordError,
    ModalGroupViolationError,
    RepeatedWordError,
    UnrecognizedWordError,
    UnsupportedCommandError,
)

logger = logging.getLogger(__name__)

StripDecider = Callable[[str], bool]
ToolSelectHandler = Callable[[int], bool]

DEFAULT_CONFIG = ParserConfig()

VALUE_LETTERS = frozenset("DEFHLNPQRST")
IJK_LETTERS = "IJK"

MOTION_COMMANDS = {
    MotionMode.SEEK: Command.G0,
    MotionMode.LINEAR: Command.G1,
    MotionMode.PROBE_TOWARD: Command.G38_2,
    MotionMode.PROBE_TOWARD_NO_ERROR: Command.G38_3,
    MotionMode.PROBE_AWAY: Command.G38_4,
    MotionMode.PROBE_AWAY_NO_ERROR: Command.G38_5,
}

CANNED_COMMANDS = {
    MotionMode.DRILL_CHIP_BREAK: Command.G73,
    MotionMode.CANNED_81: Command.G81,
    MotionMode.CANNED_82: Command.G82,
    MotionMode.CANNED_83: Command.G83,
    MotionMode.CANNED_85: Command.G85,
    MotionMode.CANNED_86: Command.G86,
    MotionMode.CANNED_89: Command.G89,
}

# Canned cycles that take a P dwell.
CANNED_DWELL = frozenset({
    MotionMode.CANNED_82,
    MotionMode.CANNED_83,
    MotionMode.CANNED_86,
    MotionMode.CANNED_89,
})

OVERRIDE_COMMANDS = {
    48: Command.M48,
    49: Command.M49,
    50: Command.M50,
    51: Command.M51,
    52: Command.M52,
    53: Command.M53,
    56: Command.M56,
}

PROGRAM_FLOW_COMMANDS = {
    0: Command.M0,
    1: Command.M1,
    2: Command.M2,
    30: Command.M30,
}


@dataclass(frozen=True)
class LineResult:
    tokens: Tuple[GcodeToken, ...]
    state: ParserState
    line: str
    handled: bool = True
    warnings: Tuple[str, ...] = ()
    stripped: Tuple[str, ...] = ()


@dataclass
class _Block:
    """Words of one line after classification, before emission."""

    groups: ModalGroup = ModalGroup(0)
    axis_command: AxisCommand = AxisCommand.NONE
    letters: Dict[str, float] = field(default_factory=dict)
    axis_words: Dict[int, float] = field(default_factory=dict)
    ijk_words: Dict[int, float] = field(default_factory=dict)
    stripped: List[Word] = field(default_factory=list)
    motion: Optional[MotionMode] = None
    non_modal: Optional[Command] = None
    dwell: bool = False
    machine_coords: bool = False
    plane: Optional[Plane] = None
    lathe_mode: Optional[LatheMode] = None
    units: Optional[Units] = None
    scaling_on: Optional[bool] = None
    tool_length: Optional[ToolLengthOffset] = None
    coord_system: Optional[int] = None
    path_mode: Optional[PathMode] = None
    distance_mode: Optional[DistanceMode] = None
    ijk_mode: Optional[DistanceMode] = None
    feed_rate_mode: Optional[FeedRateMode] = None
    spindle_speed_mode: Optional[SpindleSpeedMode] = None
    retract_mode: Optional[RetractMode] = None
    program_flow: Optional[int] = None
    spindle_state: Optional[SpindleState] = None
    coolant: Optional[int] = None
    tool_change: Optional[int] = None
    override: Optional[int] = None
    user_m: Optional[int] = None

    def has(self, group: ModalGroup) -> bool:
        return bool(self.groups & group)

    def has_word(self, letter: str) -> bool:
        return letter in self.letters


def _split_code(value: float) -> Tuple[int, int]:
    """Split G59.1 into (59, 1); one fractional digit is significant."""
    iv = int(math.floor(value))
    fv = int(round((value - iv) * 10.0))
    if fv == 10:
        iv, fv = iv + 1, 0
    return iv, fv


def _format_value(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


class _LineInterpreter:
    def __init__(
        self,
        tokenized: TokenizedLine,
        state: ParserState,
        config: ParserConfig,
        strip_decider: Optional[StripDecider],
    ):
        self.tokenized = tokenized
        self.state = state
        self.config = config
        self.strip_decider = strip_decider
        self.block = _Block()
        self.line_number = state.line_number + 1

    # ------------------------------------------------------------------
    # errors
    # ------------------------------------------------------------------

    def _error(self, cls, message: str, word: Optional[Word | str] = None, **kwargs) -> GcodeParseError:
        return cls(
            message,
            line_number=self.line_number,
            line_content=self.tokenized.source,
            word=str(word) if word is not None else None,
            **kwargs,
        )

    def _unsupported(self, word: Word) -> GcodeParseError:
        return self._error(
            UnsupportedCommandError,
            f"Unsupported command for {self.config.dialect.value} dialect",
            word,
        )

    def _add_group(self, group: ModalGroup, word: Word) -> None:
        if self.block.has(group):
            raise self._error(
                ModalGroupViolationError,
                "Modal group violation",
                word,
                group=group.name,
            )
        self.block.groups |= group

    def _claim_axes(self, owner: AxisCommand, word: Word) -> None:
        if self.block.axis_command is not AxisCommand.NONE:
            raise self._error(AxisCommandConflictError, "Axis command conflict", word)
        self.block.axis_command = owner

    # ------------------------------------------------------------------
    # classification
    # ------------------------------------------------------------------

    def classify(self) -> None:
        for word in self.tokenized.words:
            if word.letter == "G":
                self._classify_g(word)
            elif word.letter == "M":
                self._classify_m(word)
            else:
                self._collect_value(word)
        self._resolve_axis_owner()

    def _classify_g(self, word: Word) -> None:
        block = self.block
        dialect = self.config.dialect
        embedded = dialect is Dialect.EMBEDDED
        iv, fv = _split_code(word.value)

        if iv in (0, 1, 2, 3) and fv == 0:
            self._add_group(ModalGroup.MOTION, word)
            self._claim_axes(AxisCommand.MOTION_MODE, word)
            block.motion = MotionMode(iv)
        elif iv == 4 and fv == 0:
            self._add_group(ModalGroup.NON_MODAL, word)
            block.dwell = True
        elif iv in (7, 8) and fv == 0:
            if embedded:
                raise self._unsupported(word)
            self._add_group(ModalGroup.LATHE_MODE, word)
            block.lathe_mode = LatheMode.DIAMETER if iv == 7 else LatheMode.RADIUS
        elif iv == 10 and fv == 0:
            self._add_group(ModalGroup.NON_MODAL, word)
            self._claim_axes(AxisCommand.NON_MODAL, word)
            block.non_modal = Command.G10
        elif iv in (17, 18, 19) and fv == 0:
            self._add_group(ModalGroup.PLANE, word)
            block.plane = (Plane.XY, Plane.ZX, Plane.YZ)[iv - 17]
        elif iv in (20, 21) and fv == 0:
            self._add_group(ModalGroup.UNITS, word)
            block.units = Units.IMPERIAL if iv == 20 else Units.METRIC
        elif iv in (28, 30) and fv in (0, 1):
            self._add_group(ModalGroup.NON_MODAL, word)
            self._claim_axes(AxisCommand.NON_MODAL, word)
            if iv == 28:
                block.non_modal = Command.G28_1 if fv else Command.G28
            else:
                block.non_modal = Command.G30_1 if fv else Command.G30
        elif iv == 33 and fv == 0:
            if embedded:
                raise self._unsupported(word)
            self._add_group(ModalGroup.MOTION, word)
            self._claim_axes(AxisCommand.MOTION_MODE, word)
            block.motion = MotionMode.SPINDLE_SYNC
        elif iv == 38 and 2 <= fv <= 5:
            if embedded:
                raise self._unsupported(word)
            self._add_group(ModalGroup.MOTION, word)
            self._claim_axes(AxisCommand.MOTION_MODE, word)
            block.motion = MotionMode(MotionMode.PROBE_TOWARD + fv - 2)
        elif iv == 40 and fv == 0:
            self._add_group(ModalGroup.CUTTER_COMP, word)
        elif iv == 43 and fv in (0, 1, 2):
            self._add_group(ModalGroup.TOOL_LENGTH, word)
            block.tool_length = ToolLengthOffset(ToolLengthOffset.ENABLE + fv)
            if block.tool_length is ToolLengthOffset.DYNAMIC:
                self._claim_axes(AxisCommand.TOOL_LENGTH_OFFSET, word)
        elif iv == 49 and fv == 0:
            self._add_group(ModalGroup.TOOL_LENGTH, word)
            block.tool_length = ToolLengthOffset.CANCEL
        elif iv in (50, 51) and fv == 0:
            if dialect is not Dialect.EXTENDED:
                raise self._unsupported(word)
            self._add_group(ModalGroup.SCALING, word)
            self._claim_axes(AxisCommand.SCALING, word)
            block.scaling_on = iv == 51
        elif iv == 53 and fv == 0:
            self._add_group(ModalGroup.NON_MODAL, word)
            block.non_modal = Command.G53
            block.machine_coords = True
        elif 54 <= iv <= 59 and (fv == 0 or (iv == 59 and fv <= 3)):
            if fv and embedded:
                raise self._unsupported(word)
            self._add_group(ModalGroup.COORD_SYSTEM, word)
            block.coord_system = iv - 54 + fv
        elif (iv == 61 and fv in (0, 1)) or (iv == 64 and fv == 0):
            if embedded and (iv == 64 or fv):
                raise self._unsupported(word)
            self._add_group(ModalGroup.PATH_CONTROL, word)
            if iv == 64:
                block.path_mode = PathMode.CONTINUOUS
            else:
                block.path_mode = PathMode.EXACT_STOP if fv else PathMode.EXACT_PATH
        elif iv in (73, 76, 81, 82, 83, 85, 86, 89) and fv == 0:
            if embedded:
                raise self._unsupported(word)
            self._add_group(ModalGroup.MOTION, word)
            self._claim_axes(AxisCommand.MOTION_MODE, word)
            block.motion = MotionMode(iv)
        elif iv == 80 and fv == 0:
            self._add_group(ModalGroup.MOTION, word)
            block.motion = MotionMode.NONE
        elif iv in (90, 91) and fv == 0:
            self._add_group(ModalGroup.DISTANCE, word)
            block.distance_mode = DistanceMode.ABSOLUTE if iv == 90 else DistanceMode.INCREMENTAL
        elif iv in (90, 91) and fv == 1:
            if iv == 90 and dialect is not Dialect.STRICT:
                raise self._unsupported(word)
            self._add_group(ModalGroup.ARC_DISTANCE, word)
            block.ijk_mode = DistanceMode.ABSOLUTE if iv == 90 else DistanceMode.INCREMENTAL
        elif iv == 92 and fv <= 3:
            self._add_group(ModalGroup.NON_MODAL, word)
            self._claim_axes(AxisCommand.NON_MODAL, word)
            block.non_modal = (Command.G92, Command.G92_1, Command.G92_2, Command.G92_3)[fv]
        elif iv in (93, 94, 95) and fv == 0:
            self._add_group(ModalGroup.FEED_MODE, word)
            block.feed_rate_mode = (
                FeedRateMode.INVERSE_TIME,
                FeedRateMode.UNITS_PER_MIN,
                FeedRateMode.UNITS_PER_REV,
            )[iv - 93]
        elif iv in (96, 97) and fv == 0:
            self._add_group(ModalGroup.SPINDLE_SPEED_MODE, word)
            block.spindle_speed_mode = (
                SpindleSpeedMode.CONSTANT_SURFACE if iv == 96 else SpindleSpeedMode.RPM
            )
        elif iv in (98, 99) and fv == 0:
            if embedded:
                raise self._unsupported(word)
            self._add_group(ModalGroup.RETURN_MODE, word)
            block.retract_mode = RetractMode.OLD_Z if iv == 98 else RetractMode.R_PLANE
        else:
            # G41/G42 cutter compensation, G84/G87/G88 and unknown codes
            raise self._error(UnsupportedCommandError, "Unsupported command", word)

    def _strip_requested(self, mcode: int) -> bool:
        policy = self.config.ignore_state(mcode)
        if policy is CommandIgnoreState.STRIP:
            return True
        if policy is CommandIgnoreState.PROMPT and self.strip_decider is not None:
            return bool(self.strip_decider(f"M{mcode}"))
        return False

    def _classify_m(self, word: Word) -> None:
        block = self.block
        iv, _ = _split_code(word.value)

        if iv in (6, 7, 8) and self._strip_requested(iv):
            block.stripped.append(word)
            return

        if iv in PROGRAM_FLOW_COMMANDS:
            self._add_group(ModalGroup.PROGRAM_FLOW, word)
            block.program_flow = iv
        elif iv in (3, 4, 5):
            self._add_group(ModalGroup.SPINDLE, word)
            block.spindle_state = {3: SpindleState.CW, 4: SpindleState.CCW, 5: SpindleState.OFF}[iv]
        elif iv in (6, 61):
            self._add_group(ModalGroup.TOOL_CHANGE, word)
            block.tool_change = iv
        elif iv in (7, 8, 9):
            self._add_group(ModalGroup.COOLANT, word)
            block.coolant = iv
        elif iv in OVERRIDE_COMMANDS:
            if iv == 56 and self.config.dialect is Dialect.STRICT:
                raise self._unsupported(word)
            self._add_group(ModalGroup.OVERRIDE, word)
            block.override = iv
        else:
            self._add_group(ModalGroup.USER_M, word)
            block.user_m = iv

    def _collect_value(self, word: Word) -> None:
        block = self.block
        letter = word.letter
        if letter in block.letters:
            raise self._error(RepeatedWordError, "Command word repeated", word)

        if letter in AXIS_LETTERS:
            idx = AXIS_LETTERS.index(letter)
            if idx >= self.config.axis_count:
                raise self._error(
                    UnsupportedCommandError,
                    f"Axis {letter} not available on a {self.config.axis_count}-axis machine",
                    word,
                )
            block.axis_words[idx] = word.value
        elif letter in IJK_LETTERS:
            block.ijk_words[IJK_LETTERS.index(letter)] = word.value
        elif letter not in VALUE_LETTERS:
            raise self._error(UnrecognizedWordError, "Command word not recognized", word)
        block.letters[letter] = word.value

    def _resolve_axis_owner(self) -> None:
        block = self.block
        if block.machine_coords:
            owner = block.axis_command
            if owner in (AxisCommand.TOOL_LENGTH_OFFSET, AxisCommand.SCALING) or (
                owner is AxisCommand.MOTION_MODE
                and block.motion not in (MotionMode.SEEK, MotionMode.LINEAR)
            ):
                raise self._error(AxisCommandConflictError, "Axis command conflict", "G53")
            block.axis_command = AxisCommand.NON_MODAL
        # Axis words without an explicit owner continue the active motion mode,
        # unless G80 on the same line cancels it.
        if block.axis_command is AxisCommand.NONE and block.axis_words and block.motion is None:
            block.axis_command = AxisCommand.MOTION_MODE

    # ------------------------------------------------------------------
    # emission
    # ------------------------------------------------------------------

    def _require(self, letter: str, command: str) -> float:
        if not self.block.has_word(letter):
            raise self._error(MissingWordError, f"{letter} word missing", command)
        return self.block.letters[letter]

    def _mm(self, value: float, imperial: bool) -> float:
        return value * MM_PER_INCH if imperial else value

    def run(self) -> Tuple[List[GcodeToken], ParserState, List[int]]:
        self.classify()
        block = self.block
        state = self.state
        n = self.line_number
        tokens: List[GcodeToken] = []
        changes: Dict[str, object] = {"line_number": n}
        tool_requests: List[int] = []

        if block.has_word("N"):
            changes["sequence_number"] = int(block.letters["N"])

        if self.tokenized.message:
            tokens.append(Comment(Command.COMMENT, n, self.tokenized.message))

        if block.feed_rate_mode is not None:
            changes["feed_rate_mode"] = block.feed_rate_mode
            tokens.append(GcodeToken(Command(block.feed_rate_mode.value), n))

        if block.has_word("F"):
            tokens.append(Feedrate(Command.FEEDRATE, n, block.letters["F"]))

        if block.spindle_speed_mode is not None:
            changes["spindle_speed_mode"] = block.spindle_speed_mode
            tokens.append(GcodeToken(Command(block.spindle_speed_mode.value), n))

        if block.has_word("S"):
            tokens.append(SpindleRPM(Command.SPINDLE_RPM, n, block.letters["S"]))

        if block.has_word("T"):
            tool = int(block.letters["T"])
            changes["tool"] = tool
            tool_requests.append(tool)
            tokens.append(ToolSelect(Command.TOOL_SELECT, n, tool))

        if block.tool_change == 6:
            tokens.append(GcodeToken(Command.M6, n))
        elif block.tool_change == 61:
            tool = int(self._require("Q", "M61"))
            changes["tool"] = tool
            tokens.append(ToolSelect(Command.M61, n, tool))

        if block.spindle_state is not None:
            changes["spindle_state"] = block.spindle_state
            tokens.append(SpindleStateToken(Command.SPINDLE_STATE, n, block.spindle_state))

        if block.coolant is not None:
            if block.coolant == 9:
                coolant = CoolantState.OFF
            elif block.coolant == 7:
                coolant = state.coolant_state | CoolantState.MIST
            else:
                coolant = state.coolant_state | CoolantState.FLOOD
            changes["coolant_state"] = coolant
            tokens.append(CoolantStateToken(Command.COOLANT_STATE, n, coolant))

        if block.override is not None:
            tokens.append(GcodeToken(OVERRIDE_COMMANDS[block.override], n))

        if block.user_m is not None:
            params = " ".join(
                f"{letter}{_format_value(block.letters[letter])}"
                for letter in "PQED"
                if block.has_word(letter)
            )
            tokens.append(UserMCommand(Command.USER_M_COMMAND, n, block.user_m, params))

        if block.dwell:
            tokens.append(Dwell(Command.G4, n, self._require("P", "G4")))

        plane = block.plane or state.plane
        if block.plane is not None:
            changes["plane"] = plane
            tokens.append(PlaneToken(Command(plane.value), n, plane))

        if block.lathe_mode is not None:
            changes["lathe_mode"] = block.lathe_mode
            tokens.append(LatheModeToken(Command(block.lathe_mode.value), n, block.lathe_mode))

        units = block.units or state.units
        imperial = units is Units.IMPERIAL
        if block.units is not None:
            changes["units"] = units
            tokens.append(UnitsToken(Command(units.value), n, units))

        axis_words = dict(block.axis_words)
        scale_factors = state.scale_factors
        if block.scaling_on is not None:
            if block.scaling_on:
                factors = list(scale_factors)
                for idx, value in axis_words.items():
                    factors[idx] = value
                scale_factors = tuple(factors)
                command = Command.G51
            else:
                scale_factors = UNIT_SCALE
                command = Command.G50
            changes["scale_factors"] = scale_factors
            tokens.append(Scaling(command, n, scale_factors, self._axes(axis_words)))
            axis_words = {}
        scaling_active = any(factor != 1.0 for factor in scale_factors)

        for idx in list(axis_words):
            value = axis_words[idx]
            # A/B/C are angles and keep their units under G20.
            if imperial and idx < 3:
                value *= MM_PER_INCH
            if scaling_active:
                value *= scale_factors[idx]
            axis_words[idx] = value

        ijk: List[Optional[float]] = [None, None, None]
        for idx, value in block.ijk_words.items():
            if imperial:
                value *= MM_PER_INCH
            if scaling_active:
                value *= scale_factors[idx]
            ijk[idx] = value

        if block.has(ModalGroup.CUTTER_COMP):
            changes["cutter_comp"] = CutterComp.OFF
            tokens.append(GcodeToken(Command.G40, n))

        if block.tool_length is not None:
            changes["tool_length_offset"] = block.tool_length
            if block.tool_length is ToolLengthOffset.ENABLE:
                h = int(block.letters.get("H", state.tool))
                tokens.append(ToolOffset(Command.G43, n, h))
            elif block.tool_length is ToolLengthOffset.ADDITIONAL:
                h = int(block.letters.get("H", state.tool))
                tokens.append(ToolOffset(Command.G43_2, n, h))
            elif block.tool_length is ToolLengthOffset.DYNAMIC:
                offsets = list(state.tool_offsets)
                for idx, value in axis_words.items():
                    offsets[idx] = value
                changes["tool_offsets"] = tuple(offsets)
                tokens.append(ToolOffsets(Command.G43_1, n, tuple(offsets), self._axes(axis_words)))
                axis_words = {}
            else:
                changes["tool_offsets"] = ZERO_AXES
                tokens.append(GcodeToken(Command.G49, n))

        if block.coord_system is not None:
            changes["coord_system"] = block.coord_system
            tokens.append(GcodeToken(COORD_SYSTEM_COMMANDS[block.coord_system], n))

        if block.path_mode is not None:
            changes["path_mode"] = block.path_mode
            tokens.append(GcodeToken(Command(block.path_mode.value), n))

        distance_mode = block.distance_mode or state.distance_mode
        if block.distance_mode is not None:
            changes["distance_mode"] = distance_mode
            command = Command.G90 if distance_mode is DistanceMode.ABSOLUTE else Command.G91
            tokens.append(DistanceModeToken(command, n, distance_mode))

        ijk_mode = block.ijk_mode or state.ijk_mode
        if block.ijk_mode is not None:
            changes["ijk_mode"] = ijk_mode
            command = Command.G90_1 if ijk_mode is DistanceMode.ABSOLUTE else Command.G91_1
            tokens.append(IJKModeToken(command, n, ijk_mode))

        if block.retract_mode is not None:
            changes["retract_mode"] = block.retract_mode
            tokens.append(GcodeToken(Command(block.retract_mode.value), n))

        values = list(state.axis_values)
        for idx, value in axis_words.items():
            values[idx] = value
        axis_values = tuple(values)
        axes = self._axes(axis_words)
        if axis_words:
            changes["axis_values"] = axis_values
        position = state.position

        if block.non_modal is not None:
            position = self._emit_non_modal(
                tokens, changes, axis_values, axes, imperial, position, distance_mode
            )
            axis_words = {}

        motion = block.motion if block.motion is not None else state.motion_mode
        if block.motion is not None:
            changes["motion_mode"] = motion
            if motion is MotionMode.NONE:
                tokens.append(GcodeToken(Command.G80, n))

        if motion is not MotionMode.NONE and axis_words and block.axis_command is AxisCommand.MOTION_MODE:
            target = advance_position(position, axis_values, axes, distance_mode)
            token = self._motion_token(
                motion, axis_values, axes, ijk, ijk_mode, plane, imperial,
                scale_factors, scaling_active, position, target, changes,
            )
            tokens.append(token)
            position = target

        if position is not state.position:
            changes["position"] = position

        if block.program_flow is not None:
            if block.program_flow in (2, 30):
                changes["program_end"] = True
            tokens.append(GcodeToken(PROGRAM_FLOW_COMMANDS[block.program_flow], n))

        return tokens, state.evolve(**changes), tool_requests

    @staticmethod
    def _axes(axis_words: Dict[int, float]) -> str:
        return "".join(AXIS_LETTERS[idx] for idx in sorted(axis_words))

    def _emit_non_modal(self, tokens, changes, axis_values, axes, imperial, position, distance_mode):
        block = self.block
        n = self.line_number
        command = block.non_modal

        if command is Command.G10:
            l_word = int(self._require("L", "G10"))
            p_word = int(block.letters.get("P", 0))
            if l_word in (2, 20):
                slot = COORD_SYSTEM_G54 + p_word - 1 if p_word > 0 else self.state.coord_system
                if slot > COORD_SYSTEM_G59_3:
                    raise self._error(MalformedWordError, "Coordinate system out of range", f"P{p_word}")
                tokens.append(CoordinateSystem(Command.G10, n, axis_values, axes, slot))
            elif l_word in (1, 10, 11) and self.config.dialect is not Dialect.EMBEDDED:
                radius = block.letters.get("R")
                if radius is not None:
                    radius = self._mm(radius, imperial)
                tokens.append(ToolTable(Command.G10, n, axis_values, axes, l_word, p_word, radius))
            else:
                raise self._error(UnsupportedCommandError, "Unsupported G10 form", f"L{l_word}")
        elif command in (Command.G28, Command.G30):
            tokens.append(LinearMotion(command, n, axis_values, axes))
            return advance_position(position, axis_values, axes, distance_mode)
        elif command is Command.G53:
            tokens.append(LinearMotion(command, n, axis_values, axes))
            return advance_position(position, axis_values, axes, DistanceMode.ABSOLUTE)
        elif command is Command.G28_1:
            tokens.append(CoordinateSystem(command, n, axis_values, axes, COORD_SYSTEM_G28))
        elif command is Command.G30_1:
            tokens.append(CoordinateSystem(command, n, axis_values, axes, COORD_SYSTEM_G30))
        elif command is Command.G92:
            tokens.append(CoordinateSystem(command, n, axis_values, axes, COORD_SYSTEM_G92))
            return advance_position(position, axis_values, axes, DistanceMode.ABSOLUTE)
        else:
            tokens.append(GcodeToken(command, n))
        return position

    def _motion_token(
        self, motion, axis_values, axes, ijk, ijk_mode, plane, imperial,
        scale_factors, scaling_active, position, target, changes,
    ) -> GcodeToken:
        block = self.block
        n = self.line_number

        if motion in MOTION_COMMANDS:
            return LinearMotion(MOTION_COMMANDS[motion], n, axis_values, axes)

        if motion.is_arc:
            command = Command.G2 if motion is MotionMode.CW_ARC else Command.G3
            clockwise = motion is MotionMode.CW_ARC
            if block.has_word("R"):
                radius = self._mm(block.letters["R"], imperial)
                if scaling_active:
                    a0, a1, _ = plane.axes
                    radius *= max(scale_factors[a0], scale_factors[a1])
                try:
                    center_from_radius(position, target, radius, clockwise, plane)
                except GcodeParseError as exc:
                    raise self._error(type(exc), exc.message, exc.word)
                return Arc(command, n, axis_values, axes, (None, None, None), radius, ijk_mode, plane)
            if all(offset is None for offset in ijk):
                raise self._error(MissingWordError, "Arc needs R or I/J/K words", command.value)
            return Arc(command, n, axis_values, axes, tuple(ijk), None, ijk_mode, plane)

        if motion is MotionMode.SPINDLE_SYNC:
            if ijk[2] is None:
                raise self._error(MissingWordError, "K word missing", "G33")
            return SpindleSyncMotion(Command.G33, n, axis_values, axes, ijk[2])

        if motion is MotionMode.THREADING:
            pitch = self._mm(self._require("P", "G76"), imperial)
            if ijk[2] is None:
                raise self._error(MissingWordError, "K word missing", "G76")
            letters = block.letters
            return ThreadCycle(
                Command.G76, n, axis_values, axes,
                pitch=pitch,
                i=ijk[0] if ijk[0] is not None else 0.0,
                j=ijk[1] if ijk[1] is not None else 0.0,
                r=letters.get("R", 1.0),
                k=ijk[2],
                q=letters.get("Q", 0.0),
                h=int(letters.get("H", 0)),
                e=self._mm(letters.get("E", 0.0), imperial),
                l=int(letters.get("L", 0)),
            )

        command = CANNED_COMMANDS[motion]
        repeats = int(block.letters.get("L", 1))
        if repeats <= 0:
            repeats = 1
        if block.has_word("R"):
            changes["canned_r"] = self._mm(block.letters["R"], imperial)
        elif motion is MotionMode.DRILL_CHIP_BREAK:
            raise self._error(MissingWordError, "R word missing", command.value)
        r_plane = changes.get("canned_r", self.state.canned_r)

        peck = 0.0
        if motion in (MotionMode.DRILL_CHIP_BREAK, MotionMode.CANNED_83):
            q = block.letters.get("Q")
            if q is None or q <= 0:
                raise self._error(MissingWordError, "Q word missing or out of range", command.value)
            peck = self._mm(q, imperial)
        dwell = block.letters.get("P", 0.0) if motion in CANNED_DWELL else 0.0
        return CannedDrill(command, n, axis_values, axes, r_plane, repeats, dwell, peck)


def parse_line(
    tokenized: TokenizedLine,
    state: ParserState,
    config: ParserConfig = DEFAULT_CONFIG,
    strip_decider: Optional[StripDecider] = None,
    on_tool_select: Optional[ToolSelectHandler] = None,
) -> LineResult:
    """Interpret one tokenized line against ``state``.

    Returns the line's tokens and the state after the line. ``state`` is
    never modified. Lines after program end, blank lines and controller
    pass-through lines are reported with ``handled=False``.

    Raises:
        GcodeParseError: A subclass naming the offending word or group
    """
    source = tokenized.source
    if state.program_end:
        return LineResult((), state, source, handled=False)

    kind = tokenized.kind
    if kind in (LineKind.EMPTY, LineKind.PASS_THROUGH):
        return LineResult((), state, source, handled=False)
    if kind is LineKind.COMMENT:
        return LineResult((), state, source)
    if kind is LineKind.DEMARCATION:
        count = state.demarcation_count + 1
        return LineResult(
            (),
            state.evolve(demarcation_count=count, program_end=state.program_end or count >= 2),
            source,
        )

    interp = _LineInterpreter(tokenized, state, config, strip_decider)
    tokens, new_state, tool_requests = interp.run()

    line = source
    if interp.block.stripped:
        line = remove_words(source, interp.block.stripped)
        logger.info(
            f"Line {interp.line_number}: stripped "
            f"{', '.join(w.text for w in interp.block.stripped)}"
        )

    warnings: List[str] = []
    if on_tool_select is not None:
        for tool in tool_requests:
            if not on_tool_select(tool):
                message = f"Tool {tool} not associated with a profile"
                logger.warning(f"Line {interp.line_number}: {message}")
                warnings.append(message)

    return LineResult(
        tuple(tokens),
        new_state,
        line,
        True,
        tuple(warnings),
        tuple(w.text for w in interp.block.stripped),
    )
